"""
NFT Staking - Flat-Rate Collectible Staking Pool

Users lock units of an eligible collectible and accrue a fungible reward
token per block, paid from a pre-funded reserve.

Main Components:
- Staking: pool facade, stake ledger, owner controls and event log
- Contracts: reward token and collectible ledgers the pool works against
- Local chain: auto-mining sandbox with durable JSON state
- Interfaces: Flask HTTP API and the ``nftstake`` CLI
"""

__version__ = "0.1.0"
__author__ = "NFT Staking Development Team"

__all__ = []
