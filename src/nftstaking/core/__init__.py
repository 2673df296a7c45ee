"""
NFT Staking Core Module

Core functionality of the staking pool including:
- Reward accrual and settlement
- Token collaborators
- Storage and configuration
- API interface
"""

__all__ = []
