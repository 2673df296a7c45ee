"""
Token ledgers the staking pool collaborates with.

- RewardToken: fungible reward token holding the pool's reserve
- CollectibleToken: multi-token collectible ledger providing custody
"""

from .erc20 import ZERO_ADDRESS, RewardToken, derive_contract_address
from .erc1155 import CollectibleToken
from .interfaces import CollectibleRegistry, RewardReserveToken

__all__ = [
    "RewardToken",
    "CollectibleToken",
    "RewardReserveToken",
    "CollectibleRegistry",
    "ZERO_ADDRESS",
    "derive_contract_address",
]
