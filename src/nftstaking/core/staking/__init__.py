"""
Collectible staking engine.

- NftStakingPool: public stake/unstake/claim/earned and owner controls
- StakeLedger / StakeAccount: per-account records and settlement
- PoolConfig / AccessGuard: owner-controlled parameters and their guard
- EventLog / StakingEvent: committed notifications
"""

from .access_guard import AccessGuard
from .events import EventLog, EventType, StakingEvent
from .pool import NftStakingPool
from .pool_config import PoolConfig
from .stake_ledger import StakeAccount, StakeLedger, pending_rewards

__all__ = [
    "NftStakingPool",
    "StakeLedger",
    "StakeAccount",
    "pending_rewards",
    "PoolConfig",
    "AccessGuard",
    "EventLog",
    "EventType",
    "StakingEvent",
]
