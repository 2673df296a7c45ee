"""
Owner-controlled pool parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class PoolConfig:
    """
    Mutable configuration of a staking pool.

    Attributes:
        owner: Address allowed to change configuration
        block_reward: Reward units paid per block per staked collectible
            unit (flat, not normalized by pool size)
        pool_key_token: The single collectible id currently accepted
        paused: Emergency switch for stake/unstake/claim
    """

    owner: str
    block_reward: int
    pool_key_token: int
    paused: bool = False

    def __post_init__(self) -> None:
        self.owner = self.owner.lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "block_reward": self.block_reward,
            "pool_key_token": self.pool_key_token,
            "paused": self.paused,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PoolConfig":
        return cls(
            owner=data["owner"],
            block_reward=int(data["block_reward"]),
            pool_key_token=int(data["pool_key_token"]),
            paused=bool(data.get("paused", False)),
        )
