"""
Per-account stake records and block-interval reward settlement.

Settlement folds the rewards earned since ``last_settled_block`` into
``accrued_rewards`` using the stake size that was active during that
interval. It always runs before an operation changes the stake size.

Reward math (integer, flat rate)::

    pending = (current_block - last_settled_block) * block_reward * staked_amount

The rate used is the one in effect at settlement time, so a rate change
reprices the whole unsettled interval of every account.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


@dataclass
class StakeAccount:
    """
    Stake record of one address.

    ``staked_by_id`` tracks locked units per collectible id so units staked
    under a previous pool key token can still be returned after the owner
    switches to a new one.
    """

    address: str
    staked_by_id: Dict[int, int] = field(default_factory=dict)
    last_settled_block: int = 0
    accrued_rewards: int = 0

    @property
    def staked_amount(self) -> int:
        return sum(self.staked_by_id.values())

    def staked_for(self, token_id: int) -> int:
        return self.staked_by_id.get(token_id, 0)

    def add_stake(self, token_id: int, amount: int) -> None:
        self.staked_by_id[token_id] = self.staked_for(token_id) + amount

    def remove_stake(self, token_id: int, amount: int) -> None:
        remaining = self.staked_for(token_id) - amount
        if remaining < 0:
            raise ValueError("stake cannot go below zero")
        if remaining:
            self.staked_by_id[token_id] = remaining
        else:
            self.staked_by_id.pop(token_id, None)

    def clone(self) -> "StakeAccount":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "staked_amount": self.staked_amount,
            "staked_by_id": {str(k): v for k, v in self.staked_by_id.items()},
            "last_settled_block": self.last_settled_block,
            "accrued_rewards": self.accrued_rewards,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StakeAccount":
        return cls(
            address=data["address"],
            staked_by_id={int(k): int(v) for k, v in data.get("staked_by_id", {}).items()},
            last_settled_block=int(data.get("last_settled_block", 0)),
            accrued_rewards=int(data.get("accrued_rewards", 0)),
        )


def pending_rewards(account: StakeAccount, current_block: int, block_reward: int) -> int:
    """Rewards earned since the last settlement, not yet folded in."""
    staked = account.staked_amount
    if staked == 0:
        return 0
    elapsed = current_block - account.last_settled_block
    if elapsed <= 0:
        return 0
    return elapsed * block_reward * staked


class StakeLedger:
    """Mapping of staker address to StakeAccount."""

    def __init__(self) -> None:
        self._accounts: Dict[str, StakeAccount] = {}

    def get(self, address: str) -> Optional[StakeAccount]:
        return self._accounts.get(address.lower())

    def has_record(self, address: str) -> bool:
        return address.lower() in self._accounts

    def settle(
        self,
        address: str,
        current_block: int,
        block_reward: int,
    ) -> StakeAccount:
        """
        Return a settled working copy of an account.

        The stored record is not touched; callers mutate the copy and hand it
        to :meth:`commit` once every external effect has succeeded. Unknown
        addresses yield a fresh zeroed record.
        """
        address_norm = address.lower()
        existing = self._accounts.get(address_norm)
        draft = existing.clone() if existing else StakeAccount(address=address_norm)

        draft.accrued_rewards += pending_rewards(draft, current_block, block_reward)
        draft.last_settled_block = current_block
        return draft

    def commit(self, account: StakeAccount) -> None:
        self._accounts[account.address] = account
        logger.debug(
            "Stake account committed",
            extra={
                "event": "staking.account_committed",
                "account": account.address[:10],
                "staked_amount": account.staked_amount,
                "accrued_rewards": account.accrued_rewards,
                "last_settled_block": account.last_settled_block,
            },
        )

    def total_staked(self) -> int:
        return sum(account.staked_amount for account in self._accounts.values())

    def __iter__(self) -> Iterator[StakeAccount]:
        return iter(self._accounts.values())

    def __len__(self) -> int:
        return len(self._accounts)

    def to_dict(self) -> Dict[str, Any]:
        return {address: account.to_dict() for address, account in self._accounts.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StakeLedger":
        ledger = cls()
        for item in data.values():
            account = StakeAccount.from_dict(item)
            ledger._accounts[account.address] = account
        return ledger
