"""
Collaborator interfaces required by the staking pool.

The pool only depends on these protocols; ``RewardToken`` and
``CollectibleToken`` are the in-process ledgers that satisfy them.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class RewardReserveToken(Protocol):
    """Fungible token holding the reward reserve."""

    def balance_of(self, account: str) -> int:
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Move ``amount`` from sender to recipient; raises atomically if short."""
        ...


@runtime_checkable
class CollectibleRegistry(Protocol):
    """Multi-token ledger custodying the staked collectibles."""

    def balance_of(self, account: str, token_id: int) -> int:
        ...

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        ...

    def safe_transfer_from(
        self,
        caller: str,
        from_addr: str,
        to_addr: str,
        token_id: int,
        amount: int,
        data: bytes = b"",
    ) -> bool:
        ...
