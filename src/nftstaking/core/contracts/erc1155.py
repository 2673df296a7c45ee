"""
Collectible ledger (ERC1155-style multi-token).

Custodies the collectibles users lock into the staking pool. Each token id
is a collectible class held in bulk; the pool moves units in and out through
``safe_transfer_from`` once a holder has approved it as operator.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from ..exceptions import ContractExecutionError
from .erc20 import ZERO_ADDRESS, derive_contract_address

logger = logging.getLogger(__name__)


@dataclass
class MultiTokenEvent:
    """TransferSingle, TransferBatch or ApprovalForAll record."""

    event_type: str
    operator: str
    from_address: str
    to_address: str
    ids: list[int]
    values: list[int]
    timestamp: float = field(default_factory=time.time)


@dataclass
class CollectibleToken:
    """
    Multi-token collectible contract.

    ``holdings`` maps token id to holder to units; ``operators`` maps a
    holder to the operators allowed to move all of that holder's units.
    Only ``owner`` may mint.
    """

    name: str = ""
    address: str = ""
    owner: str = ""
    holdings: dict[int, dict[str, int]] = field(default_factory=dict)
    operators: dict[str, dict[str, bool]] = field(default_factory=dict)
    minted: dict[int, int] = field(default_factory=dict)
    events: list[MultiTokenEvent] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.owner = self.owner.lower()
        if not self.address:
            self.address = derive_contract_address("erc1155", self.name, self.owner)

    # ==================== View Functions ====================

    def balance_of(self, account: str, token_id: int) -> int:
        return self.holdings.get(token_id, {}).get(account.lower(), 0)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        """Whether ``operator`` may move every unit ``owner`` holds."""
        return self.operators.get(owner.lower(), {}).get(operator.lower(), False)

    def supply_of(self, token_id: int) -> int:
        return self.minted.get(token_id, 0)

    # ==================== State-Changing Functions ====================

    def set_approval_for_all(self, caller: str, operator: str, approved: bool) -> bool:
        """
        Grant or revoke operator rights over all of caller's units.

        Raises:
            ContractExecutionError: Caller names itself as operator
        """
        holder = caller.lower()
        operator_addr = operator.lower()
        if holder == operator_addr:
            raise ContractExecutionError("ERC1155: setting approval status for self")

        self.operators.setdefault(holder, {})[operator_addr] = bool(approved)
        self._record("ApprovalForAll", holder, holder, operator_addr, [], [])
        return True

    def safe_transfer_from(
        self,
        caller: str,
        from_addr: str,
        to_addr: str,
        token_id: int,
        amount: int,
        data: bytes = b"",
    ) -> bool:
        """
        Move ``amount`` units of ``token_id`` between holders.

        The caller must be the source holder or one of its approved
        operators. Nothing moves unless every check passes.

        Raises:
            ContractExecutionError: Zero destination, negative amount,
                unauthorized caller or short balance
        """
        operator = caller.lower()
        source = from_addr.lower()
        destination = to_addr.lower()

        if not destination or destination == ZERO_ADDRESS:
            raise ContractExecutionError("ERC1155: transfer to zero address")
        if amount < 0:
            raise ContractExecutionError("ERC1155: amount cannot be negative")
        if operator != source and not self.is_approved_for_all(source, operator):
            raise ContractExecutionError(
                "ERC1155: caller is not owner nor approved",
                details={"caller": operator, "from": source},
            )

        held = self.balance_of(source, token_id)
        if held < amount:
            raise ContractExecutionError(
                f"ERC1155: insufficient balance for transfer ({amount} > {held})",
                details={"token_id": token_id, "amount": amount, "balance": held},
            )

        self._adjust(source, token_id, -amount)
        self._adjust(destination, token_id, amount)
        self._record("TransferSingle", operator, source, destination, [token_id], [amount])

        logger.debug(
            "Collectibles moved",
            extra={
                "event": "erc1155.transfer",
                "token_id": token_id,
                "amount": amount,
                "from": source[:10],
                "to": destination[:10],
            },
        )
        return True

    def mint(self, caller: str, to: str, token_id: int, amount: int, data: bytes = b"") -> bool:
        """Mint units of a single collectible id (owner only)."""
        return self.mint_batch(caller, to, [token_id], [amount], data)

    def mint_batch(
        self,
        caller: str,
        to: str,
        token_ids: list[int],
        amounts: list[int],
        data: bytes = b"",
    ) -> bool:
        """
        Mint several collectible ids to one recipient (owner only).

        All ids and amounts are validated before any balance changes.

        Raises:
            ContractExecutionError: Not owner, length mismatch, zero
                recipient or non-positive amount
        """
        if caller.lower() != self.owner:
            raise ContractExecutionError("ERC1155: caller is not owner")
        if len(token_ids) != len(amounts):
            raise ContractExecutionError("ERC1155: ids and amounts length mismatch")

        recipient = to.lower()
        if not recipient or recipient == ZERO_ADDRESS:
            raise ContractExecutionError("ERC1155: mint to zero address")
        if any(amount <= 0 for amount in amounts):
            raise ContractExecutionError("ERC1155: mint amount must be positive")

        for token_id, amount in zip(token_ids, amounts):
            self._adjust(recipient, token_id, amount)
            self.minted[token_id] = self.supply_of(token_id) + amount

        kind = "TransferSingle" if len(token_ids) == 1 else "TransferBatch"
        self._record(kind, caller.lower(), ZERO_ADDRESS, recipient, list(token_ids), list(amounts))

        logger.info(
            "Collectibles minted",
            extra={
                "event": "erc1155.mint",
                "to": recipient[:10],
                "token_ids": list(token_ids),
                "amounts": list(amounts),
            },
        )
        return True

    # ==================== Helpers ====================

    def _adjust(self, account: str, token_id: int, delta: int) -> None:
        per_id = self.holdings.setdefault(token_id, {})
        per_id[account] = per_id.get(account, 0) + delta

    def _record(
        self,
        event_type: str,
        operator: str,
        from_address: str,
        to_address: str,
        ids: list[int],
        values: list[int],
    ) -> None:
        self.events.append(
            MultiTokenEvent(event_type, operator, from_address, to_address, ids, values)
        )

    # ==================== Serialization ====================

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "owner": self.owner,
            "holdings": {str(token_id): dict(per_id) for token_id, per_id in self.holdings.items()},
            "operators": {holder: dict(ops) for holder, ops in self.operators.items()},
            "minted": {str(token_id): supply for token_id, supply in self.minted.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CollectibleToken":
        return cls(
            name=data.get("name", ""),
            address=data.get("address", ""),
            owner=data.get("owner", ""),
            holdings={
                int(token_id): {holder: int(units) for holder, units in per_id.items()}
                for token_id, per_id in data.get("holdings", {}).items()
            },
            operators={holder: dict(ops) for holder, ops in data.get("operators", {}).items()},
            minted={int(token_id): int(supply) for token_id, supply in data.get("minted", {}).items()},
        )
