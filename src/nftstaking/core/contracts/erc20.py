"""
Reward token ledger (ERC20-style fungible token).

The staking pool's reserve is this token's balance at the pool address, so
funding the pool is an ordinary ``transfer`` to it. Only balance queries,
transfers and owner minting are modelled; there are no allowances.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field

from ..exceptions import ContractExecutionError

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "0" * 40
UINT256_MAX = 2**256 - 1


def derive_contract_address(*parts: str) -> str:
    """Deterministic 20-byte contract address from deployment parameters."""
    digest = hashlib.sha3_256("|".join(parts).encode()).digest()
    return f"0x{digest[-20:].hex()}"


@dataclass
class TokenEvent:
    event_type: str
    from_address: str
    to_address: str
    value: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class RewardToken:
    """Fungible token whose owner mints the reward supply once at deployment."""

    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0
    address: str = ""
    owner: str = ""
    ledger: dict[str, int] = field(default_factory=dict)
    events: list[TokenEvent] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.owner = self.owner.lower()
        if not self.address:
            self.address = derive_contract_address("erc20", self.name, self.symbol, self.owner)

    def balance_of(self, account: str) -> int:
        return self.ledger.get(account.lower(), 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Move ``amount`` from ``sender`` to ``recipient``.

        Raises:
            ContractExecutionError: Zero recipient, out-of-range amount or
                short balance. No balance changes in that case.
        """
        source = sender.lower()
        destination = _checked_recipient(recipient)
        _check_amount(amount)

        available = self.balance_of(source)
        if amount > available:
            raise ContractExecutionError(
                f"ERC20: transfer amount exceeds balance ({amount} > {available})",
                details={"sender": source, "amount": amount, "balance": available},
            )

        self.ledger[source] = available - amount
        self.ledger[destination] = self.balance_of(destination) + amount
        self.events.append(TokenEvent("Transfer", source, destination, amount))

        logger.debug(
            "Reward tokens moved",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": source[:10],
                "to": destination[:10],
                "amount": amount,
            },
        )
        return True

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """Create ``amount`` new tokens for ``to``. Only the owner may mint."""
        if minter.lower() != self.owner:
            raise ContractExecutionError("ERC20: caller is not owner")
        destination = _checked_recipient(to)
        _check_amount(amount)
        if self.total_supply + amount > UINT256_MAX:
            raise ContractExecutionError("ERC20: mint would overflow total supply")

        self.total_supply += amount
        self.ledger[destination] = self.balance_of(destination) + amount
        self.events.append(TokenEvent("Transfer", ZERO_ADDRESS, destination, amount))

        logger.info(
            "Reward tokens minted",
            extra={
                "event": "erc20.mint",
                "token": self.symbol,
                "to": destination[:10],
                "amount": amount,
                "supply": self.total_supply,
            },
        )
        return True

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": self.total_supply,
            "address": self.address,
            "owner": self.owner,
            "ledger": dict(self.ledger),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RewardToken":
        return cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=int(data.get("decimals", 18)),
            total_supply=int(data.get("total_supply", 0)),
            address=data.get("address", ""),
            owner=data.get("owner", ""),
            ledger={holder: int(units) for holder, units in data.get("ledger", {}).items()},
        )


def _checked_recipient(address: str) -> str:
    recipient = address.lower()
    if not recipient or recipient == ZERO_ADDRESS:
        raise ContractExecutionError("ERC20: recipient is zero address")
    return recipient


def _check_amount(amount: int) -> None:
    if amount < 0:
        raise ContractExecutionError("ERC20: amount cannot be negative")
    if amount > UINT256_MAX:
        raise ContractExecutionError("ERC20: amount exceeds uint256")
