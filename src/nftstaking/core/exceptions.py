"""
Exception hierarchy for the NFT staking pool.

Provides typed exceptions for staking operations so callers can react to
each failure precisely instead of parsing revert strings. Every staking
failure carries a closed ``StakingErrorKind`` tag plus the offending values
in ``details``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class StakingErrorKind(str, Enum):
    """Closed set of staking failure kinds."""

    NOT_OWNER = "NOT_OWNER"
    PAUSED = "PAUSED"
    INVALID_COLLECTIBLE = "INVALID_COLLECTIBLE"
    INSUFFICIENT_STAKE = "INSUFFICIENT_STAKE"
    INSUFFICIENT_FUNDING = "INSUFFICIENT_FUNDING"
    NO_STAKE_RECORD = "NO_STAKE_RECORD"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    COLLECTIBLE_TRANSFER = "COLLECTIBLE_TRANSFER"


class NftStakingError(Exception):
    """Base exception for everything raised by this package.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried once the
            condition is resolved
    """

    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable


# ==================== Collaborator Errors ====================


class ContractExecutionError(NftStakingError):
    """Raised when a token contract call reverts (balance, approval, pause)."""
    pass


# ==================== Staking Errors ====================


class StakingError(NftStakingError):
    """Raised when a staking pool operation is rejected.

    No pool state is modified when a StakingError is raised.
    """

    kind: StakingErrorKind

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "details": dict(self.details),
        }


class NotOwnerError(StakingError):
    """Raised when a non-owner calls an owner-only operation."""

    kind = StakingErrorKind.NOT_OWNER

    def __init__(self, caller: str, owner: str) -> None:
        super().__init__(
            f"NotOwner: {caller} is not the pool owner",
            details={"caller": caller, "owner": owner},
        )
        self.caller = caller
        self.owner = owner


class PausedError(StakingError):
    """Raised when stake/unstake/claim is called on a paused pool."""

    kind = StakingErrorKind.PAUSED
    recoverable = True

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"ContractPaused: {operation} is disabled while the pool is paused",
            details={"operation": operation},
        )
        self.operation = operation


class InvalidCollectibleError(StakingError):
    """Raised when the collectible id does not match the pool key token."""

    kind = StakingErrorKind.INVALID_COLLECTIBLE

    def __init__(self, requested: int, eligible: int) -> None:
        super().__init__(
            f"InvalidCollectible: token id {requested} is not eligible "
            f"(pool key token is {eligible})",
            details={"requested": requested, "eligible": eligible},
        )
        self.requested = requested
        self.eligible = eligible


class InsufficientStakeError(StakingError):
    """Raised when unstaking more units than the account has locked."""

    kind = StakingErrorKind.INSUFFICIENT_STAKE

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            f"InsufficientStake: requested {requested}, staked {available}",
            details={"requested": requested, "available": available},
        )
        self.requested = requested
        self.available = available


class InsufficientFundingError(StakingError):
    """Raised when the reward reserve is exhausted at stake or claim time."""

    kind = StakingErrorKind.INSUFFICIENT_FUNDING
    recoverable = True  # Can retry after the reserve is topped up

    def __init__(self, reserve_balance: int) -> None:
        super().__init__(
            "InsufficientFunding: no rewards left",
            details={"reserve_balance": reserve_balance},
        )
        self.reserve_balance = reserve_balance


class NoStakeRecordError(StakingError):
    """Raised when an account that never staked tries to claim."""

    kind = StakingErrorKind.NO_STAKE_RECORD

    def __init__(self, account: str) -> None:
        super().__init__(
            "NoStakeRecord: stake to start earning rewards",
            details={"account": account},
        )
        self.account = account


class InvalidArgumentError(StakingError):
    """Raised when an amount, rate, id or address argument is malformed."""

    kind = StakingErrorKind.INVALID_ARGUMENT

    def __init__(self, field: str, value: Any, reason: str) -> None:
        super().__init__(
            f"InvalidArgument: {field} {reason}",
            details={"field": field, "value": value},
        )
        self.field = field
        self.value = value


class CollectibleTransferError(StakingError):
    """Raised when collectible custody cannot be moved (balance or approval)."""

    kind = StakingErrorKind.COLLECTIBLE_TRANSFER

    def __init__(self, reason: str, **context: Any) -> None:
        super().__init__(
            f"CollectibleTransfer: {reason}",
            details={"reason": reason, **context},
        )
        self.reason = reason


# ==================== Storage & Configuration Errors ====================


class StorageError(NftStakingError):
    """Raised when pool state cannot be read from or written to disk."""
    pass


class CorruptedDataError(StorageError):
    """Raised when stored pool state fails its integrity check."""
    recoverable = False


class ConfigurationError(NftStakingError):
    """Raised when required configuration is missing or invalid."""
    recoverable = False


def get_error_context(exc: Exception) -> Dict[str, Any]:
    """Extract error context from an exception for logging.

    Args:
        exc: The exception to extract context from

    Returns:
        Dictionary containing error type, message, and any additional details
    """
    context: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, NftStakingError):
        context["recoverable"] = exc.recoverable
        if exc.details:
            context["details"] = exc.details

    if isinstance(exc, StakingError):
        context["kind"] = exc.kind.value

    return context
