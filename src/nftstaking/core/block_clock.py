"""
Block height source for reward accrual.

The staking pool never reads wall-clock time. It asks an injected clock for
the current block height, which keeps settlement deterministic and lets
tests fast-forward a simulated chain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class BlockClock(Protocol):
    """Capability returning the current (monotonically increasing) block height."""

    def current_block(self) -> int:
        ...


@dataclass
class ManualBlockClock:
    """
    Block clock advanced explicitly by its owner.

    Used by the local auto-mining chain (one block per submitted transaction)
    and by tests. The height never moves backwards.
    """

    height: int = 0

    def __post_init__(self) -> None:
        if self.height < 0:
            raise ValueError("block height cannot be negative")

    def current_block(self) -> int:
        return self.height

    def advance(self, blocks: int = 1) -> int:
        """
        Mine ``blocks`` empty blocks.

        Args:
            blocks: Number of blocks to advance (0 is allowed)

        Returns:
            The new block height
        """
        if blocks < 0:
            raise ValueError("cannot advance by a negative number of blocks")
        self.height += blocks
        logger.debug(
            "Block clock advanced",
            extra={"event": "clock.advance", "blocks": blocks, "height": self.height},
        )
        return self.height
