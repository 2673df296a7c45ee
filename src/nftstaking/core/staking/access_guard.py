"""
Uniform owner-only and not-paused preconditions for pool operations.
"""

from __future__ import annotations

import logging

from ..exceptions import NotOwnerError, PausedError
from .pool_config import PoolConfig

logger = logging.getLogger(__name__)


class AccessGuard:
    """Checks caller authorization and the pause switch against a PoolConfig."""

    def __init__(self, config: PoolConfig) -> None:
        self.config = config

    def is_owner(self, caller: str) -> bool:
        return caller.lower() == self.config.owner

    def require_owner(self, caller: str) -> None:
        """
        Require caller is the pool owner.

        Raises:
            NotOwnerError: For any other caller
        """
        if not self.is_owner(caller):
            logger.warning(
                "Access denied: caller is not owner",
                extra={
                    "event": "staking.access_denied",
                    "caller": caller.lower()[:10],
                    "owner": self.config.owner[:10],
                },
            )
            raise NotOwnerError(caller.lower(), self.config.owner)

    def require_not_paused(self, operation: str) -> None:
        """
        Require the pool is not paused.

        Applies to every caller, the owner included.

        Raises:
            PausedError: When the pool is paused
        """
        if self.config.paused:
            raise PausedError(operation)
