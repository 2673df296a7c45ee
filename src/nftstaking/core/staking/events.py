"""
Structured notifications emitted by the staking pool.

Events are appended only after an operation has committed, then broadcast to
subscribed observers (API websockets, indexers, audit trails).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..config import EVENT_HISTORY_LIMIT
from ..exceptions import get_error_context

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    STAKED = "Staked"
    UNSTAKED = "Unstaked"
    REWARDS_CLAIMED = "RewardsClaimed"
    KEY_TOKEN_CHANGED = "KeyTokenChanged"
    PAUSE_CHANGED = "PauseChanged"
    BLOCK_REWARD_CHANGED = "BlockRewardChanged"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"


@dataclass
class StakingEvent:
    """A single pool notification."""

    event_type: EventType
    block_number: int
    account: str = ""
    amount: int = 0
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "block_number": self.block_number,
            "account": self.account,
            "amount": self.amount,
            "data": dict(self.data),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StakingEvent":
        return cls(
            event_type=EventType(data["event_type"]),
            block_number=int(data["block_number"]),
            account=data.get("account", ""),
            amount=int(data.get("amount", 0)),
            data=dict(data.get("data", {})),
            timestamp=float(data.get("timestamp", 0.0)),
        )


EventObserver = Callable[[StakingEvent], None]


class EventLog:
    """
    Append-only event history with observer fan-out.

    At most ``max_events`` records are retained, oldest dropped first, so the
    persisted chain state stays bounded. ``None`` keeps everything.
    """

    def __init__(
        self,
        events: Optional[List[StakingEvent]] = None,
        max_events: Optional[int] = EVENT_HISTORY_LIMIT,
    ) -> None:
        if max_events is not None and max_events <= 0:
            raise ValueError("max_events must be positive")
        self.max_events = max_events
        self.events: List[StakingEvent] = []
        self._observers: List[EventObserver] = []
        for event in events or []:
            self._retain(event)

    def subscribe(self, observer: EventObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: EventObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def emit(self, event: StakingEvent) -> StakingEvent:
        """
        Record a committed event and notify observers.

        An observer failure is logged and never undoes the committed
        operation that produced the event.
        """
        self._retain(event)
        logger.info(
            "Staking event",
            extra={
                "event": f"staking.event.{event.event_type.value}",
                "account": event.account[:10],
                "amount": event.amount,
                "block_number": event.block_number,
            },
        )
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception as e:
                # The operation behind the event has already committed
                logger.error(
                    "Event observer failed",
                    extra={
                        "event": "staking.observer_error",
                        "event_type": event.event_type.value,
                        **get_error_context(e),
                    },
                )
        return event

    def _retain(self, event: StakingEvent) -> None:
        self.events.append(event)
        if self.max_events is not None and len(self.events) > self.max_events:
            del self.events[: len(self.events) - self.max_events]

    def filter(
        self,
        event_type: Optional[EventType] = None,
        account: Optional[str] = None,
    ) -> List[StakingEvent]:
        account_norm = account.lower() if account else None
        return [
            event
            for event in self.events
            if (event_type is None or event.event_type == event_type)
            and (account_norm is None or event.account == account_norm)
        ]

    def latest(self, count: int = 10) -> List[StakingEvent]:
        if count <= 0:
            return []
        return self.events[-count:]

    def __len__(self) -> int:
        return len(self.events)

    def to_dict(self) -> Dict[str, Any]:
        return {"events": [event.to_dict() for event in self.events]}

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], max_events: Optional[int] = EVENT_HISTORY_LIMIT
    ) -> "EventLog":
        return cls(
            [StakingEvent.from_dict(item) for item in data.get("events", [])],
            max_events=max_events,
        )
