"""
Engine notifications.

Structured events emitted by the hook engine. Events raised inside a
mutating invocation are buffered and only delivered to observers once the
invocation succeeds; a failed invocation discards them along with its state
changes. Nothing is retried or queued beyond that.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineEvent:
    """Base class for engine notifications."""

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.name, **asdict(self)}


@dataclass(frozen=True)
class AdapterUpdated(EngineEvent):
    protocol_id: str
    adapter_address: str
    enabled: bool
    liquidation_threshold: int


@dataclass(frozen=True)
class LiquidationExecuted(EngineEvent):
    liquidator: str
    borrower: str
    protocol_id: str
    collateral_asset: str
    debt_asset: str
    debt_to_cover: int
    debt_repaid: int
    collateral_received: int


@dataclass(frozen=True)
class PositionRepositioned(EngineEvent):
    """LP optimizer moved the (pool, protocol) position to a new range."""

    pool_id: str
    protocol_id: str
    old_lower: int
    old_upper: int
    new_lower: int
    new_upper: int
    liquidity: int


@dataclass(frozen=True)
class TickRangeUpdated(EngineEvent):
    """A user position's range was moved by auto-rebalance."""

    pool_id: str
    owner: str
    old_lower: int
    old_upper: int
    new_lower: int
    new_upper: int


Observer = Callable[[EngineEvent], None]


@dataclass
class EventBus:
    """
    Delivers engine events to subscribed observers.

    Usage:
        bus = EventBus()
        bus.subscribe(print)
        bus.begin()
        bus.emit(event)
        bus.commit()  # observers see the event here
    """

    observers: list[Observer] = field(default_factory=list)

    # Delivered events, oldest first
    history: list[EngineEvent] = field(default_factory=list)
    max_history_size: int = 1000

    _pending: list[EngineEvent] | None = None

    def subscribe(self, observer: Observer) -> None:
        self.observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self.observers:
            self.observers.remove(observer)

    def begin(self) -> None:
        """Start buffering events for an invocation."""
        self._pending = []

    def emit(self, event: EngineEvent) -> None:
        if self._pending is not None:
            self._pending.append(event)
        else:
            self._deliver(event)

    def commit(self) -> None:
        """Deliver buffered events."""
        pending, self._pending = self._pending or [], None
        for event in pending:
            self._deliver(event)

    def rollback(self) -> None:
        """Discard buffered events."""
        discarded = len(self._pending or [])
        self._pending = None
        if discarded:
            logger.debug(
                "Discarded events from failed invocation",
                extra={"event": "events.rolled_back", "count": discarded},
            )

    def get_recent_events(self, limit: int = 10) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self.history[-limit:]]

    def _deliver(self, event: EngineEvent) -> None:
        self.history.append(event)
        if len(self.history) > self.max_history_size:
            del self.history[: len(self.history) - self.max_history_size]

        logger.info(
            "Engine event emitted",
            extra={
                "event": f"events.{event.name}",
                "timestamp": time.time(),
            }
        )

        for observer in list(self.observers):
            try:
                observer(event)
            except Exception as e:
                logger.error(
                    "Event observer failed: %s - %s",
                    type(e).__name__,
                    str(e),
                    extra={
                        "event": "events.observer_failed",
                        "engine_event": event.name,
                        "error_type": type(e).__name__,
                    }
                )
