"""
Bounded tick history per (pool, protocol).

Ticks are kept in a fixed-capacity ring buffer: appending beyond capacity
evicts the oldest tick in O(1). Every append refreshes the history's
volatility score.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..config import DEFAULT_CONFIG, EngineConfig
from .volatility import VolatilityEstimator

if TYPE_CHECKING:
    from .state import EngineState

logger = logging.getLogger(__name__)


@dataclass
class TickHistory:
    """Recent ticks for one (pool, protocol) pair, oldest first."""

    ticks: deque[int] = field(default_factory=lambda: deque(maxlen=DEFAULT_CONFIG.history_capacity))
    last_update_timestamp: int = 0
    volatility_score: int = DEFAULT_CONFIG.default_volatility
    average_tick_movement: int = 0

    def to_dict(self) -> dict:
        return {
            "ticks": list(self.ticks),
            "last_update_timestamp": self.last_update_timestamp,
            "volatility_score": self.volatility_score,
            "average_tick_movement": self.average_tick_movement,
        }


class TickHistoryTracker:
    """Appends observed ticks to the engine's tick histories."""

    def __init__(
        self,
        state: EngineState,
        estimator: VolatilityEstimator,
        config: EngineConfig = DEFAULT_CONFIG,
    ):
        self.state = state
        self.estimator = estimator
        self.config = config

    def record(self, pool_id: str, protocol_id: str, tick: int, timestamp: int) -> TickHistory:
        """Append a tick, evicting the oldest beyond capacity."""
        key = (pool_id, protocol_id.lower())
        history = self.state.tick_histories.get(key)
        if history is None:
            history = TickHistory(
                ticks=deque(maxlen=self.config.history_capacity),
                volatility_score=self.config.default_volatility,
            )
            self.state.tick_histories[key] = history

        history.ticks.append(tick)
        history.last_update_timestamp = timestamp
        self.estimator.refresh(history)

        logger.debug(
            "Tick recorded",
            extra={
                "event": "tick_history.recorded",
                "pool": pool_id[:10],
                "protocol_id": protocol_id[:10],
                "tick": tick,
                "samples": len(history.ticks),
                "volatility": history.volatility_score,
            }
        )

        return history

    def get_history(self, pool_id: str, protocol_id: str) -> TickHistory | None:
        return self.state.tick_histories.get((pool_id, protocol_id.lower()))
