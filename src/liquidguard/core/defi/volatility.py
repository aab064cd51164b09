"""
Volatility estimation from tick history.

Score in [0, 100] derived from the population standard deviation of tick
movements over the most recent window:

    movement[i] = tick[i] - tick[i-1]
    std_dev     = isqrt(mean((movement - mean(movement)) ** 2))
    score       = 100 if std_dev >= 200 else std_dev * 100 // 200

All arithmetic is integer; the mean truncates toward zero.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, NamedTuple

from ..config import DEFAULT_CONFIG, EngineConfig
from .safe_math import div_trunc, isqrt

if TYPE_CHECKING:
    from .state import EngineState
    from .tick_history import TickHistory

logger = logging.getLogger(__name__)

MAX_SCORE = 100

# Fee tier (hundredths of a bip) -> baseline score, highest tier first
FEE_TIER_BANDS = (
    (10000, 80),
    (3000, 50),
    (500, 30),
    (0, 15),
)

# |tick| above threshold -> percentage uplift, largest threshold first
TICK_MAGNITUDE_BANDS = (
    (500_000, 20),
    (100_000, 10),
)


class VolatilityStats(NamedTuple):
    score: int
    std_dev: int
    average_tick_movement: int


class VolatilityEstimator:
    """Computes per-protocol and pool-level volatility scores."""

    def __init__(self, state: EngineState, config: EngineConfig = DEFAULT_CONFIG):
        self.state = state
        self.config = config

    def compute(self, ticks: Iterable[int]) -> VolatilityStats:
        """
        Compute volatility statistics for a chronological tick sequence.

        Sequences shorter than min_volatility_samples score the default.
        """
        samples = list(ticks)
        if len(samples) < self.config.min_volatility_samples:
            return VolatilityStats(self.config.default_volatility, 0, 0)

        window = samples[-min(self.config.volatility_window, len(samples)):]
        movements = [current - previous for previous, current in zip(window, window[1:])]
        count = len(movements)

        mean = div_trunc(sum(movements), count)
        variance = sum((movement - mean) ** 2 for movement in movements) // count
        std_dev = isqrt(variance)

        cap = self.config.stddev_cap_ticks
        score = MAX_SCORE if std_dev >= cap else std_dev * MAX_SCORE // cap

        average_movement = sum(abs(movement) for movement in movements) // count

        return VolatilityStats(score, std_dev, average_movement)

    def estimate(self, pool_id: str, protocol_id: str) -> int:
        """Volatility score for one (pool, protocol) history."""
        history = self.state.tick_histories.get((pool_id, protocol_id.lower()))
        if history is None:
            return self.config.default_volatility
        return self.compute(history.ticks).score

    def refresh(self, history: TickHistory) -> None:
        """Recompute the derived fields of a history after an append."""
        stats = self.compute(history.ticks)
        history.volatility_score = stats.score
        history.average_tick_movement = stats.average_tick_movement

    def fee_tier_volatility(self, fee: int, current_tick: int) -> int:
        """
        Baseline volatility for a pool with no recorded history.

        Higher fee tiers assume more volatile pairs; extreme prices add a
        10% or 20% uplift.
        """
        score = next(
            (base for floor, base in FEE_TIER_BANDS if fee >= floor),
            FEE_TIER_BANDS[-1][1],
        )

        magnitude = abs(current_tick)
        for threshold, uplift in TICK_MAGNITUDE_BANDS:
            if magnitude > threshold:
                score = score * (100 + uplift) // 100
                break

        return min(score, MAX_SCORE)

    def pool_volatility(self, pool_id: str, fee: int, current_tick: int) -> int:
        """
        Pool-level volatility used to size ranges.

        The maximum over every protocol with enough history; the default when
        history exists but none is sufficient; the fee-tier heuristic when the
        pool has no history at all.
        """
        histories = [
            history
            for (history_pool, _), history in self.state.tick_histories.items()
            if history_pool == pool_id
        ]
        if not histories:
            score = self.fee_tier_volatility(fee, current_tick)
            logger.debug(
                "No tick history for pool, using fee tier volatility",
                extra={
                    "event": "volatility.fee_tier_fallback",
                    "pool": pool_id[:10],
                    "fee": fee,
                    "score": score,
                }
            )
            return score

        scores = [
            self.compute(history.ticks).score
            for history in histories
            if len(history.ticks) >= self.config.min_volatility_samples
        ]
        if not scores:
            return self.config.default_volatility

        return max(scores)
