"""
Tick-range optimization and repositioning.

Two independent policies live here:

LP optimizer (per pool and protocol, PoolPosition):
- Optimal range is asymmetric around the current tick, sized by the
  protocol's liquidation threshold and widened by volatility
- Rebalances when the position is empty, the price left the range, or a
  bound drifted more than 5% of the range width from optimal

User auto-rebalance (per pool and owner, PositionRecord):
- Rebalances when the price is outside the range or within 10% of the
  range width from either boundary
- New range is symmetric with a volatility-sized half width

Security features:
- Range validation before any liquidity is moved
- Tick spacing alignment and global bound clamping
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..config import DEFAULT_CONFIG, WAD, EngineConfig
from ..exceptions import RangeError
from .events import EventBus, PositionRepositioned, TickRangeUpdated
from .interfaces import BalanceDelta, LiquidityManager, PoolKey, PoolStateReader
from .positions import PositionRecord
from .tick_math import (
    MAX_TICK,
    MIN_TICK,
    align_tick_down,
    get_liquidity_for_amounts,
    max_usable_tick,
    min_usable_tick,
    tick_to_sqrt_price,
    validate_range,
)

if TYPE_CHECKING:
    from ..metrics import HookMetrics
    from .state import EngineState

logger = logging.getLogger(__name__)

BPS = 10000


@dataclass
class PoolPosition:
    """Liquidity the engine provides for one (pool, protocol) pair."""

    liquidity: int = 0
    lower_tick: int = 0
    upper_tick: int = 0
    last_update_timestamp: int = 0

    # Bookkeeping only; reset on every rebalance
    fees_earned0: int = 0
    fees_earned1: int = 0


class RangeOptimizer:
    """Computes target ranges and moves liquidity into them."""

    def __init__(
        self,
        state: EngineState,
        pool_reader: PoolStateReader,
        liquidity_manager: LiquidityManager,
        events: EventBus,
        config: EngineConfig = DEFAULT_CONFIG,
        metrics: HookMetrics | None = None,
    ):
        self.state = state
        self.pool_reader = pool_reader
        self.liquidity_manager = liquidity_manager
        self.events = events
        self.config = config
        self.metrics = metrics

    # ==================== LP Optimizer ====================

    def optimal_range(
        self,
        current_tick: int,
        liquidation_threshold: int,
        volatility: int | None = None,
    ) -> tuple[int, int]:
        """
        Target (lower, upper) range for the LP position.

        Offsets scale with the threshold (in ticks per unit of threshold,
        lower and upper factors differ), are widened by (100 + volatility)%
        when a volatility score is given, and are never smaller than one
        tick spacing. Bounds are floored to the tick spacing.

        Raises:
            RangeError: If current_tick is outside the global tick bounds
        """
        if current_tick < MIN_TICK or current_tick > MAX_TICK:
            raise RangeError(f"Tick {current_tick} out of range")

        spacing = self.config.tick_spacing
        threshold_bps = liquidation_threshold * BPS // WAD

        lower_offset = threshold_bps * self.config.lower_range_factor // BPS
        upper_offset = threshold_bps * self.config.upper_range_factor // BPS

        if volatility is not None:
            widen = 100 + max(0, min(volatility, 100))
            lower_offset = lower_offset * widen // 100
            upper_offset = upper_offset * widen // 100

        lower_offset = max(lower_offset, spacing)
        upper_offset = max(upper_offset, spacing)

        lower = max(align_tick_down(current_tick - lower_offset, spacing), min_usable_tick(spacing))
        upper = min(align_tick_down(current_tick + upper_offset, spacing), max_usable_tick(spacing))

        # Only reachable when the lower bound was clamped at the bottom of the grid
        if upper <= lower:
            upper = lower + spacing

        return lower, upper

    def should_rebalance(
        self,
        position: PoolPosition | None,
        optimal_lower: int,
        optimal_upper: int,
        current_tick: int,
    ) -> bool:
        """Pure hysteresis decision for the LP position."""
        if position is None or position.liquidity == 0:
            return True

        # Ticks past the usable grid are measured from the nearest usable tick
        spacing = self.config.tick_spacing
        tick = max(min_usable_tick(spacing), min(current_tick, max_usable_tick(spacing)))

        if tick < position.lower_tick or tick > position.upper_tick:
            return True

        width = position.upper_tick - position.lower_tick
        tolerance = width * self.config.rebalance_threshold_bps // BPS

        return (
            abs(position.lower_tick - optimal_lower) > tolerance
            or abs(position.upper_tick - optimal_upper) > tolerance
        )

    def execute(
        self,
        key: PoolKey,
        protocol_id: str,
        new_lower: int,
        new_upper: int,
        realized_delta: BalanceDelta,
        timestamp: int,
    ) -> PoolPosition:
        """
        Move the (pool, protocol) position into [new_lower, new_upper].

        Withdraws all existing liquidity, re-deposits liquidity backed by the
        absolute token amounts of realized_delta, and resets fee counters.

        Raises:
            RangeError: If the new range is invalid (nothing is changed)
        """
        validate_range(new_lower, new_upper)

        pool_id = key.pool_id
        position_key = (pool_id, protocol_id.lower())
        old = self.state.pool_positions.get(position_key) or PoolPosition()

        if old.liquidity > 0:
            self.liquidity_manager.modify_liquidity(
                key, old.lower_tick, old.upper_tick, -old.liquidity
            )

        sqrt_price, _ = self.pool_reader.get_slot0(pool_id)
        liquidity = get_liquidity_for_amounts(
            sqrt_price,
            tick_to_sqrt_price(new_lower),
            tick_to_sqrt_price(new_upper),
            abs(realized_delta.amount0),
            abs(realized_delta.amount1),
        )

        if liquidity > 0:
            self.liquidity_manager.modify_liquidity(key, new_lower, new_upper, liquidity)

        position = PoolPosition(
            liquidity=liquidity,
            lower_tick=new_lower,
            upper_tick=new_upper,
            last_update_timestamp=timestamp,
        )
        self.state.pool_positions[position_key] = position

        self.events.emit(PositionRepositioned(
            pool_id=pool_id,
            protocol_id=protocol_id.lower(),
            old_lower=old.lower_tick,
            old_upper=old.upper_tick,
            new_lower=new_lower,
            new_upper=new_upper,
            liquidity=liquidity,
        ))

        if self.metrics is not None:
            self.metrics.rebalances_total.inc()

        logger.info(
            "LP position repositioned",
            extra={
                "event": "range_optimizer.repositioned",
                "pool": pool_id[:10],
                "protocol_id": protocol_id[:10],
                "old_range": f"[{old.lower_tick}, {old.upper_tick}]",
                "new_range": f"[{new_lower}, {new_upper}]",
                "liquidity": liquidity,
            }
        )

        return position

    # ==================== User Auto-Rebalance ====================

    def should_rebalance_position(self, position: PositionRecord, current_tick: int) -> bool:
        """Outside the range, or within the proximity buffer of a boundary."""
        if not position.is_in_range(current_tick):
            return True

        width = position.tick_upper - position.tick_lower
        buffer = width * self.config.boundary_proximity_bps // BPS

        return (
            current_tick - position.tick_lower < buffer
            or position.tick_upper - current_tick < buffer
        )

    def rebalance_position(
        self,
        pool_id: str,
        position: PositionRecord,
        current_tick: int,
        volatility: int,
    ) -> PositionRecord:
        """
        Re-center a user position around current_tick, in place. A range that
        comes out unchanged (pinned at the grid edge) emits nothing.

        Raises:
            RangeError: If the recentered range is degenerate (record untouched)
        """
        half_width = max(
            self.config.min_half_width,
            min(volatility * self.config.half_width_per_volatility_point, self.config.max_half_width),
        )
        spacing = self.config.tick_spacing

        new_lower = max(align_tick_down(current_tick - half_width, spacing), min_usable_tick(spacing))
        new_upper = min(align_tick_down(current_tick + half_width, spacing), max_usable_tick(spacing))
        validate_range(new_lower, new_upper)

        old_lower, old_upper = position.tick_lower, position.tick_upper
        if (new_lower, new_upper) == (old_lower, old_upper):
            return position

        position.tick_lower = new_lower
        position.tick_upper = new_upper

        self.events.emit(TickRangeUpdated(
            pool_id=pool_id,
            owner=position.owner,
            old_lower=old_lower,
            old_upper=old_upper,
            new_lower=new_lower,
            new_upper=new_upper,
        ))

        if self.metrics is not None:
            self.metrics.position_range_updates_total.inc()

        logger.info(
            "User position range updated",
            extra={
                "event": "range_optimizer.position_rebalanced",
                "pool": pool_id[:10],
                "owner": position.owner[:10],
                "old_range": f"[{old_lower}, {old_upper}]",
                "new_range": f"[{new_lower}, {new_upper}]",
                "volatility": volatility,
            }
        )

        return position
