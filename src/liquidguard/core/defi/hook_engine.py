"""
Liquidation and Range-Rebalance Hook Engine.

Attached to a concentrated-liquidity pool, the engine is invoked by the host
around every trade:

- before_swap: if the trade carries a liquidation intent, evaluate the
  borrower's health on the target lending protocol and dispatch the
  liquidation when it is below the adapter's threshold
- after_swap: record the pool tick, refresh volatility, reposition the
  engine's LP liquidity for the intent's protocol, and re-center the
  initiator's auto-rebalance position when needed

Security features:
- Owner-gated administration
- Authorized liquidator set
- Global pause on every mutating entry point (pause/unpause excepted)
- Reentrancy protection
- All-or-nothing invocations: state is restored and buffered events are
  discarded when any step fails
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from .. import config as settings
from ..config import DEFAULT_CONFIG, EngineConfig
from ..metrics import HookMetrics
from .access_control import AccessControl
from .adapter_registry import AdapterConfig, AdapterRegistry
from .capability import CapabilityResolver
from .events import EventBus, LiquidationExecuted
from .health import HealthEvaluator
from .interfaces import (
    ZERO_DELTA,
    BalanceDelta,
    ContractDirectory,
    ExternalCaller,
    HookAck,
    LiquidationIntent,
    PoolKey,
    SwapParams,
    decode_hook_data,
)
from .liquidation import LiquidationTrigger
from .positions import PositionBook, PositionRecord
from .range_optimizer import PoolPosition, RangeOptimizer
from .state import EngineState
from .tick_history import TickHistory, TickHistoryTracker
from .volatility import VolatilityEstimator

logger = logging.getLogger(__name__)


class HookEngine:
    """
    Pool hook combining liquidation triggering and range rebalancing.

    Usage:
        engine = HookEngine(owner="0xowner", pool_manager=pool_manager)
        engine.set_adapter("0xowner", "aave", "0xpool", True, 10**18)
        engine.set_liquidator_authorization("0xowner", "0xkeeper", True)
        ack, delta = engine.before_swap("0xkeeper", key, params, intent.encode())
    """

    def __init__(
        self,
        owner: str,
        pool_manager: Any,
        directory: ContractDirectory | None = None,
        address: str = "0xliquidguard",
        config: EngineConfig = DEFAULT_CONFIG,
        metrics: HookMetrics | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            owner: Administrator identity
            pool_manager: Host pool, implementing PoolStateReader and LiquidityManager
            directory: Address book for lending protocol adapters
            address: Identity of the engine itself (absorber on shape-B protocols)
            config: Calibration constants
            metrics: Optional Prometheus collector (ignored when
                LIQUIDGUARD_METRICS_ENABLED=0)
            clock: Source of invocation timestamps
        """
        self.address = address.lower()
        self.pool_manager = pool_manager
        self.config = config
        self.metrics = metrics if settings.METRICS_ENABLED else None
        self.clock = clock

        self.state = EngineState()
        self.events = EventBus()
        self.access_control = AccessControl(owner=owner)
        self.directory = directory or ContractDirectory()
        self.caller = ExternalCaller(self.directory)

        self.registry = AdapterRegistry(self.state, self.events)
        self.resolver = CapabilityResolver(self.caller, self.metrics)
        self.evaluator = HealthEvaluator(self.registry, self.resolver, self.caller, config)
        self.trigger = LiquidationTrigger(
            self.registry,
            self.evaluator,
            self.access_control,
            self.caller,
            self.events,
            self.address,
            self.metrics,
        )
        self.estimator = VolatilityEstimator(self.state, config)
        self.tracker = TickHistoryTracker(self.state, self.estimator, config)
        self.optimizer = RangeOptimizer(
            self.state, pool_manager, pool_manager, self.events, config, self.metrics
        )
        self.positions = PositionBook(self.state)

    # ==================== Hooks ====================

    def before_swap(
        self,
        sender: str,
        key: PoolKey,
        params: SwapParams,
        hook_data: bytes | str | LiquidationIntent | None = None,
    ) -> tuple[HookAck, BalanceDelta]:
        """
        Pre-trade hook.

        The trade initiator acts as the liquidator of any intent it carries.

        Raises:
            ProtocolPausedError: If the engine is paused
            ReentrancyError: On nested entry
            InvalidIntentError: If hook_data is malformed
            UnauthorizedLiquidatorError: If a liquidation would execute for an
                unauthorized initiator
            LiquidationDispatchError: If the lending protocol call fails
        """
        with self._invocation("before_swap"):
            intent = decode_hook_data(hook_data)
            if intent is not None:
                self.trigger.execute(intent, sender)

        return HookAck.BEFORE_SWAP, ZERO_DELTA

    def after_swap(
        self,
        sender: str,
        key: PoolKey,
        params: SwapParams,
        delta: BalanceDelta,
        hook_data: bytes | str | LiquidationIntent | None = None,
    ) -> tuple[HookAck, int]:
        """
        Post-trade hook.

        The LP path runs only when hook_data carries an intent whose adapter is
        enabled. The initiator's auto-rebalance position is checked regardless.

        Raises:
            ProtocolPausedError: If the engine is paused
            ReentrancyError: On nested entry
            InvalidIntentError: If hook_data is malformed
            RangeError: If a computed range is invalid
        """
        with self._invocation("after_swap"):
            intent = decode_hook_data(hook_data)
            _, current_tick = self.pool_manager.get_slot0(key.pool_id)
            timestamp = int(self.clock())

            if intent is not None:
                adapter = self.registry.get_adapter(intent.protocol_id)
                if adapter.enabled:
                    self._rebalance_liquidity(key, adapter, current_tick, delta, timestamp)

            self._rebalance_user_position(key, sender, current_tick)

        return HookAck.AFTER_SWAP, 0

    def _rebalance_liquidity(
        self,
        key: PoolKey,
        adapter: AdapterConfig,
        current_tick: int,
        delta: BalanceDelta,
        timestamp: int,
    ) -> None:
        pool_id = key.pool_id
        self.tracker.record(pool_id, adapter.protocol_id, current_tick, timestamp)

        volatility = self._pool_volatility(key, current_tick)
        lower, upper = self.optimizer.optimal_range(
            current_tick, adapter.liquidation_threshold, volatility
        )

        position = self.state.pool_positions.get((pool_id, adapter.protocol_id))
        if self.optimizer.should_rebalance(position, lower, upper, current_tick):
            self.optimizer.execute(key, adapter.protocol_id, lower, upper, delta, timestamp)

    def _rebalance_user_position(self, key: PoolKey, owner: str, current_tick: int) -> None:
        position = self.positions.get(key.pool_id, owner)
        if position is None or not position.auto_rebalance_enabled:
            return

        if self.optimizer.should_rebalance_position(position, current_tick):
            volatility = self._pool_volatility(key, current_tick)
            self.optimizer.rebalance_position(key.pool_id, position, current_tick, volatility)

    def _pool_volatility(self, key: PoolKey, current_tick: int) -> int:
        volatility = self.estimator.pool_volatility(key.pool_id, key.fee, current_tick)
        if self.metrics is not None:
            self.metrics.pool_volatility.labels(pool=key.pool_id[:10]).set(volatility)
        return volatility

    # ==================== Administration ====================

    def set_adapter(
        self,
        caller: str,
        protocol_id: str,
        adapter_address: str,
        enabled: bool,
        liquidation_threshold: int,
    ) -> AdapterConfig:
        """Create or overwrite a protocol adapter (owner only)."""
        with self._invocation("set_adapter"):
            self.access_control.require_owner(caller)
            return self.registry.set_adapter(
                protocol_id, adapter_address, enabled, liquidation_threshold
            )

    def set_liquidator_authorization(self, caller: str, liquidator: str, authorized: bool) -> bool:
        """Grant or revoke liquidation rights (owner only)."""
        with self._invocation("set_liquidator_authorization"):
            return self.access_control.set_liquidator_authorization(caller, liquidator, authorized)

    def pause(self, caller: str) -> bool:
        """Halt every mutating entry point. Reads keep working."""
        return self.access_control.pause(caller)

    def unpause(self, caller: str) -> bool:
        return self.access_control.unpause(caller)

    # ==================== User Positions ====================

    def enable_auto_rebalance(
        self,
        caller: str,
        key: PoolKey,
        tick_lower: int,
        tick_upper: int,
        liquidity: int,
    ) -> PositionRecord:
        """Opt the caller's position in this pool into auto-rebalance."""
        with self._invocation("enable_auto_rebalance"):
            return self.positions.enable_auto_rebalance(
                key.pool_id, caller, tick_lower, tick_upper, liquidity
            )

    def disable_auto_rebalance(self, caller: str, key: PoolKey) -> PositionRecord:
        """Opt the caller's position in this pool out of auto-rebalance."""
        with self._invocation("disable_auto_rebalance"):
            return self.positions.disable_auto_rebalance(key.pool_id, caller)

    # ==================== Reads ====================

    def get_adapter(self, protocol_id: str) -> AdapterConfig:
        return self.registry.get_adapter(protocol_id)

    def list_adapters(self) -> list[AdapterConfig]:
        return self.registry.list_adapters()

    def get_position(self, key: PoolKey, owner: str) -> PositionRecord | None:
        return self.positions.get(key.pool_id, owner)

    def get_pool_position(self, key: PoolKey, protocol_id: str) -> PoolPosition | None:
        return self.state.pool_positions.get((key.pool_id, protocol_id.lower()))

    def get_tick_history(self, key: PoolKey, protocol_id: str) -> TickHistory | None:
        return self.tracker.get_history(key.pool_id, protocol_id)

    def is_authorized_liquidator(self, address: str) -> bool:
        return self.access_control.is_authorized_liquidator(address)

    def get_volatility(self, key: PoolKey, protocol_id: str | None = None) -> int:
        """
        Volatility score in [0, 100].

        Per protocol when protocol_id is given, otherwise the pool-level score
        at the pool's current tick.
        """
        if protocol_id is not None:
            return self.estimator.estimate(key.pool_id, protocol_id)
        _, current_tick = self.pool_manager.get_slot0(key.pool_id)
        return self.estimator.pool_volatility(key.pool_id, key.fee, current_tick)

    def check_liquidation(self, protocol_id: str, borrower: str) -> bool:
        """Would a liquidation of borrower execute right now?"""
        return self.trigger.should_liquidate(protocol_id, borrower)

    def get_health(self, protocol_id: str, borrower: str) -> int:
        """Normalized health metric (WAD); MAX_UINT256 when unreadable."""
        return self.evaluator.evaluate(protocol_id, borrower)

    def get_recent_liquidations(self, limit: int = 10) -> list[dict[str, Any]]:
        liquidations = [e for e in self.events.history if isinstance(e, LiquidationExecuted)]
        return [e.to_dict() for e in liquidations[-limit:]]

    # ==================== Invocation Scope ====================

    @contextmanager
    def _invocation(self, name: str) -> Iterator[None]:
        """
        Guarded, all-or-nothing scope for a mutating entry point.

        Pause check, then reentrancy lock, then snapshot of the store with
        buffered events. On any exception the store is restored, buffered
        events are dropped and the exception propagates. Committed events
        reach observers once the lock is released.
        """
        self.access_control.require_not_paused()

        with self.access_control.non_reentrant():
            timer = self.metrics.time_hook(name) if self.metrics is not None else _null_scope()
            with timer:
                snapshot = self.state.snapshot()
                self.events.begin()
                try:
                    yield
                except Exception as e:
                    self.state.restore(snapshot)
                    self.events.rollback()
                    logger.warning(
                        "Invocation reverted: %s - %s",
                        type(e).__name__,
                        str(e),
                        extra={
                            "event": "hook_engine.reverted",
                            "entry_point": name,
                            "error_type": type(e).__name__,
                        }
                    )
                    raise

        # Observers run after the lock is released and may call back in
        self.events.commit()


@contextmanager
def _null_scope() -> Iterator[None]:
    yield
