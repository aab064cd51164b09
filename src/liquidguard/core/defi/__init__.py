"""
LiquidGuard hook engine.

This module provides the pool hook and its components:
- Hook Engine: Pre/post-trade entry points, administration and reads
- Adapter Registry: Per-protocol liquidation configuration
- Capability Resolver: Lending-protocol interface classification
- Health Evaluator: Normalized WAD health metric
- Liquidation Trigger: Threshold decision and protocol dispatch
- Tick History / Volatility: Bounded tick buffers and volatility scores
- Range Optimizer: LP repositioning and user auto-rebalance
"""

from .access_control import AccessControl
from .adapter_registry import AdapterConfig, AdapterRegistry
from .capability import CapabilityResolver, ProtocolShape
from .events import (
    AdapterUpdated,
    EngineEvent,
    EventBus,
    LiquidationExecuted,
    PositionRepositioned,
    TickRangeUpdated,
)
from .health import HealthEvaluator
from .hook_engine import HookEngine
from .interfaces import (
    ZERO_ADDRESS,
    ZERO_DELTA,
    AccountData,
    BalanceDelta,
    ContractDirectory,
    ExternalCaller,
    HookAck,
    LiquidationIntent,
    PoolKey,
    SwapParams,
)
from .liquidation import LiquidationTrigger
from .positions import PositionBook, PositionRecord
from .range_optimizer import PoolPosition, RangeOptimizer
from .state import EngineState
from .tick_history import TickHistory, TickHistoryTracker
from .volatility import VolatilityEstimator

__all__ = [
    # Engine
    "HookEngine",
    "EngineState",
    "AccessControl",
    # Adapters and health
    "AdapterConfig",
    "AdapterRegistry",
    "CapabilityResolver",
    "ProtocolShape",
    "HealthEvaluator",
    "LiquidationTrigger",
    # Ranges
    "TickHistory",
    "TickHistoryTracker",
    "VolatilityEstimator",
    "PoolPosition",
    "PositionRecord",
    "PositionBook",
    "RangeOptimizer",
    # Wire types
    "ZERO_ADDRESS",
    "ZERO_DELTA",
    "AccountData",
    "BalanceDelta",
    "ContractDirectory",
    "ExternalCaller",
    "HookAck",
    "LiquidationIntent",
    "PoolKey",
    "SwapParams",
    # Events
    "EngineEvent",
    "EventBus",
    "AdapterUpdated",
    "LiquidationExecuted",
    "PositionRepositioned",
    "TickRangeUpdated",
]
