"""
Liquidation trigger.

Decides whether a liquidation intent should execute and dispatches it
through the protocol-specific interface:

- Shape A: liquidation_call(collateral, debt, borrower, debt_to_cover, receive_a_token)
- Shape B: absorb(engine, [borrower]), then buy_collateral(...) when both a
  collateral asset and debt_to_cover are given

The decision (health below the adapter's threshold) is a read-only query
open to anyone. Only the dispatch requires an authorized liquidator.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, NamedTuple

from ..exceptions import (
    HookExecutionError,
    InvalidAdapterError,
    LiquidationDispatchError,
)
from .access_control import AccessControl
from .adapter_registry import AdapterRegistry
from .capability import ProtocolShape
from .events import EventBus, LiquidationExecuted
from .health import HealthEvaluator
from .interfaces import ZERO_ADDRESS, ExternalCaller, LiquidationIntent

if TYPE_CHECKING:
    from ..metrics import HookMetrics

logger = logging.getLogger(__name__)


class SettledAmounts(NamedTuple):
    """Amounts realized by a liquidation, as reported by the protocol."""

    debt_repaid: int = 0
    collateral_received: int = 0


class LiquidationTrigger:
    """Evaluates and executes liquidation intents."""

    def __init__(
        self,
        registry: AdapterRegistry,
        evaluator: HealthEvaluator,
        access_control: AccessControl,
        caller: ExternalCaller,
        events: EventBus,
        engine_address: str,
        metrics: HookMetrics | None = None,
    ):
        self.registry = registry
        self.evaluator = evaluator
        self.access_control = access_control
        self.caller = caller
        self.events = events
        self.engine_address = engine_address
        self.metrics = metrics

    def should_liquidate(self, protocol_id: str, borrower: str) -> bool:
        """Would a liquidation of borrower on protocol_id execute? (read only)"""
        adapter = self.registry.get_adapter(protocol_id)
        if not adapter.enabled:
            return False
        return self.evaluator.evaluate(protocol_id, borrower) < adapter.liquidation_threshold

    def execute(self, intent: LiquidationIntent, liquidator: str) -> LiquidationExecuted | None:
        """
        Execute a liquidation intent presented by liquidator.

        Returns:
            The emitted LiquidationExecuted event, or None when the adapter is
            disabled or the borrower is above the threshold

        Raises:
            UnauthorizedLiquidatorError: If liquidator is not authorized
            InvalidAdapterError: If the adapter matches no known shape
            LiquidationDispatchError: If the protocol call fails
        """
        adapter = self.registry.get_adapter(intent.protocol_id)
        if not adapter.enabled:
            self._record_skip("adapter_disabled", intent)
            return None

        shape, health = self.evaluator.assess(intent.protocol_id, intent.borrower)
        if health >= adapter.liquidation_threshold:
            self._record_skip("healthy", intent)
            return None

        self.access_control.require_authorized_liquidator(liquidator)

        if shape is ProtocolShape.DETAILED_HEALTH:
            settled = self._liquidate_detailed(adapter.adapter_address, intent)
        elif shape is ProtocolShape.BINARY_LIQUIDATABLE:
            settled = self._liquidate_binary(adapter.adapter_address, intent, liquidator)
        else:
            raise InvalidAdapterError(
                f"Adapter for protocol {intent.protocol_id[:10]} matches no known shape",
                {"protocol_id": intent.protocol_id, "adapter": adapter.adapter_address},
            )

        event = LiquidationExecuted(
            liquidator=liquidator.lower(),
            borrower=intent.borrower.lower(),
            protocol_id=adapter.protocol_id,
            collateral_asset=intent.collateral_asset,
            debt_asset=intent.debt_asset,
            debt_to_cover=intent.debt_to_cover,
            debt_repaid=settled.debt_repaid,
            collateral_received=settled.collateral_received,
        )
        self.events.emit(event)

        if self.metrics is not None:
            self.metrics.liquidations_total.labels(protocol_shape=shape.value).inc()

        logger.info(
            "Liquidation executed",
            extra={
                "event": "liquidation.executed",
                "protocol_id": adapter.protocol_id[:10],
                "borrower": intent.borrower[:10],
                "liquidator": liquidator[:10],
                "health": health,
                "threshold": adapter.liquidation_threshold,
                "debt_to_cover": intent.debt_to_cover,
                "debt_repaid": settled.debt_repaid,
            }
        )

        return event

    # ==================== Dispatch ====================

    def _liquidate_detailed(self, adapter_address: str, intent: LiquidationIntent) -> SettledAmounts:
        before = self.caller.try_call(adapter_address, "get_user_account_data", intent.borrower)

        self._dispatch(
            adapter_address,
            "liquidation_call",
            intent.collateral_asset,
            intent.debt_asset,
            intent.borrower,
            intent.debt_to_cover,
            intent.receive_a_token,
        )

        after = self.caller.try_call(adapter_address, "get_user_account_data", intent.borrower)
        if not (before.success and after.success):
            return SettledAmounts()

        # Base-currency deltas of the borrower's account
        return SettledAmounts(
            debt_repaid=max(0, _account_field(before.value, "total_debt_base", 1)
                            - _account_field(after.value, "total_debt_base", 1)),
            collateral_received=max(0, _account_field(before.value, "total_collateral_base", 0)
                                    - _account_field(after.value, "total_collateral_base", 0)),
        )

    def _liquidate_binary(
        self,
        adapter_address: str,
        intent: LiquidationIntent,
        liquidator: str,
    ) -> SettledAmounts:
        self._dispatch(adapter_address, "absorb", self.engine_address, [intent.borrower])

        if intent.collateral_asset in ("", ZERO_ADDRESS) or intent.debt_to_cover == 0:
            return SettledAmounts()

        received = self._dispatch(
            adapter_address,
            "buy_collateral",
            intent.collateral_asset,
            0,
            intent.debt_to_cover,
            liquidator,
        )
        return SettledAmounts(
            debt_repaid=intent.debt_to_cover,
            collateral_received=received if isinstance(received, int) else 0,
        )

    def _dispatch(self, adapter_address: str, method: str, *args: Any) -> Any:
        try:
            return self.caller.call(adapter_address, method, *args)
        except HookExecutionError:
            raise
        except Exception as e:
            logger.error(
                "Liquidation dispatch failed: %s - %s",
                type(e).__name__,
                str(e),
                extra={
                    "event": "liquidation.dispatch_failed",
                    "adapter": adapter_address[:10],
                    "method": method,
                    "error_type": type(e).__name__,
                }
            )
            raise LiquidationDispatchError(
                f"{method} failed on adapter {adapter_address[:10]}",
                {"adapter": adapter_address, "method": method},
            ) from e

    def _record_skip(self, reason: str, intent: LiquidationIntent) -> None:
        if self.metrics is not None:
            self.metrics.liquidations_skipped_total.labels(reason=reason).inc()

        logger.debug(
            "Liquidation not executed",
            extra={
                "event": "liquidation.skipped",
                "reason": reason,
                "protocol_id": intent.protocol_id[:10],
                "borrower": intent.borrower[:10],
            }
        )


def _account_field(account_data: Any, name: str, index: int) -> int:
    value = getattr(account_data, name, None)
    if value is None:
        try:
            value = account_data[index]
        except (TypeError, IndexError, KeyError):
            return 0
    return value if isinstance(value, int) else 0
