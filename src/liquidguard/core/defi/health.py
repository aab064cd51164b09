"""
Protocol-agnostic health evaluation.

Normalizes the risk data of heterogeneous lending protocols into one WAD
scaled health metric. The metric is only ever compared against the same
protocol's configured liquidation threshold, never across protocols.

Shape A protocols report a continuous health factor that is used directly.
Shape B protocols only answer "is liquidatable" and "is borrow
collateralized", which map onto three fixed levels:

    liquidatable            -> liquidatable_health (0.95e18)
    not fully collateralized -> undercollateralized_health (0.99e18)
    otherwise               -> healthy_health (1.2e18)

An adapter that cannot be classified, or whose reads fail, reports
MAX_UINT256 so it is never liquidated.
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple

from ..config import DEFAULT_CONFIG, EngineConfig
from .adapter_registry import AdapterRegistry
from .capability import CapabilityResolver, ProtocolShape
from .interfaces import ExternalCaller
from .safe_math import MAX_UINT256

logger = logging.getLogger(__name__)


class HealthAssessment(NamedTuple):
    """Health metric together with the shape it was read through."""

    shape: ProtocolShape
    health: int


class HealthEvaluator:
    """Reads and normalizes borrower health for a protocol."""

    def __init__(
        self,
        registry: AdapterRegistry,
        resolver: CapabilityResolver,
        caller: ExternalCaller,
        config: EngineConfig = DEFAULT_CONFIG,
    ):
        self.registry = registry
        self.resolver = resolver
        self.caller = caller
        self.config = config

    def evaluate(self, protocol_id: str, borrower: str) -> int:
        """Return the normalized health metric of borrower on protocol_id."""
        return self.assess(protocol_id, borrower).health

    def assess(self, protocol_id: str, borrower: str) -> HealthAssessment:
        """
        Classify the protocol's adapter and read the borrower's health.

        Does not check whether the adapter is enabled.
        """
        adapter = self.registry.get_adapter(protocol_id)
        shape = self.resolver.classify(adapter.adapter_address)

        if shape is ProtocolShape.DETAILED_HEALTH:
            health = self._read_health_factor(adapter.adapter_address, borrower)
        elif shape is ProtocolShape.BINARY_LIQUIDATABLE:
            health = self._read_binary_health(adapter.adapter_address, borrower)
        else:
            health = MAX_UINT256

        logger.debug(
            "Borrower health evaluated",
            extra={
                "event": "health.evaluated",
                "protocol_id": protocol_id[:10],
                "borrower": borrower[:10],
                "shape": shape.value,
                "health": health,
            }
        )

        return HealthAssessment(shape, health)

    def _read_health_factor(self, adapter_address: str, borrower: str) -> int:
        result = self.caller.try_call(adapter_address, "get_user_account_data", borrower)
        if not result.success:
            return MAX_UINT256

        health = _extract_health_factor(result.value)
        if health is None:
            logger.warning(
                "Account data has no usable health factor",
                extra={
                    "event": "health.malformed_account_data",
                    "adapter": adapter_address[:10],
                }
            )
            return MAX_UINT256
        return health

    def _read_binary_health(self, adapter_address: str, borrower: str) -> int:
        liquidatable = self.caller.try_call(adapter_address, "is_liquidatable", borrower)
        if not liquidatable.success:
            return MAX_UINT256
        if liquidatable.value:
            return self.config.liquidatable_health

        collateralized = self.caller.try_call(
            adapter_address, "is_borrow_collateralized", borrower
        )
        if not collateralized.success:
            return MAX_UINT256
        if not collateralized.value:
            return self.config.undercollateralized_health

        return self.config.healthy_health


def _extract_health_factor(account_data: Any) -> int | None:
    """Pull the health factor from an AccountData or plain 6-tuple."""
    health = getattr(account_data, "health_factor", None)
    if health is None:
        try:
            health = account_data[5]
        except (TypeError, IndexError, KeyError):
            return None

    if not isinstance(health, int) or isinstance(health, bool) or health < 0:
        return None
    return health
