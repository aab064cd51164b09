"""
Protocol capability resolution.

Lending protocols do not declare a type tag, so an adapter is classified by
probing calls that only one interface family exposes. A failed probe is
evidence of "not this shape", never an engine fault.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from .interfaces import ZERO_ADDRESS, ExternalCaller

if TYPE_CHECKING:
    from ..metrics import HookMetrics

logger = logging.getLogger(__name__)


class ProtocolShape(Enum):
    """Known lending-protocol interface families."""
    UNKNOWN = "unknown"
    DETAILED_HEALTH = "detailed_health"  # continuous health factor
    BINARY_LIQUIDATABLE = "binary_liquidatable"  # liquidatable/collateralized flags


# Read-only calls only the corresponding family exposes
DETAILED_HEALTH_PROBE = "get_user_account_data"
BINARY_LIQUIDATABLE_PROBE = "is_liquidatable"


class CapabilityResolver:
    """
    Classifies adapter addresses by probing.

    Positive classifications are cached per address for the resolver's
    lifetime. UNKNOWN is never cached, so an adapter that becomes reachable
    later is classified on its next use.
    """

    def __init__(self, caller: ExternalCaller, metrics: HookMetrics | None = None):
        self.caller = caller
        self.metrics = metrics
        self._cache: dict[str, ProtocolShape] = {}

    def classify(self, adapter_address: str) -> ProtocolShape:
        """Return the shape implemented at adapter_address."""
        if not adapter_address:
            return ProtocolShape.UNKNOWN

        address = adapter_address.lower()
        cached = self._cache.get(address)
        if cached is not None:
            return cached

        shape = self._probe(address)
        if shape is not ProtocolShape.UNKNOWN:
            self._cache[address] = shape

        logger.debug(
            "Adapter classified",
            extra={
                "event": "capability.classified",
                "adapter": address[:10],
                "shape": shape.value,
            }
        )
        return shape

    def _probe(self, address: str) -> ProtocolShape:
        if self.caller.try_call(address, DETAILED_HEALTH_PROBE, ZERO_ADDRESS).success:
            return ProtocolShape.DETAILED_HEALTH

        if self.caller.try_call(address, BINARY_LIQUIDATABLE_PROBE, ZERO_ADDRESS).success:
            return ProtocolShape.BINARY_LIQUIDATABLE

        logger.warning(
            "Adapter matches no known protocol shape",
            extra={
                "event": "capability.unknown_shape",
                "adapter": address[:10],
            }
        )
        if self.metrics is not None:
            self.metrics.probe_failures_total.inc()
        return ProtocolShape.UNKNOWN
