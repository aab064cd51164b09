"""
Protocol adapter registry.

Maps a protocol identifier to the adapter contract that fronts it, whether it
is enabled, and the health threshold below which its borrowers may be
liquidated. Thresholds are WAD scaled: 1.0 == 1e18 == health exactly at the
threshold.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..exceptions import ConfigurationError
from .events import AdapterUpdated, EventBus

if TYPE_CHECKING:
    from .state import EngineState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdapterConfig:
    """Configuration of one lending-protocol adapter."""

    protocol_id: str = ""
    adapter_address: str = ""
    enabled: bool = False
    liquidation_threshold: int = 0


class AdapterRegistry:
    """Keyed table of AdapterConfig entries held in the engine state."""

    def __init__(self, state: EngineState, events: EventBus):
        self.state = state
        self.events = events

    def set_adapter(
        self,
        protocol_id: str,
        adapter_address: str,
        enabled: bool,
        liquidation_threshold: int,
    ) -> AdapterConfig:
        """
        Create or overwrite the adapter for a protocol.

        Ownership is checked by the engine before this is called.

        Raises:
            ConfigurationError: If the threshold is negative or ids are empty
        """
        if not protocol_id:
            raise ConfigurationError("protocol_id is required")
        if not isinstance(liquidation_threshold, int) or liquidation_threshold < 0:
            raise ConfigurationError(
                "liquidation_threshold must be a non-negative WAD integer",
                {"liquidation_threshold": liquidation_threshold},
            )

        config = AdapterConfig(
            protocol_id=protocol_id.lower(),
            adapter_address=adapter_address.lower(),
            enabled=bool(enabled),
            liquidation_threshold=liquidation_threshold,
        )
        self.state.adapters[config.protocol_id] = config

        self.events.emit(AdapterUpdated(
            protocol_id=config.protocol_id,
            adapter_address=config.adapter_address,
            enabled=config.enabled,
            liquidation_threshold=config.liquidation_threshold,
        ))

        logger.info(
            "Protocol adapter updated",
            extra={
                "event": "registry.adapter_updated",
                "protocol_id": config.protocol_id[:10],
                "adapter": config.adapter_address[:10],
                "enabled": config.enabled,
                "threshold": config.liquidation_threshold,
            }
        )

        return config

    def get_adapter(self, protocol_id: str) -> AdapterConfig:
        """Return the adapter for a protocol, or a disabled zero-value config."""
        return self.state.adapters.get(protocol_id.lower(), AdapterConfig())

    def list_adapters(self) -> list[AdapterConfig]:
        return list(self.state.adapters.values())
