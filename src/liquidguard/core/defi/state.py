"""
Engine-owned state store.

All per-(pool, protocol) structures live here and are owned exclusively by
one engine instance. Components hold a reference to the store and never to
each other's internals.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields

from .adapter_registry import AdapterConfig
from .positions import PositionRecord
from .range_optimizer import PoolPosition
from .tick_history import TickHistory


@dataclass
class EngineState:
    """Mutable store of one engine instance."""

    # protocol_id -> adapter
    adapters: dict[str, AdapterConfig] = field(default_factory=dict)

    # (pool_id, protocol_id) -> history / LP position
    tick_histories: dict[tuple[str, str], TickHistory] = field(default_factory=dict)
    pool_positions: dict[tuple[str, str], PoolPosition] = field(default_factory=dict)

    # position_key(pool_id, owner) -> record
    positions: dict[str, PositionRecord] = field(default_factory=dict)

    def snapshot(self) -> EngineState:
        """Deep copy of the store, for rollback."""
        return copy.deepcopy(self)

    def restore(self, snapshot: EngineState) -> None:
        """Restore contents in place so existing references stay valid."""
        for f in fields(self):
            setattr(self, f.name, getattr(snapshot, f.name))
