"""
User position records for auto-rebalance.

Users opt a position in or out of auto-rebalance. Records are keyed by a
hash of (pool, owner) and are never deleted; opting out clears the flag.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..exceptions import PositionNotFoundError, RangeError
from .tick_math import validate_range

if TYPE_CHECKING:
    from .state import EngineState

logger = logging.getLogger(__name__)


@dataclass
class PositionRecord:
    """
    Range position maintained on behalf of a user.

    Invariant: tick_lower < tick_upper whenever liquidity > 0.
    """

    owner: str = ""
    tick_lower: int = 0
    tick_upper: int = 0
    liquidity: int = 0
    auto_rebalance_enabled: bool = False

    def is_in_range(self, current_tick: int) -> bool:
        """Check if current price is within position's range."""
        return self.tick_lower <= current_tick < self.tick_upper


def position_key(pool_id: str, owner: str) -> str:
    """Deterministic record key for (pool, owner)."""
    digest = hashlib.sha3_256(f"position:{pool_id}:{owner.lower()}".encode()).digest()
    return f"0x{digest.hex()}"


class PositionBook:
    """Opt-in/opt-out management of PositionRecords."""

    def __init__(self, state: EngineState):
        self.state = state

    def enable_auto_rebalance(
        self,
        pool_id: str,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        liquidity: int,
    ) -> PositionRecord:
        """
        Create or overwrite the caller's record with auto-rebalance on.

        Raises:
            RangeError: If the range is inverted or outside global bounds
        """
        validate_range(tick_lower, tick_upper)
        if liquidity < 0:
            raise RangeError("liquidity must be non-negative", {"liquidity": liquidity})

        record = PositionRecord(
            owner=owner.lower(),
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            liquidity=liquidity,
            auto_rebalance_enabled=True,
        )
        self.state.positions[position_key(pool_id, owner)] = record

        logger.info(
            "Auto-rebalance enabled",
            extra={
                "event": "positions.auto_rebalance_enabled",
                "pool": pool_id[:10],
                "owner": owner[:10],
                "range": f"[{tick_lower}, {tick_upper}]",
                "liquidity": liquidity,
            }
        )

        return record

    def disable_auto_rebalance(self, pool_id: str, owner: str) -> PositionRecord:
        """
        Clear the auto-rebalance flag of the caller's record.

        Raises:
            PositionNotFoundError: If the caller has no record for the pool
        """
        record = self.get(pool_id, owner)
        if record is None:
            raise PositionNotFoundError(
                f"No position for {owner[:10]} in pool {pool_id[:10]}",
                {"pool_id": pool_id, "owner": owner},
            )

        record.auto_rebalance_enabled = False

        logger.info(
            "Auto-rebalance disabled",
            extra={
                "event": "positions.auto_rebalance_disabled",
                "pool": pool_id[:10],
                "owner": owner[:10],
            }
        )

        return record

    def get(self, pool_id: str, owner: str) -> PositionRecord | None:
        return self.state.positions.get(position_key(pool_id, owner))
