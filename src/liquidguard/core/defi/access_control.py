"""
Access Control and Execution Guards for the Hook Engine.

Provides the guard rails around every state-mutating entry point:
- Owner-gated administration
- Authorized liquidator set
- Global pause flag
- Reentrancy lock with guaranteed release
- Audit trail for all administrative changes
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from ..exceptions import (
    NotOwnerError,
    ProtocolPausedError,
    ReentrancyError,
    UnauthorizedLiquidatorError,
)

logger = logging.getLogger(__name__)


@dataclass
class AccessControl:
    """
    Owner, liquidator authorization, pause and reentrancy state.

    Usage:
        ac = AccessControl(owner="0xowner")
        ac.require_not_paused()
        with ac.non_reentrant():
            perform_mutation()
    """

    owner: str = ""

    # Authorized liquidators (lower-cased)
    liquidators: set[str] = field(default_factory=set)

    paused: bool = False

    # Audit log
    admin_actions: list[dict] = field(default_factory=list)

    # Reentrancy guard
    _locked: bool = False

    def __post_init__(self) -> None:
        """Normalize owner."""
        self.owner = self.owner.lower()

    # ==================== Checks ====================

    def require_owner(self, caller: str) -> None:
        if not self.owner or caller.lower() != self.owner:
            logger.warning(
                "Access denied: caller is not owner",
                extra={
                    "event": "access_control.not_owner",
                    "caller": caller[:10],
                }
            )
            raise NotOwnerError(
                f"Unauthorized: caller {caller[:10]} is not owner",
                {"caller": caller},
            )

    def require_not_paused(self) -> None:
        if self.paused:
            raise ProtocolPausedError("Engine is paused")

    def is_authorized_liquidator(self, address: str) -> bool:
        return address.lower() in self.liquidators

    def require_authorized_liquidator(self, address: str) -> None:
        if not self.is_authorized_liquidator(address):
            logger.warning(
                "Access denied: liquidator not authorized",
                extra={
                    "event": "access_control.unauthorized_liquidator",
                    "liquidator": address[:10],
                }
            )
            raise UnauthorizedLiquidatorError(
                f"Unauthorized liquidator {address[:10]}",
                {"liquidator": address},
            )

    @contextmanager
    def non_reentrant(self) -> Iterator[None]:
        """
        Hold the reentrancy lock for the duration of the block.

        Raises:
            ReentrancyError: If the lock is already held
        """
        if self._locked:
            logger.error(
                "Reentrant call rejected",
                extra={"event": "access_control.reentrancy"},
            )
            raise ReentrancyError("Reentrant call")

        self._locked = True
        try:
            yield
        finally:
            self._locked = False

    @property
    def locked(self) -> bool:
        return self._locked

    # ==================== Administration ====================

    def set_liquidator_authorization(self, caller: str, liquidator: str, authorized: bool) -> bool:
        """Grant or revoke liquidation rights."""
        self.require_owner(caller)

        liquidator_norm = liquidator.lower()
        if authorized:
            self.liquidators.add(liquidator_norm)
        else:
            self.liquidators.discard(liquidator_norm)

        self._log_action(caller, "set_liquidator_authorization", {
            "liquidator": liquidator_norm,
            "authorized": authorized,
        })

        logger.info(
            "Liquidator authorization updated",
            extra={
                "event": "access_control.liquidator_updated",
                "liquidator": liquidator_norm[:10],
                "authorized": authorized,
            }
        )

        return True

    def pause(self, caller: str) -> bool:
        self.require_owner(caller)
        self.paused = True
        self._log_action(caller, "pause", {})

        logger.warning(
            "Engine paused",
            extra={"event": "access_control.paused", "owner": caller[:10]},
        )
        return True

    def unpause(self, caller: str) -> bool:
        self.require_owner(caller)
        self.paused = False
        self._log_action(caller, "unpause", {})

        logger.info(
            "Engine unpaused",
            extra={"event": "access_control.unpaused", "owner": caller[:10]},
        )
        return True

    def transfer_ownership(self, caller: str, new_owner: str) -> bool:
        self.require_owner(caller)
        previous = self.owner
        self.owner = new_owner.lower()
        self._log_action(caller, "transfer_ownership", {
            "previous_owner": previous,
            "new_owner": self.owner,
        })
        return True

    def _log_action(self, actor: str, action: str, details: dict) -> None:
        self.admin_actions.append({
            "action": action,
            "actor": actor.lower(),
            "details": details,
            "timestamp": time.time(),
        })
