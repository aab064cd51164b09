"""
Hook engine exception hierarchy for LiquidGuard.

Provides typed exceptions for engine operations so hosts can tell a
misconfigured adapter apart from a paused engine or a failed liquidation.
"""

from __future__ import annotations

from typing import Any


class HookExecutionError(Exception):
    """Base exception for all hook engine errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ==================== Configuration Errors ====================


class ConfigurationError(HookExecutionError):
    """Raised when engine or adapter configuration is missing or invalid."""
    pass


class InvalidAdapterError(ConfigurationError):
    """Raised when a protocol adapter cannot be classified or is unusable.

    Liquidation is refused rather than guessed for such adapters.
    """
    pass


class InvalidIntentError(ConfigurationError):
    """Raised when encoded liquidation intent data cannot be decoded."""
    pass


class PositionNotFoundError(ConfigurationError):
    """Raised when an operation targets a position record that does not exist."""
    pass


# ==================== Authorization Errors ====================


class UnauthorizedError(HookExecutionError):
    """Raised when the caller lacks permission for a state-mutating call."""
    pass


class NotOwnerError(UnauthorizedError):
    """Raised when an administrative call does not come from the owner."""
    pass


class UnauthorizedLiquidatorError(UnauthorizedError):
    """Raised when a liquidation would be dispatched for an unauthorized caller."""
    pass


# ==================== Availability Errors ====================


class ProtocolPausedError(HookExecutionError):
    """Raised by every mutating entry point while the engine is paused."""
    pass


class ReentrancyError(HookExecutionError):
    """Raised when a mutating entry point is re-entered by a nested call."""
    pass


# ==================== Range Errors ====================


class RangeError(HookExecutionError):
    """Raised when a computed or supplied tick range is invalid.

    Examples: lower tick not below upper tick, ticks outside global bounds.
    """
    pass


# ==================== External Call Errors ====================


class LiquidationDispatchError(HookExecutionError):
    """Raised when a protocol liquidation call fails.

    Always propagated: a failed dispatch fails the whole triggering invocation.
    """
    pass
