"""
Collaborator interfaces and wire types for the hook engine.

The engine never owns the pool manager or the lending protocols. It talks to
them through the typing Protocols below, resolving protocol adapters by
address through a ContractDirectory. Calls into adapters go through
ExternalCaller, which offers a result-returning form for best-effort probes
and a raising form for calls whose failure must surface.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, NamedTuple, Protocol

from ..exceptions import InvalidIntentError

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "0" * 40


class HookAck(Enum):
    """Acknowledgement returned to the host from each hook."""
    BEFORE_SWAP = "beforeSwap"
    AFTER_SWAP = "afterSwap"


# ==================== Pool Types ====================

@dataclass(frozen=True)
class PoolKey:
    """Identity of a pool as supplied by the host."""

    currency0: str
    currency1: str
    fee: int  # hundredths of a bip (3000 = 0.30%)
    tick_spacing: int
    hooks: str = ZERO_ADDRESS

    @property
    def pool_id(self) -> str:
        """Deterministic pool identifier derived from the key."""
        digest = hashlib.sha3_256(
            f"pool:{self.currency0.lower()}:{self.currency1.lower()}:"
            f"{self.fee}:{self.tick_spacing}:{self.hooks.lower()}".encode()
        ).digest()
        return f"0x{digest.hex()}"


@dataclass(frozen=True)
class SwapParams:
    """Trade parameters forwarded by the host (informational only)."""

    zero_for_one: bool
    amount_specified: int
    sqrt_price_limit_x96: int = 0


@dataclass(frozen=True)
class BalanceDelta:
    """Signed token amounts; negative values leave the caller's balance."""

    amount0: int = 0
    amount1: int = 0


ZERO_DELTA = BalanceDelta(0, 0)


# ==================== Liquidation Intent ====================

@dataclass(frozen=True)
class LiquidationIntent:
    """Liquidation request carried in hook data."""

    protocol_id: str
    borrower: str
    collateral_asset: str = ZERO_ADDRESS
    debt_asset: str = ZERO_ADDRESS
    debt_to_cover: int = 0
    receive_a_token: bool = False

    def encode(self) -> bytes:
        """Canonical hook-data encoding (sorted-key JSON, UTF-8)."""
        return json.dumps(asdict(self), sort_keys=True, separators=(",", ":")).encode("utf-8")

    @classmethod
    def decode(cls, data: bytes | str) -> LiquidationIntent:
        """
        Decode hook data produced by encode().

        Raises:
            InvalidIntentError: If the payload is malformed
        """
        try:
            payload = json.loads(data)
        except (TypeError, ValueError, UnicodeDecodeError) as exc:
            raise InvalidIntentError("Hook data is not a valid liquidation intent") from exc

        if not isinstance(payload, dict):
            raise InvalidIntentError("Hook data must encode an object")

        for key in ("protocol_id", "borrower"):
            if not isinstance(payload.get(key), str) or not payload[key]:
                raise InvalidIntentError(f"Liquidation intent missing '{key}'")

        unknown = set(payload) - set(cls.__dataclass_fields__)
        if unknown:
            raise InvalidIntentError(
                "Unknown liquidation intent fields",
                {"fields": sorted(unknown)},
            )

        debt_to_cover = payload.get("debt_to_cover", 0)
        if not isinstance(debt_to_cover, int) or isinstance(debt_to_cover, bool) or debt_to_cover < 0:
            raise InvalidIntentError("debt_to_cover must be a non-negative integer")

        receive_a_token = payload.get("receive_a_token", False)
        if not isinstance(receive_a_token, bool):
            raise InvalidIntentError("receive_a_token must be a boolean")

        for key in ("collateral_asset", "debt_asset"):
            if not isinstance(payload.get(key, ZERO_ADDRESS), str):
                raise InvalidIntentError(f"{key} must be an address string")

        return cls(**payload)


def decode_hook_data(hook_data: bytes | str | LiquidationIntent | None) -> LiquidationIntent | None:
    """Return the liquidation intent in hook data, or None when absent."""
    if hook_data is None or isinstance(hook_data, LiquidationIntent):
        return hook_data
    if not hook_data:
        return None
    return LiquidationIntent.decode(hook_data)


# ==================== Collaborator Protocols ====================

class PoolStateReader(Protocol):
    """Price/tick source for pools."""

    def get_slot0(self, pool_id: str) -> tuple[int, int]:
        """Return (sqrt_price_x96, tick) for a pool."""
        ...


class LiquidityManager(Protocol):
    """Liquidity-modification interface of the host."""

    def modify_liquidity(
        self,
        key: PoolKey,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
    ) -> BalanceDelta:
        """Add (positive delta) or remove (negative delta) liquidity."""
        ...


class AccountData(NamedTuple):
    """Account snapshot of a detailed-health-factor protocol (base currency units)."""

    total_collateral_base: int
    total_debt_base: int
    available_borrows_base: int
    current_liquidation_threshold: int
    ltv: int
    health_factor: int


class DetailedHealthProtocol(Protocol):
    """Lending protocol exposing a continuous health factor (shape A)."""

    def get_user_account_data(self, user: str) -> AccountData:
        ...

    def liquidation_call(
        self,
        collateral_asset: str,
        debt_asset: str,
        user: str,
        debt_to_cover: int,
        receive_a_token: bool,
    ) -> None:
        ...


class BinaryLiquidatableProtocol(Protocol):
    """Lending protocol exposing only binary risk predicates (shape B)."""

    def is_liquidatable(self, account: str) -> bool:
        ...

    def is_borrow_collateralized(self, account: str) -> bool:
        ...

    def absorb(self, absorber: str, accounts: list[str]) -> None:
        ...

    def buy_collateral(
        self,
        asset: str,
        min_amount: int,
        base_amount: int,
        recipient: str,
    ) -> int:
        ...


# ==================== External Calls ====================

@dataclass
class ContractDirectory:
    """Address book resolving adapter addresses to protocol implementations."""

    contracts: dict[str, Any] = field(default_factory=dict)

    def register(self, address: str, contract: Any) -> None:
        self.contracts[address.lower()] = contract

    def unregister(self, address: str) -> None:
        self.contracts.pop(address.lower(), None)

    def resolve(self, address: str) -> Any:
        """
        Resolve an address.

        Raises:
            LookupError: If no contract is deployed at the address
        """
        contract = self.contracts.get(address.lower())
        if contract is None:
            raise LookupError(f"No contract at {address}")
        return contract


class CallResult(NamedTuple):
    """Outcome of a best-effort external call."""

    success: bool
    value: Any = None
    error: str = ""


@dataclass
class ExternalCaller:
    """Dispatches calls to adapter contracts by address."""

    directory: ContractDirectory = field(default_factory=ContractDirectory)

    def call(self, address: str, method: str, *args: Any) -> Any:
        """
        Call a contract method, propagating any failure.

        Raises:
            LookupError: If no contract is deployed at the address
            AttributeError: If the contract does not expose the method
        """
        contract = self.directory.resolve(address)
        return getattr(contract, method)(*args)

    def try_call(self, address: str, method: str, *args: Any) -> CallResult:
        """
        Call a contract method, absorbing any failure into the result.

        Used for capability probes and health reads, where a failed call is a
        signal rather than a fault.
        """
        try:
            return CallResult(True, self.call(address, method, *args))
        except Exception as e:
            logger.debug(
                "External call failed: %s - %s",
                type(e).__name__,
                str(e),
                extra={
                    "event": "external_call.failed",
                    "target": address[:10],
                    "method": method,
                    "error_type": type(e).__name__,
                }
            )
            return CallResult(False, None, f"{type(e).__name__}: {e}")
