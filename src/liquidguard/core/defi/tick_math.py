"""
Tick and liquidity math for concentrated-liquidity pools.

Price representation:
- Ticks are discretized log prices: price = 1.0001 ** tick
- Sqrt prices are Q64.96 fixed point
- Liquidity amounts follow the constant-product formula within a range
"""

from __future__ import annotations

from ..exceptions import RangeError
from .safe_math import MAX_UINT128, MAX_UINT256, Q96, mul_div

MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# sqrt(1.0001) ** -(2 ** i) in Q128.128, one entry per bit of |tick|
_TICK_RATIOS = (
    (0x1, 340265354078544963557816517032075149313),
    (0x2, 340248342086729790484326174814286782778),
    (0x4, 340214320654664324051920982716015181260),
    (0x8, 340146287995602323631171512101879684304),
    (0x10, 340010263488231146823593991679159461444),
    (0x20, 339738377640345403697157401104375502016),
    (0x40, 339195258003219555707034227454543997025),
    (0x80, 338111622100601834656805679988414885971),
    (0x100, 335954724994790223023589805789778977700),
    (0x200, 331682121138379247127172139078559817300),
    (0x400, 323299236684853023288211250268160618739),
    (0x800, 307163716377032989948697243942600083929),
    (0x1000, 277268403626896220162999269216087595045),
    (0x2000, 225923453940442621947126027127485391333),
    (0x4000, 149997214084966997727330242082538205943),
    (0x8000, 66119101136024775622716233608466517926),
    (0x10000, 12847376061809297530290974190478138313),
    (0x20000, 0x5d6af8dedb81196699c329225ee604),
    (0x40000, 0x2216e584f5fa1ea926041bedfe98),
    (0x80000, 0x48a170391f7dc42444e8fa2),
)


def tick_to_sqrt_price(tick: int) -> int:
    """
    Convert tick to sqrt price in Q64.96 format.

    sqrt_price = 1.0001^(tick/2) * 2^96, rounded up.
    """
    if tick < MIN_TICK or tick > MAX_TICK:
        raise RangeError(f"Tick {tick} out of range")

    abs_tick = abs(tick)
    ratio = 1 << 128
    for bit, multiplier in _TICK_RATIOS:
        if abs_tick & bit:
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = MAX_UINT256 // ratio

    # Q128.128 -> Q64.96, rounding up
    return (ratio >> 32) + (1 if ratio % (1 << 32) else 0)


def align_tick_down(tick: int, spacing: int) -> int:
    """Round a tick down (toward negative infinity) to a multiple of spacing."""
    return (tick // spacing) * spacing


def min_usable_tick(spacing: int) -> int:
    """Lowest tick aligned to spacing that lies inside the global bounds."""
    return -(-MIN_TICK // spacing) * spacing


def max_usable_tick(spacing: int) -> int:
    """Highest tick aligned to spacing that lies inside the global bounds."""
    return (MAX_TICK // spacing) * spacing


def validate_range(tick_lower: int, tick_upper: int) -> None:
    """Validate a tick range against ordering and global bounds."""
    if tick_lower >= tick_upper:
        raise RangeError(
            "tick_lower must be less than tick_upper",
            {"tick_lower": tick_lower, "tick_upper": tick_upper},
        )
    if tick_lower < MIN_TICK or tick_upper > MAX_TICK:
        raise RangeError(
            "Ticks out of range",
            {"tick_lower": tick_lower, "tick_upper": tick_upper},
        )


# ==================== Liquidity For Amounts ====================

def get_liquidity_for_amount0(sqrt_price_a: int, sqrt_price_b: int, amount0: int) -> int:
    """Liquidity provided by amount0 across [sqrt_price_a, sqrt_price_b]."""
    if sqrt_price_a > sqrt_price_b:
        sqrt_price_a, sqrt_price_b = sqrt_price_b, sqrt_price_a
    if sqrt_price_a == sqrt_price_b:
        return 0

    intermediate = mul_div(sqrt_price_a, sqrt_price_b, Q96)
    return mul_div(amount0, intermediate, sqrt_price_b - sqrt_price_a)


def get_liquidity_for_amount1(sqrt_price_a: int, sqrt_price_b: int, amount1: int) -> int:
    """Liquidity provided by amount1 across [sqrt_price_a, sqrt_price_b]."""
    if sqrt_price_a > sqrt_price_b:
        sqrt_price_a, sqrt_price_b = sqrt_price_b, sqrt_price_a
    if sqrt_price_a == sqrt_price_b:
        return 0

    return mul_div(amount1, Q96, sqrt_price_b - sqrt_price_a)


def get_liquidity_for_amounts(
    sqrt_price: int,
    sqrt_price_a: int,
    sqrt_price_b: int,
    amount0: int,
    amount1: int,
) -> int:
    """
    Maximum liquidity that amount0 and amount1 can back at the current price.

    Below the range only token0 counts, above it only token1, inside it the
    smaller of the two contributions.

    Raises:
        OverflowError: If the liquidity does not fit in uint128
    """
    if sqrt_price_a > sqrt_price_b:
        sqrt_price_a, sqrt_price_b = sqrt_price_b, sqrt_price_a

    if sqrt_price <= sqrt_price_a:
        liquidity = get_liquidity_for_amount0(sqrt_price_a, sqrt_price_b, amount0)
    elif sqrt_price < sqrt_price_b:
        liquidity0 = get_liquidity_for_amount0(sqrt_price, sqrt_price_b, amount0)
        liquidity1 = get_liquidity_for_amount1(sqrt_price_a, sqrt_price, amount1)
        liquidity = min(liquidity0, liquidity1)
    else:
        liquidity = get_liquidity_for_amount1(sqrt_price_a, sqrt_price_b, amount1)

    if liquidity > MAX_UINT128:
        raise OverflowError("Liquidity exceeds uint128")
    return liquidity
