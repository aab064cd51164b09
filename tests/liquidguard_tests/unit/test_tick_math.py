"""
Fixed-point and tick math tests.

Integer helpers must round exactly as documented so that thresholds and
volatility scores reproduce bit for bit.
"""

import pytest

from liquidguard.core.defi.safe_math import (
    MAX_UINT128,
    MAX_UINT256,
    Q96,
    div_trunc,
    isqrt,
    mul_div,
)
from liquidguard.core.defi.tick_math import (
    MAX_TICK,
    MIN_TICK,
    align_tick_down,
    get_liquidity_for_amount0,
    get_liquidity_for_amount1,
    get_liquidity_for_amounts,
    max_usable_tick,
    min_usable_tick,
    tick_to_sqrt_price,
    validate_range,
)
from liquidguard.core.exceptions import RangeError

pytestmark = pytest.mark.unit


class TestSafeMath:
    """Checked integer arithmetic."""

    def test_mul_div_rounding(self):
        assert mul_div(10, 20, 3) == 66
        assert mul_div(10, 20, 3, round_up=True) == 67
        assert mul_div(10, 20, 4, round_up=True) == 50

    def test_mul_div_zero_denominator(self):
        with pytest.raises(ValueError, match="Division by zero"):
            mul_div(1, 1, 0)

    def test_mul_div_rejects_negative_operands(self):
        with pytest.raises(ValueError):
            mul_div(-1, 5, 2)

    def test_mul_div_overflow(self):
        with pytest.raises(OverflowError):
            mul_div(MAX_UINT256, 2, 1)

    def test_mul_div_full_precision_intermediate(self):
        """Intermediate products above uint256 are fine if the result fits."""
        assert mul_div(MAX_UINT256, MAX_UINT256, MAX_UINT256) == MAX_UINT256

    def test_div_trunc_rounds_toward_zero(self):
        assert div_trunc(7, 2) == 3
        assert div_trunc(-7, 2) == -3
        assert div_trunc(7, -2) == -3
        assert div_trunc(-7, -2) == 3
        assert div_trunc(0, 5) == 0

    def test_div_trunc_zero_divisor(self):
        with pytest.raises(ValueError):
            div_trunc(1, 0)

    @pytest.mark.parametrize("value,expected", [
        (0, 0),
        (1, 1),
        (2, 1),
        (3, 1),
        (4, 2),
        (15, 3),
        (16, 4),
        (9876, 99),
        (10000, 100),
        (10**36, 10**18),
    ])
    def test_isqrt(self, value, expected):
        assert isqrt(value) == expected

    def test_isqrt_negative(self):
        with pytest.raises(ValueError):
            isqrt(-1)


class TestTickToSqrtPrice:
    """Tick to Q64.96 sqrt price conversion."""

    def test_tick_zero_is_one(self):
        assert tick_to_sqrt_price(0) == Q96

    @pytest.mark.parametrize("tick", [-887220, -100000, -60, -1, 1, 60, 100000, 887220])
    def test_matches_floating_point_reference(self, tick):
        expected = (1.0001 ** (tick / 2)) * Q96
        actual = tick_to_sqrt_price(tick)
        assert abs(actual - expected) / expected < 1e-9

    def test_monotonic(self):
        ticks = [-887272, -500000, -60, 0, 60, 500000, 887272]
        prices = [tick_to_sqrt_price(t) for t in ticks]
        assert prices == sorted(prices)
        assert len(set(prices)) == len(prices)

    def test_out_of_range(self):
        with pytest.raises(RangeError):
            tick_to_sqrt_price(MAX_TICK + 1)
        with pytest.raises(RangeError):
            tick_to_sqrt_price(MIN_TICK - 1)


class TestTickAlignment:
    """Spacing alignment and bounds."""

    @pytest.mark.parametrize("tick,expected", [
        (0, 0),
        (59, 0),
        (60, 60),
        (-1, -60),
        (-60, -60),
        (-61, -120),
    ])
    def test_align_down_floors(self, tick, expected):
        assert align_tick_down(tick, 60) == expected

    def test_usable_bounds(self):
        assert min_usable_tick(60) == -887220
        assert max_usable_tick(60) == 887220
        assert min_usable_tick(1) == MIN_TICK
        assert max_usable_tick(1) == MAX_TICK

    def test_validate_range(self):
        validate_range(-60, 60)
        with pytest.raises(RangeError):
            validate_range(60, 60)
        with pytest.raises(RangeError):
            validate_range(120, 60)
        with pytest.raises(RangeError):
            validate_range(MIN_TICK - 1, 0)
        with pytest.raises(RangeError):
            validate_range(0, MAX_TICK + 1)


class TestLiquidityForAmounts:
    """Constant-product liquidity sizing."""

    def setup_method(self):
        self.sqrt_lower = tick_to_sqrt_price(-600)
        self.sqrt_upper = tick_to_sqrt_price(600)

    def test_in_range_uses_smaller_side(self):
        liquidity = get_liquidity_for_amounts(
            Q96, self.sqrt_lower, self.sqrt_upper, 10**18, 10**18
        )
        liquidity0 = get_liquidity_for_amount0(Q96, self.sqrt_upper, 10**18)
        liquidity1 = get_liquidity_for_amount1(self.sqrt_lower, Q96, 10**18)
        assert liquidity == min(liquidity0, liquidity1)
        assert liquidity > 0

    def test_in_range_one_sided_amount_gives_zero(self):
        assert get_liquidity_for_amounts(Q96, self.sqrt_lower, self.sqrt_upper, 10**18, 0) == 0

    def test_below_range_only_token0_counts(self):
        price = tick_to_sqrt_price(-1200)
        assert get_liquidity_for_amounts(price, self.sqrt_lower, self.sqrt_upper, 10**18, 0) > 0
        assert get_liquidity_for_amounts(price, self.sqrt_lower, self.sqrt_upper, 0, 10**18) == 0

    def test_above_range_only_token1_counts(self):
        price = tick_to_sqrt_price(1200)
        assert get_liquidity_for_amounts(price, self.sqrt_lower, self.sqrt_upper, 0, 10**18) > 0
        assert get_liquidity_for_amounts(price, self.sqrt_lower, self.sqrt_upper, 10**18, 0) == 0

    def test_bounds_order_does_not_matter(self):
        forward = get_liquidity_for_amounts(Q96, self.sqrt_lower, self.sqrt_upper, 10**18, 10**18)
        reverse = get_liquidity_for_amounts(Q96, self.sqrt_upper, self.sqrt_lower, 10**18, 10**18)
        assert forward == reverse

    def test_empty_range(self):
        assert get_liquidity_for_amount0(Q96, Q96, 10**18) == 0
        assert get_liquidity_for_amount1(Q96, Q96, 10**18) == 0

    def test_overflow_above_uint128(self):
        with pytest.raises(OverflowError):
            get_liquidity_for_amounts(
                Q96, tick_to_sqrt_price(-1), tick_to_sqrt_price(1), MAX_UINT128 * 10**6, MAX_UINT128 * 10**6
            )
