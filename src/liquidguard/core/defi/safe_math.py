"""
Integer fixed-point helpers.

Health metrics and thresholds use WAD (1e18) scaled integers; prices use
Q64.96. Nothing in the engine uses floating point, so threshold comparisons
reproduce exactly.
"""

from __future__ import annotations

WAD = 10**18
Q96 = 2**96
MAX_UINT128 = 2**128 - 1
MAX_UINT256 = 2**256 - 1


class SafeMath:
    """Checked integer arithmetic in the uint256 domain."""

    @staticmethod
    def mul_div(a: int, b: int, denominator: int, round_up: bool = False) -> int:
        """
        Calculate (a * b) / denominator with full precision.

        Args:
            a: First multiplicand (non-negative)
            b: Second multiplicand (non-negative)
            denominator: Divisor
            round_up: Round up instead of down

        Raises:
            ValueError: If denominator is zero or an operand is negative
            OverflowError: If the result exceeds uint256
        """
        if denominator == 0:
            raise ValueError("Division by zero")
        if a < 0 or b < 0 or denominator < 0:
            raise ValueError("mul_div operands must be non-negative")

        product = a * b
        if round_up:
            result = (product + denominator - 1) // denominator
        else:
            result = product // denominator

        if result > MAX_UINT256:
            raise OverflowError("mul_div result exceeds uint256")
        return result

    @staticmethod
    def div_trunc(a: int, b: int) -> int:
        """Signed integer division rounding toward zero."""
        if b == 0:
            raise ValueError("Division by zero")
        quotient = abs(a) // abs(b)
        return quotient if (a >= 0) == (b > 0) else -quotient

    @staticmethod
    def sqrt(x: int) -> int:
        """
        Integer square root by Newton's method.

        Starts from x and iterates k = (x // k + k) // 2 until the estimate
        stops decreasing. Returns floor(sqrt(x)).
        """
        if x < 0:
            raise ValueError("Square root of negative number")
        if x == 0:
            return 0

        result = x
        k = (x + 1) // 2
        while k < result:
            result = k
            k = (x // k + k) // 2
        return result


mul_div = SafeMath.mul_div
div_trunc = SafeMath.div_trunc
isqrt = SafeMath.sqrt
