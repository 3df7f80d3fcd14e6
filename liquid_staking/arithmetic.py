"""Overflow-checked integer arithmetic.

Stored balances live in the unsigned 64-bit domain. Products taken on the
way to a result may use up to 128 bits, but never more. Anything outside
those bounds, a negative result, or a division by zero raises
``ArithmeticOverflow`` instead of wrapping.
"""

from liquid_staking.constants import U64_MAX, U128_MAX
from liquid_staking.errors import ArithmeticOverflow


def _check(value: int, limit: int, op: str) -> int:
    if value < 0 or value > limit:
        raise ArithmeticOverflow(f"{op} result {value} is outside [0, {limit}]")
    return value


def checked_add(a: int, b: int, *, limit: int = U64_MAX) -> int:
    return _check(a + b, limit, "add")


def checked_sub(a: int, b: int) -> int:
    return _check(a - b, U64_MAX, "sub")


def checked_mul(a: int, b: int, *, limit: int = U64_MAX) -> int:
    return _check(a * b, limit, "mul")


def checked_div(numer: int, denom: int) -> int:
    """Floor division; zero denominators are an arithmetic error, not a ZeroDivisionError."""
    if denom == 0:
        raise ArithmeticOverflow("division by zero")
    return _check(numer // denom, U64_MAX, "div")


def mul_div(a: int, b: int, denom: int) -> int:
    """floor(a * b / denom) with a 128-bit intermediate and a 64-bit result."""
    product = checked_mul(a, b, limit=U128_MAX)
    return checked_div(product, denom)
