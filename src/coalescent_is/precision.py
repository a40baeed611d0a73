"""
High-precision decimal arithmetic for probabilities.

Products of thousands of transition probabilities lose all meaning in
binary floating point, so every probability in this package is a
``decimal.Decimal`` computed under a fixed 128-digit, round-half-up context.
Decimal contexts are thread-local, which is why numeric entry points are
wrapped with :func:`precise` instead of relying on the caller's context.
"""

import functools
from decimal import Decimal, Context, ROUND_HALF_UP, localcontext
from typing import Iterable, Union

PRECISION = 128
"""Number of significant digits used for all probability arithmetic"""

CONTEXT = Context(prec=PRECISION, rounding=ROUND_HALF_UP)
"""Shared decimal context (128 digits, round half up)"""

ZERO = Decimal(0)
ONE = Decimal(1)

Number = Union[int, float, str, Decimal]


def precise(func):
    """
    Run the decorated function under the package decimal context.

    Args:
        func: Function performing Decimal arithmetic

    Returns:
        Wrapped function
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with localcontext(CONTEXT):
            return func(*args, **kwargs)

    return wrapper


def to_decimal(value: Number) -> Decimal:
    """
    Convert a number to Decimal.

    Floats go through ``repr`` so that 0.1 becomes Decimal("0.1") rather than
    its binary expansion.

    Args:
        value: int, float, str or Decimal

    Returns:
        Decimal value
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def divide(numerator: Number, denominator: Number) -> Decimal:
    """Divide under the package context."""
    return CONTEXT.divide(to_decimal(numerator), to_decimal(denominator))


def product(values: Iterable[Decimal]) -> Decimal:
    """Multiply values under the package context."""
    result = ONE
    for value in values:
        result = CONTEXT.multiply(result, value)
    return result


def sqrt(value: Decimal) -> Decimal:
    """Square root under the package context."""
    return CONTEXT.sqrt(to_decimal(value))


def is_close(a: Decimal, b: Decimal, tolerance: Number = "1e-20") -> bool:
    """
    Compare two decimals with an absolute tolerance.

    Args:
        a: First value
        b: Second value
        tolerance: Maximum absolute difference

    Returns:
        True if ``|a - b| <= tolerance``
    """
    return CONTEXT.abs(CONTEXT.subtract(a, b)) <= to_decimal(tolerance)
