"""
Decimal Arithmetic Utilities

Exact arithmetic for money and quantities. Every monetary value in the
platform is a Decimal; binary floats are converted through their
shortest repr so 0.1 stays 0.1.

All operations run in a fixed 34-digit context (IEEE 754 decimal128
precision), far beyond the 8 fractional digits stored for quantities
and prices.
"""
from decimal import Decimal, Context, InvalidOperation, ROUND_HALF_EVEN, localcontext
from typing import Iterable, Union

Number = Union[Decimal, int, float, str]

PRECISION = 34
QUANTITY_PLACES = 8
COST_BASIS_PLACES = 12
RATE_PLACES = 10

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

_CONTEXT = Context(prec=PRECISION, rounding=ROUND_HALF_EVEN)


def to_decimal(value: Number) -> Decimal:
    """
    Convert a value to Decimal without going through binary floating point.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError("Boolean is not a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(repr(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a decimal number: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def add(*values: Number) -> Decimal:
    """Sum of the given values."""
    with localcontext(_CONTEXT):
        total = ZERO
        for value in values:
            total += to_decimal(value)
        return total


def subtract(a: Number, b: Number) -> Decimal:
    with localcontext(_CONTEXT):
        return to_decimal(a) - to_decimal(b)


def multiply(a: Number, b: Number) -> Decimal:
    with localcontext(_CONTEXT):
        return to_decimal(a) * to_decimal(b)


def divide(a: Number, b: Number) -> Decimal:
    """
    Divide a by b.

    Raises:
        ZeroDivisionError: If b is zero. Callers only divide by values
            that are invariantly positive, so this is a programming error.
    """
    divisor = to_decimal(b)
    if divisor == ZERO:
        raise ZeroDivisionError(f"Division of {a} by zero")
    with localcontext(_CONTEXT):
        return to_decimal(a) / divisor


def decimal_sum(values: Iterable[Number]) -> Decimal:
    """Exact accumulation of an iterable of numbers."""
    return add(*values)


def percentage(part: Number, whole: Number) -> Decimal:
    """part / whole * 100, or 0 when whole is not positive."""
    whole = to_decimal(whole)
    if whole <= ZERO:
        return ZERO
    with localcontext(_CONTEXT):
        return to_decimal(part) / whole * HUNDRED


def quantize(value: Number, places: int = QUANTITY_PLACES) -> Decimal:
    """Round to a fixed number of fractional digits (banker's rounding)."""
    exponent = Decimal(1).scaleb(-places)
    with localcontext(_CONTEXT):
        return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_EVEN)


def fractional_digits(value: Number) -> int:
    """Number of significant fractional digits (trailing zeros ignored)."""
    normalized = to_decimal(value).normalize()
    exponent = normalized.as_tuple().exponent
    return max(0, -exponent)


def compare(a: Number, b: Number) -> int:
    """Return -1, 0 or 1 as a is less than, equal to or greater than b."""
    a, b = to_decimal(a), to_decimal(b)
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def is_close(a: Number, b: Number, tolerance: Number = Decimal("0.001")) -> bool:
    """True when |a - b| < tolerance."""
    return abs(subtract(a, b)) < to_decimal(tolerance)
