"""
Money helpers for commission arithmetic.

All amounts are Decimal, rounded to 2 places with ROUND_HALF_UP.
Percentages are expressed 0-100 (not 0-1).

The clamps here are what keep payouts non-negative and fee splits
within the amount they are carved out of, whatever the upstream
configuration says.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Optional


ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Coerce a stored or user supplied value into a Decimal.

    Floats go through str() so 0.1 stays 0.1. None, empty strings and
    unparseable values fall back to ``default``.
    """
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places using ROUND_HALF_UP."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def clamp_percentage(value: Any) -> Decimal:
    """Effective rate for a percentage input: max(0, min(100, p))."""
    pct = to_decimal(value)
    if pct < ZERO:
        return ZERO
    if pct > HUNDRED:
        return HUNDRED
    return pct


def clamp_non_negative(value: Any) -> Decimal:
    """Effective amount for a fixed input: max(0, f)."""
    amount = to_decimal(value)
    return amount if amount > ZERO else ZERO


def cap_at(value: Decimal, ceiling: Decimal) -> Decimal:
    """Clamp ``value`` into [0, ceiling]."""
    if ceiling < ZERO:
        ceiling = ZERO
    if value < ZERO:
        return ZERO
    if value > ceiling:
        return ceiling
    return value


def percentage_of(base: Decimal, pct: Any) -> Decimal:
    """``base`` x clamp(pct) / 100, rounded to cents."""
    return quantize_money(to_decimal(base) * clamp_percentage(pct) / HUNDRED)


def sum_money(amounts: Iterable[Any]) -> Decimal:
    total = ZERO
    for amount in amounts:
        total += to_decimal(amount)
    return quantize_money(total)


def within_tolerance(left: Decimal, right: Decimal, tolerance: Optional[Decimal] = None) -> bool:
    """True when |left - right| <= tolerance (one cent by default)."""
    if tolerance is None:
        tolerance = CENT
    return abs(to_decimal(left) - to_decimal(right)) <= tolerance
