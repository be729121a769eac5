"""Money helpers for order totals and refunds.

Amounts are stored as floats on the aggregate but all arithmetic and
comparisons go through integer minor units (cents), so a refund of exactly
the refundable amount lands exactly on the order total.
"""

import math

MINOR_UNITS = 100


def to_cents(amount: float) -> int:
    """Convert a major-unit amount to integer cents, rounding to the nearest cent."""
    return int(round(amount * MINOR_UNITS))


def from_cents(cents: int) -> float:
    return cents / MINOR_UNITS


def normalize(amount: float) -> float:
    """Round an amount to the nearest cent."""
    return from_cents(to_cents(amount))


def parse_amount(value) -> float | None:
    """Parse a number or numeric string into a finite float.

    Returns None when the value is missing, not numeric, or not finite.
    Booleans are rejected even though they are ints in Python.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def format_amount(amount: float) -> str:
    return f"{amount:.2f}"
