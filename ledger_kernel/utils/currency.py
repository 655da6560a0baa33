"""
Integer-cents helpers.

The ledger never stores or sums floats.  Margins and ratios are the only
floating outputs and are rounded to two decimals at the edge.
"""

from decimal import ROUND_HALF_UP, Decimal


def format_cents(cents: int, symbol: str = "$") -> str:
    """
    Render cents in native currency style.

    Example:
        >>> format_cents(-1234)
        '-$12.34'
    """
    sign = "-" if cents < 0 else ""
    whole, remainder = divmod(abs(int(cents)), 100)
    return f"{sign}{symbol}{whole:,}.{remainder:02d}"


def divide_round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half away from zero."""
    if denominator == 0:
        raise ZeroDivisionError("denominator must be non-zero")
    quotient = Decimal(numerator) / Decimal(denominator)
    return int(quotient.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def safe_divide(numerator: int | float, denominator: int | float) -> float:
    """Ratio rounded to 2 decimals; 0.0 when the denominator is not positive."""
    if denominator is None or denominator <= 0:
        return 0.0
    return round_2(Decimal(numerator) / Decimal(denominator))


def safe_percent(numerator: int, denominator: int) -> float:
    """Percentage rounded to 2 decimals; 0.0 when the denominator is not positive."""
    if denominator is None or denominator <= 0:
        return 0.0
    return round_2(Decimal(numerator) * 100 / Decimal(denominator))


def round_2(value: Decimal) -> float:
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
