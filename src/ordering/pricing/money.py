"""Money helpers: every amount in the pipeline is a cent-quantized Decimal."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Convert a float/int/str/Decimal to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(str(value))


def to_money(value) -> Decimal:
    """Round half-up to two decimal places. ``None`` is treated as zero."""
    if value is None:
        return ZERO
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_rate(value) -> Decimal | None:
    """Parse a rate, returning None for anything that is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        rate = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not rate.is_finite():
        return None
    return rate


def format_money(value, currency_symbol: str = "$") -> str:
    return f"{currency_symbol}{to_money(value):,.2f}"
