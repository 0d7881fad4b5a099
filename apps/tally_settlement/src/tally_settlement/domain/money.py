"""Money helpers using Decimal in the currency's smallest unit."""

from decimal import ROUND_HALF_UP, Decimal

MINOR_UNIT = Decimal("1")
BALANCE_PRECISION = Decimal("0.01")
DEFAULT_TOLERANCE = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """Return value rounded to the smallest currency unit with HALF_UP strategy."""

    return value.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def parse_money(value: str | int | Decimal) -> Decimal:
    """Parse an input amount into Decimal without rounding it."""

    return Decimal(str(value))


def format_money(value: Decimal) -> str:
    """Render a transfer amount as a whole number of smallest units."""

    return f"{quantize_money(value):.0f}"


def format_balance(value: Decimal) -> str:
    """Render a balance with exactly two decimal places."""

    quantized = value.quantize(BALANCE_PRECISION, rounding=ROUND_HALF_UP)
    if quantized == 0:
        quantized = abs(quantized)
    return f"{quantized:.2f}"


def is_within_tolerance(value: Decimal, tolerance: Decimal) -> bool:
    """Return True when the value is treated as zero."""

    return abs(value) <= tolerance


AMOUNT_MAX_DIGITS = 15
AMOUNT_DECIMAL_PLACES = 4


def has_storable_precision(value: Decimal) -> bool:
    """Return True when value survives a ``Numeric(18, 4)`` column unchanged.

    At most four decimal places and fifteen significant digits, so SQLite's
    float storage round-trips it exactly.
    """

    if not value.is_finite():
        return False
    _, digits, exponent = value.normalize().as_tuple()
    decimal_places = max(-exponent, 0)
    total_digits = max(len(digits) + max(exponent, 0), decimal_places)
    return (
        decimal_places <= AMOUNT_DECIMAL_PLACES
        and total_digits <= AMOUNT_MAX_DIGITS
    )


def format_amount(value: Decimal) -> str:
    """Render a stored amount without exponent or trailing zeros."""

    normalized = value.normalize()
    if normalized == 0:
        return "0"
    return f"{normalized:f}"
