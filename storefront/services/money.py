"""
Money Utilities - Safe Decimal operations for monetary values.

Avoids float precision issues by using Decimal throughout. Values are kept
at full precision internally and rounded only at output boundaries.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

Numeric = Union[str, int, float, Decimal]

# Default precision for money operations (2 decimal places)
MONEY_PRECISION = Decimal("0.01")

ZERO = Decimal("0")

CURRENCY_SYMBOLS = {
    "usd": "$",
    "eur": "€",
    "gbp": "£",
}


def to_decimal(value: Union[Numeric, None]) -> Decimal:
    """
    Convert any value to Decimal safely.

    Args:
        value: Value to convert (str, int, float, Decimal, or None)

    Returns:
        Decimal representation of the value, or Decimal("0") if None/invalid
    """
    if value is None:
        return ZERO

    if isinstance(value, Decimal):
        return value

    try:
        # Convert via string to avoid float precision issues
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return ZERO


def parse_amount(value: object) -> Decimal | None:
    """
    Strictly parse a monetary amount.

    Unlike to_decimal, garbage is not coerced to zero: booleans, NaN,
    infinities and unparsable strings return None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if not isinstance(value, (str, int, float, Decimal)):
        return None
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not amount.is_finite():
        return None
    return amount


def round_money(value: Numeric) -> Decimal:
    """Round monetary value to 2 decimal places (half up)."""
    return to_decimal(value).quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def to_cents(value: Numeric) -> int:
    """
    Convert decimal amount to minor units (cents).

    Used for payment APIs that expect integer minor units.

    Args:
        value: Amount in major units (e.g., 544.98)

    Returns:
        Amount in minor units (e.g., 54498)
    """
    decimal_value = to_decimal(value)
    return int((decimal_value * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Convert minor units (cents) to a decimal amount."""
    return Decimal(cents) / Decimal(100)


def to_float(value: Numeric) -> float:
    """
    Convert Decimal to float for JSON serialization.

    Use only at API boundaries, not for internal calculations.
    """
    return float(to_decimal(value))


def format_money(value: Numeric, currency: str = "usd") -> str:
    """Format monetary value with currency symbol, e.g. "$544.98"."""
    symbol = CURRENCY_SYMBOLS.get(currency.lower())
    formatted = f"{round_money(value):,.2f}"
    if symbol:
        return f"{symbol}{formatted}"
    return f"{formatted} {currency.upper()}"


def multiply_price(price: Numeric, quantity: int) -> Decimal:
    """Exact price x quantity, no rounding."""
    return to_decimal(price) * quantity
