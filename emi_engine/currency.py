"""
Currency Amount Helpers

Fixed-point amounts with 2 decimal places and half-up rounding.
NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from typing import Union
import re
import unicodedata

# Set global decimal context for financial precision
getcontext().prec = 28

CURRENCY_PRECISION = 2
ZERO = Decimal('0.00')

AmountLike = Union[Decimal, int, str]


def to_decimal(value: AmountLike) -> Decimal:
    """Convert an int, str or Decimal to Decimal without passing through float"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError("Monetary values must not be floats")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")


def quantize_amount(value: AmountLike) -> Decimal:
    """Round to currency precision, half-up"""
    return to_decimal(value).quantize(
        Decimal('0.1') ** CURRENCY_PRECISION,
        rounding=ROUND_HALF_UP
    )


def format_amount(value: AmountLike) -> str:
    """Serialize with exactly 2 decimal digits"""
    return f"{quantize_amount(value):.{CURRENCY_PRECISION}f}"


def sum_amounts(values) -> Decimal:
    """Sum amounts, rounding the total to currency precision"""
    return quantize_amount(sum((to_decimal(v) for v in values), ZERO))


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert string to Decimal, handling common formats

    Args:
        value: String representation of number

    Returns:
        Decimal value

    Raises:
        ValueError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    # Only currency symbols and whitespace may be dropped
    dropped = re.sub(r'[\d.,\-+]', '', value)
    if any(not (ch.isspace() or unicodedata.category(ch) == 'Sc') for ch in dropped):
        raise ValueError(f"Cannot convert '{value}' to Decimal")

    # Remove currency symbols and whitespace
    clean_value = re.sub(r'[^\d.,\-+]', '', value.strip())

    if ',' in clean_value and '.' in clean_value:
        # Both comma and dot - assume comma is thousands separator
        clean_value = clean_value.replace(',', '')
    elif ',' in clean_value and clean_value.count(',') == 1:
        parts = clean_value.split(',')
        if len(parts[1]) <= 2:
            clean_value = clean_value.replace(',', '.')
        else:
            clean_value = clean_value.replace(',', '')
    else:
        clean_value = clean_value.replace(',', '')

    try:
        return Decimal(clean_value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")
