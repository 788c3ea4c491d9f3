"""Parsing utilities for operator-entered amounts and dates.

Amounts arrive as free text from entry forms and CSV uploads:
- Decimal separator: dot (.), comma accepted as a fallback
- Thousand separators: spaces and commas in "1,250.00" style
- Optional currency prefix: "LKR", "Rs", "Rs."

Example:
    >>> parse_amount("1,250.50")
    Decimal('1250.50')

    >>> parse_amount("Rs. 75")
    Decimal('75')

    >>> parse_positive_amount("abc")
    None

    >>> parse_date("2025-06-23")
    datetime.date(2025, 6, 23)
"""

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

MONEY_QUANTUM = Decimal("0.01")

# Largest value a Numeric(10, 2) column holds
MAX_AMOUNT = Decimal("99999999.99")

_CURRENCY_PREFIX = re.compile(r"^(lkr|rs\.?)\s*", re.IGNORECASE)


def quantize_money(value: Decimal) -> Decimal:
    """Round to currency minor units (2 places, half up).

    Raises:
        ValueError: If the value has too many digits to round
    """
    try:
        return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"Amount {value} is too large") from e


def parse_amount(value) -> Optional[Decimal]:
    """
    Parse an operator-entered amount to Python Decimal.

    Args:
        value: String, int, float or Decimal; None/empty string yields None

    Returns:
        Decimal object or None if input is empty/None

    Raises:
        ValueError: If value cannot be parsed as a finite decimal
            or its magnitude exceeds MAX_AMOUNT

    Examples:
        >>> parse_amount("1 000.25")
        Decimal('1000.25')
        >>> parse_amount("2,5")
        Decimal('2.5')
        >>> parse_amount("")
        None
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse amount {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        # str() first so 0.1 becomes Decimal('0.1'), not its binary expansion
        result = Decimal(str(value))
    else:
        text = str(value).strip()
        if not text:
            return None
        text = _CURRENCY_PREFIX.sub("", text)
        text = text.replace(" ", "").replace("\xa0", "")
        if "," in text and "." in text:
            # "1,250.50": comma is a thousand separator
            text = text.replace(",", "")
        else:
            text = text.replace(",", ".")
        try:
            result = Decimal(text)
        except InvalidOperation as e:
            raise ValueError(f"Cannot parse amount '{value}': {e}") from e

    if not result.is_finite():
        raise ValueError(f"Amount must be a finite number, got '{value}'")
    if abs(result) > MAX_AMOUNT:
        raise ValueError(f"Amount '{value}' exceeds the largest amount {MAX_AMOUNT}")
    return result


def parse_positive_amount(value) -> Optional[Decimal]:
    """Parse an amount, returning None unless it is a number greater than zero.

    Used where blank or invalid input means "skip this row" rather than an error.
    """
    try:
        amount = parse_amount(value)
    except ValueError:
        return None
    if amount is None or amount <= 0:
        return None
    return amount


def parse_date(value) -> Optional[date]:
    """
    Parse a calendar-day string in ISO format (YYYY-MM-DD).

    Also accepts date objects and full ISO timestamps (the day part is kept).

    Args:
        value: Date string or date/datetime; None/empty yields None

    Returns:
        date object or None if input is empty/None

    Raises:
        ValueError: If value is not a valid date
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError as e:
        raise ValueError(f"Cannot parse date '{value}': expected YYYY-MM-DD") from e
