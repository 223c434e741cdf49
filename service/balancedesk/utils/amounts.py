"""
Amount parsing and formatting helpers.

Amounts arrive as free text from Telegram replies ("1,500"), as JSON numbers
from the API and as RAW strings from the ledger sheet.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional


def parse_amount(value) -> Optional[Decimal]:
    """
    Parse an amount into a Decimal.

    Input formats handled:
    - 500, 500.5 (numbers)
    - "500", "1,500", "1 500.25" (strings with grouping)

    Returns None for empty, non-numeric or non-finite input.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, Decimal)):
        result = Decimal(value)
    else:
        text = str(value).replace(",", "").replace(" ", "").strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None

    if not result.is_finite():
        return None
    return result


def format_amount(value: Decimal) -> str:
    """Format with thousands separators: Decimal("1500") -> "1,500"."""
    if value == value.to_integral_value():
        value = value.quantize(Decimal(1))
    return f"{value:,f}"
