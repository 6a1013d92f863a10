"""
Presentation helpers for auction prices.

The engine stores every amount as an integer number of lakhs. Formatting to
rupee strings happens here, and parsing of formatted strings is only used at
the import boundary.
"""

import re
from typing import Union

LAKHS_PER_CRORE = 100

_PRICE_PATTERN = re.compile(
    r'^(?P<number>\d+(?:\.\d+)?)\s*(?P<unit>cr|crore|crores|l|lakh|lakhs|lac|lacs)?$'
)


def format_lakhs(amount: int) -> str:
    """
    Format an amount in lakhs for display.

    Args:
        amount: Price in lakhs

    Returns:
        String such as '₹50L', '₹1.5Cr' or '₹2Cr'
    """
    if amount is None:
        return 'N/A'

    if abs(amount) >= LAKHS_PER_CRORE:
        crores = amount / LAKHS_PER_CRORE
        text = f"{crores:.2f}".rstrip('0').rstrip('.')
        return f"₹{text}Cr"

    return f"₹{amount}L"


def parse_price(value: Union[str, int, float], default_unit: str = 'lakh') -> int:
    """
    Parse a price from an import file into integer lakhs.

    Args:
        value: Raw cell value ('₹1.5Cr', '50L', '75', 12.5)
        default_unit: Unit for bare numbers, 'lakh' or 'crore'

    Returns:
        Price in lakhs, rounded to the nearest lakh

    Raises:
        ValueError: If the value cannot be read as a price
    """
    if default_unit not in ('lakh', 'crore'):
        raise ValueError(f"Unknown price unit: {default_unit}")

    if isinstance(value, bool):
        raise ValueError(f"Not a price: {value!r}")

    if isinstance(value, (int, float)):
        number = float(value)
        unit = default_unit
    else:
        cleaned = str(value).strip().lower().replace('₹', '').replace(',', '').replace('rs.', '')
        cleaned = cleaned.strip()
        match = _PRICE_PATTERN.match(cleaned)
        if not match:
            raise ValueError(f"Not a price: {value!r}")

        number = float(match.group('number'))
        suffix = match.group('unit')
        if suffix is None:
            unit = default_unit
        elif suffix.startswith('cr'):
            unit = 'crore'
        else:
            unit = 'lakh'

    if number != number:  # NaN
        raise ValueError(f"Not a price: {value!r}")

    if unit == 'crore':
        number *= LAKHS_PER_CRORE

    return int(round(number))
