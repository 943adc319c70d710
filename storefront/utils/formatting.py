"""
Display helpers
"""
import math
from typing import Any

PRICE_UNAVAILABLE = "Liên hệ"
CURRENCY_SYMBOL = "₫"

def format_price(value: Any) -> str:
    """Format a price the vi-VN way (1.234.000₫), or a contact-us label"""
    if value is None or isinstance(value, bool):
        return PRICE_UNAVAILABLE
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return PRICE_UNAVAILABLE
    if not math.isfinite(numeric):
        return PRICE_UNAVAILABLE

    text = f"{numeric:,.3f}".rstrip("0").rstrip(".")
    # Swap separators: thousands become dots, decimals become commas
    text = text.replace(",", "\x00").replace(".", ",").replace("\x00", ".")
    return f"{text}{CURRENCY_SYMBOL}"
