"""Display formatting for order fields shown in the CLI and API."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from src.clients.models import Money

_CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
}

# Currencies without minor units
_ZERO_DECIMAL = {"JPY", "KRW", "VND", "CLP", "ISK"}


def format_money(money: Money) -> str:
    """Format a Money value en-US style, e.g. '$1,234.50' or 'SEK 99.00'.

    Args:
        money: Amount and currency.

    Returns:
        Formatted string with grouping and the currency's minor units.
    """
    code = money.currency_code.upper()
    places = Decimal("1") if code in _ZERO_DECIMAL else Decimal("0.01")
    amount = money.amount.quantize(places, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    number = f"{abs(amount):,}"
    symbol = _CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{sign}{symbol}{number}"
    return f"{sign}{code} {number}"


def format_created_at(value: str) -> str:
    """Render an ISO timestamp as YYYY-MM-DD, passing through anything unparseable."""
    if not value:
        return "—"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return value
