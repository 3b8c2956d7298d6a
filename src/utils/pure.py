from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from utils import config

_CENT = Decimal("0.01")


def format_currency(amount: Union[Decimal, int, float], symbol: Optional[str] = None) -> str:
    """
    Render an amount with two fraction digits, e.g. ``₹1750.00``.

    Rounding happens here only; totals keep full precision until displayed.
    """
    if symbol is None:
        symbol = config.CURRENCY_SYMBOL
    value = Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return f"{symbol}{value}"


def items_summary(count: int) -> str:
    """'1 item', '3 items'"""
    return f"{count} item{'' if count == 1 else 's'}"


def format_order_date(when: datetime) -> str:
    # day and month without zero padding, as shown on the order list
    return f"Ordered on {when.day}/{when.month}/{when.year}"


def generate_order_id(now: Optional[datetime] = None) -> str:
    """Millisecond timestamp, used when the backend did not assign an id."""
    now = now or datetime.now()
    return str(int(now.timestamp() * 1000))


def order_number_for(order_id: str) -> str:
    return f"KK{order_id}"
