# pure checkout arithmetic over a cart snapshot
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from db.models import CartLineItem
from utils import config
from utils.pure import format_currency


@dataclass(frozen=True)
class CheckoutTotals:
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    grand_total: Decimal
    item_count: int

    def formatted(self) -> dict:
        """Two-decimal strings for display."""
        return {
            "subtotal": format_currency(self.subtotal),
            "tax": format_currency(self.tax),
            "shipping": format_currency(self.shipping),
            "grand_total": format_currency(self.grand_total),
        }


def subtotal(items: Iterable[CartLineItem]) -> Decimal:
    return sum((item.price * item.quantity for item in items), Decimal(0))


def tax(amount: Decimal, rate: Optional[Decimal] = None) -> Decimal:
    if rate is None:
        rate = config.TAX_RATE
    return amount * rate


def shipping(fee: Optional[Decimal] = None) -> Decimal:
    """Flat fee, charged regardless of cart size or destination, even when empty."""
    return config.FLAT_SHIPPING_FEE if fee is None else Decimal(fee)


def compute_totals(
    items: Iterable[CartLineItem],
    tax_rate: Optional[Decimal] = None,
    shipping_fee: Optional[Decimal] = None,
) -> CheckoutTotals:
    items = list(items)
    sub = subtotal(items)
    tx = tax(sub, tax_rate)
    ship = shipping(shipping_fee)
    return CheckoutTotals(
        subtotal=sub,
        tax=tx,
        shipping=ship,
        grand_total=sub + tx + ship,
        item_count=len(items),
    )
