from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from db.models import CartLineItem, Order, OrderStatus, ShippingAddress
from store import status as machine
from store.base import PersistentStore
from utils.errors import ValidationError
from utils.logger import get_logger
from utils.messages import NewOrderMessage, OrderStatusChangedMessage

_logger = get_logger(__name__)

Tab = Literal["All", "Active", "Completed", "Cancelled"]


def example_orders() -> List[Order]:
    """Orders shown on a fresh install so the order screens are not empty."""
    return [
        Order(
            order_id="1",
            order_number="#1737659915561",
            status=OrderStatus.PENDING,
            line_items=(
                CartLineItem("seed-101", 1, "Madhubani Painting", Decimal("750")),
            ),
            total_amount=Decimal("750.00"),
            shipping_address=ShippingAddress("123", "Main St", "City", "", ""),
            payment_method="Cash on Delivery",
            created_at=datetime(2025, 1, 24),
        ),
        Order(
            order_id="2",
            order_number="#1737659915562",
            status=OrderStatus.DELIVERED,
            line_items=(
                CartLineItem("seed-102", 1, "Terracotta Vase", Decimal("700")),
                CartLineItem("seed-103", 1, "Bamboo Basket", Decimal("500")),
            ),
            total_amount=Decimal("1200.00"),
            shipping_address=ShippingAddress("456", "Elm St", "City", "", ""),
            payment_method="UPI Payment",
            created_at=datetime(2025, 1, 23),
        ),
        Order(
            order_id="3",
            order_number="#1737659915563",
            status=OrderStatus.CANCELLED,
            line_items=(
                CartLineItem("seed-104", 1, "Pashmina Shawl", Decimal("900")),
                CartLineItem("seed-105", 1, "Brass Diya", Decimal("300")),
                CartLineItem("seed-106", 1, "Block Print Cushion", Decimal("300")),
            ),
            total_amount=Decimal("1500.00"),
            shipping_address=ShippingAddress("789", "Oak St", "City", "", ""),
            payment_method="Card Payment",
            created_at=datetime(2025, 1, 22),
        ),
    ]


class OrderStore(PersistentStore[Order]):
    """
    Placed orders. Orders are appended and never deleted; after creation only
    the status changes, and only along the status machine.

    On the very first run (no stored value) the store seeds itself with
    example orders and persists them. Pass seed=False to start empty.
    """

    KEY = "orders"

    def __init__(self, seed: bool = True) -> None:
        super().__init__()
        self._seed = seed

    def _item_from_dict(self, data: Dict[str, Any]) -> Order:
        return Order.from_dict(data)

    def _item_to_dict(self, item: Order) -> Dict[str, Any]:
        return item.to_dict()

    async def _on_missing(self) -> None:
        if not self._seed:
            return
        self._items = example_orders()
        _logger.info(f"First run, seeding {len(self._items)} example orders.")
        self._schedule_save()

    def get(self, order_id: str) -> Optional[Order]:
        for order in self._items:
            if order.order_id == order_id:
                return order
        return None

    def add_order(self, order: Order) -> Order:
        if self.get(order.order_id) is not None:
            raise ValidationError({"orderId": f"order {order.order_id} already exists"})
        self._items.append(order)
        _logger.info(f"Order {order.order_number} added ({order.status}).")
        self._changed(NewOrderMessage(order.order_id))
        return order

    def update_order_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        actor: Optional[machine.Actor] = None,
    ) -> Optional[Order]:
        """
        Move an order to `new_status`.
        Raises InvalidTransition, without touching state, when the move is not
        allowed. Returns None when no order has that id.
        """
        for idx, order in enumerate(self._items):
            if order.order_id == order_id:
                break
        else:
            _logger.warning(f"Status update for unknown order {order_id}.")
            return None

        updated = machine.apply_transition(order, new_status, actor)
        self._items[idx] = updated
        _logger.info(f"Order {order.order_number}: {order.status} -> {updated.status}")
        self._changed(OrderStatusChangedMessage(order_id, order.status, updated.status))
        return updated

    def by_tab(self, tab: Tab = "All") -> List[Order]:
        """Filter used by the buyer's order list tabs."""
        if tab == "Active":
            return [o for o in self._items if o.status in machine.ACTIVE]
        if tab == "Completed":
            return [o for o in self._items if o.status == OrderStatus.DELIVERED]
        if tab == "Cancelled":
            return [o for o in self._items if o.status == OrderStatus.CANCELLED]
        return self.get_all()
