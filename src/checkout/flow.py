"""
User-initiated order actions: placing an order from the cart and changing an
order's status.

Every check runs before anything is mutated. When a backend client is given,
the network call happens next; a NetworkError propagates and leaves the cart
and the order store exactly as they were.
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from api.client import BackendClient
from checkout.calculator import CheckoutTotals, compute_totals
from checkout.validation import validate_address, validate_payment_method
from db.models import CartLineItem, Order, OrderStatus, ShippingAddress
from store import status as machine
from store.cart import CartStore
from store.orders import OrderStore
from utils import pure
from utils.errors import ValidationError
from utils.logger import get_logger

_logger = get_logger(__name__)


def build_order_payload(
    order_number: str,
    items: List[CartLineItem],
    totals: CheckoutTotals,
    address: ShippingAddress,
    payment_method: str,
) -> Dict[str, Any]:
    """Request body for POST /api/orders."""
    return {
        "orderNumber": order_number,
        "status": str(OrderStatus.PENDING),
        "products": [
            {"product": item.product_id, "quantity": item.quantity, "price": float(item.price)}
            for item in items
        ],
        "totalAmount": float(totals.grand_total),
        "shippingAddress": address.to_api(),
        "paymentMethod": payment_method,
    }


async def place_order(
    cart: CartStore,
    orders: OrderStore,
    address: Union[ShippingAddress, Mapping[str, Any]],
    payment_method: str,
    client: Optional[BackendClient] = None,
    now: Optional[datetime] = None,
) -> Order:
    """
    Turn the current cart into a pending order, then clear the cart.

    The order keeps its own copy of the line items, so later cart changes do
    not reach it. Without a client the order is local only, with a time based
    id (bumped past any id already in the store) and a `KK<id>` order number.
    """
    if isinstance(address, ShippingAddress):
        address = address.to_dict()
    shipping_address = validate_address(address)
    payment_method = validate_payment_method(payment_method)

    items = cart.get_all()
    if not items:
        raise ValidationError({"cart": "Cart is empty."})

    now = now or datetime.now()
    totals = compute_totals(items)
    order_id = pure.generate_order_id(now)
    while orders.get(order_id) is not None:
        # same millisecond as an earlier order
        order_id = str(int(order_id) + 1)
    order_number = pure.order_number_for(order_id)

    if client is not None:
        payload = build_order_payload(order_number, items, totals, shipping_address, payment_method)
        created = await client.create_order(payload)
        order_id = str(created.get("_id") or created.get("id") or order_id)
        order_number = str(created.get("orderNumber") or order_number)

    order = Order(
        order_id=order_id,
        order_number=order_number,
        status=OrderStatus.PENDING,
        line_items=tuple(items),
        total_amount=totals.grand_total,
        shipping_address=shipping_address,
        payment_method=payment_method,
        created_at=now,
    )
    orders.add_order(order)
    cart.clear()
    _logger.info(
        f"Placed order {order.order_number}: {order.items_summary}, "
        f"{pure.format_currency(order.total_amount)}"
    )
    return order


async def change_order_status(
    orders: OrderStore,
    order_id: str,
    new_status: OrderStatus,
    actor: Optional[machine.Actor] = "artisan",
    client: Optional[BackendClient] = None,
) -> Order:
    """
    Validate the move locally, push it to the backend, then apply it locally.
    Raises KeyError for an unknown order id.
    """
    order = orders.get(order_id)
    if order is None:
        raise KeyError(order_id)
    new_status = machine.check_transition(order.status, new_status, actor, order_id)

    if client is not None:
        if actor == "buyer":
            await client.cancel_order(order_id)
        else:
            await client.update_order_status(order_id, new_status)

    return orders.update_order_status(order_id, new_status, actor)


async def cancel_order(
    orders: OrderStore,
    order_id: str,
    client: Optional[BackendClient] = None,
) -> Order:
    """Buyer cancellation; allowed until the order is delivered."""
    return await change_order_status(
        orders, order_id, OrderStatus.CANCELLED, actor="buyer", client=client
    )


async def advance_order(
    orders: OrderStore,
    order_id: str,
    actor: Optional[machine.Actor] = "artisan",
    client: Optional[BackendClient] = None,
) -> Order:
    """Move the order one step along pending -> processing -> shipped -> delivered.

    Only the artisan may do this; a buyer gets InvalidTransition.
    """
    order = orders.get(order_id)
    if order is None:
        raise KeyError(order_id)
    target = machine.next_status(order.status)
    if target is None:
        # terminal: let the machine produce the error
        target = order.status
    return await change_order_status(orders, order_id, target, actor, client)
