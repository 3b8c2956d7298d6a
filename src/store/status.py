"""
Order status machine.

    pending -> processing -> shipped -> delivered
       \\___________\\____________\\______-> cancelled

`delivered` and `cancelled` are terminal. The artisan may make any legal
move; the buyer may only cancel.
"""

from typing import Dict, FrozenSet, Literal, Optional

from db.models import Order, OrderStatus
from utils.errors import InvalidTransition

Actor = Literal["buyer", "artisan"]

TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

_BUYER_ALLOWED = frozenset({OrderStatus.CANCELLED})

# happy path only, cancellation is not "next"
_NEXT = {
    OrderStatus.PENDING: OrderStatus.PROCESSING,
    OrderStatus.PROCESSING: OrderStatus.SHIPPED,
    OrderStatus.SHIPPED: OrderStatus.DELIVERED,
}

ACTIVE = frozenset({OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.SHIPPED})


def is_terminal(status: OrderStatus) -> bool:
    return not TRANSITIONS[OrderStatus.parse(status)]


def allowed_transitions(status: OrderStatus, actor: Optional[Actor] = None) -> FrozenSet[OrderStatus]:
    """Statuses reachable in one step from `status` for the given actor."""
    allowed = TRANSITIONS[OrderStatus.parse(status)]
    if actor == "buyer":
        allowed = allowed & _BUYER_ALLOWED
    return allowed


def next_status(status: OrderStatus) -> Optional[OrderStatus]:
    return _NEXT.get(OrderStatus.parse(status))


def check_transition(
    current: OrderStatus,
    requested: OrderStatus,
    actor: Optional[Actor] = None,
    order_id: Optional[str] = None,
) -> OrderStatus:
    """Raise InvalidTransition unless `current -> requested` is legal for `actor`."""
    current = OrderStatus.parse(current)
    requested = OrderStatus.parse(requested)
    if requested not in allowed_transitions(current, actor):
        raise InvalidTransition(order_id, current, requested)
    return requested


def apply_transition(order: Order, requested: OrderStatus, actor: Optional[Actor] = None) -> Order:
    """Return a copy of `order` in the new status. The input is never modified."""
    new_status = check_transition(order.status, requested, actor, order.order_id)
    return order.with_status(new_status)
