from typing import Optional


class Message:
    """
    Base for change notifications posted by the stores.
    Listeners subscribe on a store and receive every message it posts.
    """

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"{type(self).__name__}({fields})"


class CartChangedMessage(Message):
    """
    Posted after any add, remove, quantity change or clear on the cart.
    The cart screen refreshes its list and totals on it.
    """

    def __init__(self, product_id: Optional[str] = None) -> None:
        self.product_id = product_id


class WishlistChangedMessage(Message):
    """Posted when a product is saved to or removed from the wishlist."""

    def __init__(self, product_id: str, saved: bool) -> None:
        self.product_id = product_id
        self.saved = saved


class NewOrderMessage(Message):
    """
    Posted when an order is appended to the order store.
    Listened to by order lists on both the buyer and artisan side.
    """

    def __init__(self, order_id: str) -> None:
        self.order_id = order_id


class OrderStatusChangedMessage(Message):
    def __init__(self, order_id: str, old_status, new_status) -> None:
        self.order_id = order_id
        self.old_status = old_status
        self.new_status = new_status
