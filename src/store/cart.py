from dataclasses import replace
from typing import Any, Dict, Optional

from db.models import CartLineItem, Product
from store.base import PersistentStore
from utils.logger import get_logger
from utils.messages import CartChangedMessage

_logger = get_logger(__name__)


class CartStore(PersistentStore[CartLineItem]):
    """
    Line items the buyer intends to purchase, one per product id.
    Quantity never drops below 1; removing an item is always explicit.
    """

    KEY = "cart"

    def _item_from_dict(self, data: Dict[str, Any]) -> CartLineItem:
        return CartLineItem.from_dict(data)

    def _item_to_dict(self, item: CartLineItem) -> Dict[str, Any]:
        return item.to_dict()

    def loads(self, raw: str):
        items = super().loads(raw)
        ids = [item.product_id for item in items]
        if len(set(ids)) != len(ids):
            raise ValueError("duplicate productId in stored cart")
        return items

    def _index(self, product_id: str) -> Optional[int]:
        for idx, item in enumerate(self._items):
            if item.product_id == product_id:
                return idx
        return None

    def get(self, product_id: str) -> Optional[CartLineItem]:
        idx = self._index(product_id)
        return None if idx is None else self._items[idx]

    def __contains__(self, product_id: str) -> bool:
        return self._index(product_id) is not None

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self._items)

    def add_item(self, product: Product) -> CartLineItem:
        """Add one unit of `product`, merging into an existing line item."""
        idx = self._index(product.product_id)
        if idx is None:
            item = CartLineItem.from_product(product, quantity=1)
            self._items.append(item)
        else:
            old = self._items[idx]
            item = replace(old, quantity=old.quantity + 1)
            self._items[idx] = item
        _logger.debug(f"Cart: {item.product_id} x{item.quantity}")
        self._changed(CartChangedMessage(item.product_id))
        return item

    def remove_item(self, product_id: str) -> None:
        idx = self._index(product_id)
        if idx is None:
            return
        del self._items[idx]
        self._changed(CartChangedMessage(product_id))

    def update_quantity(self, product_id: str, increment: bool) -> Optional[CartLineItem]:
        """
        Step the quantity by one. Decrementing stops at 1.
        Returns the updated item, or None if the product is not in the cart.
        """
        idx = self._index(product_id)
        if idx is None:
            return None
        old = self._items[idx]
        new_qty = old.quantity + 1 if increment else max(1, old.quantity - 1)
        if new_qty == old.quantity:
            return old
        item = replace(old, quantity=new_qty)
        self._items[idx] = item
        self._changed(CartChangedMessage(product_id))
        return item

    def clear(self) -> None:
        self._items = []
        self._changed(CartChangedMessage())
