from typing import Any, Dict

from db.models import Product, WishlistEntry
from store.base import PersistentStore
from utils.messages import WishlistChangedMessage


class WishlistStore(PersistentStore[WishlistEntry]):
    """Saved products. Membership is idempotent."""

    KEY = "wishlist"

    def _item_from_dict(self, data: Dict[str, Any]) -> WishlistEntry:
        return WishlistEntry.from_dict(data)

    def _item_to_dict(self, item: WishlistEntry) -> Dict[str, Any]:
        return item.to_dict()

    def is_in_wishlist(self, product_id: str) -> bool:
        return any(entry.product_id == product_id for entry in self._items)

    def add_to_wishlist(self, product: Product) -> bool:
        """Returns False (and changes nothing) when the product is already saved."""
        if self.is_in_wishlist(product.product_id):
            return False
        self._items.append(WishlistEntry.from_product(product))
        self._changed(WishlistChangedMessage(product.product_id, saved=True))
        return True

    def remove_from_wishlist(self, product_id: str) -> bool:
        kept = [entry for entry in self._items if entry.product_id != product_id]
        if len(kept) == len(self._items):
            return False
        self._items = kept
        self._changed(WishlistChangedMessage(product_id, saved=False))
        return True

    def toggle(self, product: Product) -> bool:
        """Heart button: save if absent, remove if present. Returns the new membership."""
        if self.is_in_wishlist(product.product_id):
            self.remove_from_wishlist(product.product_id)
            return False
        self.add_to_wishlist(product)
        return True
