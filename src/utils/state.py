from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Optional, Union

import db.crud as crud
from api.client import BackendClient
from checkout import flow
from checkout.calculator import CheckoutTotals, compute_totals
from db.models import Order, OrderStatus, ShippingAddress
from store.cart import CartStore
from store.orders import OrderStore
from store.status import next_status
from store.wishlist import WishlistStore
from utils import config
from utils.errors import InvalidTransition, PersistenceError
from utils.logger import get_logger

_logger = get_logger(__name__)


async def stored_token() -> Optional[str]:
    """Bearer token saved at login, if any."""
    try:
        return await crud.get_item(config.TOKEN_KEY)
    except PersistenceError as e:
        _logger.error(f"Could not read auth token: {e}")
        return None


@dataclass
class GlobalState:
    """
    Application state shared by screens, created once at app start and
    handed to whatever needs it.

    Fields:
      - role: "buyer" | "artisan" | None before login
      - cart, wishlist, orders: the three stores, set by start()
      - client: backend client; None keeps orders local only
    """

    role: Optional[Literal["buyer", "artisan"]] = None
    cart: Optional[CartStore] = None
    wishlist: Optional[WishlistStore] = None
    orders: Optional[OrderStore] = None
    client: Optional[BackendClient] = None
    seed_orders: bool = field(default=True, repr=False)

    @classmethod
    def with_backend(cls, **kwargs) -> "GlobalState":
        """State whose client reads the login token from the key-value store."""
        return cls(client=BackendClient(token_provider=stored_token), **kwargs)

    async def start(self) -> None:
        """Hydrate the stores. Sequential on purpose: the database is created on first use."""
        self.cart = await CartStore.open()
        self.wishlist = await WishlistStore.open()
        self.orders = await OrderStore.open(seed=self.seed_orders)
        _logger.info(
            f"State ready: {len(self.cart)} in cart, {len(self.wishlist)} saved, "
            f"{len(self.orders)} orders."
        )

    async def flush(self) -> None:
        for store in (self.cart, self.wishlist, self.orders):
            if store is not None:
                await store.flush()

    async def close(self) -> None:
        """Write out pending changes, stop the writers and close the backend client."""
        for store in (self.cart, self.wishlist, self.orders):
            if store is not None:
                await store.aclose()
        if self.client is not None:
            await self.client.aclose()

    def totals(self) -> CheckoutTotals:
        return compute_totals(self.cart.get_all())

    async def place_order(
        self,
        address: Union[ShippingAddress, Mapping[str, Any]],
        payment_method: str,
    ) -> Order:
        return await flow.place_order(
            self.cart, self.orders, address, payment_method, client=self.client
        )

    def _require_role(self, order_id: str, requested: OrderStatus) -> None:
        """Status changes need a logged-in role."""
        if self.role is not None:
            return
        order = self.orders.get(order_id)
        if order is None:
            raise KeyError(order_id)
        _logger.warning(f"Status change on order {order_id} without a logged-in role.")
        raise InvalidTransition(order_id, order.status, requested)

    async def cancel_order(self, order_id: str) -> Order:
        self._require_role(order_id, OrderStatus.CANCELLED)
        return await flow.cancel_order(self.orders, order_id, client=self.client)

    async def advance_order(self, order_id: str) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise KeyError(order_id)
        self._require_role(order_id, next_status(order.status) or order.status)
        return await flow.advance_order(
            self.orders, order_id, actor=self.role, client=self.client
        )

    async def set_order_status(self, order_id: str, status: OrderStatus) -> Order:
        """Status change on behalf of the logged-in role."""
        self._require_role(order_id, status)
        return await flow.change_order_status(
            self.orders, order_id, status, actor=self.role, client=self.client
        )
