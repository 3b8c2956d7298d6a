# thin async wrapper over the storefront REST backend
from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from db.models import Order, OrderStatus
from utils import config
from utils.errors import NetworkError
from utils.logger import get_logger

_logger = get_logger(__name__)

TokenProvider = Callable[[], Awaitable[Optional[str]]]


class BackendClient:
    """
    Async client for the order endpoints.

    Every failure (transport error, timeout, non-2xx) surfaces as NetworkError
    so screens can show an alert with a retry. Nothing here touches local state.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        token_provider: Optional[TokenProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or config.API_BASE_URL
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=config.API_TIMEOUT if timeout is None else timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        headers = {}
        if self._token_provider is not None:
            token = await self._token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"

        _logger.debug(f"Making request to: {self.base_url}{path}")
        try:
            resp = await self._client.request(method, path, json=json, headers=headers)
            resp.raise_for_status()
        except httpx.TimeoutException as e:
            _logger.error(f"{method} {path} timed out.")
            raise NetworkError(f"{method} {path} timed out.") from e
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            _logger.error(f"{method} {path} failed with {code}: {e.response.text}")
            raise NetworkError(f"{method} {path} failed with {code}.", status_code=code) from e
        except httpx.RequestError as e:
            _logger.error(f"{method} {path} failed: {e}")
            raise NetworkError(f"{method} {path} failed: {e}") from e

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise NetworkError(
                f"{method} {path} returned invalid JSON.", status_code=resp.status_code
            ) from e

    # ---------------------------
    # Orders
    # ---------------------------

    async def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST /api/orders. Returns the created order document."""
        data = await self._request("POST", "/api/orders", json=payload)
        if not isinstance(data, dict):
            raise NetworkError("POST /api/orders returned no order.")
        return data

    async def update_order_status(self, order_id: str, status: OrderStatus) -> Optional[Dict[str, Any]]:
        """Artisan path: PUT /api/orders/{id}/status."""
        return await self._request(
            "PUT", f"/api/orders/{order_id}/status", json={"status": str(status)}
        )

    async def cancel_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        """Buyer path: PUT /api/orders/{id} with status cancelled."""
        return await self._request(
            "PUT", f"/api/orders/{order_id}", json={"status": str(OrderStatus.CANCELLED)}
        )

    async def list_orders(self) -> List[Order]:
        data = await self._request("GET", "/api/orders")
        return [Order.from_api(doc) for doc in data or []]

    async def list_artisan_orders(self) -> List[Order]:
        data = await self._request("GET", "/api/orders/artisan-orders")
        return [Order.from_api(doc) for doc in data or []]

    async def get_order(self, order_id: str) -> Optional[Order]:
        data = await self._request("GET", f"/api/orders/{order_id}")
        return Order.from_api(data) if data else None
