import json
import os
import tempfile
import unittest
from datetime import datetime
from decimal import Decimal

import httpx

from api.client import BackendClient
from checkout import flow
from checkout.validation import validate_address, validate_payment_method
from db import crud
from db import database as db_database
from db.models import OrderStatus, Product
from utils.errors import InvalidTransition, NetworkError, ValidationError
from utils.state import GlobalState, stored_token

ADDRESS = {
    "houseNo": "12",
    "street": "MG Road",
    "city": "Jaipur",
    "state": "Rajasthan",
    "postalCode": "302001",
}

PRODUCT_A = Product(product_id="A", name="Blue Pottery Vase", price=Decimal("750"))
PRODUCT_B = Product(product_id="B", name="Bandhani Dupatta", price=Decimal("500"))


class ValidationTestCase(unittest.TestCase):
    def test_valid_address(self):
        address = validate_address(ADDRESS)
        self.assertEqual(address.one_line(), "12, MG Road, Jaipur, Rajasthan, 302001")
        self.assertEqual(address.to_api()["street"], "12, MG Road")
        self.assertEqual(address.postal_code, "302001")
        self.assertEqual(address.state, "Rajasthan")

    def test_missing_fields_are_reported_per_field(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_address({**ADDRESS, "city": "  ", "houseNo": None})
        self.assertEqual(set(ctx.exception.errors), {"city", "houseNo"})

    def test_pin_code_format(self):
        for bad in ("012345", "30200", "3020011", "30200a"):
            with self.assertRaises(ValidationError) as ctx:
                validate_address({**ADDRESS, "postalCode": bad})
            self.assertIn("postalCode", ctx.exception.errors)

    def test_state_must_be_known(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_address({**ADDRESS, "state": "Atlantis"})
        self.assertEqual(list(ctx.exception.errors), ["state"])

    def test_payment_method(self):
        self.assertEqual(validate_payment_method("UPI Payment"), "UPI Payment")
        with self.assertRaises(ValidationError):
            validate_payment_method("Bitcoin")


class CheckoutFlowTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        db_database.DB_PATH = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database._initialized = False
        self.requests = []

    async def asyncSetUp(self):
        await crud.all_keys()

    def tearDown(self):
        self.temp_dir.cleanup()

    async def _state(self, handler=None) -> GlobalState:
        client = None
        if handler is not None:
            client = BackendClient(
                base_url="http://backend.test", transport=httpx.MockTransport(handler)
            )
        state = GlobalState(role="buyer", client=client, seed_orders=False)
        await state.start()
        return state

    def _fill_cart(self, state):
        state.cart.add_item(PRODUCT_A)
        state.cart.add_item(PRODUCT_B)
        state.cart.update_quantity("B", True)

    # ---------- End to end ----------

    async def test_end_to_end_local_order(self):
        state = await self._state()
        self._fill_cart(state)

        totals = state.totals()
        self.assertEqual(totals.subtotal, Decimal("1750"))
        self.assertEqual(totals.tax, Decimal("175"))
        self.assertEqual(totals.shipping, Decimal("100"))
        self.assertEqual(totals.grand_total, Decimal("2025"))

        order = await state.place_order(ADDRESS, "Cash on Delivery")
        self.assertEqual(state.cart.get_all(), [])
        self.assertEqual(len(state.orders), 1)
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual([(i.product_id, i.quantity) for i in order.line_items], [("A", 1), ("B", 2)])
        self.assertEqual(order.total_amount, Decimal("2025"))
        self.assertEqual(order.order_number, f"KK{order.order_id}")

        # the placed order does not follow the cart
        state.cart.add_item(PRODUCT_A)
        self.assertEqual(len(state.orders.get(order.order_id).line_items), 2)

        await state.close()
        again = await self._state()
        self.assertEqual(again.orders.get(order.order_id), order)
        self.assertEqual(len(again.cart), 1)
        await again.close()

    async def test_invalid_input_mutates_nothing(self):
        state = await self._state()
        self._fill_cart(state)
        with self.assertRaises(ValidationError):
            await state.place_order({**ADDRESS, "postalCode": "12"}, "Cash on Delivery")
        with self.assertRaises(ValidationError):
            await state.place_order(ADDRESS, "Barter")
        self.assertEqual(len(state.cart), 2)
        self.assertEqual(len(state.orders), 0)
        await state.close()

    async def test_empty_cart_is_rejected(self):
        state = await self._state()
        with self.assertRaises(ValidationError) as ctx:
            await state.place_order(ADDRESS, "Cash on Delivery")
        self.assertIn("cart", ctx.exception.errors)
        await state.close()

    # ---------- With backend ----------

    async def test_backend_assigns_id_and_number(self):
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return httpx.Response(201, json={"_id": "srv-42", "orderNumber": "KK999"})

        state = await self._state(handler)
        self._fill_cart(state)
        order = await state.place_order(ADDRESS, "UPI Payment")

        self.assertEqual(order.order_id, "srv-42")
        self.assertEqual(order.order_number, "KK999")
        body = json.loads(self.requests[0].content)
        self.assertEqual(self.requests[0].url.path, "/api/orders")
        self.assertEqual(body["status"], "pending")
        self.assertEqual(body["totalAmount"], 2025.0)
        self.assertEqual(body["paymentMethod"], "UPI Payment")
        self.assertEqual(
            body["products"],
            [
                {"product": "A", "quantity": 1, "price": 750.0},
                {"product": "B", "quantity": 2, "price": 500.0},
            ],
        )
        self.assertEqual(
            body["shippingAddress"],
            {"street": "12, MG Road", "city": "Jaipur", "state": "Rajasthan", "postalCode": "302001"},
        )
        self.assertEqual(len(state.cart), 0)
        await state.close()

    async def test_backend_failure_keeps_cart(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"message": "boom"})

        state = await self._state(handler)
        self._fill_cart(state)
        with self.assertRaises(NetworkError) as ctx:
            await state.place_order(ADDRESS, "Card Payment")
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(len(state.cart), 2)
        self.assertEqual(len(state.orders), 0)
        await state.close()

    async def test_backend_timeout_keeps_cart(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        state = await self._state(handler)
        self._fill_cart(state)
        with self.assertRaises(NetworkError) as ctx:
            await state.place_order(ADDRESS, "Card Payment")
        self.assertIsNone(ctx.exception.status_code)
        self.assertEqual(state.cart.get("B").quantity, 2)
        await state.close()

    # ---------- Status changes ----------

    async def test_cancel_goes_to_backend_then_local(self):
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if request.method == "POST":
                return httpx.Response(201, json={"_id": "o1", "orderNumber": "KK1"})
            return httpx.Response(200, json={"_id": "o1", "status": "cancelled"})

        state = await self._state(handler)
        self._fill_cart(state)
        await state.place_order(ADDRESS, "Cash on Delivery")
        order = await state.cancel_order("o1")

        self.assertEqual(order.status, OrderStatus.CANCELLED)
        self.assertEqual(self.requests[-1].method, "PUT")
        self.assertEqual(self.requests[-1].url.path, "/api/orders/o1")
        self.assertEqual(json.loads(self.requests[-1].content), {"status": "cancelled"})

        # terminal now: rejected before any request is made
        sent = len(self.requests)
        with self.assertRaises(InvalidTransition):
            await state.cancel_order("o1")
        self.assertEqual(len(self.requests), sent)
        await state.close()

    async def test_status_update_failure_leaves_order_alone(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(201, json={"_id": "o1"})
            return httpx.Response(503)

        state = await self._state(handler)
        state.role = "artisan"
        self._fill_cart(state)
        await state.place_order(ADDRESS, "Cash on Delivery")
        with self.assertRaises(NetworkError):
            await state.advance_order("o1")
        self.assertEqual(state.orders.get("o1").status, OrderStatus.PENDING)
        await state.close()

    async def test_artisan_advances_to_delivered(self):
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if request.method == "POST":
                return httpx.Response(201, json={"_id": "o1"})
            return httpx.Response(200, json={})

        state = await self._state(handler)
        state.role = "artisan"
        self._fill_cart(state)
        await state.place_order(ADDRESS, "Cash on Delivery")
        for expected in (OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            order = await state.advance_order("o1")
            self.assertEqual(order.status, expected)
        self.assertEqual(self.requests[-1].url.path, "/api/orders/o1/status")
        self.assertEqual(json.loads(self.requests[-1].content), {"status": "delivered"})
        with self.assertRaises(InvalidTransition):
            await state.advance_order("o1")
        await state.close()

    async def test_buyer_role_cannot_advance(self):
        state = await self._state()
        self._fill_cart(state)
        order = await state.place_order(ADDRESS, "Cash on Delivery")
        with self.assertRaises(InvalidTransition):
            await state.set_order_status(order.order_id, OrderStatus.SHIPPED)
        self.assertEqual(state.orders.get(order.order_id).status, OrderStatus.PENDING)
        await state.close()

    async def test_buyer_session_cannot_advance_order(self):
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return httpx.Response(201, json={"_id": "o1"})

        state = await self._state(handler)
        self._fill_cart(state)
        await state.place_order(ADDRESS, "Cash on Delivery")
        sent = len(self.requests)
        with self.assertRaises(InvalidTransition) as ctx:
            await state.advance_order("o1")
        self.assertEqual(ctx.exception.current, OrderStatus.PENDING)
        self.assertEqual(ctx.exception.requested, OrderStatus.PROCESSING)
        self.assertEqual(state.orders.get("o1").status, OrderStatus.PENDING)
        self.assertEqual(len(self.requests), sent)
        await state.close()

    async def test_status_changes_need_a_logged_in_role(self):
        state = await self._state()
        self._fill_cart(state)
        order = await state.place_order(ADDRESS, "Cash on Delivery")
        state.role = None
        with self.assertRaises(InvalidTransition):
            await state.set_order_status(order.order_id, OrderStatus.PROCESSING)
        with self.assertRaises(InvalidTransition):
            await state.advance_order(order.order_id)
        with self.assertRaises(InvalidTransition):
            await state.cancel_order(order.order_id)
        self.assertEqual(state.orders.get(order.order_id).status, OrderStatus.PENDING)
        await state.close()

    async def test_unknown_order(self):
        state = await self._state()
        with self.assertRaises(KeyError):
            await flow.cancel_order(state.orders, "missing")
        await state.close()

    async def test_explicit_timestamp_drives_local_id(self):
        state = await self._state()
        self._fill_cart(state)
        when = datetime(2025, 1, 24, 12, 0, 0)
        order = await flow.place_order(
            state.cart, state.orders, ADDRESS, "Cash on Delivery", now=when
        )
        self.assertEqual(order.order_id, str(int(when.timestamp() * 1000)))
        self.assertEqual(order.created_at, when)
        await state.close()

    async def test_orders_in_the_same_millisecond_get_distinct_ids(self):
        state = await self._state()
        when = datetime(2025, 1, 24, 12, 0, 0)
        placed = []
        for _ in range(2):
            self._fill_cart(state)
            placed.append(
                await flow.place_order(
                    state.cart, state.orders, ADDRESS, "Cash on Delivery", now=when
                )
            )
        first, second = placed
        self.assertNotEqual(first.order_id, second.order_id)
        self.assertNotEqual(first.order_number, second.order_number)
        self.assertEqual(len(state.orders), 2)
        self.assertEqual(len(state.cart), 0)
        await state.close()

    # ---------- Wiring ----------

    async def test_stored_token_reads_login_token(self):
        self.assertIsNone(await stored_token())
        await crud.set_item("userToken", "abc123")
        self.assertEqual(await stored_token(), "abc123")

    async def test_with_backend_builds_client(self):
        state = GlobalState.with_backend(seed_orders=False)
        self.assertIsInstance(state.client, BackendClient)
        await state.start()
        self.assertEqual(len(state.orders), 0)
        await state.close()
