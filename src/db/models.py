# provide dataclass models and their persisted JSON shapes
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from utils import pure
from utils.errors import ValidationError


def _field(data: Any, key: str) -> Any:
    if not isinstance(data, dict):
        raise ValidationError({"_": f"expected an object, got {type(data).__name__}"})
    if key not in data:
        raise ValidationError({key: "is required"})
    return data[key]


def _text(value: Any, key: str, optional: bool = False) -> Optional[str]:
    if value is None and optional:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        raise ValidationError({key: "must be text"})
    return value


def to_price(value: Any, key: str = "price") -> Decimal:
    """Parse a non-negative, finite amount; bools and blanks are rejected."""
    if value is None or isinstance(value, bool):
        raise ValidationError({key: "must be a number"})
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError({key: "must be a number"}) from None
    if not amount.is_finite():
        raise ValidationError({key: "must be a number"})
    if amount < 0:
        raise ValidationError({key: "cannot be negative"})
    return amount


def _parse_datetime(value: Any, key: str) -> datetime:
    if not isinstance(value, str):
        raise ValidationError({key: "must be an ISO-8601 date"})
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError({key: "must be an ISO-8601 date"}) from None


def _ref(value: Any) -> Optional[str]:
    # backend may send a populated document instead of an id
    if isinstance(value, dict):
        value = value.get("name") or value.get("_id")
    return None if value is None else str(value)


_LEGACY_STATUS = {
    "placed": "pending",
    "confirmed": "processing",
}


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Any) -> "OrderStatus":
        """Accepts members, canonical values in any case, and legacy labels."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValidationError({"status": f"unknown status {value!r}"})
        key = value.strip().lower()
        key = _LEGACY_STATUS.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValidationError({"status": f"unknown status {value!r}"}) from None


@dataclass(frozen=True)
class Product:
    product_id: str
    name: str
    price: Decimal
    image_ref: Optional[str] = None
    artisan_ref: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        """Build from a catalogue document keyed `productId`, `_id` or `id`."""
        if not isinstance(data, dict):
            raise ValidationError({"_": "expected an object"})
        for key in ("productId", "_id", "id"):
            if data.get(key) is not None:
                product_id = _text(data[key], "productId")
                break
        else:
            raise ValidationError({"productId": "is required"})
        return cls(
            product_id=product_id,
            name=_text(_field(data, "name"), "name"),
            price=to_price(_field(data, "price")),
            image_ref=_text(data.get("imageRef", data.get("image")), "imageRef", True),
            artisan_ref=_ref(data.get("artisanRef", data.get("artisan"))),
        )


@dataclass(frozen=True)
class CartLineItem:
    product_id: str
    quantity: int
    name: str
    price: Decimal
    image_ref: Optional[str] = None
    artisan_ref: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> "CartLineItem":
        return cls(
            product_id=product.product_id,
            quantity=quantity,
            name=product.name,
            price=product.price,
            image_ref=product.image_ref,
            artisan_ref=product.artisan_ref,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "quantity": self.quantity,
            "name": self.name,
            "price": float(self.price),
            "imageRef": self.image_ref,
            "artisanRef": self.artisan_ref,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartLineItem":
        quantity = _field(data, "quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError({"quantity": "must be an integer of at least 1"})
        return cls(
            product_id=_text(_field(data, "productId"), "productId"),
            quantity=quantity,
            name=_text(_field(data, "name"), "name"),
            price=to_price(_field(data, "price")),
            image_ref=_text(data.get("imageRef"), "imageRef", True),
            artisan_ref=_text(data.get("artisanRef"), "artisanRef", True),
        )


@dataclass(frozen=True)
class WishlistEntry:
    product_id: str
    name: str
    price: Decimal
    image_ref: Optional[str] = None

    @classmethod
    def from_product(cls, product: Product) -> "WishlistEntry":
        return cls(
            product_id=product.product_id,
            name=product.name,
            price=product.price,
            image_ref=product.image_ref,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "name": self.name,
            "price": float(self.price),
            "imageRef": self.image_ref,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WishlistEntry":
        return cls(
            product_id=_text(_field(data, "productId"), "productId"),
            name=_text(_field(data, "name"), "name"),
            price=to_price(_field(data, "price")),
            image_ref=_text(data.get("imageRef"), "imageRef", True),
        )


@dataclass(frozen=True)
class ShippingAddress:
    house_no: str
    street: str
    city: str
    state: str
    postal_code: str

    def one_line(self) -> str:
        parts = (self.house_no, self.street, self.city, self.state, self.postal_code)
        return ", ".join(p for p in parts if p)

    def to_dict(self) -> Dict[str, str]:
        return {
            "houseNo": self.house_no,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "postalCode": self.postal_code,
        }

    def to_api(self) -> Dict[str, str]:
        """Backend shape: house number folded into the street line."""
        street = f"{self.house_no}, {self.street}" if self.house_no else self.street
        return {
            "street": street,
            "city": self.city,
            "state": self.state,
            "postalCode": self.postal_code,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShippingAddress":
        return cls(
            house_no=_text(_field(data, "houseNo"), "houseNo"),
            street=_text(_field(data, "street"), "street"),
            city=_text(_field(data, "city"), "city"),
            state=_text(_field(data, "state"), "state"),
            postal_code=_text(_field(data, "postalCode"), "postalCode"),
        )

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ShippingAddress":
        return cls(
            house_no="",
            street=_text(data.get("street", ""), "street"),
            city=_text(data.get("city", ""), "city"),
            state=_text(data.get("state", ""), "state"),
            postal_code=_text(data.get("postalCode", ""), "postalCode"),
        )


@dataclass(frozen=True)
class Order:
    order_id: str
    order_number: str
    status: OrderStatus
    line_items: Tuple[CartLineItem, ...]
    total_amount: Decimal
    shipping_address: Optional[ShippingAddress]
    payment_method: Optional[str]
    created_at: datetime

    def __post_init__(self):
        # frozen: coerce through object.__setattr__
        if not isinstance(self.line_items, tuple):
            object.__setattr__(self, "line_items", tuple(self.line_items))
        if not isinstance(self.status, OrderStatus):
            object.__setattr__(self, "status", OrderStatus.parse(self.status))

    @property
    def item_count(self) -> int:
        return len(self.line_items)

    @property
    def items_summary(self) -> str:
        return pure.items_summary(self.item_count)

    def with_status(self, status: OrderStatus) -> "Order":
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "orderNumber": self.order_number,
            "status": self.status.value,
            "items": self.items_summary,
            "lineItems": [item.to_dict() for item in self.line_items],
            "totalAmount": float(self.total_amount),
            "date": self.created_at.isoformat(),
            "address": self.shipping_address.to_dict() if self.shipping_address else None,
            "paymentMethod": self.payment_method,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        raw_items = _field(data, "lineItems")
        if not isinstance(raw_items, list):
            raise ValidationError({"lineItems": "must be a list"})
        address = data.get("address")
        return cls(
            order_id=_text(_field(data, "orderId"), "orderId"),
            order_number=_text(_field(data, "orderNumber"), "orderNumber"),
            status=OrderStatus.parse(_field(data, "status")),
            line_items=tuple(CartLineItem.from_dict(i) for i in raw_items),
            total_amount=to_price(_field(data, "totalAmount"), "totalAmount"),
            shipping_address=ShippingAddress.from_dict(address) if address is not None else None,
            payment_method=_text(data.get("paymentMethod"), "paymentMethod", True),
            created_at=_parse_datetime(_field(data, "date"), "date"),
        )

    @classmethod
    def from_api(
        cls,
        data: Dict[str, Any],
        line_items: Optional[Iterable[CartLineItem]] = None,
    ) -> "Order":
        """
        Build from a backend order document.

        `line_items` overrides the document's products, used right after
        checkout when the local snapshot is richer than the response.
        """
        order_id = data.get("_id", data.get("id"))
        if order_id is None:
            raise ValidationError({"_id": "is required"})
        order_id = str(order_id)

        if line_items is None:
            line_items = [_line_from_api(p) for p in data.get("products") or []]

        address = data.get("shippingAddress")
        created = data.get("createdAt")
        return cls(
            order_id=order_id,
            order_number=str(data.get("orderNumber") or pure.order_number_for(order_id)),
            status=OrderStatus.parse(data.get("status", OrderStatus.PENDING)),
            line_items=tuple(line_items),
            total_amount=to_price(data.get("totalAmount", 0), "totalAmount"),
            shipping_address=ShippingAddress.from_api(address) if isinstance(address, dict) else None,
            payment_method=_text(data.get("paymentMethod"), "paymentMethod", True),
            created_at=_parse_datetime(created, "createdAt") if created else datetime.now(),
        )


def _line_from_api(data: Dict[str, Any]) -> CartLineItem:
    product = _field(data, "product")
    if isinstance(product, dict):
        product_id = _text(product.get("_id", product.get("id")), "product")
        name = product.get("name") or ""
        image_ref = product.get("image")
        artisan_ref = _ref(product.get("artisan"))
    else:
        product_id = _text(product, "product")
        name, image_ref, artisan_ref = "", None, None
    quantity = data.get("quantity", 1)
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError({"quantity": "must be an integer of at least 1"})
    return CartLineItem(
        product_id=product_id,
        quantity=quantity,
        name=name,
        price=to_price(data.get("price", 0)),
        image_ref=image_ref,
        artisan_ref=artisan_ref,
    )
