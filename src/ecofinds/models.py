"""Data models for ecofinds."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON number (or numeric string) to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _entity_id(data: dict[str, Any]) -> str:
    # The server uses Mongo-style "_id"; accept "id" as well
    return str(data.get("_id") or data.get("id") or "")


class Condition(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"


class Outcome(str, Enum):
    """Result of a view-model command."""

    APPLIED = "applied"  # server confirmed, local state replaced
    NOOP = "noop"  # nothing to do, no request sent
    REJECTED = "rejected"  # entity busy, no request sent
    INVALID = "invalid"  # failed local validation, no request sent
    FAILED = "failed"  # request failed, state left as it was
    STALE = "stale"  # response superseded, discarded


@dataclass
class Seller:
    id: str
    username: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"_id": self.id, "username": self.username}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str | None) -> "Seller":
        # Unpopulated references arrive as a bare id string
        if data is None:
            return cls(id="")
        if isinstance(data, str):
            return cls(id=data)
        return cls(id=_entity_id(data), username=data.get("username", ""))


@dataclass
class Product:
    """A catalog product as returned by the server."""

    id: str
    title: str
    description: str
    price: Decimal
    category: str
    condition: Condition = Condition.GOOD
    images: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    is_available: bool = True
    views: int = 0
    created_at: str = ""
    seller: Seller | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "_id": self.id,
            "title": self.title,
            "description": self.description,
            "price": str(self.price),
            "category": self.category,
            "condition": self.condition.value,
            "images": list(self.images),
            "tags": list(self.tags),
            "isAvailable": self.is_available,
            "views": self.views,
            "createdAt": self.created_at,
        }
        if self.seller is not None:
            result["seller"] = self.seller.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        seller = None
        if data.get("seller") is not None:
            seller = Seller.from_dict(data["seller"])
        return cls(
            id=_entity_id(data),
            title=data.get("title", ""),
            description=data.get("description", ""),
            price=to_decimal(data.get("price", 0)),
            category=data.get("category", ""),
            condition=Condition(data.get("condition", Condition.GOOD.value)),
            images=list(data.get("images", [])),
            tags=list(data.get("tags", [])),
            is_available=data.get("isAvailable", data.get("is_available", True)),
            views=data.get("views", 0),
            created_at=data.get("createdAt", data.get("created_at", "")),
            seller=seller,
        )

    @property
    def primary_image(self) -> str | None:
        return self.images[0] if self.images else None


@dataclass
class CartItem:
    """A product in the cart with its quantity (always >= 1)."""

    product: Product
    quantity: int

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def subtotal(self) -> Decimal:
        return self.product.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {"product": self.product.to_dict(), "quantity": self.quantity}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartItem":
        return cls(
            product=Product.from_dict(data["product"]),
            quantity=int(data.get("quantity", 1)),
        )


@dataclass
class Cart:
    """Client-side mirror of the server cart."""

    items: list[CartItem] = field(default_factory=list)
    id: str = ""

    def total(self) -> Decimal:
        """Sum of price x quantity over the current items."""
        return sum((item.subtotal for item in self.items), Decimal("0"))

    def find(self, product_id: str) -> CartItem | None:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict[str, Any]:
        return {"_id": self.id, "items": [i.to_dict() for i in self.items]}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Cart":
        if not data:
            return cls()
        return cls(
            items=[CartItem.from_dict(i) for i in data.get("items", [])],
            id=_entity_id(data),
        )

    @classmethod
    def empty(cls) -> "Cart":
        return cls()


@dataclass(frozen=True)
class ShippingAddress:
    street: str
    city: str
    state: str
    zip_code: str
    country: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "country": self.country,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShippingAddress":
        return cls(
            street=data.get("street", ""),
            city=data.get("city", ""),
            state=data.get("state", ""),
            zip_code=data.get("zipCode", data.get("zip_code", "")),
            country=data.get("country", ""),
        )


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    title: str
    price: Decimal
    quantity: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderItem":
        product = data.get("product")
        # Order items carry either a populated product or just its id
        if isinstance(product, dict):
            product_id = _entity_id(product)
            title = data.get("title") or product.get("title", "")
            price = data.get("price", product.get("price", 0))
        else:
            product_id = str(product or "")
            title = data.get("title", "")
            price = data.get("price", 0)
        return cls(
            product_id=product_id,
            title=title,
            price=to_decimal(price),
            quantity=int(data.get("quantity", 1)),
        )


@dataclass(frozen=True)
class Order:
    """An order snapshot. Read-only on the client; status is set by the server."""

    id: str
    items: tuple[OrderItem, ...]
    shipping_address: ShippingAddress | None
    total_amount: Decimal
    status: OrderStatus = OrderStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    created_at: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        address = None
        if data.get("shippingAddress"):
            address = ShippingAddress.from_dict(data["shippingAddress"])
        return cls(
            id=_entity_id(data),
            items=tuple(OrderItem.from_dict(i) for i in data.get("items", [])),
            shipping_address=address,
            total_amount=to_decimal(data.get("totalAmount", 0)),
            status=OrderStatus(data.get("status", OrderStatus.PENDING.value)),
            payment_method=PaymentMethod(
                data.get("paymentMethod", PaymentMethod.CASH_ON_DELIVERY.value)
            ),
            created_at=data.get("createdAt", ""),
        )


@dataclass
class ListingDraft:
    """Listing form contents as typed by the seller, before validation."""

    title: str = ""
    description: str = ""
    price: str | Decimal | float | int | None = None
    category: str = ""
    condition: Condition = Condition.GOOD
    images: list[str] = field(default_factory=lambda: [""])
    tags: str = ""


@dataclass
class Session:
    """Credentials and endpoint injected into the gateway."""

    api_url: str
    token: str
    user_id: str | None = None
    username: str | None = None
    created_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "api_url": self.api_url,
            "token": self.token,
            "created_at": self.created_at,
        }
        if self.user_id is not None:
            result["user_id"] = self.user_id
        if self.username is not None:
            result["username"] = self.username
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Session":
        return cls(
            api_url=data["api_url"],
            token=data["token"],
            user_id=data.get("user_id"),
            username=data.get("username"),
            created_at=data.get("created_at", ""),
        )
