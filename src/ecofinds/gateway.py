"""Async HTTP client for the marketplace REST API."""

import logging
from typing import Any

import httpx

from . import config
from .errors import (
    NotAuthenticatedError,
    ProductNotFoundError,
    ServerError,
    TransportError,
)
from .models import Cart, Order, PaymentMethod, Product, Session, ShippingAddress
from .schemas import (
    AddToCartRequest,
    CreateOrderRequest,
    ProductCreateRequest,
    ShippingAddressSchema,
    UpdateQuantityRequest,
)

log = logging.getLogger(__name__)


def _unwrap(payload: Any, key: str, marker: str) -> dict[str, Any] | None:
    """
    Pick the entity out of a response body.

    Mutations answer either the entity itself or {message, <key>: entity}. A
    bare entity is recognised by its marker field; a body with neither shape
    (such as a lone {message}) yields None.
    """
    if not isinstance(payload, dict):
        return None
    wrapped = payload.get(key)
    if isinstance(wrapped, dict):
        return wrapped
    if marker in payload:
        return payload
    return None


def _unwrap_list(payload: Any, key: str) -> list[Any] | None:
    """Collections arrive as a bare list or as {<key>: [...]}."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get(key), list):
        return payload[key]
    return None


def _server_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in ("message", "detail", "error"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return None


class CatalogGateway:
    """
    Thin typed wrapper over the marketplace API.

    Every method is a coroutine that either returns parsed models or raises a
    GatewayError subclass. Credentials come from the Session passed in; the
    gateway never looks them up on its own.
    """

    def __init__(
        self,
        session: Session,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if session.token:
            headers["Authorization"] = f"Bearer {session.token}"
        self.session = session
        self._client = httpx.AsyncClient(
            base_url=session.api_url,
            headers=headers,
            timeout=timeout if timeout is not None else config.REQUEST_TIMEOUT,
            transport=transport,
        )

    async def __aenter__(self) -> "CatalogGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        product_id: str | None = None,
    ) -> Any:
        """
        Send one request and decode the JSON body.

        Raises:
            TransportError: If no response was received.
            NotAuthenticatedError: On 401.
            ProductNotFoundError: On 404 when product_id is given.
            ServerError: On any other non-2xx status or an undecodable body.
        """
        log.debug("%s %s params=%s", method, path, params)
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            raise TransportError(method, path, "request timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(method, path, str(e) or type(e).__name__) from e

        if response.is_error:
            message = _server_message(response)
            if response.status_code == 401:
                raise NotAuthenticatedError(message)
            if response.status_code == 404 and product_id is not None:
                raise ProductNotFoundError(product_id, message)
            raise ServerError(
                response.status_code,
                message or f"{method} {path} failed with status {response.status_code}",
                message,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ServerError(
                response.status_code, f"{method} {path} returned a malformed body"
            ) from e

    def _missing(self, method: str, path: str, what: str) -> ServerError:
        log.warning("%s %s answered without %s", method, path, what)
        return ServerError(None, f"{method} {path} returned no {what}")

    async def _cart(self, method: str, path: str, **kwargs: Any) -> Cart:
        """Send a cart request; the body must carry the resulting cart."""
        payload = await self._request(method, path, **kwargs)
        cart = _unwrap(payload, "cart", "items")
        if cart is None:
            raise self._missing(method, path, "cart")
        return Cart.from_dict(cart)

    async def _list(self, method: str, path: str, key: str, **kwargs: Any) -> list[Any]:
        payload = await self._request(method, path, **kwargs)
        items = _unwrap_list(payload, key)
        if items is None:
            raise self._missing(method, path, key)
        return items

    # --- Catalog ---

    async def list_products(
        self, search: str | None = None, category: str | None = None
    ) -> list[Product]:
        params: dict[str, str] = {}
        if search:
            params["search"] = search
        if category:
            params["category"] = category
        items = await self._list("GET", "/products", "products", params=params)
        return [Product.from_dict(p) for p in items]

    async def list_categories(self) -> list[str]:
        items = await self._list("GET", "/products/meta/categories", "categories")
        return [str(c) for c in items]

    async def get_product(self, product_id: str) -> Product:
        path = f"/products/{product_id}"
        payload = await self._request("GET", path, product_id=product_id)
        product = _unwrap(payload, "product", "title")
        if product is None:
            raise self._missing("GET", path, "product")
        return Product.from_dict(product)

    # --- Listings ---

    async def create_product(self, request: ProductCreateRequest) -> Product | None:
        """Post a listing. Returns None when the server only acknowledges it."""
        payload = await self._request("POST", "/products", json=request.to_json())
        product = _unwrap(payload, "product", "title")
        if product is None:
            return None
        return Product.from_dict(product)

    async def my_products(self) -> list[Product]:
        items = await self._list("GET", "/products/user/my-products", "products")
        return [Product.from_dict(p) for p in items]

    async def delete_product(self, product_id: str) -> None:
        await self._request("DELETE", f"/products/{product_id}", product_id=product_id)

    # --- Cart ---

    async def get_cart(self) -> Cart:
        return await self._cart("GET", "/cart")

    async def add_to_cart(self, product_id: str, quantity: int = 1) -> Cart:
        body = AddToCartRequest(product_id=product_id, quantity=quantity)
        return await self._cart(
            "POST", "/cart/add", json=body.to_json(), product_id=product_id
        )

    async def update_cart_item(self, product_id: str, quantity: int) -> Cart:
        body = UpdateQuantityRequest(quantity=quantity)
        return await self._cart("PUT", f"/cart/update/{product_id}", json=body.to_json())

    async def remove_from_cart(self, product_id: str) -> Cart:
        return await self._cart("DELETE", f"/cart/remove/{product_id}")

    async def clear_cart(self) -> Cart:
        return await self._cart("DELETE", "/cart/clear")

    # --- Orders ---

    async def create_order(
        self,
        shipping_address: ShippingAddress,
        payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY,
    ) -> Order | None:
        """Place an order. Returns None when the server only acknowledges it."""
        body = CreateOrderRequest(
            shipping_address=ShippingAddressSchema.from_model(shipping_address),
            payment_method=payment_method,
        )
        payload = await self._request("POST", "/orders/create", json=body.to_json())
        order = _unwrap(payload, "order", "totalAmount")
        if order is None:
            return None
        return Order.from_dict(order)

    async def my_orders(self) -> list[Order]:
        items = await self._list("GET", "/orders/my-orders", "orders")
        return [Order.from_dict(o) for o in items]
