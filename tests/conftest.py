"""Pytest fixtures for ecofinds tests."""

import asyncio
import tempfile
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

import httpx
import pytest

from ecofinds.gateway import CatalogGateway
from ecofinds.models import Cart, CartItem, Product, Seller, Session

from .fake_backend import BackendState, create_app

API_URL = "http://testserver/api"


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def data_dir(temp_dir, monkeypatch):
    """Point the session store at a temporary directory."""
    from ecofinds import config

    path = temp_dir / "data"
    monkeypatch.setattr(config, "DATA_DIR", path)
    return path


@pytest.fixture
def backend():
    """Fresh in-memory marketplace with a few of bob's products."""
    state = BackendState()
    state.add_product("Desk Lamp", 500, _id="p-lamp", category="Home & Garden", tags=["lighting"])
    state.add_product("Lamp Shade", 150, _id="p-shade", category="Home & Garden")
    state.add_product("Python Cookbook", 350, _id="p-book", category="Books")
    return state


def make_session(token: str = "token-alice", user_id: str = "u-alice") -> Session:
    return Session(api_url=API_URL, token=token, user_id=user_id, username="alice")


def backend_gateway(state: BackendState, token: str = "token-alice") -> CatalogGateway:
    """Gateway wired to the in-memory backend."""
    transport = httpx.ASGITransport(app=create_app(state))
    user_id = "u-alice" if token == "token-alice" else "u-bob"
    return CatalogGateway(make_session(token, user_id), transport=transport)


# --- Model builders ---


def make_product(
    product_id: str = "p1",
    price: str | int = "500",
    title: str = "Desk Lamp",
    seller_id: str = "u-bob",
    **kwargs: Any,
) -> Product:
    return Product(
        id=product_id,
        title=title,
        description=kwargs.pop("description", "Barely used"),
        price=Decimal(str(price)),
        category=kwargs.pop("category", "Home & Garden"),
        images=kwargs.pop("images", ["https://img.example/1.jpg"]),
        seller=Seller(id=seller_id, username="bob"),
        **kwargs,
    )


def make_cart(*lines: tuple[Product, int]) -> Cart:
    return Cart(items=[CartItem(product=p, quantity=q) for p, q in lines], id="cart-1")


# --- Scripted gateway ---


@dataclass
class Call:
    """One gateway call waiting for the test to settle it."""

    name: str
    args: tuple
    future: asyncio.Future

    def resolve(self, value: Any = None) -> None:
        self.future.set_result(value)

    def fail(self, error: BaseException) -> None:
        self.future.set_exception(error)


@dataclass
class ScriptedGateway:
    """
    Gateway double whose calls block until the test resolves them.

    Lets a test hold several requests in flight and settle them in any order.
    """

    calls: list[Call] = field(default_factory=list)
    session: Session = field(default_factory=make_session)

    def _call(self, name: str, *args: Any) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        self.calls.append(Call(name, args, future))
        return future

    def named(self, name: str) -> list[Call]:
        return [c for c in self.calls if c.name == name]

    async def list_products(self, search=None, category=None):
        return await self._call("list_products", search, category)

    async def list_categories(self):
        return await self._call("list_categories")

    async def get_product(self, product_id):
        return await self._call("get_product", product_id)

    async def create_product(self, request):
        return await self._call("create_product", request)

    async def my_products(self):
        return await self._call("my_products")

    async def delete_product(self, product_id):
        return await self._call("delete_product", product_id)

    async def get_cart(self):
        return await self._call("get_cart")

    async def add_to_cart(self, product_id, quantity=1):
        return await self._call("add_to_cart", product_id, quantity)

    async def update_cart_item(self, product_id, quantity):
        return await self._call("update_cart_item", product_id, quantity)

    async def remove_from_cart(self, product_id):
        return await self._call("remove_from_cart", product_id)

    async def clear_cart(self):
        return await self._call("clear_cart")

    async def create_order(self, shipping_address, payment_method=None):
        return await self._call("create_order", shipping_address, payment_method)

    async def my_orders(self):
        return await self._call("my_orders")


@pytest.fixture
def scripted():
    return ScriptedGateway()


async def settle(rounds: int = 5) -> None:
    """Let pending tasks run up to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)
