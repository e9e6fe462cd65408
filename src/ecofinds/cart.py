"""Client-side mirror of the server cart."""

import logging
from collections.abc import Awaitable, Callable
from contextlib import AbstractContextManager
from decimal import Decimal

from .errors import EntityLockedError, GatewayError, user_message
from .gateway import CatalogGateway
from .locks import LockTable
from .models import Cart, Outcome

log = logging.getLogger(__name__)


class CartStore:
    """
    Holds the last known-good cart and routes every change through the server.

    Successful mutations replace the local cart with the one the server
    returns; nothing is computed locally ahead of confirmation, so prices and
    availability are always the server's. Failed mutations leave the cart as it
    was and set ``error``.

    Item mutations hold the lock for their product id; ``clear_cart`` holds the
    whole table. Each request is also tagged with a cart version, and a
    response older than the last one applied is dropped.
    """

    def __init__(
        self,
        gateway: CatalogGateway,
        locks: LockTable | None = None,
        on_change: Callable[[], None] | None = None,
    ):
        self.gateway = gateway
        self.locks = locks if locks is not None else LockTable()
        self.cart = Cart.empty()
        self.error: str | None = None
        self._on_change = on_change
        self._issued = 0
        self._applied = 0
        self._closed = False

    # --- Projections ---

    def total(self) -> Decimal:
        """Sum of price x quantity over the current items."""
        return self.cart.total()

    def is_locked(self, product_id: str) -> bool:
        return self.locks.is_locked(product_id)

    @property
    def version(self) -> int:
        """Version of the cart currently shown."""
        return self._applied

    # --- Commands ---

    async def load(self) -> Outcome:
        """Fetch the authoritative cart."""
        return await self._send(self.gateway.get_cart, "load cart", "Failed to load cart")

    async def add_item(self, product_id: str, quantity: int = 1) -> Outcome:
        if quantity < 1:
            return Outcome.NOOP
        return await self._mutate(
            self.locks.hold(product_id),
            lambda: self.gateway.add_to_cart(product_id, quantity),
            f"add {product_id} x{quantity}",
            "Failed to add to cart",
        )

    async def set_quantity(self, product_id: str, new_quantity: int) -> Outcome:
        """Change a line quantity. Values below 1 are ignored; use remove_item."""
        if new_quantity < 1:
            return Outcome.NOOP
        return await self._mutate(
            self.locks.hold(product_id),
            lambda: self.gateway.update_cart_item(product_id, new_quantity),
            f"set {product_id} to {new_quantity}",
            "Failed to update item quantity",
        )

    async def increment(self, product_id: str) -> Outcome:
        item = self.cart.find(product_id)
        if item is None:
            return Outcome.NOOP
        return await self.set_quantity(product_id, item.quantity + 1)

    async def decrement(self, product_id: str) -> Outcome:
        item = self.cart.find(product_id)
        if item is None:
            return Outcome.NOOP
        return await self.set_quantity(product_id, item.quantity - 1)

    async def remove_item(self, product_id: str) -> Outcome:
        return await self._mutate(
            self.locks.hold(product_id),
            lambda: self.gateway.remove_from_cart(product_id),
            f"remove {product_id}",
            "Failed to remove item",
        )

    async def clear_cart(self) -> Outcome:
        """Empty the cart. The caller is responsible for asking the user first."""
        return await self._mutate(
            self.locks.hold_all(),
            self.gateway.clear_cart,
            "clear cart",
            "Failed to clear cart",
        )

    def clear_local(self) -> None:
        """
        Empty the cart without asking the server.

        Only for checkout, where the order-create call has already emptied the
        server cart. Bumps the version so any older response still in flight
        is discarded.
        """
        self._issued += 1
        self._applied = self._issued
        self.cart = Cart(items=[], id=self.cart.id)
        self._notify()

    def close(self) -> None:
        """Stop applying responses; requests still in flight are ignored."""
        self._closed = True

    def dismiss_error(self) -> None:
        self.error = None
        self._notify()

    # --- Internals ---

    async def _mutate(
        self,
        guard: AbstractContextManager,
        request: Callable[[], Awaitable[Cart]],
        action: str,
        failure_message: str,
    ) -> Outcome:
        try:
            with guard:
                self._notify()
                outcome = await self._send(request, action, failure_message)
        except EntityLockedError:
            return Outcome.REJECTED
        # Lock is released here; let the view re-enable the controls
        if not self._closed:
            self._notify()
        return outcome

    async def _send(
        self,
        request: Callable[[], Awaitable[Cart]],
        action: str,
        failure_message: str,
    ) -> Outcome:
        self._issued += 1
        version = self._issued
        try:
            cart = await request()
        except GatewayError as e:
            log.warning("Cart %s failed: %s", action, e)
            if self._closed:
                return Outcome.STALE
            self.error = user_message(e, failure_message)
            self._notify()
            return Outcome.FAILED

        if self._closed:
            log.debug("Discarded cart response v%d after close", version)
            return Outcome.STALE
        if version < self._applied:
            log.debug("Discarded stale cart response v%d (showing v%d)", version, self._applied)
            return Outcome.STALE

        self._applied = version
        self.cart = cart
        log.info("Cart %s applied (v%d, %d items)", action, version, cart.item_count)
        self._notify()
        return Outcome.APPLIED

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()
