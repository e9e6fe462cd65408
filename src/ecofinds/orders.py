"""Checkout and order history."""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from . import config, navigation
from .cart import CartStore
from .errors import CheckoutInProgressError, EntityLockedError, GatewayError, user_message
from .gateway import CatalogGateway
from .models import Order, Outcome, PaymentMethod, ShippingAddress

log = logging.getLogger(__name__)


class CheckoutState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CheckoutFlow:
    """
    One-shot order submission.

    idle -> submitting -> succeeded, or idle -> submitting -> failed -> idle.
    A submit outside ``idle`` is rejected without a request, which is what
    keeps repeated clicks from creating duplicate orders. The flow also holds
    the cart-wide lock, so it cannot start while an item mutation is in flight.

    On success the local cart is emptied right away instead of being
    re-fetched: the order-create call empties the server cart too. This is
    the only optimistic write in the client, and the cart stays empty even if
    the order history fetched afterwards fails to load.
    """

    def __init__(
        self,
        gateway: CatalogGateway,
        cart: CartStore,
        navigate: navigation.Navigator | None = None,
        redirect_delay: float = config.CHECKOUT_REDIRECT_DELAY,
        on_change: Callable[[], None] | None = None,
    ):
        self.gateway = gateway
        self.cart = cart
        self.state = CheckoutState.IDLE
        self.error: str | None = None
        self.order: Order | None = None
        self._navigate = navigate
        self._redirect_delay = redirect_delay
        self._redirect: asyncio.TimerHandle | None = None
        self._on_change = on_change
        self._closed = False

    @property
    def can_submit(self) -> bool:
        return self.state is CheckoutState.IDLE and not self.cart.locks.any_held()

    async def submit(
        self,
        shipping_address: ShippingAddress,
        payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY,
    ) -> Outcome:
        if self.cart.cart.is_empty:
            return Outcome.NOOP
        try:
            self._ensure_idle()
            with self.cart.locks.hold_all():
                return await self._submit(shipping_address, payment_method)
        except (CheckoutInProgressError, EntityLockedError) as e:
            log.debug("Checkout rejected: %s", e)
            return Outcome.REJECTED

    def cancel_redirect(self) -> None:
        """Drop the pending move to order history (the view went away)."""
        if self._redirect is not None:
            self._redirect.cancel()
            self._redirect = None

    def close(self) -> None:
        """Detach from the screen: cancel the redirect and ignore late responses."""
        self._closed = True
        self.cancel_redirect()

    def dismiss_error(self) -> None:
        self.error = None
        self._notify()

    def _ensure_idle(self) -> None:
        if self.state is not CheckoutState.IDLE:
            raise CheckoutInProgressError(self.state.value)

    async def _submit(
        self, shipping_address: ShippingAddress, payment_method: PaymentMethod
    ) -> Outcome:
        self.error = None
        self._set_state(CheckoutState.SUBMITTING)
        try:
            order = await self.gateway.create_order(shipping_address, payment_method)
        except GatewayError as e:
            log.warning("Checkout failed: %s", e)
            if self._closed:
                return Outcome.STALE
            self.error = user_message(e, "Failed to create order")
            self._set_state(CheckoutState.FAILED)
            self._set_state(CheckoutState.IDLE)
            return Outcome.FAILED

        if order is not None:
            log.info("Order %s placed", order.id)
        else:
            log.info("Order placed")
        # The server cart is empty now whether or not this view is still open
        self.cart.clear_local()
        if self._closed:
            return Outcome.STALE
        self.order = order
        self._set_state(CheckoutState.SUCCEEDED)
        self._redirect = navigation.schedule(
            self._navigate, navigation.VIEW_ORDERS, self._redirect_delay
        )
        return Outcome.APPLIED

    def _set_state(self, state: CheckoutState) -> None:
        self.state = state
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()


class OrderHistory:
    """The current user's past orders, newest first as the server sends them."""

    def __init__(self, gateway: CatalogGateway):
        self.gateway = gateway
        self.orders: list[Order] = []
        self.error: str | None = None
        self._closed = False

    async def load(self) -> Outcome:
        try:
            orders = await self.gateway.my_orders()
        except GatewayError as e:
            log.warning("Failed to load order history: %s", e)
            if self._closed:
                return Outcome.STALE
            self.error = "Failed to load order history"
            return Outcome.FAILED
        if self._closed:
            return Outcome.STALE
        self.orders = orders
        self.error = None
        return Outcome.APPLIED

    def close(self) -> None:
        self._closed = True
