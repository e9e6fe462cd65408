"""Catalog browsing: debounced search queries and product detail."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from . import config
from .cart import CartStore
from .errors import GatewayError
from .gateway import CatalogGateway
from .models import Outcome, Product

log = logging.getLogger(__name__)

ALL_CATEGORIES = config.ALL_CATEGORIES


@dataclass
class QueryState:
    """What the catalog view shows."""

    search: str = ""
    category: str = ALL_CATEGORIES
    products: list[Product] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    loading: bool = False
    error: str | None = None

    def params(self) -> dict[str, str]:
        """Query parameters for the current search; empty values are omitted."""
        params: dict[str, str] = {}
        if self.search:
            params["search"] = self.search
        if self.category and self.category != ALL_CATEGORIES:
            params["category"] = self.category
        return params

    def summary(self) -> str:
        count = len(self.products)
        text = f"Showing {count} product{'' if count == 1 else 's'}"
        if self.search:
            text += f' for "{self.search}"'
        if self.category != ALL_CATEGORIES:
            text += f" in {self.category}"
        return text


class QueryComposer:
    """
    Turns search input and category selection into catalog fetches.

    Text changes are debounced: each one restarts a quiet-period timer and only
    the last term in a burst is sent. Category changes fetch immediately with
    the latest term, which also makes any pending timer redundant.

    Every dispatched fetch is tagged with a sequence number. Only the response
    to the most recently issued fetch is applied; earlier ones are dropped as
    stale, so a slow reply can never overwrite newer results.
    """

    def __init__(
        self,
        gateway: CatalogGateway,
        debounce_delay: float = config.DEBOUNCE_DELAY,
        on_change: Callable[[], None] | None = None,
    ):
        self.gateway = gateway
        self.debounce_delay = debounce_delay
        self.state = QueryState()
        self._on_change = on_change
        self._seq = 0
        self._timer: asyncio.TimerHandle | None = None
        self._inflight: set[asyncio.Task] = set()
        self._closed = False

    @property
    def issued(self) -> int:
        """Number of fetches dispatched so far."""
        return self._seq

    @property
    def pending(self) -> bool:
        """True while a debounced fetch is scheduled but not yet sent."""
        return self._timer is not None

    def set_search(self, term: str) -> None:
        """Record a text change and (re)start the debounce timer."""
        self.state.search = term
        self._cancel_timer()
        if self._closed:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_delay, self._on_timer)

    def set_category(self, category: str) -> asyncio.Task | None:
        """Select a category (or ALL_CATEGORIES) and fetch right away."""
        self.state.category = category or ALL_CATEGORIES
        self._cancel_timer()
        return self._dispatch()

    def refresh(self) -> asyncio.Task | None:
        """Fetch the current parameters immediately."""
        self._cancel_timer()
        return self._dispatch()

    async def load_categories(self) -> Outcome:
        try:
            categories = await self.gateway.list_categories()
        except GatewayError as e:
            # The category bar simply stays empty
            log.warning("Failed to load categories: %s", e)
            return Outcome.FAILED
        if self._closed:
            return Outcome.STALE
        self.state.categories = categories
        self._notify()
        return Outcome.APPLIED

    async def wait_idle(self) -> None:
        """Wait until no fetch is scheduled or in flight."""
        loop = asyncio.get_running_loop()
        while self._timer is not None or self._inflight:
            if self._inflight:
                await asyncio.wait(set(self._inflight))
            else:
                await asyncio.sleep(max(self._timer.when() - loop.time(), 0))

    def close(self) -> None:
        """Detach from the view: cancel the timer and ignore late responses."""
        self._closed = True
        self._cancel_timer()

    def dismiss_error(self) -> None:
        self.state.error = None
        self._notify()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        self._dispatch()

    def _dispatch(self) -> asyncio.Task | None:
        if self._closed:
            return None
        self._seq += 1
        seq = self._seq
        params = self.state.params()
        self.state.loading = True
        self._notify()
        task = asyncio.ensure_future(self._fetch(seq, params))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _fetch(self, seq: int, params: dict[str, str]) -> Outcome:
        try:
            products = await self.gateway.list_products(**params)
        except GatewayError as e:
            if not self._is_current(seq):
                return Outcome.STALE
            log.warning("Catalog query %s failed: %s", params, e)
            self.state.error = "Failed to load products"
            self.state.loading = False
            self._notify()
            return Outcome.FAILED

        if not self._is_current(seq):
            log.debug("Discarded stale catalog response #%d (latest #%d)", seq, self._seq)
            return Outcome.STALE

        self.state.products = products
        self.state.error = None
        self.state.loading = False
        self._notify()
        return Outcome.APPLIED

    def _is_current(self, seq: int) -> bool:
        return not self._closed and seq == self._seq

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()


class ProductDetail:
    """Single-product view with an add-to-cart action."""

    def __init__(self, gateway: CatalogGateway, user_id: str | None = None):
        self.gateway = gateway
        self.user_id = user_id
        self.product: Product | None = None
        self.error: str | None = None
        self.message: str | None = None
        self._adding = False
        self._closed = False

    async def load(self, product_id: str) -> Outcome:
        try:
            product = await self.gateway.get_product(product_id)
        except GatewayError as e:
            log.warning("Failed to load product %s: %s", product_id, e)
            if self._closed:
                return Outcome.STALE
            self.error = "Failed to load product details"
            return Outcome.FAILED
        if self._closed:
            return Outcome.STALE
        self.product = product
        self.error = None
        return Outcome.APPLIED

    def close(self) -> None:
        self._closed = True

    def is_own_product(self) -> bool:
        if self.product is None or self.product.seller is None or not self.user_id:
            return False
        return self.product.seller.id == self.user_id

    async def add_to_cart(self, cart: CartStore, quantity: int = 1) -> Outcome:
        if self.product is None:
            return Outcome.NOOP
        if self._adding:
            return Outcome.REJECTED
        if self.is_own_product():
            self.message = "You cannot add your own product to the cart"
            return Outcome.INVALID
        if not self.product.is_available:
            self.message = "This product is no longer available"
            return Outcome.INVALID

        self._adding = True
        try:
            outcome = await cart.add_item(self.product.id, quantity)
        finally:
            self._adding = False

        if self._closed:
            return outcome
        if outcome is Outcome.APPLIED:
            self.message = "Product added to cart successfully!"
        elif outcome is Outcome.FAILED:
            self.message = cart.error or "Failed to add to cart"
        return outcome
