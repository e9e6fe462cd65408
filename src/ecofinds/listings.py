"""Seller-owned listings: validated creation and locked deletion."""

import asyncio
import logging
from collections.abc import Callable

from . import config, navigation
from .errors import EntityLockedError, GatewayError, ListingValidationError, user_message
from .gateway import CatalogGateway
from .locks import LockTable
from .models import ListingDraft, Outcome, Product
from .schemas import ProductCreateRequest
from .utils import parse_price, parse_tags

log = logging.getLogger(__name__)


def validate_draft(draft: ListingDraft) -> ProductCreateRequest:
    """
    Check a draft and turn it into a request body.

    Checks run in form order and the first failure wins. Blank image entries
    are dropped; tags are split on commas and trimmed.

    Raises:
        ListingValidationError: If a required field is missing or invalid.
    """
    title = (draft.title or "").strip()
    if not title:
        raise ListingValidationError("title", "Product title is required")

    description = (draft.description or "").strip()
    if not description:
        raise ListingValidationError("description", "Product description is required")

    price = parse_price(draft.price)
    if price is None or price <= 0:
        raise ListingValidationError("price", "Valid price is required")

    if not draft.category:
        raise ListingValidationError("category", "Category selection is required")

    images = [url.strip() for url in draft.images if url and url.strip()]
    if not images:
        raise ListingValidationError("images", "At least one image URL is required")

    return ProductCreateRequest(
        title=title,
        description=description,
        price=price,
        category=draft.category,
        condition=draft.condition,
        images=images,
        tags=parse_tags(draft.tags),
    )


class ListingManager:
    """
    The current user's listings.

    New listings are never inserted locally: after the server accepts one the
    collection is fetched again, so ids and timestamps come from the server.
    Deletion holds the lock for the listing id and drops the id locally once
    the server confirms.
    """

    def __init__(
        self,
        gateway: CatalogGateway,
        locks: LockTable | None = None,
        navigate: navigation.Navigator | None = None,
        redirect_delay: float = config.LISTING_REDIRECT_DELAY,
        on_change: Callable[[], None] | None = None,
    ):
        self.gateway = gateway
        self.locks = locks if locks is not None else LockTable()
        self.products: list[Product] = []
        self.error: str | None = None
        self.success: str | None = None
        self._navigate = navigate
        self._redirect_delay = redirect_delay
        self._redirect: asyncio.TimerHandle | None = None
        self._creating = False
        self._on_change = on_change
        self._version = 0
        self._closed = False

    def available_count(self) -> int:
        return sum(1 for p in self.products if p.is_available)

    def sold_count(self) -> int:
        return sum(1 for p in self.products if not p.is_available)

    def is_locked(self, product_id: str) -> bool:
        return self.locks.is_locked(product_id)

    @property
    def creating(self) -> bool:
        return self._creating

    async def load(self) -> Outcome:
        """
        Fetch the user's listings.

        A result is dropped when a newer load was issued or a delete landed
        while it was in flight, so a deleted listing cannot come back.
        """
        self._version += 1
        version = self._version
        try:
            products = await self.gateway.my_products()
        except GatewayError as e:
            if self._closed or version != self._version:
                return Outcome.STALE
            log.warning("Failed to load listings: %s", e)
            self.error = "Failed to load your products"
            self._notify()
            return Outcome.FAILED
        if self._closed or version != self._version:
            log.debug("Dropping listings load %d (current %d)", version, self._version)
            return Outcome.STALE
        self.products = products
        self._notify()
        return Outcome.APPLIED

    async def create_listing(self, draft: ListingDraft) -> Outcome:
        """Validate and submit a new listing, then re-fetch the collection."""
        if self._creating:
            return Outcome.REJECTED

        self.success = None
        try:
            request = validate_draft(draft)
        except ListingValidationError as e:
            self.error = e.message
            self._notify()
            return Outcome.INVALID

        self.error = None
        self._creating = True
        self._notify()
        try:
            await self.gateway.create_product(request)
        except GatewayError as e:
            if self._closed:
                return Outcome.STALE
            log.warning("Failed to create listing %r: %s", request.title, e)
            self.error = user_message(e, "Failed to create product")
            return Outcome.FAILED
        finally:
            self._creating = False
            if not self._closed:
                self._notify()

        log.info("Listing %r created", request.title)
        if self._closed:
            return Outcome.STALE
        self.success = "Product created successfully!"
        await self.load()
        if self._closed:
            return Outcome.APPLIED
        self._redirect = navigation.schedule(
            self._navigate, navigation.VIEW_LISTINGS, self._redirect_delay
        )
        return Outcome.APPLIED

    async def delete_listing(self, product_id: str) -> Outcome:
        """Delete a listing. The caller is responsible for asking the user first."""
        try:
            with self.locks.hold(product_id):
                self._notify()
                try:
                    await self.gateway.delete_product(product_id)
                except GatewayError as e:
                    if self._closed:
                        return Outcome.STALE
                    log.warning("Failed to delete listing %s: %s", product_id, e)
                    self.error = user_message(e, "Failed to delete product")
                    outcome = Outcome.FAILED
                else:
                    log.info("Listing %s deleted", product_id)
                    if self._closed:
                        return Outcome.STALE
                    self._version += 1
                    self.products = [p for p in self.products if p.id != product_id]
                    outcome = Outcome.APPLIED
        except EntityLockedError:
            return Outcome.REJECTED
        self._notify()
        return outcome

    def close(self) -> None:
        """Detach from the screen: cancel the redirect and ignore late responses."""
        self._closed = True
        self.cancel_redirect()

    def cancel_redirect(self) -> None:
        if self._redirect is not None:
            self._redirect.cancel()
            self._redirect = None

    def dismiss_error(self) -> None:
        self.error = None
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()
