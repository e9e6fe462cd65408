"""Tests for listing validation and the ListingManager."""

import asyncio
from decimal import Decimal

import pytest

from ecofinds.errors import ListingValidationError, ServerError
from ecofinds.listings import ListingManager, validate_draft
from ecofinds.models import Condition, ListingDraft, Outcome
from ecofinds.navigation import VIEW_LISTINGS

from .conftest import backend_gateway, make_product, settle


def _draft(**overrides) -> ListingDraft:
    values = dict(
        title="Oak Bookshelf",
        description="Five shelves, solid oak",
        price="2500",
        category="Furniture",
        condition=Condition.EXCELLENT,
        images=["https://img.example/shelf.jpg"],
        tags="wood, storage , ,oak",
    )
    values.update(overrides)
    return ListingDraft(**values)


class TestValidateDraft:
    def test_valid_draft(self):
        request = validate_draft(_draft())
        assert request.title == "Oak Bookshelf"
        assert request.price == 2500.0
        assert request.tags == ["wood", "storage", "oak"]
        assert request.to_json()["condition"] == "Excellent"

    @pytest.mark.parametrize(
        "overrides,field,message",
        [
            ({"title": "   "}, "title", "Product title is required"),
            ({"description": ""}, "description", "Product description is required"),
            ({"price": "abc"}, "price", "Valid price is required"),
            ({"price": "0"}, "price", "Valid price is required"),
            ({"price": "-5"}, "price", "Valid price is required"),
            ({"price": None}, "price", "Valid price is required"),
            ({"category": ""}, "category", "Category selection is required"),
            ({"images": ["", "  "]}, "images", "At least one image URL is required"),
        ],
    )
    def test_invalid_fields(self, overrides, field, message):
        with pytest.raises(ListingValidationError) as exc_info:
            validate_draft(_draft(**overrides))
        assert exc_info.value.field == field
        assert exc_info.value.message == message

    def test_first_failure_wins(self):
        with pytest.raises(ListingValidationError) as exc_info:
            validate_draft(_draft(title="", price="abc", category=""))
        assert exc_info.value.field == "title"

    def test_blank_images_dropped(self):
        request = validate_draft(_draft(images=["", " https://img.example/a.jpg ", ""]))
        assert request.images == ["https://img.example/a.jpg"]

    def test_decimal_price_accepted(self):
        assert validate_draft(_draft(price=Decimal("19.99"))).price == Decimal("19.99")

    def test_price_serialized_without_float_drift(self):
        assert validate_draft(_draft(price="19.99")).to_json()["price"] == 19.99
        whole = validate_draft(_draft(price="2500")).to_json()["price"]
        assert whole == 2500
        assert isinstance(whole, int)


class TestCreateListing:
    def test_invalid_draft_sends_nothing(self, scripted):
        async def scenario():
            manager = ListingManager(scripted)
            outcome = await manager.create_listing(_draft(title="", price="10", category="Books"))
            return manager, outcome

        manager, outcome = asyncio.run(scenario())
        assert outcome is Outcome.INVALID
        assert manager.error == "Product title is required"
        assert scripted.calls == []

    def test_create_refetches_and_schedules_redirect(self, backend):
        views = []

        async def scenario():
            async with backend_gateway(backend, token="token-bob") as gateway:
                manager = ListingManager(gateway, navigate=views.append, redirect_delay=0.01)
                outcome = await manager.create_listing(_draft())
                assert views == []
                await asyncio.sleep(0.05)
                return manager, outcome

        manager, outcome = asyncio.run(scenario())
        assert outcome is Outcome.APPLIED
        assert manager.success == "Product created successfully!"
        assert backend.count("POST", "/products") == 1
        assert backend.count("GET", "/products/user/my-products") == 1
        titles = sorted(p.title for p in manager.products)
        assert "Oak Bookshelf" in titles
        created = next(p for p in manager.products if p.title == "Oak Bookshelf")
        assert created.tags == ["wood", "storage", "oak"]
        assert created.id
        assert views == [VIEW_LISTINGS]

    def test_cancel_redirect(self, backend):
        views = []

        async def scenario():
            async with backend_gateway(backend) as gateway:
                manager = ListingManager(gateway, navigate=views.append, redirect_delay=0.01)
                await manager.create_listing(_draft())
                manager.cancel_redirect()
                await asyncio.sleep(0.05)

        asyncio.run(scenario())
        assert views == []

    def test_server_rejection_shows_message(self, backend):
        async def scenario():
            async with backend_gateway(backend) as gateway:
                manager = ListingManager(gateway)
                outcome = await manager.create_listing(_draft(category="Spaceships"))
                return manager, outcome

        manager, outcome = asyncio.run(scenario())
        assert outcome is Outcome.FAILED
        assert manager.error == "Invalid category"
        assert not manager.creating
        assert manager.success is None

    def test_generic_message_without_server_text(self, scripted):
        async def scenario():
            manager = ListingManager(scripted)
            task = asyncio.ensure_future(manager.create_listing(_draft()))
            await settle()
            scripted.calls[-1].fail(ServerError(500, "POST /products failed with status 500"))
            return manager, await task

        manager, outcome = asyncio.run(scenario())
        assert outcome is Outcome.FAILED
        assert manager.error == "Failed to create product"

    def test_double_submit_rejected(self, scripted):
        async def scenario():
            manager = ListingManager(scripted)
            first = asyncio.ensure_future(manager.create_listing(_draft()))
            await settle()
            assert manager.creating
            assert await manager.create_listing(_draft()) is Outcome.REJECTED
            assert len(scripted.named("create_product")) == 1
            scripted.calls[-1].resolve(None)
            await settle()
            scripted.calls[-1].resolve([])
            assert await first is Outcome.APPLIED

        asyncio.run(scenario())


class TestDeleteListing:
    def test_delete_removes_locally(self, backend):
        async def scenario():
            async with backend_gateway(backend, token="token-bob") as gateway:
                manager = ListingManager(gateway)
                await manager.load()
                outcome = await manager.delete_listing("p-shade")
                return manager, outcome

        manager, outcome = asyncio.run(scenario())
        assert outcome is Outcome.APPLIED
        assert "p-shade" not in [p.id for p in manager.products]
        assert "p-shade" not in backend.products
        assert not manager.is_locked("p-shade")

    def test_concurrent_delete_sends_one_request(self, scripted):
        async def scenario():
            manager = ListingManager(scripted)
            manager.products = [make_product("p-lamp", seller_id="u-alice")]
            first = asyncio.ensure_future(manager.delete_listing("p-lamp"))
            await settle()
            assert manager.is_locked("p-lamp")
            assert await manager.delete_listing("p-lamp") is Outcome.REJECTED
            assert len(scripted.named("delete_product")) == 1
            scripted.calls[-1].resolve(None)
            assert await first is Outcome.APPLIED
            assert manager.products == []

        asyncio.run(scenario())

    def test_failed_delete_keeps_listing(self, backend):
        async def scenario():
            async with backend_gateway(backend) as gateway:
                manager = ListingManager(gateway)
                manager.products = [make_product("p-lamp")]
                # alice does not own p-lamp
                outcome = await manager.delete_listing("p-lamp")
                return manager, outcome

        manager, outcome = asyncio.run(scenario())
        assert outcome is Outcome.FAILED
        assert manager.error == "Not authorized to delete this product"
        assert [p.id for p in manager.products] == ["p-lamp"]
        assert not manager.is_locked("p-lamp")
        assert "p-lamp" in backend.products

    def test_load_in_flight_does_not_resurrect_deleted_listing(self, scripted):
        async def scenario():
            manager = ListingManager(scripted)
            lamp = make_product("p-lamp", seller_id="u-alice")
            manager.products = [lamp]
            load = asyncio.ensure_future(manager.load())
            await settle()
            delete = asyncio.ensure_future(manager.delete_listing("p-lamp"))
            await settle()
            scripted.named("delete_product")[0].resolve(None)
            assert await delete is Outcome.APPLIED
            assert manager.products == []

            scripted.named("my_products")[0].resolve([lamp])
            assert await load is Outcome.STALE
            assert manager.products == []

        asyncio.run(scenario())

    def test_newest_load_wins(self, scripted):
        async def scenario():
            manager = ListingManager(scripted)
            first = asyncio.ensure_future(manager.load())
            second = asyncio.ensure_future(manager.load())
            await settle()
            older, newer = scripted.named("my_products")
            newer.resolve([make_product("p-new", seller_id="u-alice")])
            older.resolve([make_product("p-old", seller_id="u-alice")])
            assert await second is Outcome.APPLIED
            assert await first is Outcome.STALE
            assert [p.id for p in manager.products] == ["p-new"]

        asyncio.run(scenario())


class TestCounts:
    def test_available_and_sold(self):
        manager = ListingManager(gateway=None)
        manager.products = [
            make_product("a"),
            make_product("b", is_available=False),
            make_product("c"),
        ]
        assert manager.available_count() == 2
        assert manager.sold_count() == 1

    def test_load_failure(self, backend):
        backend.fail("GET", "/products/user/my-products", 500, "db down")

        async def scenario():
            async with backend_gateway(backend) as gateway:
                manager = ListingManager(gateway)
                return manager, await manager.load()

        manager, outcome = asyncio.run(scenario())
        assert outcome is Outcome.FAILED
        assert manager.error == "Failed to load your products"


class TestClose:
    def test_close_cancels_timer_and_ignores_late_response(self, scripted):
        views = []

        async def scenario():
            manager = ListingManager(scripted, navigate=views.append, redirect_delay=0.01)
            task = asyncio.ensure_future(manager.create_listing(_draft()))
            await settle()
            scripted.named("create_product")[0].resolve(None)
            await settle()
            manager.close()
            scripted.named("my_products")[0].resolve([make_product("p-x", seller_id="u-alice")])
            await task
            await asyncio.sleep(0.05)
            return manager

        manager = asyncio.run(scenario())
        assert manager.products == []
        assert views == []

    def test_close_ignores_late_load_failure(self, scripted):
        async def scenario():
            manager = ListingManager(scripted)
            task = asyncio.ensure_future(manager.load())
            await settle()
            manager.close()
            scripted.calls[-1].fail(ServerError(500, "boom"))
            return manager, await task

        manager, outcome = asyncio.run(scenario())
        assert outcome is Outcome.STALE
        assert manager.error is None

    def test_close_releases_lock_of_pending_delete(self, scripted):
        async def scenario():
            manager = ListingManager(scripted)
            manager.products = [make_product("p-lamp", seller_id="u-alice")]
            task = asyncio.ensure_future(manager.delete_listing("p-lamp"))
            await settle()
            manager.close()
            scripted.calls[-1].resolve(None)
            return manager, await task

        manager, outcome = asyncio.run(scenario())
        assert outcome is Outcome.STALE
        assert not manager.is_locked("p-lamp")
        assert [p.id for p in manager.products] == ["p-lamp"]
