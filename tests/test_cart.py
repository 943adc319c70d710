"""
Tests for the cart reconciler.

Remote backends are AsyncMock stand-ins; the assertions are on local state,
dispatched sync actions and posted notices.
"""

from unittest.mock import AsyncMock

import pytest

from storefront.errors import MissingConfigurationError, UpstreamError
from storefront.models import CartItem
from storefront.services.cart import CartReconciler
from storefront.utils.notices import NoticeLevel


def fake_backend(name):
    backend = AsyncMock()
    backend.name = name
    backend.fetch_cart_items = AsyncMock(return_value=[])
    return backend


@pytest.fixture
def railway():
    return fake_backend("railway")


@pytest.fixture
def ecom():
    return fake_backend("ecom")


@pytest.fixture
def cart(config, railway, ecom):
    return CartReconciler({"railway": railway, "microservice": ecom}, config=config)


class TestAddToCart:
    @pytest.mark.asyncio
    async def test_non_numeric_id_is_rejected(self, cart, ecom):
        result = await cart.add_to_cart({"id": "abc", "name": "Mystery"}, 0, "microservice", "products")

        assert result is None
        assert cart.items == []
        ecom.sync.assert_not_awaited()
        assert len(cart.notices) == 1
        notice = cart.notices.notices[0]
        assert notice.level == NoticeLevel.ERROR
        assert notice.source == "microservice"
        assert "not numeric" in notice.message

    @pytest.mark.asyncio
    async def test_new_item_syncs_add(self, cart, ecom):
        item = await cart.add_to_cart({"id": 7, "name": "Shirt", "price": 100}, 0, "microservice", "products")

        assert item.quantity == 1
        assert cart.quantity_of("microservice-products-7") == 1
        ecom.sync.assert_awaited_once_with(item, "add", 1)

    @pytest.mark.asyncio
    async def test_repeat_add_increments(self, cart, railway):
        row = {"product_id": 5, "name": "Ticket", "price": 50}
        await cart.add_to_cart(row, 0, "railway", "products")
        item = await cart.add_to_cart(row, 0, "railway", "products")

        assert item.quantity == 2
        assert len(cart.items) == 1
        assert [call.args[1:] for call in railway.sync.await_args_list] == [("add", 1), ("add", 2)]
        assert cart.total() == 100.0
        assert cart.count() == 2

    @pytest.mark.asyncio
    async def test_source_without_remote_cart_stays_local(self, config):
        cart = CartReconciler({}, config=config)
        item = await cart.add_to_cart({"id": 1, "name": "Local"}, 0, "microservice", "products")

        assert item is not None
        assert len(cart.notices) == 0


class TestUpdateQuantity:
    @pytest.mark.asyncio
    async def test_decrease_to_zero_removes(self, cart, ecom):
        item = await cart.add_to_cart({"id": 7, "name": "Shirt"}, 0, "microservice", "products")

        result = await cart.update_quantity(item.key, -1)

        assert result is None
        assert cart.get(item.key) is None
        ecom.sync.assert_awaited_with(item, "remove", 0)

    @pytest.mark.asyncio
    async def test_quantity_never_goes_negative(self, cart, ecom):
        item = await cart.add_to_cart({"id": 7, "name": "Shirt"}, 0, "microservice", "products")
        await cart.update_quantity(item.key, 1)

        result = await cart.update_quantity(item.key, -5)

        assert result is None
        assert cart.quantity_of(item.key) == 0
        assert cart.items == []

    @pytest.mark.asyncio
    async def test_increase_and_decrease_dispatch(self, cart, railway):
        item = await cart.add_to_cart({"product_id": 5, "name": "Ticket"}, 0, "railway", "products")

        await cart.update_quantity(item.key, 2)
        await cart.update_quantity(item.key, -1)

        assert cart.quantity_of(item.key) == 2
        assert [call.args[1:] for call in railway.sync.await_args_list] == [
            ("add", 1), ("increase", 3), ("decrease", 2),
        ]

    @pytest.mark.asyncio
    async def test_zero_delta_and_unknown_key_are_no_ops(self, cart, railway):
        item = await cart.add_to_cart({"product_id": 5, "name": "Ticket"}, 0, "railway", "products")
        railway.sync.reset_mock()

        assert await cart.update_quantity(item.key, 0) is item
        assert await cart.update_quantity("missing", 1) is None
        railway.sync.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remove(self, cart, railway):
        item = await cart.add_to_cart({"product_id": 5, "name": "Ticket"}, 0, "railway", "products")

        await cart.remove(item.key)
        await cart.remove(item.key)

        assert cart.items == []
        railway.sync.assert_awaited_with(item, "remove", 0)
        assert railway.sync.await_count == 2


class TestSyncFailures:
    @pytest.mark.asyncio
    async def test_failure_keeps_local_state_and_posts_notice(self, cart, ecom):
        ecom.sync.side_effect = UpstreamError("ecom", 500, "boom")

        item = await cart.add_to_cart({"id": 7, "name": "Shirt"}, 0, "microservice", "products")

        assert cart.get(item.key) is item
        assert len(cart.notices) == 1
        notice = cart.notices.notices[0]
        assert notice.level == NoticeLevel.WARNING
        assert notice.source == "ecom"
        assert "Shirt" in notice.message

    @pytest.mark.asyncio
    async def test_missing_configuration_becomes_notice(self, cart, ecom):
        ecom.sync.side_effect = MissingConfigurationError("phonestore", "PHONESTORE_USERNAME")

        ok = await cart.sync_cart_item(
            CartItem(key="k", id=1, name="X", source_id="microservice", source_table="t"), "add", 1,
        )

        assert ok is False
        assert "PHONESTORE_USERNAME" in cart.notices.messages()[0]


class TestRefreshRemoteCart:
    @pytest.mark.asyncio
    async def test_merges_remote_carts(self, cart, railway, ecom):
        railway.fetch_cart_items.return_value = [
            CartItem(key="railway-5", id=5, name="Ticket", quantity=3, source_id="railway", source_table="cart"),
        ]
        ecom.fetch_cart_items.return_value = [
            CartItem(key="microservice-e1", id=7, name="Shirt", source_id="microservice", source_table="cart"),
        ]

        items = await cart.refresh_remote_cart()

        assert {item.key for item in items} == {"railway-5", "microservice-e1"}
        assert cart.count() == 4

    @pytest.mark.asyncio
    async def test_failed_source_keeps_local_items(self, cart, railway, ecom):
        local = await cart.add_to_cart({"id": 7, "name": "Shirt"}, 0, "microservice", "products")
        await cart.add_to_cart({"product_id": 5, "name": "Ticket"}, 0, "railway", "products")
        railway.fetch_cart_items.return_value = [
            CartItem(key="railway-5", id=5, name="Ticket", quantity=2, source_id="railway", source_table="cart"),
        ]
        ecom.fetch_cart_items.side_effect = UpstreamError("ecom")

        items = await cart.refresh_remote_cart()

        assert {item.key for item in items} == {"railway-5", local.key}
        assert cart.notices.notices[-1].source == "ecom"

    @pytest.mark.asyncio
    async def test_add_after_refresh_increments_remote_line(self, config):
        phones = fake_backend("phonewebsite")
        phones.fetch_cart_items.return_value = [
            CartItem(key="phonewebsite-e1", id=9, name="Phone", quantity=3, source_id="phonewebsite", source_table="cart"),
        ]
        cart = CartReconciler({"phonewebsite": phones}, config=config)
        await cart.refresh_remote_cart()

        item = await cart.add_to_cart({"id": 9, "name": "Phone", "price": 500}, 0, "phonewebsite", "phones")

        assert [(entry.key, entry.quantity) for entry in cart.items] == [("phonewebsite-e1", 4)]
        assert item.phone_store_product is not None
        phones.sync.assert_awaited_once_with(item, "add", 4)

    @pytest.mark.asyncio
    async def test_same_id_in_another_source_is_a_new_line(self, cart, railway, ecom):
        railway.fetch_cart_items.return_value = [
            CartItem(key="railway-5", id=5, name="Ticket", quantity=2, source_id="railway", source_table="cart"),
        ]
        await cart.refresh_remote_cart()

        await cart.add_to_cart({"id": 5, "name": "Shirt"}, 0, "microservice", "products")

        assert sorted((entry.key, entry.quantity) for entry in cart.items) == [
            ("microservice-products-5", 1), ("railway-5", 2),
        ]
