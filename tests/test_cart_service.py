"""
Tests for CartService
"""
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from storefront.cart import CartService, InMemoryCartStore
from storefront.errors import Forbidden, InconsistentState, InvalidArgument, NotFound


class TestAddToCart:
    """Tests for add_to_cart."""

    @pytest.mark.asyncio
    async def test_repeat_adds_sum_quantities_on_one_line(self, cart_service):
        for quantity in (1, 2, 4):
            snapshot = await cart_service.add_to_cart("s1", 3, quantity)

        assert len(snapshot.items) == 1
        assert snapshot.items[0].quantity == 7
        assert snapshot.items[0].product.name == "Lunar Wall Sconce"

    @pytest.mark.asyncio
    async def test_default_quantity_is_one(self, cart_service):
        snapshot = await cart_service.add_to_cart("s1", 2)

        assert snapshot.items[0].quantity == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -2])
    async def test_non_positive_quantity_rejected(self, cart_service, store, quantity):
        with pytest.raises(InvalidArgument):
            await cart_service.add_to_cart("s1", 1, quantity)

        assert await store.list_line_items("s1") == []

    @pytest.mark.asyncio
    async def test_unknown_product_not_found(self, cart_service, store):
        with pytest.raises(NotFound):
            await cart_service.add_to_cart("s1", 999, 1)

        assert await store.list_line_items("s1") == []

    @pytest.mark.asyncio
    async def test_concurrent_adds_reach_n(self, yielding_store, catalog):
        """N concurrent add_to_cart calls for product 7 leave one line with quantity N."""
        service = CartService(store=yielding_store, catalog=catalog)
        await asyncio.gather(*[service.add_to_cart("s1", 7, 1) for _ in range(25)])

        snapshot = await service.get_cart("s1")
        assert len(snapshot.items) == 1
        assert snapshot.items[0].quantity == 25


class TestReferenceScenario:
    """Add, update, remove walk-through with product 1 at 249.99."""

    @pytest.mark.asyncio
    async def test_full_cycle(self, cart_service):
        snapshot = await cart_service.add_to_cart("s1", 1, 2)
        line_id = snapshot.items[0].item.id

        snapshot = await cart_service.get_cart("s1")
        assert snapshot.subtotal == Decimal("499.98")
        assert snapshot.tax == Decimal("44.9982")
        assert snapshot.shipping == 0
        assert snapshot.total == Decimal("544.98")

        snapshot = await cart_service.update_quantity("s1", line_id, 1)
        assert snapshot.subtotal == Decimal("249.99")

        snapshot = await cart_service.remove_from_cart("s1", line_id)
        assert snapshot.is_empty
        assert snapshot.total == 0


class TestGetCart:
    """Tests for get_cart."""

    @pytest.mark.asyncio
    async def test_unknown_session_is_empty_cart(self, cart_service):
        snapshot = await cart_service.get_cart("never-seen")

        assert snapshot.session_id == "never-seen"
        assert snapshot.items == []
        assert snapshot.total == 0

    @pytest.mark.asyncio
    async def test_reads_are_idempotent(self, cart_service):
        await cart_service.add_to_cart("s1", 1, 2)
        await cart_service.add_to_cart("s1", 6, 1)

        first = await cart_service.get_cart("s1")
        second = await cart_service.get_cart("s1")

        assert first.totals == second.totals
        assert first.subtotal == sum(line.product.price * line.quantity for line in first.items)

    @pytest.mark.asyncio
    async def test_uses_current_catalog_prices(self, cart_service, catalog):
        await cart_service.add_to_cart("s1", 1, 1)
        catalog.add_product({"id": 1, "name": "Nova Pendant Light", "price": "199.99", "category_id": 1})

        snapshot = await cart_service.get_cart("s1")

        assert snapshot.subtotal == Decimal("199.99")

    @pytest.mark.asyncio
    async def test_orphaned_line_fails_by_default(self, cart_service, catalog):
        await cart_service.add_to_cart("s1", 1, 1)
        catalog.remove_product(1)

        with pytest.raises(InconsistentState):
            await cart_service.get_cart("s1")

    @pytest.mark.asyncio
    async def test_orphaned_line_dropped_with_drop_policy(self, store, catalog):
        service = CartService(store=store, catalog=catalog, orphan_policy="drop")
        await service.add_to_cart("s1", 1, 1)
        await service.add_to_cart("s1", 2, 1)
        catalog.remove_product(1)

        snapshot = await service.get_cart("s1")

        assert [line.product.id for line in snapshot.items] == [2]
        assert snapshot.subtotal == Decimal("399.99")
        # Reads never write: the orphaned line is still stored
        assert len(await store.list_line_items("s1")) == 2

    def test_unknown_orphan_policy_rejected(self, store, catalog):
        with pytest.raises(ValueError):
            CartService(store=store, catalog=catalog, orphan_policy="ignore")


class TestLineItemMutations:
    """Tests for update_quantity and remove_from_cart."""

    @pytest.mark.asyncio
    async def test_update_unknown_line_not_found(self, cart_service):
        with pytest.raises(NotFound):
            await cart_service.update_quantity("s1", 12345, 2)

    @pytest.mark.asyncio
    async def test_update_other_sessions_line_forbidden(self, cart_service, store):
        snapshot = await cart_service.add_to_cart("owner", 1, 2)
        line_id = snapshot.items[0].item.id

        with pytest.raises(Forbidden):
            await cart_service.update_quantity("intruder", line_id, 9)

        assert (await store.find_line_item(line_id)).quantity == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -1])
    async def test_update_non_positive_quantity_leaves_store_unchanged(self, cart_service, store, quantity):
        snapshot = await cart_service.add_to_cart("s1", 1, 3)
        line_id = snapshot.items[0].item.id

        with pytest.raises(InvalidArgument):
            await cart_service.update_quantity("s1", line_id, quantity)

        assert (await store.find_line_item(line_id)).quantity == 3

    @pytest.mark.asyncio
    async def test_remove_unknown_line_not_found_and_cart_unchanged(self, cart_service):
        await cart_service.add_to_cart("s1", 1, 1)
        before = await cart_service.get_cart("s1")

        with pytest.raises(NotFound):
            await cart_service.remove_from_cart("s1", 999)

        after = await cart_service.get_cart("s1")
        assert after.totals == before.totals
        assert len(after.items) == 1

    @pytest.mark.asyncio
    async def test_remove_other_sessions_line_forbidden(self, cart_service, store):
        snapshot = await cart_service.add_to_cart("owner", 4, 1)
        line_id = snapshot.items[0].item.id

        with pytest.raises(Forbidden):
            await cart_service.remove_from_cart("intruder", line_id)

        assert await store.find_line_item(line_id) is not None

    @pytest.mark.asyncio
    async def test_removed_line_never_reappears(self, cart_service):
        snapshot = await cart_service.add_to_cart("s1", 1, 1)
        snapshot = await cart_service.add_to_cart("s1", 2, 1)
        removed_id = snapshot.items[0].item.id

        await cart_service.remove_from_cart("s1", removed_id)
        snapshot = await cart_service.get_cart("s1")

        assert removed_id not in [line.item.id for line in snapshot.items]

    @pytest.mark.asyncio
    async def test_remove_raced_by_another_request_is_not_found(self, cart_service, store):
        snapshot = await cart_service.add_to_cart("s1", 1, 1)
        line_id = snapshot.items[0].item.id
        store.remove_line_item = AsyncMock(return_value=False)

        with pytest.raises(NotFound):
            await cart_service.remove_from_cart("s1", line_id)


class TestEmptyCartAndCheckout:
    """Tests for empty_cart, prepare_checkout and confirm_payment."""

    @pytest.mark.asyncio
    async def test_empty_cart_then_get_is_all_zero(self, cart_service):
        await cart_service.add_to_cart("s1", 1, 2)
        await cart_service.add_to_cart("s1", 5, 1)

        await cart_service.empty_cart("s1")
        snapshot = await cart_service.get_cart("s1")

        assert snapshot.to_dict() == {
            "session_id": "s1",
            "items": [],
            "item_count": 0,
            "subtotal": 0.0,
            "tax": 0.0,
            "shipping": 0.0,
            "total": 0.0,
        }

    @pytest.mark.asyncio
    async def test_empty_cart_on_unknown_session_succeeds(self, cart_service):
        snapshot = await cart_service.empty_cart("nobody")

        assert snapshot.is_empty

    @pytest.mark.asyncio
    async def test_prepare_checkout_on_empty_cart_rejected(self, cart_service):
        with pytest.raises(InvalidArgument):
            await cart_service.prepare_checkout("s1")

    @pytest.mark.asyncio
    async def test_prepare_checkout_amount_equals_total(self, cart_service):
        await cart_service.add_to_cart("s1", 1, 2)
        await cart_service.add_to_cart("s1", 3, 1)

        quote = await cart_service.prepare_checkout("s1")
        snapshot = await cart_service.get_cart("s1")

        assert quote.amount == snapshot.total
        assert quote.item_count == 3
        # Preparing checkout never touches the cart
        assert len(snapshot.items) == 2

    @pytest.mark.asyncio
    async def test_zero_value_cart_not_payable(self, store, catalog):
        catalog.add_product({"id": 50, "name": "Sample Swatch", "price": "0", "category_id": 1})
        service = CartService(store=store, catalog=catalog)
        await service.add_to_cart("s1", 50, 3)

        with pytest.raises(InvalidArgument):
            await service.prepare_checkout("s1")

    @pytest.mark.asyncio
    async def test_confirm_payment_clears_cart(self, cart_service):
        await cart_service.add_to_cart("s1", 1, 1)

        snapshot = await cart_service.confirm_payment("s1")

        assert snapshot.is_empty
        assert (await cart_service.get_cart("s1")).is_empty


class TestStoreSubstitution:
    """The service only depends on the CartStore contract."""

    @pytest.mark.asyncio
    async def test_works_with_fresh_store_instance(self, catalog):
        service = CartService(store=InMemoryCartStore(lock_stripes=4), catalog=catalog)

        snapshot = await service.add_to_cart("s1", 8, 2)

        assert snapshot.subtotal == Decimal("479.98")
