"""
Tests for RedisCartStore against a mocked Upstash client
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront.cart.redis_storage import (
    CLEAR_SCRIPT,
    LIST_SCRIPT,
    REMOVE_SCRIPT,
    SET_QUANTITY_SCRIPT,
    UPSERT_SCRIPT,
    RedisCartStore,
)
from storefront.errors import InvalidArgument, NotFound


def _hash(line_id, session_id="s1", product_id=1, quantity=1):
    return ["id", str(line_id), "session_id", session_id, "product_id", str(product_id),
            "quantity", str(quantity), "added_at", "2026-01-01T00:00:00+00:00"]


@pytest.fixture
def redis():
    client = MagicMock()
    client.eval = AsyncMock()
    client.hgetall = AsyncMock()
    client.hget = AsyncMock()
    return client


@pytest.fixture
def redis_store(redis):
    return RedisCartStore(redis)


class TestUpsert:
    @pytest.mark.asyncio
    async def test_upsert_runs_script_with_keys(self, redis_store, redis):
        redis.eval.return_value = [1, _hash(7, quantity=2)]

        item = await redis_store.upsert_line_item("s1", 1, 2)

        assert item.id == 7
        assert item.quantity == 2
        script = redis.eval.call_args.args[0]
        assert script == UPSERT_SCRIPT
        assert redis.eval.call_args.kwargs["keys"] == ["cart:session:s1", "cart:seq"]
        assert redis.eval.call_args.kwargs["args"][:4] == ["1", "2", "cart:item:", "s1"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("delta", [0, -3])
    async def test_non_positive_delta_never_reaches_redis(self, redis_store, redis, delta):
        with pytest.raises(InvalidArgument):
            await redis_store.upsert_line_item("s1", 1, delta)

        redis.eval.assert_not_called()


class TestReads:
    @pytest.mark.asyncio
    async def test_list_sorted_by_id(self, redis_store, redis):
        redis.eval.return_value = [_hash(9, product_id=3), _hash(2, product_id=1), []]

        items = await redis_store.list_line_items("s1")

        assert [item.id for item in items] == [2, 9]
        assert redis.eval.call_args.args[0] == LIST_SCRIPT

    @pytest.mark.asyncio
    async def test_list_unknown_session_empty(self, redis_store, redis):
        redis.eval.return_value = []

        assert await redis_store.list_line_items("nobody") == []

    @pytest.mark.asyncio
    async def test_find_accepts_dict_reply(self, redis_store, redis):
        redis.hgetall.return_value = {"id": "4", "session_id": "s1", "product_id": "2", "quantity": "5"}

        item = await redis_store.find_line_item(4)

        assert item.product_id == 2
        assert item.quantity == 5
        redis.hgetall.assert_awaited_once_with("cart:item:4")

    @pytest.mark.asyncio
    async def test_find_missing_returns_none(self, redis_store, redis):
        redis.hgetall.return_value = {}

        assert await redis_store.find_line_item(4) is None

    @pytest.mark.asyncio
    async def test_find_by_product_uses_session_index(self, redis_store, redis):
        redis.hget.return_value = "4"
        redis.hgetall.return_value = _hash(4, product_id=2)

        item = await redis_store.find_line_item_by_product("s1", 2)

        assert item.id == 4
        redis.hget.assert_awaited_once_with("cart:session:s1", "2")

    @pytest.mark.asyncio
    async def test_find_by_product_missing(self, redis_store, redis):
        redis.hget.return_value = None

        assert await redis_store.find_line_item_by_product("s1", 2) is None
        redis.hgetall.assert_not_called()


class TestMutations:
    @pytest.mark.asyncio
    async def test_set_quantity(self, redis_store, redis):
        redis.eval.return_value = _hash(4, quantity=6)

        item = await redis_store.set_quantity(4, 6)

        assert item.quantity == 6
        assert redis.eval.call_args.args[0] == SET_QUANTITY_SCRIPT
        assert redis.eval.call_args.kwargs["args"] == ["6"]

    @pytest.mark.asyncio
    async def test_set_quantity_missing_line(self, redis_store, redis):
        redis.eval.return_value = []

        with pytest.raises(NotFound):
            await redis_store.set_quantity(4, 6)

    @pytest.mark.asyncio
    async def test_remove(self, redis_store, redis):
        redis.eval.return_value = 1

        assert await redis_store.remove_line_item(4) is True
        assert redis.eval.call_args.args[0] == REMOVE_SCRIPT
        assert redis.eval.call_args.kwargs["args"] == ["cart:session:"]

    @pytest.mark.asyncio
    async def test_remove_missing_is_false(self, redis_store, redis):
        redis.eval.return_value = 0

        assert await redis_store.remove_line_item(4) is False

    @pytest.mark.asyncio
    async def test_clear_session_returns_count(self, redis_store, redis):
        redis.eval.return_value = 3

        assert await redis_store.clear_session("s1") == 3
        assert redis.eval.call_args.args[0] == CLEAR_SCRIPT
