"""Redis-backed cart store (Upstash).

Every mutation runs as a single Lua script so it is applied atomically on the
server; concurrent requests from several app instances cannot lose updates.
"""
from datetime import datetime, timezone
from typing import Any, List, Optional

from storefront.db import RedisKeys
from storefront.errors import ERROR_LINE_ITEM_NOT_FOUND, NotFound
from storefront.logging import get_logger, sanitize_id_for_logging
from .models import LineItem
from .storage import CartStore, require_positive_quantity

logger = get_logger(__name__)


# KEYS: session index, id sequence
# ARGV: product_id, delta, item key prefix, session_id, added_at
UPSERT_SCRIPT = """
local line_id = redis.call('HGET', KEYS[1], ARGV[1])
local created = 0
if not line_id then
  line_id = redis.call('INCR', KEYS[2])
  redis.call('HSET', KEYS[1], ARGV[1], line_id)
  redis.call('HSET', ARGV[3] .. line_id, 'id', line_id, 'session_id', ARGV[4],
             'product_id', ARGV[1], 'quantity', 0, 'added_at', ARGV[5])
  created = 1
end
redis.call('HINCRBY', ARGV[3] .. line_id, 'quantity', ARGV[2])
return {created, redis.call('HGETALL', ARGV[3] .. line_id)}
"""

# KEYS: item key
# ARGV: quantity
SET_QUANTITY_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return {}
end
redis.call('HSET', KEYS[1], 'quantity', ARGV[1])
return redis.call('HGETALL', KEYS[1])
"""

# KEYS: item key
# ARGV: session index prefix
REMOVE_SCRIPT = """
local fields = redis.call('HMGET', KEYS[1], 'session_id', 'product_id')
if not fields[1] then
  return 0
end
redis.call('HDEL', ARGV[1] .. fields[1], fields[2])
redis.call('DEL', KEYS[1])
return 1
"""

# KEYS: session index
# ARGV: item key prefix
LIST_SCRIPT = """
local index = redis.call('HGETALL', KEYS[1])
local items = {}
for i = 2, #index, 2 do
  local item = redis.call('HGETALL', ARGV[1] .. index[i])
  if #item > 0 then
    table.insert(items, item)
  end
end
return items
"""

# KEYS: session index
# ARGV: item key prefix
CLEAR_SCRIPT = """
local index = redis.call('HGETALL', KEYS[1])
local removed = 0
for i = 2, #index, 2 do
  removed = removed + redis.call('DEL', ARGV[1] .. index[i])
end
redis.call('DEL', KEYS[1])
return removed
"""


def _pairs_to_dict(flat: Any) -> dict:
    """HGETALL replies arrive either as a dict or a flat [field, value, ...] list."""
    if isinstance(flat, dict):
        return flat
    flat = list(flat or [])
    return dict(zip(flat[::2], flat[1::2]))


def _line_item_from_hash(data: Any) -> Optional[LineItem]:
    fields = _pairs_to_dict(data)
    if not fields or "quantity" not in fields:
        return None
    return LineItem(
        id=int(fields["id"]),
        session_id=str(fields["session_id"]),
        product_id=int(fields["product_id"]),
        quantity=int(fields["quantity"]),
        added_at=str(fields.get("added_at", "")),
    )


class RedisCartStore(CartStore):
    """Cart store on Upstash Redis. Key layout lives in RedisKeys."""

    def __init__(self, redis):
        self.redis = redis

    async def list_line_items(self, session_id: str) -> List[LineItem]:
        rows = await self.redis.eval(
            LIST_SCRIPT,
            keys=[RedisKeys.session_key(session_id)],
            args=[RedisKeys.CART_ITEM],
        )
        items = [item for item in (_line_item_from_hash(row) for row in rows or []) if item]
        # Ids are monotonic, so id order is insertion order
        return sorted(items, key=lambda item: item.id)

    async def find_line_item(self, line_item_id: int) -> Optional[LineItem]:
        data = await self.redis.hgetall(RedisKeys.item_key(line_item_id))
        return _line_item_from_hash(data)

    async def find_line_item_by_product(self, session_id: str, product_id: int) -> Optional[LineItem]:
        line_id = await self.redis.hget(RedisKeys.session_key(session_id), str(product_id))
        if line_id is None:
            return None
        return await self.find_line_item(int(line_id))

    async def upsert_line_item(self, session_id: str, product_id: int, quantity_delta: int) -> LineItem:
        require_positive_quantity(quantity_delta)

        created, data = await self.redis.eval(
            UPSERT_SCRIPT,
            keys=[RedisKeys.session_key(session_id), RedisKeys.CART_SEQUENCE],
            args=[
                str(product_id),
                str(quantity_delta),
                RedisKeys.CART_ITEM,
                session_id,
                datetime.now(timezone.utc).isoformat(),
            ],
        )
        item = _line_item_from_hash(data)
        if item is None:
            raise NotFound(ERROR_LINE_ITEM_NOT_FOUND)

        logger.info(
            "Cart %s: %s line %s (product %s, quantity %s)",
            sanitize_id_for_logging(session_id),
            "added" if int(created) else "incremented",
            item.id, product_id, item.quantity,
        )
        return item

    async def set_quantity(self, line_item_id: int, quantity: int) -> LineItem:
        require_positive_quantity(quantity)

        data = await self.redis.eval(
            SET_QUANTITY_SCRIPT,
            keys=[RedisKeys.item_key(line_item_id)],
            args=[str(quantity)],
        )
        item = _line_item_from_hash(data)
        if item is None:
            raise NotFound(ERROR_LINE_ITEM_NOT_FOUND)
        logger.info(
            "Cart %s: line %s quantity set to %s",
            sanitize_id_for_logging(item.session_id), line_item_id, quantity,
        )
        return item

    async def remove_line_item(self, line_item_id: int) -> bool:
        removed = await self.redis.eval(
            REMOVE_SCRIPT,
            keys=[RedisKeys.item_key(line_item_id)],
            args=[RedisKeys.CART_SESSION],
        )
        if int(removed or 0):
            logger.info("Removed cart line %s", line_item_id)
            return True
        return False

    async def clear_session(self, session_id: str) -> int:
        removed = int(await self.redis.eval(
            CLEAR_SCRIPT,
            keys=[RedisKeys.session_key(session_id)],
            args=[RedisKeys.CART_ITEM],
        ) or 0)
        if removed:
            logger.info("Cart %s: cleared %s line(s)", sanitize_id_for_logging(session_id), removed)
        return removed
