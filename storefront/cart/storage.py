"""
Cart storage.

Line items keyed by id, with a secondary (session_id, product_id) index that
enforces at most one line per product per session. Backends:
- InMemoryCartStore: process-local, striped asyncio locks
- RedisCartStore: Upstash Redis, one Lua script per mutation
"""
import asyncio
import itertools
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from storefront.errors import (
    ERROR_LINE_ITEM_NOT_FOUND,
    ERROR_QUANTITY_NOT_POSITIVE,
    InvalidArgument,
    NotFound,
)
from storefront.logging import get_logger, sanitize_id_for_logging
from .models import LineItem

logger = get_logger(__name__)

LOCK_STRIPES = 64


def require_positive_quantity(quantity: object) -> int:
    """Return quantity if it is an int >= 1, otherwise raise InvalidArgument."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidArgument(ERROR_QUANTITY_NOT_POSITIVE)
    return quantity


class CartStore(ABC):
    """Storage contract for cart line items."""

    @abstractmethod
    async def list_line_items(self, session_id: str) -> List[LineItem]:
        """Line items of a session in the order they were added (empty for unknown sessions)."""

    @abstractmethod
    async def find_line_item(self, line_item_id: int) -> Optional[LineItem]:
        """Line item by id, or None."""

    @abstractmethod
    async def find_line_item_by_product(self, session_id: str, product_id: int) -> Optional[LineItem]:
        """The session's line item for a product, or None."""

    @abstractmethod
    async def upsert_line_item(self, session_id: str, product_id: int, quantity_delta: int) -> LineItem:
        """
        Increment the (session, product) line by quantity_delta, creating it if absent.

        Atomic per (session, product). A delta below 1 is rejected, so a
        stored quantity can never drop under 1 through this call.
        """

    @abstractmethod
    async def set_quantity(self, line_item_id: int, quantity: int) -> LineItem:
        """Overwrite a line's quantity. Raises NotFound / InvalidArgument."""

    @abstractmethod
    async def remove_line_item(self, line_item_id: int) -> bool:
        """Delete a line. Returns False if it did not exist."""

    @abstractmethod
    async def clear_session(self, session_id: str) -> int:
        """Delete every line of a session. Returns how many were removed."""


class InMemoryCartStore(CartStore):
    """
    Process-local cart store.

    All mutations of one session serialize on that session's lock stripe.
    Stored LineItems are immutable and replaced wholesale, so readers never
    observe a half-applied mutation.
    """

    def __init__(self, lock_stripes: int = LOCK_STRIPES):
        self._items: Dict[int, LineItem] = {}
        self._index: Dict[Tuple[str, int], int] = {}
        # session_id -> line ids in insertion order (dict used as ordered set)
        self._sessions: Dict[str, Dict[int, None]] = {}
        self._ids = itertools.count(1)
        self._locks = [asyncio.Lock() for _ in range(lock_stripes)]

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        return self._locks[hash(session_id) % len(self._locks)]

    async def list_line_items(self, session_id: str) -> List[LineItem]:
        return [self._items[line_id] for line_id in self._sessions.get(session_id, ())]

    async def find_line_item(self, line_item_id: int) -> Optional[LineItem]:
        return self._items.get(line_item_id)

    async def find_line_item_by_product(self, session_id: str, product_id: int) -> Optional[LineItem]:
        line_id = self._index.get((session_id, product_id))
        return self._items.get(line_id) if line_id is not None else None

    async def upsert_line_item(self, session_id: str, product_id: int, quantity_delta: int) -> LineItem:
        require_positive_quantity(quantity_delta)

        async with self._lock_for(session_id):
            existing = await self.find_line_item_by_product(session_id, product_id)
            if existing is not None:
                item = replace(existing, quantity=existing.quantity + quantity_delta)
                self._items[item.id] = item
                logger.info(
                    "Cart %s: product %s quantity %s -> %s",
                    sanitize_id_for_logging(session_id), product_id, existing.quantity, item.quantity,
                )
                return item

            item = LineItem(
                id=next(self._ids),
                session_id=session_id,
                product_id=product_id,
                quantity=quantity_delta,
            )
            self._items[item.id] = item
            self._index[(session_id, product_id)] = item.id
            self._sessions.setdefault(session_id, {})[item.id] = None
            logger.info(
                "Cart %s: added line %s (product %s x%s)",
                sanitize_id_for_logging(session_id), item.id, product_id, quantity_delta,
            )
            return item

    async def set_quantity(self, line_item_id: int, quantity: int) -> LineItem:
        require_positive_quantity(quantity)

        existing = self._items.get(line_item_id)
        if existing is None:
            raise NotFound(ERROR_LINE_ITEM_NOT_FOUND)

        async with self._lock_for(existing.session_id):
            # Re-read under the lock: the line may have been removed meanwhile
            current = self._items.get(line_item_id)
            if current is None:
                raise NotFound(ERROR_LINE_ITEM_NOT_FOUND)
            item = replace(current, quantity=quantity)
            self._items[line_item_id] = item
            logger.info(
                "Cart %s: line %s quantity set to %s",
                sanitize_id_for_logging(item.session_id), line_item_id, quantity,
            )
            return item

    async def remove_line_item(self, line_item_id: int) -> bool:
        existing = self._items.get(line_item_id)
        if existing is None:
            return False

        async with self._lock_for(existing.session_id):
            item = self._items.pop(line_item_id, None)
            if item is None:
                return False
            self._index.pop((item.session_id, item.product_id), None)
            session_lines = self._sessions.get(item.session_id)
            if session_lines is not None:
                session_lines.pop(line_item_id, None)
                if not session_lines:
                    del self._sessions[item.session_id]
            logger.info("Cart %s: removed line %s", sanitize_id_for_logging(item.session_id), line_item_id)
            return True

    async def clear_session(self, session_id: str) -> int:
        async with self._lock_for(session_id):
            line_ids = self._sessions.pop(session_id, {})
            for line_id in line_ids:
                item = self._items.pop(line_id)
                self._index.pop((item.session_id, item.product_id), None)
            if line_ids:
                logger.info("Cart %s: cleared %s line(s)", sanitize_id_for_logging(session_id), len(line_ids))
            return len(line_ids)
