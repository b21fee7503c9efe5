"""Cart service: session carts with consistent, fully recomputed totals.

Every operation returns a fresh CartSnapshot built the same way: list the
session's line items, join them against the catalog, then price them.
"""
import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from storefront.catalog import Catalog, InMemoryCatalog
from storefront.config import Settings, get_settings
from storefront.errors import (
    ERROR_CART_NOT_PAYABLE,
    ERROR_LINE_ITEM_FORBIDDEN,
    ERROR_LINE_ITEM_NOT_FOUND,
    ERROR_ORPHANED_LINE_ITEM,
    ERROR_PRODUCT_NOT_FOUND,
    Forbidden,
    InconsistentState,
    InvalidArgument,
    NotFound,
)
from storefront.logging import get_logger, sanitize_id_for_logging
from .models import CartLine, CartSnapshot, LineItem
from .pricing import PricingEngine, flat_rate_shipping, free_shipping
from .storage import CartStore, InMemoryCartStore, require_positive_quantity

logger = get_logger(__name__)

ORPHAN_FAIL = "fail"
ORPHAN_DROP = "drop"


@dataclass(frozen=True)
class CheckoutQuote:
    """The authoritative amount to charge for a session's cart."""
    session_id: str
    amount: Decimal
    item_count: int


class CartService:
    """
    Orchestrates session identity, catalog, cart store and pricing.

    Features:
    - One line per (session, product); repeat adds increase quantity
    - Ownership check on every line-item mutation
    - Totals recomputed from scratch after every read and mutation
    """

    def __init__(
        self,
        store: CartStore,
        catalog: Catalog,
        pricing: Optional[PricingEngine] = None,
        orphan_policy: str = ORPHAN_FAIL,
    ):
        if orphan_policy not in (ORPHAN_FAIL, ORPHAN_DROP):
            raise ValueError(f"Unknown orphan policy: {orphan_policy}")
        self.store = store
        self.catalog = catalog
        self.pricing = pricing or PricingEngine()
        self.orphan_policy = orphan_policy

    async def _join_lines(self, items: List[LineItem]) -> List[CartLine]:
        products = await asyncio.gather(*[self.catalog.get_product(item.product_id) for item in items])

        lines = []
        for item, product in zip(items, products):
            if product is None:
                if self.orphan_policy == ORPHAN_DROP:
                    logger.warning(
                        "Cart %s: dropping line %s, product %s is no longer in the catalog",
                        sanitize_id_for_logging(item.session_id), item.id, item.product_id,
                    )
                    continue
                logger.error(
                    "Cart %s: line %s references missing product %s",
                    sanitize_id_for_logging(item.session_id), item.id, item.product_id,
                )
                raise InconsistentState(f"{ERROR_ORPHANED_LINE_ITEM} (product {item.product_id})")
            lines.append(CartLine(item=item, product=product))
        return lines

    async def _owned_line_item(self, session_id: str, line_item_id: int) -> LineItem:
        item = await self.store.find_line_item(line_item_id)
        if item is None:
            raise NotFound(ERROR_LINE_ITEM_NOT_FOUND)
        if item.session_id != session_id:
            logger.warning(
                "Session %s attempted to modify line %s owned by another session",
                sanitize_id_for_logging(session_id), line_item_id,
            )
            raise Forbidden(ERROR_LINE_ITEM_FORBIDDEN)
        return item

    async def get_cart(self, session_id: str) -> CartSnapshot:
        """Current snapshot; an unknown session is an empty cart."""
        items = await self.store.list_line_items(session_id)
        lines = await self._join_lines(items)
        return CartSnapshot(
            session_id=session_id,
            lines=lines,
            totals=self.pricing.compute_totals(lines),
        )

    async def add_to_cart(self, session_id: str, product_id: int, quantity: int = 1) -> CartSnapshot:
        """Add a product (or more of it) to the session's cart."""
        require_positive_quantity(quantity)

        product = await self.catalog.get_product(product_id)
        if product is None:
            raise NotFound(ERROR_PRODUCT_NOT_FOUND)

        await self.store.upsert_line_item(session_id, product_id, quantity)
        return await self.get_cart(session_id)

    async def update_quantity(self, session_id: str, line_item_id: int, quantity: int) -> CartSnapshot:
        """Set a line's quantity. The line must belong to the session."""
        await self._owned_line_item(session_id, line_item_id)
        require_positive_quantity(quantity)

        await self.store.set_quantity(line_item_id, quantity)
        return await self.get_cart(session_id)

    async def remove_from_cart(self, session_id: str, line_item_id: int) -> CartSnapshot:
        """Remove a line. The line must belong to the session."""
        await self._owned_line_item(session_id, line_item_id)

        if not await self.store.remove_line_item(line_item_id):
            # Removed concurrently between the ownership check and now
            raise NotFound(ERROR_LINE_ITEM_NOT_FOUND)
        return await self.get_cart(session_id)

    async def empty_cart(self, session_id: str) -> CartSnapshot:
        """Remove every line of the session's cart."""
        await self.store.clear_session(session_id)
        return CartSnapshot(session_id=session_id, totals=self.pricing.compute_totals([]))

    async def prepare_checkout(self, session_id: str) -> CheckoutQuote:
        """
        Quote the amount the payment provider must charge.

        The amount is always the server-side snapshot total; the cart is not
        modified here.

        Raises:
            InvalidArgument: If the cart is empty or totals zero
        """
        snapshot = await self.get_cart(session_id)
        if snapshot.total <= 0:
            raise InvalidArgument(ERROR_CART_NOT_PAYABLE)

        logger.info(
            "Checkout prepared for cart %s: %s item(s), amount %s",
            sanitize_id_for_logging(session_id), snapshot.item_count, snapshot.total,
        )
        return CheckoutQuote(session_id=session_id, amount=snapshot.total, item_count=snapshot.item_count)

    async def confirm_payment(self, session_id: str) -> CartSnapshot:
        """Payment collaborator confirmed the charge: the cart is done."""
        logger.info("Payment confirmed for cart %s, clearing", sanitize_id_for_logging(session_id))
        return await self.empty_cart(session_id)


def build_pricing_engine(settings: Settings) -> PricingEngine:
    """Pricing engine for the configured tax rate and shipping policy."""
    if settings.shipping_flat_rate > 0:
        shipping = flat_rate_shipping(settings.shipping_flat_rate, settings.free_shipping_threshold)
    else:
        shipping = free_shipping
    return PricingEngine(tax_rate=settings.tax_rate, shipping_policy=shipping)


def build_cart_store(settings: Settings) -> CartStore:
    """Cart store for the configured backend."""
    if settings.store_backend == "redis":
        from storefront.db import get_redis
        from .redis_storage import RedisCartStore

        return RedisCartStore(get_redis(settings))
    return InMemoryCartStore()


# Singleton instance
_cart_service: Optional[CartService] = None


def get_cart_service() -> CartService:
    """Get CartService singleton."""
    global _cart_service
    if _cart_service is None:
        settings = get_settings()
        _cart_service = CartService(
            store=build_cart_store(settings),
            catalog=InMemoryCatalog(),
            pricing=build_pricing_engine(settings),
            orphan_policy=settings.orphan_policy,
        )
    return _cart_service
