"""Cart models with Decimal-based pricing."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List

from storefront.catalog.models import Product
from storefront.services.money import ZERO, multiply_price, round_money, to_float


@dataclass(frozen=True)
class LineItem:
    """One row of a session's cart: quantity N of product P."""
    id: int
    session_id: str
    product_id: int
    quantity: int
    added_at: str = ""

    def __post_init__(self):
        if not self.added_at:
            object.__setattr__(self, "added_at", datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "added_at": self.added_at,
        }


@dataclass(frozen=True)
class CartLine:
    """A line item joined with its current catalog product."""
    item: LineItem
    product: Product

    @property
    def quantity(self) -> int:
        return self.item.quantity

    @property
    def line_total(self) -> Decimal:
        """Unrounded price x quantity."""
        return multiply_price(self.product.price, self.item.quantity)

    def to_dict(self) -> dict:
        return {
            **self.item.to_dict(),
            "product": self.product.to_dict(),
            "line_total": to_float(round_money(self.line_total)),
        }


@dataclass(frozen=True)
class CartTotals:
    """Monetary totals derived from a set of cart lines."""
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    shipping: Decimal = ZERO
    total: Decimal = ZERO


@dataclass(frozen=True)
class CartSnapshot:
    """Fully joined, fully priced view of a session's cart. Never stored."""
    session_id: str
    lines: List[CartLine] = field(default_factory=list)
    totals: CartTotals = field(default_factory=CartTotals)

    @property
    def items(self) -> List[CartLine]:
        return self.lines

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        """Total number of units in the cart."""
        return sum(line.quantity for line in self.lines)

    @property
    def subtotal(self) -> Decimal:
        return self.totals.subtotal

    @property
    def tax(self) -> Decimal:
        return self.totals.tax

    @property
    def shipping(self) -> Decimal:
        return self.totals.shipping

    @property
    def total(self) -> Decimal:
        return self.totals.total

    def to_dict(self) -> dict:
        """Serialize for API responses; money rounded to 2 dp at this boundary."""
        return {
            "session_id": self.session_id,
            "items": [line.to_dict() for line in self.lines],
            "item_count": self.item_count,
            "subtotal": to_float(round_money(self.subtotal)),
            "tax": to_float(round_money(self.tax)),
            "shipping": to_float(round_money(self.shipping)),
            "total": to_float(round_money(self.total)),
        }
