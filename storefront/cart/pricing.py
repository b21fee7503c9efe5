"""
Pricing Engine

Derives subtotal, tax, shipping and total from a set of cart lines. Totals are
recomputed from scratch on every call; nothing is adjusted incrementally.

Calculation order:
1. subtotal = sum(price x quantity), full precision
2. tax = subtotal x tax_rate, full precision
3. shipping = shipping_policy(context)
4. total = round(subtotal + tax + shipping), rounded once
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional, Sequence

from storefront.errors import (
    ERROR_INVALID_SHIPPING,
    ERROR_INVALID_SHIPPING_RATE,
    ERROR_INVALID_TAX_RATE,
    ERROR_NEGATIVE_SHIPPING,
    ERROR_NEGATIVE_TAX_RATE,
    InvalidArgument,
)
from storefront.services.money import ZERO, Numeric, parse_amount, round_money
from .models import CartLine, CartTotals

DEFAULT_TAX_RATE = Decimal("0.09")


@dataclass(frozen=True)
class ShippingContext:
    """What a shipping policy may look at."""
    item_count: int
    subtotal: Decimal
    lines: Sequence[CartLine]


ShippingPolicy = Callable[[ShippingContext], Decimal]


def free_shipping(context: ShippingContext) -> Decimal:
    """Reference policy: shipping is always free."""
    return ZERO


def flat_rate_shipping(rate: Numeric, free_over: Optional[Numeric] = None) -> ShippingPolicy:
    """
    Flat shipping fee per non-empty cart.

    Args:
        rate: Fee charged for any non-empty cart
        free_over: Subtotal at or above which shipping is free

    Returns:
        Shipping policy callable
    """
    fee = parse_amount(rate)
    if fee is None or fee < 0:
        raise InvalidArgument(ERROR_INVALID_SHIPPING_RATE)
    threshold = None
    if free_over is not None:
        threshold = parse_amount(free_over)
        if threshold is None or threshold < 0:
            raise InvalidArgument(ERROR_INVALID_SHIPPING_RATE)

    def policy(context: ShippingContext) -> Decimal:
        if context.item_count == 0:
            return ZERO
        if threshold is not None and context.subtotal >= threshold:
            return ZERO
        return fee

    return policy


class PricingEngine:
    """Stateless totals calculator; safe to share across requests."""

    def __init__(self, tax_rate: Numeric = DEFAULT_TAX_RATE, shipping_policy: ShippingPolicy = free_shipping):
        self.tax_rate = parse_amount(tax_rate)
        if self.tax_rate is None:
            raise InvalidArgument(ERROR_INVALID_TAX_RATE)
        if self.tax_rate < 0:
            raise InvalidArgument(ERROR_NEGATIVE_TAX_RATE)
        self.shipping_policy = shipping_policy

    def compute_totals(self, lines: Sequence[CartLine]) -> CartTotals:
        """Compute totals for the given lines (order does not matter)."""
        if not lines:
            return CartTotals()

        subtotal = sum((line.line_total for line in lines), ZERO)
        tax = subtotal * self.tax_rate

        context = ShippingContext(
            item_count=sum(line.quantity for line in lines),
            subtotal=subtotal,
            lines=tuple(lines),
        )
        shipping = parse_amount(self.shipping_policy(context))
        if shipping is None:
            raise InvalidArgument(ERROR_INVALID_SHIPPING)
        if shipping < 0:
            raise InvalidArgument(ERROR_NEGATIVE_SHIPPING)

        return CartTotals(
            subtotal=subtotal,
            tax=tax,
            shipping=shipping,
            total=round_money(subtotal + tax + shipping),
        )


def compute_totals(
    lines: Sequence[CartLine],
    tax_rate: Numeric = DEFAULT_TAX_RATE,
    shipping_policy: ShippingPolicy = free_shipping,
) -> CartTotals:
    """Functional shortcut for one-off calculations."""
    return PricingEngine(tax_rate, shipping_policy).compute_totals(lines)
