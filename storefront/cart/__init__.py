"""Cart package: models, storage, pricing and service facade."""
from .models import CartLine, CartSnapshot, CartTotals, LineItem
from .pricing import PricingEngine, ShippingContext, compute_totals, flat_rate_shipping, free_shipping
from .service import CartService, CheckoutQuote, get_cart_service
from .storage import CartStore, InMemoryCartStore

__all__ = [
    "LineItem",
    "CartLine",
    "CartTotals",
    "CartSnapshot",
    "PricingEngine",
    "ShippingContext",
    "compute_totals",
    "flat_rate_shipping",
    "free_shipping",
    "CartStore",
    "InMemoryCartStore",
    "CartService",
    "CheckoutQuote",
    "get_cart_service",
]
