"""Payment processing module."""
from .checkout import CheckoutService, CheckoutSession, EVENT_PAYMENT_SUCCEEDED
from .gateway import PaymentGateway, PaymentIntent
from .stripe_gateway import StripeGateway, compute_signature

__all__ = [
    "CheckoutService",
    "CheckoutSession",
    "EVENT_PAYMENT_SUCCEEDED",
    "PaymentGateway",
    "PaymentIntent",
    "StripeGateway",
    "compute_signature",
]
