"""Checkout: hand the trusted cart total to the payment provider.

The cart is never cleared here when an intent is created. It is cleared only
when the provider confirms the payment through a verified webhook.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from storefront.cart.service import CartService
from storefront.logging import get_logger, sanitize_id_for_logging, sanitize_string_for_logging
from storefront.services.money import format_money, to_float
from .gateway import PaymentGateway

logger = get_logger(__name__)

EVENT_PAYMENT_SUCCEEDED = "payment_intent.succeeded"

SESSION_METADATA_KEY = "session_id"


@dataclass(frozen=True)
class CheckoutSession:
    """What the browser needs to complete payment."""
    client_secret: str
    payment_intent_id: str
    amount: Decimal
    currency: str

    def to_dict(self) -> dict:
        return {
            "client_secret": self.client_secret,
            "payment_intent_id": self.payment_intent_id,
            "amount": to_float(self.amount),
            "currency": self.currency,
        }


class CheckoutService:
    """Connects the cart service to a payment gateway."""

    def __init__(self, cart_service: CartService, gateway: PaymentGateway, currency: str = "usd"):
        self.cart_service = cart_service
        self.gateway = gateway
        self.currency = currency

    async def start_checkout(self, session_id: str) -> CheckoutSession:
        """
        Create a payment intent for the session's current cart total.

        Provider errors propagate unchanged and leave the cart as it was.
        """
        quote = await self.cart_service.prepare_checkout(session_id)
        intent = await self.gateway.create_payment_intent(
            quote.amount,
            self.currency,
            metadata={SESSION_METADATA_KEY: session_id},
        )
        logger.info(
            "Checkout started for cart %s: intent %s, amount %s",
            sanitize_id_for_logging(session_id),
            sanitize_id_for_logging(intent.id),
            format_money(quote.amount, self.currency),
        )
        return CheckoutSession(
            client_secret=intent.client_secret,
            payment_intent_id=intent.id,
            amount=quote.amount,
            currency=self.currency,
        )

    async def handle_webhook(self, payload: bytes, signature_header: str) -> dict[str, Any]:
        """
        Verify a provider webhook and apply it.

        Only a succeeded payment intent carrying a session id clears a cart;
        every other event is acknowledged and ignored.
        """
        event = self.gateway.verify_webhook(payload, signature_header)
        event_type = str(event.get("type", ""))

        if event_type != EVENT_PAYMENT_SUCCEEDED:
            logger.info("Webhook event %s ignored", sanitize_string_for_logging(event_type))
            return {"handled": False, "event_type": event_type}

        intent = (event.get("data") or {}).get("object") or {}
        session_id = (intent.get("metadata") or {}).get(SESSION_METADATA_KEY)
        if not session_id:
            logger.warning(
                "Payment intent %s succeeded without a session id",
                sanitize_id_for_logging(intent.get("id")),
            )
            return {"handled": False, "event_type": event_type}

        await self.cart_service.confirm_payment(session_id)
        return {"handled": True, "event_type": event_type}
