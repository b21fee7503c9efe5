"""Pytest configuration and fixtures"""
import asyncio
import json
import os
import time
from decimal import Decimal
from urllib.parse import parse_qs

import httpx
import pytest

# Set test environment variables before settings are first loaded
os.environ.setdefault("CART_TAX_RATE", "0.09")
os.environ.setdefault("CART_STORE_BACKEND", "memory")
os.environ.setdefault("SESSION_HEADER", "X-Session-Id")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_key")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")

from storefront.cart import CartService, InMemoryCartStore, PricingEngine  # noqa: E402
from storefront.catalog import InMemoryCatalog  # noqa: E402
from storefront.payments import CheckoutService, StripeGateway  # noqa: E402

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def catalog():
    """Catalog seeded with the default lighting products (id 1 = Nova Pendant Light, 249.99)"""
    return InMemoryCatalog()


@pytest.fixture
def store():
    """Empty in-memory cart store"""
    return InMemoryCartStore()


class YieldingCartStore(InMemoryCartStore):
    """In-memory store that yields to the event loop before every product lookup."""

    async def find_line_item_by_product(self, session_id, product_id):
        await asyncio.sleep(0)
        return await super().find_line_item_by_product(session_id, product_id)


@pytest.fixture
def yielding_store():
    """Store whose read-modify-write interleaves unless the session lock holds"""
    return YieldingCartStore()


@pytest.fixture
def cart_service(store, catalog):
    """Cart service with the reference pricing (9% tax, free shipping)"""
    return CartService(store=store, catalog=catalog, pricing=PricingEngine(tax_rate=Decimal("0.09")))


@pytest.fixture
def stripe_requests():
    """Requests received by the fake Stripe API"""
    return []


@pytest.fixture
def stripe_transport(stripe_requests):
    """httpx transport answering like the Stripe PaymentIntents endpoint"""

    def handler(request: httpx.Request) -> httpx.Response:
        form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
        stripe_requests.append({"url": str(request.url), "headers": dict(request.headers), "form": form})
        if request.url.path.endswith("/payment_intents"):
            return httpx.Response(200, json={
                "id": "pi_test_123",
                "object": "payment_intent",
                "amount": int(form["amount"]),
                "currency": form["currency"],
                "client_secret": "pi_test_123_secret_abc",
                "status": "requires_payment_method",
            })
        return httpx.Response(404, json={"error": {"message": "Unrecognized request URL"}})

    return httpx.MockTransport(handler)


@pytest.fixture
def stripe_gateway(stripe_transport):
    """Stripe gateway wired to the fake transport"""
    return StripeGateway(
        secret_key="sk_test_key",
        webhook_secret=WEBHOOK_SECRET,
        api_url="https://api.stripe.test/v1",
        http_client=httpx.AsyncClient(transport=stripe_transport),
    )


@pytest.fixture
def checkout_service(cart_service, stripe_gateway):
    """Checkout service over the in-memory cart and fake Stripe"""
    return CheckoutService(cart_service=cart_service, gateway=stripe_gateway, currency="usd")


@pytest.fixture
def make_event():
    """Factory for serialized Stripe event payloads"""

    def _make_event(event_type: str, session_id: str | None = None, intent_id: str = "pi_test_123") -> bytes:
        metadata = {"session_id": session_id} if session_id else {}
        return json.dumps({
            "id": "evt_test_1",
            "type": event_type,
            "data": {"object": {"id": intent_id, "object": "payment_intent", "metadata": metadata}},
        }).encode()

    return _make_event


@pytest.fixture
def sign_payload():
    """Build a valid Stripe-Signature header for a payload"""
    from storefront.payments import compute_signature

    def _sign(payload: bytes, timestamp: int | None = None) -> str:
        timestamp = int(time.time()) if timestamp is None else timestamp
        return f"t={timestamp},v1={compute_signature(payload, timestamp, WEBHOOK_SECRET)}"

    return _sign
