"""Stripe payment gateway over the REST API.

- Endpoint: POST /v1/payment_intents (form-encoded)
- Required: amount (minor units), currency
- We send: automatic_payment_methods[enabled]=true, metadata[session_id]
- Webhooks: Stripe-Signature header "t=<unix>,v1=<hex hmac-sha256>"
"""
import hashlib
import hmac
import json
import time
from typing import Any, Mapping, Optional

import httpx

from storefront.config import Settings
from storefront.errors import (
    ERROR_INVALID_AMOUNT,
    ERROR_INVALID_SIGNATURE,
    ConfigurationError,
    InvalidArgument,
    PaymentProviderError,
    WebhookVerificationError,
)
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.money import from_cents, parse_amount, round_money, to_cents
from .gateway import PaymentGateway, PaymentIntent

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.stripe.com/v1"

# Seconds a signed webhook stays valid
WEBHOOK_TOLERANCE = 300


def _parse_signature_header(header: str) -> tuple[int, list[str]]:
    """Split "t=...,v1=...,v1=..." into (timestamp, [v1 signatures])."""
    timestamp = None
    signatures = []
    for part in (header or "").split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise WebhookVerificationError("Malformed signature timestamp")
        elif key == "v1" and value:
            signatures.append(value)
    if timestamp is None or not signatures:
        raise WebhookVerificationError("Missing signature or timestamp")
    return timestamp, signatures


def compute_signature(payload: bytes, timestamp: int, secret: str) -> str:
    """HMAC-SHA256 of "{timestamp}.{payload}" as lowercase hex."""
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


class StripeGateway(PaymentGateway):
    """Payment gateway for Stripe PaymentIntents."""

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str = "",
        api_url: str = DEFAULT_API_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        webhook_tolerance: int = WEBHOOK_TOLERANCE,
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.api_url = api_url.rstrip("/")
        self.webhook_tolerance = webhook_tolerance

        # HTTP client (lazy init)
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripeGateway":
        return cls(
            secret_key=settings.stripe_secret_key,
            webhook_secret=settings.stripe_webhook_secret,
            api_url=settings.stripe_api_url,
        )

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy creation of shared httpx client with timeouts."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(10.0, connect=5.0, read=10.0, write=10.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._http_client

    def _validate_config(self) -> str:
        if not self.secret_key:
            raise ConfigurationError("Stripe secret key (STRIPE_SECRET_KEY) is not configured")
        return self.secret_key

    async def create_payment_intent(
        self,
        amount: Any,
        currency: str = "usd",
        metadata: Optional[Mapping[str, str]] = None,
    ) -> PaymentIntent:
        """
        Create a Stripe PaymentIntent.

        Args:
            amount: Amount in major units; must be a positive number
            currency: ISO currency code
            metadata: Attached to the intent and echoed back in webhooks

        Returns:
            PaymentIntent with the client secret for the browser

        Raises:
            InvalidArgument: Non-numeric or non-positive amount
            PaymentProviderError: Stripe rejected the request or was unreachable
        """
        parsed = parse_amount(amount)
        if parsed is None or parsed <= 0:
            raise InvalidArgument(ERROR_INVALID_AMOUNT)
        cents = to_cents(round_money(parsed))
        if cents <= 0:
            raise InvalidArgument(ERROR_INVALID_AMOUNT)

        secret_key = self._validate_config()
        payment_currency = (currency or "usd").lower()

        payload = {
            "amount": str(cents),
            "currency": payment_currency,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in (metadata or {}).items():
            payload[f"metadata[{key}]"] = str(value)

        headers = {
            "Authorization": f"Bearer {secret_key}",
            "Accept": "application/json",
        }

        logger.info("Stripe payment intent creation: amount=%s %s", cents, payment_currency)

        client = await self._get_http_client()
        try:
            response = await client.post(f"{self.api_url}/payment_intents", data=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            try:
                error_detail = e.response.json().get("error", {}).get("message") or e.response.text[:200]
            except (ValueError, AttributeError):
                error_detail = e.response.text[:200]
            logger.error("Stripe API error %s: %s", e.response.status_code, error_detail)
            raise PaymentProviderError(f"Stripe API error: {error_detail}") from e
        except httpx.RequestError as e:
            logger.exception("Stripe network error")
            raise PaymentProviderError(f"Failed to connect to Stripe API: {e!s}") from e
        except ValueError as e:
            raise PaymentProviderError("Stripe returned a non-JSON response") from e

        client_secret = data.get("client_secret") if isinstance(data, dict) else None
        if not client_secret:
            logger.error("Stripe: client_secret not in response")
            raise PaymentProviderError("client_secret not found in Stripe response")

        intent = PaymentIntent(
            id=str(data.get("id", "")),
            client_secret=client_secret,
            amount=from_cents(int(data.get("amount", cents))),
            currency=str(data.get("currency", payment_currency)),
            status=str(data.get("status", "")),
        )
        logger.info("Stripe payment intent created: %s", sanitize_id_for_logging(intent.id))
        return intent

    def verify_webhook(self, payload: bytes, signature_header: str, now: Optional[float] = None) -> dict:
        """
        Verify a Stripe webhook signature and return the parsed event.

        Raises:
            ConfigurationError: Webhook secret not configured
            WebhookVerificationError: Bad signature, stale timestamp or body
        """
        if not self.webhook_secret:
            raise ConfigurationError("Stripe webhook secret (STRIPE_WEBHOOK_SECRET) is not configured")
        if isinstance(payload, str):
            payload = payload.encode("utf-8")

        timestamp, signatures = _parse_signature_header(signature_header)
        expected = compute_signature(payload, timestamp, self.webhook_secret).encode("ascii")
        # Header values may carry non-ASCII text; compare as bytes
        if not any(
            hmac.compare_digest(expected, candidate.encode("utf-8", "surrogateescape"))
            for candidate in signatures
        ):
            logger.warning("Stripe webhook: signature mismatch")
            raise WebhookVerificationError(ERROR_INVALID_SIGNATURE)

        current = time.time() if now is None else now
        if abs(current - timestamp) > self.webhook_tolerance:
            logger.warning("Stripe webhook: timestamp outside tolerance")
            raise WebhookVerificationError("Webhook timestamp outside tolerance")

        try:
            event = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise WebhookVerificationError("Webhook body is not valid JSON") from e
        if not isinstance(event, dict):
            raise WebhookVerificationError("Webhook body is not an event object")
        return event

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
