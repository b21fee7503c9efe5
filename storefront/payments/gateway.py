"""Payment gateway port.

The cart core only ever hands a trusted amount to the gateway and receives an
opaque client secret back; provider internals stay behind this interface.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional


@dataclass(frozen=True)
class PaymentIntent:
    """Provider-side intent to collect a one-time payment."""
    id: str
    client_secret: str
    amount: Decimal
    currency: str
    status: str = ""


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    async def create_payment_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> PaymentIntent:
        """Create a payment intent for amount (major units) and return it."""

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature_header: str) -> dict:
        """Authenticate a webhook delivery and return the parsed event."""

    async def aclose(self) -> None:
        """Release network resources."""
