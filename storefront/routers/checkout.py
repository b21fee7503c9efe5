"""
Checkout Router

One-time payment: the server computes the amount from the cart and asks the
payment provider for a client secret.
"""
from typing import Optional

from fastapi import APIRouter, Depends

from storefront.errors import StorefrontError
from storefront.logging import get_logger, sanitize_id_for_logging
from .deps import get_checkout_service, http_error, resolve_session
from .models import CheckoutRequest

logger = get_logger(__name__)

router = APIRouter(tags=["checkout"])


@router.post("/checkout")
@router.post("/create-payment-intent")
async def create_payment_intent(
    request: Optional[CheckoutRequest] = None,
    session_id: str = Depends(resolve_session),
    checkout_service=Depends(get_checkout_service),
):
    """Create a payment intent for the current cart total."""
    if request is not None and request.amount is not None:
        logger.info(
            "Ignoring client-supplied amount for cart %s", sanitize_id_for_logging(session_id)
        )

    try:
        checkout = await checkout_service.start_checkout(session_id)
    except StorefrontError as e:
        raise http_error(e, session_id)
    return checkout.to_dict()
