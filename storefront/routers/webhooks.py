"""
Webhooks Router

Payment provider confirmation. The signature is verified before anything
touches a cart.
"""
from fastapi import APIRouter, Depends, Request

from storefront.errors import StorefrontError
from storefront.logging import get_logger
from .deps import get_checkout_service, http_error

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post("/webhook/stripe")
async def stripe_webhook(request: Request, checkout_service=Depends(get_checkout_service)):
    """Handle Stripe webhook deliveries."""
    raw_body = await request.body()
    signature = request.headers.get("Stripe-Signature", "")

    try:
        result = await checkout_service.handle_webhook(raw_body, signature)
    except StorefrontError as e:
        logger.warning(f"Stripe webhook rejected: {e.message}")
        raise http_error(e)

    return {"received": True, **result}
