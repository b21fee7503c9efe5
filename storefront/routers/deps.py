"""
Shared Dependencies for Routers

Lazy-loaded singletons and the session dependency. Everything the routers
need is resolved here so tests can swap it via app.dependency_overrides.
"""
from typing import Optional, TYPE_CHECKING

from fastapi import HTTPException, Request, Response

from storefront.auth import SessionIdentityProvider
from storefront.config import get_settings
from storefront.errors import (
    ConfigurationError,
    Forbidden,
    InconsistentState,
    InvalidArgument,
    NotFound,
    PaymentProviderError,
    StorefrontError,
    WebhookVerificationError,
)

if TYPE_CHECKING:
    from storefront.cart import CartService
    from storefront.payments import CheckoutService, PaymentGateway


# ==================== LAZY SINGLETONS ====================

_session_provider: Optional[SessionIdentityProvider] = None
_payment_gateway: Optional["PaymentGateway"] = None
_checkout_service: Optional["CheckoutService"] = None


def get_session_provider() -> SessionIdentityProvider:
    """Get or create SessionIdentityProvider singleton"""
    global _session_provider
    if _session_provider is None:
        _session_provider = SessionIdentityProvider()
    return _session_provider


def get_cart_service() -> "CartService":
    """Get CartService singleton (lazy loaded)"""
    from storefront.cart import get_cart_service as _get_cart_service
    return _get_cart_service()


def get_payment_gateway() -> "PaymentGateway":
    """Get or create the Stripe gateway singleton (lazy loaded)"""
    global _payment_gateway
    if _payment_gateway is None:
        from storefront.payments import StripeGateway
        _payment_gateway = StripeGateway.from_settings(get_settings())
    return _payment_gateway


def get_checkout_service() -> "CheckoutService":
    """Get or create CheckoutService singleton (lazy loaded)"""
    global _checkout_service
    if _checkout_service is None:
        from storefront.payments import CheckoutService
        _checkout_service = CheckoutService(
            cart_service=get_cart_service(),
            gateway=get_payment_gateway(),
            currency=get_settings().currency,
        )
    return _checkout_service


# ==================== SESSION ====================

def resolve_session(request: Request, response: Response) -> str:
    """
    Resolve the caller's session from the configured header.

    The resolved token is echoed back in the same header so clients can
    persist a freshly issued one.
    """
    header = get_settings().session_header
    resolution = get_session_provider().resolve_or_issue(request.headers.get(header))
    response.headers[header] = resolution.session_id
    request.state.session_id = resolution.session_id
    return resolution.session_id


# ==================== ERRORS ====================

ERROR_STATUS_CODES = (
    (InvalidArgument, 400),
    (WebhookVerificationError, 400),
    (Forbidden, 403),
    (NotFound, 404),
    (InconsistentState, 409),
    (PaymentProviderError, 502),
    (ConfigurationError, 500),
)


def http_error(exc: StorefrontError, session_id: Optional[str] = None) -> HTTPException:
    """Translate a storefront error into an HTTPException."""
    status_code = next((code for kind, code in ERROR_STATUS_CODES if isinstance(exc, kind)), 500)
    headers = {get_settings().session_header: session_id} if session_id else None
    return HTTPException(status_code=status_code, detail=exc.message, headers=headers)


# ==================== SHUTDOWN HELPERS ====================

async def shutdown_services():
    """Cleanly close singleton services (http clients, etc.)."""
    global _payment_gateway, _checkout_service
    if _payment_gateway is not None:
        try:
            await _payment_gateway.aclose()
        finally:
            _payment_gateway = None
            _checkout_service = None
