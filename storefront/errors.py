"""
Storefront errors.

Typed failures raised by the cart, pricing and checkout core, plus the
centralized message constants used when raising them.
"""

# Cart errors
ERROR_QUANTITY_NOT_POSITIVE = "Quantity must be a positive integer"
ERROR_LINE_ITEM_NOT_FOUND = "Cart item not found"
ERROR_LINE_ITEM_FORBIDDEN = "Cart item does not belong to this session"
ERROR_ORPHANED_LINE_ITEM = "Cart item references a product that is no longer in the catalog"

# Product errors
ERROR_PRODUCT_NOT_FOUND = "Product not found"

# Pricing errors
ERROR_NEGATIVE_TAX_RATE = "Tax rate must not be negative"
ERROR_INVALID_TAX_RATE = "Tax rate must be a number"
ERROR_NEGATIVE_SHIPPING = "Shipping policy returned a negative amount"
ERROR_INVALID_SHIPPING = "Shipping policy returned a non-numeric amount"
ERROR_INVALID_SHIPPING_RATE = "Shipping rate must be a non-negative number"

# Checkout / payment errors
ERROR_CART_NOT_PAYABLE = "Cart total must be greater than zero"
ERROR_INVALID_AMOUNT = "Invalid amount"
ERROR_PAYMENT_FAILED = "Payment provider request failed"
ERROR_INVALID_SIGNATURE = "Invalid webhook signature"


class StorefrontError(Exception):
    """Base class for all storefront failures."""

    default_message = "Storefront error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidArgument(StorefrontError, ValueError):
    """Non-positive quantity, non-numeric amount, unpayable cart."""

    default_message = "Invalid argument"


class NotFound(StorefrontError, LookupError):
    """Unknown line item or product."""

    default_message = "Not found"


class Forbidden(StorefrontError):
    """Line item mutation attempted from a different session."""

    default_message = ERROR_LINE_ITEM_FORBIDDEN


class InconsistentState(StorefrontError):
    """A cart line references a product missing from the catalog."""

    default_message = ERROR_ORPHANED_LINE_ITEM


class PaymentProviderError(StorefrontError):
    """The payment provider rejected or failed a request."""

    default_message = ERROR_PAYMENT_FAILED


class ConfigurationError(StorefrontError):
    """Required configuration is missing or malformed."""

    default_message = "Storefront is not configured"


class WebhookVerificationError(StorefrontError):
    """Webhook payload could not be authenticated or parsed."""

    default_message = ERROR_INVALID_SIGNATURE


__all__ = [
    "StorefrontError",
    "InvalidArgument",
    "NotFound",
    "Forbidden",
    "InconsistentState",
    "PaymentProviderError",
    "ConfigurationError",
    "WebhookVerificationError",
]
