"""
Storefront API Pydantic Models

Request bodies for the cart and checkout endpoints.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


# ==================== CART MODELS ====================

class AddToCartRequest(BaseModel):
    product_id: int
    quantity: int = 1


class UpdateCartItemRequest(BaseModel):
    quantity: int


# ==================== CHECKOUT MODELS ====================

class CheckoutRequest(BaseModel):
    """Checkout body. A client-supplied amount is accepted for compatibility and ignored."""
    model_config = ConfigDict(extra="ignore")

    amount: Optional[Any] = None
