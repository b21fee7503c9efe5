"""
Cart Router

Session cart endpoints. Every response is a full, freshly priced snapshot.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from storefront.errors import StorefrontError
from storefront.logging import get_logger
from .deps import get_cart_service, http_error, resolve_session
from .models import AddToCartRequest, UpdateCartItemRequest

logger = get_logger(__name__)

router = APIRouter(tags=["cart"])


@router.get("/cart")
async def get_cart(session_id: str = Depends(resolve_session), cart_service=Depends(get_cart_service)):
    """Get the session's cart."""
    try:
        snapshot = await cart_service.get_cart(session_id)
    except StorefrontError as e:
        raise http_error(e, session_id)
    except Exception as e:
        logger.error(f"Failed to get cart: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch cart items")
    return snapshot.to_dict()


@router.post("/cart", status_code=status.HTTP_201_CREATED)
async def add_to_cart(
    request: AddToCartRequest,
    session_id: str = Depends(resolve_session),
    cart_service=Depends(get_cart_service),
):
    """Add a product to the cart (repeat adds increase quantity)."""
    try:
        snapshot = await cart_service.add_to_cart(session_id, request.product_id, request.quantity)
    except StorefrontError as e:
        raise http_error(e, session_id)
    except Exception as e:
        logger.error(f"Failed to add to cart: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to add item to cart")
    return snapshot.to_dict()


@router.patch("/cart/{line_item_id}")
async def update_cart_item(
    line_item_id: int,
    request: UpdateCartItemRequest,
    session_id: str = Depends(resolve_session),
    cart_service=Depends(get_cart_service),
):
    """Set a cart line's quantity."""
    try:
        snapshot = await cart_service.update_quantity(session_id, line_item_id, request.quantity)
    except StorefrontError as e:
        raise http_error(e, session_id)
    except Exception as e:
        logger.error(f"Failed to update cart item: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update cart item")
    return snapshot.to_dict()


@router.delete("/cart/{line_item_id}")
async def remove_cart_item(
    line_item_id: int,
    session_id: str = Depends(resolve_session),
    cart_service=Depends(get_cart_service),
):
    """Remove a line from the cart."""
    try:
        snapshot = await cart_service.remove_from_cart(session_id, line_item_id)
    except StorefrontError as e:
        raise http_error(e, session_id)
    except Exception as e:
        logger.error(f"Failed to remove cart item: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to remove cart item")
    return snapshot.to_dict()


@router.delete("/cart")
async def clear_cart(session_id: str = Depends(resolve_session), cart_service=Depends(get_cart_service)):
    """Empty the cart."""
    try:
        snapshot = await cart_service.empty_cart(session_id)
    except StorefrontError as e:
        raise http_error(e, session_id)
    except Exception as e:
        logger.error(f"Failed to clear cart: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to clear cart")
    return snapshot.to_dict()
