"""Storefront API Router.

Combines all sub-routers into a single router with prefix /api.
"""
from fastapi import APIRouter

from .cart import router as cart_router
from .checkout import router as checkout_router
from .webhooks import router as webhooks_router

router = APIRouter(prefix="/api")

router.include_router(cart_router)
router.include_router(checkout_router)
router.include_router(webhooks_router)

__all__ = ["router"]
