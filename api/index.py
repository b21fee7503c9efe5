"""
Lumen Storefront - Main FastAPI Application

Single entry point for the cart, checkout and payment webhook API.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront import __version__
from storefront.config import get_settings
from storefront.logging import get_logger
from storefront.routers import router as api_router
from storefront.routers.deps import shutdown_services

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    settings = get_settings()
    logger.info(
        "Storefront starting: store=%s, tax_rate=%s, currency=%s",
        settings.store_backend, settings.tax_rate, settings.currency,
    )
    yield
    await shutdown_services()


app = FastAPI(
    title="Lumen Storefront",
    description="Session cart, pricing and checkout API for the lighting store",
    version=__version__,
    lifespan=lifespan,
)

# Browsers must be able to read the session header to persist it
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[get_settings().session_header],
)

app.include_router(api_router)


# ==================== HEALTH CHECK ====================

@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "service": "lumen-storefront"}
