"""Marketplace Publisher — FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.api.v1.landing import router as landing_router
from app.api.v1.plans import router as plans_router
from app.api.v1.subscriptions import router as subscriptions_router
from app.api.v1.webhooks import router as webhooks_router
from app.config import settings
from app.marketplace.client import MarketplaceSaaSClient
from app.marketplace.exceptions import (
    BadRequestError,
    ConflictError,
    InvalidArgumentError,
    MarketplaceError,
    NotFoundError,
    OperationFailedError,
    UnauthorizedError,
)

# Configure root logger so all app.* loggers output to stderr (captured by Docker).
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

# Status code and generic message per error kind; exception text is only logged.
_ERROR_RESPONSES: list[tuple[type[MarketplaceError], int, str]] = [
    (InvalidArgumentError, status.HTTP_400_BAD_REQUEST, "Invalid request."),
    (BadRequestError, status.HTTP_400_BAD_REQUEST, "The marketplace rejected the request."),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED, "Marketplace authorization failed. Please sign in again."),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "Subscription or operation not found."),
    (ConflictError, status.HTTP_409_CONFLICT, "The subscription was modified concurrently. Please retry."),
    (OperationFailedError, status.HTTP_409_CONFLICT, "The marketplace did not complete the operation."),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup: one marketplace HTTP client for the whole process
    app.state.marketplace_client = MarketplaceSaaSClient.from_settings(settings)
    yield
    # Shutdown: close HTTP client and dispose engine connections
    await app.state.marketplace_client.aclose()
    from app.database import engine

    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Manage SaaS subscriptions purchased through the cloud marketplace.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    """Translate marketplace errors into generic HTTP responses."""
    for error_type, status_code, message in _ERROR_RESPONSES:
        if isinstance(exc, error_type):
            break
    else:
        status_code, message = status.HTTP_502_BAD_GATEWAY, "Something went wrong, please try again later."

    logger.error(
        "%s %s failed: %r %s",
        request.method,
        request.url.path,
        exc,
        exc.message,
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "error_code": exc.error_code.value},
    )


# Routers
app.include_router(subscriptions_router)
app.include_router(landing_router)
app.include_router(plans_router)
app.include_router(webhooks_router)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
