"""Shared API dependencies — single import point for all routers.

Re-exports the database session and builds the per-request marketplace
service and plans repository::

    from app.api.deps import get_db, get_fulfillment_service
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.marketplace.client import MarketplaceSaaSClient
from app.marketplace.fulfillment import FulfillmentApiClient
from app.services.fulfillment_service import FulfillmentService, PollingConfig
from app.services.plans_repository import PlansRepository


def get_marketplace_client(request: Request) -> MarketplaceSaaSClient:
    """Return the application-wide raw marketplace client (created at startup)."""
    return request.app.state.marketplace_client


def get_fulfillment_service(
    client: MarketplaceSaaSClient = Depends(get_marketplace_client),
) -> FulfillmentService:
    """Build a FulfillmentService over the shared client."""
    return FulfillmentService(
        FulfillmentApiClient(client),
        polling=PollingConfig.from_settings(settings),
    )


def get_plans_repository(db: AsyncSession = Depends(get_db)) -> PlansRepository:
    """Build a PlansRepository bound to the request's session."""
    return PlansRepository(db, settings.is_automatic_provisioning_supported)


__all__ = [
    "get_db",
    "get_marketplace_client",
    "get_fulfillment_service",
    "get_plans_repository",
]
