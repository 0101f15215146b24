"""Landing page API — resolves the purchase token the marketplace redirects with."""

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_fulfillment_service
from app.schemas.marketplace import ResolvedSubscriptionResult
from app.services.fulfillment_service import FulfillmentService

router = APIRouter(prefix="/api/v1/landing", tags=["landing"])


@router.get(
    "",
    response_model=ResolvedSubscriptionResult,
    summary="Resolve a marketplace purchase token",
)
async def resolve_purchase(
    token: str = Query(..., min_length=1),
    service: FulfillmentService = Depends(get_fulfillment_service),
) -> ResolvedSubscriptionResult:
    """Exchange the ``token`` query parameter for the purchased subscription's identity."""
    return await service.resolve_purchase_token(token)
