"""Plans API routes — stored plan metadata, metered dimensions, attributes and events."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_fulfillment_service, get_plans_repository
from app.schemas.plan import (
    PlanAttributeMappingIn,
    PlanAttributeRecord,
    PlanDefinition,
    PlanEventRecord,
    PlanEventsMappingIn,
    PlanListResponse,
    PlanResponse,
    PlanUpsertResponse,
)
from app.services.fulfillment_service import FulfillmentService
from app.services.plans_repository import PlansRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/plans", tags=["plans"])


@router.get(
    "",
    response_model=PlanListResponse,
    summary="List stored plans",
)
async def list_plans(
    offer_id: uuid.UUID | None = Query(None),
    repo: PlansRepository = Depends(get_plans_repository),
) -> PlanListResponse:
    """All stored plans, optionally restricted to one offer."""
    plans = await repo.get_plans_by_offer_id(offer_id) if offer_id else await repo.get_all()
    return PlanListResponse(
        items=[PlanResponse.model_validate(p) for p in plans],
        total=len(plans),
    )


@router.get(
    "/{plan_internal_id}",
    response_model=PlanResponse,
    summary="Get a stored plan",
)
async def get_plan(
    plan_internal_id: int,
    repo: PlansRepository = Depends(get_plans_repository),
) -> PlanResponse:
    plan = await repo.get(plan_internal_id)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found")
    return PlanResponse.model_validate(plan)


@router.put(
    "",
    response_model=PlanUpsertResponse,
    summary="Create or update a plan by its marketplace plan ID",
)
async def upsert_plan(
    body: PlanDefinition,
    repo: PlansRepository = Depends(get_plans_repository),
) -> PlanUpsertResponse:
    """Upsert a plan; metered dimensions are added or updated, never removed."""
    return PlanUpsertResponse(id=await repo.upsert_plan(body))


@router.delete(
    "/{plan_internal_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a stored plan",
)
async def delete_plan(
    plan_internal_id: int,
    repo: PlansRepository = Depends(get_plans_repository),
) -> None:
    await repo.remove_plan(plan_internal_id)


@router.post(
    "/sync/{subscription_id}",
    response_model=PlanListResponse,
    summary="Store the plans available to a subscription",
)
async def sync_plans(
    subscription_id: uuid.UUID,
    offer_id: uuid.UUID | None = Query(None),
    service: FulfillmentService = Depends(get_fulfillment_service),
    repo: PlansRepository = Depends(get_plans_repository),
) -> PlanListResponse:
    """Fetch the subscription's available plans from the marketplace and upsert each one."""
    saved: list[PlanResponse] = []
    for plan in await service.list_plans(subscription_id):
        plan_internal_id = await repo.upsert_plan(PlanDefinition.from_plan_detail(plan, offer_id))
        stored = await repo.get(plan_internal_id)
        if stored is not None:
            saved.append(PlanResponse.model_validate(stored))
    logger.info("Synced %d plan(s) for subscription %s", len(saved), subscription_id)
    return PlanListResponse(items=saved, total=len(saved))


@router.get(
    "/by-guid/{plan_guid}/attributes",
    response_model=list[PlanAttributeRecord],
    summary="Offer attributes and their enablement for a plan",
)
async def get_plan_attributes(
    plan_guid: uuid.UUID,
    offer_id: uuid.UUID = Query(...),
    repo: PlansRepository = Depends(get_plans_repository),
) -> list[PlanAttributeRecord]:
    return await repo.get_plan_attributes(plan_guid, offer_id)


@router.put(
    "/attributes",
    response_model=PlanUpsertResponse,
    summary="Enable or disable an offer attribute for a plan",
)
async def save_plan_attribute(
    body: PlanAttributeMappingIn,
    repo: PlansRepository = Depends(get_plans_repository),
) -> PlanUpsertResponse:
    return PlanUpsertResponse(id=await repo.save_plan_attributes(body) or 0)


@router.get(
    "/by-guid/{plan_guid}/events",
    response_model=list[PlanEventRecord],
    summary="Lifecycle events and notification settings for a plan",
)
async def get_plan_events(
    plan_guid: uuid.UUID,
    repo: PlansRepository = Depends(get_plans_repository),
) -> list[PlanEventRecord]:
    return await repo.get_events_by_plan(plan_guid)


@router.put(
    "/events",
    response_model=PlanUpsertResponse,
    summary="Save notification settings for a plan event",
)
async def save_plan_event(
    body: PlanEventsMappingIn,
    repo: PlansRepository = Depends(get_plans_repository),
) -> PlanUpsertResponse:
    return PlanUpsertResponse(id=await repo.add_plan_events(body) or 0)
