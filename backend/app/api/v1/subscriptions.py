"""Subscription API routes — list, inspect and change marketplace subscriptions."""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.api.deps import get_fulfillment_service
from app.marketplace.exceptions import MarketplaceError
from app.marketplace.mapper import map_subscription_view
from app.schemas.marketplace import (
    ChangePlanRequest,
    ChangeQuantityRequest,
    OperationResult,
    SubscriptionListResponse,
    SubscriptionOperationRequest,
    SubscriptionStatus,
    SubscriptionUpdateResult,
    SubscriptionView,
)
from app.services.fulfillment_service import FulfillmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/subscriptions", tags=["subscriptions"])

# How often a waiting change request checks whether its client went away.
DISCONNECT_CHECK_SECONDS = 1.0

# Non-standard "client closed request" status, as used by nginx.
CLIENT_CLOSED_REQUEST = 499


async def _subscription_view(
    service: FulfillmentService, subscription_id: uuid.UUID, plan_id: str | None
) -> SubscriptionView:
    subscription = await service.get_subscription(subscription_id)
    plans = await service.list_plans(subscription.id)
    wanted = plan_id or subscription.plan_id
    selected = next((p for p in plans if p.plan_id == wanted), None)
    return map_subscription_view(subscription, selected, plans)


async def _watch_disconnect(request: Request, cancel_event: asyncio.Event) -> None:
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected from %s, abandoning operation wait", request.url.path)
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_CHECK_SECONDS)


async def wait_while_connected(
    request: Request,
    wait: Callable[[asyncio.Event], Awaitable[OperationResult]],
) -> OperationResult:
    """Run an operation wait that is cancelled once the HTTP client disconnects.

    ``wait`` receives the cancel event to hand to the polling loop. A wait
    abandoned because the client left ends with a 499 response; any other
    cancellation propagates.
    """
    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        return await wait(cancel_event)
    except asyncio.CancelledError:
        if not cancel_event.is_set():
            raise
        raise HTTPException(
            status_code=CLIENT_CLOSED_REQUEST,
            detail="Client disconnected before the operation finished",
        ) from None
    finally:
        watcher.cancel()


@router.get(
    "",
    response_model=SubscriptionListResponse,
    summary="List all marketplace subscriptions",
)
async def list_subscriptions(
    service: FulfillmentService = Depends(get_fulfillment_service),
) -> SubscriptionListResponse:
    """Return every subscription with its current plan and the plans it can move to."""
    views: list[SubscriptionView] = []
    for subscription in await service.list_subscriptions():
        try:
            plans = await service.list_plans(subscription.id)
        except MarketplaceError as e:
            logger.warning("Listing plans failed for subscription %s: %s", subscription.id, e)
            plans = []
        selected = next((p for p in plans if p.plan_id == subscription.plan_id), None)
        views.append(map_subscription_view(subscription, selected, plans))
    return SubscriptionListResponse(subscriptions=views)


@router.get(
    "/{subscription_id}",
    response_model=SubscriptionView,
    summary="Get a subscription by ID",
)
async def get_subscription(
    subscription_id: uuid.UUID,
    plan_id: str | None = Query(None, alias="planId"),
    service: FulfillmentService = Depends(get_fulfillment_service),
) -> SubscriptionView:
    """Subscription detail; ``planId`` selects which plan is shown (defaults to the current one)."""
    return await _subscription_view(service, subscription_id, plan_id)


@router.post(
    "/{subscription_id}/change-plan",
    response_model=OperationResult,
    summary="Change the plan of a subscription",
)
async def change_plan(
    subscription_id: uuid.UUID,
    body: ChangePlanRequest,
    request: Request,
    service: FulfillmentService = Depends(get_fulfillment_service),
) -> OperationResult:
    """Start a plan change and wait for the marketplace to finish it."""
    return await wait_while_connected(
        request,
        lambda cancel_event: service.change_plan_and_wait(subscription_id, body.plan_id, cancel_event),
    )


@router.post(
    "/{subscription_id}/change-quantity",
    response_model=OperationResult,
    summary="Change the quantity of a subscription",
)
async def change_quantity(
    subscription_id: uuid.UUID,
    body: ChangeQuantityRequest,
    request: Request,
    service: FulfillmentService = Depends(get_fulfillment_service),
) -> OperationResult:
    """Start a quantity change and wait for the marketplace to finish it."""
    return await wait_while_connected(
        request,
        lambda cancel_event: service.change_quantity_and_wait(subscription_id, body.quantity, cancel_event),
    )


@router.post(
    "/{subscription_id}/operation",
    response_model=SubscriptionUpdateResult | None,
    summary="Activate or deactivate a subscription",
)
async def subscription_operation(
    subscription_id: uuid.UUID,
    body: SubscriptionOperationRequest,
    service: FulfillmentService = Depends(get_fulfillment_service),
) -> SubscriptionUpdateResult | None:
    """Activate (skipped when already Subscribed) or Deactivate (unsubscribe)."""
    if body.operation == "Deactivate":
        return await service.delete_subscription(subscription_id, body.plan_id)

    subscription = await service.get_subscription(subscription_id)
    if subscription.saas_subscription_status == SubscriptionStatus.SUBSCRIBED:
        logger.info("Subscription %s already active, skipping activation", subscription_id)
        return None
    await service.activate(subscription_id, body.plan_id)
    return None


@router.get(
    "/{subscription_id}/operations/{operation_id}",
    response_model=OperationResult,
    summary="Read the status of an operation",
)
async def get_operation_status(
    subscription_id: uuid.UUID,
    operation_id: uuid.UUID,
    service: FulfillmentService = Depends(get_fulfillment_service),
) -> OperationResult:
    """Single status read, no polling."""
    return await service.get_operation_status(subscription_id, operation_id)
