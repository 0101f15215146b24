"""Marketplace webhook endpoint — receives subscription lifecycle notifications."""

import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_fulfillment_service
from app.marketplace.webhooks import WEBHOOK_HANDLERS
from app.schemas.marketplace import WebhookPayload
from app.services.fulfillment_service import FulfillmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/webhooks", tags=["webhooks"])


@router.post("/marketplace")
async def marketplace_webhook(
    payload: WebhookPayload,
    service: FulfillmentService = Depends(get_fulfillment_service),
) -> dict[str, str]:
    """Dispatch a marketplace notification to its handler."""
    handler = WEBHOOK_HANDLERS.get(payload.action)
    if handler is None:
        logger.debug("Unhandled webhook action: %s", payload.action)
        return {"status": "ignored"}

    logger.info(
        "Processing webhook %s for subscription %s (operation %s)",
        payload.action.value,
        payload.subscription_id,
        payload.id,
    )
    outcome = await handler(service, payload)
    if outcome is None:
        return {"status": "processed"}
    return {"status": "processed", "outcome": outcome.value}
