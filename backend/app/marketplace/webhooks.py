"""Marketplace webhook handlers — acknowledge subscription lifecycle notifications."""

import logging

from app.config import settings
from app.schemas.marketplace import UpdateOperationStatus, WebhookAction, WebhookPayload
from app.services.fulfillment_service import FulfillmentService

logger = logging.getLogger(__name__)


async def handle_change_request(service: FulfillmentService, payload: WebhookPayload) -> UpdateOperationStatus:
    """Approve or reject a plan/quantity change made outside this app.

    The outcome depends on the ``accept_subscription_updates`` setting and is
    reported back on the operation so the marketplace can complete or roll it back.
    """
    outcome = (
        UpdateOperationStatus.SUCCESS if settings.accept_subscription_updates else UpdateOperationStatus.FAILURE
    )
    await service.update_operation_status(payload.subscription_id, payload.id, outcome)
    logger.info(
        "%s for subscription %s (plan=%s, quantity=%s) answered %s",
        payload.action.value,
        payload.subscription_id,
        payload.plan_id,
        payload.quantity,
        outcome.value,
    )
    return outcome


async def handle_reinstate(service: FulfillmentService, payload: WebhookPayload) -> UpdateOperationStatus:
    """Accept reinstatement of a suspended subscription."""
    await service.update_operation_status(payload.subscription_id, payload.id, UpdateOperationStatus.SUCCESS)
    logger.info("Reinstate for subscription %s acknowledged", payload.subscription_id)
    return UpdateOperationStatus.SUCCESS


async def handle_notification(service: FulfillmentService, payload: WebhookPayload) -> None:
    """Informational notifications (Renew, Suspend, Unsubscribe) need no reply."""
    logger.info(
        "Received %s for subscription %s (operation %s, status=%s)",
        payload.action.value,
        payload.subscription_id,
        payload.id,
        payload.status,
    )


# Map webhook actions to handler functions
WEBHOOK_HANDLERS = {
    WebhookAction.CHANGE_PLAN: handle_change_request,
    WebhookAction.CHANGE_QUANTITY: handle_change_request,
    WebhookAction.REINSTATE: handle_reinstate,
    WebhookAction.RENEW: handle_notification,
    WebhookAction.SUSPEND: handle_notification,
    WebhookAction.UNSUBSCRIBE: handle_notification,
}
