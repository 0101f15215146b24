"""Fulfillment API adapter — vendor payloads in, plain result types out.

Every call goes through the raw MarketplaceSaaSClient; any failure is
classified by ``process_error_response`` and re-raised as a MarketplaceError.
"""

import logging
import uuid
from typing import Any, NoReturn
from urllib.parse import urlparse

import httpx
from authlib.integrations.httpx_client import OAuthError
from pydantic import ValidationError

from app.marketplace.client import MarketplaceSaaSClient
from app.marketplace.exceptions import (
    BadRequestError,
    ConflictError,
    MarketplaceAction,
    NotFoundError,
    UnauthorizedError,
    UnknownMarketplaceError,
)
from app.schemas.marketplace import (
    OperationResult,
    PlanDetailResult,
    ResolvedSubscriptionResult,
    SubscriptionResult,
    SubscriptionUpdateResult,
    UpdateOperationStatus,
)

logger = logging.getLogger(__name__)

# Failures the adapter intercepts. Anything else is a programming error.
_VENDOR_ERRORS = (httpx.HTTPError, OAuthError, ValidationError, ValueError)


def process_error_response(action: MarketplaceAction, exc: Exception) -> NoReturn:
    """Classify a vendor failure by status code and raise the matching domain error."""
    status_code: int | None = None
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
    elif isinstance(exc, OAuthError):
        # no access token could be obtained
        status_code = 401

    if status_code in (401, 403):
        logger.error("Marketplace %s unauthorized (%s): %s", action.value, status_code, exc)
        raise UnauthorizedError("Token invalid or expired. Please try again.", action, status_code) from exc
    if status_code == 404:
        logger.warning("Marketplace %s returned Not Found", action.value)
        raise NotFoundError(f"Unable to find the request {action.value}", action, status_code) from exc
    if status_code == 409:
        logger.warning("Marketplace %s returned Conflict", action.value)
        raise ConflictError(f"Conflict came for {action.value}", action, status_code) from exc
    if status_code == 400:
        logger.warning("Marketplace %s returned Bad Request", action.value)
        raise BadRequestError(
            f"Unable to process the request {action.value}, server responding as BadRequest. "
            "Please verify the post data.",
            action,
            status_code,
        ) from exc
    if status_code is not None:
        logger.error("Marketplace %s failed with status %s: %s", action.value, status_code, exc)
        raise UnknownMarketplaceError(
            f"Unable to process the request {action.value}, server responded with {status_code}.",
            action,
            status_code,
        ) from exc

    logger.error("Marketplace %s failed: %r", action.value, exc)
    raise UnknownMarketplaceError("Something went wrong, please check logs!", action) from exc


def operation_id_from_location(location: str) -> uuid.UUID:
    """Extract the operation id from an Operation-Location URL.

    ``https://.../saas/subscriptions/<sub>/operations/<op>?api-version=...`` -> ``<op>``
    """
    path = urlparse(location).path.rstrip("/")
    if not path:
        raise ValueError("Missing Operation-Location header")
    return uuid.UUID(path.rsplit("/", 1)[-1])


class FulfillmentApiClient:
    """Adapter over MarketplaceSaaSClient returning this system's result types."""

    def __init__(self, client: MarketplaceSaaSClient) -> None:
        self._client = client

    async def get_all_subscriptions(self) -> list[SubscriptionResult]:
        logger.info("Fetching all marketplace subscriptions")
        try:
            raw_subscriptions = await self._client.list_subscriptions()
        except _VENDOR_ERRORS as e:
            process_error_response(MarketplaceAction.GET_ALL_SUBSCRIPTIONS, e)

        results: list[SubscriptionResult] = []
        for raw in raw_subscriptions or []:
            try:
                results.append(SubscriptionResult.model_validate(raw))
            except ValidationError as e:
                logger.warning("Skipping malformed subscription %s: %s", _raw_id(raw), e)
        return results

    async def get_subscription(self, subscription_id: uuid.UUID) -> SubscriptionResult:
        logger.info("Fetching subscription %s", subscription_id)
        try:
            raw = await self._client.get_subscription(subscription_id)
            return SubscriptionResult.model_validate(raw)
        except _VENDOR_ERRORS as e:
            process_error_response(MarketplaceAction.GET_SUBSCRIPTION, e)

    async def resolve(self, marketplace_token: str) -> ResolvedSubscriptionResult:
        logger.info("Resolving marketplace purchase token")
        try:
            raw = await self._client.resolve(marketplace_token)
            return ResolvedSubscriptionResult.model_validate(raw)
        except _VENDOR_ERRORS as e:
            process_error_response(MarketplaceAction.RESOLVE, e)

    async def get_all_plans_for_subscription(self, subscription_id: uuid.UUID) -> list[PlanDetailResult]:
        logger.info("Fetching available plans for subscription %s", subscription_id)
        try:
            raw = await self._client.list_available_plans(subscription_id)
            return [PlanDetailResult.model_validate(p) for p in (raw or {}).get("plans") or []]
        except _VENDOR_ERRORS as e:
            process_error_response(MarketplaceAction.GET_ALL_PLANS, e)

    async def activate_subscription(self, subscription_id: uuid.UUID, plan_id: str) -> None:
        logger.info("Activating subscription %s on plan %s", subscription_id, plan_id)
        try:
            await self._client.activate_subscription(subscription_id, plan_id)
        except _VENDOR_ERRORS as e:
            process_error_response(MarketplaceAction.ACTIVATE, e)

    async def change_plan(self, subscription_id: uuid.UUID, plan_id: str) -> SubscriptionUpdateResult:
        logger.info("Changing plan of subscription %s to %s", subscription_id, plan_id)
        try:
            location = await self._client.update_subscription(subscription_id, plan_id=plan_id)
            return SubscriptionUpdateResult(operation_id=operation_id_from_location(location))
        except _VENDOR_ERRORS as e:
            process_error_response(MarketplaceAction.CHANGE_PLAN, e)

    async def change_quantity(self, subscription_id: uuid.UUID, quantity: int) -> SubscriptionUpdateResult:
        logger.info("Changing quantity of subscription %s to %s", subscription_id, quantity)
        try:
            location = await self._client.update_subscription(subscription_id, quantity=quantity)
            return SubscriptionUpdateResult(operation_id=operation_id_from_location(location))
        except _VENDOR_ERRORS as e:
            process_error_response(MarketplaceAction.CHANGE_QUANTITY, e)

    async def delete_subscription(self, subscription_id: uuid.UUID) -> SubscriptionUpdateResult:
        logger.info("Deleting subscription %s", subscription_id)
        try:
            location = await self._client.delete_subscription(subscription_id)
            return SubscriptionUpdateResult(operation_id=operation_id_from_location(location))
        except _VENDOR_ERRORS as e:
            process_error_response(MarketplaceAction.DELETE, e)

    async def get_operation_status(self, subscription_id: uuid.UUID, operation_id: uuid.UUID) -> OperationResult:
        logger.info("Reading status of operation %s (subscription %s)", operation_id, subscription_id)
        try:
            raw = await self._client.get_operation_status(subscription_id, operation_id)
            return OperationResult.model_validate(raw)
        except _VENDOR_ERRORS as e:
            process_error_response(MarketplaceAction.OPERATION_STATUS, e)

    async def update_operation_status(
        self,
        subscription_id: uuid.UUID,
        operation_id: uuid.UUID,
        status: UpdateOperationStatus,
    ) -> None:
        logger.info(
            "Updating operation %s (subscription %s) to %s", operation_id, subscription_id, status.value
        )
        try:
            await self._client.update_operation_status(subscription_id, operation_id, status.value)
        except _VENDOR_ERRORS as e:
            process_error_response(MarketplaceAction.UPDATE_OPERATION_STATUS, e)


def _raw_id(raw: Any) -> str:
    return str(raw.get("id")) if isinstance(raw, dict) else "<unknown>"
