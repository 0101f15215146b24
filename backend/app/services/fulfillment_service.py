"""Fulfillment service — subscription lifecycle orchestration and operation polling."""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Protocol

from app.config import Settings
from app.marketplace.exceptions import InvalidArgumentError, OperationFailedError
from app.schemas.marketplace import (
    TRANSIENT_OPERATION_STATUSES,
    OperationResult,
    OperationStatus,
    PlanDetailResult,
    ResolvedSubscriptionResult,
    SubscriptionResult,
    SubscriptionUpdateResult,
    UpdateOperationStatus,
)

logger = logging.getLogger(__name__)

_ZERO_UUID = uuid.UUID(int=0)


class FulfillmentClient(Protocol):
    """Capability the service needs from the marketplace adapter."""

    async def get_all_subscriptions(self) -> list[SubscriptionResult]: ...

    async def get_subscription(self, subscription_id: uuid.UUID) -> SubscriptionResult: ...

    async def resolve(self, marketplace_token: str) -> ResolvedSubscriptionResult: ...

    async def get_all_plans_for_subscription(self, subscription_id: uuid.UUID) -> list[PlanDetailResult]: ...

    async def activate_subscription(self, subscription_id: uuid.UUID, plan_id: str) -> None: ...

    async def change_plan(self, subscription_id: uuid.UUID, plan_id: str) -> SubscriptionUpdateResult: ...

    async def change_quantity(self, subscription_id: uuid.UUID, quantity: int) -> SubscriptionUpdateResult: ...

    async def delete_subscription(self, subscription_id: uuid.UUID) -> SubscriptionUpdateResult: ...

    async def get_operation_status(
        self, subscription_id: uuid.UUID, operation_id: uuid.UUID
    ) -> OperationResult: ...

    async def update_operation_status(
        self, subscription_id: uuid.UUID, operation_id: uuid.UUID, status: UpdateOperationStatus
    ) -> None: ...


@dataclass(frozen=True)
class PollingConfig:
    """Fixed-interval polling parameters for asynchronous operations."""

    interval_seconds: float = 5.0
    max_attempts: int = 100

    def __post_init__(self) -> None:
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @classmethod
    def from_settings(cls, config: Settings) -> "PollingConfig":
        return cls(
            interval_seconds=config.operation_poll_interval_seconds,
            max_attempts=config.operation_poll_max_attempts,
        )


def _require_subscription_id(subscription_id: uuid.UUID) -> None:
    if subscription_id is None or subscription_id == _ZERO_UUID:
        raise InvalidArgumentError("Invalid subscription ID")


class FulfillmentService:
    """Subscription lifecycle operations on top of a FulfillmentClient.

    Marketplace errors raised by the client propagate unchanged.
    """

    def __init__(
        self,
        client: FulfillmentClient,
        polling: PollingConfig | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._polling = polling or PollingConfig()
        self._log = log or logger

    @property
    def polling(self) -> PollingConfig:
        return self._polling

    # --- Reads ---

    async def get_subscription(self, subscription_id: uuid.UUID) -> SubscriptionResult:
        _require_subscription_id(subscription_id)
        return await self._client.get_subscription(subscription_id)

    async def list_subscriptions(self) -> list[SubscriptionResult]:
        return list(await self._client.get_all_subscriptions() or [])

    async def list_plans(self, subscription_id: uuid.UUID) -> list[PlanDetailResult]:
        _require_subscription_id(subscription_id)
        return list(await self._client.get_all_plans_for_subscription(subscription_id) or [])

    async def resolve_purchase_token(self, token: str) -> ResolvedSubscriptionResult:
        if not token or not token.strip():
            raise InvalidArgumentError("Marketplace purchase token is required")
        return await self._client.resolve(token)

    async def get_operation_status(self, subscription_id: uuid.UUID, operation_id: uuid.UUID) -> OperationResult:
        _require_subscription_id(subscription_id)
        if operation_id is None or operation_id == _ZERO_UUID:
            raise InvalidArgumentError("Invalid operation ID")
        return await self._client.get_operation_status(subscription_id, operation_id)

    # --- Lifecycle ---

    async def activate(self, subscription_id: uuid.UUID, plan_id: str) -> None:
        """Activate a subscription. Callers skip this when activation is already pending."""
        _require_subscription_id(subscription_id)
        if not plan_id:
            raise InvalidArgumentError("Plan ID is required to activate a subscription")
        await self._client.activate_subscription(subscription_id, plan_id)
        self._log.info("Activated subscription %s on plan %s", subscription_id, plan_id)

    async def change_plan(self, subscription_id: uuid.UUID, plan_id: str) -> SubscriptionUpdateResult:
        _require_subscription_id(subscription_id)
        if not plan_id:
            raise InvalidArgumentError("Plan ID is required to change plan")
        handle = await self._client.change_plan(subscription_id, plan_id)
        self._log.info(
            "Plan change to %s started for subscription %s (operation %s)",
            plan_id,
            subscription_id,
            handle.operation_id,
        )
        return handle

    async def change_quantity(self, subscription_id: uuid.UUID, quantity: int) -> SubscriptionUpdateResult:
        _require_subscription_id(subscription_id)
        if quantity is None or quantity < 0:
            raise InvalidArgumentError("Quantity must be zero or greater")
        handle = await self._client.change_quantity(subscription_id, quantity)
        self._log.info(
            "Quantity change to %s started for subscription %s (operation %s)",
            quantity,
            subscription_id,
            handle.operation_id,
        )
        return handle

    async def delete_subscription(
        self, subscription_id: uuid.UUID, plan_id: str | None = None
    ) -> SubscriptionUpdateResult:
        _require_subscription_id(subscription_id)
        handle = await self._client.delete_subscription(subscription_id)
        self._log.info(
            "Unsubscribe started for subscription %s on plan %s (operation %s)",
            subscription_id,
            plan_id,
            handle.operation_id,
        )
        return handle

    async def update_operation_status(
        self,
        subscription_id: uuid.UUID,
        operation_id: uuid.UUID,
        status: UpdateOperationStatus,
    ) -> None:
        """Report the outcome of a webhook-initiated operation back to the marketplace."""
        _require_subscription_id(subscription_id)
        if operation_id is None or operation_id == _ZERO_UUID:
            raise InvalidArgumentError("Invalid operation ID")
        await self._client.update_operation_status(subscription_id, operation_id, status)

    # --- Polling ---

    async def wait_for_operation(
        self,
        subscription_id: uuid.UUID,
        operation_id: uuid.UUID,
        cancel_event: asyncio.Event | None = None,
    ) -> OperationResult:
        """Poll an operation until it leaves NotStarted/InProgress.

        Reads the status, then sleeps ``interval_seconds`` between reads; at most
        ``max_attempts`` reads are made. Returns the final result when it
        Succeeded and raises OperationFailedError for any other final status,
        including a still-transient one when the cap is hit.

        The wait is abandoned with asyncio.CancelledError when the task is
        cancelled or ``cancel_event`` is set.
        """
        attempts = 0
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise asyncio.CancelledError(f"Polling of operation {operation_id} cancelled")

            result = await self.get_operation_status(subscription_id, operation_id)
            attempts += 1
            self._log.info(
                "Operation %s (subscription %s) status %s after %d read(s)",
                operation_id,
                subscription_id,
                result.status.value,
                attempts,
            )

            if result.status not in TRANSIENT_OPERATION_STATUSES or attempts >= self._polling.max_attempts:
                break
            await self._pause(operation_id, cancel_event)

        if result.status != OperationStatus.SUCCEEDED:
            self._log.warning(
                "Operation %s (subscription %s) ended with status %s after %d read(s)",
                operation_id,
                subscription_id,
                result.status.value,
                attempts,
            )
            raise OperationFailedError(str(operation_id), result.status, attempts)
        return result

    async def _pause(self, operation_id: uuid.UUID, cancel_event: asyncio.Event | None) -> None:
        if cancel_event is None:
            await asyncio.sleep(self._polling.interval_seconds)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=self._polling.interval_seconds)
        except asyncio.TimeoutError:
            return
        raise asyncio.CancelledError(f"Polling of operation {operation_id} cancelled")

    async def change_plan_and_wait(
        self,
        subscription_id: uuid.UUID,
        plan_id: str,
        cancel_event: asyncio.Event | None = None,
    ) -> OperationResult:
        """Start a plan change and block until the marketplace reports its outcome."""
        handle = await self.change_plan(subscription_id, plan_id)
        return await self.wait_for_operation(subscription_id, handle.operation_id, cancel_event)

    async def change_quantity_and_wait(
        self,
        subscription_id: uuid.UUID,
        quantity: int,
        cancel_event: asyncio.Event | None = None,
    ) -> OperationResult:
        """Start a quantity change and block until the marketplace reports its outcome."""
        handle = await self.change_quantity(subscription_id, quantity)
        return await self.wait_for_operation(subscription_id, handle.operation_id, cancel_event)
