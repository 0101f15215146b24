"""Pydantic v2 value types for marketplace fulfillment API results.

Field names follow Python conventions; aliases match the camelCase JSON the
marketplace returns, so payloads validate directly with ``model_validate``.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel


class SubscriptionStatus(str, Enum):
    """Lifecycle status of a SaaS subscription."""

    NOT_STARTED = "NotStarted"
    PENDING_FULFILLMENT_START = "PendingFulfillmentStart"
    SUBSCRIBED = "Subscribed"
    SUSPENDED = "Suspended"
    UNSUBSCRIBED = "Unsubscribed"
    UNRECOGNIZED = "Unrecognized"


class OperationStatus(str, Enum):
    """Status of an asynchronous operation tracked by the marketplace."""

    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CONFLICT = "Conflict"


TRANSIENT_OPERATION_STATUSES = frozenset({OperationStatus.NOT_STARTED, OperationStatus.IN_PROGRESS})


class UpdateOperationStatus(str, Enum):
    """Outcome a publisher reports back for a webhook-initiated operation."""

    SUCCESS = "Success"
    FAILURE = "Failure"


class MarketplaceModel(BaseModel):
    """Base for marketplace payloads: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


class PurchaserResult(MarketplaceModel):
    """The party that bought the subscription."""

    email: str | None = Field(None, alias="emailId")
    object_id: str | None = None
    tenant_id: str | None = None
    puid: str | None = None


class BeneficiaryResult(MarketplaceModel):
    """The party that uses the subscription."""

    email: str | None = Field(None, alias="emailId")
    object_id: str | None = None
    tenant_id: str | None = None
    puid: str | None = None


class TermResult(MarketplaceModel):
    """Current billing term of a subscription."""

    start_date: datetime | None = None
    end_date: datetime | None = None
    term_unit: str | None = None


class SubscriptionResult(MarketplaceModel):
    """A SaaS subscription as reported by the fulfillment API."""

    id: uuid.UUID
    publisher_id: str | None = None
    offer_id: str | None = None
    name: str | None = None
    saas_subscription_status: SubscriptionStatus = SubscriptionStatus.UNRECOGNIZED
    plan_id: str | None = None
    quantity: int = Field(0, ge=0)
    purchaser: PurchaserResult = Field(default_factory=PurchaserResult)
    beneficiary: BeneficiaryResult = Field(default_factory=BeneficiaryResult)
    term: TermResult | None = None
    auto_renew: bool = False
    is_test: bool = False
    is_free_trial: bool = False

    @field_validator("saas_subscription_status", mode="before")
    @classmethod
    def _unknown_status_is_unrecognized(cls, value: Any) -> Any:
        if isinstance(value, SubscriptionStatus):
            return value
        try:
            return SubscriptionStatus(value)
        except ValueError:
            return SubscriptionStatus.UNRECOGNIZED

    @field_validator("quantity", mode="before")
    @classmethod
    def _missing_quantity_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_active_subscription(self) -> bool:
        return self.saas_subscription_status == SubscriptionStatus.SUBSCRIBED


class ResolvedSubscriptionResult(MarketplaceModel):
    """Subscription identity returned when a purchase token is resolved."""

    id: uuid.UUID
    subscription_name: str | None = None
    offer_id: str | None = None
    plan_id: str | None = None
    quantity: int | None = None
    subscription: SubscriptionResult | None = None


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


class PlanDetailResult(MarketplaceModel):
    """A plan available to a subscription."""

    plan_id: str
    display_name: str | None = None
    description: str | None = None
    is_private: bool = False
    is_stop_sell: bool = False
    has_free_trials: bool = False
    is_price_per_seat: bool = False
    min_quantity: int | None = None
    max_quantity: int | None = None
    market: str | None = None
    plan_components: dict[str, Any] = Field(default_factory=dict)

    @property
    def metering_dimensions(self) -> list[dict[str, Any]]:
        """Metered dimensions declared on the plan, if any."""
        return list(self.plan_components.get("meteringDimensions") or [])


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


class OperationResult(MarketplaceModel):
    """Status snapshot of an asynchronous operation."""

    id: uuid.UUID
    activity_id: uuid.UUID | None = None
    subscription_id: uuid.UUID | None = None
    offer_id: str | None = None
    publisher_id: str | None = None
    plan_id: str | None = None
    quantity: int | None = None
    action: str | None = None
    time_stamp: datetime | None = None
    status: OperationStatus
    error_status_code: str | None = None
    error_message: str | None = None


class SubscriptionUpdateResult(MarketplaceModel):
    """Handle for an operation started by a plan/quantity change or delete."""

    operation_id: uuid.UUID


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


class SubscriptionView(MarketplaceModel):
    """Flattened subscription + plan aggregate for display."""

    id: uuid.UUID
    name: str | None = None
    plan_id: str | None = None
    plan_display_name: str | None = None
    quantity: int = 0
    subscription_status: SubscriptionStatus
    is_active_subscription: bool
    is_metering_supported: bool = False
    purchaser: PurchaserResult
    customer_email_address: str | None = None
    customer_tenant_id: str | None = None
    plan_list: list[PlanDetailResult] = Field(default_factory=list)


class SubscriptionListResponse(MarketplaceModel):
    """All subscription views for the publisher."""

    subscriptions: list[SubscriptionView]


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class ChangePlanRequest(MarketplaceModel):
    """Switch a subscription to another plan."""

    plan_id: str = Field(..., min_length=1)


class ChangeQuantityRequest(MarketplaceModel):
    """Change the seat count of a subscription."""

    quantity: int = Field(..., ge=0)


class SubscriptionOperationRequest(MarketplaceModel):
    """Lifecycle action requested from the subscription detail page."""

    plan_id: str = Field(..., min_length=1)
    operation: str = Field(..., pattern="^(Activate|Deactivate)$")


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------


class WebhookAction(str, Enum):
    """Lifecycle notification kinds pushed by the marketplace."""

    CHANGE_PLAN = "ChangePlan"
    CHANGE_QUANTITY = "ChangeQuantity"
    RENEW = "Renew"
    SUSPEND = "Suspend"
    REINSTATE = "Reinstate"
    UNSUBSCRIBE = "Unsubscribe"


class WebhookPayload(MarketplaceModel):
    """Body of a marketplace webhook notification."""

    id: uuid.UUID  # operation id
    activity_id: uuid.UUID | None = None
    subscription_id: uuid.UUID
    publisher_id: str | None = None
    offer_id: str | None = None
    plan_id: str | None = None
    quantity: int | None = None
    time_stamp: datetime | None = None
    action: WebhookAction
    status: str | None = None
    operation_request_source: str | None = None
