"""Pydantic v2 schemas for plan metadata, metered dimensions, attributes and events."""

import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.marketplace import PlanDetailResult

# ---------------------------------------------------------------------------
# Request schemas / plain records
# ---------------------------------------------------------------------------


class MeteredDimensionDefinition(BaseModel):
    """A metered dimension as supplied in an incoming plan definition."""

    dimension: str = Field(..., min_length=1, max_length=150)
    description: str | None = Field(None, max_length=250)


class PlanDefinition(BaseModel):
    """Incoming plan definition, upserted by its external plan_id."""

    plan_id: str = Field("", max_length=100)  # empty -> not saved
    display_name: str | None = Field(None, max_length=255)
    description: str | None = None
    offer_id: uuid.UUID | None = None
    plan_guid: uuid.UUID | None = None
    is_metering_supported: bool = False
    metered_dimensions: list[MeteredDimensionDefinition] = Field(default_factory=list)

    @field_validator("metered_dimensions")
    @classmethod
    def merge_duplicate_dimensions(
        cls, v: list[MeteredDimensionDefinition]
    ) -> list[MeteredDimensionDefinition]:
        """One entry per dimension code; the last description given wins."""
        merged: dict[str, MeteredDimensionDefinition] = {}
        for dimension in v:
            merged[dimension.dimension] = dimension
        return list(merged.values())

    @classmethod
    def from_plan_detail(cls, plan: PlanDetailResult, offer_id: uuid.UUID | None = None) -> "PlanDefinition":
        """Build a definition from a plan reported by the fulfillment API."""
        dimensions = [
            MeteredDimensionDefinition(
                dimension=str(d["id"]),
                description=d.get("displayName") or d.get("description"),
            )
            for d in plan.metering_dimensions
            if d.get("id")
        ]
        return cls(
            plan_id=plan.plan_id,
            display_name=plan.display_name,
            description=plan.description,
            offer_id=offer_id,
            is_metering_supported=bool(dimensions),
            metered_dimensions=dimensions,
        )


class PlanAttributeMappingIn(BaseModel):
    """Enable or disable an offer attribute for a plan."""

    plan_attribute_id: int | None = None  # None -> insert
    plan_id: uuid.UUID
    offer_attribute_id: int
    is_enabled: bool = False
    user_id: int | None = None


class PlanEventsMappingIn(BaseModel):
    """Notification settings for one lifecycle event of a plan."""

    id: int | None = None  # None -> insert
    plan_id: uuid.UUID
    event_id: int
    is_active: bool = True
    success_state_emails: str | None = None
    failure_state_emails: str | None = None
    copy_to_customer: bool = False
    user_id: int | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class MeteredDimensionResponse(BaseModel):
    """Stored metered dimension."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    plan_id: int
    dimension: str
    description: str | None = None


class PlanResponse(BaseModel):
    """Stored plan with its metered dimensions."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    plan_id: str
    plan_guid: uuid.UUID
    offer_id: uuid.UUID | None = None
    display_name: str | None = None
    description: str | None = None
    is_metering_supported: bool
    metered_dimensions: list[MeteredDimensionResponse] = []


class PlanListResponse(BaseModel):
    """All stored plans."""

    items: list[PlanResponse]
    total: int


class PlanUpsertResponse(BaseModel):
    """Internal id of the saved plan (0 when nothing was saved)."""

    id: int


class PlanAttributeRecord(BaseModel):
    """An offer attribute and whether it is enabled for a plan."""

    plan_attribute_id: int = 0
    plan_id: uuid.UUID
    offer_attribute_id: int
    is_enabled: bool = False
    display_name: str
    type: str


class PlanEventRecord(BaseModel):
    """A lifecycle event and the plan's notification settings for it."""

    id: int = 0
    plan_id: uuid.UUID
    is_active: bool = False
    success_state_emails: str | None = None
    failure_state_emails: str | None = None
    events_name: str
    event_id: int
    copy_to_customer: bool = False
