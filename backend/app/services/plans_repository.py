"""Plans repository — plan metadata, metered dimensions, attributes and events."""

import logging
import uuid

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import settings
from app.models.plan import MeteredDimension, Plan
from app.models.plan_attribute import OfferAttribute, PlanAttributeMapping
from app.models.plan_event import PENDING_ACTIVATION_EVENT, Event, PlanEventsMapping
from app.schemas.plan import (
    PlanAttributeMappingIn,
    PlanAttributeRecord,
    PlanDefinition,
    PlanEventRecord,
    PlanEventsMappingIn,
)

logger = logging.getLogger(__name__)


class PlansRepository:
    """Data access for plans. One instance per request-scoped AsyncSession.

    Writes are flushed, not committed; the session owner commits.
    """

    def __init__(
        self,
        session: AsyncSession,
        is_automatic_provisioning_supported: bool | None = None,
    ) -> None:
        self._session = session
        if is_automatic_provisioning_supported is None:
            is_automatic_provisioning_supported = settings.is_automatic_provisioning_supported
        self._automatic_provisioning = is_automatic_provisioning_supported

    # --- Plans ---

    async def get_all(self) -> list[Plan]:
        result = await self._session.execute(select(Plan).order_by(Plan.id))
        return list(result.scalars().all())

    async def get(self, plan_internal_id: int) -> Plan | None:
        result = await self._session.execute(select(Plan).where(Plan.id == plan_internal_id))
        return result.scalar_one_or_none()

    async def get_by_plan_id(self, plan_id: str) -> Plan | None:
        """Look up a plan by its marketplace-assigned identifier."""
        result = await self._session.execute(select(Plan).where(Plan.plan_id == plan_id))
        return result.scalars().first()

    async def get_by_internal_reference(self, plan_guid: uuid.UUID) -> Plan | None:
        result = await self._session.execute(select(Plan).where(Plan.plan_guid == plan_guid))
        return result.scalar_one_or_none()

    async def get_plans_by_offer_id(self, offer_id: uuid.UUID) -> list[Plan]:
        result = await self._session.execute(select(Plan).where(Plan.offer_id == offer_id).order_by(Plan.id))
        return list(result.scalars().all())

    async def upsert_plan(self, definition: PlanDefinition) -> int:
        """Insert or update a plan by external plan_id. Returns its internal id.

        Returns 0 without touching the database when plan_id is empty.
        Metered dimensions are reconciled additively: new codes are added,
        descriptions of existing codes are updated, and stored dimensions
        missing from the definition are kept.
        """
        if not definition.plan_id:
            return 0

        result = await self._session.execute(
            select(Plan)
            .options(selectinload(Plan.metered_dimensions))
            .where(Plan.plan_id == definition.plan_id)
        )
        existing = result.scalars().first()

        if existing is not None:
            existing.plan_id = definition.plan_id
            existing.description = definition.description
            existing.display_name = definition.display_name
            existing.offer_id = definition.offer_id
            existing.is_metering_supported = definition.is_metering_supported
            await self._reconcile_metered_dimensions(existing, definition)
            await self._session.flush()
            logger.info("Updated plan %s (id=%s)", existing.plan_id, existing.id)
            return existing.id

        plan = Plan(
            plan_id=definition.plan_id,
            plan_guid=definition.plan_guid or uuid.uuid4(),
            offer_id=definition.offer_id,
            display_name=definition.display_name,
            description=definition.description,
            is_metering_supported=definition.is_metering_supported,
            metered_dimensions=[
                MeteredDimension(dimension=d.dimension, description=d.description)
                for d in definition.metered_dimensions
            ],
        )
        self._session.add(plan)
        await self._session.flush()
        logger.info(
            "Created plan %s (id=%s) with %d metered dimension(s)",
            plan.plan_id,
            plan.id,
            len(plan.metered_dimensions),
        )
        return plan.id

    async def _reconcile_metered_dimensions(self, existing: Plan, definition: PlanDefinition) -> None:
        for incoming in definition.metered_dimensions:
            result = await self._session.execute(
                select(MeteredDimension).where(
                    MeteredDimension.plan_id == existing.id,
                    MeteredDimension.dimension == incoming.dimension,
                )
            )
            stored = result.scalar_one_or_none()

            if stored is not None:
                if stored.description != incoming.description:
                    stored.description = incoming.description
            else:
                existing.metered_dimensions.append(
                    MeteredDimension(
                        plan_id=existing.id,
                        dimension=incoming.dimension,
                        description=incoming.description,
                    )
                )

    async def remove_plan(self, plan_internal_id: int) -> None:
        """Delete a plan (and its dimensions) by internal id. No-op if missing."""
        plan = await self.get(plan_internal_id)
        if plan is None:
            return
        await self._session.delete(plan)
        await self._session.flush()
        logger.info("Removed plan %s (id=%s)", plan.plan_id, plan_internal_id)

    # --- Offer attributes ---

    async def get_plan_attributes(self, plan_guid: uuid.UUID, offer_id: uuid.UUID) -> list[PlanAttributeRecord]:
        """Every active attribute of the offer with its enablement for the plan."""
        result = await self._session.execute(
            select(OfferAttribute, PlanAttributeMapping)
            .outerjoin(
                PlanAttributeMapping,
                and_(
                    PlanAttributeMapping.offer_attribute_id == OfferAttribute.id,
                    PlanAttributeMapping.plan_id == plan_guid,
                ),
            )
            .where(OfferAttribute.offer_id == offer_id, OfferAttribute.is_active.is_(True))
            .order_by(OfferAttribute.display_sequence, OfferAttribute.id)
        )
        return [
            PlanAttributeRecord(
                plan_attribute_id=mapping.plan_attribute_id if mapping else 0,
                plan_id=plan_guid,
                offer_attribute_id=attribute.id,
                is_enabled=mapping.is_enabled if mapping else False,
                display_name=attribute.display_name,
                type=attribute.type,
            )
            for attribute, mapping in result.all()
        ]

    async def save_plan_attributes(self, mapping: PlanAttributeMappingIn | None) -> int | None:
        if mapping is None:
            return None

        existing = None
        if mapping.plan_attribute_id is not None:
            existing = await self._session.get(PlanAttributeMapping, mapping.plan_attribute_id)

        if existing is not None:
            existing.offer_attribute_id = mapping.offer_attribute_id
            existing.is_enabled = mapping.is_enabled
            existing.plan_id = mapping.plan_id
            existing.user_id = mapping.user_id
            await self._session.flush()
            return existing.plan_attribute_id

        row = PlanAttributeMapping(**mapping.model_dump(exclude={"plan_attribute_id"}, exclude_none=True))
        self._session.add(row)
        await self._session.flush()
        return row.plan_attribute_id

    # --- Lifecycle events ---

    async def get_events_by_plan(self, plan_guid: uuid.UUID) -> list[PlanEventRecord]:
        """Every active event with the plan's notification settings.

        "Pending Activation" is only listed when automatic provisioning is off.
        """
        result = await self._session.execute(
            select(Event, PlanEventsMapping)
            .outerjoin(
                PlanEventsMapping,
                and_(
                    PlanEventsMapping.event_id == Event.events_id,
                    PlanEventsMapping.plan_id == plan_guid,
                ),
            )
            .where(Event.is_active.is_(True))
            .order_by(Event.events_id)
        )

        records: list[PlanEventRecord] = []
        for event, mapping in result.all():
            if event.events_name == PENDING_ACTIVATION_EVENT and self._automatic_provisioning:
                continue
            records.append(
                PlanEventRecord(
                    id=mapping.id if mapping else 0,
                    plan_id=plan_guid,
                    is_active=mapping.is_active if mapping else False,
                    success_state_emails=mapping.success_state_emails if mapping else None,
                    failure_state_emails=mapping.failure_state_emails if mapping else None,
                    events_name=event.events_name,
                    event_id=event.events_id,
                    copy_to_customer=bool(mapping.copy_to_customer) if mapping else False,
                )
            )
        return records

    async def add_plan_events(self, mapping: PlanEventsMappingIn | None) -> int | None:
        if mapping is None:
            return None

        existing = None
        if mapping.id is not None:
            existing = await self._session.get(PlanEventsMapping, mapping.id)

        if existing is not None:
            existing.is_active = mapping.is_active
            existing.plan_id = mapping.plan_id
            existing.success_state_emails = mapping.success_state_emails
            existing.failure_state_emails = mapping.failure_state_emails
            existing.event_id = mapping.event_id
            existing.user_id = mapping.user_id
            existing.copy_to_customer = mapping.copy_to_customer
            await self._session.flush()
            return existing.id

        row = PlanEventsMapping(**mapping.model_dump(exclude={"id"}, exclude_none=True))
        self._session.add(row)
        await self._session.flush()
        return row.id
