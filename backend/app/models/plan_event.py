"""Lifecycle event models — event kinds and per-plan notification settings."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

PENDING_ACTIVATION_EVENT = "Pending Activation"


class Event(Base):
    """A subscription lifecycle event kind (Activate, Pending Activation, Unsubscribe)."""

    __tablename__ = "events"

    events_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    events_name: Mapped[str] = mapped_column(String(225), nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    create_date: Mapped[datetime] = mapped_column(server_default=func.now())

    def __repr__(self) -> str:
        return f"<Event(events_id={self.events_id}, events_name={self.events_name!r})>"


class PlanEventsMapping(Base):
    """Who gets notified when a lifecycle event succeeds or fails for a plan."""

    __tablename__ = "plan_events_mapping"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)  # Plan.plan_guid
    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.events_id", ondelete="CASCADE"),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    success_state_emails: Mapped[str | None] = mapped_column(Text, nullable=True)
    failure_state_emails: Mapped[str | None] = mapped_column(Text, nullable=True)
    copy_to_customer: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    create_date: Mapped[datetime] = mapped_column(server_default=func.now())

    def __repr__(self) -> str:
        return f"<PlanEventsMapping(id={self.id}, plan_id={self.plan_id}, event_id={self.event_id})>"
