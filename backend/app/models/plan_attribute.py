"""Offer attribute models — offer parameters and their per-plan enablement."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class OfferAttribute(Base):
    """An input parameter defined on an offer (e.g. "Company size")."""

    __tablename__ = "offer_attributes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    offer_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    parameter_id: Mapped[str] = mapped_column(String(225), nullable=False)
    display_name: Mapped[str] = mapped_column(String(225), nullable=False)
    description: Mapped[str | None] = mapped_column(String(225), nullable=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="string")
    display_sequence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<OfferAttribute(id={self.id}, offer_id={self.offer_id}, parameter_id={self.parameter_id!r})>"


class PlanAttributeMapping(Base):
    """Whether an offer attribute is enabled for a given plan."""

    __tablename__ = "plan_attribute_mapping"

    plan_attribute_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)  # Plan.plan_guid
    offer_attribute_id: Mapped[int] = mapped_column(
        ForeignKey("offer_attributes.id", ondelete="CASCADE"),
        nullable=False,
    )
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    create_date: Mapped[datetime] = mapped_column(server_default=func.now())

    def __repr__(self) -> str:
        return (
            f"<PlanAttributeMapping(plan_attribute_id={self.plan_attribute_id}, "
            f"plan_id={self.plan_id}, offer_attribute_id={self.offer_attribute_id})>"
        )
