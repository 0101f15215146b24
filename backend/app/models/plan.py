"""Plan and metered dimension models — marketplace plan metadata."""

import uuid

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, CreatedDateMixin


class Plan(Base):
    """A purchasable plan of a marketplace offer."""

    __tablename__ = "plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identifier assigned by the marketplace, unique within an offer
    plan_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    plan_guid: Mapped[uuid.UUID] = mapped_column(default=uuid.uuid4, unique=True, nullable=False)
    offer_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True, index=True)

    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_metering_supported: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    metered_dimensions: Mapped[list["MeteredDimension"]] = relationship(
        back_populates="plan",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="MeteredDimension.id",
    )

    def __repr__(self) -> str:
        return f"<Plan(id={self.id}, plan_id={self.plan_id!r}, offer_id={self.offer_id})>"


class MeteredDimension(CreatedDateMixin, Base):
    """A billable usage axis scoped to one plan."""

    __tablename__ = "metered_dimensions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[int] = mapped_column(
        ForeignKey("plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    dimension: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[str | None] = mapped_column(String(250), nullable=True)

    # Relationships
    plan: Mapped["Plan"] = relationship(back_populates="metered_dimensions")

    __table_args__ = (UniqueConstraint("plan_id", "dimension", name="uq_metered_dimensions_plan_dimension"),)

    def __repr__(self) -> str:
        return f"<MeteredDimension(id={self.id}, plan_id={self.plan_id}, dimension={self.dimension!r})>"
