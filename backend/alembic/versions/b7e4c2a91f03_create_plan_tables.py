"""create_plan_tables

Revision ID: b7e4c2a91f03
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'b7e4c2a91f03'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Plans + metered dimensions
    op.create_table(
        "plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("plan_id", sa.String(100), nullable=False),
        sa.Column("plan_guid", sa.Uuid(), nullable=False, unique=True),
        sa.Column("offer_id", sa.Uuid(), nullable=True),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_metering_supported", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_plans_plan_id", "plans", ["plan_id"])
    op.create_index("ix_plans_offer_id", "plans", ["offer_id"])

    op.create_table(
        "metered_dimensions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("plan_id", sa.Integer(), sa.ForeignKey("plans.id", ondelete="CASCADE"), nullable=False),
        sa.Column("dimension", sa.String(150), nullable=False),
        sa.Column("description", sa.String(250), nullable=True),
        sa.Column("created_date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("plan_id", "dimension", name="uq_metered_dimensions_plan_dimension"),
    )
    op.create_index("ix_metered_dimensions_plan_id", "metered_dimensions", ["plan_id"])

    # Offer attributes
    op.create_table(
        "offer_attributes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("offer_id", sa.Uuid(), nullable=False),
        sa.Column("parameter_id", sa.String(225), nullable=False),
        sa.Column("display_name", sa.String(225), nullable=False),
        sa.Column("description", sa.String(225), nullable=True),
        sa.Column("type", sa.String(50), nullable=False, server_default="string"),
        sa.Column("display_sequence", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_offer_attributes_offer_id", "offer_attributes", ["offer_id"])

    op.create_table(
        "plan_attribute_mapping",
        sa.Column("plan_attribute_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("plan_id", sa.Uuid(), nullable=False),
        sa.Column(
            "offer_attribute_id",
            sa.Integer(),
            sa.ForeignKey("offer_attributes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("create_date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_plan_attribute_mapping_plan_id", "plan_attribute_mapping", ["plan_id"])

    # Lifecycle events
    op.create_table(
        "events",
        sa.Column("events_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("events_name", sa.String(225), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("create_date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.bulk_insert(
        sa.table("events", sa.column("events_name", sa.String), sa.column("is_active", sa.Boolean)),
        [
            {"events_name": "Activate", "is_active": True},
            {"events_name": "Pending Activation", "is_active": True},
            {"events_name": "Unsubscribe", "is_active": True},
        ],
    )

    op.create_table(
        "plan_events_mapping",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("plan_id", sa.Uuid(), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.events_id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("success_state_emails", sa.Text(), nullable=True),
        sa.Column("failure_state_emails", sa.Text(), nullable=True),
        sa.Column("copy_to_customer", sa.Boolean(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("create_date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_plan_events_mapping_plan_id", "plan_events_mapping", ["plan_id"])


def downgrade() -> None:
    op.drop_index("ix_plan_events_mapping_plan_id", table_name="plan_events_mapping")
    op.drop_table("plan_events_mapping")
    op.drop_table("events")
    op.drop_index("ix_plan_attribute_mapping_plan_id", table_name="plan_attribute_mapping")
    op.drop_table("plan_attribute_mapping")
    op.drop_index("ix_offer_attributes_offer_id", table_name="offer_attributes")
    op.drop_table("offer_attributes")
    op.drop_index("ix_metered_dimensions_plan_id", table_name="metered_dimensions")
    op.drop_table("metered_dimensions")
    op.drop_index("ix_plans_offer_id", table_name="plans")
    op.drop_index("ix_plans_plan_id", table_name="plans")
    op.drop_table("plans")
