"""SQLAlchemy models for the marketplace publisher backend.

All models are imported here so that Alembic's autogenerate can discover
them via Base.metadata. If you add a new model, import it in this file.
"""

from app.models.plan import MeteredDimension, Plan
from app.models.plan_attribute import OfferAttribute, PlanAttributeMapping
from app.models.plan_event import Event, PlanEventsMapping

__all__ = [
    "Event",
    "MeteredDimension",
    "OfferAttribute",
    "Plan",
    "PlanAttributeMapping",
    "PlanEventsMapping",
]
