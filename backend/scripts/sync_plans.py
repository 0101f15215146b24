"""Store the plans of every marketplace subscription in the local database.

For each subscription returned by the fulfillment API, the plans it can be
moved to are upserted into ``plans`` / ``metered_dimensions``. Dimensions
already stored are kept even if the marketplace no longer lists them.

Run inside Docker:
    docker compose exec backend python -m scripts.sync_plans
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.config import settings
from app.database import async_session_factory, engine
from app.marketplace.client import MarketplaceSaaSClient
from app.marketplace.fulfillment import FulfillmentApiClient
from app.schemas.plan import PlanDefinition
from app.services.fulfillment_service import FulfillmentService, PollingConfig
from app.services.plans_repository import PlansRepository


async def sync_plans() -> None:
    """Upsert the available plans of all subscriptions in one transaction."""
    async with MarketplaceSaaSClient.from_settings(settings) as client:
        service = FulfillmentService(FulfillmentApiClient(client), PollingConfig.from_settings(settings))
        subscriptions = await service.list_subscriptions()
        print(f"Found {len(subscriptions)} subscription(s)")

        synced: dict[str, int] = {}
        async with async_session_factory() as session:
            repo = PlansRepository(session)
            for subscription in subscriptions:
                for plan in await service.list_plans(subscription.id):
                    if plan.plan_id in synced:
                        continue
                    plan_internal_id = await repo.upsert_plan(PlanDefinition.from_plan_detail(plan))
                    synced[plan.plan_id] = plan_internal_id
                    print(f"   {plan.plan_id} -> id={plan_internal_id} ({len(plan.metering_dimensions)} dimension(s))")
            await session.commit()

    await engine.dispose()
    print(f"Synced {len(synced)} plan(s)")


if __name__ == "__main__":
    asyncio.run(sync_plans())
