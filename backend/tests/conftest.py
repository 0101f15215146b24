"""Shared test configuration and fixtures.

Uses a transactional rollback strategy per test for full isolation:
- Each test gets its own transaction that rolls back after the test.
- Set TEST_DATABASE_URL to run against PostgreSQL; otherwise an in-memory
  SQLite database is used.
- The marketplace is never called: routes get a FulfillmentService over an
  AsyncMock adapter (the `marketplace` fixture).
"""

import os
import uuid
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.deps import get_fulfillment_service
from app.database import Base, get_db
from app.main import app
from app.marketplace.fulfillment import FulfillmentApiClient
from app.models.plan_event import Event
from app.schemas.marketplace import PlanDetailResult, SubscriptionResult
from app.services.fulfillment_service import FulfillmentService, PollingConfig

# ---------------------------------------------------------------------------
# Test database engine: TEST_DATABASE_URL or in-memory SQLite.
# ---------------------------------------------------------------------------

_test_db_url = os.getenv("TEST_DATABASE_URL", "")


def _make_engine():
    if not _test_db_url:
        return create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(
        _test_db_url,
        echo=False,
        pool_pre_ping=True,
    )


# ---------------------------------------------------------------------------
# Session-scoped: create / drop all tables once per test session
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def test_engine():
    """Create a session-scoped engine tied to the session event loop."""
    engine = _make_engine()
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def setup_test_db(test_engine):
    """Create all tables at the start of the session and drop them at the end."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Per-test: transactional rollback for isolation
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_session(test_engine, setup_test_db) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session wrapped in a transaction that always rolls back."""
    async with test_engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(bind=connection, expire_on_commit=False)

        try:
            yield session
        finally:
            await session.close()
            await transaction.rollback()


# ---------------------------------------------------------------------------
# Marketplace stand-in
# ---------------------------------------------------------------------------


@pytest.fixture
def marketplace() -> AsyncMock:
    """AsyncMock with the adapter's interface; configure return values per test."""
    return AsyncMock(spec=FulfillmentApiClient)


@pytest.fixture
def fast_polling() -> PollingConfig:
    """Polling without pauses so wait loops finish instantly."""
    return PollingConfig(interval_seconds=0, max_attempts=100)


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    marketplace: AsyncMock,
    fast_polling: PollingConfig,
) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the test DB session and mock marketplace."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    def override_get_fulfillment_service() -> FulfillmentService:
        return FulfillmentService(marketplace, polling=fast_polling)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_fulfillment_service] = override_get_fulfillment_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience factories: marketplace payloads and seeded rows
# ---------------------------------------------------------------------------


def _make_subscription(**overrides) -> SubscriptionResult:
    """Build a SubscriptionResult from camelCase payload fields."""
    payload = {
        "id": str(uuid.uuid4()),
        "publisherId": "contoso",
        "offerId": "contoso-saas-offer",
        "name": "Contoso Cloud",
        "saasSubscriptionStatus": "Subscribed",
        "planId": "silver",
        "quantity": 10,
        "purchaser": {
            "emailId": "buyer@contoso.test",
            "objectId": str(uuid.uuid4()),
            "tenantId": str(uuid.uuid4()),
        },
        "beneficiary": {"emailId": "user@contoso.test"},
        "autoRenew": True,
        "isTest": True,
    }
    payload.update(overrides)
    return SubscriptionResult.model_validate(payload)


def _make_plan(plan_id: str, dimensions: list[dict] | None = None, **overrides) -> PlanDetailResult:
    """Build a PlanDetailResult, optionally with metering dimensions."""
    payload = {
        "planId": plan_id,
        "displayName": plan_id.title(),
        "description": f"The {plan_id} plan",
        "isPricePerSeat": False,
        "planComponents": {"meteringDimensions": dimensions or []},
    }
    payload.update(overrides)
    return PlanDetailResult.model_validate(payload)


@pytest_asyncio.fixture
async def lifecycle_events(db_session: AsyncSession) -> dict[str, Event]:
    """Seed the Activate / Pending Activation / Unsubscribe events."""
    events = {
        name: Event(events_name=name, is_active=True) for name in ("Activate", "Pending Activation", "Unsubscribe")
    }
    db_session.add_all(events.values())
    await db_session.flush()
    return events


@pytest.fixture
def subscription_factory():
    """Return a factory building SubscriptionResult objects."""
    return _make_subscription


@pytest.fixture
def plan_factory():
    """Return a factory building PlanDetailResult objects."""
    return _make_plan
