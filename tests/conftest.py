"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from tripsync.app.db.context import RequestContext
from tripsync.app.db.inmemory import InMemoryDocumentStore
from tripsync.app.db.models import Base
from tripsync.app.engine.orchestrator import TransactionConfig, TransactionOrchestrator
from tripsync.app.services.bookings import BookingService
from tripsync.app.services.journeys import JourneyService
from tripsync.app.services.packing import PackingListService
from tripsync.app.services.trips import TripService


async def _no_sleep(_: float) -> None:
    return None


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(tenant_id="tenant-a")


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def orchestrator(store: InMemoryDocumentStore) -> TransactionOrchestrator:
    return TransactionOrchestrator(store, config=TransactionConfig(), sleep_fn=_no_sleep)


@pytest.fixture
def booking_service(orchestrator: TransactionOrchestrator) -> BookingService:
    return BookingService(orchestrator)


@pytest.fixture
def trip_service(orchestrator: TransactionOrchestrator) -> TripService:
    return TripService(orchestrator)


@pytest.fixture
def journey_service(orchestrator: TransactionOrchestrator) -> JourneyService:
    return JourneyService(orchestrator)


@pytest.fixture
def packing_service(orchestrator: TransactionOrchestrator) -> PackingListService:
    return PackingListService(orchestrator)


@pytest.fixture
def make_trip() -> Callable[..., dict[str, Any]]:
    """Factory for raw trip payloads."""

    def _make(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": "Coastal leg",
            "start_location_display": "Sydney NSW",
            "end_location_display": "Newcastle NSW",
            "route_details": {
                "distance": {"text": "160 km", "value": 160000},
                "duration": {"text": "2 hours", "value": 7200},
                "polyline": "_p~iF~ps|U",
            },
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def make_booking() -> Callable[..., dict[str, Any]]:
    """Factory for raw booking payloads."""

    def _make(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "site_name": "Site A",
            "check_in_date": "2025-03-01T14:00:00Z",
            "check_out_date": "2025-03-03T10:00:00Z",
        }
        payload.update(overrides)
        return payload

    return _make


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Any) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed aiosqlite engine with the documents table created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    # Ensure it's a postgres URL
    if not database_url.startswith(("postgresql://", "postgresql+asyncpg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    # Convert to async driver if needed
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
