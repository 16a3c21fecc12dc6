"""FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tripsync.app.api.routes.bookings import router as bookings_router
from tripsync.app.api.routes.health import router as health_router
from tripsync.app.api.routes.journeys import router as journeys_router
from tripsync.app.api.routes.metrics import router as metrics_router
from tripsync.app.api.routes.packing import router as packing_router
from tripsync.app.api.routes.trips import router as trips_router
from tripsync.app.config import get_settings
from tripsync.app.db.engine import create_tables, get_async_engine


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    if settings.store_backend == "sql" and settings.create_tables_on_startup:
        await create_tables(get_async_engine())
    yield


app = FastAPI(title="TripSync API", version="0.1.0", lifespan=lifespan)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(bookings_router)
app.include_router(trips_router)
app.include_router(journeys_router)
app.include_router(packing_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "TripSync API", "version": "0.1.0"}
