"""Trip endpoints - CRUD, copy into journey and budget summary."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel, Field

from tripsync.app.api.auth import get_current_context
from tripsync.app.api.deps import get_trip_service
from tripsync.app.api.errors import to_http_exception
from tripsync.app.db.context import RequestContext
from tripsync.app.engine.errors import ItineraryError
from tripsync.app.engine.ledger import BudgetSummary
from tripsync.app.models.trip import CopyTripRequest, Trip
from tripsync.app.models.validation import require_valid
from tripsync.app.services.trips import TripService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["trips"])

Context = Annotated[RequestContext, Depends(get_current_context)]
Service = Annotated[TripService, Depends(get_trip_service)]


class TripResponse(BaseModel):
    """Trip after a mutation plus any post-commit warnings."""

    trip: Trip
    warnings: list[str] = Field(default_factory=list)


class TripDeletedResponse(BaseModel):
    """Response for DELETE /trips/{trip_id}."""

    trip_id: str
    warnings: list[str] = Field(default_factory=list)


@router.get("", response_model=list[Trip])
async def list_trips(ctx: Context, service: Service) -> list[Trip]:
    """List the tenant's trips, newest first."""
    return await service.list_trips(ctx)


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    payload: Annotated[dict[str, Any], Body()],
    ctx: Context,
    service: Service,
) -> TripResponse:
    """Create a trip.

    Raises:
        HTTPException: 400 invalid trip, 404 journey missing
    """
    try:
        result = await service.create_trip(ctx, payload)
    except ItineraryError as e:
        raise to_http_exception(e) from e

    logger.info(f"[POST /trips] tenant={ctx.tenant_id} trip_id={result.value.id}")
    return TripResponse(trip=result.value, warnings=result.warnings)


@router.put("", response_model=TripResponse)
async def update_trip(
    payload: Annotated[dict[str, Any], Body()],
    ctx: Context,
    service: Service,
) -> TripResponse:
    """Partially update a trip (id in body).

    Raises:
        HTTPException: 400 invalid update, 404 trip or journey missing, 409 conflict
    """
    try:
        result = await service.update_trip(ctx, payload)
    except ItineraryError as e:
        raise to_http_exception(e) from e
    return TripResponse(trip=result.value, warnings=result.warnings)


@router.delete("/{trip_id}", response_model=TripDeletedResponse)
async def delete_trip(trip_id: str, ctx: Context, service: Service) -> TripDeletedResponse:
    """Delete a trip, its packing list and its journey/booking references.

    Raises:
        HTTPException: 404 trip missing, 409 conflict
    """
    try:
        result = await service.delete_trip(ctx, trip_id)
    except ItineraryError as e:
        raise to_http_exception(e) from e

    logger.info(f"[DELETE /trips] tenant={ctx.tenant_id} trip_id={trip_id}")
    return TripDeletedResponse(trip_id=trip_id, warnings=result.warnings)


@router.post("/copy", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def copy_trip(
    payload: Annotated[dict[str, Any], Body()],
    ctx: Context,
    service: Service,
) -> TripResponse:
    """Copy a trip into a journey.

    Raises:
        HTTPException: 400 invalid request, 404 trip or journey missing
    """
    try:
        request = require_valid(CopyTripRequest, payload)
        result = await service.copy_trip_to_journey(
            ctx, request.source_trip_id, request.destination_journey_id
        )
    except ItineraryError as e:
        raise to_http_exception(e) from e
    return TripResponse(trip=result.value, warnings=result.warnings)


@router.get("/{trip_id}", response_model=Trip)
async def get_trip(trip_id: str, ctx: Context, service: Service) -> Trip:
    """Read a single trip."""
    try:
        return await service.get_trip(ctx, trip_id)
    except ItineraryError as e:
        raise to_http_exception(e) from e


@router.get("/{trip_id}/budget-summary", response_model=BudgetSummary)
async def get_budget_summary(trip_id: str, ctx: Context, service: Service) -> BudgetSummary:
    """Budgeted vs spent per category for a trip."""
    try:
        return await service.get_budget_summary(ctx, trip_id)
    except ItineraryError as e:
        raise to_http_exception(e) from e
