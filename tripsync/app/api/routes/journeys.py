"""Journey endpoints - CRUD, master route recompute and membership repair."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel, Field

from tripsync.app.api.auth import get_current_context
from tripsync.app.api.deps import get_journey_service
from tripsync.app.api.errors import to_http_exception
from tripsync.app.db.context import RequestContext
from tripsync.app.engine.errors import ItineraryError
from tripsync.app.models.journey import Journey
from tripsync.app.services.journeys import JourneyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/journeys", tags=["journeys"])

Context = Annotated[RequestContext, Depends(get_current_context)]
Service = Annotated[JourneyService, Depends(get_journey_service)]


class JourneyResponse(BaseModel):
    """Journey after a mutation plus any post-commit warnings."""

    journey: Journey
    warnings: list[str] = Field(default_factory=list)


class JourneyDeletedResponse(BaseModel):
    """Response for DELETE /journeys/{journey_id}."""

    journey_id: str
    warnings: list[str] = Field(default_factory=list)


class RecomputeResponse(BaseModel):
    """Response for POST /journeys/{journey_id}/recompute."""

    journey_id: str
    master_polyline: str | None


@router.get("", response_model=list[Journey])
async def list_journeys(ctx: Context, service: Service) -> list[Journey]:
    """List the tenant's journeys, oldest first."""
    return await service.list_journeys(ctx)


@router.post("", response_model=Journey, status_code=status.HTTP_201_CREATED)
async def create_journey(
    payload: Annotated[dict[str, Any], Body()],
    ctx: Context,
    service: Service,
) -> Journey:
    """Create an empty journey.

    Raises:
        HTTPException: 400 invalid journey
    """
    try:
        journey = await service.create_journey(ctx, payload)
    except ItineraryError as e:
        raise to_http_exception(e) from e

    logger.info(f"[POST /journeys] tenant={ctx.tenant_id} journey_id={journey.id}")
    return journey


@router.put("", response_model=JourneyResponse)
async def update_journey(
    payload: Annotated[dict[str, Any], Body()],
    ctx: Context,
    service: Service,
) -> JourneyResponse:
    """Update a journey (id in body); trip_ids re-links membership.

    Raises:
        HTTPException: 400 invalid update, 404 journey or trip missing, 409 conflict
    """
    try:
        result = await service.update_journey(ctx, payload)
    except ItineraryError as e:
        raise to_http_exception(e) from e
    return JourneyResponse(journey=result.value, warnings=result.warnings)


@router.delete("/{journey_id}", response_model=JourneyDeletedResponse)
async def delete_journey(
    journey_id: str, ctx: Context, service: Service
) -> JourneyDeletedResponse:
    """Delete a journey; its trips are kept and detached.

    Raises:
        HTTPException: 404 journey missing, 409 conflict
    """
    try:
        result = await service.delete_journey(ctx, journey_id)
    except ItineraryError as e:
        raise to_http_exception(e) from e

    logger.info(f"[DELETE /journeys] tenant={ctx.tenant_id} journey_id={journey_id}")
    return JourneyDeletedResponse(journey_id=journey_id, warnings=result.warnings)


@router.get("/{journey_id}", response_model=Journey)
async def get_journey(journey_id: str, ctx: Context, service: Service) -> Journey:
    """Read a single journey."""
    try:
        return await service.get_journey(ctx, journey_id)
    except ItineraryError as e:
        raise to_http_exception(e) from e


@router.post("/{journey_id}/recompute", response_model=RecomputeResponse)
async def recompute_route(journey_id: str, ctx: Context, service: Service) -> RecomputeResponse:
    """Recompute the journey's master polyline."""
    try:
        master_polyline = await service.recompute_route(ctx, journey_id)
    except ItineraryError as e:
        raise to_http_exception(e) from e
    return RecomputeResponse(journey_id=journey_id, master_polyline=master_polyline)


@router.post("/{journey_id}/repair", response_model=JourneyResponse)
async def repair_membership(journey_id: str, ctx: Context, service: Service) -> JourneyResponse:
    """Rebuild trip_ids from the trips' journey references."""
    try:
        result = await service.repair_membership(ctx, journey_id)
    except ItineraryError as e:
        raise to_http_exception(e) from e
    return JourneyResponse(journey=result.value, warnings=result.warnings)


class DetachedTripsResponse(BaseModel):
    """Response for POST /journeys/repair-orphans."""

    trip_ids: list[str]


@router.post("/repair-orphans", response_model=DetachedTripsResponse)
async def detach_orphaned_trips(ctx: Context, service: Service) -> DetachedTripsResponse:
    """Clear journey_id on trips whose journey no longer exists."""
    try:
        trip_ids = await service.detach_orphaned_trips(ctx)
    except ItineraryError as e:
        raise to_http_exception(e) from e
    return DetachedTripsResponse(trip_ids=trip_ids)
