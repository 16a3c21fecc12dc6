"""Booking endpoints - CRUD with trip budget reconciliation."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Response, status

from tripsync.app.api.auth import get_current_context
from tripsync.app.api.deps import get_booking_service
from tripsync.app.api.errors import to_http_exception
from tripsync.app.db.context import RequestContext
from tripsync.app.engine.errors import ItineraryError
from tripsync.app.models.booking import Booking
from tripsync.app.services.bookings import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])

Context = Annotated[RequestContext, Depends(get_current_context)]
Service = Annotated[BookingService, Depends(get_booking_service)]


@router.get("", response_model=list[Booking])
async def list_bookings(ctx: Context, service: Service) -> list[Booking]:
    """List the tenant's bookings ordered by check-in."""
    return await service.list_bookings(ctx)


@router.post("", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: Annotated[dict[str, Any], Body()],
    ctx: Context,
    service: Service,
) -> Booking:
    """Create a booking.

    Raises:
        HTTPException: 400 invalid booking, 404 assigned trip missing
    """
    try:
        booking = await service.create_booking(ctx, payload)
    except ItineraryError as e:
        raise to_http_exception(e) from e

    logger.info(f"[POST /bookings] tenant={ctx.tenant_id} booking_id={booking.id}")
    return booking


@router.put("", response_model=Booking)
async def update_booking(
    payload: Annotated[dict[str, Any], Body()],
    ctx: Context,
    service: Service,
) -> Booking:
    """Replace a booking (id in body).

    Raises:
        HTTPException: 400 invalid booking, 404 booking or trip missing, 409 conflict
    """
    try:
        return await service.update_booking(ctx, payload)
    except ItineraryError as e:
        raise to_http_exception(e) from e


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(booking_id: str, ctx: Context, service: Service) -> Response:
    """Delete a booking.

    Raises:
        HTTPException: 404 booking missing, 409 conflict
    """
    try:
        await service.delete_booking(ctx, booking_id)
    except ItineraryError as e:
        raise to_http_exception(e) from e

    logger.info(f"[DELETE /bookings] tenant={ctx.tenant_id} booking_id={booking_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
