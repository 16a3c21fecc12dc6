"""Packing list endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends

from tripsync.app.api.auth import get_current_context
from tripsync.app.api.deps import get_packing_list_service
from tripsync.app.api.errors import to_http_exception
from tripsync.app.db.context import RequestContext
from tripsync.app.engine.errors import ItineraryError
from tripsync.app.models.packing import PackingList
from tripsync.app.services.packing import PackingListService

router = APIRouter(prefix="/packing-lists", tags=["packing"])

Context = Annotated[RequestContext, Depends(get_current_context)]
Service = Annotated[PackingListService, Depends(get_packing_list_service)]


@router.get("/{trip_id}", response_model=PackingList)
async def get_packing_list(trip_id: str, ctx: Context, service: Service) -> PackingList:
    """Packing list for a trip."""
    try:
        return await service.get_packing_list(ctx, trip_id)
    except ItineraryError as e:
        raise to_http_exception(e) from e


@router.put("/{trip_id}", response_model=PackingList)
async def save_packing_list(
    trip_id: str,
    payload: Annotated[dict[str, Any], Body()],
    ctx: Context,
    service: Service,
) -> PackingList:
    """Replace the packing list for a trip.

    Raises:
        HTTPException: 400 invalid list, 404 trip missing
    """
    try:
        return await service.save_packing_list(ctx, trip_id, payload)
    except ItineraryError as e:
        raise to_http_exception(e) from e
