"""Integration tests for packing lists."""

from collections.abc import Callable
from typing import Any

import pytest

from tripsync.app.db.context import RequestContext
from tripsync.app.engine.errors import InputValidationError, TripNotFoundError
from tripsync.app.services.packing import PackingListService
from tripsync.app.services.trips import TripService


@pytest.mark.asyncio
async def test_unsaved_list_is_empty(
    ctx: RequestContext,
    trip_service: TripService,
    packing_service: PackingListService,
    make_trip: Callable[..., dict[str, Any]],
) -> None:
    trip = (await trip_service.create_trip(ctx, make_trip())).value

    packing_list = await packing_service.get_packing_list(ctx, trip.id)

    assert packing_list.trip_id == trip.id
    assert packing_list.categories == []


@pytest.mark.asyncio
async def test_save_replaces_list(
    ctx: RequestContext,
    trip_service: TripService,
    packing_service: PackingListService,
    make_trip: Callable[..., dict[str, Any]],
) -> None:
    trip = (await trip_service.create_trip(ctx, make_trip())).value
    await packing_service.save_packing_list(
        ctx,
        trip.id,
        {"categories": [{"id": "c1", "name": "Kitchen", "items": [{"id": "i1", "name": "Kettle"}]}]},
    )

    await packing_service.save_packing_list(
        ctx, trip.id, {"categories": [{"id": "c2", "name": "Bedding"}]}
    )

    stored = await packing_service.get_packing_list(ctx, trip.id)
    assert [c.name for c in stored.categories] == ["Bedding"]
    assert stored.updated_at is not None


@pytest.mark.asyncio
async def test_list_requires_existing_trip(
    ctx: RequestContext, packing_service: PackingListService
) -> None:
    with pytest.raises(TripNotFoundError):
        await packing_service.save_packing_list(ctx, "ghost", {"categories": []})
    with pytest.raises(TripNotFoundError):
        await packing_service.get_packing_list(ctx, "ghost")


@pytest.mark.asyncio
async def test_invalid_list_rejected(
    ctx: RequestContext, packing_service: PackingListService
) -> None:
    with pytest.raises(InputValidationError):
        await packing_service.save_packing_list(
            ctx, "any", {"categories": [{"id": "c1", "name": ""}]}
        )
