"""Integration tests for journeys: master route ordering, membership edits and repair."""

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from tripsync.app.db.context import RequestContext
from tripsync.app.db.documents import JOURNEYS, TRIPS, DocumentPath
from tripsync.app.db.inmemory import InMemoryDocumentStore
from tripsync.app.engine.errors import JourneyNotFoundError, TripNotFoundError
from tripsync.app.engine.polyline import decode
from tripsync.app.services.journeys import JourneyService
from tripsync.app.services.trips import TripService

MakePayload = Callable[..., dict[str, Any]]

POLYLINE_A = "_p~iF~ps|U"
POLYLINE_B = "_ulLnnqC"
POLYLINE_C = "_mqNvxq`@"
POINT_A = (38.5, -120.2)
POINT_B = (2.2, -0.75)
POINT_C = (2.552, -5.503)


def _route(make_trip: MakePayload, polyline: str | None) -> dict[str, Any]:
    return {**make_trip()["route_details"], "polyline": polyline}


async def _journey(store: InMemoryDocumentStore, ctx: RequestContext, journey_id: str) -> dict[str, Any]:
    return (await store.get(DocumentPath.of(ctx, JOURNEYS, journey_id))).data


async def _trip(store: InMemoryDocumentStore, ctx: RequestContext, trip_id: str) -> dict[str, Any]:
    return (await store.get(DocumentPath.of(ctx, TRIPS, trip_id))).data


@pytest.mark.asyncio
async def test_master_route_orders_by_planned_start(
    ctx: RequestContext,
    store: InMemoryDocumentStore,
    trip_service: TripService,
    journey_service: JourneyService,
    make_trip: MakePayload,
) -> None:
    journey = await journey_service.create_journey(ctx, {"name": "Loop"})
    for polyline, start in [
        (POLYLINE_C, "2025-05-03T08:00:00Z"),
        (POLYLINE_A, "2025-05-01T08:00:00Z"),
        (POLYLINE_B, "2025-05-02T08:00:00Z"),
    ]:
        await trip_service.create_trip(
            ctx,
            make_trip(
                journey_id=journey.id,
                planned_start_date=start,
                route_details=_route(make_trip, polyline),
            ),
        )

    stored = await _journey(store, ctx, journey.id)
    assert decode(stored["master_polyline"]) == pytest.approx([POINT_A, POINT_B, POINT_C])


@pytest.mark.asyncio
async def test_dated_trips_precede_undated(
    ctx: RequestContext,
    store: InMemoryDocumentStore,
    trip_service: TripService,
    journey_service: JourneyService,
    make_trip: MakePayload,
) -> None:
    journey = await journey_service.create_journey(ctx, {"name": "Mixed"})
    await trip_service.create_trip(
        ctx, make_trip(journey_id=journey.id, route_details=_route(make_trip, POLYLINE_A))
    )
    await trip_service.create_trip(
        ctx,
        make_trip(
            journey_id=journey.id,
            planned_start_date="2025-01-01T00:00:00Z",
            route_details=_route(make_trip, POLYLINE_B),
        ),
    )

    polyline = await journey_service.recompute_route(ctx, journey.id)

    assert decode(polyline) == pytest.approx([POINT_B, POINT_A])


@pytest.mark.asyncio
async def test_recompute_is_idempotent(
    ctx: RequestContext,
    store: InMemoryDocumentStore,
    trip_service: TripService,
    journey_service: JourneyService,
    make_trip: MakePayload,
) -> None:
    journey = await journey_service.create_journey(ctx, {"name": "Loop"})
    await trip_service.create_trip(ctx, make_trip(journey_id=journey.id))
    await trip_service.create_trip(
        ctx, make_trip(journey_id=journey.id, route_details=_route(make_trip, POLYLINE_C))
    )

    first = await journey_service.recompute_route(ctx, journey.id)
    snapshot = await _journey(store, ctx, journey.id)
    second = await journey_service.recompute_route(ctx, journey.id)

    assert first == second
    assert await _journey(store, ctx, journey.id) == snapshot


@pytest.mark.asyncio
async def test_undecodable_member_is_skipped(
    ctx: RequestContext,
    trip_service: TripService,
    journey_service: JourneyService,
    make_trip: MakePayload,
) -> None:
    journey = await journey_service.create_journey(ctx, {"name": "Broken"})
    await trip_service.create_trip(
        ctx, make_trip(journey_id=journey.id, route_details=_route(make_trip, "abc"))
    )
    await trip_service.create_trip(
        ctx, make_trip(journey_id=journey.id, route_details=_route(make_trip, POLYLINE_B))
    )

    assert decode(await journey_service.recompute_route(ctx, journey.id)) == pytest.approx(
        [POINT_B]
    )


@pytest.mark.asyncio
async def test_recompute_unknown_journey_raises(
    ctx: RequestContext, journey_service: JourneyService
) -> None:
    with pytest.raises(JourneyNotFoundError):
        await journey_service.recompute_route(ctx, "ghost")


@pytest.mark.asyncio
async def test_update_trip_ids_relinks_both_sides(
    ctx: RequestContext,
    store: InMemoryDocumentStore,
    trip_service: TripService,
    journey_service: JourneyService,
    make_trip: MakePayload,
) -> None:
    home = await journey_service.create_journey(ctx, {"name": "Home"})
    other = await journey_service.create_journey(ctx, {"name": "Other"})
    kept = (await trip_service.create_trip(ctx, make_trip(journey_id=home.id))).value
    dropped = (await trip_service.create_trip(ctx, make_trip(journey_id=home.id))).value
    stolen = (
        await trip_service.create_trip(
            ctx, make_trip(journey_id=other.id, route_details=_route(make_trip, POLYLINE_C))
        )
    ).value

    result = await journey_service.update_journey(
        ctx, {"id": home.id, "name": "Home again", "trip_ids": [stolen.id, kept.id]}
    )

    assert result.value.name == "Home again"
    assert result.value.trip_ids == [stolen.id, kept.id]
    assert (await _trip(store, ctx, stolen.id))["journey_id"] == home.id
    assert (await _trip(store, ctx, dropped.id))["journey_id"] is None
    assert (await _journey(store, ctx, other.id))["trip_ids"] == []
    assert (await _journey(store, ctx, other.id))["master_polyline"] is None
    assert result.value.master_polyline is not None


@pytest.mark.asyncio
async def test_update_with_unknown_trip_aborts(
    ctx: RequestContext,
    store: InMemoryDocumentStore,
    journey_service: JourneyService,
) -> None:
    journey = await journey_service.create_journey(ctx, {"name": "Home"})

    with pytest.raises(TripNotFoundError):
        await journey_service.update_journey(ctx, {"id": journey.id, "trip_ids": ["ghost"]})
    assert (await _journey(store, ctx, journey.id))["trip_ids"] == []


@pytest.mark.asyncio
async def test_delete_journey_detaches_trips(
    ctx: RequestContext,
    store: InMemoryDocumentStore,
    trip_service: TripService,
    journey_service: JourneyService,
    make_trip: MakePayload,
) -> None:
    journey = await journey_service.create_journey(ctx, {"name": "Doomed"})
    trip = (await trip_service.create_trip(ctx, make_trip(journey_id=journey.id))).value

    await journey_service.delete_journey(ctx, journey.id)

    assert not (await store.get(DocumentPath.of(ctx, JOURNEYS, journey.id))).exists
    stored_trip = await _trip(store, ctx, trip.id)
    assert stored_trip is not None
    assert stored_trip["journey_id"] is None


@pytest.mark.asyncio
async def test_repair_restores_membership_symmetry(
    ctx: RequestContext,
    store: InMemoryDocumentStore,
    trip_service: TripService,
    journey_service: JourneyService,
    make_trip: MakePayload,
) -> None:
    journey = await journey_service.create_journey(ctx, {"name": "Drifted"})
    member = (await trip_service.create_trip(ctx, make_trip(journey_id=journey.id))).value
    orphan = (
        await trip_service.create_trip(ctx, make_trip(route_details=_route(make_trip, POLYLINE_B)))
    ).value
    # Simulate a partially applied write: back-reference set, member list not
    await store.update(DocumentPath.of(ctx, TRIPS, orphan.id), {"journey_id": journey.id})
    await store.update(
        DocumentPath.of(ctx, JOURNEYS, journey.id), {"trip_ids": [member.id, "deleted-trip"]}
    )

    result = await journey_service.repair_membership(ctx, journey.id)

    assert result.value.trip_ids == [member.id, orphan.id]
    for trip_id in result.value.trip_ids:
        assert (await _trip(store, ctx, trip_id))["journey_id"] == journey.id
    assert decode(result.value.master_polyline) == pytest.approx([POINT_A, POINT_B])


@pytest.mark.asyncio
async def test_list_journeys_is_tenant_scoped(
    ctx: RequestContext,
    journey_service: JourneyService,
) -> None:
    await journey_service.create_journey(ctx, {"name": "Mine"})
    await journey_service.create_journey(RequestContext(tenant_id="tenant-b"), {"name": "Theirs"})

    assert [j.name for j in await journey_service.list_journeys(ctx)] == ["Mine"]


@pytest.mark.asyncio
async def test_concurrent_moves_into_one_journey_stay_symmetric(
    ctx: RequestContext,
    store: InMemoryDocumentStore,
    trip_service: TripService,
    journey_service: JourneyService,
    make_trip: MakePayload,
) -> None:
    journey = await journey_service.create_journey(ctx, {"name": "Busy"})
    trips = [(await trip_service.create_trip(ctx, make_trip())).value for _ in range(3)]

    await asyncio.gather(
        *(trip_service.update_trip(ctx, {"id": t.id, "journey_id": journey.id}) for t in trips)
    )

    stored = await _journey(store, ctx, journey.id)
    assert sorted(stored["trip_ids"]) == sorted(t.id for t in trips)
    for trip in trips:
        assert (await _trip(store, ctx, trip.id))["journey_id"] == journey.id


@pytest.mark.asyncio
async def test_detach_orphaned_trips_clears_dangling_journey_ids(
    ctx: RequestContext,
    store: InMemoryDocumentStore,
    trip_service: TripService,
    journey_service: JourneyService,
    make_trip: MakePayload,
) -> None:
    journey = await journey_service.create_journey(ctx, {"name": "Alive"})
    member = (await trip_service.create_trip(ctx, make_trip(journey_id=journey.id))).value
    stray = (await trip_service.create_trip(ctx, make_trip())).value
    # Back-reference to a journey removed outside the engine
    await store.update(DocumentPath.of(ctx, TRIPS, stray.id), {"journey_id": "vanished"})

    detached = await journey_service.detach_orphaned_trips(ctx)

    assert detached == [stray.id]
    assert (await _trip(store, ctx, stray.id))["journey_id"] is None
    assert (await _trip(store, ctx, member.id))["journey_id"] == journey.id
    assert await journey_service.detach_orphaned_trips(ctx) == []
