"""Master route aggregation for journeys.

A journey's master_polyline is derived from its member trips: trips are ordered
by planned start date (undated trips last, member-list order among ties), each
trip's geometry is decoded and the coordinates are concatenated and re-encoded.
Recompute is idempotent and only ever writes the master_polyline field.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from pydantic import ValidationError

from tripsync.app.db.context import RequestContext
from tripsync.app.db.documents import (
    JOURNEYS,
    TRIPS,
    DocumentNotFoundError,
    DocumentPath,
    DocumentStore,
)
from tripsync.app.engine import polyline
from tripsync.app.engine.errors import JourneyNotFoundError
from tripsync.app.engine.instrumentation import EngineMetrics
from tripsync.app.models.journey import Journey
from tripsync.app.models.trip import Trip

logger = logging.getLogger(__name__)


@dataclass
class MasterRoute:
    """Aggregated geometry plus the trips that could not contribute."""

    polyline: str | None
    skipped_trip_ids: list[str] = field(default_factory=list)


def order_trips_for_route(trips: Iterable[Trip]) -> list[Trip]:
    """Stable sort by planned start; undated trips follow all dated ones."""
    return sorted(
        trips,
        key=lambda t: (t.planned_start_date is None, t.planned_start_date or 0),
    )


def build_master_polyline(
    trips: Iterable[Trip], precision: int = polyline.DEFAULT_PRECISION
) -> MasterRoute:
    """Concatenate member trip geometries into a single encoded polyline.

    Args:
        trips: Member trips in member-list order
        precision: Polyline precision for decoding and encoding

    Returns:
        MasterRoute with the encoded polyline, or None when no trip has geometry
    """
    coordinates: list[polyline.Coordinate] = []
    skipped: list[str] = []

    for trip in order_trips_for_route(t for t in trips if t.route_details.polyline):
        try:
            coordinates.extend(polyline.decode(trip.route_details.polyline, precision))
        except polyline.PolylineDecodeError as e:
            logger.warning(f"[aggregator] Skipping trip {trip.id}: undecodable geometry ({e})")
            skipped.append(trip.id)

    encoded = polyline.encode(coordinates, precision) if coordinates else None
    return MasterRoute(polyline=encoded, skipped_trip_ids=skipped)


class MasterRouteAggregator:
    """Recomputes and stores a journey's master polyline."""

    def __init__(
        self,
        store: DocumentStore,
        precision: int = polyline.DEFAULT_PRECISION,
        metrics: EngineMetrics | None = None,
    ) -> None:
        self._store = store
        self._precision = precision
        self._metrics = metrics or EngineMetrics()

    async def recompute(self, ctx: RequestContext, journey_id: str) -> str | None:
        """Recompute and write master_polyline for a journey.

        Reads are non-transactional; concurrent recomputes are last-write-wins
        on the single derived field.

        Raises:
            JourneyNotFoundError: If the journey does not exist
        """
        journey_path = DocumentPath.of(ctx, JOURNEYS, journey_id)
        snapshot = await self._store.get(journey_path)
        if not snapshot.exists:
            self._metrics.inc_recompute("not_found")
            raise JourneyNotFoundError(journey_id)
        journey = Journey.model_validate(snapshot.data)

        route = MasterRoute(polyline=None)
        if journey.trip_ids:
            trip_snapshots = await self._store.get_all(
                [DocumentPath.of(ctx, TRIPS, trip_id) for trip_id in journey.trip_ids]
            )
            trips = []
            for trip_snapshot in trip_snapshots:
                if not trip_snapshot.exists:
                    continue
                try:
                    trips.append(Trip.model_validate(trip_snapshot.data))
                except ValidationError:
                    logger.warning(
                        f"[aggregator] Skipping malformed trip document {trip_snapshot.path}"
                    )
                    self._metrics.inc_skipped_trip()
            route = build_master_polyline(trips, self._precision)
            for _ in route.skipped_trip_ids:
                self._metrics.inc_skipped_trip()

        try:
            await self._store.update(journey_path, {"master_polyline": route.polyline})
        except DocumentNotFoundError as e:
            self._metrics.inc_recompute("not_found")
            raise JourneyNotFoundError(journey_id) from e

        self._metrics.inc_recompute("success")
        logger.info(
            f"[aggregator] Journey {journey_id}: master route from "
            f"{len(journey.trip_ids)} trips ({len(route.skipped_trip_ids)} skipped)"
        )
        return route.polyline
