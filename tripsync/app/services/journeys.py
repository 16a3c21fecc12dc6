"""Journey mutations, route recompute and membership repair."""

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from tripsync.app.db.context import RequestContext
from tripsync.app.db.documents import JOURNEYS, TRIPS, Transaction
from tripsync.app.engine.membership import diff_members, plan_repair, unlink
from tripsync.app.engine.orchestrator import MutationResult, TransactionOrchestrator
from tripsync.app.models.common import utcnow
from tripsync.app.models.journey import Journey, JourneyCreate, JourneyUpdate
from tripsync.app.models.trip import Trip
from tripsync.app.models.validation import require_valid
from tripsync.app.services.loaders import (
    find_journey,
    find_trip,
    journey_path,
    load_journey,
    load_trip,
    trip_path,
)
from tripsync.app.services.trips import apply_membership_ops

logger = logging.getLogger(__name__)


class JourneyService:
    """Journey lifecycle operations."""

    def __init__(self, orchestrator: TransactionOrchestrator) -> None:
        self._orchestrator = orchestrator

    async def _trip_ids_pointing_at(self, ctx: RequestContext, journey_id: str) -> list[str]:
        """Non-transactional scan for trips whose journey_id is journey_id."""
        snapshots = await self._orchestrator.store.list_collection(ctx.tenant_id, TRIPS)
        return [
            s.path.doc_id
            for s in snapshots
            if s.exists and s.data.get("journey_id") == journey_id
        ]

    async def create_journey(
        self, ctx: RequestContext, journey: JourneyCreate | Mapping[str, Any]
    ) -> Journey:
        """Create an empty journey."""
        payload = require_valid(JourneyCreate, journey)
        now = utcnow()
        record = Journey(
            id=str(uuid.uuid4()),
            name=payload.name,
            description=payload.description,
            created_at=now,
            updated_at=now,
        )

        async def body(txn: Transaction) -> Journey:
            txn.set(journey_path(ctx, record.id), record.model_dump(mode="json"))
            return record

        return await self._orchestrator.run(ctx, "create_journey", body)

    async def update_journey(
        self, ctx: RequestContext, update: JourneyUpdate | Mapping[str, Any]
    ) -> MutationResult[Journey]:
        """Update a journey's details and, optionally, its member list.

        When trip_ids is given, added trips are pointed at this journey (and
        removed from any journey they belonged to) and removed trips that still
        point here are detached.

        Raises:
            InputValidationError: Invalid update
            JourneyNotFoundError: Journey does not exist
            TripNotFoundError: An added trip does not exist
        """
        payload = require_valid(JourneyUpdate, update)

        async def body(txn: Transaction) -> MutationResult[Journey]:
            existing = await load_journey(txn, ctx, payload.id)
            now = utcnow()
            changes: dict[str, Any] = {"updated_at": now}
            if payload.name is not None:
                changes["name"] = payload.name
            if "description" in payload.model_fields_set:
                changes["description"] = payload.description

            affected: list[str] = []
            if payload.trip_ids is not None:
                diff = diff_members(existing.trip_ids, payload.trip_ids)
                for trip_id in diff.added:
                    trip = await load_trip(txn, ctx, trip_id)
                    if trip.journey_id and trip.journey_id != existing.id:
                        affected += await apply_membership_ops(
                            txn, ctx, unlink(trip.journey_id, trip_id)
                        )
                    txn.update(
                        trip_path(ctx, trip_id),
                        {"journey_id": existing.id, "updated_at": now.isoformat()},
                    )
                for trip_id in diff.removed:
                    trip = await find_trip(txn, ctx, trip_id)
                    if trip is not None and trip.journey_id == existing.id:
                        txn.update(
                            trip_path(ctx, trip_id),
                            {"journey_id": None, "updated_at": now.isoformat()},
                        )
                changes["trip_ids"] = payload.trip_ids
                if not diff.is_empty or payload.trip_ids != existing.trip_ids:
                    affected.append(existing.id)

            record = existing.model_copy(update=changes)
            txn.set(journey_path(ctx, record.id), record.model_dump(mode="json"))
            return MutationResult(value=record, affected_journey_ids=affected)

        result = await self._orchestrator.mutate(ctx, "update_journey", body)
        if payload.id in result.affected_journey_ids:
            # Reflect the freshly computed route in the returned journey
            refreshed = await self._orchestrator.store.get(journey_path(ctx, payload.id))
            if refreshed.exists:
                result.value = Journey.model_validate(refreshed.data)
        return result

    async def delete_journey(self, ctx: RequestContext, journey_id: str) -> MutationResult[None]:
        """Delete a journey and detach its trips (trips are kept).

        Raises:
            JourneyNotFoundError: Journey does not exist
        """
        pointing = await self._trip_ids_pointing_at(ctx, journey_id)

        async def body(txn: Transaction) -> MutationResult[None]:
            existing = await load_journey(txn, ctx, journey_id)
            now = utcnow().isoformat()
            for trip_id in dict.fromkeys([*existing.trip_ids, *pointing]):
                trip = await find_trip(txn, ctx, trip_id)
                if trip is not None and trip.journey_id == journey_id:
                    txn.update(trip_path(ctx, trip_id), {"journey_id": None, "updated_at": now})
            txn.delete(journey_path(ctx, journey_id))
            return MutationResult(value=None)

        return await self._orchestrator.mutate(ctx, "delete_journey", body)

    async def list_journeys(self, ctx: RequestContext) -> list[Journey]:
        """All journeys of the tenant, oldest first."""
        snapshots = await self._orchestrator.store.list_collection(ctx.tenant_id, JOURNEYS)
        journeys = [Journey.model_validate(s.data) for s in snapshots if s.exists]
        return sorted(journeys, key=lambda j: (j.created_at, j.id))

    async def get_journey(self, ctx: RequestContext, journey_id: str) -> Journey:
        """Read a single journey.

        Raises:
            JourneyNotFoundError: Journey does not exist
        """
        return await load_journey(self._orchestrator.store, ctx, journey_id)

    async def recompute_route(self, ctx: RequestContext, journey_id: str) -> str | None:
        """Recompute a journey's master polyline on demand.

        Raises:
            JourneyNotFoundError: Journey does not exist
        """
        return await self._orchestrator.aggregator.recompute(ctx, journey_id)

    async def repair_membership(
        self, ctx: RequestContext, journey_id: str
    ) -> MutationResult[Journey]:
        """Rebuild a journey's trip_ids from its trips' back-references.

        Raises:
            JourneyNotFoundError: Journey does not exist
        """
        pointing = await self._trip_ids_pointing_at(ctx, journey_id)

        async def body(txn: Transaction) -> MutationResult[Journey]:
            existing = await load_journey(txn, ctx, journey_id)
            trips: list[Trip] = []
            for trip_id in dict.fromkeys([*existing.trip_ids, *pointing]):
                trip = await find_trip(txn, ctx, trip_id)
                if trip is not None:
                    trips.append(trip)

            plan = plan_repair(journey_id, existing.trip_ids, trips)
            if not plan.changed:
                return MutationResult(value=existing, affected_journey_ids=[journey_id])

            logger.info(
                f"[journeys] Repaired {journey_id}: dropped {plan.dropped}, appended {plan.appended}"
            )
            record = existing.model_copy(
                update={"trip_ids": plan.trip_ids, "updated_at": utcnow()}
            )
            txn.set(journey_path(ctx, journey_id), record.model_dump(mode="json"))
            return MutationResult(value=record, affected_journey_ids=[journey_id])

        result = await self._orchestrator.mutate(ctx, "repair_membership", body)
        refreshed = await self._orchestrator.store.get(journey_path(ctx, journey_id))
        if refreshed.exists:
            result.value = Journey.model_validate(refreshed.data)
        return result

    async def detach_orphaned_trips(self, ctx: RequestContext) -> list[str]:
        """Clear journey_id on trips whose journey no longer exists.

        This is the trip-side counterpart of repair_membership.

        Returns:
            Ids of the trips that were detached
        """
        snapshots = await self._orchestrator.store.list_collection(ctx.tenant_id, TRIPS)
        candidates = [s.path.doc_id for s in snapshots if s.exists and s.data.get("journey_id")]

        async def body(txn: Transaction) -> list[str]:
            detached: list[str] = []
            now = utcnow().isoformat()
            for trip_id in candidates:
                trip = await find_trip(txn, ctx, trip_id)
                if trip is None or not trip.journey_id:
                    continue
                if await find_journey(txn, ctx, trip.journey_id) is None:
                    txn.update(trip_path(ctx, trip_id), {"journey_id": None, "updated_at": now})
                    detached.append(trip_id)
            return detached

        detached = await self._orchestrator.run(ctx, "detach_orphaned_trips", body)
        if detached:
            logger.info(f"[journeys] Detached {len(detached)} trips from missing journeys: {detached}")
        return detached
