"""Trip mutations: membership, estimate categories and delete cascade."""

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from tripsync.app.db.context import RequestContext
from tripsync.app.db.documents import BOOKINGS, PACKING_LISTS, TRIPS, DocumentPath, Transaction
from tripsync.app.engine.errors import JourneyNotFoundError
from tripsync.app.engine.ledger import BudgetSummary, summarize_budget, sync_estimate_categories
from tripsync.app.engine.membership import (
    MembershipAction,
    MembershipOp,
    link,
    route_changed,
    unlink,
)
from tripsync.app.engine.orchestrator import MutationResult, TransactionOrchestrator
from tripsync.app.models.common import utcnow
from tripsync.app.models.trip import CopyTripRequest, Trip, TripCreate, TripUpdate
from tripsync.app.models.validation import require_valid
from tripsync.app.services.loaders import (
    find_journey,
    journey_path,
    load_journey,
    load_trip,
    trip_path,
)

logger = logging.getLogger(__name__)


async def apply_membership_ops(
    txn: Transaction, ctx: RequestContext, ops: list[MembershipOp]
) -> list[str]:
    """Buffer journey-side array updates for ops.

    Raises:
        JourneyNotFoundError: An add target does not exist

    Returns:
        Journey ids that were written
    """
    written: list[str] = []
    for op in ops:
        journey = await find_journey(txn, ctx, op.journey_id)
        if journey is None:
            if op.action == MembershipAction.ADD:
                raise JourneyNotFoundError(op.journey_id)
            logger.info(
                f"[trips] Journey {op.journey_id} already gone, nothing to remove {op.trip_id} from"
            )
            continue
        txn.update(
            journey_path(ctx, op.journey_id),
            {**op.field_update(), "updated_at": utcnow().isoformat()},
        )
        written.append(op.journey_id)
    return written


def _estimate_costs(trip: Trip) -> tuple[float | None, float | None]:
    fuel = trip.fuel_estimate.estimated_cost if trip.fuel_estimate else None
    tolls = trip.route_details.toll_info.value if trip.route_details.toll_info else None
    return fuel, tolls


class TripService:
    """Trip lifecycle operations."""

    def __init__(self, orchestrator: TransactionOrchestrator) -> None:
        self._orchestrator = orchestrator

    async def create_trip(
        self, ctx: RequestContext, trip: TripCreate | Mapping[str, Any]
    ) -> MutationResult[Trip]:
        """Create a trip, linking it into its journey if one is given.

        Raises:
            InputValidationError: Invalid trip
            JourneyNotFoundError: journey_id does not exist
        """
        payload = require_valid(TripCreate, trip)
        trip_id = str(uuid.uuid4())

        async def body(txn: Transaction) -> MutationResult[Trip]:
            record = Trip(id=trip_id, timestamp=utcnow(), **payload.model_dump())
            fuel, tolls = _estimate_costs(record)
            record = record.model_copy(
                update={"budget": sync_estimate_categories(record.budget, fuel, tolls)}
            )
            affected = await apply_membership_ops(
                txn, ctx, link(None, record.journey_id, trip_id)
            )
            txn.set(trip_path(ctx, trip_id), record.model_dump(mode="json"))
            return MutationResult(value=record, affected_journey_ids=affected)

        return await self._orchestrator.mutate(ctx, "create_trip", body)

    async def update_trip(
        self, ctx: RequestContext, update: TripUpdate | Mapping[str, Any]
    ) -> MutationResult[Trip]:
        """Apply a partial update to a trip.

        Moving the trip between journeys updates both member lists; a changed
        route or planned start refreshes the journey's master route.

        Raises:
            InputValidationError: Invalid update, or the merged trip is invalid
            TripNotFoundError: Trip does not exist
            JourneyNotFoundError: New journey_id does not exist
        """
        payload = require_valid(TripUpdate, update)
        changes = payload.changes()

        async def body(txn: Transaction) -> MutationResult[Trip]:
            existing = await load_trip(txn, ctx, payload.id)
            merged = {
                **existing.model_dump(mode="json"),
                **payload.model_dump(mode="json", include=set(changes)),
                "updated_at": utcnow().isoformat(),
            }
            record = require_valid(Trip, merged)

            fuel, tolls = _estimate_costs(record)
            record = record.model_copy(
                update={
                    "budget": sync_estimate_categories(
                        record.budget,
                        fuel if "fuel_estimate" in changes else None,
                        tolls if "route_details" in changes else None,
                    )
                }
            )

            affected = await apply_membership_ops(
                txn, ctx, link(existing.journey_id, record.journey_id, record.id)
            )
            if record.journey_id and route_changed(existing, record):
                affected.append(record.journey_id)

            txn.set(trip_path(ctx, record.id), record.model_dump(mode="json"))
            return MutationResult(value=record, affected_journey_ids=affected)

        return await self._orchestrator.mutate(ctx, "update_trip", body)

    async def delete_trip(self, ctx: RequestContext, trip_id: str) -> MutationResult[None]:
        """Delete a trip and everything that hangs off it.

        The packing list is deleted, the trip is removed from its journey and
        bookings assigned to it are detached.

        Raises:
            TripNotFoundError: Trip does not exist
        """

        async def body(txn: Transaction) -> MutationResult[None]:
            existing = await load_trip(txn, ctx, trip_id)
            affected = await apply_membership_ops(txn, ctx, unlink(existing.journey_id, trip_id))

            txn.delete(DocumentPath.of(ctx, PACKING_LISTS, trip_id))

            snapshots = await self._orchestrator.store.list_collection(ctx.tenant_id, BOOKINGS)
            for snapshot in snapshots:
                if not snapshot.exists or snapshot.data.get("assigned_trip_id") != trip_id:
                    continue
                # Re-read through the transaction so a concurrent edit conflicts
                current = await txn.get(snapshot.path)
                if current.exists and current.data.get("assigned_trip_id") == trip_id:
                    txn.update(snapshot.path, {"assigned_trip_id": None})
                    logger.info(f"[trips] Detached booking {snapshot.path.doc_id} from {trip_id}")

            txn.delete(trip_path(ctx, trip_id))
            return MutationResult(value=None, affected_journey_ids=affected)

        return await self._orchestrator.mutate(ctx, "delete_trip", body)

    async def copy_trip_to_journey(
        self,
        ctx: RequestContext,
        source_trip_id: str,
        destination_journey_id: str,
    ) -> MutationResult[Trip]:
        """Duplicate a trip's plan into a journey.

        The copy is named "Copy of: <name>", has no expenses, dates or
        completion, and every checklist item is reset to not completed.

        Raises:
            TripNotFoundError: Source trip does not exist
            JourneyNotFoundError: Destination journey does not exist
        """
        request = require_valid(
            CopyTripRequest,
            {"source_trip_id": source_trip_id, "destination_journey_id": destination_journey_id},
        )
        new_id = str(uuid.uuid4())

        async def body(txn: Transaction) -> MutationResult[Trip]:
            source = await load_trip(txn, ctx, request.source_trip_id)
            await load_journey(txn, ctx, request.destination_journey_id)

            checklists = [
                stage.model_copy(
                    update={
                        "items": [
                            item.model_copy(update={"completed": False}) for item in stage.items
                        ]
                    }
                )
                for stage in source.checklists
            ]
            duplicate = source.model_copy(
                deep=True,
                update={
                    "id": new_id,
                    "name": f"Copy of: {source.name}",
                    "timestamp": utcnow(),
                    "updated_at": None,
                    "journey_id": request.destination_journey_id,
                    "expenses": [],
                    "is_completed": False,
                    "planned_start_date": None,
                    "planned_end_date": None,
                    "checklists": checklists,
                },
            )

            txn.set(trip_path(ctx, new_id), duplicate.model_dump(mode="json"))
            affected = await apply_membership_ops(
                txn, ctx, link(None, request.destination_journey_id, new_id)
            )
            return MutationResult(value=duplicate, affected_journey_ids=affected)

        return await self._orchestrator.mutate(ctx, "copy_trip", body)

    async def list_trips(self, ctx: RequestContext) -> list[Trip]:
        """All trips of the tenant, newest first."""
        snapshots = await self._orchestrator.store.list_collection(ctx.tenant_id, TRIPS)
        trips = [Trip.model_validate(s.data) for s in snapshots if s.exists]
        return sorted(trips, key=lambda t: t.timestamp, reverse=True)

    async def get_trip(self, ctx: RequestContext, trip_id: str) -> Trip:
        """Read a single trip.

        Raises:
            TripNotFoundError: Trip does not exist
        """
        return await load_trip(self._orchestrator.store, ctx, trip_id)

    async def get_budget_summary(self, ctx: RequestContext, trip_id: str) -> BudgetSummary:
        """Budgeted vs spent per category for a trip."""
        trip = await self.get_trip(ctx, trip_id)
        return summarize_budget(trip)
