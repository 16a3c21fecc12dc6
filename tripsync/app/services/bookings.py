"""Booking mutations with atomic trip budget reconciliation."""

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from tripsync.app.db.context import RequestContext
from tripsync.app.db.documents import BOOKINGS, Transaction
from tripsync.app.engine.ledger import (
    Assignment,
    apply_category_delta,
    assignment_of,
    reconcile,
)
from tripsync.app.engine.orchestrator import TransactionOrchestrator
from tripsync.app.models.booking import Booking, BookingCreate, BookingUpdate
from tripsync.app.models.common import utcnow
from tripsync.app.models.validation import require_valid
from tripsync.app.services.loaders import (
    booking_path,
    find_trip,
    load_booking,
    load_trip,
    trip_path,
)

logger = logging.getLogger(__name__)


async def reconcile_trip_budgets(
    txn: Transaction,
    ctx: RequestContext,
    old: Assignment | None,
    new: Assignment | None,
) -> list[str]:
    """Move a booking cost between trip budgets inside txn.

    Deltas for the same trip are folded into a single write. A trip that no
    longer exists on the old side is skipped; on the new side it aborts.

    Returns:
        Ids of trips whose budget was written
    """
    deltas = reconcile(old, new)
    by_trip: dict[str, list] = {}
    for delta in deltas:
        by_trip.setdefault(delta.trip_id, []).append(delta)

    touched: list[str] = []
    for trip_id, trip_deltas in by_trip.items():
        if new is not None and trip_id == new.trip_id:
            trip = await load_trip(txn, ctx, trip_id)
        else:
            trip = await find_trip(txn, ctx, trip_id)
            if trip is None:
                logger.warning(
                    f"[bookings] Previously assigned trip {trip_id} is gone, "
                    f"nothing to subtract"
                )
                continue

        categories = trip.budget
        for delta in trip_deltas:
            categories = apply_category_delta(categories, delta)
        txn.update(
            trip_path(ctx, trip_id),
            {
                "budget": [c.model_dump(mode="json") for c in categories],
                "updated_at": utcnow().isoformat(),
            },
        )
        touched.append(trip_id)
    return touched


def touch_assigned_trip(
    txn: Transaction, ctx: RequestContext, trip_id: str | None, touched: list[str]
) -> None:
    """Write the assigned trip even when its budget is unchanged.

    A concurrent delete_trip then conflicts at commit and rescans the trip's
    bookings, so a booking can never be left pointing at a deleted trip.
    """
    if trip_id and trip_id not in touched:
        txn.update(trip_path(ctx, trip_id), {"updated_at": utcnow().isoformat()})


class BookingService:
    """Create, update, delete and list bookings."""

    def __init__(self, orchestrator: TransactionOrchestrator) -> None:
        self._orchestrator = orchestrator

    async def create_booking(
        self, ctx: RequestContext, booking: BookingCreate | Mapping[str, Any]
    ) -> Booking:
        """Create a booking and add its cost to the assigned trip's budget.

        Raises:
            InputValidationError: Invalid booking
            TripNotFoundError: Assigned trip does not exist
        """
        payload = require_valid(BookingCreate, booking)
        booking_id = str(uuid.uuid4())

        async def body(txn: Transaction) -> Booking:
            if payload.assigned_trip_id:
                await load_trip(txn, ctx, payload.assigned_trip_id)
            touched = await reconcile_trip_budgets(
                txn, ctx, None, assignment_of(payload.assigned_trip_id, payload.budgeted_cost)
            )
            touch_assigned_trip(txn, ctx, payload.assigned_trip_id, touched)
            record = Booking(id=booking_id, timestamp=utcnow(), **payload.model_dump())
            txn.set(booking_path(ctx, booking_id), record.model_dump(mode="json"))
            return record

        return await self._orchestrator.run(ctx, "create_booking", body)

    async def update_booking(
        self, ctx: RequestContext, booking: BookingUpdate | Mapping[str, Any]
    ) -> Booking:
        """Replace a booking, moving its cost between trip budgets as needed.

        Raises:
            InputValidationError: Invalid booking
            BookingNotFoundError: Booking does not exist
            TripNotFoundError: Newly assigned trip does not exist
        """
        payload = require_valid(BookingUpdate, booking)

        async def body(txn: Transaction) -> Booking:
            existing = await load_booking(txn, ctx, payload.id)
            if payload.assigned_trip_id:
                await load_trip(txn, ctx, payload.assigned_trip_id)
            touched = await reconcile_trip_budgets(
                txn,
                ctx,
                assignment_of(existing.assigned_trip_id, existing.budgeted_cost),
                assignment_of(payload.assigned_trip_id, payload.budgeted_cost),
            )
            touch_assigned_trip(txn, ctx, payload.assigned_trip_id, touched)
            record = Booking(timestamp=existing.timestamp, **payload.model_dump())
            txn.set(booking_path(ctx, payload.id), record.model_dump(mode="json"))
            return record

        return await self._orchestrator.run(ctx, "update_booking", body)

    async def delete_booking(self, ctx: RequestContext, booking_id: str) -> None:
        """Delete a booking and subtract its cost from the assigned trip.

        Raises:
            BookingNotFoundError: Booking does not exist
        """

        async def body(txn: Transaction) -> None:
            existing = await load_booking(txn, ctx, booking_id)
            await reconcile_trip_budgets(
                txn, ctx, assignment_of(existing.assigned_trip_id, existing.budgeted_cost), None
            )
            txn.delete(booking_path(ctx, booking_id))

        await self._orchestrator.run(ctx, "delete_booking", body)

    async def list_bookings(self, ctx: RequestContext) -> list[Booking]:
        """All bookings of the tenant, by check-in date."""
        snapshots = await self._orchestrator.store.list_collection(ctx.tenant_id, BOOKINGS)
        bookings = [Booking.model_validate(s.data) for s in snapshots if s.exists]
        return sorted(bookings, key=lambda b: (b.check_in_date, b.id))
