"""Typed document reads through a transaction or the plain store."""

from tripsync.app.db.context import RequestContext
from tripsync.app.db.documents import (
    BOOKINGS,
    JOURNEYS,
    TRIPS,
    DocumentPath,
    DocumentStore,
    Transaction,
)
from tripsync.app.engine.errors import (
    BookingNotFoundError,
    JourneyNotFoundError,
    TripNotFoundError,
)
from tripsync.app.models.booking import Booking
from tripsync.app.models.journey import Journey
from tripsync.app.models.trip import Trip

# Transactional reads record versions; plain store reads do not
Reader = Transaction | DocumentStore


def trip_path(ctx: RequestContext, trip_id: str) -> DocumentPath:
    return DocumentPath.of(ctx, TRIPS, trip_id)


def journey_path(ctx: RequestContext, journey_id: str) -> DocumentPath:
    return DocumentPath.of(ctx, JOURNEYS, journey_id)


def booking_path(ctx: RequestContext, booking_id: str) -> DocumentPath:
    return DocumentPath.of(ctx, BOOKINGS, booking_id)


async def find_trip(reader: Reader, ctx: RequestContext, trip_id: str) -> Trip | None:
    snapshot = await reader.get(trip_path(ctx, trip_id))
    return Trip.model_validate(snapshot.data) if snapshot.exists else None


async def load_trip(reader: Reader, ctx: RequestContext, trip_id: str) -> Trip:
    """Read a trip or raise TripNotFoundError."""
    trip = await find_trip(reader, ctx, trip_id)
    if trip is None:
        raise TripNotFoundError(trip_id)
    return trip


async def find_journey(reader: Reader, ctx: RequestContext, journey_id: str) -> Journey | None:
    snapshot = await reader.get(journey_path(ctx, journey_id))
    return Journey.model_validate(snapshot.data) if snapshot.exists else None


async def load_journey(reader: Reader, ctx: RequestContext, journey_id: str) -> Journey:
    """Read a journey or raise JourneyNotFoundError."""
    journey = await find_journey(reader, ctx, journey_id)
    if journey is None:
        raise JourneyNotFoundError(journey_id)
    return journey


async def load_booking(reader: Reader, ctx: RequestContext, booking_id: str) -> Booking:
    """Read a booking or raise BookingNotFoundError."""
    snapshot = await reader.get(booking_path(ctx, booking_id))
    if not snapshot.exists:
        raise BookingNotFoundError(booking_id)
    return Booking.model_validate(snapshot.data)
