"""Models package - re-exports for convenience."""

from tripsync.app.models.booking import Booking, BookingCreate, BookingUpdate
from tripsync.app.models.common import LatLng, TextValue, UtcDatetime, utcnow
from tripsync.app.models.journey import Journey, JourneyCreate, JourneyUpdate
from tripsync.app.models.packing import (
    PackingList,
    PackingListCategory,
    PackingListItem,
    PackingListUpdate,
)
from tripsync.app.models.trip import (
    BudgetCategory,
    ChecklistItem,
    ChecklistStage,
    CopyTripRequest,
    Expense,
    FuelEstimate,
    Occupant,
    OccupantType,
    RouteDetails,
    Trip,
    TripCreate,
    TripUpdate,
    Waypoint,
)

__all__ = [
    # Common
    "LatLng",
    "TextValue",
    "UtcDatetime",
    "utcnow",
    # Trip
    "Trip",
    "TripCreate",
    "TripUpdate",
    "CopyTripRequest",
    "RouteDetails",
    "FuelEstimate",
    "Waypoint",
    "BudgetCategory",
    "Expense",
    "Occupant",
    "OccupantType",
    "ChecklistStage",
    "ChecklistItem",
    # Journey
    "Journey",
    "JourneyCreate",
    "JourneyUpdate",
    # Booking
    "Booking",
    "BookingCreate",
    "BookingUpdate",
    # Packing
    "PackingList",
    "PackingListCategory",
    "PackingListItem",
    "PackingListUpdate",
]
