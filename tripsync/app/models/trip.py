"""Trip models - a single planned or logged leg with route, dates and budget."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, Field, field_validator, model_validator

from tripsync.app.models.common import LatLng, TextValue, UtcDatetime


class BudgetCategory(BaseModel):
    """Budget line-item; unique by name (case-insensitive) within a trip."""

    id: str
    name: str = Field(..., min_length=1)
    budgeted_amount: float = Field(..., ge=0)


class Expense(BaseModel):
    """Spend entry recorded against a budget category."""

    id: str
    category_id: str
    description: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    date: UtcDatetime
    timestamp: UtcDatetime


class OccupantType(str, Enum):
    """Occupant type."""

    adult = "Adult"
    child = "Child"
    infant = "Infant"
    pet = "Pet"


class Occupant(BaseModel):
    """Person or pet travelling on the trip."""

    id: str
    name: str = Field(..., min_length=1)
    type: OccupantType
    age: int | None = Field(None, ge=0)
    weight: float = Field(..., ge=0)
    notes: str | None = None


class Waypoint(BaseModel):
    """Intermediate stop."""

    address: str
    location: LatLng | None = None


class RouteDetails(BaseModel):
    """Route supplied by the routing provider; geometry is an encoded polyline."""

    distance: TextValue
    duration: TextValue
    start_location: LatLng | None = None
    end_location: LatLng | None = None
    polyline: str | None = None
    warnings: list[str] = Field(default_factory=list)
    toll_info: TextValue | None = None

    @field_validator("warnings", mode="before")
    @classmethod
    def none_warnings_as_empty(cls, v: list[str] | None) -> list[str]:
        """Providers send null when there are no warnings."""
        return v or []


class FuelEstimate(BaseModel):
    """Fuel needed and its estimated cost for the route."""

    fuel_needed: str
    estimated_cost: float = Field(..., ge=0)


class ChecklistItem(BaseModel):
    """Single checklist entry."""

    id: str
    text: str
    completed: bool = False


class ChecklistStage(BaseModel):
    """Named group of checklist items (e.g. "Pre-departure")."""

    title: str
    items: list[ChecklistItem] = Field(default_factory=list)


class TripFields(BaseModel):
    """Fields a user plans; shared by create payloads and stored trips."""

    name: str = Field(..., min_length=1)
    start_location_display: str = Field(..., min_length=1)
    end_location_display: str = Field(..., min_length=1)
    waypoints: list[Waypoint] = Field(default_factory=list)
    fuel_efficiency: Annotated[float, Field(gt=0)] | None = None
    fuel_price: Annotated[float, Field(gt=0)] | None = None
    route_details: RouteDetails
    fuel_estimate: FuelEstimate | None = None
    planned_start_date: UtcDatetime | None = None
    planned_end_date: UtcDatetime | None = None
    notes: str | None = None
    is_completed: bool = False
    is_vehicle_only: bool = False
    checklists: list[ChecklistStage] = Field(default_factory=list)
    budget: list[BudgetCategory] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    occupants: list[Occupant] = Field(default_factory=list)
    journey_id: str | None = None

    @model_validator(mode="after")
    def validate_planned_dates(self) -> "TripFields":
        """Ensure planned end >= planned start."""
        if (
            self.planned_start_date is not None
            and self.planned_end_date is not None
            and self.planned_end_date < self.planned_start_date
        ):
            raise ValueError("planned_end_date must be >= planned_start_date")
        return self

    @model_validator(mode="after")
    def validate_unique_category_names(self) -> "TripFields":
        """Ensure budget category names are unique, ignoring case."""
        seen: set[str] = set()
        for category in self.budget:
            key = category.name.casefold()
            if key in seen:
                raise ValueError(f"Duplicate budget category: {category.name}")
            seen.add(key)
        return self


class TripCreate(TripFields):
    """Payload for creating a trip."""

    pass


class Trip(TripFields):
    """Stored trip document."""

    id: str
    timestamp: UtcDatetime
    updated_at: UtcDatetime | None = None


class TripUpdate(BaseModel):
    """Partial trip update; only fields present in the payload are applied.

    An explicit journey_id of null detaches the trip from its journey.
    """

    id: str = Field(..., min_length=1)
    name: str | None = Field(None, min_length=1)
    start_location_display: str | None = Field(None, min_length=1)
    end_location_display: str | None = Field(None, min_length=1)
    waypoints: list[Waypoint] | None = None
    fuel_efficiency: Annotated[float, Field(gt=0)] | None = None
    fuel_price: Annotated[float, Field(gt=0)] | None = None
    route_details: RouteDetails | None = None
    fuel_estimate: FuelEstimate | None = None
    planned_start_date: UtcDatetime | None = None
    planned_end_date: UtcDatetime | None = None
    notes: str | None = None
    is_completed: bool | None = None
    is_vehicle_only: bool | None = None
    checklists: list[ChecklistStage] | None = None
    budget: list[BudgetCategory] | None = None
    expenses: list[Expense] | None = None
    occupants: list[Occupant] | None = None
    journey_id: str | None = None

    def changes(self) -> dict[str, object]:
        """Fields explicitly provided by the caller, excluding the id."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name != "id"
        }


class CopyTripRequest(BaseModel):
    """Request to duplicate a trip into a journey."""

    source_trip_id: str = Field(..., min_length=1)
    destination_journey_id: str = Field(..., min_length=1)
