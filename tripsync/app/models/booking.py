"""Booking models - accommodation reservations optionally tied to a trip budget."""

from pydantic import (
    BaseModel,
    Field,
    HttpUrl,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from tripsync.app.models.common import UtcDatetime

_url_adapter = TypeAdapter(HttpUrl)


class BookingFields(BaseModel):
    """Fields shared by booking payloads and stored bookings."""

    site_name: str = Field(..., min_length=1)
    location_address: str | None = None
    contact_phone: str | None = None
    contact_website: str | None = None
    confirmation_number: str | None = None
    check_in_date: UtcDatetime
    check_out_date: UtcDatetime
    notes: str | None = None
    assigned_trip_id: str | None = None
    budgeted_cost: float | None = Field(None, ge=0)

    @field_validator("contact_website")
    @classmethod
    def validate_website(cls, v: str | None) -> str | None:
        """Accept an empty string or a valid URL."""
        if not v:
            return None
        try:
            _url_adapter.validate_python(v)
        except ValidationError as e:
            raise ValueError("contact_website must be a valid URL") from e
        return v

    @field_validator("assigned_trip_id")
    @classmethod
    def empty_trip_id_as_none(cls, v: str | None) -> str | None:
        """Forms send "" for an unassigned booking."""
        return v or None

    @model_validator(mode="after")
    def validate_check_out_after_check_in(self) -> "BookingFields":
        """Ensure check-out >= check-in."""
        if self.check_out_date < self.check_in_date:
            raise ValueError("check_out_date must be on or after check_in_date")
        return self


class BookingCreate(BookingFields):
    """Payload for creating a booking."""

    pass


class BookingUpdate(BookingFields):
    """Full replacement of an existing booking."""

    id: str = Field(..., min_length=1)


class Booking(BookingFields):
    """Stored booking document."""

    id: str
    timestamp: UtcDatetime
