"""Journey models - named grouping of trips with a derived aggregate route."""

from pydantic import BaseModel, Field, field_validator

from tripsync.app.models.common import UtcDatetime


def _dedupe(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(ids))


class JourneyCreate(BaseModel):
    """Payload for creating a journey."""

    name: str = Field(..., min_length=1)
    description: str | None = None


class JourneyUpdate(BaseModel):
    """Partial journey update.

    When trip_ids is provided the membership is re-linked on both sides.
    """

    id: str = Field(..., min_length=1)
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    trip_ids: list[str] | None = None

    @field_validator("trip_ids")
    @classmethod
    def dedupe_trip_ids(cls, v: list[str] | None) -> list[str] | None:
        """Drop repeated ids, keeping first occurrence."""
        return _dedupe(v) if v is not None else None


class Journey(BaseModel):
    """Stored journey document.

    master_polyline is derived from member trips and never edited directly.
    """

    id: str
    name: str = Field(..., min_length=1)
    description: str | None = None
    trip_ids: list[str] = Field(default_factory=list)
    master_polyline: str | None = None
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @field_validator("trip_ids")
    @classmethod
    def dedupe_trip_ids(cls, v: list[str]) -> list[str]:
        """Drop repeated ids, keeping first occurrence."""
        return _dedupe(v)
