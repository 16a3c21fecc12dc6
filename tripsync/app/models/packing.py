"""Packing list models - one list per trip, deleted with the trip."""

from pydantic import BaseModel, Field

from tripsync.app.models.common import UtcDatetime


class PackingListItem(BaseModel):
    """Single item to pack."""

    id: str
    name: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=0)
    packed: bool = False
    notes: str | None = None


class PackingListCategory(BaseModel):
    """Group of packing items."""

    id: str
    name: str = Field(..., min_length=1)
    items: list[PackingListItem] = Field(default_factory=list)


class PackingListUpdate(BaseModel):
    """Replacement list for a trip."""

    categories: list[PackingListCategory]


class PackingList(BaseModel):
    """Stored packing list document, keyed by trip id."""

    trip_id: str
    categories: list[PackingListCategory] = Field(default_factory=list)
    updated_at: UtcDatetime | None = None
