"""Bidirectional Journey <-> Trip membership.

A trip's journey_id and the journey's trip_ids are two independent documents.
The functions here compute the array operations that keep them in step; the
orchestrator applies them inside the triggering transaction.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tripsync.app.db.documents import ArrayRemove, ArrayUnion
from tripsync.app.models.trip import Trip

TRIP_IDS_FIELD = "trip_ids"


class MembershipAction(str, Enum):
    """Array operation on a journey's trip_ids."""

    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class MembershipOp:
    """Add or remove a trip id on a journey."""

    action: MembershipAction
    journey_id: str
    trip_id: str

    def field_update(self) -> dict[str, Any]:
        """Store field update implementing this op (idempotent)."""
        if self.action == MembershipAction.ADD:
            return {TRIP_IDS_FIELD: ArrayUnion(self.trip_id)}
        return {TRIP_IDS_FIELD: ArrayRemove(self.trip_id)}


def link(old_journey_id: str | None, new_journey_id: str | None, trip_id: str) -> list[MembershipOp]:
    """Ops needed when a trip's journey_id moves from old to new.

    Returns an empty list when the assignment is unchanged.
    """
    if old_journey_id == new_journey_id:
        return []
    ops: list[MembershipOp] = []
    if old_journey_id:
        ops.append(MembershipOp(MembershipAction.REMOVE, old_journey_id, trip_id))
    if new_journey_id:
        ops.append(MembershipOp(MembershipAction.ADD, new_journey_id, trip_id))
    return ops


def unlink(journey_id: str | None, trip_id: str) -> list[MembershipOp]:
    """Ops needed when a trip is deleted."""
    return link(journey_id, None, trip_id)


def route_changed(old: Trip | None, new: Trip) -> bool:
    """Whether the trip's contribution to a master route changed."""
    if old is None:
        return new.route_details.polyline is not None
    return (
        old.route_details.polyline != new.route_details.polyline
        or old.planned_start_date != new.planned_start_date
    )


@dataclass
class MemberDiff:
    """Trips added to and removed from a journey's member list."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed


def diff_members(old_ids: Iterable[str], new_ids: Iterable[str]) -> MemberDiff:
    """Compare two member lists, preserving order of appearance."""
    old_list = list(dict.fromkeys(old_ids))
    new_list = list(dict.fromkeys(new_ids))
    old_set, new_set = set(old_list), set(new_list)
    return MemberDiff(
        added=[trip_id for trip_id in new_list if trip_id not in old_set],
        removed=[trip_id for trip_id in old_list if trip_id not in new_set],
    )


@dataclass
class RepairPlan:
    """Corrected member list for a journey."""

    trip_ids: list[str]
    dropped: list[str] = field(default_factory=list)
    appended: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.dropped or self.appended)


def plan_repair(journey_id: str, trip_ids: list[str], trips: Iterable[Trip]) -> RepairPlan:
    """Rebuild a journey's member list from trip back-references.

    Trip.journey_id is treated as authoritative: ids whose trip is missing or
    points at another journey are dropped, and trips pointing here that are
    absent from the list are appended in the order given.

    Args:
        journey_id: Journey being repaired
        trip_ids: Current member list
        trips: Every trip of the tenant
    """
    pointing_here = [t.id for t in trips if t.journey_id == journey_id]
    pointing_set = set(pointing_here)

    kept: list[str] = []
    dropped: list[str] = []
    for trip_id in dict.fromkeys(trip_ids):
        if trip_id in pointing_set:
            kept.append(trip_id)
        else:
            dropped.append(trip_id)

    kept_set = set(kept)
    appended = [trip_id for trip_id in pointing_here if trip_id not in kept_set]
    return RepairPlan(trip_ids=kept + appended, dropped=dropped, appended=appended)
