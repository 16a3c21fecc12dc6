"""Budget ledger reconciliation.

Bookings carry a cost that is mirrored into the assigned trip's
"Accommodation" budget category. Every function here is pure: callers read the
trip, compute a new category list and write it back inside a transaction.
"""

import logging
from dataclasses import dataclass

from pydantic import BaseModel

from tripsync.app.models.trip import BudgetCategory, Trip

logger = logging.getLogger(__name__)

ACCOMMODATION_CATEGORY_NAME = "Accommodation"
FUEL_CATEGORY_NAME = "Fuel"
TOLLS_CATEGORY_NAME = "Tolls"

_SYNTHETIC_IDS = {
    ACCOMMODATION_CATEGORY_NAME.casefold(): "accommodation_budget_category",
    FUEL_CATEGORY_NAME.casefold(): "fuel_budget_category",
    TOLLS_CATEGORY_NAME.casefold(): "tolls_budget_category",
}


@dataclass(frozen=True)
class Assignment:
    """Cost attributed to a trip by a booking."""

    trip_id: str
    cost: float


@dataclass(frozen=True)
class CategoryDelta:
    """Signed amount to apply to a named category of a trip."""

    trip_id: str
    category_name: str
    amount: float


def _cents(amount: float) -> float:
    return round(amount + 0.0, 2)


def synthetic_category_id(name: str) -> str:
    """Stable id for a category created by reconciliation."""
    key = name.casefold()
    return _SYNTHETIC_IDS.get(key, f"{key.replace(' ', '_')}_budget_category")


def find_category(categories: list[BudgetCategory], name: str) -> BudgetCategory | None:
    """Case-insensitive lookup by name."""
    key = name.casefold()
    for category in categories:
        if category.name.casefold() == key:
            return category
    return None


def reconcile(old: Assignment | None, new: Assignment | None) -> list[CategoryDelta]:
    """Deltas needed to move a booking cost from old to new.

    The old side is always subtracted before the new side is added, including
    when both point at the same trip, so the net effect is new - old.

    Args:
        old: Assignment before the mutation (None for create)
        new: Assignment after the mutation (None for delete)

    Returns:
        Ordered deltas on the accommodation category
    """
    deltas: list[CategoryDelta] = []
    if old is not None and old.cost > 0:
        deltas.append(CategoryDelta(old.trip_id, ACCOMMODATION_CATEGORY_NAME, -old.cost))
    if new is not None and new.cost > 0:
        deltas.append(CategoryDelta(new.trip_id, ACCOMMODATION_CATEGORY_NAME, new.cost))
    return deltas


def assignment_of(trip_id: str | None, cost: float | None) -> Assignment | None:
    """Assignment for a booking, or None when it does not touch any budget."""
    if not trip_id or not cost:
        return None
    return Assignment(trip_id=trip_id, cost=cost)


def apply_category_delta(
    categories: list[BudgetCategory], delta: CategoryDelta
) -> list[BudgetCategory]:
    """Apply a delta to a category list, returning a new list.

    A missing category is created for a positive delta. The result is clamped
    at zero and the category is dropped once it reaches zero.
    """
    existing = find_category(categories, delta.category_name)

    if existing is None:
        amount = _cents(delta.amount)
        if amount <= 0:
            logger.debug(
                f"[ledger] No '{delta.category_name}' category on trip {delta.trip_id}, "
                f"nothing to apply for {delta.amount}"
            )
            return list(categories)
        created = BudgetCategory(
            id=synthetic_category_id(delta.category_name),
            name=delta.category_name,
            budgeted_amount=amount,
        )
        return [*categories, created]

    amount = _cents(existing.budgeted_amount + delta.amount)
    if amount <= 0:
        return [c for c in categories if c is not existing]
    return [
        c.model_copy(update={"budgeted_amount": amount}) if c is existing else c
        for c in categories
    ]


def set_category_amount(
    categories: list[BudgetCategory], name: str, amount: float
) -> list[BudgetCategory]:
    """Set a category to an absolute amount (remove when <= 0)."""
    existing = find_category(categories, name)
    amount = _cents(amount)

    if amount <= 0:
        if existing is None:
            return list(categories)
        return [c for c in categories if c is not existing]

    if existing is None:
        return [
            *categories,
            BudgetCategory(id=synthetic_category_id(name), name=name, budgeted_amount=amount),
        ]
    return [
        c.model_copy(update={"budgeted_amount": amount}) if c is existing else c
        for c in categories
    ]


def sync_estimate_categories(
    categories: list[BudgetCategory],
    fuel_cost: float | None,
    toll_cost: float | None,
) -> list[BudgetCategory]:
    """Mirror route estimates into the Fuel and Tolls categories.

    A None cost leaves the corresponding category untouched.
    """
    result = list(categories)
    if fuel_cost is not None:
        result = set_category_amount(result, FUEL_CATEGORY_NAME, fuel_cost)
    if toll_cost is not None:
        result = set_category_amount(result, TOLLS_CATEGORY_NAME, toll_cost)
    return result


class CategorySummary(BaseModel):
    """Budgeted vs spent for one category."""

    id: str
    name: str
    budgeted: float
    spent: float
    remaining: float


class BudgetSummary(BaseModel):
    """Budget overview for a trip."""

    trip_id: str
    categories: list[CategorySummary]
    total_budgeted: float
    total_spent: float
    unassigned_spent: float


def summarize_budget(trip: Trip) -> BudgetSummary:
    """Summarize a trip's budget against its expenses.

    Expenses whose category no longer exists (for example after reconciliation
    removed it) are reported as unassigned rather than dropped.
    """
    spent_by_category: dict[str, float] = {}
    unassigned = 0.0
    known_ids = {c.id for c in trip.budget}
    for expense in trip.expenses:
        if expense.category_id in known_ids:
            spent_by_category[expense.category_id] = (
                spent_by_category.get(expense.category_id, 0.0) + expense.amount
            )
        else:
            unassigned += expense.amount

    summaries = []
    for category in trip.budget:
        spent = _cents(spent_by_category.get(category.id, 0.0))
        summaries.append(
            CategorySummary(
                id=category.id,
                name=category.name,
                budgeted=_cents(category.budgeted_amount),
                spent=spent,
                remaining=_cents(category.budgeted_amount - spent),
            )
        )

    return BudgetSummary(
        trip_id=trip.id,
        categories=summaries,
        total_budgeted=_cents(sum(c.budgeted_amount for c in trip.budget)),
        total_spent=_cents(sum(e.amount for e in trip.expenses)),
        unassigned_spent=_cents(unassigned),
    )
