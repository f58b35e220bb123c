"""Meal plan index: assign recipes to date + time-slot cells, per household profile.

The plan is a sparse mapping {date_iso: {slot: [PlannedMeal, ...]}}.  Only
cells that were ever touched have entries.  Every function here returns a new
plan and never mutates its argument.  Recipe ids are not checked on write;
readers resolve each id and silently skip the ones that no longer exist.
"""

import logging
from typing import Optional

from meal_sync.db.models import LOCAL, MEAL_SLOTS, PROFILES, PlannedMeal, PlanRow

logger = logging.getLogger(__name__)


def _check_cell(slot: str, profile: Optional[str] = None) -> None:
    if slot not in MEAL_SLOTS:
        raise ValueError(f"Unknown meal slot: {slot!r}")
    if profile is not None and profile not in PROFILES:
        raise ValueError(f"Unknown profile: {profile!r}")


def _with_cell(plan: dict, entry_date: str, slot: str, meals: list) -> dict:
    """Copy-on-write: return a new plan with one cell replaced."""
    new_plan = dict(plan)
    day = dict(new_plan.get(entry_date, {}))
    day[slot] = list(meals)
    new_plan[entry_date] = day
    return new_plan


def meals(plan: dict, entry_date: str, slot: str) -> list:
    """Returns the planned meals for a cell, or an empty list."""
    return list(plan.get(entry_date, {}).get(slot, []))


def assign(plan: dict, entry_date: str, slot: str, recipe_id: str, profile: str) -> dict:
    """Append a PlannedMeal unless the (recipe_id, profile) pair is already in the cell."""
    _check_cell(slot, profile)
    current = meals(plan, entry_date, slot)
    meal = PlannedMeal(recipe_id=recipe_id, profile=profile)
    if meal in current:
        return plan
    return _with_cell(plan, entry_date, slot, current + [meal])


def unassign(plan: dict, entry_date: str, slot: str, recipe_id: str, profile: str) -> dict:
    """Remove the exact (recipe_id, profile) entry from the cell, if present."""
    _check_cell(slot, profile)
    current = meals(plan, entry_date, slot)
    meal = PlannedMeal(recipe_id=recipe_id, profile=profile)
    if meal not in current:
        return plan
    return _with_cell(plan, entry_date, slot, [m for m in current if m != meal])


def cascade_delete_recipe(plan: dict, recipe_id: str) -> tuple:
    """Remove every PlannedMeal referencing recipe_id.

    Returns (new_plan, touched) where touched lists the (date, slot) cells
    that changed, in plan order, so callers can mirror each one.
    """
    new_plan = plan
    touched = []
    for entry_date, day in plan.items():
        for slot, cell in day.items():
            kept = [m for m in cell if m.recipe_id != recipe_id]
            if len(kept) != len(cell):
                new_plan = _with_cell(new_plan, entry_date, slot, kept)
                touched.append((entry_date, slot))
    return new_plan, touched


def resolve_meals(plan: dict, recipes, entry_date: str, slot: str) -> list:
    """Returns [(PlannedMeal, Recipe), ...] for a cell, skipping dangling recipe ids."""
    by_id = {r.id: r for r in recipes}
    resolved = []
    for meal in meals(plan, entry_date, slot):
        recipe = by_id.get(meal.recipe_id)
        if recipe is None:
            logger.debug("Skipping dangling recipe %s on %s/%s", meal.recipe_id, entry_date, slot)
            continue
        resolved.append((meal, recipe))
    return resolved


def planned_meal_from_dict(data: dict) -> PlannedMeal:
    return PlannedMeal(
        recipe_id=str(data.get("recipe_id", data.get("recipeId", ""))),
        profile=str(data.get("profile", "")),
    )


def plan_from_dict(data) -> dict:
    """Load the persisted {date: {slot: [{recipe_id, profile}]}} layout."""
    plan = {}
    for entry_date, day in (data or {}).items():
        if not isinstance(day, dict):
            continue
        plan[entry_date] = {
            slot: [planned_meal_from_dict(m) for m in cell or []]
            for slot, cell in day.items()
        }
    return plan


def plan_to_dict(plan: dict) -> dict:
    return {
        entry_date: {
            slot: [{"recipe_id": m.recipe_id, "profile": m.profile} for m in cell]
            for slot, cell in day.items()
        }
        for entry_date, day in plan.items()
    }


def to_rows(plan: dict, provenance: dict = None) -> list:
    """Flatten the plan into PlanRow records keyed by (date, slot)."""
    provenance = provenance or {}
    return [
        PlanRow(date=entry_date, slot=slot, meals=tuple(cell),
                provenance=provenance.get((entry_date, slot), LOCAL))
        for entry_date, day in plan.items()
        for slot, cell in day.items()
    ]


def from_rows(rows) -> tuple:
    """Rebuild (plan, provenance) from PlanRow records."""
    plan = {}
    provenance = {}
    for row in rows:
        plan.setdefault(row.date, {})[row.slot] = list(row.meals)
        provenance[(row.date, row.slot)] = row.provenance
    return plan, provenance
