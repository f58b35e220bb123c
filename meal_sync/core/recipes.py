"""Recipe catalog: (de)serialization, whole-record save, delete and lookup.

The catalog is an ordered tuple of Recipe.  Every operation returns a new
tuple; saving a recipe whose id already exists replaces that record in place
(same position), otherwise the recipe is appended.
"""

import uuid
from dataclasses import asdict, replace
from typing import Optional

from meal_sync.db.models import (
    DIFFICULTIES, LOCAL, RECIPE_TYPES, Ingredient, Macros, PrepTask, Recipe,
)


def new_recipe_id() -> str:
    return uuid.uuid4().hex


def _number(value, default=0.0) -> float:
    try:
        n = float(value)
    except (TypeError, ValueError):
        return default
    return max(n, 0.0)


def ingredient_from_dict(data: dict) -> Ingredient:
    """Build an Ingredient, accepting the camelCase keys written by the web client."""
    store = data.get("store_name", data.get("storeName"))
    return Ingredient(
        item=str(data.get("item", "")),
        quantity=_number(data.get("quantity")),
        unit=str(data.get("unit") or ""),
        store_name=store or None,
    )


def recipe_from_dict(data: dict) -> Recipe:
    """Convert a persisted recipe dict into a Recipe."""
    macros = data.get("macros") or {}
    prep = data.get("prep_tasks", data.get("prepTasks")) or []
    difficulty = data.get("difficulty") or "Easy"
    kind = data.get("type") or "Regular"
    return Recipe(
        id=str(data["id"]),
        name=str(data.get("name", "")),
        difficulty=difficulty if difficulty in DIFFICULTIES else "Easy",
        type=kind if kind in RECIPE_TYPES else "Regular",
        ingredients=[ingredient_from_dict(i) for i in data.get("ingredients") or []],
        prep_tasks=[PrepTask(task=str(p.get("task", "")), duration=str(p.get("duration", ""))) for p in prep],
        macros=Macros(**{k: _number(macros.get(k)) for k in ("calories", "protein", "carbs", "fat", "fiber")}),
        provenance=data.get("provenance", LOCAL),
    )


def recipe_to_dict(recipe: Recipe) -> dict:
    return asdict(recipe)


def recipes_from_list(data) -> tuple:
    """Load the persisted recipes list, skipping entries without an id."""
    return tuple(recipe_from_dict(d) for d in (data or []) if isinstance(d, dict) and d.get("id"))


def recipes_to_list(recipes) -> list:
    return [recipe_to_dict(r) for r in recipes]


def get(recipes, recipe_id: str) -> Optional[Recipe]:
    """Return the recipe with recipe_id, or None if not found."""
    for r in recipes:
        if r.id == recipe_id:
            return r
    return None


def upsert(recipes, recipe: Recipe) -> tuple:
    """Insert or replace recipe by id. The saved copy is stamped local provenance."""
    saved = replace(recipe, provenance=LOCAL)
    out = []
    replaced = False
    for r in recipes:
        if r.id == saved.id:
            out.append(saved)
            replaced = True
        else:
            out.append(r)
    if not replaced:
        out.append(saved)
    return tuple(out)


def remove(recipes, recipe_id: str) -> tuple:
    return tuple(r for r in recipes if r.id != recipe_id)


def validate(recipe: Recipe) -> None:
    """Reject enumerations outside the known sets. Raises ValueError."""
    if recipe.difficulty not in DIFFICULTIES:
        raise ValueError(f"Unknown difficulty: {recipe.difficulty!r}")
    if recipe.type not in RECIPE_TYPES:
        raise ValueError(f"Unknown recipe type: {recipe.type!r}")
    for ing in recipe.ingredients:
        if ing.quantity < 0:
            raise ValueError(f"Negative quantity for {ing.item!r}")
