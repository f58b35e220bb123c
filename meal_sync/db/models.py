"""Dataclass models for the three persisted collections and the derived grocery list.

These are plain data containers with no business logic.  Serialization to
the persisted JSON layout lives in the core modules that own each collection.
"""

from dataclasses import dataclass, field
from typing import Optional

# Provenance: where a record's last known state came from.
LOCAL = "local"  # authored on this device, not yet confirmed by the remote
CLOUD = "cloud"  # confirmed by the last reconciliation pass

DIFFICULTIES = ["Easy", "Medium", "Hard"]
RECIPE_TYPES = ["Regular", "EatOut"]
MEAL_SLOTS = ["Pre-Breakfast", "Breakfast", "Lunch", "Snacks", "Dinner", "Post-Dinner"]
PROFILES = ["V", "M"]
GENERAL_STORE = "General"


@dataclass
class Ingredient:
    """A single ingredient line within a recipe (e.g. '1 cup rice @ Costco')."""
    item: str
    quantity: float = 0.0
    unit: str = ""
    store_name: Optional[str] = None  # None or blank means the General store

    @property
    def store(self) -> str:
        return (self.store_name or "").strip() or GENERAL_STORE


@dataclass
class PrepTask:
    """Advance preparation for a recipe, e.g. ('Soak chickpeas', '8 hours')."""
    task: str
    duration: str = ""


@dataclass
class Macros:
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    fiber: float = 0


@dataclass
class Recipe:
    """A recipe with its embedded ingredient and prep-task lists.

    Saved by whole-record replacement; id is an opaque string unique within
    the collection.  type is 'Regular' or 'EatOut'.
    """
    id: str
    name: str
    difficulty: str = "Easy"
    type: str = "Regular"
    ingredients: list = field(default_factory=list)  # list[Ingredient]
    prep_tasks: list = field(default_factory=list)  # list[PrepTask]
    macros: Macros = field(default_factory=Macros)
    provenance: str = LOCAL


@dataclass(frozen=True)
class PlannedMeal:
    """One recipe assigned to one household profile within a date+slot cell.

    recipe_id may dangle if the recipe was deleted; readers skip those.
    """
    recipe_id: str
    profile: str


@dataclass(frozen=True)
class PlanRow:
    """A flattened meal-plan cell, addressable by (date, slot)."""
    date: str  # ISO YYYY-MM-DD
    slot: str
    meals: tuple = ()  # tuple[PlannedMeal, ...]
    provenance: str = LOCAL


@dataclass(frozen=True)
class WaterRow:
    """A flattened water-intake cell, addressable by (date, profile)."""
    date: str
    profile: str
    amount: int = 0
    provenance: str = LOCAL


@dataclass(frozen=True)
class Snapshot:
    """View of all three collections with frozen top-level fields.

    Only the fields themselves are frozen: the nested dicts and lists are shared
    with readers and must be treated as read-only.  Every mutation builds new
    containers and swaps in a new Snapshot instead of editing one in place.

    meal_plan is {date: {slot: [PlannedMeal]}} and water is {date: {profile: int}}.
    Plan and water provenance are kept beside the collections, keyed like
    their rows, because the persisted layout has no room for them.
    """
    recipes: tuple = ()  # tuple[Recipe, ...]
    meal_plan: dict = field(default_factory=dict)
    water: dict = field(default_factory=dict)
    plan_provenance: dict = field(default_factory=dict)  # {(date, slot): LOCAL | CLOUD}
    water_provenance: dict = field(default_factory=dict)  # {(date, profile): LOCAL | CLOUD}


@dataclass
class GroceryItem:
    """One aggregated shopping line: the summed quantity of a (item, unit, store) key."""
    key: str
    item: str
    quantity: float
    unit: str
    store_name: str
    checked: bool = False


@dataclass
class StoreGroup:
    store_name: str
    items: list = field(default_factory=list)  # list[GroceryItem]


@dataclass
class GroceryList:
    groups: list = field(default_factory=list)  # list[StoreGroup]
    total_items: int = 0
