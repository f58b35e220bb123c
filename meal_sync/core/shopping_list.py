"""Shopping list generation: aggregate recipe ingredients over a day window, group by store.

The generate() function is the main entry point.  It walks every planned meal
from today through today + N - 1, sums ingredient quantities that share the
same case-insensitive (item, unit, store) key, and returns the result grouped
by store.  It is a pure function of its arguments: no caching, no writes.

Checked-off state lives in a CheckedItems set owned by the session.  It is
keyed by the same composite key and is never pruned when the plan or the
window changes, so keys for items that dropped off the list simply linger.
"""

import math
from datetime import date, timedelta
from typing import Optional

from meal_sync.db.models import MEAL_SLOTS, GroceryItem, GroceryList, StoreGroup

DEFAULT_WINDOW = 7
WINDOW_CHOICES = (3, 7, 14)
KEY_SEPARATOR = "|"


def window_dates(today: date, days: int) -> list:
    """ISO dates [today, today+1, ..., today+days-1]."""
    return [(today + timedelta(days=i)).isoformat() for i in range(days)]


def composite_key(ingredient) -> str:
    """Case-normalized 'item|unit|store' key used to merge ingredient lines."""
    return KEY_SEPARATOR.join((
        ingredient.item.strip().lower(),
        ingredient.unit.strip().lower(),
        ingredient.store.lower(),
    ))


class CheckedItems:
    """Session-scoped set of checked-off composite keys."""

    def __init__(self, keys=()):
        self._keys = set(keys)

    def __contains__(self, key) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def toggle(self, key: str) -> bool:
        """Flip a key's checked state. Returns the new state."""
        if key in self._keys:
            self._keys.remove(key)
            return False
        self._keys.add(key)
        return True

    def clear(self) -> None:
        self._keys.clear()


def generate(recipes, meal_plan: dict, window_days: int = DEFAULT_WINDOW,
             today: Optional[date] = None, checked: Optional[CheckedItems] = None) -> GroceryList:
    """
    Generate the grocery list for the window_days calendar days starting today.
    Returns a GroceryList whose groups are sorted by store name and whose items
    are sorted by item name, both case-insensitively.
    """
    if window_days < 1:
        raise ValueError(f"window_days must be at least 1, got {window_days}")
    if today is None:
        today = date.today()
    checked = checked if checked is not None else CheckedItems()
    by_id = {r.id: r for r in recipes}

    # key -> GroceryItem, display casing taken from the first contributor
    aggregate: dict[str, GroceryItem] = {}
    parts: dict[str, list] = {}

    for entry_date in window_dates(today, window_days):
        day = meal_plan.get(entry_date)
        if not day:
            continue
        for slot in MEAL_SLOTS:
            for meal in day.get(slot, []):
                recipe = by_id.get(meal.recipe_id)
                if recipe is None:
                    continue
                for ing in recipe.ingredients:
                    key = composite_key(ing)
                    parts.setdefault(key, []).append(ing.quantity)
                    if key not in aggregate:
                        aggregate[key] = GroceryItem(
                            key=key,
                            item=ing.item,
                            quantity=0.0,
                            unit=ing.unit,
                            store_name=ing.store,
                        )

    # Group by lower-cased store; first-seen casing names the group
    groups: dict[str, StoreGroup] = {}
    for key, entry in aggregate.items():
        # exactly rounded sum, independent of the order meals contributed
        entry.quantity = math.fsum(parts[key])
        entry.checked = key in checked
        store_key = entry.store_name.lower()
        if store_key not in groups:
            groups[store_key] = StoreGroup(store_name=entry.store_name)
        groups[store_key].items.append(entry)

    ordered = []
    for store_key in sorted(groups):
        group = groups[store_key]
        group.items.sort(key=lambda x: (x.item.lower(), x.unit.lower()))
        ordered.append(group)

    return GroceryList(groups=ordered, total_items=len(aggregate))


def format_shopping_list(grocery_list: GroceryList) -> str:
    """Format the grocery list as plain text for export/clipboard."""
    if not grocery_list.groups:
        return "No items needed."

    lines = []
    for group in grocery_list.groups:
        done = sum(1 for i in group.items if i.checked)
        lines.append(f"=== {group.store_name} ({done}/{len(group.items)}) ===")
        for entry in group.items:
            mark = "x" if entry.checked else " "
            qty_str = f"{entry.quantity:g} {entry.unit}".strip()
            lines.append(f"  [{mark}] {entry.item} — {qty_str}")
        lines.append("")

    lines.append(f"Total items: {grocery_list.total_items}")
    return "\n".join(lines).strip()
