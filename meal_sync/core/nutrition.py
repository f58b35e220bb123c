"""Daily macro totals per profile and next-day prep reminders."""

from dataclasses import asdict, dataclass, field
from datetime import date, timedelta

from meal_sync.core.meal_plan import resolve_meals
from meal_sync.db.models import MEAL_SLOTS, PROFILES, Macros

# Daily targets per household profile.
DAILY_TARGETS = {
    "V": Macros(calories=2200, protein=75, carbs=300, fat=50, fiber=25),
    "M": Macros(calories=2600, protein=100, carbs=300, fat=60, fiber=34),
}


@dataclass
class DailySummary:
    profile: str
    totals: Macros = field(default_factory=Macros)
    targets: Macros = field(default_factory=Macros)

    def over_target(self) -> dict:
        """{macro_name: True} for every macro above its target."""
        targets = asdict(self.targets)
        return {k: v > targets[k] for k, v in asdict(self.totals).items()}


def daily_totals(meal_plan: dict, recipes, entry_date: str) -> dict:
    """Sum recipe macros per profile for one date. Returns {profile: DailySummary}."""
    sums = {p: dict.fromkeys(("calories", "protein", "carbs", "fat", "fiber"), 0) for p in PROFILES}
    for slot in MEAL_SLOTS:
        for meal, recipe in resolve_meals(meal_plan, recipes, entry_date, slot):
            if meal.profile not in sums:
                continue
            for k, v in asdict(recipe.macros).items():
                sums[meal.profile][k] += v or 0
    return {
        p: DailySummary(profile=p, totals=Macros(**sums[p]), targets=DAILY_TARGETS[p])
        for p in PROFILES
    }


def prep_for_next_day(meal_plan: dict, recipes, entry_date: str) -> list:
    """Prep tasks for every recipe planned the day after entry_date.

    Returns [(recipe_name, task, duration), ...]; each recipe contributes once
    however many times it is planned.
    """
    tomorrow = (date.fromisoformat(entry_date) + timedelta(days=1)).isoformat()
    tasks = []
    seen = set()
    for slot in MEAL_SLOTS:
        for _meal, recipe in resolve_meals(meal_plan, recipes, tomorrow, slot):
            if recipe.id in seen:
                continue
            seen.add(recipe.id)
            for pt in recipe.prep_tasks:
                tasks.append((recipe.name, pt.task, pt.duration))
    return tasks
