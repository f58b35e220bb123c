from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends

from app.dependencies import get_planner
from app.schemas import MealAssignment
from meal_sync.core.app_state import AppState
from meal_sync.db.models import MEAL_SLOTS

router = APIRouter(prefix="/meal-plan", tags=["meal_plan"])


def _cell(planner: AppState, entry_date: str, slot: str) -> list:
    """Planned meals for a cell with recipe names; dangling ids are left out."""
    return [
        {"recipe_id": meal.recipe_id, "profile": meal.profile, "recipe_name": recipe.name, "type": recipe.type}
        for meal, recipe in planner.resolved_meals(entry_date, slot)
    ]


@router.get("/{entry_date}")
def meal_plan_day(entry_date: date, planner: AppState = Depends(get_planner)):
    day = entry_date.isoformat()
    return {"date": day, "slots": {slot: _cell(planner, day, slot) for slot in MEAL_SLOTS}}


@router.get("/{entry_date}/summary")
def meal_plan_summary(entry_date: date, planner: AppState = Depends(get_planner)):
    day = entry_date.isoformat()
    totals = planner.daily_totals(day)
    return {
        "date": day,
        "profiles": {
            p: {"totals": asdict(s.totals), "targets": asdict(s.targets), "over_target": s.over_target()}
            for p, s in totals.items()
        },
        "prep_for_tomorrow": [
            {"recipe_name": name, "task": task, "duration": duration}
            for name, task, duration in planner.prep_for_next_day(day)
        ],
    }


@router.post("/assign")
async def meal_assign(body: MealAssignment, planner: AppState = Depends(get_planner)):
    day = body.date.isoformat()
    await planner.assign_meal(day, body.slot, body.recipe_id, body.profile)
    return {"date": day, "slot": body.slot, "meals": _cell(planner, day, body.slot)}


@router.post("/unassign")
async def meal_unassign(body: MealAssignment, planner: AppState = Depends(get_planner)):
    day = body.date.isoformat()
    await planner.unassign_meal(day, body.slot, body.recipe_id, body.profile)
    return {"date": day, "slot": body.slot, "meals": _cell(planner, day, body.slot)}
