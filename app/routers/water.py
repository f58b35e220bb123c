from datetime import date

from fastapi import APIRouter, Depends

from app.dependencies import get_planner
from app.schemas import WaterAdjustment
from meal_sync.core.app_state import AppState

router = APIRouter(prefix="/water", tags=["water"])


@router.get("/{entry_date}")
def water_day(entry_date: date, planner: AppState = Depends(get_planner)):
    return {"date": entry_date.isoformat(), "amounts": planner.water(entry_date.isoformat())}


@router.post("/adjust")
async def water_adjust(body: WaterAdjustment, planner: AppState = Depends(get_planner)):
    day = body.date.isoformat()
    amount = await planner.adjust_water(day, body.profile, body.delta)
    return {"date": day, "profile": body.profile, "amount": amount}
