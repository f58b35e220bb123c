from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from app.dependencies import get_planner
from app.schemas import ToggleRequest
from meal_sync.core.app_state import AppState
from meal_sync.core.shopping_list import DEFAULT_WINDOW, format_shopping_list

router = APIRouter(prefix="/shopping", tags=["shopping"])


@router.get("")
def shopping_list(days: int = DEFAULT_WINDOW, planner: AppState = Depends(get_planner)):
    return planner.get_grocery_list(days)


@router.post("/toggle")
def shopping_toggle(body: ToggleRequest, planner: AppState = Depends(get_planner)):
    return {"key": body.key, "checked": planner.toggle_grocery_item(body.key)}


@router.post("/reset")
def shopping_reset(planner: AppState = Depends(get_planner)):
    planner.clear_checked()
    return {"checked": 0}


@router.get("/export")
def shopping_export(days: int = DEFAULT_WINDOW, planner: AppState = Depends(get_planner)):
    text = format_shopping_list(planner.get_grocery_list(days))
    return PlainTextResponse(text, headers={
        "Content-Disposition": "attachment; filename=shopping_list.txt",
    })
