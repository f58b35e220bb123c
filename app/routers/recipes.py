from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_planner
from app.schemas import RecipeIn
from meal_sync.core.app_state import AppState

router = APIRouter(prefix="/recipes", tags=["recipes"])


@router.get("")
def list_recipes(planner: AppState = Depends(get_planner)):
    return [asdict(r) for r in planner.recipes]


@router.get("/{recipe_id}")
def recipe_detail(recipe_id: str, planner: AppState = Depends(get_planner)):
    recipe = planner.get_recipe(recipe_id)
    if recipe is None:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return asdict(recipe)


@router.post("")
async def recipe_save(body: RecipeIn, planner: AppState = Depends(get_planner)):
    saved = await planner.save_recipe(body.to_recipe())
    return asdict(saved)


@router.delete("/{recipe_id}")
async def recipe_delete(recipe_id: str, planner: AppState = Depends(get_planner)):
    if not await planner.delete_recipe(recipe_id):
        raise HTTPException(status_code=404, detail="Recipe not found")
    return {"deleted": recipe_id}
