"""Request bodies for the JSON API."""

import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from meal_sync.db.models import Ingredient, Macros, PrepTask, Recipe


class IngredientIn(BaseModel):
    item: str = Field(..., min_length=1)
    quantity: float = Field(0, ge=0)
    unit: str = ""
    store_name: Optional[str] = None


class PrepTaskIn(BaseModel):
    task: str
    duration: str = ""


class MacrosIn(BaseModel):
    calories: float = Field(0, ge=0)
    protein: float = Field(0, ge=0)
    carbs: float = Field(0, ge=0)
    fat: float = Field(0, ge=0)
    fiber: float = Field(0, ge=0)


class RecipeIn(BaseModel):
    """A whole recipe. Omit id to create; send an existing id to replace that recipe."""
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    difficulty: Literal["Easy", "Medium", "Hard"] = "Easy"
    type: Literal["Regular", "EatOut"] = "Regular"
    ingredients: List[IngredientIn] = Field(default_factory=list)
    prep_tasks: List[PrepTaskIn] = Field(default_factory=list)
    macros: MacrosIn = Field(default_factory=MacrosIn)

    def to_recipe(self) -> Recipe:
        return Recipe(
            id=self.id or "",
            name=self.name.strip(),
            difficulty=self.difficulty,
            type=self.type,
            ingredients=[Ingredient(**i.model_dump()) for i in self.ingredients],
            prep_tasks=[PrepTask(**p.model_dump()) for p in self.prep_tasks],
            macros=Macros(**self.macros.model_dump()),
        )


class MealAssignment(BaseModel):
    date: dt.date
    slot: str
    recipe_id: str
    profile: str


class WaterAdjustment(BaseModel):
    date: dt.date
    profile: str
    delta: int


class ToggleRequest(BaseModel):
    key: str


class RemoteConfigIn(BaseModel):
    endpoint: str
    credential: str


class LoginRequest(BaseModel):
    password: str
    user_id: Optional[str] = None
