from __future__ import annotations

from typing import List

from pydantic import BaseModel


class RecipeAvailabilityOut(BaseModel):
    recipe: str
    total: int
    revealed: int
    remaining: int


class AvailableRecipesOut(BaseModel):
    items: List[RecipeAvailabilityOut]
