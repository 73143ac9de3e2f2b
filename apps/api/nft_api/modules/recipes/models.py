from __future__ import annotations

from typing import Optional
from sqlmodel import SQLModel, Field


# pre-seeded, read-only to the pipeline; unique (pool_id, slot_number)
class RecipeSlot(SQLModel, table=True):
    __tablename__ = "recipe_slots"

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: str
    slot_number: int
    stat_points: int
    cosmetic_points: int
    hero_tier: str
