from __future__ import annotations

from fastapi import APIRouter, Depends

from nft_api.core.config import ServiceConfig
from nft_api.modules.nfts.deps import get_catalog, get_config, get_store
from nft_api.modules.nfts.store import NftStore

from .schemas import AvailableRecipesOut, RecipeAvailabilityOut
from .service import RecipeCatalog

router = APIRouter(prefix="/nft", tags=["recipes"])


@router.get("/recipes/available", response_model=AvailableRecipesOut)
def available_recipes(
    config: ServiceConfig = Depends(get_config),
    catalog: RecipeCatalog = Depends(get_catalog),
    store: NftStore = Depends(get_store),
) -> AvailableRecipesOut:
    totals = catalog.count_slots(config.recipe_pools)
    revealed = store.count_revealed(config.recipe_pools)
    items = [
        RecipeAvailabilityOut(
            recipe=pool,
            total=totals.get(pool, 0),
            revealed=revealed.get(pool, 0),
            remaining=max(totals.get(pool, 0) - revealed.get(pool, 0), 0),
        )
        for pool in config.recipe_pools
    ]
    return AvailableRecipesOut(items=items)
