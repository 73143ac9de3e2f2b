from __future__ import annotations

import random
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from nft_api.core.errors import PoolExhausted, UnknownRecipePool
from nft_api.modules.recipes.models import RecipeSlot

from .tiers import calculate_cosmetic_tier, calculate_stat_tier


@dataclass(frozen=True)
class Allocation:
    slot_number: int
    stat_points: int
    cosmetic_points: int
    stat_tier: int
    cosmetic_tier: int
    hero_tier: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class CatalogStore(Protocol):
    def list_slots(self, pool_id: str) -> List[RecipeSlot]:
        ...


class RevealedSlotSource(Protocol):
    def list_revealed_slots(self, pool_id: str) -> List[int]:
        ...


class Allocator:
    """
    Picks one unused slot of a recipe pool uniformly at random.

    The read-filter-pick sequence holds no lock: two callers can pick the same
    slot. The loser finds out at commit time (AllocationCollision) and the
    orchestrator re-runs the reveal from here with a fresh read.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        assets: RevealedSlotSource,
        *,
        pools: Optional[Sequence[str]] = None,
        stat_tier_thresholds: Sequence[int] = (20, 40, 60, 80),
        cosmetic_tier_thresholds: Sequence[int] = (20, 40, 60, 80),
        rng: Optional[random.Random] = None,
    ) -> None:
        self.catalog = catalog
        self.assets = assets
        self.pools = list(pools) if pools is not None else None
        self.stat_tier_thresholds = list(stat_tier_thresholds)
        self.cosmetic_tier_thresholds = list(cosmetic_tier_thresholds)
        self.rng = rng or random.SystemRandom()

    def remaining_slots(self, pool_id: str) -> List[RecipeSlot]:
        if self.pools is not None and pool_id not in self.pools:
            raise UnknownRecipePool(pool_id)
        slots = self.catalog.list_slots(pool_id)
        if not slots and self.pools is None:
            raise UnknownRecipePool(pool_id)
        consumed = set(self.assets.list_revealed_slots(pool_id))
        return [s for s in slots if s.slot_number not in consumed]

    def allocate(self, pool_id: str) -> Allocation:
        remaining = self.remaining_slots(pool_id)
        if not remaining:
            raise PoolExhausted(pool_id)

        slot = remaining[self.rng.randrange(len(remaining))]
        return Allocation(
            slot_number=int(slot.slot_number),
            stat_points=int(slot.stat_points),
            cosmetic_points=int(slot.cosmetic_points),
            stat_tier=calculate_stat_tier(slot.stat_points, self.stat_tier_thresholds),
            cosmetic_tier=calculate_cosmetic_tier(slot.cosmetic_points, self.cosmetic_tier_thresholds),
            hero_tier=str(slot.hero_tier),
        )
