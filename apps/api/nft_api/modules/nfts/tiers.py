from __future__ import annotations

from bisect import bisect_right
from typing import Sequence


def points_to_tier(points: int, thresholds: Sequence[int]) -> int:
    """
    Monotonic mapping: tier 1 below the first threshold, +1 per threshold reached.
    thresholds must be ascending.
    """
    return 1 + bisect_right(list(thresholds), int(points))


def calculate_stat_tier(stat_points: int, thresholds: Sequence[int]) -> int:
    return points_to_tier(stat_points, thresholds)


def calculate_cosmetic_tier(cosmetic_points: int, thresholds: Sequence[int]) -> int:
    return points_to_tier(cosmetic_points, thresholds)
