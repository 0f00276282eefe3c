"""Structure capacity per development tier.

`limit` is total over every (tier, structure type) pair. Types the table does
not list get 0 and are never built. Roads and ramparts are not restricted by
tier in the world, so they carry the `UNBOUNDED_PRACTICAL` ceiling instead.
"""

from __future__ import annotations

from typing import Callable

from colonybuild.world.interfaces import StructureType

MAX_TIER = 8

# Per-territory ceiling the world enforces on roads and ramparts at any tier.
UNBOUNDED_PRACTICAL = 2500


def _stepped(*steps: tuple[int, int]) -> Callable[[int], int]:
    """Build a lookup from (min_tier, ceiling) steps, lowest tier first."""

    def _limit(tier: int) -> int:
        value = 0
        for min_tier, ceiling in steps:
            if tier >= min_tier:
                value = ceiling
        return value

    return _limit


_EXTENSIONS = (0, 0, 5, 10, 20, 30, 40, 50, 60)

_TABLE: dict[StructureType, Callable[[int], int]] = {
    StructureType.SPAWN: _stepped((0, 1), (7, 2), (8, 3)),
    StructureType.EXTENSION: lambda tier: _EXTENSIONS[tier],
    StructureType.TOWER: _stepped((3, 1), (5, 2), (7, 3), (8, 6)),
    StructureType.LINK: _stepped((5, 2), (6, 3), (7, 4), (8, 6)),
    StructureType.LAB: _stepped((6, 3), (7, 6), (8, 10)),
    StructureType.STORAGE: _stepped((4, 1)),
    StructureType.TERMINAL: _stepped((6, 1)),
    StructureType.EXTRACTOR: _stepped((6, 1)),
    StructureType.FACTORY: _stepped((7, 1)),
    StructureType.POWER_SPAWN: _stepped((8, 1)),
    # Soft cap; the planner decides where containers go.
    StructureType.CONTAINER: lambda tier: 5,
    StructureType.ROAD: lambda tier: UNBOUNDED_PRACTICAL,
    StructureType.RAMPART: lambda tier: UNBOUNDED_PRACTICAL,
}


def normalize_tier(tier: int) -> int:
    return max(0, min(MAX_TIER, int(tier)))


def limit(tier: int, structure_type: StructureType) -> int:
    rule = _TABLE.get(structure_type)
    if rule is None:
        return 0
    return rule(normalize_tier(tier))


def within_capacity(tier: int, structure_type: StructureType, built: int, queued: int) -> bool:
    """True if one more order of this type keeps built + queued within the ceiling."""
    return built + queued < limit(tier, structure_type)
