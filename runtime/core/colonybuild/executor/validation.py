"""Per-task validation.

`validate_task` is a pure read of the world: it never submits and keeps no
state between calls, so the same world state always yields the same
decision. The executor owns the submission side effect.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from colonybuild.executor import capacity, dependencies, legality
from colonybuild.planning.plan import Task
from colonybuild.world.interfaces import WorldQuery


class SkipReason(str, Enum):
    WRONG_TERRITORY = "wrong_territory"
    DEPENDENCY_UNMET = "dependency_unmet"
    CAPACITY_REACHED = "capacity_reached"
    ILLEGAL_POSITION = "illegal_position"
    DUPLICATE = "duplicate"
    DEFERRED_LOW_TIER = "deferred_low_tier"
    ROAD_QUOTA = "road_quota"
    ROAD_CLEARED = "road_cleared"
    WORLD_BAD_TARGET = "world_bad_target"
    WORLD_FULL = "world_full"


@dataclass(frozen=True)
class Accepted:
    task: Task

    @property
    def accepted(self) -> bool:
        return True


@dataclass(frozen=True)
class Skipped:
    task: Task
    reason: SkipReason

    @property
    def accepted(self) -> bool:
        return False


TaskDecision = Union[Accepted, Skipped]


def validate_task(world: WorldQuery, territory: str, task: Task, *, tier: int, size: int = 50) -> TaskDecision:
    if task.territory != territory:
        return Skipped(task, SkipReason.WRONG_TERRITORY)

    built = world.structure_counts(territory)
    if not dependencies.satisfied(task, built):
        return Skipped(task, SkipReason.DEPENDENCY_UNMET)

    queued = world.pending_order_counts(territory)
    kind = task.structure_type
    if not capacity.within_capacity(tier, kind, built.get(kind, 0), queued.get(kind, 0)):
        return Skipped(task, SkipReason.CAPACITY_REACHED)

    if not legality.placeable(world, territory, task.pos, kind, size=size):
        return Skipped(task, SkipReason.ILLEGAL_POSITION)
    if legality.already_built_or_queued(world, territory, task.pos, kind):
        return Skipped(task, SkipReason.DUPLICATE)

    return Accepted(task)
