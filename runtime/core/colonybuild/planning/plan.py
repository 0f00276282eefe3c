"""Construction plan model.

A Plan is produced wholly by the external planner and is read-only while a
scheduling pass runs. Tasks are consumed tier by tier (critical, important,
normal); within a tier the planner's order is kept.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from colonybuild.errors import PolicyViolationError
from colonybuild.utils import as_dict, as_list, deep_get
from colonybuild.world.interfaces import Position, StructureType

PRIORITY_TIERS: tuple[str, ...] = ("critical", "important", "normal")


@dataclass(frozen=True)
class Task:
    pos: Position
    structure_type: StructureType
    territory: str
    reason: str = ""
    dependencies: tuple[str, ...] = ()

    @property
    def is_surface(self) -> bool:
        """Roads and ramparts may share a tile with other structures."""
        return self.structure_type in (StructureType.ROAD, StructureType.RAMPART)


@dataclass(frozen=True)
class Plan:
    territory: str
    critical: tuple[Task, ...] = ()
    important: tuple[Task, ...] = ()
    normal: tuple[Task, ...] = ()
    generated_at_tick: int | None = field(default=None, compare=False)

    @property
    def is_empty(self) -> bool:
        return not (self.critical or self.important or self.normal)

    def tier(self, name: str) -> tuple[Task, ...]:
        if name not in PRIORITY_TIERS:
            raise KeyError(name)
        return getattr(self, name)

    def ordered(self) -> list[Task]:
        """Flatten the tiers in fixed priority order."""
        out: list[Task] = []
        for name in PRIORITY_TIERS:
            out.extend(self.tier(name))
        return out

    def filtered(self, keep: Iterable[Task]) -> "Plan":
        """Copy of this plan holding only `keep`, tiers and order preserved."""
        kept = set(keep)
        return Plan(
            territory=self.territory,
            critical=tuple(t for t in self.critical if t in kept),
            important=tuple(t for t in self.important if t in kept),
            normal=tuple(t for t in self.normal if t in kept),
            generated_at_tick=self.generated_at_tick,
        )


def _task_from_document(raw: Any, *, default_territory: str) -> Task:
    obj = as_dict(raw)
    structure_type = StructureType.parse(str(obj.get("type")))
    if structure_type is None:
        raise PolicyViolationError(f"Unknown structure type in plan task: {obj.get('type')}")
    return Task(
        pos=Position(int(obj["x"]), int(obj["y"])),
        structure_type=structure_type,
        territory=str(obj.get("territory", default_territory)),
        reason=str(obj.get("reason", "")),
        dependencies=tuple(str(d) for d in as_list(obj.get("dependencies"))),
    )


def plan_from_document(doc: dict[str, Any]) -> Plan:
    """Convert a (schema-valid) ConstructionPlan document to a Plan."""
    territory = str(deep_get(doc, ["metadata", "territory"]))
    priorities = as_dict(deep_get(doc, ["spec", "priorities"]))
    tick = deep_get(doc, ["metadata"]).get("generated_at_tick")

    tiers: dict[str, tuple[Task, ...]] = {}
    for name in PRIORITY_TIERS:
        tiers[name] = tuple(_task_from_document(t, default_territory=territory) for t in as_list(priorities.get(name)))

    return Plan(territory=territory, generated_at_tick=int(tick) if tick is not None else None, **tiers)
