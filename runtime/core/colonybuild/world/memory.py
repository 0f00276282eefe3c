"""In-memory world (default adapter for tests and offline runs).

Holds a small model of each territory behind the `WorldQuery` and
`OrderGateway` interfaces. Submission rules approximate the live world:
- out-of-bounds, wall (except extractor on a mineral) and already-ordered
  tiles reject with REJECTED_BAD_TARGET
- a full order ledger rejects with REJECTED_FULL
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from colonybuild.errors import NotFoundError
from colonybuild.world.interfaces import (
    OrderGateway,
    Position,
    StructureType,
    SubmitResult,
    Terrain,
    TerritorySignals,
    WorldQuery,
)


@dataclass
class TerritoryState:
    name: str
    tier: int = 0
    owned: bool = True
    size: int = 50
    walls: set[Position] = field(default_factory=set)
    swamps: set[Position] = field(default_factory=set)
    minerals: set[Position] = field(default_factory=set)
    sources: list[Position] = field(default_factory=list)
    structures: dict[Position, list[StructureType]] = field(default_factory=dict)
    orders: dict[Position, list[StructureType]] = field(default_factory=dict)
    traffic: dict[Position, float] = field(default_factory=dict)
    signals: TerritorySignals = field(default_factory=TerritorySignals)

    def in_bounds(self, pos: Position) -> bool:
        return 0 <= pos.x < self.size and 0 <= pos.y < self.size


@dataclass(frozen=True)
class SubmittedOrder:
    territory: str
    pos: Position
    structure_type: StructureType


class InMemoryWorld(WorldQuery, OrderGateway):
    def __init__(self, *, max_orders: int = 100):
        self.max_orders = max_orders
        self._territories: dict[str, TerritoryState] = {}
        self.submissions: list[SubmittedOrder] = []

    # --- setup -----------------------------------------------------------

    def add_territory(self, name: str, **kwargs) -> TerritoryState:
        state = TerritoryState(name=name, **kwargs)
        self._territories[name] = state
        return state

    def territory(self, name: str) -> TerritoryState:
        if name not in self._territories:
            raise NotFoundError("Territory", name)
        return self._territories[name]

    def add_structure(self, territory: str, pos: Position, structure_type: StructureType) -> None:
        self.territory(territory).structures.setdefault(pos, []).append(structure_type)

    def add_order(self, territory: str, pos: Position, structure_type: StructureType) -> None:
        self.territory(territory).orders.setdefault(pos, []).append(structure_type)

    def set_signals(self, territory: str, signals: TerritorySignals) -> None:
        self.territory(territory).signals = signals

    def complete_orders(self, territory: str) -> int:
        """Turn every pending order in the territory into a built structure."""
        state = self.territory(territory)
        done = 0
        for pos, types in state.orders.items():
            for t in types:
                state.structures.setdefault(pos, []).append(t)
                done += 1
        state.orders.clear()
        return done

    # --- WorldQuery ------------------------------------------------------

    def has_controlling_authority(self, territory: str) -> bool:
        state = self._territories.get(territory)
        return state is not None and state.owned

    def development_tier(self, territory: str) -> int:
        return self.territory(territory).tier

    def structure_counts(self, territory: str) -> dict[StructureType, int]:
        counts: Counter[StructureType] = Counter()
        for types in self.territory(territory).structures.values():
            counts.update(types)
        return dict(counts)

    def pending_order_counts(self, territory: str) -> dict[StructureType, int]:
        counts: Counter[StructureType] = Counter()
        for types in self.territory(territory).orders.values():
            counts.update(types)
        return dict(counts)

    def terrain_at(self, territory: str, pos: Position) -> Terrain:
        state = self.territory(territory)
        if pos in state.walls:
            return Terrain.WALL
        if pos in state.swamps:
            return Terrain.SWAMP
        return Terrain.PLAIN

    def structures_at(self, territory: str, pos: Position) -> list[StructureType]:
        return list(self.territory(territory).structures.get(pos, []))

    def orders_at(self, territory: str, pos: Position) -> list[StructureType]:
        return list(self.territory(territory).orders.get(pos, []))

    def has_mineral_at(self, territory: str, pos: Position) -> bool:
        return pos in self.territory(territory).minerals

    def source_positions(self, territory: str) -> list[Position]:
        return list(self.territory(territory).sources)

    def signals(self, territory: str) -> TerritorySignals:
        return self.territory(territory).signals

    def global_outstanding_orders(self) -> int:
        return sum(len(types) for state in self._territories.values() for types in state.orders.values())

    def hot_traffic_tiles(self, territory: str, threshold: float, limit: int) -> list[Position]:
        hot = [(count, pos) for pos, count in self.territory(territory).traffic.items() if count >= threshold]
        hot.sort(key=lambda item: (-item[0], item[1]))
        return [pos for _, pos in hot[: max(0, limit)]]

    # --- OrderGateway ----------------------------------------------------

    def submit_order(self, territory: str, pos: Position, structure_type: StructureType) -> SubmitResult:
        state = self.territory(territory)
        if not state.in_bounds(pos):
            return SubmitResult.REJECTED_BAD_TARGET
        if state.orders.get(pos):
            return SubmitResult.REJECTED_BAD_TARGET
        if structure_type in state.structures.get(pos, []):
            return SubmitResult.REJECTED_BAD_TARGET
        if pos in state.walls and not (structure_type is StructureType.EXTRACTOR and pos in state.minerals):
            return SubmitResult.REJECTED_BAD_TARGET
        if self.global_outstanding_orders() >= self.max_orders:
            return SubmitResult.REJECTED_FULL

        state.orders.setdefault(pos, []).append(structure_type)
        self.submissions.append(SubmittedOrder(territory=territory, pos=pos, structure_type=structure_type))
        return SubmitResult.ACCEPTED

    def clear_road(self, territory: str, pos: Position) -> bool:
        state = self.territory(territory)
        removed = False
        for layer in (state.structures, state.orders):
            types = layer.get(pos)
            if types and StructureType.ROAD in types:
                layer[pos] = [t for t in types if t is not StructureType.ROAD]
                if not layer[pos]:
                    del layer[pos]
                removed = True
        return removed
