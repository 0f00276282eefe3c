"""World boundary interfaces.

The scheduler owns no world state. Everything it knows about a territory is
read through `WorldQuery` at the moment it is needed, and the only mutations
it performs go through `OrderGateway`:
- construction orders (submit)
- clearing a road that blocks a planned structure

Concrete adapters implement both (see `world/memory.py` for the in-memory one).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class StructureType(str, Enum):
    SPAWN = "spawn"
    EXTENSION = "extension"
    ROAD = "road"
    WALL = "constructedWall"
    RAMPART = "rampart"
    LINK = "link"
    STORAGE = "storage"
    TOWER = "tower"
    OBSERVER = "observer"
    POWER_SPAWN = "powerSpawn"
    EXTRACTOR = "extractor"
    LAB = "lab"
    TERMINAL = "terminal"
    CONTAINER = "container"
    NUKER = "nuker"
    FACTORY = "factory"

    @classmethod
    def parse(cls, value: str) -> "StructureType | None":
        try:
            return cls(value)
        except ValueError:
            return None


class Terrain(str, Enum):
    PLAIN = "plain"
    SWAMP = "swamp"
    WALL = "wall"


class SubmitResult(str, Enum):
    ACCEPTED = "accepted"
    REJECTED_BAD_TARGET = "rejected_bad_target"
    REJECTED_FULL = "rejected_full"


@dataclass(frozen=True, order=True)
class Position:
    x: int
    y: int

    def range_to(self, other: "Position") -> int:
        return max(abs(self.x - other.x), abs(self.y - other.y))


@dataclass(frozen=True)
class TerritorySignals:
    """Economic and population readings for one territory, sampled this tick."""

    builders: int = 0
    energy_available: float = 0.0
    energy_capacity: float | None = None
    energy_stored: float = 0.0
    net_energy_flow: float = 0.0


class WorldQuery(ABC):
    @abstractmethod
    def has_controlling_authority(self, territory: str) -> bool:
        """True if the agent controls the territory and may build in it."""

    @abstractmethod
    def development_tier(self, territory: str) -> int:
        """Current development tier of the territory."""

    @abstractmethod
    def structure_counts(self, territory: str) -> dict[StructureType, int]:
        """Built structures by type. Must reflect the world as of this call."""

    @abstractmethod
    def pending_order_counts(self, territory: str) -> dict[StructureType, int]:
        """Outstanding construction orders by type. Must reflect the world as of this call."""

    @abstractmethod
    def terrain_at(self, territory: str, pos: Position) -> Terrain:
        """Terrain at a coordinate."""

    @abstractmethod
    def structures_at(self, territory: str, pos: Position) -> list[StructureType]:
        """Types of built structures occupying a coordinate."""

    @abstractmethod
    def orders_at(self, territory: str, pos: Position) -> list[StructureType]:
        """Types of pending orders at a coordinate."""

    @abstractmethod
    def has_mineral_at(self, territory: str, pos: Position) -> bool:
        """True if a mineral deposit sits on the coordinate."""

    @abstractmethod
    def source_positions(self, territory: str) -> list[Position]:
        """Positions of the territory's energy sources."""

    @abstractmethod
    def signals(self, territory: str) -> TerritorySignals:
        """Population and economy readings for the budget calculation."""

    @abstractmethod
    def global_outstanding_orders(self) -> int:
        """Outstanding orders across every territory the agent controls."""

    @abstractmethod
    def hot_traffic_tiles(self, territory: str, threshold: float, limit: int) -> list[Position]:
        """Up to `limit` tiles whose traffic reached `threshold`, busiest first."""


class OrderGateway(ABC):
    @abstractmethod
    def submit_order(self, territory: str, pos: Position, structure_type: StructureType) -> SubmitResult:
        """Ask the world to open a construction order."""

    @abstractmethod
    def clear_road(self, territory: str, pos: Position) -> bool:
        """Remove a road (built or ordered) at `pos`. True if something was removed."""
