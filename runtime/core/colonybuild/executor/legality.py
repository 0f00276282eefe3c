"""Placement legality checks.

Evaluated against the live world for every task, never cached: an order
submitted earlier in the same pass changes occupancy for the next task.
"""

from __future__ import annotations

from colonybuild.world.interfaces import Position, StructureType, Terrain, WorldQuery

_SURFACE_TYPES = (StructureType.ROAD, StructureType.RAMPART)


def on_boundary(pos: Position, size: int) -> bool:
    return pos.x <= 0 or pos.y <= 0 or pos.x >= size - 1 or pos.y >= size - 1


def placeable(world: WorldQuery, territory: str, pos: Position, structure_type: StructureType, *, size: int = 50) -> bool:
    if on_boundary(pos, size):
        return False
    if world.orders_at(territory, pos):
        return False

    structures = world.structures_at(territory, pos)
    if structure_type is StructureType.EXTRACTOR:
        # Extractors sit on the mineral, which is usually wall terrain.
        return world.has_mineral_at(territory, pos) and not structures

    if world.terrain_at(territory, pos) is Terrain.WALL:
        return False
    if structure_type is StructureType.RAMPART:
        return True
    if structure_type is StructureType.ROAD:
        return not any(s not in _SURFACE_TYPES for s in structures)
    return not structures


def already_built_or_queued(world: WorldQuery, territory: str, pos: Position, structure_type: StructureType) -> bool:
    if structure_type in world.structures_at(territory, pos):
        return True
    return structure_type in world.orders_at(territory, pos)


def blocked_only_by_road(world: WorldQuery, territory: str, pos: Position, structure_type: StructureType, *, size: int = 50) -> bool:
    """True if a road (built or ordered) is all that stops `structure_type` here."""
    if structure_type in _SURFACE_TYPES or structure_type is StructureType.EXTRACTOR:
        return False
    if on_boundary(pos, size) or world.terrain_at(territory, pos) is Terrain.WALL:
        return False
    structures = world.structures_at(territory, pos)
    orders = world.orders_at(territory, pos)
    occupants = structures + orders
    return bool(occupants) and all(o is StructureType.ROAD for o in occupants)
