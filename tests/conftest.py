from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from colonybuild.config.settings import SchedulerConfig
from colonybuild.executor.engine import ConstructionExecutor
from colonybuild.planning.plan import Task
from colonybuild.world.interfaces import Position, StructureType, TerritorySignals
from colonybuild.world.memory import InMemoryWorld

REPO_ROOT = Path(__file__).resolve().parents[1]

# 4 builders, full spawn energy, 60k stored: 2 + 2 scaled by 1.2 -> 4 before the tier ceiling.
HEALTHY = TerritorySignals(builders=4, energy_available=800, energy_capacity=800, energy_stored=60000)


@pytest.fixture()
def repo_root() -> Path:
    return REPO_ROOT


@pytest.fixture()
def config() -> SchedulerConfig:
    return SchedulerConfig()


@pytest.fixture()
def world() -> InMemoryWorld:
    return InMemoryWorld(max_orders=100)


@pytest.fixture()
def territory(world: InMemoryWorld) -> str:
    world.add_territory("W1N1", tier=4, signals=HEALTHY)
    return "W1N1"


@pytest.fixture()
def executor(world: InMemoryWorld, config: SchedulerConfig) -> ConstructionExecutor:
    return ConstructionExecutor(world=world, gateway=world, config=config)


@pytest.fixture()
def make_task() -> Callable[..., Task]:
    def _make(
        x: int,
        y: int,
        kind: StructureType,
        territory: str = "W1N1",
        reason: str = "test",
        dependencies: tuple[str, ...] = (),
    ) -> Task:
        return Task(pos=Position(x, y), structure_type=kind, territory=territory, reason=reason, dependencies=dependencies)

    return _make
