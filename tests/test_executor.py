from __future__ import annotations

import copy
import json
import logging

from colonybuild.config.logging import JSONFormatter
from colonybuild.config.settings import parse_scheduler_config
from colonybuild.executor.capacity import limit
from colonybuild.executor.engine import ConstructionExecutor
from colonybuild.executor.validation import Accepted, SkipReason, Skipped, validate_task
from colonybuild.planning.plan import Plan
from colonybuild.world.interfaces import Position, StructureType, SubmitResult, TerritorySignals
from colonybuild.world.memory import InMemoryWorld

BUSY = TerritorySignals(builders=10, energy_available=2000, energy_capacity=2000, energy_stored=60000)


def test_extension_scenario_at_tier_three(world, executor, make_task) -> None:
    world.add_territory("W2N2", tier=3, signals=BUSY)
    for i in range(5):
        world.add_structure("W2N2", Position(20, 20 + i), StructureType.EXTENSION)
    task = make_task(10, 10, StructureType.EXTENSION, territory="W2N2")

    report = executor.execute("W2N2", Plan(territory="W2N2", critical=(task,)), remaining_global=95)

    assert report.submitted == [task]
    assert report.remaining_budget == report.budget - 1
    assert world.orders_at("W2N2", Position(10, 10)) == [StructureType.EXTENSION]


def test_critical_task_wins_a_single_slot(world, territory, executor, make_task) -> None:
    critical = make_task(10, 10, StructureType.EXTENSION)
    normal = make_task(12, 12, StructureType.EXTENSION)

    report = executor.execute(territory, Plan(territory=territory, normal=(normal,), critical=(critical,)), remaining_global=1)

    assert report.budget == 1
    assert report.submitted == [critical]
    assert world.orders_at(territory, normal.pos) == []


def test_equal_tier_tasks_keep_planner_order(world, territory, executor, make_task) -> None:
    tasks = tuple(make_task(10 + i, 10, StructureType.EXTENSION) for i in range(4))
    report = executor.execute(territory, Plan(territory=territory, important=tasks), remaining_global=50)
    assert report.submitted == list(tasks[: report.budget])


def test_submissions_bounded_by_budget_and_headroom(world, executor, make_task) -> None:
    world.add_territory("W3N3", tier=8, signals=BUSY)
    plan = Plan(territory="W3N3", critical=tuple(make_task(10 + i, 10, StructureType.EXTENSION, territory="W3N3") for i in range(10)))

    report = executor.execute("W3N3", plan, remaining_global=3)
    assert report.budget == 3
    assert len(report.submitted) == 3

    world.territory("W3N3").orders.clear()
    report = executor.execute("W3N3", plan, remaining_global=50)
    assert report.budget == 5
    assert len(report.submitted) == 5


def test_pass_never_pushes_a_type_over_capacity(world, executor, make_task) -> None:
    world.add_territory("W2N2", tier=3, signals=BUSY)
    for i in range(8):
        world.add_structure("W2N2", Position(20, 20 + i), StructureType.EXTENSION)
    plan = Plan(territory="W2N2", critical=tuple(make_task(10 + i, 10, StructureType.EXTENSION, territory="W2N2") for i in range(5)))

    first = executor.execute("W2N2", plan, remaining_global=50)
    second = executor.execute("W2N2", plan, remaining_global=50)

    assert len(first.submitted) == 2
    assert second.submitted == []
    assert {s.reason for s in second.skipped} == {SkipReason.CAPACITY_REACHED}
    counts = world.structure_counts("W2N2")[StructureType.EXTENSION] + world.pending_order_counts("W2N2")[StructureType.EXTENSION]
    assert counts <= limit(3, StructureType.EXTENSION)


def test_capacity_counts_orders_placed_earlier_in_the_pass(world, executor, make_task) -> None:
    world.add_territory("W1N1", tier=8, signals=BUSY)
    for i in range(59):
        world.add_structure("W1N1", Position(20 + i % 20, 20 + i // 20), StructureType.EXTENSION)
    tasks = tuple(make_task(10 + i, 10, StructureType.EXTENSION) for i in range(5))

    report = executor.execute("W1N1", Plan(territory="W1N1", critical=tasks), remaining_global=50)

    assert report.budget == 5
    assert report.submitted == [tasks[0]]
    assert [s.reason for s in report.skipped] == [SkipReason.CAPACITY_REACHED] * 4


def test_tile_claimed_earlier_in_the_pass_is_not_reused(world, territory, executor, make_task) -> None:
    extension = make_task(10, 10, StructureType.EXTENSION)
    tower = make_task(10, 10, StructureType.TOWER)

    report = executor.execute(territory, Plan(territory=territory, critical=(extension, tower)), remaining_global=50)

    assert report.submitted == [extension]
    assert report.skip_reasons() == {tower: SkipReason.ILLEGAL_POSITION}
    assert world.orders_at(territory, Position(10, 10)) == [StructureType.EXTENSION]


def test_validation_is_repeatable_on_unchanged_world(world, territory, executor, config, make_task) -> None:
    world.territory(territory).walls.add(Position(30, 30))
    world.add_structure(territory, Position(15, 15), StructureType.EXTENSION)
    plan = Plan(
        territory=territory,
        critical=(
            make_task(10, 10, StructureType.EXTENSION),
            make_task(30, 30, StructureType.EXTENSION),
            make_task(12, 12, StructureType.STORAGE, dependencies=("terminal",)),
        ),
        normal=(make_task(15, 15, StructureType.ROAD), make_task(40, 40, StructureType.OBSERVER)),
    )

    first = [validate_task(world, territory, t, tier=4) for t in plan.ordered()]
    second = [validate_task(world, territory, t, tier=4) for t in plan.ordered()]
    assert first == second
    assert isinstance(first[0], Accepted)
    assert [d.reason for d in first[1:]] == [
        SkipReason.ILLEGAL_POSITION,
        SkipReason.DEPENDENCY_UNMET,
        SkipReason.ILLEGAL_POSITION,
        SkipReason.CAPACITY_REACHED,
    ]

    clone = copy.deepcopy(world)
    other = ConstructionExecutor(world=clone, gateway=clone, config=config)
    a = executor.execute(territory, plan, remaining_global=50)
    b = other.execute(territory, plan, remaining_global=50)
    assert a.submitted == b.submitted
    assert a.skip_reasons() == b.skip_reasons()


def test_road_and_rampart_over_existing_structure(world, territory, executor, make_task) -> None:
    world.add_structure(territory, Position(15, 15), StructureType.SPAWN)
    road = make_task(15, 15, StructureType.ROAD)
    rampart = make_task(15, 15, StructureType.RAMPART)

    report = executor.execute(territory, Plan(territory=territory, critical=(road, rampart)), remaining_global=50)

    assert report.submitted == [rampart]
    assert report.skip_reasons()[road] is SkipReason.ILLEGAL_POSITION
    # Roads never get cleared on their own behalf.
    assert report.cleared_roads == []


def test_rejections_do_not_stop_the_walk(world, territory, executor, make_task) -> None:
    foreign = make_task(10, 10, StructureType.EXTENSION, territory="W5N5")
    gated = make_task(11, 11, StructureType.STORAGE, dependencies=("terminal",))
    world.add_structure(territory, Position(12, 12), StructureType.ROAD)
    duplicate = make_task(12, 12, StructureType.ROAD)
    valid = make_task(13, 13, StructureType.EXTENSION)

    report = executor.execute(territory, Plan(territory=territory, critical=(foreign, gated, duplicate, valid)), remaining_global=50)

    assert report.submitted == [valid]
    assert report.skip_reasons() == {
        foreign: SkipReason.WRONG_TERRITORY,
        gated: SkipReason.DEPENDENCY_UNMET,
        duplicate: SkipReason.DUPLICATE,
    }


class _RejectingWorld(InMemoryWorld):
    def __init__(self, reject: dict[Position, SubmitResult]):
        super().__init__()
        self.reject = reject

    def submit_order(self, territory, pos, structure_type):
        if pos in self.reject:
            return self.reject[pos]
        return super().submit_order(territory, pos, structure_type)


def test_world_rejections_are_skipped(config, make_task) -> None:
    world = _RejectingWorld({Position(10, 10): SubmitResult.REJECTED_BAD_TARGET, Position(11, 11): SubmitResult.REJECTED_FULL})
    world.add_territory("W1N1", tier=4, signals=BUSY)
    executor = ConstructionExecutor(world=world, gateway=world, config=config)
    bad, full, ok = (make_task(10, 10, StructureType.TOWER), make_task(11, 11, StructureType.EXTENSION), make_task(12, 12, StructureType.EXTENSION))

    report = executor.execute("W1N1", Plan(territory="W1N1", critical=(bad, full, ok)), remaining_global=50)

    assert report.submitted == [ok]
    assert report.skip_reasons() == {bad: SkipReason.WORLD_BAD_TARGET, full: SkipReason.WORLD_FULL}


def test_input_absence_is_a_no_op(world, territory, executor, make_task) -> None:
    plan = Plan(territory=territory, critical=(make_task(10, 10, StructureType.EXTENSION),))

    assert executor.execute(territory, Plan(territory=territory), remaining_global=50).submitted == []
    assert executor.execute(territory, None, remaining_global=50).submitted == []
    assert executor.execute(territory, plan, remaining_global=0).budget == 0
    assert executor.execute("nowhere", plan, remaining_global=50).submitted == []

    world.territory(territory).owned = False
    assert executor.execute(territory, plan, remaining_global=50).submitted == []
    assert world.submissions == []


def test_emergency_mode_keeps_only_recovery_work(world, executor, make_task) -> None:
    world.add_territory(
        "W1N1",
        tier=4,
        sources=[Position(20, 20)],
        signals=TerritorySignals(builders=4, energy_available=800, energy_capacity=800, energy_stored=5000, net_energy_flow=-10),
    )
    near = make_task(21, 21, StructureType.CONTAINER)
    far = make_task(30, 30, StructureType.CONTAINER)
    tower = make_task(25, 25, StructureType.TOWER)
    extension = make_task(10, 10, StructureType.EXTENSION)

    report = executor.execute("W1N1", Plan(territory="W1N1", critical=(tower, far, near), normal=(extension,)), remaining_global=50)

    assert report.emergency
    assert report.submitted == [near, extension]
    assert world.orders_at("W1N1", far.pos) == []


def test_emergency_mode_with_nothing_allowed_is_a_no_op(world, executor, make_task) -> None:
    world.add_territory(
        "W1N1",
        tier=4,
        signals=TerritorySignals(builders=4, energy_available=800, energy_capacity=800, energy_stored=0, net_energy_flow=-1),
    )
    for i in range(3):
        world.add_structure("W1N1", Position(30, 30 + i), StructureType.EXTENSION)

    report = executor.execute("W1N1", Plan(territory="W1N1", critical=(make_task(10, 10, StructureType.EXTENSION),)), remaining_global=50)

    assert report.emergency
    assert report.budget == 0
    assert report.submitted == []


def test_emergency_mode_keeps_tiles_of_held_back_work_reserved(world, executor, make_task) -> None:
    state = world.add_territory(
        "W1N1",
        tier=5,
        sources=[Position(20, 20)],
        signals=TerritorySignals(builders=4, energy_available=800, energy_capacity=800, energy_stored=15000, net_energy_flow=-5),
    )
    state.traffic = {Position(30, 30): 40}
    container = make_task(21, 21, StructureType.CONTAINER)
    tower = make_task(30, 30, StructureType.TOWER)

    report = executor.execute("W1N1", Plan(territory="W1N1", critical=(container,), important=(tower,)), remaining_global=50)

    assert report.emergency
    assert report.submitted == [container]
    assert Position(30, 30) not in report.traffic_roads
    assert world.orders_at("W1N1", Position(30, 30)) == []


def test_low_tier_defers_surface_work_until_essentials_exist(world, executor, make_task) -> None:
    world.add_territory("W1N1", tier=2, sources=[Position(30, 30)], signals=BUSY)
    road = make_task(10, 12, StructureType.ROAD)
    extension = make_task(10, 10, StructureType.EXTENSION)

    report = executor.execute("W1N1", Plan(territory="W1N1", critical=(road, extension)), remaining_global=50)
    assert report.submitted == [extension]
    assert report.skip_reasons()[road] is SkipReason.DEFERRED_LOW_TIER

    world.complete_orders("W1N1")
    world.add_structure("W1N1", Position(31, 31), StructureType.CONTAINER)
    report = executor.execute("W1N1", Plan(territory="W1N1", critical=(road,)), remaining_global=50)
    assert report.submitted == [road]


def test_road_quota_favours_structures(world, executor, make_task) -> None:
    world.add_territory("W1N1", tier=8, signals=BUSY)
    roads = tuple(make_task(10 + i, 5, StructureType.ROAD) for i in range(4))
    extensions = tuple(make_task(10 + i, 10, StructureType.EXTENSION) for i in range(2))

    report = executor.execute("W1N1", Plan(territory="W1N1", critical=roads, normal=extensions), remaining_global=50)

    assert report.budget == 5
    assert report.submitted == [roads[0], *extensions]
    assert [s.task for s in report.skipped if s.reason is SkipReason.ROAD_QUOTA] == list(roads[1:])


def test_tight_economy_halts_roads_while_structures_wait(world, executor, make_task) -> None:
    world.add_territory(
        "W1N1",
        tier=8,
        signals=TerritorySignals(builders=10, energy_available=100, energy_capacity=800, energy_stored=20000),
    )
    road = make_task(10, 5, StructureType.ROAD)
    extension = make_task(10, 10, StructureType.EXTENSION)

    report = executor.execute("W1N1", Plan(territory="W1N1", critical=(road,), normal=(extension,)), remaining_global=50)

    assert report.submitted == [extension]
    assert report.skip_reasons()[road] is SkipReason.ROAD_QUOTA


def test_roads_take_full_budget_without_other_work(world, territory, executor, make_task) -> None:
    roads = tuple(make_task(10 + i, 5, StructureType.ROAD) for i in range(5))
    report = executor.execute(territory, Plan(territory=territory, normal=roads), remaining_global=50)
    assert len(report.submitted) == report.budget == 3


def test_blocking_road_is_cleared_then_built_over(world, territory, executor, make_task) -> None:
    world.add_structure(territory, Position(10, 10), StructureType.ROAD)
    task = make_task(10, 10, StructureType.EXTENSION)
    plan = Plan(territory=territory, critical=(task,))

    first = executor.execute(territory, plan, remaining_global=50)
    assert first.submitted == []
    assert first.skip_reasons()[task] is SkipReason.ROAD_CLEARED
    assert first.cleared_roads == [Position(10, 10)]
    assert world.structures_at(territory, Position(10, 10)) == []

    second = executor.execute(territory, plan, remaining_global=50)
    assert second.submitted == [task]


def test_road_clearance_can_be_disabled(world, territory, make_task) -> None:
    config = parse_scheduler_config({"roads": {"clear_blocking_roads": False}})
    executor = ConstructionExecutor(world=world, gateway=world, config=config)
    world.add_structure(territory, Position(10, 10), StructureType.ROAD)
    task = make_task(10, 10, StructureType.EXTENSION)

    report = executor.execute(territory, Plan(territory=territory, critical=(task,)), remaining_global=50)

    assert report.skip_reasons()[task] is SkipReason.ILLEGAL_POSITION
    assert world.structures_at(territory, Position(10, 10)) == [StructureType.ROAD]


def test_traffic_roads_use_leftover_budget(world, executor, make_task) -> None:
    state = world.add_territory("W1N1", tier=5, signals=TerritorySignals(builders=4, energy_available=800, energy_capacity=800, energy_stored=60000))
    state.traffic = {Position(20, 20): 30, Position(21, 20): 12, Position(22, 20): 3, Position(23, 20): 40}
    blocked = make_task(23, 20, StructureType.STORAGE, dependencies=("terminal",))
    extension = make_task(30, 30, StructureType.EXTENSION)

    report = executor.execute("W1N1", Plan(territory="W1N1", critical=(blocked, extension)), remaining_global=50)

    # Threshold at tier 5 is 12.5; (23, 20) is hot but reserved for the storage.
    assert report.submitted == [extension]
    assert report.traffic_roads == [Position(20, 20)]
    assert report.remaining_budget == report.budget - 2
    assert world.orders_at("W1N1", Position(20, 20)) == [StructureType.ROAD]


def test_traffic_roads_need_a_stocked_economy(world, executor, make_task) -> None:
    state = world.add_territory("W1N1", tier=5, signals=TerritorySignals(builders=4, energy_available=400, energy_capacity=800, energy_stored=0))
    state.traffic = {Position(20, 20): 30}

    report = executor.execute("W1N1", Plan(territory="W1N1", critical=(make_task(30, 30, StructureType.EXTENSION),)), remaining_global=50)

    assert report.traffic_roads == []


def test_submission_is_logged(world, territory, executor, make_task, caplog) -> None:
    caplog.set_level(logging.INFO, logger="colonybuild.executor.engine")
    task = make_task(10, 10, StructureType.EXTENSION, reason="ring 1")

    executor.execute(territory, Plan(territory=territory, critical=(task,)), remaining_global=50)

    records = [r for r in caplog.records if getattr(r, "event", None) == "order_submitted"]
    assert len(records) == 1
    line = json.loads(JSONFormatter().format(records[0]))
    assert line["msg"] == "order_submitted"
    assert line["territory"] == territory
    assert line["structure_type"] == "extension"
    assert (line["x"], line["y"]) == (10, 10)
    assert line["reason"] == "ring 1"


def test_skips_are_not_logged_at_info(world, territory, executor, make_task, caplog) -> None:
    caplog.set_level(logging.INFO, logger="colonybuild")
    world.territory(territory).walls.add(Position(10, 10))

    report = executor.execute(territory, Plan(territory=territory, critical=(make_task(10, 10, StructureType.EXTENSION),)), remaining_global=50)

    assert isinstance(report.skipped[0], Skipped)
    assert caplog.records == []
