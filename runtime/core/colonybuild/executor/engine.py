"""Construction executor: one scheduling pass for one territory.

Each pass:
- Computes a local order budget, capped by the global headroom it is given
- Walks the plan in priority order (critical, important, normal)
- Validates each task against dependencies, capacity and placement legality
- Submits accepted tasks until the budget or the backlog runs out

A pass keeps no state between calls. Rejected tasks are recorded in the
report and left in the planner's backlog to be retried next tick.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from colonybuild.config.settings import SchedulerConfig
from colonybuild.executor import capacity, legality
from colonybuild.executor.budget import EnergyPosition, compute_budget, energy_position
from colonybuild.executor.validation import Accepted, SkipReason, Skipped, validate_task
from colonybuild.planning.plan import Plan, Task
from colonybuild.world.interfaces import (
    OrderGateway,
    Position,
    StructureType,
    SubmitResult,
    TerritorySignals,
    WorldQuery,
)

logger = logging.getLogger(__name__)

_WORLD_REJECTIONS = {
    SubmitResult.REJECTED_BAD_TARGET: SkipReason.WORLD_BAD_TARGET,
    SubmitResult.REJECTED_FULL: SkipReason.WORLD_FULL,
}


@dataclass
class ExecutionReport:
    territory: str
    budget: int = 0
    remaining_budget: int = 0
    emergency: bool = False
    submitted: list[Task] = field(default_factory=list)
    skipped: list[Skipped] = field(default_factory=list)
    traffic_roads: list[Position] = field(default_factory=list)
    cleared_roads: list[Position] = field(default_factory=list)

    @property
    def orders_placed(self) -> int:
        return len(self.submitted) + len(self.traffic_roads)

    def skip_reasons(self) -> dict[Task, SkipReason]:
        return {s.task: s.reason for s in self.skipped}


class ConstructionExecutor:
    def __init__(self, *, world: WorldQuery, gateway: OrderGateway, config: SchedulerConfig):
        self._world = world
        self._gateway = gateway
        self._config = config

    def execute(self, territory: str, plan: Plan | None, *, remaining_global: int, tick: int | None = None) -> ExecutionReport:
        report = ExecutionReport(territory=territory)
        if not self._world.has_controlling_authority(territory):
            return report
        if plan is None or plan.is_empty:
            return report
        if remaining_global <= 0:
            return report

        cfg = self._config
        tier = self._world.development_tier(territory)
        signals = self._world.signals(territory)
        energy = energy_position(signals, cfg.budget)

        # Tiles planned for real structures; traffic roads must not claim them,
        # even when emergency mode holds the structure back this tick.
        reserved = {t.pos for t in plan.ordered() if t.territory == territory and not t.is_surface}

        if self._in_emergency(signals):
            report.emergency = True
            plan = self._emergency_filter(territory, plan)
            logger.debug(
                "emergency_mode",
                extra={"event": "emergency_mode", "territory": territory, "tick": tick},
            )
            if plan.is_empty:
                return report

        budget = compute_budget(tier, signals, remaining_global, cfg.budget)
        report.budget = budget

        tasks = plan.ordered()

        non_road_placeable = self._count_non_road_placeable(territory, tasks, tier)
        road_quota = self._road_quota(budget, non_road_placeable, energy)
        roads_used = 0
        surface_ready: bool | None = None

        for task in tasks:
            if budget <= 0:
                break
            if task.territory != territory:
                report.skipped.append(Skipped(task, SkipReason.WRONG_TERRITORY))
                continue

            if task.is_surface and cfg.roads.low_tier_gate_enabled and tier <= cfg.roads.low_tier_max:
                if surface_ready is None:
                    surface_ready = self._essentials_built(territory)
                if not surface_ready:
                    report.skipped.append(Skipped(task, SkipReason.DEFERRED_LOW_TIER))
                    continue

            if task.structure_type is StructureType.ROAD and non_road_placeable > 0 and roads_used >= road_quota:
                report.skipped.append(Skipped(task, SkipReason.ROAD_QUOTA))
                continue

            decision = validate_task(self._world, territory, task, tier=tier, size=cfg.territory.size)
            if isinstance(decision, Skipped):
                report.skipped.append(self._maybe_clear_road(territory, decision, report))
                continue

            result = self._gateway.submit_order(territory, task.pos, task.structure_type)
            if result is not SubmitResult.ACCEPTED:
                report.skipped.append(Skipped(task, _WORLD_REJECTIONS[result]))
                continue

            budget -= 1
            report.submitted.append(task)
            if task.structure_type is StructureType.ROAD:
                roads_used += 1
            elif non_road_placeable > 0:
                non_road_placeable -= 1
            self._log_submission(territory, task.pos, task.structure_type, task.reason, tick)

        if budget > 0:
            budget -= self._place_traffic_roads(territory, tier, energy, budget, reserved, report, tick)

        report.remaining_budget = budget
        return report

    # --- supplements -----------------------------------------------------

    def _in_emergency(self, signals: TerritorySignals) -> bool:
        em = self._config.emergency
        return em.enabled and signals.energy_stored < em.stored_energy_threshold and signals.net_energy_flow < 0

    def _emergency_filter(self, territory: str, plan: Plan) -> Plan:
        """Keep only what restores income: source containers, spawns, first extensions."""
        em = self._config.emergency
        sources = self._world.source_positions(territory)
        extensions = self._world.structure_counts(territory).get(StructureType.EXTENSION, 0)

        def keep(task: Task) -> bool:
            if task.structure_type is StructureType.CONTAINER:
                return any(task.pos.range_to(s) <= em.source_container_range for s in sources)
            if task.structure_type is StructureType.SPAWN:
                return True
            if task.structure_type is StructureType.EXTENSION:
                return extensions < em.min_extensions
            return False

        return plan.filtered(t for t in plan.ordered() if keep(t))

    def _essentials_built(self, territory: str) -> bool:
        if self._world.structure_counts(territory).get(StructureType.EXTENSION, 0) <= 0:
            return False
        for source in self._world.source_positions(territory):
            if not self._container_adjacent(territory, source):
                return False
        return True

    def _container_adjacent(self, territory: str, source: Position) -> bool:
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                if StructureType.CONTAINER in self._world.structures_at(territory, Position(source.x + dx, source.y + dy)):
                    return True
        return False

    def _count_non_road_placeable(self, territory: str, tasks: list[Task], tier: int) -> int:
        if not self._config.roads.quota_enabled:
            return 0
        size = self._config.territory.size
        return sum(
            1
            for t in tasks
            if t.territory == territory
            and t.structure_type is not StructureType.ROAD
            and isinstance(validate_task(self._world, territory, t, tier=tier, size=size), Accepted)
        )

    def _road_quota(self, budget: int, non_road_placeable: int, energy: EnergyPosition) -> int:
        roads = self._config.roads
        if not roads.quota_enabled or non_road_placeable <= 0:
            return budget
        if energy.ratio < roads.tight_energy_ratio and energy.stored_factor < 1:
            return 0
        quota = max(0, min(int(budget * roads.quota_fraction), roads.quota_max))
        return max(1, quota)

    def _maybe_clear_road(self, territory: str, decision: Skipped, report: ExecutionReport) -> Skipped:
        if decision.reason is not SkipReason.ILLEGAL_POSITION or not self._config.roads.clear_blocking_roads:
            return decision
        task = decision.task
        if not legality.blocked_only_by_road(self._world, territory, task.pos, task.structure_type, size=self._config.territory.size):
            return decision
        if not self._gateway.clear_road(territory, task.pos):
            return decision
        report.cleared_roads.append(task.pos)
        logger.debug(
            "blocking_road_cleared",
            extra={"event": "blocking_road_cleared", "territory": territory, "x": task.pos.x, "y": task.pos.y},
        )
        return Skipped(task, SkipReason.ROAD_CLEARED)

    def _place_traffic_roads(
        self,
        territory: str,
        tier: int,
        energy: EnergyPosition,
        budget: int,
        reserved: set[Position],
        report: ExecutionReport,
        tick: int | None,
    ) -> int:
        traffic = self._config.traffic
        if not traffic.enabled or tier < traffic.min_tier:
            return 0
        if not (energy.stored > traffic.well_stocked_energy or energy.ratio > traffic.well_stocked_ratio):
            return 0

        size = self._config.territory.size
        placed = 0
        for pos in self._world.hot_traffic_tiles(territory, traffic.threshold_for(tier), min(traffic.max_roads_per_tick, budget)):
            if placed >= budget:
                break
            built = self._world.structure_counts(territory).get(StructureType.ROAD, 0)
            queued = self._world.pending_order_counts(territory).get(StructureType.ROAD, 0)
            if not capacity.within_capacity(tier, StructureType.ROAD, built, queued):
                break
            if pos in reserved:
                continue
            if not legality.placeable(self._world, territory, pos, StructureType.ROAD, size=size):
                continue
            if legality.already_built_or_queued(self._world, territory, pos, StructureType.ROAD):
                continue
            if self._gateway.submit_order(territory, pos, StructureType.ROAD) is SubmitResult.ACCEPTED:
                placed += 1
                report.traffic_roads.append(pos)
                self._log_submission(territory, pos, StructureType.ROAD, "traffic", tick)
        return placed

    # --- logging ---------------------------------------------------------

    def _log_submission(self, territory: str, pos: Position, structure_type: StructureType, reason: str, tick: int | None) -> None:
        logger.info(
            "order_submitted",
            extra={
                "event": "order_submitted",
                "territory": territory,
                "structure_type": structure_type.value,
                "x": pos.x,
                "y": pos.y,
                "reason": reason,
                "tick": tick,
            },
        )
