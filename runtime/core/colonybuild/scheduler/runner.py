"""Tick runner.

Runs one construction pass per territory per tick. The global order ledger
is the only resource territories share, so it is re-read from the world
before every territory's pass and the resulting headroom is handed to the
executor explicitly. No territory can act on headroom an earlier territory
already spent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

from colonybuild.config.settings import SchedulerConfig
from colonybuild.executor.budget import remaining_global
from colonybuild.executor.engine import ConstructionExecutor, ExecutionReport
from colonybuild.planning.plan import Plan
from colonybuild.world.interfaces import WorldQuery

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    tick: int | None
    reports: dict[str, ExecutionReport] = field(default_factory=dict)

    @property
    def orders_placed(self) -> int:
        return sum(r.orders_placed for r in self.reports.values())


@dataclass(frozen=True)
class TickScheduler:
    config: SchedulerConfig
    world: WorldQuery
    executor: ConstructionExecutor

    def headroom(self) -> int:
        return remaining_global(self.world.global_outstanding_orders(), self.config.limits)

    def run_territory(self, territory: str, plan: Plan | None, *, tick: int | None = None) -> ExecutionReport:
        return self.executor.execute(territory, plan, remaining_global=self.headroom(), tick=tick)

    def run_tick(self, plans: Mapping[str, Plan], *, tick: int | None = None) -> TickReport:
        """Schedule every territory in `plans`, in mapping order."""
        out = TickReport(tick=tick)
        for territory, plan in plans.items():
            out.reports[territory] = self.run_territory(territory, plan, tick=tick)
        if out.orders_placed:
            logger.debug(
                "tick_complete",
                extra={"event": "tick_complete", "tick": tick, "remaining_global": self.headroom()},
            )
        return out
