"""Dependency gate: a task waits until the structures it names exist."""

from __future__ import annotations

import logging
from typing import Mapping

from colonybuild.planning.plan import Task
from colonybuild.world.interfaces import StructureType

logger = logging.getLogger(__name__)


def satisfied(task: Task, snapshot: Mapping[StructureType, int]) -> bool:
    """True if every dependency label resolves to at least one built structure.

    Labels are structure type names. Unrecognized labels are ignored (treated
    as satisfied) so a planner vocabulary mismatch cannot stall construction.
    """
    for label in task.dependencies:
        required = StructureType.parse(label)
        if required is None:
            logger.debug(
                "unknown_dependency_label",
                extra={"event": "unknown_dependency_label", "territory": task.territory, "dependency": label},
            )
            continue
        if snapshot.get(required, 0) <= 0:
            return False
    return True
