"""Composition root: wire config, logging and a world adapter into a scheduler."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from colonybuild.config.logging import apply_logging_config
from colonybuild.config.settings import SchedulerConfig, default_config_paths, load_scheduler_config
from colonybuild.executor.engine import ConstructionExecutor
from colonybuild.planning.schema_validator import SchemaValidator
from colonybuild.scheduler.runner import TickScheduler
from colonybuild.world.interfaces import OrderGateway, WorldQuery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Components:
    config: SchedulerConfig
    scheduler: TickScheduler
    schema_validator: SchemaValidator


def build_components(
    world: WorldQuery,
    gateway: OrderGateway,
    *,
    scheduler_config_path: Path | None = None,
    logging_config_path: Path | None = None,
    configure_logging: bool = True,
) -> Components:
    """Fail closed if config or schemas cannot be loaded."""
    default_scheduler, default_logging = default_config_paths()
    config = load_scheduler_config(scheduler_config_path or default_scheduler)
    if configure_logging:
        apply_logging_config(logging_config_path or default_logging)

    executor = ConstructionExecutor(world=world, gateway=gateway, config=config)
    scheduler = TickScheduler(config=config, world=world, executor=executor)
    components = Components(config=config, scheduler=scheduler, schema_validator=SchemaValidator.load_from_dir())

    logger.info("scheduler_started", extra={"event": "scheduler_started"})
    return components
