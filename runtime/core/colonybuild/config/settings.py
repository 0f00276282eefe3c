"""Configuration loader for the construction scheduler.

Rules:
- Fail closed when config is missing or invalid.
- Every section is optional; omitted keys fall back to the defaults below,
  which mirror the live world's constants (100 outstanding orders per agent,
  50x50 territories).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from colonybuild.errors import PolicyViolationError
from colonybuild.utils import as_dict, as_list


@dataclass(frozen=True)
class GlobalLimits:
    hard_ceiling: int = 100
    safety_buffer: int = 5


@dataclass(frozen=True)
class TierCeiling:
    max_tier: int
    ceiling: int


@dataclass(frozen=True)
class BudgetConfig:
    base_orders_per_tick: int = 2
    builders_per_extra_order: int = 2
    stored_energy_reference: float = 50000.0
    stored_factor_min: float = 0.5
    stored_factor_max: float = 1.5
    # Default energy capacity when the world reports none.
    default_energy_capacity: float = 300.0
    tier_ceilings: tuple[TierCeiling, ...] = (
        TierCeiling(max_tier=3, ceiling=2),
        TierCeiling(max_tier=5, ceiling=3),
    )
    top_tier_ceiling: int = 5

    def ceiling_for(self, tier: int) -> int:
        for tc in sorted(self.tier_ceilings, key=lambda c: c.max_tier):
            if tier <= tc.max_tier:
                return tc.ceiling
        return self.top_tier_ceiling


@dataclass(frozen=True)
class TerritoryConfig:
    size: int = 50


@dataclass(frozen=True)
class EmergencyConfig:
    enabled: bool = True
    stored_energy_threshold: float = 20000.0
    source_container_range: int = 2
    min_extensions: int = 3


@dataclass(frozen=True)
class RoadConfig:
    quota_enabled: bool = True
    quota_fraction: float = 0.25
    quota_max: int = 2
    tight_energy_ratio: float = 0.5
    low_tier_gate_enabled: bool = True
    low_tier_max: int = 3
    clear_blocking_roads: bool = True


@dataclass(frozen=True)
class TrafficConfig:
    enabled: bool = True
    min_tier: int = 3
    max_roads_per_tick: int = 5
    well_stocked_energy: float = 10000.0
    well_stocked_ratio: float = 0.6
    threshold_base: float = 5.0
    threshold_per_tier: float = 1.5
    threshold_min: float = 6.0
    threshold_max: float = 15.0

    def threshold_for(self, tier: int) -> float:
        return max(self.threshold_min, min(self.threshold_max, self.threshold_base + tier * self.threshold_per_tier))


@dataclass(frozen=True)
class SchedulerConfig:
    limits: GlobalLimits = field(default_factory=GlobalLimits)
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    territory: TerritoryConfig = field(default_factory=TerritoryConfig)
    emergency: EmergencyConfig = field(default_factory=EmergencyConfig)
    roads: RoadConfig = field(default_factory=RoadConfig)
    traffic: TrafficConfig = field(default_factory=TrafficConfig)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise PolicyViolationError(f"Missing required config file: {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise PolicyViolationError(f"Invalid YAML root object in config file: {path}")
    return data


def _parse_tier_ceilings(raw: Any) -> tuple[TierCeiling, ...]:
    out: list[TierCeiling] = []
    for item in as_list(raw):
        obj = as_dict(item)
        out.append(TierCeiling(max_tier=int(obj["max_tier"]), ceiling=int(obj["ceiling"])))
    return tuple(out)


def parse_scheduler_config(raw: dict[str, Any]) -> SchedulerConfig:
    limits_raw = as_dict(raw.get("limits"))
    budget_raw = as_dict(raw.get("budget"))
    territory_raw = as_dict(raw.get("territory"))
    emergency_raw = as_dict(raw.get("emergency"))
    roads_raw = as_dict(raw.get("roads"))
    traffic_raw = as_dict(raw.get("traffic"))

    limits = GlobalLimits(
        hard_ceiling=int(limits_raw.get("hard_ceiling", 100)),
        safety_buffer=int(limits_raw.get("safety_buffer", 5)),
    )
    if limits.hard_ceiling < 0 or limits.safety_buffer < 0:
        raise PolicyViolationError("limits.hard_ceiling and limits.safety_buffer must be non-negative")

    defaults = BudgetConfig()
    budget = BudgetConfig(
        base_orders_per_tick=int(budget_raw.get("base_orders_per_tick", defaults.base_orders_per_tick)),
        builders_per_extra_order=int(budget_raw.get("builders_per_extra_order", defaults.builders_per_extra_order)),
        stored_energy_reference=float(budget_raw.get("stored_energy_reference", defaults.stored_energy_reference)),
        stored_factor_min=float(budget_raw.get("stored_factor_min", defaults.stored_factor_min)),
        stored_factor_max=float(budget_raw.get("stored_factor_max", defaults.stored_factor_max)),
        default_energy_capacity=float(budget_raw.get("default_energy_capacity", defaults.default_energy_capacity)),
        tier_ceilings=_parse_tier_ceilings(budget_raw["tier_ceilings"]) if "tier_ceilings" in budget_raw else defaults.tier_ceilings,
        top_tier_ceiling=int(budget_raw.get("top_tier_ceiling", defaults.top_tier_ceiling)),
    )
    if budget.builders_per_extra_order <= 0:
        raise PolicyViolationError("budget.builders_per_extra_order must be positive")
    if budget.stored_energy_reference <= 0:
        raise PolicyViolationError("budget.stored_energy_reference must be positive")
    if budget.stored_factor_min > budget.stored_factor_max:
        raise PolicyViolationError("budget.stored_factor_min must not exceed budget.stored_factor_max")

    territory = TerritoryConfig(size=int(territory_raw.get("size", 50)))
    if territory.size < 3:
        raise PolicyViolationError(f"territory.size too small: {territory.size}")

    emergency = EmergencyConfig(
        enabled=bool(emergency_raw.get("enabled", True)),
        stored_energy_threshold=float(emergency_raw.get("stored_energy_threshold", 20000)),
        source_container_range=int(emergency_raw.get("source_container_range", 2)),
        min_extensions=int(emergency_raw.get("min_extensions", 3)),
    )

    roads = RoadConfig(
        quota_enabled=bool(roads_raw.get("quota_enabled", True)),
        quota_fraction=float(roads_raw.get("quota_fraction", 0.25)),
        quota_max=int(roads_raw.get("quota_max", 2)),
        tight_energy_ratio=float(roads_raw.get("tight_energy_ratio", 0.5)),
        low_tier_gate_enabled=bool(roads_raw.get("low_tier_gate_enabled", True)),
        low_tier_max=int(roads_raw.get("low_tier_max", 3)),
        clear_blocking_roads=bool(roads_raw.get("clear_blocking_roads", True)),
    )

    t = TrafficConfig()
    traffic = TrafficConfig(
        enabled=bool(traffic_raw.get("enabled", t.enabled)),
        min_tier=int(traffic_raw.get("min_tier", t.min_tier)),
        max_roads_per_tick=int(traffic_raw.get("max_roads_per_tick", t.max_roads_per_tick)),
        well_stocked_energy=float(traffic_raw.get("well_stocked_energy", t.well_stocked_energy)),
        well_stocked_ratio=float(traffic_raw.get("well_stocked_ratio", t.well_stocked_ratio)),
        threshold_base=float(traffic_raw.get("threshold_base", t.threshold_base)),
        threshold_per_tier=float(traffic_raw.get("threshold_per_tier", t.threshold_per_tier)),
        threshold_min=float(traffic_raw.get("threshold_min", t.threshold_min)),
        threshold_max=float(traffic_raw.get("threshold_max", t.threshold_max)),
    )

    return SchedulerConfig(
        limits=limits,
        budget=budget,
        territory=territory,
        emergency=emergency,
        roads=roads,
        traffic=traffic,
    )


def load_scheduler_config(path: Path) -> SchedulerConfig:
    raw = _load_yaml(path)
    return parse_scheduler_config(as_dict(raw.get("scheduler", raw)))


def default_config_paths() -> tuple[Path, Path]:
    # Relative to the working directory, overridable from the environment.
    scheduler_path = os.environ.get("COLONYBUILD_SCHEDULER_CONFIG")
    logging_path = os.environ.get("COLONYBUILD_LOGGING_CONFIG")
    return (
        Path(scheduler_path) if scheduler_path else Path.cwd() / "config" / "scheduler.yaml",
        Path(logging_path) if logging_path else Path.cwd() / "config" / "logging.yaml",
    )
