"""Per-territory, per-tick order budget.

The budget scales with builder population and the territory's energy
position, is clamped by a per-tier ceiling to bound world mutation cost, and
never exceeds the global headroom passed in by the caller.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from colonybuild.config.settings import BudgetConfig, GlobalLimits
from colonybuild.utils import clamp
from colonybuild.world.interfaces import TerritorySignals


@dataclass(frozen=True)
class EnergyPosition:
    ratio: float
    stored_factor: float
    stored: float


def energy_position(signals: TerritorySignals, config: BudgetConfig) -> EnergyPosition:
    capacity = signals.energy_capacity if signals.energy_capacity is not None else config.default_energy_capacity
    ratio = clamp(signals.energy_available / max(1.0, capacity), 0.0, 1.0)
    stored_factor = clamp(
        signals.energy_stored / config.stored_energy_reference,
        config.stored_factor_min,
        config.stored_factor_max,
    )
    return EnergyPosition(ratio=ratio, stored_factor=stored_factor, stored=signals.energy_stored)


def remaining_global(outstanding: int, limits: GlobalLimits) -> int:
    return max(0, limits.hard_ceiling - limits.safety_buffer - outstanding)


def compute_budget(tier: int, signals: TerritorySignals, headroom: int, config: BudgetConfig) -> int:
    if headroom <= 0:
        return 0

    target = config.base_orders_per_tick + max(0, signals.builders) // config.builders_per_extra_order

    energy = energy_position(signals, config)
    target = math.floor(target * (0.5 + 0.5 * energy.ratio) * energy.stored_factor)

    target = min(target, config.ceiling_for(tier))
    return min(max(1, target), headroom)
