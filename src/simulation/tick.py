"""
Per-tick bookkeeping shared by the engine and the behaviour functions.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Iterator, Optional

import numpy as np

from src.core.config import SimConfig, SpeciesTuning
from src.core.species import Species
from src.simulation.time_of_day import TimeOfDay
from src.simulation.weather import WeatherManager

if TYPE_CHECKING:
    from src.simulation.disease import DiseaseManager


@dataclass
class TickStats:
    """Statistics collected during a single tick."""
    births: int = 0
    deaths_age: int = 0
    deaths_starvation: int = 0
    deaths_overcrowding: int = 0
    deaths_predation: int = 0
    deaths_disease: int = 0
    kills: int = 0
    hunts_failed: int = 0
    new_infections: int = 0
    recoveries: int = 0
    outbreaks: int = 0

    @property
    def total_deaths(self) -> int:
        return (self.deaths_age + self.deaths_starvation + self.deaths_overcrowding
                + self.deaths_predation + self.deaths_disease)

    def record_death(self, cause: str) -> None:
        """Increment the counter for a death cause (unknown causes are ignored)."""
        attr = f"deaths_{cause}"
        if hasattr(self, attr):
            setattr(self, attr, getattr(self, attr) + 1)

    def to_dict(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class TickContext:
    """
    Everything an agent may read while acting in one tick.

    Attributes:
        config: Simulation config (tuning table included).
        rng: Shared random generator.
        time_of_day: Phase for this tick.
        weather: Weather manager (effects only; agents never change it).
        disease: Disease manager, for predation transmission.
        stats: Counters for this tick.
        ids: Engine id source for newborns. None = module fallback counter.
    """
    config: SimConfig
    rng: np.random.Generator
    time_of_day: TimeOfDay
    weather: WeatherManager
    disease: DiseaseManager
    stats: TickStats = field(default_factory=TickStats)
    ids: Optional[Iterator[int]] = None

    def tuning(self, species: Species) -> SpeciesTuning:
        return self.config.tuning(species)

    @property
    def is_day(self) -> bool:
        return self.time_of_day is TimeOfDay.DAY
