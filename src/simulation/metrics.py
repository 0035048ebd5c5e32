"""
KPI Metrics collection for the Dinosaur Ecosystem Simulator.

MetricsCollector gathers per-tick Key Performance Indicators (KPIs) from the
engine state and the tick's statistics. It produces a flat dictionary per
tick suitable for CSV export and analysis.
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

import numpy as np

from src.core.species import Species
from src.simulation.tick import TickStats

if TYPE_CHECKING:
    from src.simulation.engine import SimulationEngine


# ---------------------------------------------------------------------------
# MetricsCollector
# ---------------------------------------------------------------------------

class MetricsCollector:
    """
    Collects and computes KPIs per tick.

    Usage:
      1. After each tick, call `collect(engine)` (or hook it to engine.on_tick)
      2. Resulting dict is appended to `history`
      3. Call `get_history()` to retrieve all collected rows

    Attributes:
        history: List of KPI dicts, one per tick.
        keep_history: If False, only the last row is kept (long unattended runs).
    """

    def __init__(self, keep_history: bool = True):
        self.keep_history = keep_history
        self.history: list[dict] = []

    def collect(self, engine: SimulationEngine, tick_stats: Optional[TickStats] = None) -> dict:
        """
        Compute all KPIs for the engine's current state.

        Args:
            engine: Engine after the tick has been committed.
            tick_stats: Counters for the tick. None = engine.tick_stats.

        Returns:
            Dict of KPI_name -> value.
        """
        stats = tick_stats if tick_stats is not None else engine.tick_stats
        alive = engine.field.living()
        counts = engine.species_counts()
        kpis: dict = {}

        # --- Environment ---
        kpis["step"] = engine.current_step
        kpis["time_of_day"] = engine.time_of_day.value
        kpis["weather"] = engine.weather_state.value
        kpis["heatwave_cycles"] = engine.weather.consecutive_heatwave_cycles
        kpis["vegetation_cap"] = engine.weather.vegetation_cap()

        # --- Population ---
        for species in Species:
            kpis[f"count_{species.value}"] = counts[species]
        kpis["herbivores"] = sum(n for s, n in counts.items() if s.is_herbivore)
        kpis["carnivores"] = sum(n for s, n in counts.items() if s.is_carnivore)
        kpis["alive_count"] = len(alive)
        kpis["infected_count"] = sum(1 for d in alive if d.infected)
        kpis["viable"] = engine.is_viable

        # --- Energy ---
        if alive:
            energies = np.array([d.energy for d in alive])
            kpis["avg_energy"] = float(np.mean(energies))
            kpis["min_energy"] = int(np.min(energies))
        else:
            kpis["avg_energy"] = 0.0
            kpis["min_energy"] = 0

        # --- Vegetation ---
        kpis["avg_vegetation"] = engine.field.mean_vegetation

        # --- Births / deaths / disease (from tick stats) ---
        kpis["births"] = stats.births
        kpis["deaths_age"] = stats.deaths_age
        kpis["deaths_starvation"] = stats.deaths_starvation
        kpis["deaths_overcrowding"] = stats.deaths_overcrowding
        kpis["deaths_predation"] = stats.deaths_predation
        kpis["deaths_disease"] = stats.deaths_disease
        kpis["deaths_total"] = stats.total_deaths
        kpis["kills"] = stats.kills
        kpis["new_infections"] = stats.new_infections
        kpis["recoveries"] = stats.recoveries

        if self.keep_history:
            self.history.append(kpis)
        else:
            self.history = [kpis]
        return kpis

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_history(self) -> list[dict]:
        """Return all collected KPI rows."""
        return list(self.history)

    def get_last(self) -> Optional[dict]:
        """Return the last collected KPI row, or None."""
        return self.history[-1] if self.history else None

    def get_kpi_series(self, kpi_name: str) -> list:
        """Extract a single KPI as a list across all ticks."""
        return [row[kpi_name] for row in self.history if kpi_name in row]

    @staticmethod
    def kpi_names() -> list[str]:
        """Return the ordered list of all KPI names."""
        return [
            "step",
            "time_of_day",
            "weather",
            "heatwave_cycles",
            "vegetation_cap",
            *(f"count_{s.value}" for s in Species),
            "herbivores",
            "carnivores",
            "alive_count",
            "infected_count",
            "viable",
            "avg_energy",
            "min_energy",
            "avg_vegetation",
            "births",
            "deaths_age",
            "deaths_starvation",
            "deaths_overcrowding",
            "deaths_predation",
            "deaths_disease",
            "deaths_total",
            "kills",
            "new_infections",
            "recoveries",
        ]
