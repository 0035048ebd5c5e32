"""
Simulation Engine - main tick loop for the Dinosaur Ecosystem Simulator.

One tick:
  1. Advance the environment: step counter, day/night phase, weather.
  2. Build a fresh next Field carrying the current vegetation forward.
  3. Disease upkeep for every living agent in the current field (after a
     single roll for a spontaneous outbreak).
  4. Every living agent acts, reading the current field and committing
     into the next one.
  5. Regrow vegetation in the next field, drop anything that died after
     committing, verify occupancy, and swap fields.

Configuration writes are staged and applied at the start of the next tick,
so a tick always runs against one consistent config.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

import numpy as np

from src.core.config import SimConfig, SpeciesTuning, ensure_valid, get_default_config
from src.core.dinosaur import Dinosaur
from src.core.field import Field
from src.core.location import Location
from src.core.species import CARNIVORES, HERBIVORES, Species
from src.simulation.behavior import act
from src.simulation.disease import DiseaseManager
from src.simulation.tick import TickContext, TickStats
from src.simulation.time_of_day import TimeManager, TimeOfDay
from src.simulation.weather import WeatherManager, WeatherState

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Run result
# ---------------------------------------------------------------------------

@dataclass
class RunResult:
    """Result of a multi-tick run."""
    seed: int
    steps_requested: int
    steps_run: int = 0
    final_step: int = 0
    viable: bool = True
    extinction_step: Optional[int] = None
    final_counts: dict[str, int] = field(default_factory=dict)
    tick_stats_history: list[TickStats] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Simulation Engine
# ---------------------------------------------------------------------------

class SimulationEngine:
    """
    Core simulation engine.

    Attributes:
        config: Configuration in effect for the current tick.
        seed: Seed the RNG was created with.
        rng: The single random generator shared by every component.
        field: The current (committed) Field.
        time: Day/night phase tracker.
        weather: Weather state machine.
        disease: Disease rules.
        tick_stats: Statistics for the most recent tick.
        extinction_step: Step at which the run stopped being viable (None if viable).
        on_tick: Optional callback invoked after each tick(step, engine).
    """

    def __init__(
        self,
        config: Optional[SimConfig] = None,
        seed: Optional[int] = None,
        populate: bool = True,
    ):
        """
        Create a simulation engine.

        Args:
            config: Simulation configuration. None = defaults.
            seed: Random seed override. None = use config.world.seed.
            populate: Populate the field immediately (False leaves it empty,
                      with vegetation, for hand-built scenarios).

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config if config is not None else get_default_config()
        if seed is not None:
            self.config.world.seed = seed
        ensure_valid(self.config)

        self.seed = self.config.world.seed
        self.rng = np.random.default_rng(self.seed)

        self.time = TimeManager(self.config.time.day_length)
        self.weather = WeatherManager(self.config, self.rng)
        self.disease = DiseaseManager(self.config.disease, self.rng)

        self.step_count = 0
        self._ids: Iterator[int] = itertools.count()
        self.field = self._new_field(self.config.world.depth, self.config.world.width)
        self.tick_stats = TickStats()
        self.extinction_step: Optional[int] = None

        self._tick_lock = threading.Lock()
        self._pending_config: Optional[SimConfig] = None

        # Callbacks
        self.on_tick: Optional[Callable[[int, "SimulationEngine"], None]] = None

        self.reset(populate=populate)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _new_field(self, depth: int, width: int) -> Field:
        return Field(depth, width, self.rng, self.config.vegetation)

    def reset(self, populate: bool = True) -> None:
        """
        Start over: new field, fresh vegetation, time and weather at their
        initial states, then population and initial infections.

        The RNG is only reseeded when a staged config changed the seed; build
        a new engine for an exact replay.
        """
        with self._tick_lock:
            self._apply_pending_config()
            if self.config.world.seed != self.seed:
                self._reseed(self.config.world.seed)
            self._ids = itertools.count()
            self.step_count = 0
            self.extinction_step = None
            self.tick_stats = TickStats()
            self.time.reset()
            self.weather.reset()

            self.field = self._new_field(self.config.world.depth, self.config.world.width)
            self.field.randomize_vegetation()
            if populate:
                self.populate()
                infected = self.disease.infect_random(
                    self.field, self.config.disease.initial_infections,
                )
            else:
                infected = 0

        logger.info(
            "Reset %dx%d field: %d dinosaurs, %d infected",
            self.field.depth, self.field.width, len(self.field), infected,
        )

    def _reseed(self, seed: int) -> None:
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self.weather.rng = self.rng
        self.disease.rng = self.rng
        logger.info("Reseeded random generator with %d", seed)

    def populate(self) -> int:
        """
        Fill the field cell by cell.

        Each cell first rolls for a carnivore over the cumulative carnivore
        spawn probabilities; if none is chosen, an independent roll is made
        over the herbivores. A cell may stay empty.

        Returns:
            Number of dinosaurs placed.
        """
        spawn = self.config.spawn
        placed = 0
        for row in range(self.field.depth):
            for col in range(self.field.width):
                species = _roll_species(self.rng, CARNIVORES, spawn.probability)
                if species is None:
                    species = _roll_species(self.rng, HERBIVORES, spawn.probability)
                if species is None:
                    continue
                loc = Location(row, col)
                dino = Dinosaur.seed(species, loc, self.config.tuning(species), self.rng, self._ids)
                self.field.place(dino, loc)
                placed += 1
        return placed

    # ------------------------------------------------------------------
    # Core tick
    # ------------------------------------------------------------------

    def step(self) -> TickStats:
        """
        Execute exactly one simulation tick.

        Returns:
            TickStats for this tick.

        Raises:
            RuntimeError: If the committed field breaks the occupancy invariant.
        """
        with self._tick_lock:
            self._apply_pending_config()
            stats = TickStats()

            # --- 1. Environment ---
            self.step_count += 1
            time_of_day = self.time.update_for_step(self.step_count)
            self.weather.update_one_step()

            # --- 2. Next field ---
            current = self.field
            next_field = self._new_field(current.depth, current.width)
            next_field.copy_vegetation_from(current)

            # --- 3. Disease upkeep ---
            self.disease.maybe_start_outbreak(current, stats)
            agents = current.living()
            for dino in agents:
                self.disease.tick(dino, current, stats)

            # --- 4. Agents act ---
            ctx = TickContext(
                config=self.config,
                rng=self.rng,
                time_of_day=time_of_day,
                weather=self.weather,
                disease=self.disease,
                stats=stats,
                ids=self._ids,
            )
            for dino in agents:
                act(dino, current, next_field, ctx)

            # --- 5. Regrow, clean up, swap ---
            next_field.regrow_vegetation(time_of_day, self.weather)
            for dino in agents:
                if not dino.alive:
                    stats.record_death(dino.death_cause)
            next_field.remove_dead()

            errors = next_field.occupancy_errors()
            if errors:
                raise RuntimeError(
                    f"Occupancy invariant broken at step {self.step_count}: " + "; ".join(errors[:5])
                )

            self.field = next_field
            self.tick_stats = stats

            if self.extinction_step is None and not self.field.is_viable():
                self.extinction_step = self.step_count
                logger.info("Ecosystem no longer viable at step %d", self.step_count)

        if self.on_tick is not None:
            self.on_tick(self.step_count, self)

        return stats

    # ------------------------------------------------------------------
    # Multi-tick run
    # ------------------------------------------------------------------

    def run(self, steps: int) -> RunResult:
        """
        Advance up to `steps` ticks, stopping early once non-viable.

        Args:
            steps: Maximum number of ticks.

        Returns:
            RunResult with summary statistics.
        """
        result = RunResult(seed=self.seed, steps_requested=steps)
        for _ in range(steps):
            if not self.is_viable:
                break
            result.tick_stats_history.append(self.step())
            result.steps_run += 1

        result.final_step = self.step_count
        result.viable = self.is_viable
        result.extinction_step = self.extinction_step
        result.final_counts = {s.value: n for s, n in self.species_counts().items()}
        return result

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def infect_random(self) -> bool:
        """Force-infect one eligible living dinosaur. Returns True on success."""
        with self._tick_lock:
            return self.disease.infect_random(self.field, 1) > 0

    def update_config(self, config: SimConfig) -> None:
        """
        Stage a new configuration for the next tick.

        Grid dimensions and the seed only take effect on reset().

        Raises:
            ValueError: If the configuration is invalid (nothing is staged).
        """
        ensure_valid(config)
        self._pending_config = config.copy()

    def set_species_tuning(self, species: Species, tuning: SpeciesTuning) -> None:
        """
        Replace one species' tuning, effective from the next tick.

        Raises:
            ValueError: If the tuning is invalid.
        """
        base = self._pending_config if self._pending_config is not None else self.config
        config = base.copy()
        config.species[species.value] = tuning
        self.update_config(config)

    def _apply_pending_config(self) -> None:
        pending = self._pending_config
        if pending is None:
            return
        self._pending_config = None
        self.config = pending
        self.time.day_length = pending.time.day_length
        self.weather.config = pending
        self.disease.config = pending.disease
        self.field.vegetation_config = pending.vegetation
        logger.debug("Applied staged configuration at step %d", self.step_count)

    # ------------------------------------------------------------------
    # Query surface
    # ------------------------------------------------------------------

    @property
    def is_viable(self) -> bool:
        """At least one living herbivore and one living carnivore."""
        return self.field.is_viable()

    def species_counts(self) -> dict[Species, int]:
        """Living dinosaurs per species."""
        return self.field.species_counts()

    @property
    def current_step(self) -> int:
        return self.step_count

    @property
    def time_of_day(self) -> TimeOfDay:
        return self.time.current

    @property
    def weather_state(self) -> WeatherState:
        return self.weather.current

    @property
    def alive_count(self) -> int:
        return len(self.field.living())

    @property
    def infected_count(self) -> int:
        return sum(1 for d in self.field.living() if d.infected)

    def snapshot(self) -> dict:
        """Full engine state as plain Python data."""
        return {
            "step": self.step_count,
            "seed": self.seed,
            "time_of_day": self.time.current.value,
            "weather": self.weather.get_status(),
            "viable": self.is_viable,
            "counts": {s.value: n for s, n in self.species_counts().items()},
            "field": self.field.to_dict(),
        }

    def __repr__(self) -> str:
        return (
            f"SimulationEngine(step={self.step_count}, "
            f"alive={self.alive_count}, "
            f"time={self.time.current.value}, "
            f"weather={self.weather.current.value})"
        )


def _roll_species(
    rng: np.random.Generator,
    candidates: tuple[Species, ...],
    probability: Callable[[Species], float],
) -> Optional[Species]:
    """One uniform draw against the cumulative probabilities of `candidates`."""
    r = rng.random()
    cumulative = 0.0
    for species in candidates:
        cumulative += probability(species)
        if r < cumulative:
            return species
    return None
