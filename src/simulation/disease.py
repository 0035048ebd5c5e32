"""
Disease Manager for the Dinosaur Ecosystem Simulator.

A single infection shared by all species:
  - Infected agents lose extra energy every tick and may pass the
    infection to each living neighbour.
  - When the infection runs its course the agent recovers (and becomes
    immune for a while) if it has enough energy left, otherwise it dies.
  - Predators that eat infected prey may catch it.
  - Rare spontaneous outbreaks reseed the infection in a living agent.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import numpy as np

from src.core.config import DiseaseConfig
from src.core.dinosaur import Dinosaur

if TYPE_CHECKING:
    from src.core.field import Field
    from src.simulation.tick import TickStats

logger = logging.getLogger(__name__)


class DiseaseManager:
    """
    Applies infection, spread, recovery and immunity rules.

    Attributes:
        config: Disease section of the simulation config.
        rng: Shared random generator.
    """

    def __init__(self, config: DiseaseConfig, rng: np.random.Generator):
        self.config = config
        self.rng = rng

    def random_infection_duration(self) -> int:
        """Uniform draw from [infection_min_duration, infection_max_duration]."""
        cfg = self.config
        return int(self.rng.integers(cfg.infection_min_duration, cfg.infection_max_duration + 1))

    def try_infect(self, dinosaur: Dinosaur, stats: Optional[TickStats] = None) -> bool:
        """Infect an eligible dinosaur with a fresh random duration."""
        if not dinosaur.can_be_infected:
            return False
        dinosaur.infect(self.random_infection_duration())
        if stats is not None:
            stats.new_infections += 1
        return True

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def infect_random(self, field: Field, count: int = 1,
                      stats: Optional[TickStats] = None) -> int:
        """
        Infect up to `count` distinct eligible living dinosaurs chosen at random.

        Returns:
            Number actually infected.
        """
        candidates = [d for d in field.living() if d.can_be_infected]
        if not candidates or count <= 0:
            return 0
        self.rng.shuffle(candidates)
        infected = 0
        for dino in candidates[:count]:
            if self.try_infect(dino, stats):
                infected += 1
        return infected

    def maybe_start_outbreak(self, field: Field, stats: Optional[TickStats] = None) -> bool:
        """
        Roll the spontaneous outbreak chance once. On success pick one living
        dinosaur uniformly at random and infect it if it is eligible.

        Returns:
            True if a new infection started.
        """
        chance = self.config.spontaneous_outbreak_chance
        if chance <= 0 or self.rng.random() >= chance:
            return False
        living = field.living()
        if not living:
            return False
        patient = living[int(self.rng.integers(len(living)))]
        if not self.try_infect(patient, stats):
            return False
        if stats is not None:
            stats.outbreaks += 1
        logger.info("Spontaneous disease outbreak")
        return True

    # ------------------------------------------------------------------
    # Per-tick upkeep
    # ------------------------------------------------------------------

    def tick(self, dinosaur: Dinosaur, field: Field, stats: Optional[TickStats] = None) -> None:
        """
        Advance one dinosaur's disease state by one tick.

        Uninfected agents only count down immunity. Infected agents pay the
        extra drain, try to spread to their neighbours in `field`, and on
        the last tick either recover with immunity or die of the disease.
        """
        if not dinosaur.alive:
            return

        if not dinosaur.infected:
            if dinosaur.immunity_ticks > 0:
                dinosaur.immunity_ticks -= 1
            return

        cfg = self.config
        dinosaur.consume_energy(cfg.extra_energy_loss, cause="disease")
        if not dinosaur.alive:
            return

        self.attempt_adjacent_spread(dinosaur, field, stats)

        dinosaur.infection_ticks -= 1
        if dinosaur.infection_ticks <= 0:
            if dinosaur.energy >= cfg.survive_energy_threshold:
                dinosaur.recover(cfg.immunity_duration)
                if stats is not None:
                    stats.recoveries += 1
            else:
                dinosaur.die("disease")

    def attempt_adjacent_spread(self, source: Dinosaur, field: Field,
                                stats: Optional[TickStats] = None) -> int:
        """
        Independently try to infect each living neighbour of `source`.

        Returns:
            Number of new infections.
        """
        if source.location is None:
            return 0
        spread = 0
        chance = self.config.adjacent_spread_chance
        for loc in field.adjacent(source.location):
            other = field.dinosaur_at(loc)
            if other is None or not other.can_be_infected:
                continue
            if self.rng.random() < chance and self.try_infect(other, stats):
                spread += 1
        return spread

    def on_predator_ate_infected_prey(self, predator: Dinosaur, prey: Dinosaur,
                                      stats: Optional[TickStats] = None) -> bool:
        """Possibly pass the infection from eaten prey to its predator."""
        if not prey.infected or not predator.can_be_infected:
            return False
        if self.rng.random() < self.config.predator_eat_infected_chance:
            return self.try_infect(predator, stats)
        return False
