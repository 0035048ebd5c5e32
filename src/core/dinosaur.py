"""
Dinosaur (Agent) for the Dinosaur Ecosystem Simulator.

A single agent type tagged with its Species. Shared state (position, sex,
age, energy, infection timers) lives here; what an agent does each tick is
decided by the behaviour functions in `src.simulation.behavior`, chosen by
the species' Diet.

Energy is an integer in [0, max_energy]. The energy setter clamps, and
clamping to 0 kills the agent.
"""

from __future__ import annotations

from typing import Iterator, Optional

import numpy as np

from src.core.config import SpeciesTuning
from src.core.location import Location
from src.core.species import Sex, Species
from src.utils.numeric import clamp_int


# Fallback ID counter for dinosaurs created without an engine id source
_next_dinosaur_id: int = 0


def _get_next_id() -> int:
    """Generate a globally unique dinosaur ID."""
    global _next_dinosaur_id
    did = _next_dinosaur_id
    _next_dinosaur_id += 1
    return did


def reset_dinosaur_id_counter() -> None:
    """Reset the fallback ID counter used by hand-built dinosaurs (tests)."""
    global _next_dinosaur_id
    _next_dinosaur_id = 0


class Dinosaur:
    """
    An agent on the simulation field.

    Attributes:
        id: Identifier, unique within the engine that created it.
        species: Species tag; selects behaviour and tuning.
        sex: Fixed at birth.
        location: Current cell, or None once dead.
        alive: Whether the agent is alive.
        age: Ticks since birth.
        max_energy: Energy ceiling, fixed at birth from the species tuning.
        infected: Whether the agent currently carries the disease.
        infection_ticks: Ticks of infection remaining.
        immunity_ticks: Ticks of post-recovery immunity remaining.
        death_cause: Reason for death (None if alive).
    """

    __slots__ = (
        "id", "species", "sex", "location", "alive", "age", "max_energy",
        "_energy", "infected", "infection_ticks", "immunity_ticks", "death_cause",
    )

    def __init__(
        self,
        species: Species,
        location: Location,
        max_energy: int,
        sex: Sex,
        age: int = 0,
        energy: Optional[int] = None,
        dino_id: Optional[int] = None,
    ):
        """
        Create a dinosaur.

        Args:
            species: Species tag.
            location: Starting cell.
            max_energy: Energy ceiling for this individual.
            sex: Female or male.
            age: Starting age in ticks.
            energy: Starting energy. None = max_energy.
            dino_id: Identifier. None = next value of the module counter.
        """
        self.id = dino_id if dino_id is not None else _get_next_id()
        self.species = species
        self.sex = sex
        self.location: Optional[Location] = location
        self.alive = True
        self.age = age
        self.max_energy = max_energy
        self._energy = max_energy
        self.infected = False
        self.infection_ticks = 0
        self.immunity_ticks = 0
        self.death_cause: Optional[str] = None
        if energy is not None:
            self.set_energy(energy, cause="starvation")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def seed(
        cls,
        species: Species,
        location: Location,
        tuning: SpeciesTuning,
        rng: np.random.Generator,
        ids: Optional[Iterator[int]] = None,
    ) -> Dinosaur:
        """
        Create a seed individual for initial population.

        Age is drawn from [0, seed_max_age) and energy from the species'
        seed_energy_range (fractions of max energy), never below 1.
        """
        sex = _random_sex(rng)
        age = int(rng.integers(0, tuning.seed_max_age)) if tuning.seed_max_age > 0 else 0
        low = int(tuning.max_energy * tuning.seed_energy_range[0])
        high = int(tuning.max_energy * tuning.seed_energy_range[1])
        energy = low if high <= low else int(rng.integers(low, high + 1))
        return cls(species, location, tuning.max_energy, sex, age=age, energy=max(1, energy),
                   dino_id=_take_id(ids))

    @classmethod
    def newborn(
        cls,
        species: Species,
        location: Location,
        tuning: SpeciesTuning,
        rng: np.random.Generator,
        ids: Optional[Iterator[int]] = None,
    ) -> Dinosaur:
        """Create a newborn: age 0, full energy."""
        return cls(species, location, tuning.max_energy, _random_sex(rng), dino_id=_take_id(ids))

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def energy(self) -> int:
        return self._energy

    @energy.setter
    def energy(self, value: int) -> None:
        self.set_energy(value, cause="starvation")

    def set_energy(self, value: int, cause: str) -> None:
        """
        Set energy, clamped to [0, max_energy].

        Reaching 0 kills the agent with the given cause.
        """
        self._energy = clamp_int(int(value), 0, self.max_energy)
        if self._energy == 0 and self.alive:
            self.die(cause)

    @property
    def is_female(self) -> bool:
        return self.sex is Sex.FEMALE

    @property
    def is_male(self) -> bool:
        return self.sex is Sex.MALE

    @property
    def is_herbivore(self) -> bool:
        return self.species.is_herbivore

    @property
    def is_carnivore(self) -> bool:
        return self.species.is_carnivore

    @property
    def can_be_infected(self) -> bool:
        """Alive, not already infected, and not immune."""
        return self.alive and not self.infected and self.immunity_ticks <= 0

    # ------------------------------------------------------------------
    # Energy
    # ------------------------------------------------------------------

    def consume_energy(self, amount: int, cause: str = "starvation") -> None:
        """Lose energy; dying with `cause` if it hits zero."""
        self.set_energy(self._energy - amount, cause=cause)

    def gain_energy(self, amount: int) -> int:
        """
        Add energy, capped at max_energy.

        Returns:
            Energy actually gained.
        """
        old = self._energy
        self.set_energy(self._energy + amount, cause="starvation")
        return self._energy - old

    def restore_energy(self) -> None:
        """Refill energy to max (after a kill)."""
        self._energy = self.max_energy

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def increment_age(self, max_age: int) -> None:
        """Age one tick; die of old age past max_age."""
        self.age += 1
        if self.age > max_age:
            self.die("age")

    def die(self, cause: str) -> None:
        """
        Mark this dinosaur as dead and detach it from the field.

        Args:
            cause: "age", "starvation", "overcrowding", "predation" or "disease".
        """
        if not self.alive:
            return
        self.alive = False
        self.location = None
        self.death_cause = cause

    # ------------------------------------------------------------------
    # Disease state
    # ------------------------------------------------------------------

    def infect(self, duration: int) -> bool:
        """
        Infect this dinosaur for `duration` ticks if eligible.

        Returns:
            True if the infection took hold.
        """
        if not self.can_be_infected:
            return False
        self.infected = True
        self.infection_ticks = duration
        return True

    def recover(self, immunity_duration: int) -> None:
        """Clear infection and start an immunity window."""
        self.infected = False
        self.infection_ticks = 0
        self.immunity_ticks = immunity_duration

    # ------------------------------------------------------------------
    # Representation
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        status = "alive" if self.alive else f"dead({self.death_cause})"
        return (
            f"Dinosaur(id={self.id}, {self.species.label}, {self.sex.value}, "
            f"pos={self.location}, age={self.age}, "
            f"energy={self._energy}/{self.max_energy}, "
            f"infected={self.infected}, status={status})"
        )

    def to_dict(self) -> dict:
        """Serialize dinosaur state for snapshots/logging."""
        return {
            "id": self.id,
            "species": self.species.value,
            "sex": self.sex.value,
            "row": self.location.row if self.location else None,
            "col": self.location.col if self.location else None,
            "alive": self.alive,
            "age": self.age,
            "energy": self._energy,
            "max_energy": self.max_energy,
            "infected": self.infected,
            "infection_ticks": self.infection_ticks,
            "immunity_ticks": self.immunity_ticks,
            "death_cause": self.death_cause,
        }


def _random_sex(rng: np.random.Generator) -> Sex:
    return Sex.FEMALE if rng.random() < 0.5 else Sex.MALE


def _take_id(ids: Optional[Iterator[int]]) -> Optional[int]:
    return next(ids) if ids is not None else None
