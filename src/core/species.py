"""
Species identities for the Dinosaur Ecosystem Simulator.

The roster is fixed: three herbivores and three carnivores. Every agent
carries exactly one Species tag, and behaviour is chosen by the tag's Diet
rather than by subclassing.
"""

from __future__ import annotations

from enum import Enum


class Diet(Enum):
    """Capability group of a species."""
    HERBIVORE = "herbivore"
    CARNIVORE = "carnivore"


class Sex(Enum):
    """Sex of an agent, fixed at birth."""
    FEMALE = "female"
    MALE = "male"


class Species(Enum):
    """The six simulated species. Values double as config keys."""
    IGUANADON = "iguanadon"
    DIABLOCERATOPS = "diabloceratops"
    ANKYLOSAURUS = "ankylosaurus"
    ALLOSAURUS = "allosaurus"
    CARNOTAURUS = "carnotaurus"
    DILOPHOSAURUS = "dilophosaurus"

    @property
    def diet(self) -> Diet:
        if self in HERBIVORES:
            return Diet.HERBIVORE
        return Diet.CARNIVORE

    @property
    def is_herbivore(self) -> bool:
        return self.diet is Diet.HERBIVORE

    @property
    def is_carnivore(self) -> bool:
        return self.diet is Diet.CARNIVORE

    @property
    def label(self) -> str:
        """Display name, e.g. 'Iguanadon'."""
        return self.value.capitalize()

    @classmethod
    def from_key(cls, key: str) -> Species:
        """
        Look up a species by its config key (case-insensitive).

        Raises:
            KeyError: If the key names no species.
        """
        try:
            return cls(key.lower())
        except ValueError:
            raise KeyError(f"Unknown species '{key}'") from None


HERBIVORES: tuple[Species, ...] = (
    Species.IGUANADON,
    Species.DIABLOCERATOPS,
    Species.ANKYLOSAURUS,
)

# Spawn rolls walk this order, so it is part of the reproducible sequence.
CARNIVORES: tuple[Species, ...] = (
    Species.ALLOSAURUS,
    Species.CARNOTAURUS,
    Species.DILOPHOSAURUS,
)
