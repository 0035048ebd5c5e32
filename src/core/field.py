"""
Field (GridWorld) for the Dinosaur Ecosystem Simulator.

A bounded depth x width grid. Each cell holds at most one dinosaur and,
independently, a vegetation amount in [0, max_value] stored in a NumPy
array.

The engine builds a fresh Field every tick and copies the vegetation layer
forward; agents read the frozen current field and write into the next one.
Neighbour queries return shuffled lists so that agents competing for the
same cell or prey have no directional bias.
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Optional

import numpy as np
from numpy.typing import NDArray

from src.core.config import VegetationConfig
from src.core.dinosaur import Dinosaur
from src.core.location import Location
from src.core.species import Species
from src.simulation.time_of_day import TimeOfDay
from src.utils.spatial import moore_neighbourhood, square_ring

if TYPE_CHECKING:
    from src.simulation.weather import WeatherManager


class Field:
    """
    The simulation grid: occupancy plus a vegetation layer.

    Occupancy:
      - _cells[Location] -> Dinosaur, insertion-ordered so iteration is
        reproducible for a given seed.

    Attributes:
        depth: Number of rows.
        width: Number of columns.
        vegetation: (depth, width) int array of vegetation amounts.
        rng: Shared seeded random generator.
    """

    def __init__(
        self,
        depth: int,
        width: int,
        rng: np.random.Generator,
        vegetation_config: Optional[VegetationConfig] = None,
    ):
        """
        Create an empty field with zero vegetation.

        Args:
            depth, width: Grid dimensions, both >= 1.
            rng: Shared random generator.
            vegetation_config: Regrowth parameters. None = defaults.

        Raises:
            ValueError: If either dimension is not positive.
        """
        if depth <= 0 or width <= 0:
            raise ValueError(f"Field dimensions must be positive, got {depth}x{width}")
        self.depth = depth
        self.width = width
        self.rng = rng
        self.vegetation_config = vegetation_config or VegetationConfig()
        self.vegetation: NDArray[np.int64] = np.zeros((depth, width), dtype=np.int64)
        self._cells: dict[Location, Dinosaur] = {}

    # ------------------------------------------------------------------
    # Occupancy
    # ------------------------------------------------------------------

    def place(self, dinosaur: Dinosaur, location: Location) -> None:
        """
        Put a dinosaur at a location, replacing any previous occupant.

        Raises:
            ValueError: If the location is outside the grid.
        """
        if not location.in_bounds(self.depth, self.width):
            raise ValueError(f"{location} is outside the {self.depth}x{self.width} field")
        self._cells.pop(location, None)
        self._cells[location] = dinosaur

    def dinosaur_at(self, location: Location) -> Optional[Dinosaur]:
        """Occupant of a cell (alive or dead), or None."""
        return self._cells.get(location)

    def is_free(self, location: Location) -> bool:
        """True if the cell is empty or holds a dead dinosaur."""
        occupant = self._cells.get(location)
        return occupant is None or not occupant.alive

    def adjacent(self, location: Location) -> list[Location]:
        """The 8-neighbourhood of a cell, bounds-clipped, in random order."""
        cells = moore_neighbourhood(location, self.depth, self.width)
        self.rng.shuffle(cells)
        return cells

    def free_adjacent(self, location: Location) -> list[Location]:
        """Shuffled adjacent cells that are empty or hold a dead dinosaur."""
        return [loc for loc in self.adjacent(location) if self.is_free(loc)]

    def within_radius(self, center: Location, radius: int) -> list[Location]:
        """Cells within Chebyshev distance `radius`, center excluded, shuffled."""
        cells = square_ring(center, radius, self.depth, self.width)
        self.rng.shuffle(cells)
        return cells

    def dinosaurs(self) -> list[Dinosaur]:
        """All placed dinosaurs in placement order (snapshot, safe to iterate)."""
        return list(self._cells.values())

    def living(self) -> list[Dinosaur]:
        """Placed dinosaurs that are still alive."""
        return [d for d in self._cells.values() if d.alive]

    def remove_dead(self) -> int:
        """
        Drop dead occupants (e.g. prey killed after it moved).

        Returns:
            Number of cells cleared.
        """
        dead = [loc for loc, d in self._cells.items() if not d.alive]
        for loc in dead:
            del self._cells[loc]
        return len(dead)

    def clear(self) -> None:
        """Remove every dinosaur. Vegetation is left untouched."""
        self._cells.clear()

    # ------------------------------------------------------------------
    # Population queries
    # ------------------------------------------------------------------

    def species_counts(self) -> dict[Species, int]:
        """Living dinosaurs per species (every species present, possibly 0)."""
        counts = Counter(d.species for d in self._cells.values() if d.alive)
        return {s: counts.get(s, 0) for s in Species}

    def is_viable(self) -> bool:
        """True iff at least one living herbivore and one living carnivore exist."""
        herb_found = False
        carn_found = False
        for d in self._cells.values():
            if not d.alive:
                continue
            if d.is_herbivore:
                herb_found = True
            else:
                carn_found = True
            if herb_found and carn_found:
                return True
        return False

    def occupancy_errors(self) -> list[str]:
        """
        Check the occupancy invariant.

        Every occupied cell must hold a live dinosaur whose own location is
        that cell, and no dinosaur may occupy two cells.

        Returns:
            List of violations (empty = consistent).
        """
        errors = []
        seen: set[int] = set()
        for loc, d in self._cells.items():
            if not d.alive:
                errors.append(f"{loc} holds dead dinosaur {d.id}")
            elif d.location != loc:
                errors.append(f"{loc} holds dinosaur {d.id} which believes it is at {d.location}")
            if id(d) in seen:
                errors.append(f"dinosaur {d.id} occupies more than one cell")
            seen.add(id(d))
        return errors

    # ------------------------------------------------------------------
    # Vegetation
    # ------------------------------------------------------------------

    def vegetation_at(self, location: Location) -> int:
        """Vegetation amount at a cell."""
        return int(self.vegetation[location.row, location.col])

    def set_vegetation(self, location: Location, amount: int) -> None:
        cfg = self.vegetation_config
        self.vegetation[location.row, location.col] = max(0, min(cfg.max_value, amount))

    def consume_vegetation(self, location: Location, amount: int) -> int:
        """
        Eat from a cell.

        Returns:
            min(available, amount); that much is removed from the cell.
        """
        available = int(self.vegetation[location.row, location.col])
        taken = min(available, max(0, amount))
        self.vegetation[location.row, location.col] = available - taken
        return taken

    def randomize_vegetation(self) -> None:
        """Fill every cell uniformly from [initial_min, initial_max]."""
        cfg = self.vegetation_config
        self.vegetation = self.rng.integers(
            cfg.initial_min, cfg.initial_max + 1,
            size=(self.depth, self.width),
        ).astype(np.int64)

    def copy_vegetation_from(self, other: Field) -> None:
        """Copy another field's vegetation layer into this one."""
        if other.vegetation.shape != self.vegetation.shape:
            raise ValueError(
                f"Cannot copy vegetation from {other.depth}x{other.width} "
                f"into {self.depth}x{self.width}"
            )
        self.vegetation = other.vegetation.copy()

    def regrow_vegetation(self, time_of_day: TimeOfDay, weather: WeatherManager) -> None:
        """
        Regrow vegetation for one tick.

        Per cell:
          1. Under a heatwave, cells above the cap lose 1 (never below cap).
          2. With probability regrow_chance * weather multiplier (capped at
             max_regrow_chance) the cell grows by the day/night amount, with
             +1 under a strong multiplier and nothing under a weak one, up
             to the cap.
          3. Under a heatwave, cells below the cap get a small chance of +1
             so scorched ground can recover.
        """
        cfg = self.vegetation_config
        mult = weather.regrow_multiplier()
        cap = weather.vegetation_cap()
        heatwave = weather.is_heatwave

        p = min(cfg.regrow_chance * mult, cfg.max_regrow_chance)

        grow = cfg.regrow_amount_night if time_of_day is TimeOfDay.NIGHT else cfg.regrow_amount_day
        if mult >= cfg.boost_multiplier:
            grow += 1
        if mult <= cfg.stall_multiplier:
            grow = 0

        veg = self.vegetation
        if heatwave:
            over = veg > cap
            veg[over] = np.maximum(cap, veg[over] - 1)

        grows = self.rng.random(veg.shape) < p
        veg[grows] = np.minimum(veg[grows] + grow, cap)

        if heatwave:
            recover = (veg < cap) & (self.rng.random(veg.shape) < cfg.heatwave_recovery_chance)
            veg[recover] += 1

    @property
    def mean_vegetation(self) -> float:
        return float(np.mean(self.vegetation))

    # ------------------------------------------------------------------
    # Serialization / representation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Occupancy and vegetation as plain Python data."""
        return {
            "depth": self.depth,
            "width": self.width,
            "dinosaurs": [d.to_dict() for d in self._cells.values() if d.alive],
            "vegetation": self.vegetation.tolist(),
        }

    def __len__(self) -> int:
        return len(self._cells)

    def __repr__(self) -> str:
        return (
            f"Field(size={self.depth}x{self.width}, "
            f"dinosaurs={len(self.living())}, "
            f"mean_vegetation={self.mean_vegetation:.1f})"
        )
