"""
Configuration system for the Dinosaur Ecosystem Simulator.

Provides a hierarchical dataclass-based config with JSON serialization,
validation, and defaults for every simulation parameter, including the
per-species tuning table.
"""

from __future__ import annotations

import json
import warnings
from copy import deepcopy
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any

from src.core.species import CARNIVORES, HERBIVORES, Species


def _check_probability(errors: list[str], name: str, value: float) -> None:
    if not (0.0 <= value <= 1.0):
        errors.append(f"{name} must be in [0, 1], got {value}")


def _check_non_negative(errors: list[str], name: str, value: float) -> None:
    if value < 0:
        errors.append(f"{name} must be >= 0, got {value}")


# ---------------------------------------------------------------------------
# Per-species tuning
# ---------------------------------------------------------------------------

@dataclass
class SpeciesTuning:
    """
    Constant parameters for one species.

    Herbivore-only fields are ignored for carnivores and vice versa;
    both groups share the energy, ageing and breeding fields.
    """
    # Energy and ageing
    max_energy: int = 20
    step_energy_loss: int = 1
    max_age: int = 60
    seed_max_age: int = 40                # seed agents start with age in [0, seed_max_age)
    seed_energy_range: list[float] = field(default_factory=lambda: [0.6, 0.6])

    # Breeding
    breeding_age: int = 5
    breeding_probability: float = 0.10
    max_litter_size: int = 3
    breeding_energy_threshold: int = 10
    energy_cost_per_baby: int = 1

    # Herbivore
    bite_size: int = 25
    energy_per_veg: int = 6
    min_vegetation_to_breed: int = 0
    heavy: bool = False
    rain_move_skip_chance: float = 0.50
    defence: int = 6

    # Carnivore
    attack: int = 8
    base_kill_chance: float = 0.72
    day_kill_modifier: float = 1.0
    night_kill_modifier: float = 1.0
    day_sense_radius: int = 1
    night_sense_radius: int = 1
    hunt_only_at_night: bool = False
    prey: list[str] = field(default_factory=list)

    def validate(self, name: str = "species") -> list[str]:
        errors = []
        if self.max_energy < 1:
            errors.append(f"{name}.max_energy must be >= 1, got {self.max_energy}")
        for attr in ("step_energy_loss", "max_age", "seed_max_age", "breeding_age",
                     "breeding_energy_threshold", "energy_cost_per_baby",
                     "bite_size", "min_vegetation_to_breed", "defence", "attack",
                     "day_sense_radius", "night_sense_radius"):
            _check_non_negative(errors, f"{name}.{attr}", getattr(self, attr))
        if self.max_litter_size < 1:
            errors.append(f"{name}.max_litter_size must be >= 1, got {self.max_litter_size}")
        if self.energy_per_veg < 1:
            errors.append(f"{name}.energy_per_veg must be >= 1, got {self.energy_per_veg}")
        for attr in ("breeding_probability", "rain_move_skip_chance", "base_kill_chance"):
            _check_probability(errors, f"{name}.{attr}", getattr(self, attr))
        for attr in ("day_kill_modifier", "night_kill_modifier"):
            _check_non_negative(errors, f"{name}.{attr}", getattr(self, attr))

        rng = self.seed_energy_range
        if len(rng) != 2 or rng[0] > rng[1]:
            errors.append(f"{name}.seed_energy_range must be [low, high] with low <= high")
        elif rng[0] < 0.0 or rng[1] > 1.0:
            errors.append(f"{name}.seed_energy_range values must be in [0, 1]")

        for key in self.prey:
            try:
                prey = Species.from_key(key)
            except KeyError:
                errors.append(f"{name}.prey names unknown species '{key}'")
                continue
            if not prey.is_herbivore:
                errors.append(f"{name}.prey may only name herbivores, got '{key}'")
        return errors

    def prey_species(self) -> frozenset[Species]:
        """Prey keys resolved to Species members."""
        return frozenset(Species.from_key(k) for k in self.prey)


def default_species_tuning() -> dict[str, SpeciesTuning]:
    """The stock tuning table, one entry per species."""
    herbivore_keys = [s.value for s in HERBIVORES]
    return {
        Species.IGUANADON.value: SpeciesTuning(
            max_energy=20, step_energy_loss=1, max_age=50, seed_max_age=40,
            breeding_age=5, breeding_probability=0.07, max_litter_size=3,
            breeding_energy_threshold=8, energy_cost_per_baby=1,
            bite_size=40, energy_per_veg=6, min_vegetation_to_breed=55,
            defence=4,
        ),
        Species.DIABLOCERATOPS.value: SpeciesTuning(
            max_energy=24, step_energy_loss=1, max_age=70, seed_max_age=60,
            breeding_age=8, breeding_probability=0.08, max_litter_size=2,
            breeding_energy_threshold=10, energy_cost_per_baby=2,
            bite_size=32, energy_per_veg=5,
            heavy=True, rain_move_skip_chance=0.50, defence=8,
        ),
        Species.ANKYLOSAURUS.value: SpeciesTuning(
            max_energy=28, step_energy_loss=1, max_age=110, seed_max_age=90,
            breeding_age=12, breeding_probability=0.06, max_litter_size=1,
            breeding_energy_threshold=12, energy_cost_per_baby=2,
            bite_size=28, energy_per_veg=5,
            heavy=True, rain_move_skip_chance=0.50, defence=12,
        ),
        Species.ALLOSAURUS.value: SpeciesTuning(
            max_energy=22, step_energy_loss=1, max_age=150, seed_max_age=150,
            seed_energy_range=[0.6, 1.0],
            breeding_age=15, breeding_probability=0.06, max_litter_size=2,
            breeding_energy_threshold=7, energy_cost_per_baby=2,
            attack=12, base_kill_chance=0.75,
            day_kill_modifier=1.0, night_kill_modifier=1.10,
            day_sense_radius=1, night_sense_radius=2,
            prey=list(herbivore_keys),
        ),
        Species.CARNOTAURUS.value: SpeciesTuning(
            max_energy=20, step_energy_loss=1, max_age=120, seed_max_age=120,
            seed_energy_range=[0.6, 1.0],
            breeding_age=14, breeding_probability=0.05, max_litter_size=2,
            breeding_energy_threshold=6, energy_cost_per_baby=2,
            attack=11, base_kill_chance=0.72,
            day_kill_modifier=1.05, night_kill_modifier=0.95,
            day_sense_radius=2, night_sense_radius=1,
            prey=[Species.IGUANADON.value],
        ),
        Species.DILOPHOSAURUS.value: SpeciesTuning(
            max_energy=18, step_energy_loss=1, max_age=90, seed_max_age=90,
            seed_energy_range=[0.6, 1.0],
            breeding_age=10, breeding_probability=0.07, max_litter_size=2,
            breeding_energy_threshold=5, energy_cost_per_baby=2,
            attack=9, base_kill_chance=0.70,
            day_kill_modifier=0.0, night_kill_modifier=1.15,
            day_sense_radius=0, night_sense_radius=1,
            hunt_only_at_night=True,
            prey=[Species.IGUANADON.value],
        ),
    }


# ---------------------------------------------------------------------------
# Sub-config dataclasses (grouped by domain)
# ---------------------------------------------------------------------------

@dataclass
class WorldConfig:
    """Grid size and RNG seed."""
    width: int = 120
    depth: int = 80
    seed: int = 6969

    def validate(self) -> list[str]:
        errors = []
        if self.width < 1:
            errors.append(f"world.width must be >= 1, got {self.width}")
        if self.depth < 1:
            errors.append(f"world.depth must be >= 1, got {self.depth}")
        if self.width > 10_000:
            errors.append(f"world.width must be <= 10000, got {self.width}")
        if self.depth > 10_000:
            errors.append(f"world.depth must be <= 10000, got {self.depth}")
        return errors


@dataclass
class VegetationConfig:
    """Vegetation layer: initial values and regrowth."""
    initial_min: int = 60
    initial_max: int = 100
    max_value: int = 100
    regrow_chance: float = 0.25           # per cell, per tick, before weather scaling
    max_regrow_chance: float = 0.85       # ceiling after weather scaling
    regrow_amount_day: int = 1
    regrow_amount_night: int = 1
    boost_multiplier: float = 1.4         # weather multiplier at/above which regrowth gains +1
    stall_multiplier: float = 0.60        # weather multiplier at/below which regrowth adds nothing
    heatwave_recovery_chance: float = 0.05

    def validate(self) -> list[str]:
        errors = []
        if not (0 <= self.initial_min <= self.initial_max <= self.max_value):
            errors.append(
                "vegetation: need 0 <= initial_min <= initial_max <= max_value, "
                f"got {self.initial_min}, {self.initial_max}, {self.max_value}"
            )
        _check_probability(errors, "vegetation.regrow_chance", self.regrow_chance)
        _check_probability(errors, "vegetation.max_regrow_chance", self.max_regrow_chance)
        _check_probability(errors, "vegetation.heatwave_recovery_chance",
                           self.heatwave_recovery_chance)
        _check_non_negative(errors, "vegetation.regrow_amount_day", self.regrow_amount_day)
        _check_non_negative(errors, "vegetation.regrow_amount_night", self.regrow_amount_night)
        return errors


@dataclass
class TimeConfig:
    """Day/night cycle. Day and night each last day_length ticks."""
    day_length: int = 50

    def validate(self) -> list[str]:
        errors = []
        if self.day_length < 1:
            errors.append(f"time.day_length must be >= 1, got {self.day_length}")
        return errors


@dataclass
class WeatherConfig:
    """Weather state machine and its effects."""
    change_interval: int = 60
    weights: dict[str, float] = field(
        default_factory=lambda: {"clear": 0.50, "rain": 0.22, "fog": 0.18, "heatwave": 0.10}
    )
    rain_regrow_multiplier: float = 1.6
    heatwave_regrow_multiplier: float = 0.55
    fog_hunt_modifier: float = 0.80
    fog_sense_penalty: int = 1
    heatwave_base_cap: int = 80
    heatwave_cap_step: int = 10
    heatwave_min_cap: int = 50

    def validate(self) -> list[str]:
        errors = []
        if self.change_interval < 1:
            errors.append(f"weather.change_interval must be >= 1, got {self.change_interval}")
        expected = {"clear", "rain", "fog", "heatwave"}
        if set(self.weights) != expected:
            errors.append(f"weather.weights must have keys {sorted(expected)}, "
                          f"got {sorted(self.weights)}")
        for key, w in self.weights.items():
            _check_non_negative(errors, f"weather.weights.{key}", w)
        if sum(self.weights.values()) <= 0:
            errors.append("weather.weights must not all be zero")
        _check_non_negative(errors, "weather.rain_regrow_multiplier", self.rain_regrow_multiplier)
        _check_non_negative(errors, "weather.heatwave_regrow_multiplier",
                            self.heatwave_regrow_multiplier)
        _check_probability(errors, "weather.fog_hunt_modifier", self.fog_hunt_modifier)
        _check_non_negative(errors, "weather.fog_sense_penalty", self.fog_sense_penalty)
        if not (0 <= self.heatwave_min_cap <= self.heatwave_base_cap):
            errors.append("weather: need 0 <= heatwave_min_cap <= heatwave_base_cap")
        _check_non_negative(errors, "weather.heatwave_cap_step", self.heatwave_cap_step)
        return errors


@dataclass
class DiseaseConfig:
    """Infection, spread, recovery and immunity."""
    infection_min_duration: int = 35
    infection_max_duration: int = 70
    adjacent_spread_chance: float = 0.08
    predator_eat_infected_chance: float = 0.70
    extra_energy_loss: int = 1
    survive_energy_threshold: int = 8
    immunity_duration: int = 50
    initial_infections: int = 6
    spontaneous_outbreak_chance: float = 0.0   # 0 = no outbreaks

    def validate(self) -> list[str]:
        errors = []
        if not (1 <= self.infection_min_duration <= self.infection_max_duration):
            errors.append(
                "disease: need 1 <= infection_min_duration <= infection_max_duration, "
                f"got {self.infection_min_duration}, {self.infection_max_duration}"
            )
        _check_probability(errors, "disease.adjacent_spread_chance", self.adjacent_spread_chance)
        _check_probability(errors, "disease.predator_eat_infected_chance",
                           self.predator_eat_infected_chance)
        _check_probability(errors, "disease.spontaneous_outbreak_chance",
                           self.spontaneous_outbreak_chance)
        for attr in ("extra_energy_loss", "survive_energy_threshold",
                     "immunity_duration", "initial_infections"):
            _check_non_negative(errors, f"disease.{attr}", getattr(self, attr))
        return errors


@dataclass
class SpawnConfig:
    """Per-cell spawn probabilities used when populating the field."""
    probabilities: dict[str, float] = field(
        default_factory=lambda: {
            Species.ALLOSAURUS.value: 0.010,
            Species.CARNOTAURUS.value: 0.008,
            Species.DILOPHOSAURUS.value: 0.008,
            Species.IGUANADON.value: 0.060,
            Species.DIABLOCERATOPS.value: 0.025,
            Species.ANKYLOSAURUS.value: 0.020,
        }
    )

    def validate(self) -> list[str]:
        errors = []
        for key, p in self.probabilities.items():
            try:
                Species.from_key(key)
            except KeyError:
                errors.append(f"spawn.probabilities names unknown species '{key}'")
                continue
            _check_probability(errors, f"spawn.probabilities.{key}", p)
        for group, members in (("carnivore", CARNIVORES), ("herbivore", HERBIVORES)):
            total = sum(self.probabilities.get(s.value, 0.0) for s in members)
            if total > 1.0:
                errors.append(f"spawn: {group} probabilities sum to {total:.3f} > 1")
        return errors

    def probability(self, species: Species) -> float:
        return self.probabilities.get(species.value, 0.0)


@dataclass
class RunConfig:
    """Unattended execution and output settings."""
    sim_delay_ms: int = 50
    output_dir: str = "runs"
    snapshot_every: int = 0               # 0 = no grid snapshots

    def validate(self) -> list[str]:
        errors = []
        _check_non_negative(errors, "run.sim_delay_ms", self.sim_delay_ms)
        _check_non_negative(errors, "run.snapshot_every", self.snapshot_every)
        return errors


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

@dataclass
class SimConfig:
    """
    Top-level simulation configuration.

    All parameters are adjustable. Nested dataclasses group related settings;
    `species` maps each species key to its SpeciesTuning.
    Load from JSON with `load_config()`, validate with `validate()`.
    """
    world: WorldConfig = field(default_factory=WorldConfig)
    vegetation: VegetationConfig = field(default_factory=VegetationConfig)
    time: TimeConfig = field(default_factory=TimeConfig)
    weather: WeatherConfig = field(default_factory=WeatherConfig)
    disease: DiseaseConfig = field(default_factory=DiseaseConfig)
    spawn: SpawnConfig = field(default_factory=SpawnConfig)
    run: RunConfig = field(default_factory=RunConfig)
    species: dict[str, SpeciesTuning] = field(default_factory=default_species_tuning)

    def validate(self) -> list[str]:
        """Validate all config sections. Returns list of error messages (empty = valid)."""
        errors = []
        for f in fields(self):
            sub = getattr(self, f.name)
            if hasattr(sub, "validate"):
                errors.extend(sub.validate())

        for s in Species:
            if s.value not in self.species:
                errors.append(f"species.{s.value} is missing")
        for key, tuning in self.species.items():
            try:
                Species.from_key(key)
            except KeyError:
                errors.append(f"species names unknown species '{key}'")
                continue
            errors.extend(tuning.validate(f"species.{key}"))
        return errors

    def tuning(self, species: Species) -> SpeciesTuning:
        """Tuning record for a species."""
        return self.species[species.value]

    def to_dict(self) -> dict[str, Any]:
        """Convert to nested dict for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SimConfig:
        """Create SimConfig from nested dict, merging with defaults."""
        config = cls()
        _merge_into_dataclass(config, data)
        return config

    def copy(self) -> SimConfig:
        """Deep copy of this config."""
        return deepcopy(self)


# ---------------------------------------------------------------------------
# JSON I/O helpers
# ---------------------------------------------------------------------------

def _merge_into_dataclass(target: Any, source: dict[str, Any]) -> None:
    """
    Recursively merge a dict into a dataclass instance.
    Unknown keys emit a warning but don't raise.
    """
    if not isinstance(source, dict):
        return

    known_fields = {f.name for f in fields(target)}
    for key, value in source.items():
        if key not in known_fields:
            warnings.warn(
                f"Unknown config key '{key}' in section {type(target).__name__} - ignored.",
                UserWarning,
                stacklevel=3,
            )
            continue

        current = getattr(target, key)

        # If the current field is a dataclass, recurse
        if hasattr(current, "__dataclass_fields__") and isinstance(value, dict):
            _merge_into_dataclass(current, value)
        elif key == "species" and isinstance(value, dict):
            _merge_species(current, value)
        else:
            setattr(target, key, value)


def _merge_species(table: dict[str, SpeciesTuning], source: dict[str, Any]) -> None:
    """Merge per-species dicts into the tuning table, species by species."""
    for key, value in source.items():
        if key in table and isinstance(value, dict):
            _merge_into_dataclass(table[key], value)
        elif isinstance(value, dict):
            tuning = SpeciesTuning()
            _merge_into_dataclass(tuning, value)
            table[key] = tuning
        else:
            table[key] = value


def load_config(path: str | Path) -> SimConfig:
    """
    Load config from a JSON file. Missing fields use defaults.

    Args:
        path: Path to JSON config file.

    Returns:
        Validated SimConfig instance.

    Raises:
        FileNotFoundError: If path doesn't exist.
        json.JSONDecodeError: If JSON is malformed.
        ValueError: If config values are invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    config = SimConfig.from_dict(data)
    ensure_valid(config)
    return config


def ensure_valid(config: SimConfig) -> None:
    """
    Raise if the config has any validation errors.

    Raises:
        ValueError: Listing every error found.
    """
    errors = config.validate()
    if errors:
        msg = "Invalid configuration:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(msg)


def save_config(config: SimConfig, path: str | Path) -> None:
    """Save config to JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)


def get_default_config() -> SimConfig:
    """Return a fresh default config (all defaults, validated)."""
    config = SimConfig()
    errors = config.validate()
    assert not errors, f"Default config is invalid: {errors}"
    return config


def apply_param_override(config: SimConfig, dotted_key: str, value: Any) -> None:
    """
    Apply a single parameter override using dot notation.

    Example:
        apply_param_override(config, "world.width", 60)
        apply_param_override(config, "species.iguanadon.bite_size", 30)

    Args:
        config: SimConfig to modify in-place.
        dotted_key: Dot-separated path; dict-valued sections are indexed by key.
        value: New value to set.

    Raises:
        KeyError: If the path doesn't exist.
    """
    parts = dotted_key.split(".")
    obj: Any = config
    for part in parts[:-1]:
        if isinstance(obj, dict):
            if part not in obj:
                raise KeyError(f"Config path '{dotted_key}' invalid: '{part}' not found")
            obj = obj[part]
            continue
        if not hasattr(obj, part):
            raise KeyError(f"Config path '{dotted_key}' invalid: '{part}' not found in {type(obj).__name__}")
        obj = getattr(obj, part)

    final_key = parts[-1]
    if isinstance(obj, dict):
        if final_key not in obj:
            raise KeyError(f"Config path '{dotted_key}' invalid: '{final_key}' not found")
        obj[final_key] = value
        return
    if not hasattr(obj, final_key):
        raise KeyError(f"Config path '{dotted_key}' invalid: '{final_key}' not found in {type(obj).__name__}")

    setattr(obj, final_key, value)
