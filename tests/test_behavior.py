"""
Unit tests for agent behaviour (one agent acting from the current field
into the next field).

Tests cover:
- Upkeep deaths (age, starvation)
- Herbivore eating, vegetation-seeking movement, rain stalls, overcrowding
- Carnivore diurnal gating, hunting (prey lists, radius, fog), wandering,
  holding position and overcrowding
- Double-buffer isolation: two predators on one prey
- Breeding success and every gating condition
- Invariant failure on a living agent without a location
"""

import numpy as np
import pytest

from src.core.config import SimConfig
from src.core.dinosaur import Dinosaur, reset_dinosaur_id_counter
from src.core.field import Field
from src.core.location import Location
from src.core.species import Sex, Species
from src.simulation.behavior import act, can_breed, has_adjacent_male, sense_radius
from src.simulation.disease import DiseaseManager
from src.simulation.tick import TickContext
from src.simulation.time_of_day import TimeOfDay
from src.simulation.weather import WeatherManager, WeatherState


# ---------------------------------------------------------------------------
# Fixtures / helpers
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def reset_ids():
    reset_dinosaur_id_counter()
    yield
    reset_dinosaur_id_counter()


class Scene:
    """A current field, an empty next field and a tick context."""

    def __init__(self, config=None, size=5, seed=0,
                 time_of_day=TimeOfDay.DAY, weather=WeatherState.CLEAR, vegetation=0):
        self.config = config if config is not None else SimConfig()
        rng = np.random.default_rng(seed)
        self.current = Field(size, size, rng, self.config.vegetation)
        self.current.vegetation[:] = vegetation
        self.next = Field(size, size, rng, self.config.vegetation)
        wm = WeatherManager(self.config, rng)
        wm.set_weather(weather)
        self.ctx = TickContext(self.config, rng, time_of_day, wm,
                               DiseaseManager(self.config.disease, rng))

    def put(self, species, row, col, sex=Sex.MALE, energy=None, age=0) -> Dinosaur:
        loc = Location(row, col)
        tuning = self.config.tuning(species)
        d = Dinosaur(species, loc, tuning.max_energy, sex, age=age, energy=energy)
        self.current.place(d, loc)
        return d

    def block_next(self, row, col) -> Dinosaur:
        """Occupy a cell of the next field with a bystander."""
        loc = Location(row, col)
        d = Dinosaur(Species.ANKYLOSAURUS, loc, 28, Sex.MALE)
        self.next.place(d, loc)
        return d

    def run(self, *dinos: Dinosaur) -> None:
        self.next.copy_vegetation_from(self.current)
        for d in dinos:
            act(d, self.current, self.next, self.ctx)


def certain_killer(config: SimConfig, species=Species.ALLOSAURUS) -> None:
    tuning = config.species[species.value]
    tuning.base_kill_chance = 1.0
    tuning.attack = 10**9
    tuning.day_kill_modifier = 1.0
    tuning.night_kill_modifier = 1.0


# ---------------------------------------------------------------------------
# Upkeep
# ---------------------------------------------------------------------------

class TestUpkeep:
    def test_old_age(self):
        s = Scene()
        d = s.put(Species.IGUANADON, 2, 2, age=50)
        s.run(d)
        assert not d.alive
        assert d.death_cause == "age"
        assert len(s.next) == 0

    def test_starvation(self):
        s = Scene()
        d = s.put(Species.ALLOSAURUS, 2, 2, energy=1)
        s.run(d)
        assert not d.alive
        assert d.death_cause == "starvation"

    def test_ages_and_drains(self):
        s = Scene()
        d = s.put(Species.ALLOSAURUS, 2, 2, energy=10, age=3)
        s.run(d)
        assert d.age == 4
        assert d.energy == 9

    def test_dead_agent_does_nothing(self):
        s = Scene()
        d = s.put(Species.IGUANADON, 2, 2)
        d.die("predation")
        s.run(d)
        assert len(s.next) == 0

    def test_living_without_location_raises(self):
        s = Scene()
        d = s.put(Species.IGUANADON, 2, 2)
        d.location = None
        with pytest.raises(RuntimeError):
            s.run(d)


# ---------------------------------------------------------------------------
# Herbivores
# ---------------------------------------------------------------------------

class TestHerbivore:
    def test_moves_to_greenest_cell(self):
        s = Scene()
        s.current.set_vegetation(Location(1, 3), 90)
        s.current.set_vegetation(Location(3, 1), 50)
        d = s.put(Species.IGUANADON, 2, 2)
        s.run(d)
        assert d.location == Location(1, 3)
        assert s.next.dinosaur_at(Location(1, 3)) is d

    def test_eats_from_own_cell(self):
        s = Scene()
        s.current.set_vegetation(Location(2, 2), 60)
        d = s.put(Species.IGUANADON, 2, 2, energy=10)
        s.run(d)
        # bite 40 -> 40 // 6 = 6 energy, after the step loss of 1
        assert d.energy == 15
        assert s.next.vegetation_at(Location(2, 2)) == 20
        assert s.current.vegetation_at(Location(2, 2)) == 60

    def test_eating_capped_by_max_energy(self):
        s = Scene(vegetation=100)
        d = s.put(Species.IGUANADON, 2, 2, energy=20)
        s.run(d)
        assert d.energy == 20

    def test_overcrowding(self):
        s = Scene(size=3)
        d = s.put(Species.IGUANADON, 1, 1)
        for loc in s.current.adjacent(Location(1, 1)):
            s.block_next(loc.row, loc.col)
        s.run(d)
        assert not d.alive
        assert d.death_cause == "overcrowding"

    def test_moves_into_cell_of_dead_occupant(self):
        s = Scene(size=3)
        d = s.put(Species.IGUANADON, 1, 1)
        cells = s.current.adjacent(Location(1, 1))
        blockers = [s.block_next(loc.row, loc.col) for loc in cells]
        blockers[0].die("age")
        s.run(d)
        assert d.alive
        assert d.location == cells[0]

    def test_heavy_species_stalls_in_rain(self):
        config = SimConfig()
        config.species["ankylosaurus"].rain_move_skip_chance = 1.0
        s = Scene(config, weather=WeatherState.RAIN, vegetation=50)
        d = s.put(Species.ANKYLOSAURUS, 2, 2)
        s.run(d)
        assert d.location == Location(2, 2)
        assert s.next.dinosaur_at(Location(2, 2)) is d

    def test_heavy_species_moves_without_rain(self):
        config = SimConfig()
        config.species["ankylosaurus"].rain_move_skip_chance = 1.0
        s = Scene(config, weather=WeatherState.CLEAR, vegetation=50)
        d = s.put(Species.ANKYLOSAURUS, 2, 2)
        s.run(d)
        assert d.location != Location(2, 2)

    def test_light_species_ignores_rain(self):
        config = SimConfig()
        config.species["iguanadon"].rain_move_skip_chance = 1.0
        s = Scene(config, weather=WeatherState.RAIN, vegetation=50)
        d = s.put(Species.IGUANADON, 2, 2)
        s.run(d)
        assert d.location != Location(2, 2)


# ---------------------------------------------------------------------------
# Carnivores
# ---------------------------------------------------------------------------

class TestCarnivore:
    def test_night_hunter_sleeps_by_day(self):
        config = SimConfig()
        certain_killer(config, Species.DILOPHOSAURUS)
        s = Scene(config, time_of_day=TimeOfDay.DAY)
        predator = s.put(Species.DILOPHOSAURUS, 2, 2)
        prey = s.put(Species.IGUANADON, 2, 3)
        s.run(predator)
        assert prey.alive
        assert predator.location == Location(2, 2)

    def test_night_hunter_hunts_at_night(self):
        config = SimConfig()
        certain_killer(config, Species.DILOPHOSAURUS)
        s = Scene(config, time_of_day=TimeOfDay.NIGHT)
        predator = s.put(Species.DILOPHOSAURUS, 2, 2, energy=5)
        prey = s.put(Species.IGUANADON, 2, 3)
        s.run(predator)
        assert not prey.alive
        assert predator.location == Location(2, 3)
        assert predator.energy == predator.max_energy

    def test_kill_moves_onto_prey_cell(self):
        config = SimConfig()
        certain_killer(config)
        s = Scene(config)
        predator = s.put(Species.ALLOSAURUS, 2, 2, energy=5)
        prey = s.put(Species.DIABLOCERATOPS, 3, 3)
        s.run(predator)
        assert not prey.alive
        assert prey.death_cause == "predation"
        assert s.next.dinosaur_at(Location(3, 3)) is predator
        assert s.ctx.stats.kills == 1

    def test_ignores_non_prey(self):
        config = SimConfig()
        certain_killer(config, Species.CARNOTAURUS)
        s = Scene(config)
        predator = s.put(Species.CARNOTAURUS, 2, 2)
        other = s.put(Species.ANKYLOSAURUS, 2, 3)
        rival = s.put(Species.ALLOSAURUS, 1, 2)
        s.run(predator)
        assert other.alive
        assert rival.alive
        assert predator.alive

    def test_sensing_radius_at_night(self):
        config = SimConfig()
        certain_killer(config)
        s = Scene(config, time_of_day=TimeOfDay.NIGHT)
        predator = s.put(Species.ALLOSAURUS, 2, 0)
        prey = s.put(Species.IGUANADON, 2, 2)
        s.run(predator)
        assert not prey.alive
        assert predator.location == Location(2, 2)

    def test_fog_shrinks_radius(self):
        config = SimConfig()
        certain_killer(config)
        s = Scene(config, time_of_day=TimeOfDay.NIGHT, weather=WeatherState.FOG)
        predator = s.put(Species.ALLOSAURUS, 2, 0)
        prey = s.put(Species.IGUANADON, 2, 2)
        s.run(predator)
        assert prey.alive

    def test_sense_radius_floor(self):
        config = SimConfig()
        s = Scene(config, time_of_day=TimeOfDay.DAY, weather=WeatherState.FOG)
        assert sense_radius(config.tuning(Species.ALLOSAURUS), s.ctx) == 1
        config.species["carnotaurus"].day_sense_radius = 3
        assert sense_radius(config.tuning(Species.CARNOTAURUS), s.ctx) == 2

    def test_wanders_without_prey(self):
        s = Scene()
        predator = s.put(Species.ALLOSAURUS, 2, 2)
        s.run(predator)
        assert predator.alive
        assert Location(2, 2).chebyshev(predator.location) == 1
        assert s.next.dinosaur_at(predator.location) is predator

    def test_holds_when_surrounded(self):
        s = Scene(size=3)
        predator = s.put(Species.CARNOTAURUS, 1, 1)
        for loc in s.current.adjacent(Location(1, 1)):
            s.block_next(loc.row, loc.col)
        s.run(predator)
        assert predator.alive
        assert predator.location == Location(1, 1)

    def test_overcrowded_when_own_cell_taken(self):
        s = Scene(size=3)
        predator = s.put(Species.CARNOTAURUS, 1, 1)
        for loc in s.current.adjacent(Location(1, 1)):
            s.block_next(loc.row, loc.col)
        s.block_next(1, 1)
        s.run(predator)
        assert not predator.alive
        assert predator.death_cause == "overcrowding"

    def test_two_predators_one_prey(self):
        config = SimConfig()
        certain_killer(config)
        s = Scene(config, vegetation=50)
        prey = s.put(Species.IGUANADON, 2, 2)
        first = s.put(Species.ALLOSAURUS, 1, 2)
        second = s.put(Species.ALLOSAURUS, 3, 2)
        s.run(prey, first, second)

        assert not prey.alive
        assert s.ctx.stats.kills == 1
        assert first.location == Location(2, 2)
        assert second.alive and second.location != Location(2, 2)

        s.next.remove_dead()
        assert s.next.occupancy_errors() == []
        assert prey not in s.next.dinosaurs()


# ---------------------------------------------------------------------------
# Breeding
# ---------------------------------------------------------------------------

def breeding_scene(seed=0, female_energy=15, female_age=10, male_species=Species.IGUANADON,
                   male_sex=Sex.MALE, male_at=(2, 3), vegetation=80, infected=False,
                   config=None):
    config = config if config is not None else SimConfig()
    config.species["iguanadon"].breeding_probability = 1.0
    s = Scene(config, seed=seed, vegetation=vegetation)
    female = s.put(Species.IGUANADON, 2, 2, sex=Sex.FEMALE, energy=female_energy, age=female_age)
    if male_at is not None:
        s.put(male_species, male_at[0], male_at[1], sex=male_sex)
    if infected:
        female.infect(50)
    return s, female


def births_over_trials(trials=100, **kwargs) -> int:
    total = 0
    for seed in range(trials):
        reset_dinosaur_id_counter()
        s, female = breeding_scene(seed=seed, **kwargs)
        s.run(female)
        total += s.ctx.stats.births
    return total


class TestBreeding:
    def test_eligible_female_gives_birth(self):
        s, female = breeding_scene()
        s.run(female)
        births = s.ctx.stats.births
        assert 1 <= births <= s.config.tuning(Species.IGUANADON).max_litter_size
        newborns = [d for d in s.next.living() if d is not female]
        assert len(newborns) == births
        assert all(b.age == 0 and b.energy == b.max_energy for b in newborns)
        assert all(b.species is Species.IGUANADON for b in newborns)
        assert s.next.occupancy_errors() == []

    def test_statistical_positive_control(self):
        assert births_over_trials(50) >= 50

    def test_below_energy_threshold(self):
        # threshold 8; upkeep takes 1 before the check
        assert births_over_trials(female_energy=8) == 0

    def test_no_male(self):
        assert births_over_trials(male_at=None) == 0

    def test_adjacent_female_only(self):
        assert births_over_trials(male_sex=Sex.FEMALE) == 0

    def test_male_of_other_species(self):
        assert births_over_trials(male_species=Species.DIABLOCERATOPS) == 0

    def test_male_not_adjacent(self):
        assert births_over_trials(male_at=(2, 4)) == 0

    def test_infected(self):
        assert births_over_trials(infected=True) == 0

    def test_immature(self):
        assert births_over_trials(female_age=3) == 0

    def test_vegetation_minimum(self):
        assert births_over_trials(vegetation=30) == 0

    def test_male_is_never_a_mother(self):
        config = SimConfig()
        config.species["iguanadon"].breeding_probability = 1.0
        s = Scene(config, vegetation=80)
        male = s.put(Species.IGUANADON, 2, 2, sex=Sex.MALE, energy=15, age=10)
        s.put(Species.IGUANADON, 2, 3, sex=Sex.FEMALE)
        assert not can_breed(male, config.tuning(Species.IGUANADON), s.current)

    def test_litter_cost_can_kill_mother(self):
        config = SimConfig()
        config.species["iguanadon"].energy_cost_per_baby = 100
        s, female = breeding_scene(config=config)
        s.run(female)
        assert not female.alive
        assert s.ctx.stats.births == 0
        assert len(s.next) == 0

    def test_dead_male_does_not_count(self):
        s, female = breeding_scene()
        s.current.dinosaur_at(Location(2, 3)).die("age")
        assert not has_adjacent_male(female, s.current)

    def test_carnivores_breed(self):
        config = SimConfig()
        config.species["carnotaurus"].breeding_probability = 1.0
        s = Scene(config)
        female = s.put(Species.CARNOTAURUS, 2, 2, sex=Sex.FEMALE, energy=20, age=20)
        s.put(Species.CARNOTAURUS, 1, 1, sex=Sex.MALE)
        s.run(female)
        assert s.ctx.stats.births >= 1
