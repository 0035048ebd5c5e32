"""
Unit tests for the Simulation Engine (tick loop).

Tests cover:
- Engine initialization (validation, seed override, population)
- Reset (step counter, ids, initial infections)
- Day/night switching driven by the step counter
- Grid invariants and energy bounds over many ticks
- Deterministic replay (same seed -> same state)
- Viability and early stop
- Staged configuration changes
- Control surface (infection, species tuning) and callbacks
"""

import pytest

from src.core.config import SimConfig, SpeciesTuning
from src.core.dinosaur import Dinosaur, reset_dinosaur_id_counter
from src.core.location import Location
from src.core.species import CARNIVORES, Sex, Species
from src.simulation.engine import RunResult, SimulationEngine
from src.simulation.tick import TickStats
from src.simulation.time_of_day import TimeOfDay


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def reset_ids():
    reset_dinosaur_id_counter()
    yield
    reset_dinosaur_id_counter()


@pytest.fixture
def config() -> SimConfig:
    """Small, fast config for testing."""
    cfg = SimConfig()
    cfg.world.width = 20
    cfg.world.depth = 20
    cfg.world.seed = 42
    cfg.disease.initial_infections = 2
    return cfg


@pytest.fixture
def engine(config) -> SimulationEngine:
    return SimulationEngine(config)


def only_species(config: SimConfig, species: Species, p: float = 1.0) -> SimConfig:
    config.spawn.probabilities = {s.value: 0.0 for s in Species}
    config.spawn.probabilities[species.value] = p
    return config


def make_controlled_engine(config: SimConfig, herbivore_age: int = 0) -> SimulationEngine:
    """
    Empty field with one male iguanadon and one male allosaurus in
    opposite corners, and no disease.
    """
    config.disease.initial_infections = 0
    config.disease.spontaneous_outbreak_chance = 0.0
    eng = SimulationEngine(config, populate=False)
    herb_tuning = config.tuning(Species.IGUANADON)
    carn_tuning = config.tuning(Species.ALLOSAURUS)
    herb = Dinosaur(Species.IGUANADON, Location(0, 0), herb_tuning.max_energy,
                    Sex.MALE, age=herbivore_age)
    carn = Dinosaur(Species.ALLOSAURUS, Location(19, 19), carn_tuning.max_energy, Sex.MALE)
    eng.field.place(herb, herb.location)
    eng.field.place(carn, carn.location)
    return eng


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

class TestInitialization:
    def test_invalid_config_rejected(self, config):
        config.world.width = 0
        with pytest.raises(ValueError):
            SimulationEngine(config)

    def test_seed_override(self, config):
        eng = SimulationEngine(config, seed=7)
        assert eng.seed == 7
        assert eng.config.world.seed == 7

    def test_initial_state(self, engine):
        assert engine.current_step == 0
        assert engine.time_of_day is TimeOfDay.DAY
        assert engine.extinction_step is None
        assert engine.field.depth == 20 and engine.field.width == 20
        assert engine.alive_count > 0
        assert engine.field.occupancy_errors() == []

    def test_initial_infections(self, engine):
        assert engine.infected_count == 2

    def test_vegetation_randomized(self, engine):
        assert engine.field.vegetation.min() >= 60
        assert engine.field.vegetation.max() <= 100

    def test_populate_every_cell(self, config):
        eng = SimulationEngine(only_species(config, Species.ALLOSAURUS))
        counts = eng.species_counts()
        assert counts[Species.ALLOSAURUS] == 400
        assert eng.alive_count == 400

    def test_carnivore_roll_first(self, config):
        only_species(config, Species.CARNOTAURUS)
        config.spawn.probabilities[Species.IGUANADON.value] = 1.0
        eng = SimulationEngine(config)
        counts = eng.species_counts()
        assert counts[Species.CARNOTAURUS] == 400
        assert counts[Species.IGUANADON] == 0

    def test_populate_zero_probability(self, config):
        config.spawn.probabilities = {s.value: 0.0 for s in Species}
        eng = SimulationEngine(config)
        assert eng.alive_count == 0
        assert not eng.is_viable

    def test_seed_agents_in_range(self, engine):
        for d in engine.field.living():
            tuning = engine.config.tuning(d.species)
            assert 0 <= d.age < tuning.seed_max_age
            assert 0 < d.energy <= d.max_energy

    def test_unpopulated(self, config):
        eng = SimulationEngine(config, populate=False)
        assert len(eng.field) == 0
        assert eng.infected_count == 0


# ---------------------------------------------------------------------------
# Reset
# ---------------------------------------------------------------------------

class TestReset:
    def test_reset_restores_state(self, engine):
        for _ in range(5):
            engine.step()
        engine.reset()
        assert engine.current_step == 0
        assert engine.extinction_step is None
        assert engine.time_of_day is TimeOfDay.DAY
        assert engine.weather.consecutive_heatwave_cycles == 0
        assert engine.infected_count == 2
        assert min(d.id for d in engine.field.dinosaurs()) == 0

    def test_reset_without_population(self, engine):
        engine.reset(populate=False)
        assert len(engine.field) == 0


# ---------------------------------------------------------------------------
# Tick mechanics
# ---------------------------------------------------------------------------

class TestTick:
    def test_step_counter(self, engine):
        stats = engine.step()
        assert isinstance(stats, TickStats)
        assert engine.current_step == 1
        assert engine.tick_stats is stats

    def test_day_night_switching(self, config):
        config.time.day_length = 2
        eng = SimulationEngine(config, populate=False)
        phases = []
        for _ in range(6):
            eng.step()
            phases.append(eng.time_of_day)
        D, N = TimeOfDay.DAY, TimeOfDay.NIGHT
        assert phases == [D, N, N, D, D, N]

    def test_invariants_over_many_ticks(self, engine):
        for _ in range(100):
            engine.step()
            assert engine.field.occupancy_errors() == []
            for d in engine.field.living():
                assert d.location is not None
                assert engine.field.dinosaur_at(d.location) is d
                assert 0 < d.energy <= d.max_energy
            assert engine.field.vegetation.min() >= 0
            assert engine.field.vegetation.max() <= engine.config.vegetation.max_value

    def test_deaths_tallied(self, config):
        eng = make_controlled_engine(config, herbivore_age=50)
        stats = eng.step()
        assert stats.deaths_age == 1
        assert stats.total_deaths == 1
        assert eng.species_counts()[Species.IGUANADON] == 0

    def test_population_accounting(self, engine):
        before = engine.alive_count
        stats = engine.step()
        assert engine.alive_count == before + stats.births - stats.total_deaths


# ---------------------------------------------------------------------------
# Determinism
# ---------------------------------------------------------------------------

class TestDeterminism:
    @staticmethod
    def _run(config: SimConfig, steps: int) -> dict:
        eng = SimulationEngine(config.copy())
        for _ in range(steps):
            eng.step()
        return eng.snapshot()

    def test_same_seed_same_state(self, config):
        first = self._run(config, 50)
        second = self._run(config, 50)
        assert first == second

    def test_different_seed_differs(self, config):
        first = self._run(config, 20)
        config.world.seed = 43
        second = self._run(config, 20)
        assert first["field"] != second["field"]

    def test_engines_stepped_in_alternation(self, config):
        config.world.width = 30
        config.world.depth = 30
        for key in ("iguanadon", "allosaurus"):
            config.species[key].breeding_probability = 0.5
        a = SimulationEngine(config.copy(), seed=1)
        b = SimulationEngine(config.copy(), seed=2)
        for _ in range(30):
            a.step()
            b.step()
        for eng in (a, b):
            living = eng.field.living()
            assert len({d.id for d in living}) == len(living)
            assert eng.field.occupancy_errors() == []

    def test_interleaved_replay_matches_solo(self, config):
        solo = self._run(config, 20)
        a = SimulationEngine(config.copy())
        b = SimulationEngine(config.copy())
        for _ in range(20):
            a.step()
            b.step()
        assert a.snapshot() == solo
        assert b.snapshot() == solo

    def test_staged_seed_applies_on_reset(self, config):
        engine = SimulationEngine(config.copy())
        engine.step()
        new = engine.config.copy()
        new.world.seed = 99
        engine.update_config(new)
        engine.reset()
        assert engine.seed == 99
        assert engine.snapshot()["seed"] == 99
        assert engine.run(3).seed == 99

        fresh = SimulationEngine(new.copy())
        fresh.run(3)
        assert engine.snapshot() == fresh.snapshot()


# ---------------------------------------------------------------------------
# Viability / multi-tick runs
# ---------------------------------------------------------------------------

class TestViability:
    def test_no_carnivores_not_viable(self, config):
        for s in CARNIVORES:
            config.spawn.probabilities[s.value] = 0.0
        eng = SimulationEngine(config)
        assert not eng.is_viable
        result = eng.run(10)
        assert result.steps_run == 0
        assert not result.viable

    def test_carnivores_never_appear(self, config):
        for s in CARNIVORES:
            config.spawn.probabilities[s.value] = 0.0
        eng = SimulationEngine(config)
        for _ in range(20):
            eng.step()
            counts = eng.species_counts()
            assert all(counts[s] == 0 for s in CARNIVORES)

    def test_early_stop(self, config):
        eng = make_controlled_engine(config, herbivore_age=50)
        result = eng.run(10)
        assert result.steps_run == 1
        assert result.extinction_step == 1
        assert not result.viable
        assert result.tick_stats_history[0].deaths_age == 1

    def test_run_result(self, config):
        eng = make_controlled_engine(config)
        result = eng.run(5)
        assert isinstance(result, RunResult)
        assert result.seed == 42
        assert result.steps_requested == 5
        assert result.steps_run == 5
        assert result.final_step == 5
        assert result.viable
        assert result.extinction_step is None
        assert len(result.tick_stats_history) == 5
        assert set(result.final_counts) == {s.value for s in Species}
        assert result.final_counts["iguanadon"] == 1


# ---------------------------------------------------------------------------
# Configuration staging
# ---------------------------------------------------------------------------

class TestConfigStaging:
    def test_applied_on_next_step(self, engine):
        new = engine.config.copy()
        new.time.day_length = 7
        engine.update_config(new)
        assert engine.config.time.day_length == 50
        engine.step()
        assert engine.config.time.day_length == 7
        assert engine.time.day_length == 7

    def test_staged_copy_is_isolated(self, engine):
        new = engine.config.copy()
        new.time.day_length = 7
        engine.update_config(new)
        new.time.day_length = 9
        engine.step()
        assert engine.config.time.day_length == 7

    def test_invalid_config_not_staged(self, engine):
        bad = engine.config.copy()
        bad.disease.adjacent_spread_chance = 2.0
        with pytest.raises(ValueError):
            engine.update_config(bad)
        engine.step()
        assert engine.config.disease.adjacent_spread_chance == pytest.approx(0.08)

    def test_dimensions_wait_for_reset(self, engine):
        new = engine.config.copy()
        new.world.width = 10
        engine.update_config(new)
        engine.step()
        assert engine.field.width == 20
        engine.reset()
        assert engine.field.width == 10

    def test_set_species_tuning(self, engine):
        engine.set_species_tuning(Species.IGUANADON, SpeciesTuning(max_energy=5))
        assert engine.config.tuning(Species.IGUANADON).max_energy == 20
        engine.step()
        assert engine.config.tuning(Species.IGUANADON).max_energy == 5

    def test_set_species_tuning_rejects_invalid(self, engine):
        with pytest.raises(ValueError):
            engine.set_species_tuning(Species.IGUANADON, SpeciesTuning(max_energy=0))


# ---------------------------------------------------------------------------
# Control / query surface
# ---------------------------------------------------------------------------

class TestControlSurface:
    def test_infect_random(self, config):
        config.disease.initial_infections = 0
        eng = SimulationEngine(config)
        assert eng.infected_count == 0
        assert eng.infect_random()
        assert eng.infected_count == 1

    def test_infect_random_on_empty_field(self, config):
        eng = SimulationEngine(config, populate=False)
        assert not eng.infect_random()

    def test_on_tick_callback(self, config):
        eng = make_controlled_engine(config)
        seen = []
        eng.on_tick = lambda step, e: seen.append((step, e.current_step))
        eng.run(3)
        assert seen == [(1, 1), (2, 2), (3, 3)]

    def test_snapshot(self, engine):
        engine.step()
        snap = engine.snapshot()
        assert set(snap) == {"step", "seed", "time_of_day", "weather", "viable", "counts", "field"}
        assert snap["step"] == 1
        assert snap["seed"] == 42
        assert sum(snap["counts"].values()) == engine.alive_count
        assert len(snap["field"]["dinosaurs"]) == engine.alive_count

    def test_repr(self, engine):
        assert "step=0" in repr(engine)
