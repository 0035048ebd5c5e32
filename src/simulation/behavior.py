"""
Agent behaviour for the Dinosaur Ecosystem Simulator.

One `act` entry point dispatches on the species' diet to a shared
herbivore or carnivore routine parameterised by that species' tuning.

Every routine reads the frozen `current` field and commits into `next_field`:
  - Upkeep: age, then the per-tick energy drain.
  - Breeding: a fertile female next to a living male of her species.
  - Herbivores eat the cell they stand on and move towards the greenest
    free neighbour.
  - Carnivores scan for prey, attack, and move onto a successful kill,
    otherwise wander.
An agent that finds no cell to occupy in the next field dies of
overcrowding.
"""

from __future__ import annotations

from typing import Optional

from src.core.config import SpeciesTuning
from src.core.dinosaur import Dinosaur
from src.core.field import Field
from src.core.location import Location
from src.simulation.combat import attempt_kill
from src.simulation.tick import TickContext


def act(dinosaur: Dinosaur, current: Field, next_field: Field, ctx: TickContext) -> None:
    """
    Run one tick of behaviour for a dinosaur.

    Raises:
        RuntimeError: If a living dinosaur has no location.
    """
    if not dinosaur.alive:
        return
    if dinosaur.location is None:
        raise RuntimeError(f"Living dinosaur {dinosaur.id} has no location")

    tuning = ctx.tuning(dinosaur.species)
    upkeep(dinosaur, tuning)
    if not dinosaur.alive:
        return

    if dinosaur.is_herbivore:
        act_herbivore(dinosaur, tuning, current, next_field, ctx)
    else:
        act_carnivore(dinosaur, tuning, current, next_field, ctx)


def upkeep(dinosaur: Dinosaur, tuning: SpeciesTuning) -> None:
    """Age one tick, then pay the step energy loss."""
    dinosaur.increment_age(tuning.max_age)
    if dinosaur.alive:
        dinosaur.consume_energy(tuning.step_energy_loss, cause="starvation")


# ---------------------------------------------------------------------------
# Herbivores
# ---------------------------------------------------------------------------

def act_herbivore(dinosaur: Dinosaur, tuning: SpeciesTuning, current: Field,
                  next_field: Field, ctx: TickContext) -> None:
    """
    Breed, eat, then move to the free neighbour with the most vegetation.

    Vegetation is eaten from the next field, which already holds this
    tick's copy of the layer. Heavy species may stay put in the rain.
    """
    here = dinosaur.location

    breed(dinosaur, tuning, current, next_field, ctx)
    if not dinosaur.alive:
        return

    consumed = next_field.consume_vegetation(here, tuning.bite_size)
    gained = consumed // tuning.energy_per_veg
    if gained > 0:
        dinosaur.gain_energy(gained)

    if tuning.heavy and ctx.weather.is_raining and next_field.is_free(here):
        if ctx.rng.random() < tuning.rain_move_skip_chance:
            _move(dinosaur, next_field, here)
            return

    free = next_field.free_adjacent(here)
    if not free:
        dinosaur.die("overcrowding")
        return
    # max() keeps the first maximal cell of the shuffled list
    target = max(free, key=current.vegetation_at)
    _move(dinosaur, next_field, target)


# ---------------------------------------------------------------------------
# Carnivores
# ---------------------------------------------------------------------------

def act_carnivore(dinosaur: Dinosaur, tuning: SpeciesTuning, current: Field,
                  next_field: Field, ctx: TickContext) -> None:
    """
    Sleep through the day (night hunters only), breed, hunt, or wander.
    """
    if tuning.hunt_only_at_night and ctx.is_day:
        _hold_or_wander(dinosaur, next_field)
        return

    breed(dinosaur, tuning, current, next_field, ctx)
    if not dinosaur.alive:
        return

    kill_site = hunt(dinosaur, tuning, current, ctx)
    if kill_site is not None and next_field.is_free(kill_site):
        _move(dinosaur, next_field, kill_site)
        return

    _wander_or_hold(dinosaur, next_field)


def sense_radius(tuning: SpeciesTuning, ctx: TickContext) -> int:
    """Day or night sensing radius minus the weather penalty, never below 1."""
    radius = tuning.day_sense_radius if ctx.is_day else tuning.night_sense_radius
    return max(1, radius - ctx.weather.predator_range_penalty())


def hunt(dinosaur: Dinosaur, tuning: SpeciesTuning, current: Field,
         ctx: TickContext) -> Optional[Location]:
    """
    Scan for prey in the current field and attack each candidate in turn.

    Returns:
        The cell of the first prey killed, or None if no attack succeeded.
    """
    here = dinosaur.location
    radius = sense_radius(tuning, ctx)
    if radius == 1:
        candidates = current.adjacent(here)
    else:
        candidates = current.within_radius(here, radius)

    prey_species = tuning.prey_species()
    for loc in candidates:
        prey = current.dinosaur_at(loc)
        if prey is None or not prey.alive or prey.species not in prey_species:
            continue
        if attempt_kill(dinosaur, prey, tuning, ctx):
            return loc
    return None


# ---------------------------------------------------------------------------
# Breeding
# ---------------------------------------------------------------------------

def has_adjacent_male(dinosaur: Dinosaur, field: Field) -> bool:
    """True if a living male of the same species is next to `dinosaur` in `field`."""
    for loc in field.adjacent(dinosaur.location):
        other = field.dinosaur_at(loc)
        if (other is not None and other.alive and other.is_male
                and other.species is dinosaur.species):
            return True
    return False


def can_breed(dinosaur: Dinosaur, tuning: SpeciesTuning, current: Field) -> bool:
    """Every breeding precondition except the probability roll."""
    if dinosaur.infected or not dinosaur.is_female:
        return False
    if dinosaur.age < tuning.breeding_age:
        return False
    if dinosaur.energy < tuning.breeding_energy_threshold:
        return False
    if dinosaur.is_herbivore and tuning.min_vegetation_to_breed > 0:
        if current.vegetation_at(dinosaur.location) < tuning.min_vegetation_to_breed:
            return False
    return has_adjacent_male(dinosaur, current)


def breed(dinosaur: Dinosaur, tuning: SpeciesTuning, current: Field,
          next_field: Field, ctx: TickContext) -> int:
    """
    Attempt to give birth into free cells of the next field.

    The whole litter's energy cost is paid up front; if that kills the
    mother, nobody is born.

    Returns:
        Number of newborns placed.
    """
    if not can_breed(dinosaur, tuning, current):
        return 0
    if ctx.rng.random() >= tuning.breeding_probability:
        return 0

    litter = int(ctx.rng.integers(1, tuning.max_litter_size + 1))
    dinosaur.consume_energy(litter * tuning.energy_cost_per_baby, cause="starvation")
    if not dinosaur.alive:
        return 0

    births = 0
    for loc in next_field.free_adjacent(dinosaur.location)[:litter]:
        baby = Dinosaur.newborn(dinosaur.species, loc, tuning, ctx.rng, ctx.ids)
        next_field.place(baby, loc)
        births += 1
    ctx.stats.births += births
    return births


# ---------------------------------------------------------------------------
# Placement helpers
# ---------------------------------------------------------------------------

def _move(dinosaur: Dinosaur, next_field: Field, location: Location) -> None:
    dinosaur.location = location
    next_field.place(dinosaur, location)


def _wander_or_hold(dinosaur: Dinosaur, next_field: Field) -> None:
    free = next_field.free_adjacent(dinosaur.location)
    if free:
        _move(dinosaur, next_field, free[0])
    elif next_field.is_free(dinosaur.location):
        _move(dinosaur, next_field, dinosaur.location)
    else:
        dinosaur.die("overcrowding")


def _hold_or_wander(dinosaur: Dinosaur, next_field: Field) -> None:
    if next_field.is_free(dinosaur.location):
        _move(dinosaur, next_field, dinosaur.location)
    else:
        _wander_or_hold(dinosaur, next_field)
