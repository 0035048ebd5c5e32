"""
Predation resolution.

kill chance = base * attack / (attack + defence) * time-of-day modifier
              * weather modifier, clamped to [0, 1].
"""

from __future__ import annotations

from src.core.config import SpeciesTuning
from src.core.dinosaur import Dinosaur
from src.simulation.tick import TickContext
from src.utils.numeric import clamp


def kill_chance(
    attack: int,
    defence: int,
    base: float,
    time_modifier: float,
    weather_modifier: float,
) -> float:
    """
    Probability that one attack kills its target.

    Returns 0 when attack + defence is 0.
    """
    total = attack + defence
    if total <= 0:
        return 0.0
    p = base * (attack / total) * time_modifier * weather_modifier
    return clamp(p, 0.0, 1.0)


def attempt_kill(predator: Dinosaur, prey: Dinosaur, tuning: SpeciesTuning,
                 ctx: TickContext) -> bool:
    """
    Roll one attack of `predator` on `prey`.

    On success the prey dies of predation, the predator's energy is
    restored to max, and the predator may catch the prey's infection.

    Returns:
        True if the prey was killed.
    """
    prey_tuning = ctx.tuning(prey.species)
    time_mod = tuning.day_kill_modifier if ctx.is_day else tuning.night_kill_modifier
    p = kill_chance(
        tuning.attack,
        prey_tuning.defence,
        tuning.base_kill_chance,
        time_mod,
        ctx.weather.predator_hunt_modifier(),
    )
    if p <= 0.0 or ctx.rng.random() > p:
        ctx.stats.hunts_failed += 1
        return False

    prey_was_infected = prey.infected
    prey.die("predation")
    predator.restore_energy()
    ctx.stats.kills += 1
    if prey_was_infected:
        ctx.disease.on_predator_ate_infected_prey(predator, prey, ctx.stats)
    return True
