"""
Day/night cycle for the Dinosaur Ecosystem Simulator.

The phase is a pure function of the global step counter: day for
`day_length` steps, then night for the same number, repeating.
"""

from __future__ import annotations

from enum import Enum


class TimeOfDay(Enum):
    DAY = "day"
    NIGHT = "night"


class TimeManager:
    """
    Tracks the current phase of the day/night cycle.

    Attributes:
        day_length: Ticks per day (and per night).
        current: Current TimeOfDay.
    """

    def __init__(self, day_length: int = 50):
        self.day_length = day_length
        self.current = TimeOfDay.DAY

    def reset(self) -> None:
        """Force the phase back to day."""
        self.current = TimeOfDay.DAY

    def update_for_step(self, step: int) -> TimeOfDay:
        """Set the phase for a step number and return it."""
        self.current = phase_for_step(step, self.day_length)
        return self.current

    @property
    def is_day(self) -> bool:
        return self.current is TimeOfDay.DAY

    @property
    def is_night(self) -> bool:
        return self.current is TimeOfDay.NIGHT

    def __repr__(self) -> str:
        return f"TimeManager(day_length={self.day_length}, current={self.current.value})"


def phase_for_step(step: int, day_length: int) -> TimeOfDay:
    """(step // day_length) even -> DAY, odd -> NIGHT."""
    return TimeOfDay.DAY if (step // day_length) % 2 == 0 else TimeOfDay.NIGHT
