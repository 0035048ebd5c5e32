"""
Weather Manager for the Dinosaur Ecosystem Simulator.

A weighted-random state machine over {Clear, Rain, Fog, Heatwave}:
  - Each state lasts `change_interval` ticks, then the next state is drawn
    from the configured weights.
  - Back-to-back heatwaves are counted; each one lowers the vegetation cap
    further (80, 70, 60, floored at 50 with the defaults).

Other components read its effects rather than the raw state:
regrowth multiplier, vegetation cap, predator hunt modifier and
sensing penalty, and whether heavy species may stall in the rain.
"""

from __future__ import annotations

import logging
from enum import Enum

import numpy as np

from src.core.config import SimConfig

logger = logging.getLogger(__name__)


class WeatherState(Enum):
    CLEAR = "clear"
    RAIN = "rain"
    FOG = "fog"
    HEATWAVE = "heatwave"


class WeatherManager:
    """
    Manages the weather during a simulation.

    Attributes:
        config: Simulation configuration (weather and vegetation sections are read).
        rng: Shared random generator.
        current: Current WeatherState.
        steps_until_change: Countdown to the next re-roll.
        consecutive_heatwave_cycles: Completed heatwave cycles in a row.
    """

    def __init__(self, config: SimConfig, rng: np.random.Generator):
        self.config = config
        self.rng = rng
        self.current = WeatherState.CLEAR
        self.steps_until_change = config.weather.change_interval
        self.consecutive_heatwave_cycles = 0

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Back to Clear with a full countdown and no heatwave streak."""
        self.current = WeatherState.CLEAR
        self.steps_until_change = self.config.weather.change_interval
        self.consecutive_heatwave_cycles = 0

    def update_one_step(self) -> WeatherState:
        """
        Advance the countdown by one tick, re-rolling on expiry.

        Returns:
            The weather in effect for this tick.
        """
        self.steps_until_change -= 1
        if self.steps_until_change <= 0:
            if self.current is WeatherState.HEATWAVE:
                self.consecutive_heatwave_cycles += 1
            else:
                self.consecutive_heatwave_cycles = 0

            previous = self.current
            self.current = self.roll_next_weather()
            self.steps_until_change = self.config.weather.change_interval
            if self.current is not previous:
                logger.debug("Weather changed %s -> %s", previous.value, self.current.value)
        return self.current

    def roll_next_weather(self) -> WeatherState:
        """Weighted draw over the configured weights (normalised by their sum)."""
        weights = self.config.weather.weights
        total = sum(weights.values())
        r = self.rng.random() * total
        for state in WeatherState:
            w = weights.get(state.value, 0.0)
            if r < w:
                return state
            r -= w
        return WeatherState.HEATWAVE

    def set_weather(self, state: WeatherState) -> None:
        """Force a state (tuning/testing); the countdown is left as is."""
        self.current = state

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    @property
    def is_heatwave(self) -> bool:
        return self.current is WeatherState.HEATWAVE

    @property
    def is_raining(self) -> bool:
        return self.current is WeatherState.RAIN

    @property
    def is_foggy(self) -> bool:
        return self.current is WeatherState.FOG

    def regrow_multiplier(self) -> float:
        """Vegetation regrowth multiplier: boosted by rain, cut by heat."""
        w = self.config.weather
        if self.current is WeatherState.RAIN:
            return w.rain_regrow_multiplier
        if self.current is WeatherState.HEATWAVE:
            return w.heatwave_regrow_multiplier
        return 1.0

    def vegetation_cap(self) -> int:
        """
        Hard ceiling on vegetation per cell.

        Normally the vegetation max; under a heatwave,
        base_cap - cap_step * consecutive cycles, floored at min_cap.
        """
        if self.current is not WeatherState.HEATWAVE:
            return self.config.vegetation.max_value
        w = self.config.weather
        cap = w.heatwave_base_cap - w.heatwave_cap_step * self.consecutive_heatwave_cycles
        return max(w.heatwave_min_cap, cap)

    def predator_hunt_modifier(self) -> float:
        """Multiplier on kill chance (fog hampers hunting)."""
        if self.current is WeatherState.FOG:
            return self.config.weather.fog_hunt_modifier
        return 1.0

    def predator_range_penalty(self) -> int:
        """Cells subtracted from predator sensing radius (fog only)."""
        if self.current is WeatherState.FOG:
            return self.config.weather.fog_sense_penalty
        return 0

    def get_status(self) -> dict:
        """Return a status dict for logging/UI."""
        return {
            "weather": self.current.value,
            "steps_until_change": self.steps_until_change,
            "consecutive_heatwave_cycles": self.consecutive_heatwave_cycles,
            "vegetation_cap": self.vegetation_cap(),
        }

    def __repr__(self) -> str:
        return (
            f"WeatherManager(current={self.current.value}, "
            f"steps_until_change={self.steps_until_change}, "
            f"heatwave_cycles={self.consecutive_heatwave_cycles})"
        )
