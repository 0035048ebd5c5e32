"""
Small numeric helpers shared by the engine.
"""

from __future__ import annotations


def clamp(value: float, low: float, high: float) -> float:
    """Clamp a value to [low, high]."""
    return max(low, min(high, value))


def clamp_int(value: int, low: int, high: int) -> int:
    """Clamp an integer to [low, high]."""
    return max(low, min(high, value))
