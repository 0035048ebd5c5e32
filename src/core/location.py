"""
Grid coordinates for the Dinosaur Ecosystem Simulator.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Location:
    """
    A cell on the field, compared and hashed by value.

    Attributes:
        row: Row index in [0, depth).
        col: Column index in [0, width).
    """
    row: int
    col: int

    def in_bounds(self, depth: int, width: int) -> bool:
        """True if this cell lies inside a depth x width grid."""
        return 0 <= self.row < depth and 0 <= self.col < width

    def chebyshev(self, other: Location) -> int:
        """Chessboard distance to another cell."""
        return max(abs(self.row - other.row), abs(self.col - other.col))

    def __repr__(self) -> str:
        return f"Location({self.row},{self.col})"
