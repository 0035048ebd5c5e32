"""
Spatial utilities for the Dinosaur Ecosystem Simulator.

Provides bounded-grid neighbourhood math. The field does not wrap:
cells outside [0, depth) x [0, width) are simply dropped.
"""

from __future__ import annotations

from src.core.location import Location


def square_ring(
    center: Location,
    radius: int,
    depth: int,
    width: int,
) -> list[Location]:
    """
    Enumerate cells within Chebyshev distance `radius` of `center`.

    The center itself is excluded and out-of-bounds cells are dropped.
    Enumeration is row-major; callers shuffle when order matters.

    Args:
        center: Middle of the square.
        radius: Half-width of the square (0 yields nothing).
        depth, width: Grid dimensions.

    Returns:
        List of in-bounds Locations.

    Examples:
        >>> len(square_ring(Location(5, 5), 1, 10, 10))
        8
        >>> len(square_ring(Location(0, 0), 1, 10, 10))
        3
    """
    cells = []
    for dr in range(-radius, radius + 1):
        r = center.row + dr
        if r < 0 or r >= depth:
            continue
        for dc in range(-radius, radius + 1):
            if dr == 0 and dc == 0:
                continue
            c = center.col + dc
            if 0 <= c < width:
                cells.append(Location(r, c))
    return cells


def moore_neighbourhood(center: Location, depth: int, width: int) -> list[Location]:
    """The (up to) 8 cells touching `center`, bounds-clipped."""
    return square_ring(center, 1, depth, width)
