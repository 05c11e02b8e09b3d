"""Geometric checks on a bounding-region selection.

The central question this module answers: "can this selection become a unit
cell?" The workflow asks it when the user finalizes the boundary:

  * **Rectangularity** — ``is_rectangular_selection`` maps the selected cells
    onto their grid indices and checks that the minimal bounding box of those
    indices is completely filled. Holes and concave (L/T shaped) selections
    fail, and so does an empty selection.
  * **Containment** — ``region_contains`` builds the physical rectangle the
    cells span and checks that every point lies inside it, boundary
    inclusive (shapely ``covers``, not ``contains``).

Everything here is a pure function over the data it is given; the grid and
constellation are never mutated.
"""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np
from shapely.geometry import Point as ShapelyPoint
from shapely.geometry import box

from .types import GridCell, Point

Bounds = tuple[float, float, float, float]


def region_bounds(cells: Iterable[GridCell]) -> Bounds | None:
    """Physical (min_x, min_y, max_x, max_y) spanned by the cells.

    Returns None for an empty selection.
    """
    cells = list(cells)
    if not cells:
        return None
    return (
        min(c.x for c in cells),
        min(c.y for c in cells),
        max(c.x + c.size for c in cells),
        max(c.y + c.size for c in cells),
    )


def is_rectangular_selection(cells: Iterable[GridCell]) -> bool:
    """True if the selected cells exactly fill their bounding box."""
    cells = list(cells)
    if not cells:
        return False
    cols = np.array([c.col for c in cells], dtype=np.int64)
    rows = np.array([c.row for c in cells], dtype=np.int64)
    min_col, min_row = cols.min(), rows.min()
    width = int(cols.max() - min_col) + 1
    height = int(rows.max() - min_row) + 1
    filled = np.zeros((height, width), dtype=bool)
    filled[rows - min_row, cols - min_col] = True
    return bool(filled.all())


def region_contains(
    cells: Iterable[GridCell], points: Iterable[Point]
) -> bool:
    """True if every point lies within the cells' physical rectangle.

    Vacuously true for no points. Callers reject empty constellations
    before asking.
    """
    points = list(points)
    if not points:
        return True
    bounds = region_bounds(cells)
    if bounds is None:
        return False
    rect = box(*bounds)
    return all(rect.covers(ShapelyPoint(p.x, p.y)) for p in points)
