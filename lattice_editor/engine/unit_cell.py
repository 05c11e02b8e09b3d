"""Turn a validated region and a constellation into a ``UnitCell`` record."""

from __future__ import annotations

from collections.abc import Iterable

from .constellation import ConstellationBuilder
from .errors import (
    EmptyConstellationError,
    IncompleteCoverageError,
    InvalidUnitCellError,
    NonRectangularRegionError,
)
from .geometry import is_rectangular_selection, region_bounds, region_contains
from .types import GridCell, Point, UnitCell


class UnitCellResolver:
    def resolve(
        self,
        region: Iterable[GridCell],
        constellation: ConstellationBuilder,
    ) -> UnitCell:
        """Validate the region against the constellation and build the record.

        Raises NonRectangularRegionError before IncompleteCoverageError, so a
        selection that fails both reports the rectangle problem first. Equal
        inputs always produce equal records: qubits keep constellation order
        and grid squares are sorted by (y, x).
        """
        cells = list(region)
        if not is_rectangular_selection(cells):
            raise NonRectangularRegionError()
        positions = constellation.positions
        if not region_contains(cells, positions):
            raise IncompleteCoverageError()

        min_x, min_y, _, _ = region_bounds(cells)
        squares = sorted(
            {cell.square() for cell in cells}, key=lambda s: (s.y, s.x)
        )
        return UnitCell(
            qubits=tuple(Point(p.x - min_x, p.y - min_y) for p in positions),
            grid_squares=tuple(squares),
        )

    def check(self, unit_cell: UnitCell) -> UnitCell:
        """Re-validate a stored record before it is tiled.

        A record loaded from disk may have been edited by hand, so it gets
        the same rectangle and coverage checks as a freshly resolved one.
        Its qubits are relative, so coverage is checked against the squares
        shifted to the origin.
        """
        squares = unit_cell.grid_squares
        if any(s.size <= 0 for s in squares):
            raise InvalidUnitCellError()
        cells = [GridCell(s.x, s.y, s.size) for s in squares]
        if not is_rectangular_selection(cells):
            raise NonRectangularRegionError()
        if not unit_cell.qubits:
            raise EmptyConstellationError()
        min_x, min_y, _, _ = region_bounds(cells)
        shifted = [GridCell(c.x - min_x, c.y - min_y, c.size) for c in cells]
        if not region_contains(shifted, unit_cell.qubits):
            raise IncompleteCoverageError()
        return unit_cell
