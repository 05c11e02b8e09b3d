"""The workspace: root owner of every grid cell, qubit and footprint."""

from __future__ import annotations

import logging
import math

from .registry import EntityRegistry
from .types import EntityKind, Footprint, GridCell, Qubit, WorkspaceParams

logger = logging.getLogger(__name__)


class Workspace:
    """Background grid plus the entities placed on it.

    The grid covers ``workspace_width`` x ``workspace_height`` with square
    cells of ``grid_size``; a partial cell at the right or bottom edge is
    still created so every point of the workspace hits a cell.
    """

    def __init__(self, params: WorkspaceParams | None = None) -> None:
        self.params = params or WorkspaceParams()
        if self.params.grid_size <= 0:
            raise ValueError(
                f"grid_size must be positive, got {self.params.grid_size}"
            )
        self.registry = EntityRegistry()
        self.selected_footprint: Footprint | None = None
        self.grid: list[list[GridCell]] = []
        self._build_grid()

    def _build_grid(self) -> None:
        size = self.params.grid_size
        n_cols = math.ceil(self.params.workspace_width / size)
        n_rows = math.ceil(self.params.workspace_height / size)
        for row in range(n_rows):
            units = []
            for col in range(n_cols):
                cell = GridCell(x=col * size, y=row * size, size=size)
                self.registry.add(EntityKind.GRID_CELL, cell)
                units.append(cell)
            self.grid.append(units)
        logger.debug("Built %dx%d grid", n_cols, n_rows)

    # -- grid --------------------------------------------------------------

    def cells(self) -> list[GridCell]:
        return [cell for row in self.grid for cell in row]

    def cell_at(self, x: float, y: float) -> GridCell | None:
        size = self.params.grid_size
        row, col = math.floor(y / size), math.floor(x / size)
        if 0 <= row < len(self.grid) and 0 <= col < len(self.grid[row]):
            return self.grid[row][col]
        return None

    def selected_cells(self) -> list[GridCell]:
        return [cell for cell in self.cells() if cell.selected]

    def toggle_cell_at(self, x: float, y: float) -> GridCell | None:
        cell = self.cell_at(x, y)
        if cell is None:
            logger.debug("No grid cell at (%s, %s)", x, y)
            return None
        cell.selected = not cell.selected
        return cell

    def clear_selection(self) -> None:
        for cell in self.cells():
            cell.selected = False

    # -- qubits and footprints ---------------------------------------------

    def add_qubit(self, qubit: Qubit) -> Qubit:
        self.registry.add(EntityKind.QUBIT, qubit)
        return qubit

    def qubits(self) -> list[Qubit]:
        return self.registry.of_kind(EntityKind.QUBIT)

    def add_footprint(self, footprint: Footprint) -> Footprint:
        self.registry.add(EntityKind.FOOTPRINT, footprint)
        return footprint

    def footprints(self) -> list[Footprint]:
        return self.registry.of_kind(EntityKind.FOOTPRINT)

    def remove_qubit(self, qubit: Qubit) -> None:
        self.registry.remove(qubit.id)
