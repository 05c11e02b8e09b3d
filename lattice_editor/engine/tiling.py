"""Replicate a unit cell's qubits across the workspace.

Emission order is fixed: horizontal offset ``i`` in the outer loop, vertical
offset ``j`` in the inner loop, then seed qubits in constellation order.
Tests and the Stim exporter's qubit indices both rely on this order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from .types import Qubit, UnitCell
from .workspace import Workspace

logger = logging.getLogger(__name__)


def tile(
    unit_cell: UnitCell,
    workspace_width: float,
    workspace_height: float,
    cell_width: float,
    cell_height: float,
    radius: float = 5.0,
) -> Iterator[Qubit]:
    """Lazily yield every translated copy of the unit cell's qubits.

    A copy is emitted for each ``i`` with ``i * cell_width < workspace_width``
    and each ``j`` with ``j * cell_height < workspace_height``. Copies are
    not deduplicated.
    """
    if cell_width <= 0 or cell_height <= 0:
        raise ValueError(
            f"Cell size must be positive, got {cell_width}x{cell_height}"
        )
    i = 0
    while i * cell_width < workspace_width:
        horiz = i * cell_width
        j = 0
        while j * cell_height < workspace_height:
            vertic = j * cell_height
            for seed in unit_cell.qubits:
                yield Qubit(x=seed.x + horiz, y=seed.y + vertic, radius=radius)
            j += 1
        i += 1


class LatticeTiler:
    def __init__(self, workspace: Workspace) -> None:
        self.workspace = workspace

    def tile(self, unit_cell: UnitCell) -> Iterator[Qubit]:
        """Tile across this workspace using the unit cell's own period."""
        params = self.workspace.params
        return tile(
            unit_cell,
            params.workspace_width,
            params.workspace_height,
            unit_cell.width,
            unit_cell.height,
            radius=params.qubit_radius,
        )

    def commit(
        self, unit_cell: UnitCell, seeds: Iterable[Qubit] = ()
    ) -> list[Qubit]:
        """Add the tiled qubits to the workspace and hide the seeds.

        Seeds stay registered; they remain the geometric record of the
        constellation even though the copies are what gets drawn.
        """
        tiled = [self.workspace.add_qubit(q) for q in self.tile(unit_cell)]
        for seed in seeds:
            seed.visible = False
        logger.info(
            "Tiled %d seed qubits into %d workspace qubits",
            len(unit_cell.qubits),
            len(tiled),
        )
        return tiled
