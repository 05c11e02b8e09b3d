"""Stabilizer footprints (plaquettes) over the tiled qubits.

A footprint references its member qubits by id and never owns them: removing
a footprint leaves every qubit in the workspace, and removing a qubit only
drops it from the footprints that list it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .types import Footprint, FootprintPanel, Point, Qubit
from .workspace import Workspace

logger = logging.getLogger(__name__)


class FootprintAssembler:
    def __init__(self, workspace: Workspace) -> None:
        self.workspace = workspace

    def assemble(
        self,
        anchor: Point,
        tiled_qubits: Iterable[Qubit],
        name: str | None = None,
        basis: str | None = None,
    ) -> Footprint:
        params = self.workspace.params
        members = [q.id for q in tiled_qubits]
        name = name or params.footprint_name
        footprint = Footprint(
            name=name,
            anchor=anchor,
            members=members,
            panel=FootprintPanel(
                title=name, description=f"{len(members)} qubits"
            ),
            basis=basis or params.footprint_basis,
        )
        self.workspace.add_footprint(footprint)
        logger.info(
            "Assembled footprint %s with %d members at (%s, %s)",
            footprint.id,
            len(members),
            anchor.x,
            anchor.y,
        )
        return footprint

    def toggle_selection(self, footprint: Footprint) -> Footprint | None:
        """Select ``footprint``, or deselect it if it is already selected."""
        if self.workspace.selected_footprint is footprint:
            self.workspace.selected_footprint = None
        else:
            self.workspace.selected_footprint = footprint
        return self.workspace.selected_footprint

    def remove(self, footprint: Footprint) -> None:
        if self.workspace.selected_footprint is footprint:
            self.workspace.selected_footprint = None
        self.workspace.registry.remove(footprint.id)
        footprint.members.clear()
        footprint.panel = None
        logger.info("Removed footprint %s", footprint.id)

    def detach_qubit(self, qubit_id: str) -> None:
        """Drop a qubit from every footprint's membership."""
        for footprint in self.workspace.footprints():
            if qubit_id in footprint.members:
                footprint.members.remove(qubit_id)
                if footprint.panel is not None:
                    footprint.panel.description = (
                        f"{len(footprint.members)} qubits"
                    )
