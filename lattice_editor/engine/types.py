"""Data types for the unit-cell editor and its JSON records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EntityKind(Enum):
    QUBIT = "qubit"
    GRID_CELL = "grid_cell"
    FOOTPRINT = "footprint"


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    @staticmethod
    def from_dict(d: dict) -> Point:
        return Point(x=d["x"], y=d["y"])

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass
class Qubit:
    """A qubit marker on the workspace.

    Coordinates are fixed once the qubit exists; tiling creates translated
    copies instead of moving seeds. ``id`` is assigned by the entity
    registry and does not take part in equality, so two tilings of the same
    unit cell compare equal element-wise.
    """

    x: float
    y: float
    radius: float = 5.0
    visible: bool = True
    id: str = field(default="", compare=False)

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass
class GridCell:
    x: float
    y: float
    size: float
    selected: bool = False
    id: str = field(default="", compare=False)

    @property
    def col(self) -> int:
        return round(self.x / self.size)

    @property
    def row(self) -> int:
        return round(self.y / self.size)

    def square(self) -> GridSquare:
        return GridSquare(x=self.x, y=self.y, size=self.size)


@dataclass(frozen=True)
class GridSquare:
    x: float
    y: float
    size: float

    @staticmethod
    def from_dict(d: dict) -> GridSquare:
        return GridSquare(x=d["x"], y=d["y"], size=d["size"])

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "size": self.size}


@dataclass(frozen=True)
class UnitCell:
    """The finalized, persisted description of one repeating cell.

    ``qubits`` are relative to the region's minimum corner, in constellation
    order. ``grid_squares`` are the absolute cells of the region, sorted by
    (y, x).
    """

    qubits: tuple[Point, ...]
    grid_squares: tuple[GridSquare, ...]

    @property
    def width(self) -> float:
        if not self.grid_squares:
            return 0.0
        lo = min(s.x for s in self.grid_squares)
        hi = max(s.x + s.size for s in self.grid_squares)
        return hi - lo

    @property
    def height(self) -> float:
        if not self.grid_squares:
            return 0.0
        lo = min(s.y for s in self.grid_squares)
        hi = max(s.y + s.size for s in self.grid_squares)
        return hi - lo

    @staticmethod
    def from_dict(d: dict) -> UnitCell:
        return UnitCell(
            qubits=tuple(Point.from_dict(q) for q in d.get("qubits", [])),
            grid_squares=tuple(
                GridSquare.from_dict(s) for s in d.get("gridSquares", [])
            ),
        )

    def to_dict(self) -> dict:
        return {
            "qubits": [q.to_dict() for q in self.qubits],
            "gridSquares": [s.to_dict() for s in self.grid_squares],
        }


@dataclass
class FootprintPanel:
    """Descriptive panel shown when a footprint is selected."""

    title: str
    description: str = ""


@dataclass
class Footprint:
    name: str
    anchor: Point
    members: list[str] = field(default_factory=list)
    panel: FootprintPanel | None = None
    basis: str = "Z"
    id: str = field(default="", compare=False)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "anchor": self.anchor.to_dict(),
            "members": list(self.members),
            "basis": self.basis,
        }


@dataclass
class WorkspaceParams:
    grid_size: float = 50.0
    qubit_radius: float = 5.0
    workspace_width: float = 800.0
    workspace_height: float = 600.0
    anchor_x: float = 125.0
    anchor_y: float = 50.0
    footprint_name: str = "footprint"
    footprint_basis: str = "Z"

    @property
    def anchor(self) -> Point:
        return Point(self.anchor_x, self.anchor_y)

    @staticmethod
    def from_dict(d: dict | None) -> WorkspaceParams:
        if not d:
            return WorkspaceParams()
        defaults = WorkspaceParams()
        return WorkspaceParams(
            grid_size=d.get("grid_size", defaults.grid_size),
            qubit_radius=d.get("qubit_radius", defaults.qubit_radius),
            workspace_width=d.get("workspace_width", defaults.workspace_width),
            workspace_height=d.get(
                "workspace_height", defaults.workspace_height
            ),
            anchor_x=d.get("anchor_x", defaults.anchor_x),
            anchor_y=d.get("anchor_y", defaults.anchor_y),
            footprint_name=d.get("footprint_name", defaults.footprint_name),
            footprint_basis=d.get(
                "footprint_basis", defaults.footprint_basis
            ),
        )

    def to_dict(self) -> dict:
        return {
            "grid_size": self.grid_size,
            "qubit_radius": self.qubit_radius,
            "workspace_width": self.workspace_width,
            "workspace_height": self.workspace_height,
            "anchor_x": self.anchor_x,
            "anchor_y": self.anchor_y,
            "footprint_name": self.footprint_name,
            "footprint_basis": self.footprint_basis,
        }


@dataclass
class LatticeExport:
    """Everything the export encoder needs once the workflow is ready."""

    params: WorkspaceParams
    unit_cell: UnitCell
    qubits: list[Qubit] = field(default_factory=list)
    footprints: list[Footprint] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "params": self.params.to_dict(),
            "unit_cell": self.unit_cell.to_dict(),
            "qubits": [q.to_dict() for q in self.qubits],
            "footprints": [f.to_dict() for f in self.footprints],
        }
