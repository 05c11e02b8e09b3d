"""Unit-cell construction and tiling engine.

The public entry point is ``WorkflowController``; the other names are the
records and checks it is built from.
"""

from .errors import (
    EmptyConstellationError,
    IncompleteCoverageError,
    InvalidUnitCellError,
    MissingUnitCellError,
    NonRectangularRegionError,
    ValidationError,
)
from .geometry import is_rectangular_selection, region_contains
from .tiling import tile
from .types import LatticeExport, UnitCell, WorkspaceParams
from .workflow import Signal, WorkflowController, WorkflowState

__all__ = [
    "EmptyConstellationError",
    "IncompleteCoverageError",
    "InvalidUnitCellError",
    "LatticeExport",
    "MissingUnitCellError",
    "NonRectangularRegionError",
    "Signal",
    "UnitCell",
    "ValidationError",
    "WorkflowController",
    "WorkflowState",
    "WorkspaceParams",
    "is_rectangular_selection",
    "region_contains",
    "tile",
]
