"""Exceptions raised by the unit-cell workflow.

Every ``ValidationError`` is recoverable: it is raised by a guard before any
state changes, and its ``message`` is the text shown to the user.
"""

from __future__ import annotations

EMPTY_CONSTELLATION_MESSAGE = "Constellation must have at least one qubit"
NON_RECTANGULAR_MESSAGE = "Bounding quad must be rectangular"
INCOMPLETE_COVERAGE_MESSAGE = "Bounding quad must contain every qubit"


class LatticeEditorError(Exception):
    pass


class ValidationError(LatticeEditorError):
    default_message = "Invalid input"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class EmptyConstellationError(ValidationError):
    default_message = EMPTY_CONSTELLATION_MESSAGE


class NonRectangularRegionError(ValidationError):
    default_message = NON_RECTANGULAR_MESSAGE


class IncompleteCoverageError(ValidationError):
    default_message = INCOMPLETE_COVERAGE_MESSAGE


class DuplicateQubitError(ValidationError):
    default_message = "A qubit already exists at this position"


class MissingUnitCellError(ValidationError):
    default_message = "No unit cell has been saved"


class InvalidUnitCellError(ValidationError):
    default_message = "Unit cell grid squares must have a positive size"


class UnknownEntityError(LatticeEditorError, KeyError):
    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(f"Unknown entity: {entity_id!r}")
