"""Seed qubits placed by the user inside one unit cell."""

from __future__ import annotations

from collections.abc import Iterator

from .errors import DuplicateQubitError
from .types import Point, Qubit


class ConstellationBuilder:
    """Ordered set of seed qubits.

    Insertion order is kept so tiling output is reproducible. Two seeds at
    the same position are rejected.
    """

    def __init__(self, radius: float = 5.0) -> None:
        self.radius = radius
        self._qubits: list[Qubit] = []

    def __len__(self) -> int:
        return len(self._qubits)

    def __iter__(self) -> Iterator[Qubit]:
        return iter(self._qubits)

    def add_qubit(self, position: Point) -> Qubit:
        if any(q.position == position for q in self._qubits):
            raise DuplicateQubitError(
                f"A qubit already exists at ({position.x}, {position.y})"
            )
        qubit = Qubit(x=position.x, y=position.y, radius=self.radius)
        self._qubits.append(qubit)
        return qubit

    def is_empty(self) -> bool:
        return not self._qubits

    @property
    def qubits(self) -> list[Qubit]:
        return list(self._qubits)

    @property
    def positions(self) -> list[Point]:
        return [q.position for q in self._qubits]

    def clear(self) -> list[Qubit]:
        """Forget every seed and return them so the caller can unregister them."""
        dropped, self._qubits = self._qubits, []
        return dropped
