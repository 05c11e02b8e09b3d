"""Encode a finished lattice as a Stim circuit.

Qubit indices follow the tiling emission order. Every footprint with members
becomes one ``MPP`` over its members in the footprint's Pauli basis,
followed by a ``TICK``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import stim

from ..engine.types import LatticeExport

logger = logging.getLogger(__name__)

_PAULI_TARGETS = {
    "X": stim.target_x,
    "Y": stim.target_y,
    "Z": stim.target_z,
}


def build_circuit(export: LatticeExport) -> stim.Circuit:
    circuit = stim.Circuit()
    index_by_id: dict[str, int] = {}
    for qubit in export.qubits:
        if not qubit.visible:
            continue
        idx = len(index_by_id)
        index_by_id[qubit.id] = idx
        circuit.append("QUBIT_COORDS", [idx], [float(qubit.x), float(qubit.y)])

    for footprint in export.footprints:
        target_fn = _PAULI_TARGETS.get(footprint.basis.upper())
        if target_fn is None:
            raise ValueError(
                f"Unsupported footprint basis {footprint.basis!r} "
                f"(expected one of {sorted(_PAULI_TARGETS)})"
            )
        indices = [index_by_id[m] for m in footprint.members if m in index_by_id]
        if not indices:
            continue
        targets = []
        for k, idx in enumerate(indices):
            if k:
                targets.append(stim.target_combiner())
            targets.append(target_fn(idx))
        circuit.append("MPP", targets)
        circuit.append("TICK")

    return circuit


def write_stim(export: LatticeExport, path: str | Path) -> stim.Circuit:
    """Write the Stim file and return the circuit that was written."""
    circuit = build_circuit(export)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    circuit.to_file(str(path))
    logger.info(
        "Wrote %d qubits and %d footprints to %s",
        circuit.num_qubits,
        len(export.footprints),
        path,
    )
    return circuit
