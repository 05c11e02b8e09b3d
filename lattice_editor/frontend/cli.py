"""Command-line runner for scripted editor sessions.

Usage:
    lattice-editor build session.json --unit-cell cell.json --stim lattice.stim
    lattice-editor -v build session.json --config params.json
    lattice-editor tile cell.json --stim lattice.stim

A session file replays what a user would click::

    {
      "qubits": [{"x": 20, "y": 30}],
      "cells": [{"x": 10, "y": 10}, {"x": 60, "y": 10}]
    }

``qubits`` are placed in order during constellation selection, and each
entry of ``cells`` toggles the grid cell under that point during boundary
selection. ``tile`` skips the session and tiles a saved unit cell
(.json or .png) instead.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from ..engine.errors import ValidationError
from ..engine.workflow import (
    MemoryUnitCellStore,
    UnitCellStore,
    WorkflowController,
)
from ..engine.workspace import Workspace
from .stim_export import write_stim
from .unit_cell_io import FileUnitCellStore, load_params, load_unit_cell


def _make_controller(args, store: UnitCellStore) -> WorkflowController:
    params = load_params(args.config)
    return WorkflowController(Workspace(params), store=store)


def _finish(controller: WorkflowController, args) -> None:
    export = controller.export()
    print(
        f"Tiled {len(export.qubits)} qubits "
        f"({len(export.unit_cell.qubits)} per "
        f"{export.unit_cell.width:g}x{export.unit_cell.height:g} cell), "
        f"{len(export.footprints)} footprint(s)"
    )
    if args.stim:
        write_stim(export, args.stim)
        print(f"Wrote {args.stim}")


def cmd_build(args) -> int:
    with open(args.session) as f:
        session = json.load(f)

    if args.unit_cell:
        store: UnitCellStore = FileUnitCellStore(args.unit_cell)
    else:
        store = MemoryUnitCellStore()
    controller = _make_controller(args, store)

    try:
        controller.start()
        for q in session.get("qubits", []):
            controller.place_qubit(q["x"], q["y"])
        controller.save_constellation()
        for c in session.get("cells", []):
            controller.toggle_cell(c["x"], c["y"])
        controller.finalize_boundary()
    except ValidationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    if args.unit_cell:
        print(f"Saved unit cell to {args.unit_cell}")
    _finish(controller, args)
    return 0


def cmd_tile(args) -> int:
    controller = _make_controller(args, MemoryUnitCellStore())
    try:
        controller.restore(load_unit_cell(args.unit_cell))
    except ValidationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    _finish(controller, args)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lattice-editor",
        description="Build a unit cell, tile it and export a Stim circuit.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging."
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default=None,
        help="Workspace parameters JSON (grid size, workspace size, anchor).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_build = sub.add_parser(
        "build", parents=[common], help="Replay a session file."
    )
    p_build.add_argument("session", help="Session JSON with qubits and cells.")
    p_build.add_argument(
        "--unit-cell",
        default=None,
        help="Where to save the unit cell (.json or .png).",
    )
    p_build.add_argument("--stim", default=None, help="Output .stim path.")
    p_build.set_defaults(func=cmd_build)

    p_tile = sub.add_parser(
        "tile", parents=[common], help="Tile a saved unit cell."
    )
    p_tile.add_argument("unit_cell", help="Saved unit cell (.json or .png).")
    p_tile.add_argument("--stim", default=None, help="Output .stim path.")
    p_tile.set_defaults(func=cmd_tile)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
