"""State machine that sequences the unit-cell construction workflow.

The controller owns the transition logic and is the only thing that mutates
the workspace. Everything else it calls into is either a pure check
(``geometry.py``, ``unit_cell.py``) or a component that works on the
workspace it is handed (``tiling.py``, ``footprint.py``).

States and the signals each one accepts::

    IDLE                   START, RESTORE
    SELECTING_CONSTELLATION PLACE_QUBIT, CANCEL, SAVE_CONSTELLATION
    SELECTING_BOUNDARY     TOGGLE_CELL, FINALIZE_BOUNDARY
    TILING                 (none, left automatically)
    ASSEMBLING_FOOTPRINTS  (none, left automatically)
    READY                  REMOVE_ENTITY, SELECT_FOOTPRINT, EXPORT, RESET

A signal its current state does not accept is dropped, the way a click on
the canvas does nothing when no listener is attached. Signals are handled
strictly in arrival order: one dispatched from inside a handler or a state
listener is queued and runs once the current transition has finished,
including the automatic TILING -> ASSEMBLING_FOOTPRINTS -> READY run.

Guards run before anything is mutated. When one fails the controller passes
the error's message to the notifier, stays where it is, and re-raises the
``ValidationError`` so callers can react.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol

from .constellation import ConstellationBuilder
from .errors import (
    EmptyConstellationError,
    MissingUnitCellError,
    ValidationError,
)
from .footprint import FootprintAssembler
from .tiling import LatticeTiler
from .types import (
    EntityKind,
    Footprint,
    GridCell,
    GridSquare,
    LatticeExport,
    Point,
    Qubit,
    UnitCell,
    WorkspaceParams,
)
from .unit_cell import UnitCellResolver
from .workspace import Workspace

logger = logging.getLogger(__name__)


class WorkflowState(Enum):
    IDLE = "idle"
    SELECTING_CONSTELLATION = "selecting_constellation"
    SELECTING_BOUNDARY = "selecting_boundary"
    TILING = "tiling"
    ASSEMBLING_FOOTPRINTS = "assembling_footprints"
    READY = "ready"


class Signal(Enum):
    START = "start"
    RESTORE = "restore"
    PLACE_QUBIT = "place_qubit"
    CANCEL = "cancel"
    SAVE_CONSTELLATION = "save_constellation"
    TOGGLE_CELL = "toggle_cell"
    FINALIZE_BOUNDARY = "finalize_boundary"
    REMOVE_ENTITY = "remove_entity"
    SELECT_FOOTPRINT = "select_footprint"
    EXPORT = "export"
    RESET = "reset"


PERMITTED_SIGNALS: dict[WorkflowState, frozenset[Signal]] = {
    WorkflowState.IDLE: frozenset({Signal.START, Signal.RESTORE}),
    WorkflowState.SELECTING_CONSTELLATION: frozenset(
        {Signal.PLACE_QUBIT, Signal.CANCEL, Signal.SAVE_CONSTELLATION}
    ),
    WorkflowState.SELECTING_BOUNDARY: frozenset(
        {Signal.TOGGLE_CELL, Signal.FINALIZE_BOUNDARY}
    ),
    WorkflowState.TILING: frozenset(),
    WorkflowState.ASSEMBLING_FOOTPRINTS: frozenset(),
    WorkflowState.READY: frozenset(
        {
            Signal.REMOVE_ENTITY,
            Signal.SELECT_FOOTPRINT,
            Signal.EXPORT,
            Signal.RESET,
        }
    ),
}


class Notifier(Protocol):
    def notify(self, message: str) -> None: ...


class UnitCellStore(Protocol):
    def set_unit_cell(self, unit_cell: UnitCell) -> None: ...

    def unit_cell(self) -> UnitCell | None: ...


class LoggingNotifier:
    """Notifier that logs messages and keeps them for inspection."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def notify(self, message: str) -> None:
        logger.info("Notification: %s", message)
        self.messages.append(message)


class MemoryUnitCellStore:
    def __init__(self, unit_cell: UnitCell | None = None) -> None:
        self._unit_cell = unit_cell
        self.writes = 0

    def set_unit_cell(self, unit_cell: UnitCell) -> None:
        self._unit_cell = unit_cell
        self.writes += 1

    def unit_cell(self) -> UnitCell | None:
        return self._unit_cell


@dataclass
class WorkflowContext:
    """Per-run state; starts empty and is replaced on START and RESET."""

    constellation: ConstellationBuilder = field(
        default_factory=ConstellationBuilder
    )
    region: tuple[GridSquare, ...] = ()
    unit_cell: UnitCell | None = None
    tiled: list[Qubit] = field(default_factory=list)
    footprints: list[Footprint] = field(default_factory=list)


@dataclass
class _Pending:
    signal: Signal
    payload: dict[str, Any]
    result: Any = None
    error: Exception | None = None


StateListener = Callable[[WorkflowState, WorkflowState], None]


class WorkflowController:
    def __init__(
        self,
        workspace: Workspace | None = None,
        notifier: Notifier | None = None,
        store: UnitCellStore | None = None,
    ) -> None:
        self.workspace = workspace or Workspace()
        self.notifier = notifier or LoggingNotifier()
        self.store = store or MemoryUnitCellStore()
        self.resolver = UnitCellResolver()
        self.tiler = LatticeTiler(self.workspace)
        self.assembler = FootprintAssembler(self.workspace)
        self.context = self._new_context()
        self._state = WorkflowState.IDLE
        self._listeners: list[StateListener] = []
        self._queue: deque[_Pending] = deque()
        self._dispatching = False
        self._handlers: dict[Signal, Callable[..., Any]] = {
            Signal.START: self._on_start,
            Signal.RESTORE: self._on_restore,
            Signal.PLACE_QUBIT: self._on_place_qubit,
            Signal.CANCEL: self._on_cancel,
            Signal.SAVE_CONSTELLATION: self._on_save_constellation,
            Signal.TOGGLE_CELL: self._on_toggle_cell,
            Signal.FINALIZE_BOUNDARY: self._on_finalize_boundary,
            Signal.REMOVE_ENTITY: self._on_remove_entity,
            Signal.SELECT_FOOTPRINT: self._on_select_footprint,
            Signal.EXPORT: self._on_export,
            Signal.RESET: self._on_reset,
        }

    @property
    def params(self) -> WorkspaceParams:
        return self.workspace.params

    @property
    def state(self) -> WorkflowState:
        return self._state

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def permitted_signals(self) -> frozenset[Signal]:
        return PERMITTED_SIGNALS[self._state]

    def is_permitted(self, signal: Signal) -> bool:
        return signal in PERMITTED_SIGNALS[self._state]

    # -- dispatch ----------------------------------------------------------

    def dispatch(self, signal: Signal, **payload: Any) -> Any:
        """Handle ``signal`` and return its handler's result.

        Returns None when the signal is dropped or, if called re-entrantly,
        when it has been queued behind the transition in progress. A queued
        signal's caller has already returned, so an error it raises is
        logged and the drain moves on to the next one. Only ``signal``'s own
        error is raised here.
        """
        pending = _Pending(signal, payload)
        self._queue.append(pending)
        if self._dispatching:
            logger.debug("Queued %s behind current transition", signal.value)
            return None
        self._dispatching = True
        try:
            while self._queue:
                item = self._queue.popleft()
                try:
                    item.result = self._handle(item)
                except Exception as e:
                    item.error = e
                    if item is not pending:
                        logger.warning(
                            "Queued %s failed: %s", item.signal.value, e
                        )
        finally:
            self._queue.clear()
            self._dispatching = False
        if pending.error is not None:
            raise pending.error
        return pending.result

    def _handle(self, item: _Pending) -> Any:
        if not self.is_permitted(item.signal):
            logger.debug(
                "Dropped %s in state %s",
                item.signal.value,
                self._state.value,
            )
            return None
        return self._handlers[item.signal](**item.payload)

    def _transition(self, new_state: WorkflowState) -> None:
        old_state, self._state = self._state, new_state
        logger.info("Workflow %s -> %s", old_state.value, new_state.value)
        for listener in list(self._listeners):
            listener(old_state, new_state)

    def _report(self, error: ValidationError) -> None:
        logger.warning("Rejected in %s: %s", self._state.value, error.message)
        self.notifier.notify(error.message)

    def _new_context(self) -> WorkflowContext:
        return WorkflowContext(
            constellation=ConstellationBuilder(radius=self.params.qubit_radius)
        )

    # -- public signal helpers ---------------------------------------------

    def start(self) -> None:
        self.dispatch(Signal.START)

    def restore(self, unit_cell: UnitCell | None = None) -> UnitCell | None:
        return self.dispatch(Signal.RESTORE, unit_cell=unit_cell)

    def place_qubit(self, x: float, y: float) -> Qubit | None:
        return self.dispatch(Signal.PLACE_QUBIT, x=x, y=y)

    def cancel(self) -> None:
        self.dispatch(Signal.CANCEL)

    def save_constellation(self) -> None:
        self.dispatch(Signal.SAVE_CONSTELLATION)

    def toggle_cell(self, x: float, y: float) -> GridCell | None:
        return self.dispatch(Signal.TOGGLE_CELL, x=x, y=y)

    def finalize_boundary(self) -> UnitCell | None:
        return self.dispatch(Signal.FINALIZE_BOUNDARY)

    def remove_entity(self, entity_id: str) -> None:
        self.dispatch(Signal.REMOVE_ENTITY, entity_id=entity_id)

    def select_footprint(self, entity_id: str) -> Footprint | None:
        return self.dispatch(Signal.SELECT_FOOTPRINT, entity_id=entity_id)

    def export(self) -> LatticeExport | None:
        return self.dispatch(Signal.EXPORT)

    def reset(self) -> None:
        self.dispatch(Signal.RESET)

    # -- handlers ----------------------------------------------------------

    def _on_start(self) -> None:
        self.context = self._new_context()
        self._transition(WorkflowState.SELECTING_CONSTELLATION)

    def _on_place_qubit(self, x: float, y: float) -> Qubit:
        try:
            qubit = self.context.constellation.add_qubit(Point(x, y))
        except ValidationError as e:
            self._report(e)
            raise
        self.workspace.add_qubit(qubit)
        logger.debug("Placed seed qubit %s at (%s, %s)", qubit.id, x, y)
        return qubit

    def _on_cancel(self) -> None:
        # Seeds placed so far are discarded along with the run.
        for qubit in self.context.constellation.clear():
            self.workspace.remove_qubit(qubit)
        self._transition(WorkflowState.IDLE)

    def _on_save_constellation(self) -> None:
        if self.context.constellation.is_empty():
            error = EmptyConstellationError()
            self._report(error)
            raise error
        self._transition(WorkflowState.SELECTING_BOUNDARY)

    def _on_toggle_cell(self, x: float, y: float) -> GridCell | None:
        return self.workspace.toggle_cell_at(x, y)

    def _on_finalize_boundary(self) -> UnitCell:
        region = self.workspace.selected_cells()
        try:
            unit_cell = self.resolver.resolve(region, self.context.constellation)
        except ValidationError as e:
            self._report(e)
            raise
        self.context.region = unit_cell.grid_squares
        self.workspace.clear_selection()
        self._transition(WorkflowState.TILING)
        self._build_lattice(
            unit_cell, seeds=self.context.constellation.qubits, persist=True
        )
        return unit_cell

    def _on_restore(self, unit_cell: UnitCell | None = None) -> UnitCell:
        if unit_cell is None:
            unit_cell = self.store.unit_cell()
        try:
            if unit_cell is None or not unit_cell.grid_squares:
                raise MissingUnitCellError()
            self.resolver.check(unit_cell)
        except ValidationError as e:
            self._report(e)
            raise
        self.context = self._new_context()
        self.context.region = unit_cell.grid_squares
        self._transition(WorkflowState.TILING)
        self._build_lattice(unit_cell, seeds=(), persist=False)
        return unit_cell

    def _build_lattice(
        self, unit_cell: UnitCell, seeds: list[Qubit] | tuple, persist: bool
    ) -> None:
        self.context.unit_cell = unit_cell
        self.context.tiled = self.tiler.commit(unit_cell, seeds)
        if persist:
            self.store.set_unit_cell(unit_cell)
            logger.info(
                "Persisted unit cell with %d qubits", len(unit_cell.qubits)
            )
        self._transition(WorkflowState.ASSEMBLING_FOOTPRINTS)

        footprint = self.assembler.assemble(
            self.params.anchor, self.context.tiled
        )
        self.context.footprints = [footprint]
        self._transition(WorkflowState.READY)

    def _on_remove_entity(self, entity_id: str) -> None:
        kind = self.workspace.registry.kind_of(entity_id)
        entity = self.workspace.registry.get(entity_id)
        if kind is EntityKind.FOOTPRINT:
            self.assembler.remove(entity)
            self.context.footprints = [
                f for f in self.context.footprints if f is not entity
            ]
        elif kind is EntityKind.QUBIT:
            if any(q is entity for q in self.context.constellation):
                raise ValueError(f"Seed qubit {entity_id} cannot be removed")
            self.assembler.detach_qubit(entity_id)
            self.workspace.remove_qubit(entity)
            self.context.tiled = [
                q for q in self.context.tiled if q.id != entity_id
            ]
        else:
            raise ValueError(
                f"Entity {entity_id} of kind {kind.value} cannot be removed"
            )
        logger.info("Removed %s", entity_id)

    def _on_select_footprint(self, entity_id: str) -> Footprint | None:
        if self.workspace.registry.kind_of(entity_id) is not EntityKind.FOOTPRINT:
            raise ValueError(f"Entity {entity_id} is not a footprint")
        return self.assembler.toggle_selection(
            self.workspace.registry.get(entity_id)
        )

    def _on_export(self) -> LatticeExport:
        return LatticeExport(
            params=self.params,
            unit_cell=self.context.unit_cell,
            qubits=list(self.context.tiled),
            footprints=list(self.context.footprints),
        )

    def _on_reset(self) -> None:
        registry = self.workspace.registry
        registry.clear(EntityKind.QUBIT)
        registry.clear(EntityKind.FOOTPRINT)
        self.workspace.selected_footprint = None
        self.workspace.clear_selection()
        self.context = self._new_context()
        self._transition(WorkflowState.IDLE)
