"""Tests for the workflow state machine, end to end."""

import pytest

from .errors import (
    DuplicateQubitError,
    EmptyConstellationError,
    IncompleteCoverageError,
    InvalidUnitCellError,
    MissingUnitCellError,
    NonRectangularRegionError,
    UnknownEntityError,
)
from .types import GridSquare, Point, UnitCell, WorkspaceParams
from .workflow import (
    PERMITTED_SIGNALS,
    LoggingNotifier,
    MemoryUnitCellStore,
    Signal,
    WorkflowController,
    WorkflowState,
)
from .workspace import Workspace

S = WorkflowState


def _controller(grid=10, width=20, height=20, store=None):
    params = WorkspaceParams(
        grid_size=grid, workspace_width=width, workspace_height=height
    )
    return WorkflowController(
        Workspace(params),
        notifier=LoggingNotifier(),
        store=store or MemoryUnitCellStore(),
    )


def _positions(qubits):
    return [(q.x, q.y) for q in qubits]


def _to_boundary(controller, *points):
    controller.start()
    for x, y in points:
        controller.place_qubit(x, y)
    controller.save_constellation()


def _ready(controller):
    """Run the (2,2) single-cell scenario through to READY."""
    _to_boundary(controller, (2, 2))
    controller.toggle_cell(5, 5)
    controller.finalize_boundary()
    return controller


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestEndToEnd:
    def test_starts_idle(self):
        assert _controller().state is S.IDLE

    def test_single_qubit_scenario(self):
        """Constellation (2,2), cell [0,0]-[10,10], workspace 20x20."""
        c = _controller()
        _ready(c)

        assert c.state is S.READY
        assert _positions(c.context.tiled) == [
            (2, 2),
            (2, 12),
            (12, 2),
            (12, 12),
        ]
        assert c.store.unit_cell() == UnitCell(
            qubits=(Point(2, 2),), grid_squares=(GridSquare(0, 0, 10),)
        )
        assert c.store.writes == 1

    def test_state_sequence(self):
        c = _controller()
        seen = []
        c.add_listener(lambda old, new: seen.append(new))
        _ready(c)
        assert seen == [
            S.SELECTING_CONSTELLATION,
            S.SELECTING_BOUNDARY,
            S.TILING,
            S.ASSEMBLING_FOOTPRINTS,
            S.READY,
        ]

    def test_seeds_hidden_not_removed(self):
        c = _controller()
        _ready(c)
        seed = c.context.constellation.qubits[0]
        assert seed.visible is False
        assert any(q is seed for q in c.workspace.qubits())
        assert all(q.visible for q in c.context.tiled)

    def test_selection_cleared_and_region_locked(self):
        c = _controller()
        _ready(c)
        assert c.workspace.selected_cells() == []
        assert c.context.region == (GridSquare(0, 0, 10),)

    def test_one_footprint_over_tiled_set(self):
        c = _controller()
        _ready(c)
        (fp,) = c.context.footprints
        assert fp.anchor == c.params.anchor
        assert fp.members == [q.id for q in c.context.tiled]
        assert c.workspace.footprints() == [fp]

    def test_multi_cell_region(self):
        c = _controller(grid=10, width=40, height=20)
        _to_boundary(c, (3, 4), (15, 8))
        c.toggle_cell(5, 5)
        c.toggle_cell(15, 5)
        cell = c.finalize_boundary()
        assert (cell.width, cell.height) == (20, 10)
        assert _positions(c.context.tiled) == [
            (3, 4),
            (15, 8),
            (3, 14),
            (15, 18),
            (23, 4),
            (35, 8),
            (23, 14),
            (35, 18),
        ]

    def test_region_away_from_origin(self):
        """Qubits are stored relative to the region's corner."""
        c = _controller(grid=10, width=40, height=40)
        _to_boundary(c, (25, 32))
        c.toggle_cell(25, 35)
        cell = c.finalize_boundary()
        assert cell.qubits == (Point(5, 2),)
        assert _positions(c.context.tiled)[:2] == [(5, 2), (5, 12)]

    def test_export(self):
        c = _controller()
        _ready(c)
        export = c.export()
        assert export.unit_cell == c.store.unit_cell()
        assert _positions(export.qubits) == _positions(c.context.tiled)
        assert export.footprints == c.context.footprints
        assert export.params is c.params


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


class TestGuards:
    def test_empty_constellation(self):
        c = _controller()
        c.start()
        with pytest.raises(EmptyConstellationError):
            c.save_constellation()
        assert c.state is S.SELECTING_CONSTELLATION
        assert c.notifier.messages == [
            "Constellation must have at least one qubit"
        ]

    def test_non_rectangular_region(self):
        """Cells (0,0), (10,0), (0,10) without (10,10)."""
        c = _controller()
        _to_boundary(c, (5, 5))
        for x, y in [(0, 0), (10, 0), (0, 10)]:
            c.toggle_cell(x, y)
        with pytest.raises(NonRectangularRegionError):
            c.finalize_boundary()

        assert c.state is S.SELECTING_BOUNDARY
        assert c.notifier.messages == ["Bounding quad must be rectangular"]
        assert len(c.workspace.selected_cells()) == 3
        assert c.store.writes == 0
        assert c.context.tiled == []

    def test_empty_region(self):
        c = _controller()
        _to_boundary(c, (5, 5))
        with pytest.raises(NonRectangularRegionError):
            c.finalize_boundary()
        assert c.state is S.SELECTING_BOUNDARY

    def test_region_missing_a_qubit(self):
        c = _controller()
        _to_boundary(c, (5, 5), (15, 15))
        c.toggle_cell(5, 5)
        with pytest.raises(IncompleteCoverageError):
            c.finalize_boundary()
        assert c.state is S.SELECTING_BOUNDARY
        assert c.notifier.messages == ["Bounding quad must contain every qubit"]

    def test_retry_after_fixing_selection(self):
        c = _controller()
        _to_boundary(c, (5, 5), (15, 15))
        c.toggle_cell(5, 5)
        with pytest.raises(IncompleteCoverageError):
            c.finalize_boundary()
        for x, y in [(15, 5), (5, 15), (15, 15)]:
            c.toggle_cell(x, y)
        c.finalize_boundary()
        assert c.state is S.READY
        assert len(c.context.tiled) == 2

    def test_duplicate_qubit(self):
        c = _controller()
        c.start()
        c.place_qubit(2, 2)
        with pytest.raises(DuplicateQubitError):
            c.place_qubit(2, 2)
        assert len(c.context.constellation) == 1
        assert len(c.notifier.messages) == 1


# ---------------------------------------------------------------------------
# Permitted signals and ordering
# ---------------------------------------------------------------------------


class TestPermittedSignals:
    def test_automatic_states_accept_nothing(self):
        assert PERMITTED_SIGNALS[S.TILING] == frozenset()
        assert PERMITTED_SIGNALS[S.ASSEMBLING_FOOTPRINTS] == frozenset()

    def test_every_state_has_an_entry(self):
        assert set(PERMITTED_SIGNALS) == set(WorkflowState)

    def test_cell_toggle_ignored_outside_boundary_selection(self):
        c = _controller()
        c.start()
        assert c.toggle_cell(5, 5) is None
        assert c.workspace.selected_cells() == []

    def test_qubit_placement_ignored_when_idle(self):
        c = _controller()
        assert c.place_qubit(1, 1) is None
        assert c.workspace.qubits() == []

    def test_finalize_ignored_when_idle(self):
        c = _controller()
        assert c.finalize_boundary() is None
        assert c.state is S.IDLE

    def test_start_ignored_once_started(self):
        c = _controller()
        c.start()
        c.place_qubit(1, 1)
        c.start()
        assert len(c.context.constellation) == 1

    def test_is_permitted(self):
        c = _controller()
        assert c.is_permitted(Signal.START)
        assert not c.is_permitted(Signal.EXPORT)
        assert c.permitted_signals() == PERMITTED_SIGNALS[S.IDLE]

    def test_signal_from_listener_runs_after_transition(self):
        """A listener's dispatch is queued until the current one finishes."""
        c = _controller()
        results = []

        def on_change(old, new):
            if new is S.SELECTING_BOUNDARY:
                results.append(c.toggle_cell(5, 5))
                # Not yet applied: the save transition is still running.
                results.append(len(c.workspace.selected_cells()))

        c.add_listener(on_change)
        _to_boundary(c, (2, 2))
        assert results == [None, 0]
        assert len(c.workspace.selected_cells()) == 1

    def test_listener_sees_tiling_complete_before_next_signal(self):
        c = _controller()
        seen = []

        def on_change(old, new):
            if new is S.READY:
                c.reset()
                seen.append(c.state)

        c.add_listener(on_change)
        _ready(c)
        assert seen == [S.READY]
        assert c.state is S.IDLE

    def test_failing_queued_signal_does_not_leak_to_caller(self):
        """The save succeeded, so the queued finalize's error stays queued."""
        c = _controller()

        def on_change(old, new):
            if new is S.SELECTING_BOUNDARY:
                c.finalize_boundary()  # nothing selected yet
                c.toggle_cell(5, 5)

        c.add_listener(on_change)
        _to_boundary(c, (2, 2))

        assert c.state is S.SELECTING_BOUNDARY
        assert c.notifier.messages == ["Bounding quad must be rectangular"]
        # The toggle behind the failed finalize still ran, in order.
        assert len(c.workspace.selected_cells()) == 1
        assert not c._queue

        c.finalize_boundary()
        assert c.state is S.READY

    def test_own_error_raised_after_queue_drains(self):
        c = _controller()

        class TogglingNotifier(LoggingNotifier):
            def notify(self, message):
                super().notify(message)
                c.toggle_cell(5, 5)

        c.notifier = TogglingNotifier()
        _to_boundary(c, (2, 2))
        with pytest.raises(NonRectangularRegionError):
            c.finalize_boundary()

        assert c.state is S.SELECTING_BOUNDARY
        assert len(c.workspace.selected_cells()) == 1
        assert not c._queue


# ---------------------------------------------------------------------------
# Cancel, removal, selection, reset, restore
# ---------------------------------------------------------------------------


class TestCancel:
    def test_cancel_discards_seeds(self):
        c = _controller()
        c.start()
        c.place_qubit(1, 1)
        c.place_qubit(2, 2)
        c.cancel()
        assert c.state is S.IDLE
        assert c.workspace.qubits() == []
        assert c.context.constellation.is_empty()

    def test_start_again_after_cancel(self):
        c = _controller()
        c.start()
        c.place_qubit(1, 1)
        c.cancel()
        _to_boundary(c, (1, 1))
        assert c.state is S.SELECTING_BOUNDARY

    def test_cancel_not_available_at_boundary(self):
        c = _controller()
        _to_boundary(c, (1, 1))
        c.cancel()
        assert c.state is S.SELECTING_BOUNDARY


class TestRemoveEntity:
    def test_remove_tiled_qubit_detaches_from_footprint(self):
        c = _controller()
        _ready(c)
        victim = c.context.tiled[1]
        c.remove_entity(victim.id)

        assert victim.id not in c.workspace.registry
        assert victim.id not in c.context.footprints[0].members
        assert len(c.context.footprints[0].members) == 3
        assert len(c.context.tiled) == 3

    def test_remove_footprint_keeps_qubits(self):
        c = _controller()
        _ready(c)
        fp = c.context.footprints[0]
        c.remove_entity(fp.id)
        assert c.workspace.footprints() == []
        assert c.context.footprints == []
        assert len(c.context.tiled) == 4

    def test_seed_cannot_be_removed(self):
        c = _controller()
        _ready(c)
        seed = c.context.constellation.qubits[0]
        with pytest.raises(ValueError):
            c.remove_entity(seed.id)

    def test_grid_cell_cannot_be_removed(self):
        c = _controller()
        _ready(c)
        with pytest.raises(ValueError):
            c.remove_entity(c.workspace.grid[0][0].id)

    def test_unknown_entity(self):
        c = _controller()
        _ready(c)
        with pytest.raises(UnknownEntityError):
            c.remove_entity("qubit-999")


class TestSelectFootprint:
    def test_toggle(self):
        c = _controller()
        _ready(c)
        fp = c.context.footprints[0]
        assert c.select_footprint(fp.id) is fp
        assert c.select_footprint(fp.id) is None

    def test_removing_selected_footprint_clears_selection(self):
        c = _controller()
        _ready(c)
        fp = c.context.footprints[0]
        c.select_footprint(fp.id)
        c.remove_entity(fp.id)
        assert c.workspace.selected_footprint is None

    def test_non_footprint_rejected(self):
        c = _controller()
        _ready(c)
        with pytest.raises(ValueError):
            c.select_footprint(c.context.tiled[0].id)


class TestReset:
    def test_reset_tears_down_run(self):
        c = _controller()
        _ready(c)
        n_cells = len(c.workspace.cells())
        c.reset()
        assert c.state is S.IDLE
        assert c.workspace.qubits() == []
        assert c.workspace.footprints() == []
        assert c.context.unit_cell is None
        assert len(c.workspace.cells()) == n_cells

    def test_second_run_persists_again(self):
        c = _controller()
        _ready(c)
        c.reset()
        _ready(c)
        assert c.store.writes == 2
        assert len(c.workspace.qubits()) == 5


class TestRestore:
    def test_restore_from_store(self):
        stored = UnitCell(
            qubits=(Point(2, 2),), grid_squares=(GridSquare(0, 0, 10),)
        )
        store = MemoryUnitCellStore(stored)
        c = _controller(store=store)
        assert c.restore() == stored
        assert c.state is S.READY
        assert _positions(c.context.tiled) == [
            (2, 2),
            (2, 12),
            (12, 2),
            (12, 12),
        ]
        assert store.writes == 0
        assert len(c.context.footprints) == 1

    def test_restore_explicit_unit_cell(self):
        c = _controller(width=40, height=10)
        cell = UnitCell(
            qubits=(Point(1, 1),),
            grid_squares=(GridSquare(0, 0, 10), GridSquare(10, 0, 10)),
        )
        c.restore(cell)
        assert _positions(c.context.tiled) == [(1, 1), (21, 1)]

    def test_restore_without_stored_cell(self):
        c = _controller()
        with pytest.raises(MissingUnitCellError):
            c.restore()
        assert c.state is S.IDLE
        assert c.notifier.messages == ["No unit cell has been saved"]

    @pytest.mark.parametrize(
        "cell, error",
        [
            (
                UnitCell((Point(1, 1),), (GridSquare(0, 0, 0),)),
                InvalidUnitCellError,
            ),
            (
                UnitCell(
                    (Point(1, 1),),
                    (GridSquare(0, 0, 10), GridSquare(20, 0, 10)),
                ),
                NonRectangularRegionError,
            ),
            (
                UnitCell((Point(12, 1),), (GridSquare(0, 0, 10),)),
                IncompleteCoverageError,
            ),
            (
                UnitCell((), (GridSquare(0, 0, 10),)),
                EmptyConstellationError,
            ),
        ],
        ids=["zero_size", "hole", "qubit_outside", "no_qubits"],
    )
    def test_malformed_record_rejected(self, cell, error):
        store = MemoryUnitCellStore(cell)
        c = _controller(width=40, height=10, store=store)
        with pytest.raises(error):
            c.restore()

        assert c.state is S.IDLE
        assert c.notifier.messages == [error.default_message]
        assert c.context.tiled == []
        assert c.workspace.qubits() == []

    def test_record_away_from_origin(self):
        """Relative qubits are checked against the squares' own size."""
        c = _controller(width=40, height=40)
        cell = UnitCell((Point(5, 2),), (GridSquare(20, 30, 10),))
        c.restore(cell)
        assert c.state is S.READY
        assert _positions(c.context.tiled)[:2] == [(5, 2), (5, 12)]

    def test_start_after_rejected_record(self):
        c = _controller()
        with pytest.raises(NonRectangularRegionError):
            c.restore(
                UnitCell(
                    (Point(1, 1),),
                    (GridSquare(0, 0, 10), GridSquare(10, 10, 10)),
                )
            )
        _ready(c)
        assert c.state is S.READY

    def test_signal_enum_round_trip(self):
        assert Signal("restore") is Signal.RESTORE
