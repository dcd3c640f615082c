"""Tests for the drag session controller (optimistic update + rollback)."""
import threading

import pytest

from taskboard.api import BoardApiError
from taskboard.drag import (
    MOVE_FAILED,
    MOVE_OK,
    MOVE_STALE,
    DragController,
    insertion_side,
    run_in_background,
    run_inline,
)
from taskboard.geometry import Rect
from taskboard.layout import card_point, column_end_point, column_start_point, droppables, geometry_at
from taskboard.schema import Column, ColumnDragData, Task, TaskDragData
from taskboard.state import BoardState


def ids(state, column_id=None):
    tasks = state.tasks if column_id is None else state.tasks_in(column_id)
    return [t.id for t in tasks]


class RecordingMover:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def __call__(self, task_id, from_column, to_column):
        self.calls.append((task_id, from_column, to_column))
        if self.error:
            raise self.error
        return {"task": {"id": task_id, "columnId": to_column}}


def controller_for(state, mover=None):
    return DragController(state, mover or RecordingMover(), dispatch=run_inline)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Failed persistence
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_failed_move_reverts_whole_board():
    columns = [Column("Todo", "Todo"), Column("Doing", "Doing"), Column("Done", "Done")]
    t1 = Task(id="T1", column_id="Todo", column_title="Todo", content="One")
    t2 = Task(id="T2", column_id="Doing", column_title="Doing", content="Two")
    state = BoardState(columns, [t1, t2])
    mover = RecordingMover(BoardApiError("HTTP 500", status_code=500))
    controller = controller_for(state, mover)

    controller.start(TaskDragData(t1))
    controller.over(controller.active, TaskDragData(t2))

    assert ids(state) == ["T1", "T2"]
    assert state.find_task("T1").column_id == "Doing"
    assert state.find_task("T1").column_title == "Doing"

    request = controller.end(controller.active, TaskDragData(state.find_task("T2")))

    assert mover.calls == [("T1", "Todo", "Doing")]
    assert request.status == MOVE_FAILED
    assert "HTTP 500" in request.error
    assert state.tasks == (t1, t2)
    assert controller.origin_column_id is None
    assert not controller.is_dragging


def test_rollback_restores_every_column(state, tasks):
    mover = RecordingMover(RuntimeError("offline"))
    controller = controller_for(state, mover)

    controller.start(TaskDragData(tasks[0]))
    controller.over(controller.active, TaskDragData(tasks[2]))
    controller.over(controller.active, TaskDragData(tasks[4]))
    assert state.find_task("t1").column_id == "done"

    request = controller.end(controller.active, TaskDragData(tasks[4]))
    assert request.status == MOVE_FAILED
    assert mover.calls == [("t1", "todo", "done")]
    assert state.tasks == tuple(tasks)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Task drags
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestTaskDrag:

    def test_start_snapshots_and_flags_dragging(self, state, tasks):
        controller = controller_for(state)
        controller.start(TaskDragData(tasks[0]))
        assert controller.origin_column_id == "todo"
        assert controller.is_dragging
        assert state.is_dragging
        assert controller.generation == 1

    def test_start_uses_live_record(self, state, tasks):
        state.replace_task(tasks[0].moved_to("doing", "Doing"))
        controller = controller_for(state)
        controller.start(TaskDragData(tasks[0]))
        assert controller.origin_column_id == "doing"

    def test_over_task_in_other_column(self, state, tasks):
        controller = controller_for(state)
        controller.start(TaskDragData(tasks[4]))
        controller.over(controller.active, TaskDragData(tasks[2]))
        assert ids(state, "doing") == ["t5", "t3", "t4"]
        assert state.find_task("t5").column_title == "Doing"

    def test_over_task_same_column(self, state, tasks):
        controller = controller_for(state)
        controller.start(TaskDragData(tasks[0]))
        controller.over(controller.active, TaskDragData(tasks[1]))
        assert ids(state, "todo") == ["t2", "t1"]

    def test_over_self_is_noop(self, state, tasks):
        controller = controller_for(state)
        controller.start(TaskDragData(tasks[0]))
        controller.over(controller.active, TaskDragData(tasks[0]))
        assert state.tasks == tuple(tasks)

    def test_over_without_data_is_noop(self, state, tasks):
        controller = controller_for(state)
        controller.start(TaskDragData(tasks[0]))
        controller.over(controller.active, None)
        controller.over(controller.active, "t3")
        assert state.tasks == tuple(tasks)

    def test_over_column_upper_half_inserts_at_start(self, state, tasks):
        controller = controller_for(state)
        controller.start(TaskDragData(tasks[0]))
        controller.over(
            controller.active,
            ColumnDragData(state.find_column("doing")),
            active_rect=Rect(0, 0, 100, 100),
            over_rect=Rect(0, 0, 300, 800),
        )
        assert ids(state, "doing") == ["t1", "t3", "t4"]

    def test_over_column_lower_half_inserts_at_end(self, state, tasks):
        controller = controller_for(state)
        controller.start(TaskDragData(tasks[0]))
        controller.over(
            controller.active,
            ColumnDragData(state.find_column("doing")),
            active_rect=Rect(0, 700, 100, 100),
            over_rect=Rect(0, 0, 300, 800),
        )
        assert ids(state, "doing") == ["t3", "t4", "t1"]

    def test_drop_on_empty_column(self, tasks):
        columns = [Column("todo", "Todo"), Column("empty", "Empty")]
        state = BoardState(columns, tasks[:2])
        mover = RecordingMover()
        controller = controller_for(state, mover)

        controller.start(TaskDragData(tasks[1]))
        request = controller.end(controller.active, ColumnDragData(columns[1]))

        assert request.status == MOVE_OK
        assert ids(state, "empty") == ["t2"]
        assert state.find_task("t2").column_title == "Empty"
        assert mover.calls == [("t2", "todo", "empty")]

    def test_same_column_drop_does_not_persist(self, state, tasks):
        mover = RecordingMover()
        controller = controller_for(state, mover)
        controller.start(TaskDragData(tasks[0]))
        controller.over(controller.active, TaskDragData(tasks[1]))
        request = controller.end(controller.active, TaskDragData(tasks[1]))

        assert request is None
        assert mover.calls == []
        assert ids(state, "todo") == ["t2", "t1"]
        assert controller.origin_column_id is None

    def test_return_to_origin_does_not_persist(self, state, tasks):
        mover = RecordingMover()
        controller = controller_for(state, mover)
        controller.start(TaskDragData(tasks[0]))
        controller.over(controller.active, TaskDragData(tasks[2]))
        controller.over(controller.active, TaskDragData(tasks[1]))
        request = controller.end(controller.active, TaskDragData(tasks[1]))

        assert request is None
        assert mover.calls == []
        assert state.find_task("t1").column_id == "todo"

    def test_successful_move_keeps_optimistic_state(self, state, tasks):
        mover = RecordingMover()
        controller = controller_for(state, mover)
        controller.start(TaskDragData(tasks[0]))
        controller.over(controller.active, TaskDragData(tasks[3]))
        optimistic = state.tasks
        request = controller.end(controller.active, TaskDragData(tasks[3]))

        assert request.status == MOVE_OK
        assert state.tasks == optimistic
        assert ids(state, "doing") == ["t3", "t1", "t4"]

    def test_end_applies_placement_without_over(self, state, tasks):
        mover = RecordingMover()
        controller = controller_for(state, mover)
        controller.start(TaskDragData(tasks[0]))
        request = controller.end(controller.active, TaskDragData(tasks[4]))

        assert request.to_column == "done"
        assert ids(state, "done") == ["t1", "t5"]

    def test_drop_on_nothing(self, state, tasks):
        mover = RecordingMover()
        controller = controller_for(state, mover)
        controller.start(TaskDragData(tasks[0]))
        controller.over(controller.active, TaskDragData(tasks[2]))
        moved = state.tasks

        assert controller.end(controller.active, None) is None
        assert mover.calls == []
        assert state.tasks == moved
        assert not state.is_dragging

    def test_drop_onto_itself_after_moving(self, state, tasks):
        controller = controller_for(state)
        controller.start(TaskDragData(tasks[0]))
        controller.over(controller.active, TaskDragData(tasks[2]))
        request = controller.end(controller.active, controller.active)
        assert request.to_column == "doing"

    def test_cancel_leaves_state(self, state, tasks):
        mover = RecordingMover()
        controller = controller_for(state, mover)
        controller.start(TaskDragData(tasks[0]))
        controller.over(controller.active, TaskDragData(tasks[2]))
        controller.cancel()

        assert not controller.is_dragging
        assert controller.origin_column_id is None
        assert state.find_task("t1").column_id == "doing"
        assert mover.calls == []

    def test_partition_holds_through_drag(self, state, tasks):
        controller = controller_for(state)
        controller.start(TaskDragData(tasks[4]))
        for target in (tasks[0], tasks[3], tasks[1], tasks[2]):
            controller.over(controller.active, TaskDragData(state.find_task(target.id)))
            assert state.orphan_tasks() == []
            assert len(state.tasks) == len(tasks)
            assert len({t.id for t in state.tasks}) == len(tasks)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Column drags
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestColumnDrag:

    def test_over_does_not_reorder(self, state, columns):
        controller = controller_for(state)
        controller.start(ColumnDragData(columns[0]))
        controller.over(controller.active, ColumnDragData(columns[2]))
        assert [c.id for c in state.columns] == ["todo", "doing", "done"]

    def test_drop_reorders_columns_without_persisting(self, state, columns, tasks):
        mover = RecordingMover()
        controller = controller_for(state, mover)
        controller.start(ColumnDragData(columns[0]))
        assert controller.end(controller.active, ColumnDragData(columns[2])) is None

        assert [c.id for c in state.columns] == ["doing", "done", "todo"]
        assert state.tasks == tuple(tasks)
        assert mover.calls == []

    def test_column_drag_does_not_snapshot(self, state, columns):
        controller = controller_for(state)
        controller.start(ColumnDragData(columns[1]))
        assert controller.origin_column_id is None
        assert controller.generation == 0


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Concurrency
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_stale_failure_does_not_roll_back_newer_drag(state, tasks):
    jobs = []
    mover = RecordingMover(RuntimeError("timeout"))
    controller = DragController(state, mover, dispatch=jobs.append)

    controller.start(TaskDragData(tasks[0]))
    first = controller.end(controller.active, TaskDragData(tasks[2]))
    assert first is not None

    # A second drag starts before the first move's response arrives
    controller.start(TaskDragData(state.find_task("t2")))
    controller.over(controller.active, TaskDragData(tasks[4]))
    during_second = state.tasks

    jobs[0]()

    assert first.status == MOVE_STALE
    assert state.tasks == during_second
    assert controller.origin_column_id == "todo"


class RestoreHookState(BoardState):
    """Runs a hook just before the next set_tasks() applies its update."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.before_set_tasks = None

    def set_tasks(self, update):
        hook, self.before_set_tasks = self.before_set_tasks, None
        if hook is not None:
            hook()
        return super().set_tasks(update)


def test_drag_started_during_rollback_snapshots_restored_board(columns, tasks):
    state = RestoreHookState(columns, tasks)
    jobs = []
    mover = RecordingMover(RuntimeError("HTTP 500"))
    controller = DragController(state, mover, dispatch=jobs.append)

    controller.start(TaskDragData(tasks[0]))
    first = controller.end(controller.active, TaskDragData(tasks[2]))
    assert state.find_task("t1").column_id == "doing"

    second_drag = threading.Thread(target=controller.start, args=(TaskDragData(tasks[1]),))

    def start_second_drag():
        # The rollback has passed its generation check; a new drag begins now
        second_drag.start()
        second_drag.join(timeout=0.2)

    state.before_set_tasks = start_second_drag
    jobs[0]()
    second_drag.join(timeout=5)

    assert first.status == MOVE_FAILED
    assert controller.generation == 2
    assert state.tasks == tuple(tasks)

    # The second drag's snapshot is the restored board, not the failed optimistic one
    controller.over(controller.active, TaskDragData(tasks[4]))
    second = controller.end(controller.active, TaskDragData(tasks[4]))
    jobs[1]()
    assert second.status == MOVE_FAILED
    assert state.tasks == tuple(tasks)


def test_background_dispatch_does_not_block(state, tasks):
    release = threading.Event()
    finished = threading.Event()

    def slow_mover(task_id, from_column, to_column):
        release.wait(timeout=5)
        finished.set()

    controller = DragController(state, slow_mover, dispatch=run_in_background)
    controller.start(TaskDragData(tasks[0]))
    controller.end(controller.active, TaskDragData(tasks[4]))

    assert state.find_task("t1").column_id == "done"
    assert not finished.is_set()
    release.set()
    assert finished.wait(timeout=5)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Pointer-driven sessions
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestPointerSession:

    def drag(self, controller, state, task_id, pointer):
        controller.start(TaskDragData(state.find_task(task_id)))
        controller.pointer_move(droppables(state), geometry_at(state, pointer, task_id))
        return controller.drop(droppables(state), geometry_at(state, pointer, task_id))

    def test_drop_onto_card(self, state):
        mover = RecordingMover()
        controller = controller_for(state, mover)
        request = self.drag(controller, state, "t1", card_point(state, "t4"))

        assert request.status == MOVE_OK
        assert ids(state, "doing") == ["t3", "t1", "t4"]
        assert mover.calls == [("t1", "todo", "doing")]

    def test_drop_on_column_header(self, state):
        controller = controller_for(state)
        request = self.drag(controller, state, "t5", column_start_point(state, "todo"))
        assert request.to_column == "todo"
        assert ids(state, "todo") == ["t5", "t1", "t2"]

    def test_drop_at_column_bottom(self, state):
        controller = controller_for(state)
        request = self.drag(controller, state, "t5", column_end_point(state, "todo"))
        assert request.to_column == "todo"
        assert ids(state, "todo") == ["t1", "t2", "t5"]

    def test_column_drag_only_targets_columns(self, state):
        controller = controller_for(state)
        controller.start(ColumnDragData(state.find_column("todo")))
        pointer = card_point(state, "t5")
        geometry = geometry_at(state, pointer, "todo")
        assert controller.pointer_move(droppables(state), geometry) == "done"
        controller.drop(droppables(state), geometry)
        assert [c.id for c in state.columns] == ["doing", "done", "todo"]


@pytest.mark.parametrize("active_top,expected", [(0, "start"), (399, "start"), (401, "end")])
def test_insertion_side(active_top, expected):
    assert insertion_side(Rect(0, active_top, 100, 2), Rect(0, 0, 100, 804)) == expected


def test_insertion_side_without_rects():
    assert insertion_side(None, Rect(0, 0, 1, 1)) == "start"
