#!/usr/bin/env python3
"""
Quick verification that the board system works end-to-end (no network).
"""
import tempfile
from pathlib import Path

from taskboard.api import board_from_payload
from taskboard.drag import MOVE_FAILED, MOVE_OK, DragController, run_inline
from taskboard.layout import card_point, droppables, geometry_at
from taskboard.schema import TaskDragData
from taskboard.seed import DEMO_FOLDER, seed_demo
from taskboard.state import BoardState
from taskboard.store import BoardStore


def drag_onto(controller: DragController, state: BoardState, task_id: str, target_id: str):
    pointer = card_point(state, target_id)
    controller.start(TaskDragData(state.find_task(task_id)))
    controller.pointer_move(droppables(state), geometry_at(state, pointer, task_id))
    return controller.drop(droppables(state), geometry_at(state, pointer, task_id))


def main():
    print("=" * 60)
    print("Taskboard System Verification")
    print("=" * 60)

    db_path = str(Path(tempfile.mkdtemp()) / "verify_board.db")

    print("\n[1/5] Creating SQLite store and seeding demo folder...")
    store = BoardStore(db_path)
    seeded = seed_demo(store)
    print(f"✅ Seeded {seeded} tasks")

    print("\n[2/5] Loading board state...")
    columns, tasks = board_from_payload(store.get_board(DEMO_FOLDER))
    state = BoardState(columns, tasks)
    print(f"✅ {len(state.columns)} columns, {len(state.tasks)} tasks")

    print("\n[3/5] Dragging task6 onto task4 (todo → in-progress)...")

    def store_mover(task_id, from_column, to_column):
        if not store.move_task(task_id, from_column, to_column):
            raise RuntimeError("store rejected move")

    controller = DragController(state, store_mover, dispatch=run_inline)
    request = drag_onto(controller, state, "task6", "task4")
    ids = [t.id for t in state.tasks_in("in-progress")]
    if request is None or request.status != MOVE_OK or ids[:2] != ["task6", "task4"]:
        print(f"❌ Unexpected result: {request}, in-progress = {ids}")
        return
    print(f"✅ in-progress = {ids}")
    print(f"   Persisted column: {store.get_task('task6')['columnId']}")
    print(f"   Move log: {len(store.list_moves('task6'))} entries")

    print("\n[4/5] Dragging task7 onto task1 with a failing backend...")

    def failing_mover(task_id, from_column, to_column):
        raise RuntimeError("HTTP 500")

    before = state.tasks
    controller = DragController(state, failing_mover, dispatch=run_inline)
    request = drag_onto(controller, state, "task7", "task1")
    if request is None or request.status != MOVE_FAILED or state.tasks != before:
        print(f"❌ Board was not restored: {request}")
        return
    print("✅ Board restored to drag-start state")

    print("\n[5/5] Checking partition invariant...")
    orphans = state.orphan_tasks()
    if orphans:
        print(f"❌ Orphan tasks: {[t.id for t in orphans]}")
        return
    print(f"✅ Every task belongs to a column; counts = {state.column_counts()}")

    print("\n" + "=" * 60)
    print("✅ ALL CHECKS PASSED")
    print("=" * 60)
    print(f"Test database: {db_path}")


if __name__ == "__main__":
    main()
