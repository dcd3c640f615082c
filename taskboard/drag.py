"""
Drag session controller.

One drag at a time:  Idle → Dragging(Column) | Dragging(Task) → Idle

    start()   lift an entity; task drags snapshot the task list
    over()    live reordering while the pointer moves (optimistic)
    end()     commit column order / persist a cross-column task move
    cancel()  drop the session without committing or rolling back

Persistence runs through `dispatch` (a background thread by default) so the
caller is never blocked. If the move call fails the task list is restored to
the drag-start snapshot in full.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple, Any

from .collision import Droppable, resolve_collision
from .geometry import GeometryProvider, Rect
from .reorder import (
    INSERT_END,
    INSERT_START,
    array_move,
    index_of,
    insert_at_column_boundary,
    move_before,
)
from .schema import ColumnDragData, DragData, Task, TaskDragData, has_drag_data
from .state import BoardState

logger = logging.getLogger(__name__)

# (task_id, from_column_id, to_column_id); raises on failure
Mover = Callable[[str, str, str], Any]
Dispatch = Callable[[Callable[[], None]], Any]

MOVE_PENDING = "pending"
MOVE_OK = "ok"
MOVE_FAILED = "failed"
MOVE_STALE = "stale"


def run_in_background(job: Callable[[], None]) -> threading.Thread:
    """Fire-and-forget: run `job` on a daemon thread."""
    thread = threading.Thread(target=job, daemon=True)
    thread.start()
    return thread


def run_inline(job: Callable[[], None]) -> None:
    job()


@dataclass
class MoveRequest:
    """One cross-column move handed to the persistence layer."""
    task_id: str
    from_column: str
    to_column: str
    generation: int
    status: str = MOVE_PENDING
    error: str = ""


class DragController:
    """Tracks the active drag and applies its effects to a BoardState."""

    def __init__(self, state: BoardState, mover: Mover, dispatch: Dispatch = run_in_background):
        self.state = state
        self.mover = mover
        self.dispatch = dispatch

        self.active: Optional[DragData] = None
        self.origin_column_id: Optional[str] = None
        self._snapshot: Optional[Tuple[Task, ...]] = None
        self._generation = 0
        self._lock = threading.RLock()

    @property
    def is_dragging(self) -> bool:
        return self.active is not None

    @property
    def generation(self) -> int:
        return self._generation

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Start
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def start(self, active: DragData) -> None:
        if not has_drag_data(active):
            return
        if self.active is not None:
            logger.debug(f"Drag of {self.active.id} replaced by {active.id}")
            self._clear_active()

        if isinstance(active, ColumnDragData):
            self.active = active
            return

        # A rollback in flight finishes before the new snapshot is taken
        with self._lock:
            live = self.state.find_task(active.id) or active.task
            self._generation += 1
            self.origin_column_id = live.column_id
            # Records are frozen, so a new tuple is an independent copy
            self._snapshot = tuple(self.state.tasks)
        self.active = TaskDragData(live)
        self.state.set_dragging(True)
        logger.debug(f"Picked up task {live.id} from column {live.column_id}")

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Over
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def over(
        self,
        active: Optional[DragData],
        over: Optional[DragData],
        active_rect: Optional[Rect] = None,
        over_rect: Optional[Rect] = None,
    ) -> None:
        """Apply live reordering for the target currently under the drag."""
        if not has_drag_data(active) or not has_drag_data(over):
            return
        if active.id == over.id:
            return
        if not isinstance(active, TaskDragData):
            # Columns reorder on drop only
            return

        if isinstance(over, TaskDragData):
            self.state.set_tasks(lambda tasks: self._task_over_task(tasks, active.id, over.id))
        elif isinstance(over, ColumnDragData):
            at = insertion_side(active_rect, over_rect)
            self.state.set_tasks(lambda tasks: self._task_over_column(tasks, active.id, over, at))

    def _task_over_task(self, tasks: Tuple[Task, ...], active_id: str, over_id: str) -> Sequence[Task]:
        active_index = index_of(tasks, active_id)
        over_index = index_of(tasks, over_id)
        if active_index == -1 or over_index == -1:
            return tasks

        moving = tasks[active_index]
        target = tasks[over_index]
        if moving.column_id != target.column_id:
            column = self.state.find_column(target.column_id)
            moved = moving.moved_to(column) if column else moving.moved_to(target.column_id, target.column_title)
            return move_before(tasks, moved, target.id)
        return array_move(tasks, active_index, over_index)

    def _task_over_column(self, tasks: Tuple[Task, ...], active_id: str, over: ColumnDragData, at: str) -> Sequence[Task]:
        active_index = index_of(tasks, active_id)
        if active_index == -1:
            return tasks
        column = self.state.find_column(over.column.id) or over.column
        moved = tasks[active_index].moved_to(column)
        return insert_at_column_boundary(tasks, moved, column.id, at)

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # End / cancel
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def end(
        self,
        active: Optional[DragData],
        over: Optional[DragData],
        active_rect: Optional[Rect] = None,
        over_rect: Optional[Rect] = None,
    ) -> Optional[MoveRequest]:
        """
        Finish the drag. Returns the MoveRequest handed to the persistence
        layer, or None when nothing needs persisting.
        """
        snapshot = self._snapshot
        origin = self.origin_column_id
        self._clear_active()

        if over is None or not has_drag_data(active) or not has_drag_data(over):
            self._release_origin(self._generation)
            return None

        if isinstance(active, ColumnDragData):
            if isinstance(over, ColumnDragData) and active.id != over.id:
                self.state.set_columns(lambda cols: self._column_move(cols, active.id, over.id))
            return None

        live = self.state.find_task(active.id)
        if live is None or origin is None:
            self._release_origin(self._generation)
            return None

        target_column = self._resolve_target_column(live, over)
        if target_column is None:
            self._release_origin(self._generation)
            return None

        if live.column_id != target_column:
            # No over event reached this target; commit the placement first
            self.over(TaskDragData(live), over, active_rect, over_rect)

        if target_column == origin:
            self._release_origin(self._generation)
            return None

        request = MoveRequest(live.id, origin, target_column, self._generation)
        logger.info(f"Moving task {live.id}: {origin} → {target_column}")
        self.dispatch(lambda: self._persist(request, snapshot))
        return request

    def cancel(self) -> None:
        """Abort the drag. Optimistic over-phase changes are left in place."""
        self._clear_active()
        self._release_origin(self._generation)

    def _clear_active(self) -> None:
        self.active = None
        self._snapshot = None
        self.state.set_dragging(False)

    @staticmethod
    def _column_move(columns, active_id: str, over_id: str):
        active_index = index_of(columns, active_id)
        over_index = index_of(columns, over_id)
        if active_index == -1 or over_index == -1:
            return columns
        return array_move(columns, active_index, over_index)

    def _resolve_target_column(self, live: Task, over: DragData) -> Optional[str]:
        if isinstance(over, ColumnDragData):
            return over.column.id
        if over.id == live.id:
            return live.column_id
        over_task = self.state.find_task(over.id)
        if over_task is not None:
            return over_task.column_id
        return over.task.column_id

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Persistence
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def _persist(self, request: MoveRequest, snapshot: Optional[Tuple[Task, ...]]) -> None:
        try:
            self.mover(request.task_id, request.from_column, request.to_column)
            request.status = MOVE_OK
            logger.info(f"Task {request.task_id} moved to {request.to_column}")
        except Exception as e:
            request.error = str(e)
            logger.error(
                f"Move of task {request.task_id} ({request.from_column} → "
                f"{request.to_column}) failed: {e}"
            )
            request.status = MOVE_FAILED if self._rollback(request, snapshot) else MOVE_STALE
        finally:
            self._release_origin(request.generation)

    def _rollback(self, request: MoveRequest, snapshot: Optional[Tuple[Task, ...]]) -> bool:
        with self._lock:
            if request.generation != self._generation:
                logger.warning(
                    f"Skipping rollback for task {request.task_id}: a newer drag "
                    f"(generation {self._generation}) has started"
                )
                return False
            if snapshot is not None:
                self.state.set_tasks(snapshot)
                logger.info(f"Board restored to drag-start state after failed move of {request.task_id}")
        return True

    def _release_origin(self, generation: int) -> None:
        with self._lock:
            if generation == self._generation:
                self.origin_column_id = None

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Pointer-driven helpers
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def _resolve(self, droppables: Sequence[Droppable], geometry: GeometryProvider):
        if self.active is None:
            return None, None
        candidates = droppables
        if isinstance(self.active, ColumnDragData):
            candidates = [d for d in droppables if isinstance(d.data, ColumnDragData)]
        over_id = resolve_collision(self.active, candidates, geometry)
        if over_id is None:
            return None, None
        for droppable in candidates:
            if droppable.id == over_id:
                return droppable.data, geometry.rect_for(over_id)
        return None, None

    def pointer_move(self, droppables: Sequence[Droppable], geometry: GeometryProvider) -> Optional[str]:
        """Resolve the target under the drag and apply over(). Returns its id."""
        over, over_rect = self._resolve(droppables, geometry)
        if over is None:
            return None
        self.over(self.active, over, geometry.active_rect(), over_rect)
        return over.id

    def drop(self, droppables: Sequence[Droppable], geometry: GeometryProvider) -> Optional[MoveRequest]:
        """Resolve the target under the drag and finish the session on it."""
        active = self.active
        over, over_rect = self._resolve(droppables, geometry)
        return self.end(active, over, geometry.active_rect(), over_rect)


def insertion_side(active_rect: Optional[Rect], over_rect: Optional[Rect]) -> str:
    """Above the column's midpoint inserts at its start, otherwise at its end."""
    if active_rect is None or over_rect is None:
        return INSERT_START
    return INSERT_START if active_rect.mid_y < over_rect.mid_y else INSERT_END
