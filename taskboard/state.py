"""
Board state store: the ordered columns and the ordered task list.

Task order encodes both the column partition (group by column_id) and the
display order inside each column. Setters accept either a replacement value
or a function of the previous value; functions run under the store lock so a
read-modify-write is never interleaved with another mutation.
"""
import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .schema import Column, Task

logger = logging.getLogger(__name__)

CARD_HEIGHT = 140
MIN_CARD_ROWS = 1.5

ColumnsUpdate = Union[Sequence[Column], Callable[[Tuple[Column, ...]], Sequence[Column]]]
TasksUpdate = Union[Sequence[Task], Callable[[Tuple[Task, ...]], Sequence[Task]]]


def max_tasks_per_column(columns: Sequence[Column], tasks: Sequence[Task]) -> int:
    if not columns:
        return 0
    return max([sum(1 for t in tasks if t.column_id == col.id) for col in columns] + [0])


def min_column_task_count(columns: Sequence[Column], tasks: Sequence[Task]) -> float:
    """Rows each column reserves: the fullest column plus headroom."""
    return max(max_tasks_per_column(columns, tasks) + MIN_CARD_ROWS, MIN_CARD_ROWS)


class BoardState:
    """Single source of truth for the board."""

    def __init__(self, columns: Iterable[Column] = (), tasks: Iterable[Task] = ()):
        self._lock = threading.RLock()
        self._columns: Tuple[Column, ...] = tuple(columns)
        self._tasks: Tuple[Task, ...] = tuple(tasks)
        self._dragging = False
        self._min_column_task_count = min_column_task_count(self._columns, self._tasks)
        self._subscribers: List[Callable[["BoardState"], None]] = []

    # ── Reads ────────────────────────────────────────────────────────────────

    @property
    def columns(self) -> Tuple[Column, ...]:
        return self._columns

    @property
    def tasks(self) -> Tuple[Task, ...]:
        return self._tasks

    @property
    def is_dragging(self) -> bool:
        return self._dragging

    def tasks_in(self, column_id: str) -> List[Task]:
        """Tasks of one column in display order."""
        return [t for t in self._tasks if t.column_id == column_id]

    def find_task(self, task_id: str) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def find_column(self, column_id: str) -> Optional[Column]:
        for col in self._columns:
            if col.id == column_id:
                return col
        return None

    def column_counts(self) -> Dict[str, int]:
        counts = {col.id: 0 for col in self._columns}
        for task in self._tasks:
            if task.column_id in counts:
                counts[task.column_id] += 1
        return counts

    def orphan_tasks(self) -> List[Task]:
        """Tasks whose column_id names no existing column. Should always be empty."""
        known = {col.id for col in self._columns}
        return [t for t in self._tasks if t.column_id not in known]

    @property
    def min_column_task_count(self) -> float:
        return self._min_column_task_count

    @property
    def estimated_min_height(self) -> float:
        return self._min_column_task_count * CARD_HEIGHT

    # ── Mutations ────────────────────────────────────────────────────────────

    def set_columns(self, update: ColumnsUpdate) -> Tuple[Column, ...]:
        with self._lock:
            value = update(self._columns) if callable(update) else update
            self._columns = tuple(value)
            self._refresh_layout()
            columns = self._columns
        self._notify()
        return columns

    def set_tasks(self, update: TasksUpdate) -> Tuple[Task, ...]:
        with self._lock:
            value = update(self._tasks) if callable(update) else update
            self._tasks = tuple(value)
            self._refresh_layout()
            tasks = self._tasks
        self._notify()
        return tasks

    def reset(self, columns: Iterable[Column], tasks: Iterable[Task]) -> None:
        """Replace the whole board in one step (initial load)."""
        with self._lock:
            self._columns = tuple(columns)
            self._tasks = tuple(tasks)
            self._refresh_layout()
        self._notify()

    def replace_task(self, task: Task) -> bool:
        """Swap in a new record for the task with the same id, keeping its position."""
        replaced = []

        def _swap(tasks):
            out = []
            for t in tasks:
                if t.id == task.id:
                    replaced.append(t)
                    out.append(task)
                else:
                    out.append(t)
            return out

        self.set_tasks(_swap)
        return bool(replaced)

    def set_dragging(self, dragging: bool) -> None:
        """Layout recompute is suppressed while a drag is in progress."""
        with self._lock:
            if self._dragging == dragging:
                return
            self._dragging = dragging
            self._refresh_layout()
        self._notify()

    def _refresh_layout(self) -> None:
        if self._dragging:
            return
        self._min_column_task_count = min_column_task_count(self._columns, self._tasks)

    # ── Subscribers ──────────────────────────────────────────────────────────

    def subscribe(self, callback: Callable[["BoardState"], None]) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self)
            except Exception as e:
                logger.error(f"Board subscriber {callback!r} failed: {e}")
