"""
Pure reordering helpers for the board lists.

All functions take a sequence and return a new tuple; the input is never
modified.
"""
from typing import Sequence, Tuple, TypeVar

from .schema import Task

T = TypeVar("T")

INSERT_START = "start"
INSERT_END = "end"


def index_of(items: Sequence, item_id: str) -> int:
    """Index of the element whose .id equals item_id, or -1."""
    for i, item in enumerate(items):
        if item.id == item_id:
            return i
    return -1


def array_move(items: Sequence[T], from_index: int, to_index: int) -> Tuple[T, ...]:
    """
    Move one element (remove, then insert). Relative order of every other
    element is preserved. A negative to_index counts from the end of the
    original sequence.
    """
    moved = list(items)
    if to_index < 0:
        to_index = len(moved) + to_index
    item = moved.pop(from_index)
    moved.insert(to_index, item)
    return tuple(moved)


def move_before(tasks: Sequence[Task], moving: Task, target_id: str) -> Tuple[Task, ...]:
    """
    Remove the task with moving.id and insert `moving` directly before the
    task with target_id. Returns the input unchanged if either is missing.
    """
    if index_of(tasks, moving.id) == -1 or index_of(tasks, target_id) == -1:
        return tuple(tasks)
    remaining = [t for t in tasks if t.id != moving.id]
    target_index = index_of(remaining, target_id)
    remaining.insert(target_index, moving)
    return tuple(remaining)


def insert_at_column_boundary(
    tasks: Sequence[Task],
    moving: Task,
    column_id: str,
    at: str = INSERT_START,
) -> Tuple[Task, ...]:
    """
    Remove the task with moving.id and insert `moving` at the start or end of
    the run of tasks owned by column_id. If the column has no tasks the task
    goes to the end of the whole list.
    """
    remaining = [t for t in tasks if t.id != moving.id]
    positions = [i for i, t in enumerate(remaining) if t.column_id == column_id]

    if not positions:
        insert_at = len(remaining)
    elif at == INSERT_END:
        insert_at = positions[-1] + 1
    else:
        insert_at = positions[0]

    remaining.insert(insert_at, moving)
    return tuple(remaining)
