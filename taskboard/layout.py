"""
Fixed grid layout for front ends that have no layout engine of their own
(terminal client, verification script). Columns sit side by side, cards
stack under a column header.
"""
from typing import Dict, List, Optional

from .collision import Droppable
from .geometry import Point, Rect, StaticGeometry
from .schema import ColumnDragData, TaskDragData
from .state import CARD_HEIGHT, BoardState

COLUMN_WIDTH = 300
COLUMN_GAP = 20
HEADER_HEIGHT = 60
CARD_GAP = 10


def droppables(state: BoardState) -> List[Droppable]:
    """Every column and every card is a drop target."""
    targets = [Droppable(col.id, ColumnDragData(col)) for col in state.columns]
    targets.extend(Droppable(task.id, TaskDragData(task)) for task in state.tasks)
    return targets


def measure(state: BoardState) -> Dict[str, Rect]:
    rects: Dict[str, Rect] = {}
    column_height = HEADER_HEIGHT + state.estimated_min_height
    for i, col in enumerate(state.columns):
        left = i * (COLUMN_WIDTH + COLUMN_GAP)
        tasks = state.tasks_in(col.id)
        height = max(column_height, HEADER_HEIGHT + len(tasks) * (CARD_HEIGHT + CARD_GAP))
        rects[col.id] = Rect(left, 0, COLUMN_WIDTH, height)
        for j, task in enumerate(tasks):
            top = HEADER_HEIGHT + j * (CARD_HEIGHT + CARD_GAP)
            rects[task.id] = Rect(left + CARD_GAP, top, COLUMN_WIDTH - 2 * CARD_GAP, CARD_HEIGHT)
    return rects


def geometry_at(state: BoardState, pointer: Point, dragged_id: Optional[str] = None) -> StaticGeometry:
    """Geometry with the dragged entity's overlay centered on the pointer."""
    rects = measure(state)
    active = None
    if dragged_id in rects:
        size = rects[dragged_id]
        active = Rect(pointer.x - size.width / 2, pointer.y - size.height / 2, size.width, size.height)
    return StaticGeometry(rects=rects, active=active, pointer_at=pointer)


def column_start_point(state: BoardState, column_id: str) -> Optional[Point]:
    """A point in the column header: drops there prepend."""
    rect = measure(state).get(column_id)
    if rect is None:
        return None
    return Point(rect.center.x, rect.top + HEADER_HEIGHT / 2)


def column_end_point(state: BoardState, column_id: str) -> Optional[Point]:
    """A point at the bottom edge of the column body: drops there append."""
    rect = measure(state).get(column_id)
    if rect is None:
        return None
    return Point(rect.center.x, rect.bottom - 1)


def card_point(state: BoardState, task_id: str) -> Optional[Point]:
    rect = measure(state).get(task_id)
    return rect.center if rect else None
