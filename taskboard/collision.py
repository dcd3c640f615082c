"""
Collision resolution: which droppable is the dragged entity over?

Everything here is a pure function of the drag data, the droppable list and a
GeometryProvider. The basic strategies return ranked Collision lists;
resolve_collision() layers them into the board's detection strategy.
"""
import math
from dataclasses import dataclass
from typing import Optional, List, Sequence

from .geometry import GeometryProvider, Rect, Point, squared_distance
from .schema import DragData, ColumnDragData, TaskDragData


@dataclass(frozen=True)
class Droppable:
    """A region that can receive a drop. `data` says what it holds."""
    id: str
    data: Optional[DragData] = None


@dataclass(frozen=True)
class Collision:
    id: str
    value: float


def _corners(rect: Rect) -> List[Point]:
    return [
        Point(rect.left, rect.top),
        Point(rect.right, rect.top),
        Point(rect.left, rect.bottom),
        Point(rect.right, rect.bottom),
    ]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Basic strategies
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def closest_center(droppables: Sequence[Droppable], geometry: GeometryProvider) -> List[Collision]:
    """Rank droppables by distance between their center and the active rect's center."""
    active = geometry.active_rect()
    if active is None:
        return []
    origin = active.center
    collisions = []
    for droppable in droppables:
        rect = geometry.rect_for(droppable.id)
        if rect is None:
            continue
        collisions.append(Collision(droppable.id, math.sqrt(squared_distance(origin, rect.center))))
    return sorted(collisions, key=lambda c: c.value)


def pointer_within(droppables: Sequence[Droppable], geometry: GeometryProvider) -> List[Collision]:
    """Droppables whose rect contains the pointer, nearest corners first."""
    pointer = geometry.pointer()
    if pointer is None:
        return []
    collisions = []
    for droppable in droppables:
        rect = geometry.rect_for(droppable.id)
        if rect is None or not rect.contains(pointer):
            continue
        corner_distance = sum(
            math.sqrt(squared_distance(pointer, corner)) for corner in _corners(rect)
        ) / 4
        collisions.append(Collision(droppable.id, corner_distance))
    return sorted(collisions, key=lambda c: c.value)


def rect_intersection(droppables: Sequence[Droppable], geometry: GeometryProvider) -> List[Collision]:
    """Droppables overlapping the active rect, largest intersection ratio first."""
    active = geometry.active_rect()
    if active is None:
        return []
    collisions = []
    for droppable in droppables:
        rect = geometry.rect_for(droppable.id)
        if rect is None:
            continue
        overlap = active.intersection_area(rect)
        if overlap <= 0:
            continue
        ratio = overlap / (rect.area + active.area - overlap)
        collisions.append(Collision(droppable.id, ratio))
    return sorted(collisions, key=lambda c: c.value, reverse=True)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Board strategy
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _pointer_distance(collision: Collision, pointer: Point, geometry: GeometryProvider) -> float:
    rect = geometry.translated_rect_for(collision.id) or geometry.rect_for(collision.id)
    if rect is None:
        return math.inf
    return squared_distance(rect.center, pointer)


def resolve_collision(
    active: Optional[DragData],
    droppables: Sequence[Droppable],
    geometry: GeometryProvider,
) -> Optional[str]:
    """
    Return the id of the droppable the active entity is over, or None.

    Columns only reorder against columns, so they use nearest center.
    Tasks prefer pointer containment (closest center to the pointer wins),
    then rectangle intersection, then nearest center.
    """
    if active is None:
        return None

    if isinstance(active, ColumnDragData):
        closest = closest_center(droppables, geometry)
        return closest[0].id if closest else None

    if not isinstance(active, TaskDragData):
        return None

    pointer = geometry.pointer()
    within = pointer_within(droppables, geometry)
    if within and pointer is not None:
        # sorted() is stable: unresolvable rects sink but stay candidates
        ranked = sorted(within, key=lambda c: _pointer_distance(c, pointer, geometry))
        return ranked[0].id

    intersections = rect_intersection(droppables, geometry)
    if intersections:
        return intersections[0].id

    closest = closest_center(droppables, geometry)
    return closest[0].id if closest else None
