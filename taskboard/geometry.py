"""
Geometry used during a drag: points, rectangles, and the provider interface
the collision resolver reads from.

The resolver never reads layout state directly. Whatever renders the board
implements GeometryProvider (or builds a StaticGeometry per event).
"""
from dataclasses import dataclass, field
from typing import Optional, Dict


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in viewport coordinates."""
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> Point:
        return Point(self.left + self.width / 2, self.top + self.height / 2)

    @property
    def mid_y(self) -> float:
        return self.top + self.height / 2

    @property
    def area(self) -> float:
        return self.width * self.height

    def contains(self, point: Point) -> bool:
        """Edges count as inside."""
        return self.left <= point.x <= self.right and self.top <= point.y <= self.bottom

    def intersection_area(self, other: "Rect") -> float:
        left = max(self.left, other.left)
        top = max(self.top, other.top)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if left >= right or top >= bottom:
            return 0.0
        return (right - left) * (bottom - top)

    def translated(self, dx: float, dy: float) -> "Rect":
        return Rect(self.left + dx, self.top + dy, self.width, self.height)


def squared_distance(a: Point, b: Point) -> float:
    dx = a.x - b.x
    dy = a.y - b.y
    return dx * dx + dy * dy


class GeometryProvider:
    """Live geometry for the current drag event."""

    def rect_for(self, droppable_id: str) -> Optional[Rect]:
        """Measured rectangle of a droppable, or None when not resolvable."""
        raise NotImplementedError

    def translated_rect_for(self, droppable_id: str) -> Optional[Rect]:
        """Rectangle including any in-flight sort transform, if one exists."""
        return None

    def active_rect(self) -> Optional[Rect]:
        """Current rectangle of the dragged entity (its overlay)."""
        raise NotImplementedError

    def pointer(self) -> Optional[Point]:
        """Pointer position, or None for keyboard-driven drags."""
        raise NotImplementedError


@dataclass
class StaticGeometry(GeometryProvider):
    """Geometry captured once, e.g. per event or in tests."""
    rects: Dict[str, Rect] = field(default_factory=dict)
    translated: Dict[str, Rect] = field(default_factory=dict)
    active: Optional[Rect] = None
    pointer_at: Optional[Point] = None

    def rect_for(self, droppable_id: str) -> Optional[Rect]:
        return self.rects.get(droppable_id)

    def translated_rect_for(self, droppable_id: str) -> Optional[Rect]:
        return self.translated.get(droppable_id)

    def active_rect(self) -> Optional[Rect]:
        return self.active

    def pointer(self) -> Optional[Point]:
        return self.pointer_at
