"""
Board schema: columns, tasks, and the data carried by a drag.

Records are frozen. Changing a field means building a new record with
dataclasses.replace(), so a task list snapshot never shares a mutable
element with the live list.
"""
from enum import Enum
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Dict, Any, Union


class Priority(Enum):
    """Task priority levels shown on cards."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_str(cls, value: Optional[str]) -> Optional["Priority"]:
        if not value:
            return None
        try:
            return cls[value.strip().upper()]
        except KeyError:
            return None


class DragKind(Enum):
    """What kind of entity is being dragged."""
    COLUMN = "Column"
    TASK = "Task"


@dataclass(frozen=True)
class Column:
    """A named lane partitioning tasks by status."""
    id: str
    title: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title}


@dataclass(frozen=True)
class Assignee:
    initials: str
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {"initials": self.initials, "color": self.color}


@dataclass(frozen=True)
class Task:
    """A work item. Belongs to exactly one column."""

    # Identifiers
    id: str
    column_id: str

    # Content
    content: str
    key: str = ""
    column_title: Optional[str] = None
    description: Optional[str] = None

    # Scheduling
    due_date: Optional[str] = None          # Already formatted for display
    priority: Optional[Priority] = None
    assignees: Tuple[Assignee, ...] = field(default_factory=tuple)

    # External links
    permalink: Optional[str] = None
    raw_status: Optional[str] = None

    def moved_to(self, column: Union[Column, str], column_title: Optional[str] = None) -> "Task":
        """Return a copy of this task owned by another column."""
        if isinstance(column, Column):
            return replace(self, column_id=column.id, column_title=column.title)
        return replace(self, column_id=column, column_title=column_title)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "column_id": self.column_id,
            "column_title": self.column_title,
            "content": self.content,
            "key": self.key,
            "description": self.description,
            "due_date": self.due_date,
            "priority": self.priority.value if self.priority else None,
            "assignees": [a.to_dict() for a in self.assignees],
            "permalink": self.permalink,
            "raw_status": self.raw_status,
        }


# ── Drag data ────────────────────────────────────────────────────────────────
# Attached to every draggable/droppable element. The variant type is the tag.


@dataclass(frozen=True)
class ColumnDragData:
    column: Column
    kind: DragKind = field(default=DragKind.COLUMN, init=False)

    @property
    def id(self) -> str:
        return self.column.id


@dataclass(frozen=True)
class TaskDragData:
    task: Task
    kind: DragKind = field(default=DragKind.TASK, init=False)

    @property
    def id(self) -> str:
        return self.task.id


DragData = Union[ColumnDragData, TaskDragData]


def has_drag_data(data: Any) -> bool:
    """True when `data` is one of the recognized drag payloads."""
    return isinstance(data, (ColumnDragData, TaskDragData))
