"""
Demo board seed for the reference server.
"""
import logging
from typing import Any, Dict, List

from .store import BoardStore

logger = logging.getLogger(__name__)

DEMO_FOLDER = "demo"

DEMO_COLUMNS: List[Dict[str, str]] = [
    {"id": "todo", "title": "Todo"},
    {"id": "in-progress", "title": "In progress"},
    {"id": "done", "title": "Done"},
]


def _task(task_id, column_id, title, key, due, assignees, importance=None) -> Dict[str, Any]:
    dto = {
        "id": task_id,
        "columnId": column_id,
        "title": title,
        "description": title,
        "key": key,
        "dueDate": due,
        "assignees": assignees,
    }
    if importance:
        dto["importance"] = importance
    return dto


DEMO_TASKS: List[Dict[str, Any]] = [
    _task("task1", "done", "Project initiation and planning", "ENA 14", "2025-04-15",
          [{"initials": "JD", "color": "bg-blue-600"}], importance="High"),
    _task("task2", "done", "Gather requirements from stakeholders", "CON 20", "2025-04-12",
          [{"initials": "MR", "color": "bg-green-600"}, {"initials": "AL", "color": "bg-orange-600"}]),
    _task("task3", "done", "Create wireframes and mockups", "CON 24", "2025-04-10",
          [{"initials": "RG", "color": "bg-teal-600"}]),
    _task("task4", "in-progress", "Develop homepage layout", "DES 42", "2025-04-22",
          [{"initials": "SB", "color": "bg-purple-600"}]),
    _task("task5", "in-progress", "Design color scheme and typography", "DES 65", "2025-04-25",
          [{"initials": "TK", "color": "bg-green-600"}], importance="High"),
    _task("task6", "todo", "Implement user authentication", "CON 51", "2025-04-28",
          [{"initials": "DM", "color": "bg-orange-600"}, {"initials": "NK", "color": "bg-indigo-600"}]),
    _task("task7", "todo", "Build contact us page", "CAM 80", "2025-04-30",
          [{"name": "jane doe"}], importance="Medium"),
    _task("task8", "todo", "Create product catalog", "CON 75", "2025-05-02",
          [{"initials": "AL", "color": "bg-green-600"}]),
    _task("task9", "todo", "Develop about us page", "DES 32", "2025-05-06",
          [{"initials": "RG", "color": "bg-teal-600"}, {"initials": "PL", "color": "bg-amber-600"}]),
    _task("task10", "todo", "Optimize website for mobile devices", "ENA 37", "2025-05-08",
          [{"initials": "LH", "color": "bg-red-600"}], importance="Low"),
]


def seed_demo(store: BoardStore, folder_id: str = DEMO_FOLDER) -> int:
    """Write the demo columns and tasks. Returns the number of tasks saved."""
    for position, col in enumerate(DEMO_COLUMNS):
        store.save_column(folder_id, col["id"], col["title"], position)
    saved = 0
    for dto in DEMO_TASKS:
        if store.save_task(folder_id, dto):
            saved += 1
    logger.info(f"Seeded folder {folder_id!r}: {len(DEMO_COLUMNS)} columns, {saved} tasks")
    return saved
