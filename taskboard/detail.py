"""
Task detail panel state.

The panel's open/maximized state is mirrored into browser-style history
entries: a maximized panel pushes `?task=<id>`, closing or restoring the
panel replaces the entry with the bare path. History is kept in memory so
any front end can sync it to its own navigation.
"""
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from urllib.parse import urlsplit, parse_qs, urlencode

from .schema import Task
from .state import BoardState

PUSH = "push"
REPLACE = "replace"


@dataclass
class HistoryEntry:
    url: str
    state: Dict[str, Any] = field(default_factory=dict)
    method: str = PUSH


class History:
    """Minimal pushState/replaceState stack."""

    def __init__(self, url: str = "/"):
        self.entries: List[HistoryEntry] = [HistoryEntry(url)]

    @property
    def current(self) -> HistoryEntry:
        return self.entries[-1]

    @property
    def url(self) -> str:
        return self.current.url

    @property
    def pathname(self) -> str:
        return urlsplit(self.url).path or "/"

    def push_state(self, state: Dict[str, Any], url: str) -> None:
        self.entries.append(HistoryEntry(url, dict(state), PUSH))

    def replace_state(self, state: Dict[str, Any], url: str) -> None:
        self.entries[-1] = HistoryEntry(url, dict(state), REPLACE)

    def query_param(self, name: str) -> Optional[str]:
        values = parse_qs(urlsplit(self.url).query).get(name)
        return values[0] if values else None


def task_url(pathname: str, task_id: str) -> str:
    return f"{pathname}?{urlencode({'task': task_id})}"


class DetailPanel:
    """Which task the detail panel shows and how."""

    def __init__(self, history: Optional[History] = None):
        self.history = history or History()
        self.selected_task_id: Optional[str] = None
        self.maximized = False
        self.loading = False
        self.error: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.selected_task_id is not None

    def select(self, task_id: str) -> None:
        self.selected_task_id = task_id
        self.maximized = False
        self.error = None

    def close(self) -> None:
        self.selected_task_id = None
        self.maximized = False
        self.loading = False
        self.error = None
        self.history.replace_state({}, self.history.pathname)

    def toggle_maximize(self) -> None:
        if not self.selected_task_id:
            return
        base = self.history.pathname
        if self.maximized:
            self.maximized = False
            self.history.replace_state({}, base)
        else:
            self.maximized = True
            self.history.push_state({"taskId": self.selected_task_id}, task_url(base, self.selected_task_id))

    def restore_from_history(self) -> Optional[str]:
        """Open the task named by `?task=` (deep link), maximized. Returns its id."""
        task_id = self.history.query_param("task")
        if task_id:
            self.selected_task_id = task_id
            self.maximized = True
        return task_id

    def selected_task(self, state: BoardState) -> Optional[Task]:
        if self.selected_task_id is None:
            return None
        return state.find_task(self.selected_task_id)
