"""
HTTP client for the board API, plus the DTO → record mapping.

Endpoints:
    GET  /api/board/folders/{folderId}     → { columns, tasks }
    GET  /api/board/tasks/{taskId}         → task DTO
    POST /api/board/tasks/{taskId}/move    → body { from, to }

Any transport error, non-2xx status or malformed body raises BoardApiError.
Calls that take an abort Event raise RequestAborted instead of returning once
it is set; requests cannot interrupt a call in flight, so the check happens
before sending and again before the response is used.
"""
import logging
import threading
from datetime import date, datetime
from typing import Optional, Dict, Any, List, Tuple, Mapping

import requests

from .schema import Assignee, Column, Priority, Task

logger = logging.getLogger(__name__)

DEFAULT_ASSIGNEE_COLOR = "bg-gray-400"
DUE_DATE_FORMAT = "%d %b, %Y"

# Raised by DTO mapping when a 2xx body has the wrong shape
MAPPING_ERRORS = (KeyError, TypeError, AttributeError, ValueError)


class BoardApiError(Exception):
    """Raised when a board API call fails (transport or non-2xx)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RequestAborted(Exception):
    """Raised when a request's abort signal was set. Not a failure."""
    pass


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# DTO mapping
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def map_priority(importance: Optional[str], detailed: bool = False) -> Optional[Priority]:
    """
    Board lists only flag high importance; the detail view also keeps
    medium and low.
    """
    priority = Priority.from_str(importance)
    if priority is Priority.HIGH or detailed:
        return priority
    return None


def format_due_date(value: Optional[str]) -> Optional[str]:
    """ISO date/datetime → short display date ("15 Apr, 2025"). Unparseable values pass through."""
    if not value:
        return None
    raw = value.strip()
    try:
        if len(raw) == 10:
            parsed = date.fromisoformat(raw)
        else:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable due date {value!r}, keeping raw value")
        return value
    return parsed.strftime(DUE_DATE_FORMAT)


def map_assignees(raw: Optional[List[Mapping[str, Any]]]) -> Tuple[Assignee, ...]:
    assignees = []
    for entry in raw or []:
        initials = entry.get("initials") or (entry.get("name") or "")[:2].upper()
        if not initials:
            continue
        assignees.append(Assignee(initials=initials, color=entry.get("color") or DEFAULT_ASSIGNEE_COLOR))
    return tuple(assignees)


def column_from_dto(dto: Mapping[str, Any]) -> Column:
    return Column(id=str(dto["id"]), title=dto.get("title", ""))


def task_from_dto(
    dto: Mapping[str, Any],
    column_titles: Optional[Mapping[str, str]] = None,
    detailed: bool = False,
) -> Task:
    """Build a Task from an API task DTO."""
    column_id = str(dto.get("columnId", ""))
    return Task(
        id=str(dto["id"]),
        column_id=column_id,
        column_title=(column_titles or {}).get(column_id),
        content=dto.get("title", ""),
        key=dto.get("key") or "",
        description=dto.get("description"),
        due_date=format_due_date(dto.get("dueDate")),
        priority=map_priority(dto.get("importance"), detailed=detailed),
        assignees=map_assignees(dto.get("assignees")),
        permalink=dto.get("permalink"),
        raw_status=dto.get("rawWrikeStatus"),
    )


def board_from_payload(payload: Mapping[str, Any]) -> Tuple[List[Column], List[Task]]:
    columns = [column_from_dto(c) for c in payload.get("columns", [])]
    titles = {c.id: c.title for c in columns}
    tasks = [task_from_dto(t, titles) for t in payload.get("tasks", [])]
    return columns, tasks


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Client
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class BoardClient:
    """HTTP client for the board API."""

    def __init__(self, base_url: str = "http://localhost:3000", timeout: float = 5,
                 api_key: str = "", session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers["X-API-Key"] = api_key

    def _request(self, method: str, path: str, abort: Optional[threading.Event] = None,
                 **kwargs) -> Dict[str, Any]:
        if abort is not None and abort.is_set():
            raise RequestAborted(f"{method} {path} aborted before sending")
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise BoardApiError(f"{method} {path} failed: {e}") from e
        if abort is not None and abort.is_set():
            raise RequestAborted(f"{method} {path} aborted")
        if not r.ok:
            raise BoardApiError(f"{method} {path} returned HTTP {r.status_code}", status_code=r.status_code)
        if not r.content:
            return {}
        try:
            return r.json()
        except ValueError as e:
            raise BoardApiError(f"{method} {path} returned invalid JSON", status_code=r.status_code) from e

    def load_board(self, folder_id: str, abort: Optional[threading.Event] = None) -> Tuple[List[Column], List[Task]]:
        """Fetch columns and tasks for a folder."""
        payload = self._request("GET", f"/api/board/folders/{folder_id}", abort=abort)
        try:
            return board_from_payload(payload)
        except MAPPING_ERRORS as e:
            raise BoardApiError(f"Malformed board payload for folder {folder_id}: {e!r}") from e

    def fetch_task(self, task_id: str, column_titles: Optional[Mapping[str, str]] = None,
                   abort: Optional[threading.Event] = None) -> Task:
        """Fetch one task with the fields the detail panel shows."""
        dto = self._request("GET", f"/api/board/tasks/{task_id}", abort=abort)
        try:
            return task_from_dto(dto, column_titles, detailed=True)
        except MAPPING_ERRORS as e:
            raise BoardApiError(f"Malformed task payload for {task_id}: {e!r}") from e

    def move_task(self, task_id: str, from_column: str, to_column: str) -> Dict[str, Any]:
        """Persist a cross-column move. Raises BoardApiError on failure."""
        return self._request(
            "POST",
            f"/api/board/tasks/{task_id}/move",
            json={"from": from_column, "to": to_column},
        )

    def health(self) -> bool:
        """Check if the board API is reachable."""
        try:
            r = self.session.get(f"{self.base_url}/health", timeout=2)
            return r.ok
        except requests.RequestException:
            return False
