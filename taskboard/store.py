"""
Board storage backend (SQLite) for the reference board API server.

Stores folders' columns and tasks in API wire shape (camelCase DTO dicts) and
keeps an append-only log of task moves.
"""
import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection with FK enforcement and WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class BoardStore:
    """SQLite-backed store for board folders."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize store and create tables if needed."""
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "taskboard" / "board.db")
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        """Create tables if they don't exist."""
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS board_columns (
                    folder_id TEXT NOT NULL,
                    column_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    PRIMARY KEY (folder_id, column_id)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS board_tasks (
                    task_id TEXT PRIMARY KEY,
                    folder_id TEXT NOT NULL,
                    column_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    task_key TEXT,
                    importance TEXT,
                    due_date TEXT,
                    assignees TEXT,  -- JSON list
                    permalink TEXT,
                    raw_status TEXT,
                    position INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    FOREIGN KEY (folder_id, column_id)
                        REFERENCES board_columns(folder_id, column_id)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS task_moves (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id TEXT NOT NULL,
                    from_column TEXT NOT NULL,
                    to_column TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    FOREIGN KEY (task_id) REFERENCES board_tasks(task_id)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_folder ON board_tasks(folder_id, position)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_moves_task ON task_moves(task_id, id)")
            conn.commit()

    # ── Writes ───────────────────────────────────────────────────────────────

    def save_column(self, folder_id: str, column_id: str, title: str, position: int) -> bool:
        try:
            with _connect(self.db_path) as conn:
                conn.execute("""
                    INSERT INTO board_columns (folder_id, column_id, title, position)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(folder_id, column_id)
                    DO UPDATE SET title=excluded.title, position=excluded.position
                """, (folder_id, column_id, title, position))
                conn.commit()
                return True
        except sqlite3.Error as e:
            logger.error(f"Error saving column {folder_id}/{column_id}: {e}")
            return False

    def save_task(self, folder_id: str, dto: Dict[str, Any], position: Optional[int] = None) -> bool:
        """Insert or update a task from its DTO. New tasks go to the end of their column."""
        try:
            with _connect(self.db_path) as conn:
                existing = conn.execute(
                    "SELECT created_at, position FROM board_tasks WHERE task_id = ?", (dto["id"],)
                ).fetchone()
                if position is None:
                    if existing:
                        position = existing["position"]
                    else:
                        position = self._next_position(conn, folder_id, dto["columnId"])
                now = _now()
                conn.execute("""
                    INSERT INTO board_tasks
                    (task_id, folder_id, column_id, title, description, task_key,
                     importance, due_date, assignees, permalink, raw_status,
                     position, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(task_id) DO UPDATE SET
                        folder_id=excluded.folder_id, column_id=excluded.column_id,
                        title=excluded.title, description=excluded.description,
                        task_key=excluded.task_key, importance=excluded.importance,
                        due_date=excluded.due_date, assignees=excluded.assignees,
                        permalink=excluded.permalink, raw_status=excluded.raw_status,
                        position=excluded.position, updated_at=excluded.updated_at
                """, (
                    dto["id"],
                    folder_id,
                    dto["columnId"],
                    dto.get("title", ""),
                    dto.get("description"),
                    dto.get("key"),
                    dto.get("importance"),
                    dto.get("dueDate"),
                    json.dumps(dto.get("assignees", [])),
                    dto.get("permalink"),
                    dto.get("rawWrikeStatus"),
                    position,
                    existing["created_at"] if existing else now,
                    now,
                ))
                conn.commit()
                return True
        except (sqlite3.Error, KeyError) as e:
            logger.error(f"Error saving task {dto.get('id')}: {e}")
            return False

    def move_task(self, task_id: str, from_column: str, to_column: str) -> bool:
        """Move a task to the end of another column and log the move."""
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT folder_id FROM board_tasks WHERE task_id = ?", (task_id,)
                ).fetchone()
                if not row:
                    return False
                position = self._next_position(conn, row["folder_id"], to_column)
                conn.execute(
                    "UPDATE board_tasks SET column_id = ?, position = ?, updated_at = ? WHERE task_id = ?",
                    (to_column, position, _now(), task_id),
                )
                conn.execute(
                    "INSERT INTO task_moves (task_id, from_column, to_column, timestamp) VALUES (?,?,?,?)",
                    (task_id, from_column, to_column, _now()),
                )
                conn.commit()
                return True
        except sqlite3.Error as e:
            logger.error(f"Error moving task {task_id}: {e}")
            return False

    @staticmethod
    def _next_position(conn: sqlite3.Connection, folder_id: str, column_id: str) -> int:
        row = conn.execute(
            "SELECT MAX(position) FROM board_tasks WHERE folder_id = ? AND column_id = ?",
            (folder_id, column_id),
        ).fetchone()
        return (row[0] + 1) if row[0] is not None else 0

    # ── Reads ────────────────────────────────────────────────────────────────

    def get_board(self, folder_id: str) -> Optional[Dict[str, Any]]:
        """Columns and tasks of a folder in API shape, or None if the folder is unknown."""
        try:
            with _connect(self.db_path) as conn:
                columns = conn.execute(
                    "SELECT column_id, title FROM board_columns WHERE folder_id = ? ORDER BY position",
                    (folder_id,),
                ).fetchall()
                if not columns:
                    return None
                order = {row["column_id"]: i for i, row in enumerate(columns)}
                rows = conn.execute(
                    "SELECT * FROM board_tasks WHERE folder_id = ? ORDER BY position, created_at",
                    (folder_id,),
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Error loading folder {folder_id}: {e}")
            return None

        tasks = [self._row_to_dto(r) for r in rows]
        tasks.sort(key=lambda t: order.get(t["columnId"], len(order)))
        return {
            "columns": [{"id": r["column_id"], "title": r["title"]} for r in columns],
            "tasks": tasks,
        }

    def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT * FROM board_tasks WHERE task_id = ?", (task_id,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error retrieving task {task_id}: {e}")
            return None
        return self._row_to_dto(row) if row else None

    def get_task_folder(self, task_id: str) -> Optional[str]:
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT folder_id FROM board_tasks WHERE task_id = ?", (task_id,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error retrieving task {task_id}: {e}")
            return None
        return row["folder_id"] if row else None

    def column_exists(self, folder_id: str, column_id: str) -> bool:
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT 1 FROM board_columns WHERE folder_id = ? AND column_id = ?",
                    (folder_id, column_id),
                ).fetchone()
                return row is not None
        except sqlite3.Error as e:
            logger.error(f"Error checking column {folder_id}/{column_id}: {e}")
            return False

    def list_moves(self, task_id: str) -> List[Dict[str, Any]]:
        """Move history of a task, oldest first."""
        try:
            with _connect(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT from_column, to_column, timestamp FROM task_moves WHERE task_id = ? ORDER BY id ASC",
                    (task_id,),
                ).fetchall()
            return [dict(r) for r in rows]
        except sqlite3.Error as e:
            logger.error(f"Error listing moves for {task_id}: {e}")
            return []

    def get_stats(self, folder_id: str) -> Dict[str, Any]:
        """Task counts per column for a folder."""
        stats = {"by_column": {}, "total": 0}
        try:
            with _connect(self.db_path) as conn:
                for row in conn.execute(
                    "SELECT column_id, COUNT(*) FROM board_tasks WHERE folder_id = ? GROUP BY column_id",
                    (folder_id,),
                ):
                    stats["by_column"][row[0]] = row[1]
                    stats["total"] += row[1]
        except sqlite3.Error as e:
            logger.error(f"Error getting stats for {folder_id}: {e}")
        return stats

    @staticmethod
    def _row_to_dto(row: sqlite3.Row) -> Dict[str, Any]:
        data = dict(row)
        try:
            assignees = json.loads(data.get("assignees") or "[]")
        except (json.JSONDecodeError, TypeError):
            assignees = []
        dto = {
            "id": data["task_id"],
            "columnId": data["column_id"],
            "title": data["title"],
            "description": data.get("description"),
            "key": data.get("task_key"),
            "importance": data.get("importance"),
            "dueDate": data.get("due_date"),
            "assignees": assignees,
            "permalink": data.get("permalink"),
            "rawWrikeStatus": data.get("raw_status"),
        }
        return {k: v for k, v in dto.items() if v is not None}
