"""Shared test fixtures for taskboard tests."""

import sys
import tempfile
from pathlib import Path

import pytest

# Ensure the repo root (board_server.py, board_cli.py) is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from taskboard.schema import Column, Task
from taskboard.state import BoardState
from taskboard.store import BoardStore


@pytest.fixture
def columns():
    return [
        Column("todo", "Todo"),
        Column("doing", "Doing"),
        Column("done", "Done"),
    ]


@pytest.fixture
def tasks():
    return [
        Task(id="t1", column_id="todo", column_title="Todo", content="Write brief", key="ENA 1"),
        Task(id="t2", column_id="todo", column_title="Todo", content="Collect quotes", key="ENA 2"),
        Task(id="t3", column_id="doing", column_title="Doing", content="Draft layout", key="DES 3"),
        Task(id="t4", column_id="doing", column_title="Doing", content="Pick fonts", key="DES 4"),
        Task(id="t5", column_id="done", column_title="Done", content="Kickoff", key="CON 5"),
    ]


@pytest.fixture
def state(columns, tasks):
    return BoardState(columns, tasks)


@pytest.fixture
def db_path():
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp:
        path = tmp.name
    yield path
    for suffix in ("", "-wal", "-shm"):
        Path(path + suffix).unlink(missing_ok=True)


@pytest.fixture
def store(db_path):
    return BoardStore(db_path)
