"""Tests for the terminal client."""
import sys
from unittest.mock import MagicMock

import pytest

import board_cli
from taskboard.api import BoardApiError
from taskboard.schema import Assignee, Priority, Task


@pytest.fixture
def fake_client(columns, tasks, monkeypatch):
    client = MagicMock()
    client.load_board.return_value = (columns, tasks)
    client.move_task.return_value = {}
    monkeypatch.setattr(board_cli, "BoardClient", lambda *a, **kw: client)
    monkeypatch.delenv("TASKBOARD_API_URL", raising=False)
    monkeypatch.delenv("TASKBOARD_FOLDER", raising=False)
    return client


def test_render_board(state):
    state.replace_task(Task(
        id="t1", column_id="todo", content="Write brief", key="ENA 1",
        priority=Priority.HIGH, due_date="15 Apr, 2025", assignees=(Assignee("JD", "bg-blue-600"),),
    ))
    out = board_cli.render_board(state)
    assert out.splitlines()[0] == "▌ Todo (2)"
    assert "[t1] ENA 1   Write brief !  due 15 Apr, 2025  JD" in out


def test_show(fake_client, capsys):
    assert board_cli.main(["show"]) == 0
    assert "▌ Doing (2)" in capsys.readouterr().out


def test_move_before_card(fake_client, capsys):
    assert board_cli.main(["move", "t1", "--before", "t4"]) == 0
    fake_client.move_task.assert_called_once_with("t1", "todo", "doing")
    assert "✅ t1: todo → doing" in capsys.readouterr().out


def test_move_to_column_end(fake_client):
    assert board_cli.main(["move", "t5", "--to", "todo", "--position", "end"]) == 0
    fake_client.move_task.assert_called_once_with("t5", "done", "todo")


def test_move_failure_restores_board(fake_client, capsys):
    fake_client.move_task.side_effect = BoardApiError("HTTP 500", status_code=500)
    assert board_cli.main(["move", "t1", "--before", "t4"]) == 1
    captured = capsys.readouterr()
    assert "Move failed" in captured.err
    assert captured.out.index("[t1]") < captured.out.index("▌ Doing")


def test_reorder_within_column_is_local(fake_client, capsys):
    assert board_cli.main(["move", "t2", "--before", "t1"]) == 0
    fake_client.move_task.assert_not_called()
    assert "nothing to persist" in capsys.readouterr().out


def test_unknown_task(fake_client):
    assert board_cli.main(["move", "zz", "--before", "t1"]) == 2


def test_task_detail_error(fake_client, capsys):
    fake_client.fetch_task.side_effect = BoardApiError("HTTP 500", status_code=500)
    assert board_cli.main(["task", "t3"]) == 1
    assert "Could not load task details" in capsys.readouterr().out


def test_load_failure(fake_client, capsys):
    fake_client.load_board.side_effect = BoardApiError("HTTP 404", status_code=404)
    assert board_cli.main(["show"]) == 1


def test_logs_to_stdout(fake_client, monkeypatch):
    recorded = MagicMock()
    monkeypatch.setattr(board_cli.logging, "basicConfig", recorded)
    board_cli.main(["show"])

    handlers = recorded.call_args.kwargs["handlers"]
    assert [h.stream for h in handlers] == [sys.stdout]
    assert "[board_cli]" in recorded.call_args.kwargs["format"]
