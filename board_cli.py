#!/usr/bin/env python3
"""
Taskboard terminal client
─────────────────────────
Loads a board from the board API, prints it, and moves cards by running a
full drag session (pick up → hover → drop) against the same state and
persistence path a graphical front end uses.

Usage:
    python board_cli.py show
    python board_cli.py task task4
    python board_cli.py move task6 --before task4
    python board_cli.py move task6 --to done --position end
"""

import argparse
import logging
import sys

from taskboard.api import BoardClient
from taskboard.config import Config, ConfigError
from taskboard.detail import DetailPanel
from taskboard.drag import MOVE_OK, DragController, run_inline
from taskboard.layout import card_point, column_end_point, column_start_point, droppables, geometry_at
from taskboard.loader import BoardLoader
from taskboard.schema import TaskDragData
from taskboard.state import BoardState

logger = logging.getLogger("board_cli")


def render_board(state: BoardState) -> str:
    lines = []
    counts = state.column_counts()
    for col in state.columns:
        lines.append(f"▌ {col.title} ({counts.get(col.id, 0)})")
        for task in state.tasks_in(col.id):
            flag = " !" if task.priority and task.priority.value == "high" else ""
            due = f"  due {task.due_date}" if task.due_date else ""
            people = " ".join(a.initials for a in task.assignees)
            lines.append(f"    [{task.id}] {task.key:<7} {task.content}{flag}{due}  {people}".rstrip())
        lines.append("")
    return "\n".join(lines).rstrip()


def render_task(state: BoardState, panel: DetailPanel) -> str:
    task = panel.selected_task(state)
    if panel.error:
        return f"⚠️  {panel.error}"
    if task is None:
        return f"Task {panel.selected_task_id} not found on this board"
    lines = [
        f"{task.key}  {task.content}",
        f"Status:    {task.column_title or task.column_id}",
        f"Priority:  {task.priority.value if task.priority else '-'}",
        f"Due:       {task.due_date or 'No due date'}",
        f"Assignees: {', '.join(a.initials for a in task.assignees) or '-'}",
    ]
    if task.permalink:
        lines.append(f"Link:      {task.permalink}")
    lines.append("")
    lines.append(task.description or "No description added yet.")
    return "\n".join(lines)


def cmd_show(state: BoardState, loader: BoardLoader, cfg: Config, args) -> int:
    print(render_board(state))
    return 0


def cmd_task(state: BoardState, loader: BoardLoader, cfg: Config, args) -> int:
    panel = DetailPanel()
    loader.open_task(args.task_id, panel)
    print(render_task(state, panel))
    return 1 if panel.error else 0


def cmd_move(state: BoardState, loader: BoardLoader, cfg: Config, args) -> int:
    task = state.find_task(args.task_id)
    if task is None:
        print(f"Unknown task: {args.task_id}", file=sys.stderr)
        return 2

    if args.before:
        pointer = card_point(state, args.before)
    elif args.position == "end":
        pointer = column_end_point(state, args.to)
    else:
        pointer = column_start_point(state, args.to)
    if pointer is None:
        print(f"Unknown drop target: {args.before or args.to}", file=sys.stderr)
        return 2

    controller = DragController(state, loader.client.move_task, dispatch=run_inline)
    controller.start(TaskDragData(task))
    over_id = controller.pointer_move(droppables(state), geometry_at(state, pointer, task.id))
    logger.debug(f"Hovering over {over_id}")
    request = controller.drop(droppables(state), geometry_at(state, pointer, task.id))

    print(render_board(state))
    if request is None:
        print("\n(reordered locally, nothing to persist)")
        return 0
    if request.status == MOVE_OK:
        print(f"\n✅ {request.task_id}: {request.from_column} → {request.to_column}")
        return 0
    print(f"\n❌ Move failed, board restored: {request.error}", file=sys.stderr)
    return 1


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Taskboard terminal client")
    parser.add_argument("--config", help="Path to taskboard.yaml")
    parser.add_argument("--folder", help="Folder id (overrides config)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("show", help="Print the board")

    task_p = sub.add_parser("task", help="Show one task's details")
    task_p.add_argument("task_id")

    move_p = sub.add_parser("move", help="Drag a card to another place")
    move_p.add_argument("task_id")
    target = move_p.add_mutually_exclusive_group(required=True)
    target.add_argument("--before", metavar="TASK_ID", help="Drop onto this card")
    target.add_argument("--to", metavar="COLUMN_ID", help="Drop onto this column")
    move_p.add_argument("--position", choices=("start", "end"), default="start")

    args = parser.parse_args(argv)

    try:
        cfg = Config.load(args.config)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, cfg.log_level),
        format="%(asctime)s [board_cli] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    client = BoardClient(cfg.api_url, timeout=cfg.request_timeout, api_key=cfg.api_key)
    state = BoardState()
    loader = BoardLoader(state, client, dispatch=run_inline)
    folder_id = args.folder or cfg.folder_id
    loader.load(folder_id)
    if not state.columns:
        print(f"Could not load folder {folder_id!r} from {cfg.api_url}", file=sys.stderr)
        return 1

    commands = {"show": cmd_show, "task": cmd_task, "move": cmd_move}
    return commands[args.command](state, loader, cfg, args)


if __name__ == "__main__":
    sys.exit(main())
