#!/usr/bin/env python3
"""
Taskboard API Server
--------------------
Reference implementation of the board API the taskboard client talks to,
backed by a SQLite BoardStore.

Usage:
    python board_server.py --seed
    python board_server.py --host 0.0.0.0 --port 3000 --db /tmp/board.db

API:
    GET  /api/board/folders/<folder_id>       → { columns, tasks }
    GET  /api/board/tasks/<task_id>           → task
    POST /api/board/tasks/<task_id>/move      → JSON body: { from, to }
                                                 Returns: { task }
    GET  /api/board/folders/<folder_id>/stats → { by_column, total }
    GET  /health                              → { status, db }

Write endpoints require an X-API-Key header when TASKBOARD_API_SECRET is set.
"""

import hmac
import logging
import os
import sys
from functools import wraps
from pathlib import Path

from flask import Flask, jsonify, request

from taskboard.config import Config, ConfigError
from taskboard.seed import DEMO_FOLDER, seed_demo
from taskboard.store import BoardStore

app = Flask(__name__)


# ── Auth ─────────────────────────────────────────────────────────────────────


def api_secret() -> str:
    return os.environ.get("TASKBOARD_API_SECRET", "").strip()


def require_api_key(f):
    """Decorator: reject requests without a valid X-API-Key header (when a secret is set)."""
    @wraps(f)
    def decorated(*args, **kwargs):
        secret = api_secret()
        if not secret:
            return f(*args, **kwargs)
        provided = request.headers.get("X-API-Key", "").strip()
        if not hmac.compare_digest(provided, secret):
            code = 401 if not provided else 403
            return jsonify({"error": "Unauthorized"}), code
        return f(*args, **kwargs)
    return decorated


# ── Store ────────────────────────────────────────────────────────────────────

_stores = {}


def get_db_path() -> str:
    env = os.environ.get("TASKBOARD_DB")
    if env:
        return env
    return str(Path(Config().db_path).expanduser())


def get_store() -> BoardStore:
    """One BoardStore per database path (schema init runs once)."""
    db_path = get_db_path()
    if db_path not in _stores:
        _stores[db_path] = BoardStore(db_path)
    return _stores[db_path]


# ── Routes ───────────────────────────────────────────────────────────────────


@app.route("/api/board/folders/<folder_id>")
def api_folder(folder_id):
    board = get_store().get_board(folder_id)
    if board is None:
        return jsonify({"error": f"Folder {folder_id} not found"}), 404
    return jsonify(board)


@app.route("/api/board/folders/<folder_id>/stats")
def api_folder_stats(folder_id):
    store = get_store()
    if store.get_board(folder_id) is None:
        return jsonify({"error": f"Folder {folder_id} not found"}), 404
    return jsonify(store.get_stats(folder_id))


@app.route("/api/board/tasks/<task_id>")
def api_task(task_id):
    task = get_store().get_task(task_id)
    if task is None:
        return jsonify({"error": "Task not found"}), 404
    return jsonify(task)


@app.route("/api/board/tasks/<task_id>/move", methods=["POST"])
@require_api_key
def api_move_task(task_id):
    """Move a task to another column (appended at the end)."""
    data = request.get_json(force=True, silent=True) or {}
    from_column = str(data.get("from", "")).strip()
    to_column = str(data.get("to", "")).strip()
    if not from_column or not to_column:
        return jsonify({"error": "from and to are required"}), 400

    store = get_store()
    task = store.get_task(task_id)
    if task is None:
        return jsonify({"error": "Task not found"}), 404

    folder_id = store.get_task_folder(task_id)
    if not store.column_exists(folder_id, to_column):
        return jsonify({"error": f"Unknown column: {to_column}"}), 400

    if task["columnId"] != from_column:
        return jsonify({
            "error": f"Task is in {task['columnId']}, not {from_column}"
        }), 409

    if from_column != to_column and not store.move_task(task_id, from_column, to_column):
        app.logger.error(f"Move of {task_id} {from_column} → {to_column} failed")
        return jsonify({"error": "Move failed"}), 500

    app.logger.info(f"Task {task_id} moved {from_column} → {to_column}")
    return jsonify({"task": store.get_task(task_id)})


@app.route("/health")
def health():
    return jsonify({"status": "ok", "db": get_db_path()})


# ── Main ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Taskboard API Server")
    parser.add_argument("--config", help="Path to taskboard.yaml")
    parser.add_argument("--host", help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int)
    parser.add_argument("--db", help="Path to board.db (overrides TASKBOARD_DB env var)")
    parser.add_argument("--seed", action="store_true", help=f"Seed the {DEMO_FOLDER!r} folder")
    args = parser.parse_args()

    try:
        cfg = Config.load(args.config)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, cfg.log_level),
        format="%(asctime)s [board_server] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    os.environ["TASKBOARD_DB"] = args.db or cfg.db_path
    host = args.host or cfg.host
    port = args.port or cfg.port

    if args.seed:
        seed_demo(get_store())
    if not api_secret():
        app.logger.warning("TASKBOARD_API_SECRET not set: write endpoints are unauthenticated")

    print(f"""
╔═══════════════════════════════════════╗
║  Taskboard API Server                 ║
╠═══════════════════════════════════════╣
║  URL:  http://{host}:{port:<20}║
║  DB:   {get_db_path():<31}║
╚═══════════════════════════════════════╝
""")

    app.run(host=host, port=port, debug=False, threaded=True)
