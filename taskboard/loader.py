"""
Board loading and task detail fetching.

Both calls are fire-and-forget and abortable. Starting a new load aborts the
one in flight; an aborted or superseded request never touches the store.
close() aborts everything (the board view going away).
"""
import logging
import threading
from dataclasses import replace
from typing import Optional

from .api import BoardApiError, BoardClient, RequestAborted
from .detail import DetailPanel
from .drag import Dispatch, run_in_background
from .state import BoardState

logger = logging.getLogger(__name__)

DETAIL_ERROR_MESSAGE = "Could not load task details. Try again later."


class BoardLoader:
    """Loads a folder's board into a BoardState and enriches single tasks."""

    def __init__(self, state: BoardState, client: BoardClient, dispatch: Dispatch = run_in_background):
        self.state = state
        self.client = client
        self.dispatch = dispatch
        self._lock = threading.RLock()
        self._load_abort: Optional[threading.Event] = None
        self._detail_abort: Optional[threading.Event] = None

    @staticmethod
    def _supersede(previous: Optional[threading.Event]) -> threading.Event:
        if previous is not None:
            previous.set()
        return threading.Event()

    # ── Board load ───────────────────────────────────────────────────────────

    def load(self, folder_id: str) -> threading.Event:
        """Start loading a folder. Returns the abort signal of this load."""
        with self._lock:
            abort = self._supersede(self._load_abort)
            self._load_abort = abort

        def _job():
            try:
                columns, tasks = self.client.load_board(folder_id, abort=abort)
            except RequestAborted:
                logger.debug(f"Board load for folder {folder_id} aborted")
                return
            except BoardApiError as e:
                logger.error(f"Board load for folder {folder_id} failed: {e}")
                return

            with self._lock:
                if abort.is_set() or self._load_abort is not abort:
                    logger.debug(f"Discarding superseded board load for folder {folder_id}")
                    return
                self.state.reset(columns, tasks)
            logger.info(f"Loaded folder {folder_id}: {len(columns)} columns, {len(tasks)} tasks")

        self.dispatch(_job)
        return abort

    # ── Task detail ──────────────────────────────────────────────────────────

    def open_task(self, task_id: str, panel: DetailPanel) -> threading.Event:
        """Select a task in the panel and fetch its full details."""
        with self._lock:
            abort = self._supersede(self._detail_abort)
            self._detail_abort = abort
        panel.select(task_id)
        panel.loading = True

        def _job():
            titles = {col.id: col.title for col in self.state.columns}
            try:
                detail = self.client.fetch_task(task_id, titles, abort=abort)
            except RequestAborted:
                logger.debug(f"Detail fetch for task {task_id} aborted")
                return
            except BoardApiError as e:
                logger.error(f"Detail fetch for task {task_id} failed: {e}")
                with self._lock:
                    if self._detail_abort is abort:
                        panel.error = DETAIL_ERROR_MESSAGE
                        panel.loading = False
                return

            with self._lock:
                if abort.is_set() or self._detail_abort is not abort:
                    return
                live = self.state.find_task(task_id)
                if live is None:
                    logger.warning(f"Task {task_id} is not on the board, detail not applied")
                else:
                    # The board owns placement; the detail payload only adds fields
                    self.state.replace_task(replace(detail, column_id=live.column_id, column_title=live.column_title))
                panel.loading = False

        self.dispatch(_job)
        return abort

    def close(self) -> None:
        with self._lock:
            for signal in (self._load_abort, self._detail_abort):
                if signal is not None:
                    signal.set()
            self._load_abort = None
            self._detail_abort = None
