"""
Periodic consistency sweep.

Catches any path that removed a developer without going through
delete_developer: open tasks left pointing at a missing developer are sent
back to the backlog.
"""
import logging
import threading
from typing import Optional

from .board import BoardStore, MutationResult

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 30.0


class ConsistencySweeper:
    """Runs BoardStore.sweep_orphans on a fixed interval while started."""

    def __init__(self, board: BoardStore, interval_secs: float = DEFAULT_SWEEP_INTERVAL):
        self.board = board
        self.interval = interval_secs
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> MutationResult:
        result = self.board.sweep_orphans()
        if result.changed:
            logger.warning(f"Consistency sweep reset {len(result.reset_task_ids)} orphaned tasks")
        return result

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Consistency sweep failed: {e}")

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="board-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
