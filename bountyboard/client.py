"""
Board client: one object wiring the store, persistence and upkeep together.

    client = BoardClient.from_config(BoardConfig.load())
    client.start()                  # load with retries, start the sweep
    client.board.add_task(task)     # mutations autosave after a quiet period
    client.force_save()             # explicit save, returns True/False
    client.stop()                   # stop the sweep, flush pending writes

Failures never raise out of here except ImportFormatError from
import_snapshot; they land in `error` for the caller to show and dismiss.
"""
import logging
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from .board import BoardStore, MutationResult
from .config import BoardConfig
from .gateway import Gateway, HttpGateway, export_snapshot, import_snapshot
from .recovery import LoadOutcome, load_with_retry, save_with_retry
from .schema import AppState
from .sweeper import ConsistencySweeper
from .writer import DebouncedWriter

logger = logging.getLogger(__name__)


class BoardClient:

    def __init__(
        self,
        gateway: Gateway,
        config: Optional[BoardConfig] = None,
        board: Optional[BoardStore] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.gateway = gateway
        self.config = config or BoardConfig()
        self.board = board or BoardStore()
        self._sleep = sleep

        self.error: Optional[str] = None
        self.is_loading = False
        # Set only on the thread running a quiet replace
        self._quiet = threading.local()

        self.writer = DebouncedWriter(self._persist, self.config.save_debounce_ms)
        self.sweeper = ConsistencySweeper(self.board, self.config.sweep_interval_secs)
        self._unsubscribe: Optional[Callable[[], None]] = self.board.subscribe(self._on_change)

    @classmethod
    def from_config(cls, config: BoardConfig) -> "BoardClient":
        gateway = HttpGateway(
            config.api_url,
            api_secret=config.api_secret,
            timeout=config.request_timeout,
        )
        return cls(gateway, config=config)

    # ── Status ──────────────────────────────────

    @property
    def is_saving(self) -> bool:
        return self.writer.is_saving

    @property
    def last_saved_at(self) -> Optional[datetime]:
        return self.writer.last_saved_at

    def clear_error(self) -> None:
        self.error = None

    # ── Lifecycle ───────────────────────────────

    def start(self) -> LoadOutcome:
        if self._unsubscribe is None:
            self._unsubscribe = self.board.subscribe(self._on_change)
        outcome = self.load()
        self.sweeper.start()
        return outcome

    def stop(self) -> None:
        self.sweeper.stop()
        if self.writer.has_pending:
            logger.info("Flushing pending board changes before shutdown")
            self.writer.flush()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def load(self) -> LoadOutcome:
        """(Re)load the board from the gateway, with retries."""
        self.is_loading = True
        self.error = None
        try:
            outcome = load_with_retry(
                self.gateway,
                max_retries=self.config.max_retries,
                base_delay=self.config.retry_delay_secs,
                sleep=self._sleep,
            )
            self._replace_quietly(outcome.state)
            self.error = outcome.error
            return outcome
        finally:
            self.is_loading = False

    reload = load

    # ── Persistence ─────────────────────────────

    def _on_change(self, state: AppState, result: MutationResult) -> None:
        if not getattr(self._quiet, "active", False) and not self.is_loading:
            self.writer.schedule(state)

    def _replace_quietly(self, state: AppState) -> MutationResult:
        self._quiet.active = True
        try:
            return self.board.replace_state(state)
        finally:
            self._quiet.active = False

    def _persist(self, state: AppState) -> bool:
        outcome = save_with_retry(
            self.gateway,
            state,
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_delay_secs,
            sleep=self._sleep,
        )
        if outcome.ok:
            self.error = None
        else:
            # In-memory state stays as is; the next mutation schedules another write
            self.error = outcome.error
        return outcome.ok

    def force_save(self) -> bool:
        return self.writer.force_save(self.board.get_state())

    def clear_data(self) -> bool:
        """Remove the stored document and empty the local board."""
        self.writer.cancel()
        # A write already under way finishes first and cannot land afterwards
        with self.writer.exclusive():
            if not self.gateway.clear():
                self.error = "Failed to clear data"
                return False
            self._replace_quietly(AppState.empty())
        return True

    # ── Export / import ─────────────────────────

    def export_snapshot(self) -> str:
        return export_snapshot(self.board.get_state())

    def import_snapshot(self, text: str) -> bool:
        """
        Replace the board with a snapshot and persist it immediately.

        Raises ImportFormatError (board untouched) if the text is not a
        board document. Returns whether the write succeeded.
        """
        state = import_snapshot(text)
        self._replace_quietly(state)
        logger.info(f"Imported {len(state.tasks)} tasks and {len(state.developers)} developers")
        return self.force_save()
