"""
Debounced board writer.

Bursts of mutations collapse into one write of the latest state once the
board has been quiet for the debounce window. Writes run one at a time.
Every state handed to the writer is stamped with a sequence number, and a
write older than the last one attempted is dropped, so an older board never
lands on top of a newer one.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from .schema import AppState

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 500


class DebouncedWriter:
    """
    Wraps a save function (state -> bool) with a debounce window.

    schedule()   - queue the latest state; restarts the quiet-period timer
    force_save() - write now, bypassing the timer, and return the outcome
    flush()      - write whatever is pending right away
    cancel()     - drop whatever is pending or waiting to be written
    exclusive()  - context manager: wait out the write in flight, hold off new ones
    """

    def __init__(self, save: Callable[[AppState], bool], delay_ms: int = DEFAULT_DEBOUNCE_MS):
        self._save = save
        self.delay = delay_ms / 1000
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[Tuple[int, AppState]] = None
        self._seq = 0           # last stamp handed out
        self._floor = 0         # stamps at or below this are stale
        self._in_flight = 0
        self.last_saved_at: Optional[datetime] = None

    @property
    def is_saving(self) -> bool:
        return self._in_flight > 0

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def _stamp(self) -> int:
        # Caller holds self._lock
        self._seq += 1
        return self._seq

    def schedule(self, state: AppState) -> None:
        with self._lock:
            self._pending = (self._stamp(), state)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _take_pending(self) -> Optional[Tuple[int, AppState]]:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            pending, self._pending = self._pending, None
            return pending

    def _fire(self) -> None:
        pending = self._take_pending()
        if pending is not None:
            self._write(*pending)

    def _write(self, seq: int, state: AppState) -> bool:
        with self._write_lock:
            with self._lock:
                if seq <= self._floor:
                    logger.debug(f"Skipping stale write #{seq} (last attempted #{self._floor})")
                    return False
                self._floor = seq
            self._in_flight += 1
            try:
                ok = bool(self._save(state))
            except Exception as e:
                logger.error(f"Save error: {e}")
                ok = False
            finally:
                self._in_flight -= 1
        if ok:
            self.last_saved_at = datetime.now(timezone.utc)
            logger.debug(f"Board saved at {self.last_saved_at.isoformat()}")
        return ok

    def force_save(self, state: AppState) -> bool:
        """Write state immediately. Anything pending is superseded by it."""
        self._take_pending()
        with self._lock:
            seq = self._stamp()
        ok = self._write(seq, state)
        if ok:
            logger.info("Manual save completed successfully")
        else:
            logger.error("Manual save failed")
        return ok

    def flush(self) -> Optional[bool]:
        """Write the pending state now. None if nothing was pending."""
        pending = self._take_pending()
        if pending is None:
            return None
        return self._write(*pending)

    def cancel(self) -> None:
        """Drop the pending state and any taken state still waiting for its turn."""
        self._take_pending()
        with self._lock:
            self._floor = self._seq

    @contextmanager
    def exclusive(self):
        """Run a block with no write in progress; writes queued meanwhile wait for it."""
        with self._write_lock:
            yield
