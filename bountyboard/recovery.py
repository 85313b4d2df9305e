"""
Retry and recovery around the persistence gateway.

Both load and save get a bounded number of retries with a linearly growing
delay (base_delay x attempt). Neither ever raises: callers get an outcome
carrying the result plus an error message suitable for a banner.
"""
import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from .document import recover_partial
from .gateway import Gateway, StorageQuotaError, corrupted_prefix
from .kv import KVStore
from .schema import AppState

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0

SAVE_FAILED_MESSAGE = "Failed to save data after multiple attempts. Your changes may be lost."


@dataclass
class LoadOutcome:
    state: AppState
    error: Optional[str] = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SaveOutcome:
    ok: bool
    error: Optional[str] = None
    attempts: int = 1


def load_with_retry(
    gateway: Gateway,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_RETRY_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> LoadOutcome:
    """
    Fetch the board, retrying on failure.

    After the last retry the outcome carries an empty board and a
    descriptive error so the caller stays usable.
    """
    attempt = 0
    while True:
        try:
            state = gateway.fetch()
        except Exception as e:
            if attempt >= max_retries:
                logger.error(f"Giving up loading board after {attempt + 1} attempts: {e}")
                return LoadOutcome(
                    state=AppState.empty(),
                    error=f"Failed to load data: {e}",
                    attempts=attempt + 1,
                )
            attempt += 1
            logger.warning(f"Retrying data load (attempt {attempt}/{max_retries}): {e}")
            sleep(base_delay * attempt)
            continue
        logger.info(f"Data loaded: {len(state.tasks)} tasks, {len(state.developers)} developers")
        return LoadOutcome(state=state, attempts=attempt + 1)


def save_with_retry(
    gateway: Gateway,
    state: AppState,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_RETRY_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> SaveOutcome:
    """
    Push the board, retrying on failure. The given state is never modified.

    Quota errors are reported straight away; resending the same document
    cannot succeed.
    """
    attempt = 0
    while True:
        try:
            gateway.push(state)
        except StorageQuotaError as e:
            logger.error(f"Board too large to save: {e}")
            return SaveOutcome(ok=False, error=f"Failed to save data: {e}", attempts=attempt + 1)
        except Exception as e:
            if attempt >= max_retries:
                logger.error(f"Giving up saving board after {attempt + 1} attempts: {e}")
                return SaveOutcome(ok=False, error=SAVE_FAILED_MESSAGE, attempts=attempt + 1)
            attempt += 1
            logger.warning(f"Retrying save operation (attempt {attempt}/{max_retries}): {e}")
            sleep(base_delay * attempt)
            continue
        return SaveOutcome(ok=True, attempts=attempt + 1)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Corrupted document backups
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def corrupted_backups(store: KVStore, storage_key: str) -> List[str]:
    """Backup keys for corrupted documents, most recent first."""
    try:
        return sorted(store.keys(corrupted_prefix(storage_key)), reverse=True)
    except Exception as e:
        logger.error(f"Failed to list corrupted data backups: {e}")
        return []


def restore_from_backup(store: KVStore, key: str) -> Optional[AppState]:
    """Salvage whatever is well formed in a backup. None if nothing is."""
    try:
        raw = store.get(key)
    except Exception as e:
        logger.error(f"Failed to read backup {key}: {e}")
        return None
    if raw is None:
        logger.warning(f"Backup not found: {key}")
        return None
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Backup {key} is not valid JSON: {e}")
        return None
    state = recover_partial(data)
    if state is not None:
        logger.info(f"Data restored from backup: {key}")
    return state
