"""
Persistence gateway: moves the board document in and out of storage.

Two backends share one interface:
  KVGateway   - reads/writes a KVStore directly (server side, local runs)
  HttpGateway - talks to the /api/data service with requests (clients)

fetch()/push() raise GatewayError subclasses so the retry layer can tell a
failure from an empty board. load()/save() are the soft wrappers: they
never raise.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Optional

import requests

from .document import decode_document, has_collections, build_state, serialize_state
from .kv import KVStore
from .schema import AppState

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "bounty-board-data"
DEFAULT_MAX_DOCUMENT_BYTES = 5 * 1024 * 1024


class GatewayError(Exception):
    """Base class for persistence failures."""
    pass


class TransportError(GatewayError):
    """Store or service unreachable, or it refused the request."""
    pass


class StorageQuotaError(GatewayError):
    """The serialized board is larger than the store accepts."""
    pass


class ImportFormatError(ValueError):
    """A user-supplied snapshot is not a board document."""
    pass


def backup_key(storage_key: str) -> str:
    return f"{storage_key}-backup-last"


def corrupted_prefix(storage_key: str) -> str:
    return f"{storage_key}-corrupted-"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Export / import
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def export_snapshot(state: AppState) -> str:
    """Versioned, indented JSON suitable for a manual backup file."""
    return serialize_state(state, indent=2)


def import_snapshot(text: str) -> AppState:
    """
    Parse a snapshot produced by export_snapshot.

    Raises ImportFormatError if the text is not JSON or tasks/developers
    are not lists.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ImportFormatError(f"Failed to import data: Invalid JSON format ({e})") from e
    if not has_collections(data):
        raise ImportFormatError(
            "Failed to import data: expected an object with 'tasks' and 'developers' lists"
        )
    return build_state(data)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Gateways
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class Gateway:
    """Common interface. Subclasses implement fetch/push/clear."""

    def fetch(self) -> AppState:
        raise NotImplementedError

    def push(self, state: AppState) -> None:
        raise NotImplementedError

    def clear(self) -> bool:
        raise NotImplementedError

    def load(self) -> AppState:
        """Load the board, or an empty one on any failure."""
        try:
            state = self.fetch()
        except Exception as e:
            logger.error(f"Error loading board data: {e}")
            return AppState.empty()
        logger.info(f"Board loaded: {len(state.tasks)} tasks, {len(state.developers)} developers")
        return state

    def save(self, state: AppState) -> bool:
        """Persist the board. True only on a confirmed write."""
        try:
            self.push(state)
        except Exception as e:
            logger.error(f"Error saving board data: {e}")
            return False
        return True


class KVGateway(Gateway):
    """Gateway straight onto a KVStore, with corruption backup and write rollback."""

    def __init__(
        self,
        store: KVStore,
        storage_key: str = DEFAULT_STORAGE_KEY,
        max_document_bytes: int = DEFAULT_MAX_DOCUMENT_BYTES,
    ):
        self.store = store
        self.storage_key = storage_key
        self.max_document_bytes = max_document_bytes

    def read_raw(self) -> Optional[str]:
        try:
            return self.store.get(self.storage_key)
        except Exception as e:
            raise TransportError(f"Failed to read {self.storage_key}: {e}") from e

    def fetch(self) -> AppState:
        return decode_document(self.read_raw(), on_unrecoverable=self.backup_corrupted)

    def backup_corrupted(self, raw: str) -> Optional[str]:
        """
        Move unreadable text to a timestamped key for manual inspection.

        The main key is cleared afterwards so later reads start from an
        empty board instead of backing up the same bytes again. If the
        backup cannot be written the main key is left alone.
        """
        stamp = datetime.now(timezone.utc).isoformat().replace(":", "-").replace(".", "-")
        key = f"{corrupted_prefix(self.storage_key)}{stamp}"
        try:
            self.store.set(key, raw)
        except Exception as e:
            logger.error(f"Failed to back up corrupted data: {e}")
            return None
        logger.warning(f"Corrupted data backed up to: {key}")
        self._discard_if_unchanged(raw)
        return key

    def _discard_if_unchanged(self, raw: str) -> None:
        try:
            # A save may have replaced the document since it was read
            if self.store.get(self.storage_key) == raw:
                self.store.delete(self.storage_key)
        except Exception as e:
            logger.error(f"Failed to discard corrupted data under {self.storage_key}: {e}")

    def push(self, state: AppState) -> None:
        serialized = serialize_state(state, indent=2)
        size = len(serialized.encode("utf-8"))
        if size > self.max_document_bytes:
            raise StorageQuotaError(
                f"Board document is {size} bytes, limit is {self.max_document_bytes}"
            )

        previous = None
        try:
            previous = self.store.get(self.storage_key)
            if previous and previous != "null":
                self.store.set(backup_key(self.storage_key), previous)
        except Exception as e:
            # The write itself may still succeed
            logger.warning(f"Failed to create backup before save: {e}")

        try:
            self.store.set(self.storage_key, serialized)
        except Exception as e:
            self._restore_backup()
            raise TransportError(f"Failed to write {self.storage_key}: {e}") from e

        logger.info(
            f"Board saved: {len(state.tasks)} tasks, "
            f"{len(state.developers)} developers, {size} bytes"
        )

    def _restore_backup(self) -> None:
        try:
            saved = self.store.get(backup_key(self.storage_key))
            if saved:
                self.store.set(self.storage_key, saved)
                logger.info("Restored from backup after save failure")
        except Exception as e:
            logger.error(f"Failed to restore backup after save failure: {e}")

    def clear(self) -> bool:
        try:
            self.store.delete(self.storage_key)
        except Exception as e:
            logger.error(f"Error clearing board data: {e}")
            return False
        logger.info("Board data cleared")
        return True


class HttpGateway(Gateway):
    """Gateway onto the /api/data service."""

    def __init__(
        self,
        base_url: str,
        api_secret: str = "",
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = base_url.rstrip("/") + "/api/data"
        self.api_secret = api_secret
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_secret:
            headers["X-API-Key"] = self.api_secret
        return headers

    def _request(self, method: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(
                method, self.url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {self.url} failed: {e}") from e
        if response.status_code == 413:
            raise StorageQuotaError(_error_message(response))
        if not response.ok:
            raise TransportError(f"HTTP error! status: {response.status_code} ({_error_message(response)})")
        return response

    def fetch(self) -> AppState:
        response = self._request("GET")
        # The service owns the stored text; an unreadable body just means an empty board here
        return decode_document(response.text)

    def push(self, state: AppState) -> None:
        response = self._request("POST", data=serialize_state(state))
        result = _json_or_empty(response)
        if not result.get("success"):
            raise TransportError(result.get("error") or "Save failed")

    def clear(self) -> bool:
        try:
            response = self._request("DELETE")
        except GatewayError as e:
            logger.error(f"Error clearing board data: {e}")
            return False
        if not _json_or_empty(response).get("success"):
            logger.error("Error clearing board data: service did not confirm")
            return False
        logger.info("Board data cleared")
        return True


def _json_or_empty(response: requests.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _error_message(response: requests.Response) -> str:
    return _json_or_empty(response).get("error") or response.reason or str(response.status_code)
