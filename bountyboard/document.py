"""
Board document codec.

One JSON value holds the whole board:

    {"tasks": [...], "developers": [...], "version": "1.0"}

This module turns that text into an AppState and back, including the
salvage path for documents that fail validation.
"""
import json
import logging
from typing import Any, Callable, Dict, List, Optional

from .schema import AppState, Developer, Task, TaskStatus, STORAGE_VERSION, hydrate_dates

logger = logging.getLogger(__name__)

VALID_STATUSES = {s.value for s in TaskStatus}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def has_collections(data: Any) -> bool:
    """Minimal shape: an object whose tasks and developers are lists."""
    return (
        isinstance(data, dict)
        and isinstance(data.get("tasks"), list)
        and isinstance(data.get("developers"), list)
    )


def is_wellformed_task(entry: Any) -> bool:
    return (
        isinstance(entry, dict)
        and isinstance(entry.get("id"), str) and bool(entry["id"])
        and isinstance(entry.get("name"), str) and bool(entry["name"])
        and _is_number(entry.get("points"))
        and entry.get("status") in VALID_STATUSES
    )


def is_wellformed_developer(entry: Any) -> bool:
    return (
        isinstance(entry, dict)
        and isinstance(entry.get("id"), str) and bool(entry["id"])
        and isinstance(entry.get("name"), str) and bool(entry["name"])
        and _is_number(entry.get("totalPoints"))
    )


def is_valid_document(data: Any) -> bool:
    """Full check: collections present and every entry well formed."""
    if not has_collections(data):
        return False
    return (
        all(is_wellformed_task(t) for t in data["tasks"])
        and all(is_wellformed_developer(d) for d in data["developers"])
    )


def migrate_document(data: Dict[str, Any]) -> Dict[str, Any]:
    """Bring older documents up to the current version. Only stamps a version today."""
    if not data.get("version"):
        data = dict(data)
        data["version"] = STORAGE_VERSION
    return data


def build_state(data: Dict[str, Any]) -> AppState:
    """Hydrate dates and build records, skipping entries that cannot be parsed."""
    hydrated = hydrate_dates(data)
    tasks: List[Task] = []
    developers: List[Developer] = []
    for item in hydrated.get("tasks") or []:
        try:
            tasks.append(Task.from_dict(item))
        except Exception as e:
            logger.warning(f"Skipping unreadable task {item.get('id') if isinstance(item, dict) else item!r}: {e}")
    for item in hydrated.get("developers") or []:
        try:
            developers.append(Developer.from_dict(item))
        except Exception as e:
            logger.warning(f"Skipping unreadable developer {item.get('id') if isinstance(item, dict) else item!r}: {e}")
    return AppState(tasks=tasks, developers=developers)


def recover_partial(data: Any) -> Optional[AppState]:
    """
    Salvage well-formed entries from a document that failed validation.

    Returns None when nothing useful survives.
    """
    if not isinstance(data, dict):
        return None
    raw_tasks = data.get("tasks") if isinstance(data.get("tasks"), list) else []
    raw_devs = data.get("developers") if isinstance(data.get("developers"), list) else []

    salvaged = {
        "tasks": [t for t in raw_tasks if is_wellformed_task(t)],
        "developers": [d for d in raw_devs if is_wellformed_developer(d)],
    }
    state = build_state(salvaged)
    if not state.tasks and not state.developers:
        return None
    logger.info(f"Recovered {len(state.tasks)} tasks and {len(state.developers)} developers")
    return state


def serialize_state(state: AppState, indent: Optional[int] = None) -> str:
    """Render the versioned wire document."""
    return json.dumps(state.to_dict(), indent=indent, ensure_ascii=False)


def decode_document(raw: Optional[str], on_unrecoverable: Optional[Callable[[str], None]] = None) -> AppState:
    """
    Parse stored text into an AppState. Never raises.

    - missing/empty text → empty board
    - valid document → full board
    - invalid but partially salvageable → the salvaged part
    - anything else → on_unrecoverable(raw) is called, then empty board
    """
    if raw is None or raw.strip() in ("", "null"):
        logger.info("No stored data found, starting with an empty board")
        return AppState.empty()

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Stored board document is not valid JSON: {e}")
        data = None

    if isinstance(data, dict):
        data = migrate_document(data)
        if is_valid_document(data):
            return build_state(data)
        logger.warning("Invalid board document structure detected")
        recovered = recover_partial(data)
        if recovered is not None:
            return recovered

    logger.warning("Board document unrecoverable, falling back to an empty board")
    if on_unrecoverable is not None:
        on_unrecoverable(raw)
    return AppState.empty()
