"""
Bounty board schema.

Task lifecycle:
  Backlog → Assigned → Completed

Assigned tasks may drop back to Backlog. Completed is terminal by UI
convention; nothing here enforces it. Developer aggregates are derived
from the task list (see reconcile.py) and never trusted from storage.

Wire shape is camelCase JSON; Python attributes are snake_case.
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
import random
import string
import time

STORAGE_VERSION = "1.0"

# Keys rehydrated to datetime wherever they appear in a document
DATE_KEYS = ("createdAt", "completedAt")


class TaskStatus(Enum):
    """Column placement of a task."""
    BACKLOG = "backlog"
    ASSIGNED = "assigned"
    COMPLETED = "completed"

    @classmethod
    def from_str(cls, value: str) -> "TaskStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.BACKLOG


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept a datetime or an ISO-8601 string (trailing 'Z' allowed)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() if isinstance(value, datetime) else value


def generate_id(prefix: str = "") -> str:
    """Sortable unique id: base36 millisecond timestamp + 6 random chars."""
    ms = int(time.time() * 1000)
    alphabet = string.digits + string.ascii_lowercase
    stamp = ""
    while ms:
        ms, rem = divmod(ms, 36)
        stamp = alphabet[rem] + stamp
    rand = "".join(random.choices(alphabet, k=6))
    return f"{prefix}{stamp or '0'}-{rand}"


def hydrate_dates(data: Any) -> Any:
    """
    Recursively convert createdAt/completedAt strings into datetimes.

    Returns new containers; values that are already datetimes are left alone.
    """
    if isinstance(data, list):
        return [hydrate_dates(item) for item in data]
    if isinstance(data, dict):
        result = {}
        for key, value in data.items():
            if key in DATE_KEYS and isinstance(value, str) and value:
                try:
                    result[key] = parse_timestamp(value)
                except ValueError:
                    result[key] = value
            elif isinstance(value, (dict, list)):
                result[key] = hydrate_dates(value)
            else:
                result[key] = value
        return result
    return data


@dataclass(frozen=True)
class CompletionDetails:
    """What the developer reported when closing a task."""
    hours_spent: float
    git_commit: str
    comments: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hoursSpent": self.hours_spent,
            "gitCommit": self.git_commit,
            "comments": self.comments,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompletionDetails":
        return cls(
            hours_spent=data.get("hoursSpent", 0),
            git_commit=data.get("gitCommit", ""),
            comments=data.get("comments", ""),
        )


@dataclass(frozen=True)
class Task:
    """One unit of work with a bounty attached."""

    id: str
    name: str
    description: str = ""
    points: int = 0                      # Bounty credited on completion

    status: TaskStatus = TaskStatus.BACKLOG
    assigned_to: Optional[str] = None    # Developer id; None while in backlog

    created_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    completion_details: Optional[CompletionDetails] = None

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire shape. Optional fields are omitted when unset."""
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "points": self.points,
            "status": self.status.value if isinstance(self.status, TaskStatus) else self.status,
            "createdAt": format_timestamp(self.created_at),
        }
        if self.assigned_to is not None:
            data["assignedTo"] = self.assigned_to
        if self.completed_at is not None:
            data["completedAt"] = format_timestamp(self.completed_at)
        if self.completion_details is not None:
            data["completionDetails"] = self.completion_details.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Deserialize from the wire shape (dates as strings or datetimes)."""
        details = data.get("completionDetails")
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            points=data.get("points", 0),
            status=TaskStatus.from_str(data.get("status", "backlog")),
            assigned_to=data.get("assignedTo") or None,
            created_at=parse_timestamp(data.get("createdAt")) or utc_now(),
            completed_at=parse_timestamp(data.get("completedAt")),
            completion_details=CompletionDetails.from_dict(details) if isinstance(details, dict) else None,
        )


@dataclass(frozen=True)
class Developer:
    """A board column. Aggregates are recomputed from tasks on every mutation."""

    id: str
    name: str
    total_points: int = 0
    completed_tasks: int = 0
    total_hours: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "totalPoints": self.total_points,
            "completedTasks": self.completed_tasks,
            "totalHours": self.total_hours,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Developer":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            total_points=data.get("totalPoints", 0),
            completed_tasks=data.get("completedTasks", 0),
            total_hours=data.get("totalHours", 0),
        )


@dataclass(frozen=True)
class AppState:
    """The whole persisted unit: every task and every developer."""

    tasks: List[Task] = field(default_factory=list)
    developers: List[Developer] = field(default_factory=list)

    def to_dict(self, version: Optional[str] = STORAGE_VERSION) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "tasks": [t.to_dict() for t in self.tasks],
            "developers": [d.to_dict() for d in self.developers],
        }
        if version:
            data["version"] = version
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppState":
        return cls(
            tasks=[Task.from_dict(t) for t in data.get("tasks") or []],
            developers=[Developer.from_dict(d) for d in data.get("developers") or []],
        )

    @classmethod
    def empty(cls) -> "AppState":
        return cls(tasks=[], developers=[])
