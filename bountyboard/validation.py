"""
Form validation for task creation and task completion.

Both validators return every problem at once. Nothing here raises.
"""
import re
from dataclasses import dataclass, field
from numbers import Number
from typing import Any, List

COMMIT_HASH_RE = re.compile(r"^[a-f0-9]{6,40}$", re.IGNORECASE)


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass
class FormValidationResult:
    is_valid: bool
    errors: List[FieldError] = field(default_factory=list)

    def fields(self) -> List[str]:
        return [e.field for e in self.errors]


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _number(value: Any) -> float:
    # bool is a Number subclass; it is never a valid amount
    if isinstance(value, bool) or not isinstance(value, Number):
        return 0
    return value


def is_valid_commit_hash(value: Any) -> bool:
    """6-40 hex characters, case-insensitive, surrounding whitespace ignored."""
    return bool(COMMIT_HASH_RE.fullmatch(_text(value)))


def validate_task_form(name: Any, description: Any, points: Any) -> FormValidationResult:
    """Check a new task: name, description, whole positive points."""
    errors: List[FieldError] = []

    if not _text(name):
        errors.append(FieldError("name", "Task name is required"))

    if not _text(description):
        errors.append(FieldError("description", "Task description is required"))

    amount = _number(points)
    if amount <= 0:
        errors.append(FieldError("points", "Points must be greater than 0"))
    if not (isinstance(amount, int) or (isinstance(amount, float) and amount.is_integer())):
        errors.append(FieldError("points", "Points must be a whole number"))

    return FormValidationResult(is_valid=not errors, errors=errors)


def validate_completion_form(hours_spent: Any, git_commit: Any, comments: Any) -> FormValidationResult:
    """Check completion details: positive hours, commit hash shape, comments."""
    errors: List[FieldError] = []

    if _number(hours_spent) <= 0:
        errors.append(FieldError("hoursSpent", "Hours spent must be greater than 0"))

    if not _text(git_commit):
        errors.append(FieldError("gitCommit", "Git commit reference is required"))
    elif not is_valid_commit_hash(git_commit):
        errors.append(FieldError("gitCommit", "Git commit must be a valid hash (6-40 characters)"))

    if not _text(comments):
        errors.append(FieldError("comments", "Completion comments are required"))

    return FormValidationResult(is_valid=not errors, errors=errors)
