"""
Board state container.

BoardStore owns the authoritative AppState and exposes it through
get_state / dispatch / subscribe. Every mutation is a pure function
AppState -> MutationResult; the store swaps in the new state and tells
subscribers. Developer aggregates are re-derived after every mutation, and
any developer created as a side effect is reported in
MutationResult.provisioned instead of appearing silently.
"""
import logging
import threading
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .reconcile import derive_developers, reassign_orphans, reset_to_backlog
from .schema import (
    AppState,
    CompletionDetails,
    Developer,
    Task,
    TaskStatus,
    generate_id,
    parse_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)

# Fields update_task will never overwrite
IMMUTABLE_TASK_FIELDS = {"id", "created_at"}
TASK_FIELDS = {f.name for f in fields(Task)}


@dataclass(frozen=True)
class MutationResult:
    """New state plus what the mutation did beyond the obvious."""
    state: AppState
    changed: bool = True
    provisioned: List[Developer] = field(default_factory=list)
    reset_task_ids: List[str] = field(default_factory=list)


Mutation = Callable[[AppState], MutationResult]
Listener = Callable[[AppState, MutationResult], None]


def _unchanged(state: AppState) -> MutationResult:
    return MutationResult(state=state, changed=False)


def _rederive(tasks: List[Task], developers: List[Developer], touched=()) -> MutationResult:
    devs, provisioned = derive_developers(tasks, developers, touched)
    return MutationResult(state=AppState(tasks=tasks, developers=devs), provisioned=provisioned)


def _find_task(state: AppState, task_id: str) -> Optional[Task]:
    return next((t for t in state.tasks if t.id == task_id), None)


def _coerce_task_fields(patch: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize a partial update: drop unknown/immutable keys, convert enum/date/details values."""
    clean: Dict[str, Any] = {}
    for key, value in patch.items():
        if key not in TASK_FIELDS:
            logger.warning(f"Ignoring unknown task field '{key}'")
            continue
        if key in IMMUTABLE_TASK_FIELDS:
            logger.warning(f"Ignoring attempt to change immutable task field '{key}'")
            continue
        if key == "status" and not isinstance(value, TaskStatus):
            try:
                value = TaskStatus(value)
            except ValueError:
                logger.warning(f"Ignoring invalid task status {value!r}")
                continue
        elif key == "completed_at":
            value = parse_timestamp(value)
        elif key == "completion_details" and isinstance(value, dict):
            value = CompletionDetails.from_dict(value)
        clean[key] = value
    return clean


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Mutations (pure)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def add_task(task: Task) -> Mutation:
    def mutate(state: AppState) -> MutationResult:
        if _find_task(state, task.id) is not None:
            logger.warning(f"Task with id {task.id} already exists")
            return _unchanged(state)
        return _rederive(state.tasks + [task], state.developers, touched=[task.id])
    return mutate


def update_task(task_id: str, patch: Dict[str, Any]) -> Mutation:
    def mutate(state: AppState) -> MutationResult:
        current = _find_task(state, task_id)
        if current is None:
            return _unchanged(state)
        updated = replace(current, **_coerce_task_fields(patch))
        if updated == current:
            return _unchanged(state)
        tasks = [updated if t.id == task_id else t for t in state.tasks]
        return _rederive(tasks, state.developers, touched=[task_id])
    return mutate


def delete_task(task_id: str) -> Mutation:
    def mutate(state: AppState) -> MutationResult:
        if _find_task(state, task_id) is None:
            return _unchanged(state)
        tasks = [t for t in state.tasks if t.id != task_id]
        return _rederive(tasks, state.developers)
    return mutate


def assign_task(task_id: str, developer_id: str) -> Mutation:
    """Move a task into a developer's column."""
    return update_task(task_id, {"status": TaskStatus.ASSIGNED, "assigned_to": developer_id})


def unassign_task(task_id: str) -> Mutation:
    """Move a task back to the backlog."""
    return update_task(task_id, {
        "status": TaskStatus.BACKLOG,
        "assigned_to": None,
        "completed_at": None,
        "completion_details": None,
    })


def complete_task(task_id: str, details: CompletionDetails, completed_at: Optional[datetime] = None) -> Mutation:
    """Close an assigned task and credit its bounty to the assignee."""
    def mutate(state: AppState) -> MutationResult:
        task = _find_task(state, task_id)
        if task is None or not task.assigned_to:
            logger.warning(f"Cannot complete task {task_id}: not found or not assigned to a developer")
            return _unchanged(state)
        return update_task(task_id, {
            "status": TaskStatus.COMPLETED,
            "completed_at": completed_at or utc_now(),
            "completion_details": details,
        })(state)
    return mutate


def add_developer(developer: Developer) -> Mutation:
    def mutate(state: AppState) -> MutationResult:
        if any(d.id == developer.id for d in state.developers):
            logger.warning(f"Developer with id {developer.id} already exists")
            return _unchanged(state)
        return _rederive(list(state.tasks), state.developers + [developer])
    return mutate


def update_developer(developer: Developer) -> Mutation:
    """Insert or replace by id. Aggregates on the given record are recomputed."""
    def mutate(state: AppState) -> MutationResult:
        if any(d.id == developer.id for d in state.developers):
            developers = [developer if d.id == developer.id else d for d in state.developers]
        else:
            developers = state.developers + [developer]
        return _rederive(list(state.tasks), developers)
    return mutate


def delete_developer(developer_id: str) -> Mutation:
    """Remove a developer; their open tasks go back to the backlog."""
    def mutate(state: AppState) -> MutationResult:
        reset: List[str] = []
        tasks: List[Task] = []
        for t in state.tasks:
            if t.assigned_to == developer_id and t.status != TaskStatus.COMPLETED:
                tasks.append(reset_to_backlog(t))
                reset.append(t.id)
            else:
                tasks.append(t)
        developers = [d for d in state.developers if d.id != developer_id]
        logger.info(f"Developer {developer_id} deleted. {len(reset)} tasks reassigned to backlog.")
        result = _rederive(tasks, developers)
        return replace(result, reset_task_ids=reset)
    return mutate


def sweep_orphans(state: AppState) -> MutationResult:
    """Consistency sweep: open tasks pointing at missing developers go to backlog."""
    swept, reset = reassign_orphans(state)
    if not reset:
        return _unchanged(state)
    return MutationResult(state=swept, reset_task_ids=reset)


def replace_state(new_state: AppState) -> Mutation:
    """Swap in a loaded or imported board, re-deriving aggregates."""
    def mutate(state: AppState) -> MutationResult:
        return _rederive(list(new_state.tasks), list(new_state.developers))
    return mutate


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Factories
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def new_task(name: str, description: str, points: int) -> Task:
    """A fresh backlog task with a generated id."""
    return Task(
        id=generate_id("task-"),
        name=name.strip(),
        description=description.strip(),
        points=points,
        status=TaskStatus.BACKLOG,
        created_at=utc_now(),
    )


def new_developer(name: str) -> Developer:
    return Developer(id=generate_id("dev-"), name=name.strip())


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Store
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class BoardStore:
    """Holds the board and routes mutations to it."""

    def __init__(self, state: Optional[AppState] = None):
        self._state = state or AppState.empty()
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

    def get_state(self) -> AppState:
        with self._lock:
            return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def dispatch(self, mutation: Mutation) -> MutationResult:
        with self._lock:
            result = mutation(self._state)
            if result.changed:
                self._state = result.state
        if result.changed:
            self._notify(result)
        return result

    def _notify(self, result: MutationResult) -> None:
        for listener in list(self._listeners):
            try:
                listener(result.state, result)
            except Exception as e:
                logger.error(f"Error in board listener: {e}")

    # ── Mutations ───────────────────────────────

    def add_task(self, task: Task) -> MutationResult:
        return self.dispatch(add_task(task))

    def update_task(self, task_id: str, patch: Dict[str, Any]) -> MutationResult:
        return self.dispatch(update_task(task_id, patch))

    def delete_task(self, task_id: str) -> MutationResult:
        return self.dispatch(delete_task(task_id))

    def assign_task(self, task_id: str, developer_id: str) -> MutationResult:
        return self.dispatch(assign_task(task_id, developer_id))

    def unassign_task(self, task_id: str) -> MutationResult:
        return self.dispatch(unassign_task(task_id))

    def complete_task(self, task_id: str, details: CompletionDetails,
                      completed_at: Optional[datetime] = None) -> MutationResult:
        return self.dispatch(complete_task(task_id, details, completed_at))

    def add_developer(self, developer: Developer) -> MutationResult:
        return self.dispatch(add_developer(developer))

    def update_developer(self, developer: Developer) -> MutationResult:
        return self.dispatch(update_developer(developer))

    def delete_developer(self, developer_id: str) -> MutationResult:
        return self.dispatch(delete_developer(developer_id))

    def sweep_orphans(self) -> MutationResult:
        return self.dispatch(sweep_orphans)

    def replace_state(self, state: AppState) -> MutationResult:
        return self.dispatch(replace_state(state))

    # ── Queries ─────────────────────────────────

    @property
    def tasks(self) -> List[Task]:
        return self.get_state().tasks

    @property
    def developers(self) -> List[Developer]:
        return self.get_state().developers

    def tasks_by_status(self, status) -> List[Task]:
        status = status if isinstance(status, TaskStatus) else TaskStatus(status)
        return [t for t in self.tasks if t.status == status]

    def tasks_by_developer(self, developer_id: str) -> List[Task]:
        return [t for t in self.tasks if t.assigned_to == developer_id]

    def developer_by_id(self, developer_id: str) -> Optional[Developer]:
        return next((d for d in self.developers if d.id == developer_id), None)

    def task_by_id(self, task_id: str) -> Optional[Task]:
        return _find_task(self.get_state(), task_id)

    def is_developer_name_available(self, name: str, exclude_id: Optional[str] = None) -> bool:
        wanted = name.strip().lower()
        return not any(
            d.name.strip().lower() == wanted and d.id != exclude_id
            for d in self.developers
        )
