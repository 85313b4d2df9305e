"""
Pure derivations over an AppState.

Developer aggregates are never stored as ground truth: every mutation
recomputes them from the task list here. O(tasks x developers) per call,
fine for a team board.
"""
import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Tuple

from .schema import AppState, Developer, Task, TaskStatus

logger = logging.getLogger(__name__)


def developer_stats(tasks: Iterable[Task], developer_id: str) -> Dict[str, float]:
    """Points, task count and hours over completed tasks credited to developer_id."""
    done = [
        t for t in tasks
        if t.assigned_to == developer_id and t.status == TaskStatus.COMPLETED
    ]
    return {
        "total_points": sum(t.points for t in done),
        "completed_tasks": len(done),
        "total_hours": sum(
            (t.completion_details.hours_spent if t.completion_details else 0) for t in done
        ),
    }


def default_developer_name(developer_id: str, existing_names: Iterable[str]) -> str:
    """
    Placeholder name for an auto-provisioned developer.

    Tries a few patterns built from the id's first segment, then numbered
    variants, until one is unused (case-insensitive).
    """
    taken = {n.lower() for n in existing_names}
    slug = developer_id.split("-")[0] or "dev"

    patterns = [
        f"Developer {slug}",
        f"Dev {slug}",
        f"{slug[:1].upper()}{slug[1:]} Developer",
        f"Team Member {slug}",
    ]
    for candidate in patterns:
        if candidate.lower() not in taken:
            return candidate

    counter = 1
    while f"Developer {slug} {counter}".lower() in taken:
        counter += 1
    return f"Developer {slug} {counter}"


def _provision_candidates(tasks: List[Task], touched: Iterable[str]) -> List[str]:
    """
    Assignee ids that must have a developer record, in first-seen order.

    Covers open tasks plus the tasks a mutation just touched. Completed
    tasks alone do not resurrect a deleted developer.
    """
    touched = set(touched)
    seen: List[str] = []
    for t in tasks:
        if not t.assigned_to or t.assigned_to in seen:
            continue
        if t.status != TaskStatus.COMPLETED or t.id in touched:
            seen.append(t.assigned_to)
    return seen


def derive_developers(
    tasks: List[Task],
    developers: List[Developer],
    touched_task_ids: Iterable[str] = (),
) -> Tuple[List[Developer], List[Developer]]:
    """
    Recompute every developer's aggregates and provision missing assignees.

    Returns (developers, provisioned); provisioned lists only new records.
    """
    updated = [replace(d, **developer_stats(tasks, d.id)) for d in developers]
    known = {d.id for d in updated}

    provisioned: List[Developer] = []
    for dev_id in _provision_candidates(tasks, touched_task_ids):
        if dev_id in known:
            continue
        name = default_developer_name(dev_id, [d.name for d in updated])
        dev = Developer(id=dev_id, name=name, **developer_stats(tasks, dev_id))
        updated.append(dev)
        provisioned.append(dev)
        known.add(dev_id)
        logger.info(f"Auto-provisioned developer {dev_id} as '{name}'")

    return updated, provisioned


def reset_to_backlog(task: Task) -> Task:
    return replace(task, status=TaskStatus.BACKLOG, assigned_to=None)


def reassign_orphans(state: AppState) -> Tuple[AppState, List[str]]:
    """
    Send open tasks whose developer no longer exists back to the backlog.

    Completed tasks keep their historical assignee. Returns the same state
    object when nothing changed.
    """
    valid_ids = {d.id for d in state.developers}
    reset: List[str] = []
    tasks: List[Task] = []
    for t in state.tasks:
        if t.assigned_to and t.assigned_to not in valid_ids and t.status != TaskStatus.COMPLETED:
            logger.warning(
                f"Orphaned task found: {t.id} assigned to non-existent developer {t.assigned_to}"
            )
            tasks.append(reset_to_backlog(t))
            reset.append(t.id)
        else:
            tasks.append(t)
    if not reset:
        return state, []
    return AppState(tasks=tasks, developers=list(state.developers)), reset


@dataclass(frozen=True)
class Leaderboard:
    ranking: List[Developer]
    total_points: int
    completed_tasks: int
    total_hours: float

    def to_dict(self) -> dict:
        return {
            "ranking": [
                dict(d.to_dict(), rank=i + 1) for i, d in enumerate(self.ranking)
            ],
            "totals": {
                "totalPoints": self.total_points,
                "completedTasks": self.completed_tasks,
                "totalHours": self.total_hours,
            },
        }


def leaderboard(state: AppState) -> Leaderboard:
    """Developers by total points (highest first) plus team totals."""
    ranking = sorted(state.developers, key=lambda d: d.total_points, reverse=True)
    return Leaderboard(
        ranking=ranking,
        total_points=sum(d.total_points for d in ranking),
        completed_tasks=sum(d.completed_tasks for d in ranking),
        total_hours=sum(d.total_hours for d in ranking),
    )
