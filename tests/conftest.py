"""Shared fixtures for bounty board tests."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Make board_server importable without installing the project
sys.path.insert(0, str(Path(__file__).parent.parent))

from bountyboard.board import BoardStore
from bountyboard.gateway import KVGateway
from bountyboard.kv import MemoryKVStore
from bountyboard.schema import Task, TaskStatus

CREATED = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def _make_task(task_id="task-1", points=10, status=TaskStatus.BACKLOG, assigned_to=None, **kwargs):
    return Task(
        id=task_id,
        name=kwargs.pop("name", f"Task {task_id}"),
        description=kwargs.pop("description", "Something to do"),
        points=points,
        status=status,
        assigned_to=assigned_to,
        created_at=kwargs.pop("created_at", CREATED),
        **kwargs,
    )


@pytest.fixture
def make_task():
    return _make_task


@pytest.fixture
def kv():
    return MemoryKVStore()


@pytest.fixture
def gateway(kv):
    return KVGateway(kv)


@pytest.fixture
def board():
    return BoardStore()


@pytest.fixture
def sleeps():
    """A list whose append() stands in for time.sleep, recording each delay."""
    return []
