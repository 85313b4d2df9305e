"""
Tests for the board schema: records, wire shape, date handling, ids.
"""
from datetime import datetime, timezone

from bountyboard.schema import (
    AppState,
    CompletionDetails,
    Developer,
    Task,
    TaskStatus,
    generate_id,
    hydrate_dates,
    parse_timestamp,
)


def test_task_defaults():
    task = Task(id="task-1", name="Fix bug")
    assert task.status == TaskStatus.BACKLOG
    assert task.assigned_to is None
    assert task.completed_at is None
    assert task.completion_details is None
    assert task.created_at.tzinfo is not None


def test_status_from_str_falls_back_to_backlog():
    assert TaskStatus.from_str("assigned") == TaskStatus.ASSIGNED
    assert TaskStatus.from_str("archived") == TaskStatus.BACKLOG


def test_backlog_task_wire_shape_omits_optional_fields(make_task):
    data = make_task().to_dict()
    assert data["status"] == "backlog"
    assert data["createdAt"] == "2024-01-15T10:30:00+00:00"
    assert "assignedTo" not in data
    assert "completedAt" not in data
    assert "completionDetails" not in data


def test_completed_task_wire_shape(make_task):
    task = make_task(
        status=TaskStatus.COMPLETED,
        assigned_to="dev-1",
        completed_at=datetime(2024, 1, 16, 9, 0, tzinfo=timezone.utc),
        completion_details=CompletionDetails(hours_spent=5, git_commit="abc123", comments="done"),
    )
    data = task.to_dict()
    assert data["assignedTo"] == "dev-1"
    assert data["completedAt"] == "2024-01-16T09:00:00+00:00"
    assert data["completionDetails"] == {"hoursSpent": 5, "gitCommit": "abc123", "comments": "done"}
    assert Task.from_dict(data) == task


def test_developer_wire_shape():
    dev = Developer(id="dev-1", name="Ondra", total_points=10, completed_tasks=1, total_hours=5)
    data = dev.to_dict()
    assert data == {
        "id": "dev-1",
        "name": "Ondra",
        "totalPoints": 10,
        "completedTasks": 1,
        "totalHours": 5,
    }
    assert Developer.from_dict(data) == dev


def test_app_state_carries_version(make_task):
    state = AppState(tasks=[make_task()], developers=[])
    assert state.to_dict()["version"] == "1.0"
    assert "version" not in state.to_dict(version=None)
    assert AppState.from_dict(state.to_dict()) == state


def test_parse_timestamp_accepts_z_suffix():
    parsed = parse_timestamp("2024-01-15T10:30:00.000Z")
    assert parsed == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def test_parse_timestamp_naive_is_utc():
    parsed = parse_timestamp("2024-01-15T10:30:00")
    assert parsed.tzinfo == timezone.utc


def test_parse_timestamp_passes_datetimes_through():
    now = datetime.now(timezone.utc)
    assert parse_timestamp(now) is now
    assert parse_timestamp(None) is None
    assert parse_timestamp("") is None


class TestHydrateDates:

    def test_nested_objects(self):
        doc = {
            "tasks": [
                {"id": "t1", "createdAt": "2024-01-15T10:30:00Z",
                 "completedAt": "2024-01-16T10:30:00Z"},
            ],
            "meta": {"inner": {"createdAt": "2024-01-01T00:00:00Z"}},
        }
        result = hydrate_dates(doc)
        assert isinstance(result["tasks"][0]["createdAt"], datetime)
        assert isinstance(result["tasks"][0]["completedAt"], datetime)
        assert isinstance(result["meta"]["inner"]["createdAt"], datetime)

    def test_already_hydrated_values_untouched(self):
        now = datetime.now(timezone.utc)
        result = hydrate_dates({"createdAt": now})
        assert result["createdAt"] is now

    def test_other_keys_untouched(self):
        result = hydrate_dates({"name": "2024-01-15T10:30:00Z"})
        assert result["name"] == "2024-01-15T10:30:00Z"

    def test_does_not_mutate_input(self):
        doc = {"createdAt": "2024-01-15T10:30:00Z"}
        hydrate_dates(doc)
        assert doc["createdAt"] == "2024-01-15T10:30:00Z"

    def test_unparseable_date_left_as_string(self):
        result = hydrate_dates({"createdAt": "yesterday"})
        assert result["createdAt"] == "yesterday"


class TestGenerateId:

    def test_prefix(self):
        assert generate_id("task-").startswith("task-")

    def test_shape(self):
        stamp, rand = generate_id().split("-")
        assert stamp.isalnum()
        assert len(rand) == 6

    def test_uniqueness(self):
        ids = {generate_id("dev-") for _ in range(200)}
        assert len(ids) == 200
