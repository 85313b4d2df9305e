"""
Tests for task and completion form validation.
"""
import pytest

from bountyboard.validation import (
    is_valid_commit_hash,
    validate_completion_form,
    validate_task_form,
)


class TestTaskForm:

    def test_valid(self):
        result = validate_task_form("Fix bug", "Crash on login", 10)
        assert result.is_valid
        assert result.errors == []

    def test_blank_name_and_description(self):
        result = validate_task_form("   ", "", 5)
        assert not result.is_valid
        assert result.fields() == ["name", "description"]

    def test_zero_points(self):
        result = validate_task_form("Fix bug", "desc", 0)
        assert result.fields() == ["points"]
        assert result.errors[0].message == "Points must be greater than 0"

    def test_fractional_points(self):
        result = validate_task_form("Fix bug", "desc", 2.5)
        assert result.fields() == ["points"]
        assert "whole number" in result.errors[0].message

    def test_negative_fractional_points_reports_both(self):
        result = validate_task_form("Fix bug", "desc", -1.5)
        assert result.fields() == ["points", "points"]

    def test_whole_float_points_accepted(self):
        assert validate_task_form("Fix bug", "desc", 3.0).is_valid

    def test_non_numeric_points(self):
        result = validate_task_form("Fix bug", "desc", "ten")
        assert "points" in result.fields()

    def test_none_fields_do_not_raise(self):
        result = validate_task_form(None, None, None)
        assert not result.is_valid
        assert set(result.fields()) == {"name", "description", "points"}


class TestCompletionForm:

    def test_valid(self):
        result = validate_completion_form(5, "abc123", "done")
        assert result.is_valid

    def test_three_errors(self):
        result = validate_completion_form(0, "xyz", "")
        assert not result.is_valid
        assert result.fields() == ["hoursSpent", "gitCommit", "comments"]
        assert "valid hash" in result.errors[1].message

    def test_missing_commit(self):
        result = validate_completion_form(1.5, "  ", "done")
        assert result.fields() == ["gitCommit"]
        assert result.errors[0].message == "Git commit reference is required"

    def test_uppercase_commit_accepted(self):
        assert validate_completion_form(1, "ABCDEF1234", "ok").is_valid

    def test_fractional_hours_accepted(self):
        assert validate_completion_form(0.25, "abcdef", "ok").is_valid

    def test_negative_hours(self):
        assert validate_completion_form(-2, "abcdef", "ok").fields() == ["hoursSpent"]


@pytest.mark.parametrize("value,expected", [
    ("abc123", True),
    ("a" * 40, True),
    ("a" * 41, False),
    ("abc12", False),
    ("ABC123", True),
    (" abc123 ", True),
    ("ghijkl", False),
    ("", False),
    (None, False),
])
def test_commit_hash_shape(value, expected):
    assert is_valid_commit_hash(value) is expected
