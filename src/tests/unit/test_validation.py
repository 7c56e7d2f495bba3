"""Unit tests for form validation."""

from datetime import date

import pytest

from pm_sync.exceptions import FormValidationError
from pm_sync.utils.validation import (
    ensure_valid,
    is_valid_email,
    parse_date,
    validate_comment,
    validate_event_form,
    validate_invitation_acceptance,
    validate_invite,
    validate_login,
    validate_member,
    validate_milestone_form,
    validate_project_form,
    validate_task_form,
    validate_time_log,
)

TODAY = date(2026, 6, 15)


class TestFieldHelpers:
    """Unit tests for helpers."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("dev@example.com", True),
            (" dev@example.com ", True),
            ("dev@example", False),
            ("no at sign", False),
            (None, False),
        ],
    )
    def test_is_valid_email(self, value: object, expected: bool) -> None:
        """Test email pattern."""
        assert is_valid_email(value) is expected

    def test_parse_date(self) -> None:
        """Test ISO strings, datetimes and garbage."""
        assert parse_date("2026-06-15T10:00:00Z") == TODAY
        assert parse_date(TODAY) == TODAY
        assert parse_date("15/06/2026") is None
        assert parse_date("") is None

    def test_ensure_valid(self) -> None:
        """Test non-empty errors raise."""
        ensure_valid({})
        with pytest.raises(FormValidationError) as exc_info:
            ensure_valid({"name": "Project name is required"})

        assert exc_info.value.errors == {"name": "Project name is required"}


class TestForms:
    """Unit tests for the form validators."""

    def test_login_accepts_username(self) -> None:
        """Test a username can replace the email."""
        assert validate_login({"username": "alice", "password": "x"}) == {}

    def test_project_name_length(self) -> None:
        """Test over-long names are rejected."""
        errors = validate_project_form({"name": "x" * 256})

        assert errors == {"name": "Project name cannot exceed 255 characters"}

    def test_project_bad_enums(self) -> None:
        """Test unknown status and priority."""
        errors = validate_project_form({"name": "P", "status": "archived", "priority": "critical"})

        assert set(errors) == {"status", "priority"}

    def test_task_due_today_allowed(self) -> None:
        """Test a due date of today is not in the past."""
        assert validate_task_form({"title": "T", "due_date": TODAY.isoformat()}, today=TODAY) == {}

    def test_task_due_past(self) -> None:
        """Test a past due date is rejected."""
        errors = validate_task_form({"title": "T", "due_date": "2026-06-14"}, today=TODAY)

        assert errors == {"due_date": "Due date cannot be in the past"}

    def test_milestone_requires_name(self) -> None:
        """Test milestone name is required."""
        assert validate_milestone_form({"name": " "}, today=TODAY) == {"name": "Name is required"}

    def test_event_duration(self) -> None:
        """Test a non-positive duration is rejected."""
        errors = validate_event_form({"title": "E", "date": "2026-06-20", "time": "10:00", "duration": 0}, today=TODAY)

        assert errors == {"duration": "Duration must be greater than 0"}

    def test_time_log_bounds(self) -> None:
        """Test hours must be within (0, 24]."""
        base = {"date": "2026-06-15", "project_id": 1, "task_id": 2}

        assert validate_time_log({**base, "hours_spent": 24}, today=TODAY) == {}
        assert "hours_spent" in validate_time_log({**base, "hours_spent": 0}, today=TODAY)
        assert "hours_spent" in validate_time_log({**base, "hours_spent": "abc"}, today=TODAY)

    def test_invitation_acceptance(self) -> None:
        """Test every acceptance rule."""
        errors = validate_invitation_acceptance({"username": "ab", "password": "12345", "confirm_password": "x"})

        assert set(errors) == {"username", "first_name", "last_name", "password", "confirm_password"}

    @pytest.mark.parametrize("role", ["member", "developer", "project_manager", "viewer"])
    def test_invite_roles(self, role: str) -> None:
        """Test the accepted roles."""
        assert validate_invite({"email": "a@example.com", "role": role}) == {}

    def test_invite_admin_rejected(self) -> None:
        """Test the removed admin role is refused."""
        assert validate_invite({"email": "a@example.com", "role": "admin"}) == {"role": "Invalid role"}

    def test_comment(self) -> None:
        """Test a comment needs content and a task."""
        assert validate_comment({"task_id": 1, "content": "hi"}) == {}
        assert set(validate_comment({"content": " "})) == {"content", "task_id"}

    def test_member(self) -> None:
        """Test a membership needs a user and a project role."""
        assert validate_member({"user_id": 4, "role": "viewer"}) == {}
        assert validate_member({"user_id": 4, "role": "admin"}) == {"role": "Invalid role"}
        assert set(validate_member({})) == {"user_id", "role"}
