"""Client-side form validation.

Each ``validate_*`` function returns a mapping of field name to message; an
empty mapping means the form is valid. ``ensure_valid`` turns a non-empty
mapping into a FormValidationError so callers can stop before the network.
"""

import re
from datetime import date, datetime
from typing import Any

from pm_sync.exceptions import FormValidationError
from pm_sync.models.records import Priority, ProjectStatus, TaskStatus, UserRole

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")
TIME_PATTERN = re.compile(r"^\d{1,2}:\d{2}(\s?[AaPp][Mm])?$")

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6
MAX_NAME_LENGTH = 255
MAX_HOURS_PER_LOG = 24


def ensure_valid(errors: dict[str, str]) -> None:
    """Raise FormValidationError if ``errors`` is non-empty."""
    if errors:
        raise FormValidationError(errors)


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_PATTERN.match(value.strip()))


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_date(value: Any) -> date | None:
    """Parse a date, datetime or ISO string; None if unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _to_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _check_not_past(
    errors: dict[str, str],
    data: dict[str, Any],
    field: str,
    today: date,
    message: str,
) -> None:
    raw = data.get(field)
    if _blank(raw):
        return
    parsed = parse_date(raw)
    if parsed is None:
        errors[field] = "Invalid date"
    elif parsed < today:
        errors[field] = message


def validate_login(credentials: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    if _blank(credentials.get("email")) and _blank(credentials.get("username")):
        errors["email"] = "Email or username is required"
    if _blank(credentials.get("password")):
        errors["password"] = "Password is required"
    return errors


def validate_registration(user_data: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    username = user_data.get("username") or ""
    if len(str(username).strip()) < MIN_USERNAME_LENGTH:
        errors["username"] = f"Username must be at least {MIN_USERNAME_LENGTH} characters"
    email = user_data.get("email")
    if _blank(email):
        errors["email"] = "Email is required"
    elif not is_valid_email(email):
        errors["email"] = "Please enter a valid email address"
    if len(str(user_data.get("password") or "")) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return errors


def validate_project_form(data: dict[str, Any]) -> dict[str, str]:
    """Validate a project create/edit form.

    Dates are checked for order only; a project may start in the past.

    Args:
        data: Form values

    Returns:
        Field errors
    """
    errors: dict[str, str] = {}
    name = data.get("name")
    if _blank(name):
        errors["name"] = "Project name is required"
    elif len(str(name)) > MAX_NAME_LENGTH:
        errors["name"] = f"Project name cannot exceed {MAX_NAME_LENGTH} characters"

    status = data.get("status")
    if status and status not in {s.value for s in ProjectStatus}:
        errors["status"] = "Invalid status"
    priority = data.get("priority")
    if priority and priority not in {p.value for p in Priority}:
        errors["priority"] = "Invalid priority"

    start = parse_date(data.get("start_date"))
    end = parse_date(data.get("end_date"))
    if not _blank(data.get("start_date")) and start is None:
        errors["start_date"] = "Invalid date"
    if not _blank(data.get("end_date")) and end is None:
        errors["end_date"] = "Invalid date"
    if start and end and end < start:
        errors["end_date"] = "End date must be after start date"

    budget = data.get("budget")
    if not _blank(budget):
        value = _to_float(budget)
        if value is None or value < 0:
            errors["budget"] = "Budget must be a positive number"
    return errors


def validate_task_form(data: dict[str, Any], today: date | None = None) -> dict[str, str]:
    """Validate a task create/edit form.

    Title is required, the due date may not be in the past and estimated
    hours, when given, must be positive.
    """
    today = today or date.today()
    errors: dict[str, str] = {}
    if _blank(data.get("title")):
        errors["title"] = "Title is required"
    _check_not_past(errors, data, "due_date", today, "Due date cannot be in the past")

    hours = data.get("estimated_hours")
    if not _blank(hours):
        value = _to_float(hours)
        if value is None or value <= 0:
            errors["estimated_hours"] = "Estimated hours must be a positive number"

    status = data.get("status")
    if status and status not in {s.value for s in TaskStatus}:
        errors["status"] = "Invalid status"
    return errors


def validate_milestone_form(data: dict[str, Any], today: date | None = None) -> dict[str, str]:
    today = today or date.today()
    errors: dict[str, str] = {}
    if _blank(data.get("name")):
        errors["name"] = "Name is required"
    _check_not_past(errors, data, "due_date", today, "Due date cannot be in the past")
    return errors


def validate_event_form(data: dict[str, Any], today: date | None = None) -> dict[str, str]:
    today = today or date.today()
    errors: dict[str, str] = {}
    if _blank(data.get("title")):
        errors["title"] = "Event title is required"
    if _blank(data.get("date")):
        errors["date"] = "Date is required"
    else:
        _check_not_past(errors, data, "date", today, "Event date cannot be in the past")
    time_value = data.get("time")
    if _blank(time_value):
        errors["time"] = "Time is required"
    elif not TIME_PATTERN.match(str(time_value).strip()):
        errors["time"] = "Invalid time"
    duration = data.get("duration")
    if duration is not None:
        value = _to_float(duration)
        if value is None or value <= 0:
            errors["duration"] = "Duration must be greater than 0"
    return errors


def validate_time_log(data: dict[str, Any], today: date | None = None) -> dict[str, str]:
    """Validate a time entry: 0 < hours <= 24, date required and not in the future."""
    today = today or date.today()
    errors: dict[str, str] = {}
    hours = _to_float(data.get("hours_spent"))
    if hours is None or hours <= 0:
        errors["hours_spent"] = "Hours spent must be greater than 0"
    elif hours > MAX_HOURS_PER_LOG:
        errors["hours_spent"] = f"Hours cannot exceed {MAX_HOURS_PER_LOG}"

    if _blank(data.get("date")):
        errors["date"] = "Date is required"
    else:
        logged_on = parse_date(data.get("date"))
        if logged_on is None:
            errors["date"] = "Invalid date"
        elif logged_on > today:
            errors["date"] = "Date cannot be in the future"

    if _blank(data.get("project_id")):
        errors["project_id"] = "Project is required"
    if _blank(data.get("task_id")):
        errors["task_id"] = "Task is required"
    return errors


def validate_invitation_acceptance(form: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    username = str(form.get("username") or "")
    if len(username) < MIN_USERNAME_LENGTH:
        errors["username"] = f"Username must be at least {MIN_USERNAME_LENGTH} characters"
    if _blank(form.get("first_name")):
        errors["first_name"] = "First name is required"
    if _blank(form.get("last_name")):
        errors["last_name"] = "Last name is required"
    password = str(form.get("password") or "")
    if len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if password != str(form.get("confirm_password") or ""):
        errors["confirm_password"] = "Passwords do not match"
    return errors


def validate_invite(data: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    email = data.get("email")
    if _blank(email):
        errors["email"] = "Email is required"
    elif not is_valid_email(email):
        errors["email"] = "Please enter a valid email address"
    role = data.get("role")
    if _blank(role):
        errors["role"] = "Role is required"
    elif role not in {r.value for r in UserRole}:
        errors["role"] = "Invalid role"
    return errors


def validate_comment(data: dict[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    if _blank(data.get("content")):
        errors["content"] = "Comment cannot be empty"
    if _blank(data.get("task_id")):
        errors["task_id"] = "Task is required"
    return errors


def validate_member(data: dict[str, Any]) -> dict[str, str]:
    """Validate a project membership: a user and one of the project roles."""
    errors: dict[str, str] = {}
    if _blank(data.get("user_id")):
        errors["user_id"] = "User is required"
    role = data.get("role")
    if _blank(role):
        errors["role"] = "Role is required"
    elif role not in {r.value for r in UserRole}:
        errors["role"] = "Invalid role"
    return errors
