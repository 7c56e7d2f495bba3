"""Factory classes for creating backend record payloads."""

from datetime import date, datetime, timedelta, timezone
from typing import Any


class RecordFactory:
    """Base factory producing JSON-ready record dicts."""

    _counter: int = 0

    @classmethod
    def _next_id(cls) -> int:
        """Get next sequence number."""
        cls._counter += 1
        return cls._counter

    @classmethod
    def reset(cls) -> None:
        """Reset the counter."""
        cls._counter = 0


class UserFactory(RecordFactory):
    """Factory for user payloads."""

    @classmethod
    def create(cls, **kwargs: Any) -> dict[str, Any]:
        seq = cls._next_id()
        return {
            "id": seq,
            "username": f"user{seq}",
            "email": f"user{seq}@example.com",
            "first_name": "Alice",
            "last_name": f"Tester{seq}",
            "role": "member",
            **kwargs,
        }


class ProjectFactory(RecordFactory):
    """Factory for project payloads."""

    @classmethod
    def create(cls, **kwargs: Any) -> dict[str, Any]:
        seq = cls._next_id()
        return {
            "id": seq,
            "name": f"Project {seq}",
            "description": f"Description for project {seq}",
            "status": "active",
            "priority": "medium",
            "total_estimated_hours": 0,
            "total_time_spent": 0,
            **kwargs,
        }


class TaskFactory(RecordFactory):
    """Factory for task payloads."""

    @classmethod
    def create(cls, **kwargs: Any) -> dict[str, Any]:
        seq = cls._next_id()
        return {
            "id": seq,
            "title": f"Task {seq}",
            "status": "todo",
            "priority": "medium",
            "project_id": 1,
            **kwargs,
        }


class NotificationFactory(RecordFactory):
    """Factory for server-side notification payloads."""

    @classmethod
    def create(cls, **kwargs: Any) -> dict[str, Any]:
        seq = cls._next_id()
        return {
            "id": f"srv-{seq}",
            "type": "task",
            "title": f"Notification {seq}",
            "message": f"Something happened ({seq})",
            "is_read": False,
            "created_at": datetime.now(timezone.utc).isoformat(),
            **kwargs,
        }


class InvitationFactory(RecordFactory):
    """Factory for invitation payloads."""

    @classmethod
    def create(cls, **kwargs: Any) -> dict[str, Any]:
        seq = cls._next_id()
        return {
            "id": seq,
            "email": f"invitee{seq}@example.com",
            "role": "developer",
            "token": f"invite-token-{seq}",
            "status": "pending",
            "expires_at": (datetime.now(timezone.utc) + timedelta(days=7)).isoformat(),
            **kwargs,
        }


class TimeLogFactory(RecordFactory):
    """Factory for time log payloads."""

    @classmethod
    def create(cls, **kwargs: Any) -> dict[str, Any]:
        seq = cls._next_id()
        return {
            "id": seq,
            "task_id": 1,
            "project_id": 1,
            "hours_spent": 2.5,
            "date": date.today().isoformat(),
            "description": f"Work item {seq}",
            "billable": False,
            **kwargs,
        }


class CalendarEventFactory(RecordFactory):
    """Factory for calendar event payloads."""

    @classmethod
    def create(cls, **kwargs: Any) -> dict[str, Any]:
        seq = cls._next_id()
        return {
            "id": seq,
            "title": f"Event {seq}",
            "type": "meeting",
            "date": (datetime.now(timezone.utc) + timedelta(days=seq)).isoformat(),
            "time": "10:00 AM",
            "duration": 30,
            "attendees": [],
            **kwargs,
        }


class MemberFactory(RecordFactory):
    """Factory for project team member payloads."""

    @classmethod
    def create(cls, **kwargs: Any) -> dict[str, Any]:
        seq = cls._next_id()
        return {
            "id": seq,
            "user_id": seq,
            "username": f"member{seq}",
            "email": f"member{seq}@example.com",
            "first_name": "Member",
            "last_name": f"No{seq}",
            "role": "member",
            **kwargs,
        }


class CommentFactory(RecordFactory):
    """Factory for task comment payloads."""

    @classmethod
    def create(cls, **kwargs: Any) -> dict[str, Any]:
        seq = cls._next_id()
        return {
            "id": seq,
            "task_id": 1,
            "content": f"Comment {seq}",
            "attachments": [],
            "user": {"first_name": "Alice", "last_name": "Tester"},
            "created_at": datetime.now(timezone.utc).isoformat(),
            **kwargs,
        }
