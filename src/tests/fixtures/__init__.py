"""Test fixtures: a fake backend and record payload factories."""

from tests.fixtures.backend import BASE_URL, FakeBackend, envelope, wait_until
from tests.fixtures.factories import (
    CalendarEventFactory,
    CommentFactory,
    InvitationFactory,
    MemberFactory,
    NotificationFactory,
    ProjectFactory,
    RecordFactory,
    TaskFactory,
    TimeLogFactory,
    UserFactory,
)

__all__ = [
    # Backend
    "BASE_URL",
    "FakeBackend",
    "envelope",
    "wait_until",
    # Factories
    "RecordFactory",
    "UserFactory",
    "ProjectFactory",
    "TaskFactory",
    "NotificationFactory",
    "InvitationFactory",
    "TimeLogFactory",
    "CalendarEventFactory",
    "CommentFactory",
    "MemberFactory",
]
