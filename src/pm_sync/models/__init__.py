"""Data models for backend records."""

from pm_sync.models.records import (
    CalendarEvent,
    Comment,
    Invitation,
    InvitationStatus,
    Milestone,
    MilestoneStatus,
    Notification,
    NotificationType,
    Priority,
    Project,
    ProjectMember,
    ProjectStatus,
    Record,
    RecordId,
    Task,
    TaskStatus,
    TaskType,
    TimeLog,
    User,
    UserRole,
    parse_record,
    parse_records,
)

__all__ = [
    # Base
    "Record",
    "RecordId",
    "parse_record",
    "parse_records",
    # Enums
    "InvitationStatus",
    "MilestoneStatus",
    "NotificationType",
    "Priority",
    "ProjectStatus",
    "TaskStatus",
    "TaskType",
    "UserRole",
    # Records
    "CalendarEvent",
    "Comment",
    "Invitation",
    "Milestone",
    "Notification",
    "Project",
    "ProjectMember",
    "Task",
    "TimeLog",
    "User",
]
