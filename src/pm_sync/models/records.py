"""Entity records exchanged with the backend.

Records are plain JSON objects on the wire. These models validate the fields
the client reads and keep everything else (``extra="allow"``) so a record can
be sent back to the server unchanged. Foreign keys are opaque: no relational
integrity is checked client-side.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from pm_sync.utils.logging import get_logger

logger = get_logger(__name__)

RecordId = int | str
DateType = date


class UserRole(str, Enum):
    """Project roles. ``admin`` was removed from the schema and is not accepted."""

    MEMBER = "member"
    DEVELOPER = "developer"
    PROJECT_MANAGER = "project_manager"
    VIEWER = "viewer"


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskType(str, Enum):
    TASK = "task"
    BUG = "bug"
    FEATURE = "feature"
    STORY = "story"


class MilestoneStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class NotificationType(str, Enum):
    """Notification kinds; the first five match WebSocket message types."""

    NOTIFICATION = "notification"
    COMMENT = "comment"
    ASSIGNMENT = "assignment"
    STATUS_CHANGE = "status_change"
    MILESTONE = "milestone"
    CUSTOM = "custom"
    # Server-side notification categories
    TASK = "task"
    PROJECT = "project"
    SYSTEM = "system"


class Record(BaseModel):
    """Base for all backend records."""

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        use_enum_values=True,
    )

    id: RecordId | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict, unset optional fields omitted."""
        return self.model_dump(mode="json", exclude_none=True)


class User(Record):
    username: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role: UserRole | None = None
    status: str | None = None

    @property
    def display_name(self) -> str:
        full = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full or self.username or self.email or ""


class ProjectMember(User):
    """A user as listed on a project team; ``role`` is the project role."""

    user_id: RecordId | None = None
    project_id: RecordId | None = None

    @property
    def member_id(self) -> RecordId | None:
        return self.user_id if self.user_id is not None else self.id


class Task(Record):
    title: str = ""
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: Priority | None = None
    task_type: TaskType | None = None
    due_date: date | None = None
    estimated_hours: float | None = None
    total_time_spent: float | None = None
    progress_percentage: float | None = None
    project_id: RecordId | None = None
    milestone_id: RecordId | None = None
    assigned_to: RecordId | None = None


class Project(Record):
    name: str = ""
    description: str | None = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    priority: Priority = Priority.MEDIUM
    start_date: date | None = None
    end_date: date | None = None
    budget: float | None = None
    tasks_count: int | None = None
    team_size: int | None = None
    total_estimated_hours: float | None = None
    total_time_spent: float | None = None
    progress_percentage: float | None = None
    tasks: list[Task] | None = None


class Milestone(Record):
    name: str = ""
    description: str | None = None
    status: MilestoneStatus = MilestoneStatus.PENDING
    due_date: date | None = None
    completion_percentage: float | None = None
    project_id: RecordId | None = None


class TimeLog(Record):
    task_id: RecordId | None = None
    project_id: RecordId | None = None
    user_id: RecordId | None = None
    hours_spent: float = 0.0
    date: DateType | None = None
    description: str | None = None
    billable: bool = False


class Comment(Record):
    task_id: RecordId | None = None
    content: str = ""
    attachments: list[Any] = Field(default_factory=list)
    user: dict[str, Any] | None = None

    @field_validator("attachments", mode="before")
    @classmethod
    def _null_attachments(cls, value: Any) -> Any:
        return [] if value is None else value


class Invitation(Record):
    email: str
    role: UserRole = UserRole.MEMBER
    project_id: RecordId | None = None
    invited_by: RecordId | None = None
    token: str | None = None
    status: InvitationStatus = InvitationStatus.PENDING
    expires_at: datetime | None = None


class Notification(Record):
    type: str = NotificationType.CUSTOM.value
    title: str = ""
    message: str = ""
    read: bool = Field(default=False, validation_alias=AliasChoices("read", "is_read"))
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, value: Any) -> Any:
        # nullable JSON column
        return {} if value is None else value

    @field_validator("read", mode="before")
    @classmethod
    def _null_read(cls, value: Any) -> Any:
        return False if value is None else value


class CalendarEvent(Record):
    title: str = ""
    type: str | None = None
    date: datetime | None = None
    time: str | None = None
    duration: int | None = None
    attendees: list[str] = Field(default_factory=list)
    project: str | None = None
    project_id: RecordId | None = None

    @field_validator("attendees", mode="before")
    @classmethod
    def _null_attendees(cls, value: Any) -> Any:
        return [] if value is None else value


R = TypeVar("R", bound=Record)


def parse_record(model: type[R], item: Any) -> R | None:
    """Validate a single record, returning None (and logging) on mismatch."""
    try:
        return model.model_validate(item)
    except ValidationError as e:
        logger.warning(
            "record_validation_failed",
            model=model.__name__,
            errors=e.error_count(),
            first_error=e.errors()[0]["msg"] if e.errors() else None,
        )
        return None


def parse_records(model: type[R], items: list[Any]) -> list[R]:
    """Validate a list of records, dropping items that fail validation.

    Args:
        model: Record class
        items: Raw JSON objects

    Returns:
        Successfully validated records in input order
    """
    records = []
    for item in items:
        record = parse_record(model, item)
        if record is not None:
            records.append(record)
    return records
