"""State controllers and the notification channel."""

from pm_sync.core.auth import AuthController, AuthState
from pm_sync.core.calendar import CalendarController, CalendarMode
from pm_sync.core.channel import NotificationChannel
from pm_sync.core.comments import CommentController
from pm_sync.core.dashboard import DashboardStats, dashboard_stats
from pm_sync.core.events import EventEmitter, Toast, ToastBus
from pm_sync.core.invitations import InvitationController
from pm_sync.core.notifications import NotificationController
from pm_sync.core.projects import ProjectController, ProjectFilters
from pm_sync.core.state import OperationResult, RequestSequencer, StateController
from pm_sync.core.team import TeamController
from pm_sync.core.time_tracking import TimeSummary, TimeTrackingController, summarize

__all__ = [
    # Plumbing
    "EventEmitter",
    "OperationResult",
    "RequestSequencer",
    "StateController",
    "Toast",
    "ToastBus",
    # Controllers
    "AuthController",
    "AuthState",
    "CalendarController",
    "CalendarMode",
    "CommentController",
    "InvitationController",
    "NotificationController",
    "ProjectController",
    "ProjectFilters",
    "TeamController",
    "TimeTrackingController",
    # Channel
    "NotificationChannel",
    # Aggregates
    "DashboardStats",
    "TimeSummary",
    "dashboard_stats",
    "summarize",
]
