"""Project state controller: projects plus their milestones and tasks."""

import math
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any

from pm_sync.api.client import ApiResponse
from pm_sync.api.resources import BackendAPI
from pm_sync.core.auth import AuthController, AuthState
from pm_sync.core.events import Unsubscribe
from pm_sync.core.state import OperationResult, StateController
from pm_sync.exceptions import PMSyncError
from pm_sync.models import Milestone, Project, Record, RecordId, Task, TaskStatus, parse_record, parse_records
from pm_sync.utils.logging import get_logger
from pm_sync.utils.validation import validate_milestone_form, validate_project_form, validate_task_form

logger = get_logger(__name__)

FETCH_CHANNEL = "projects"

STATUS_COLORS = {
    "active": "success",
    "completed": "primary",
    "on_hold": "warning",
    "cancelled": "danger",
}

PRIORITY_COLORS = {
    "low": "gray",
    "medium": "blue",
    "high": "warning",
    "urgent": "danger",
}


@dataclass
class ProjectFilters:
    """Filter state; empty strings mean "no filter"."""

    status: str = ""
    priority: str = ""
    search: str = ""

    def as_params(self) -> dict[str, str]:
        return asdict(self)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _percent(part: float, whole: float) -> int:
    return min(_round_half_up(part / whole * 100), 100)


def get_project_progress(project: Project) -> float:
    """Derive a 0-100 progress figure for a project.

    Time-based when ``total_estimated_hours`` is positive, rounded half up;
    otherwise the server-supplied ``progress_percentage`` as is. With neither,
    embedded tasks give a completed-task ratio.
    """
    estimated = project.total_estimated_hours or 0
    if estimated > 0:
        spent = project.total_time_spent or 0
        return _percent(spent, estimated) if spent > 0 else 0

    if project.progress_percentage is not None:
        return project.progress_percentage

    if project.total_estimated_hours is None and project.tasks:
        completed = sum(1 for task in project.tasks if task.status == TaskStatus.COMPLETED.value)
        return _round_half_up(completed / len(project.tasks) * 100)

    return 0


def get_task_progress(task: Task) -> float:
    estimated = task.estimated_hours or 0
    if estimated > 0:
        spent = task.total_time_spent or 0
        return _percent(spent, estimated) if spent > 0 else 0
    return task.progress_percentage or 0


def status_color(status: str | None) -> str:
    return STATUS_COLORS.get(status or "", "gray")


def priority_color(priority: str | None) -> str:
    return PRIORITY_COLORS.get(priority or "", "gray")


def _matches(project: Project, filters: ProjectFilters) -> bool:
    if filters.status and project.status != filters.status:
        return False
    if filters.priority and project.priority != filters.priority:
        return False
    if filters.search:
        needle = filters.search.lower()
        return needle in (project.name or "").lower() or needle in (project.description or "").lower()
    return True


class ProjectController(StateController):
    """In-memory project collection with filters and nested resource access.

    The collection is only read from the server while the user is signed in.
    Mutations change it after the server confirms; milestone and task
    mutations return the server record without caching it.
    """

    name = "projects"

    def __init__(self, api: BackendAPI, auth: AuthController) -> None:
        """Initialize project controller.

        Args:
            api: Backend endpoint groups
            auth: Auth controller gating fetches
        """
        super().__init__()
        self.api = api
        self.auth = auth
        self.projects: list[Project] = []
        self.filters = ProjectFilters()
        self.unique_team_members = 0
        self._creating = False
        self._names_in_flight: set[str] = set()
        self._login_hook: Unsubscribe | None = None

    def attach(self) -> None:
        """Refresh the collection after every login.

        Login callbacks fire once, so the hook is re-armed whenever auth
        returns to signed-out.
        """
        self.auth.subscribe(self._on_auth_change)
        self._arm_login_hook()

    def _arm_login_hook(self) -> None:
        if self._login_hook is not None:
            self._login_hook()
        self._login_hook = self.auth.on_login(self._refresh_after_login)

    def _on_auth_change(self, auth: StateController) -> None:
        if self.auth.state == AuthState.UNAUTHENTICATED:
            self._arm_login_hook()

    async def _refresh_after_login(self) -> None:
        self._login_hook = None
        await self.refresh_projects()

    # Filters

    def update_filters(self, **changes: str) -> ProjectFilters:
        for key, value in changes.items():
            if not hasattr(self.filters, key):
                raise ValueError(f"Unknown filter: {key}")
            setattr(self.filters, key, value or "")
        self._notify()
        return self.filters

    def clear_filters(self) -> ProjectFilters:
        self.filters = ProjectFilters()
        self._notify()
        return self.filters

    def get_filtered_projects(self) -> list[Project]:
        """Projects matching every non-empty filter field."""
        if not isinstance(self.projects, list):
            logger.warning("projects_state_not_a_list", received=type(self.projects).__name__)
            return []
        return [p for p in self.projects if _matches(p, self.filters)]

    # Collection

    async def fetch_projects(self, **params: Any) -> None:
        """Replace the collection with the server's filtered list.

        Does nothing while signed out or while a stored token is being
        checked. A response is discarded when a newer fetch was started
        before it arrived.
        """
        if not self.auth.is_authenticated or self.auth.is_resolving:
            logger.debug("project_fetch_skipped", authenticated=self.auth.is_authenticated)
            return

        ticket = self._sequencer.next(FETCH_CHANNEL)
        self.error = None
        self._set_loading(True)
        query = {**self.filters.as_params(), **params}
        try:
            response = await self.api.projects.get_all(query)
        except PMSyncError as e:
            if self._is_stale(FETCH_CHANNEL, ticket):
                return
            self._fail("fetch_projects", e, "Failed to load projects")
            self.projects = []
            self._set_loading(False)
            return

        if self._is_stale(FETCH_CHANNEL, ticket):
            return

        self.projects = parse_records(Project, response.items("projects"))
        self.unique_team_members = response.field("uniqueTeamMembers", 0) or 0
        logger.info("projects_fetched", count=len(self.projects), unique_team_members=self.unique_team_members)
        self._set_loading(False)

    async def refresh_projects(self) -> None:
        await self.fetch_projects()

    async def get_project_by_id(self, project_id: RecordId) -> Project | None:
        if not self.auth.is_authenticated:
            return None

        self.error = None
        self._set_loading(True)
        try:
            response = await self.api.projects.get_by_id(project_id)
        except PMSyncError as e:
            self._fail("get_project_by_id", e, "Failed to load project details")
            self._set_loading(False)
            return None

        self._set_loading(False)
        return parse_record(Project, response.data)

    async def create_project(self, data: dict[str, Any]) -> OperationResult[Project]:
        """Create a project, guarding against duplicate submissions.

        A name already in the collection or currently being created is
        rejected, as is any creation while another one is pending. Neither
        case reaches the network.
        """
        name = data.get("name")
        if name in self._names_in_flight or any(p.name == name for p in self.projects):
            return OperationResult.fail("A project with this name already exists")
        if self._creating:
            return OperationResult.fail("Project creation already in progress")

        field_errors = validate_project_form(data)
        if field_errors:
            return OperationResult.invalid(field_errors)

        self._creating = True
        self._names_in_flight.add(name)
        try:
            result = await self._mutate(
                "create_project",
                lambda: self.api.projects.create(data),
                "Failed to create project",
                Project,
            )
        finally:
            self._creating = False
            self._names_in_flight.discard(name)

        if result.success and result.value is not None:
            self.projects = [*self.projects, result.value]
            self._notify()
        return result

    async def update_project(self, project_id: RecordId, data: dict[str, Any]) -> OperationResult[Project]:
        result = await self._mutate(
            "update_project",
            lambda: self.api.projects.update(project_id, data),
            "Failed to update project",
            Project,
        )
        if result.success and result.value is not None:
            self.projects = [result.value if p.id == project_id else p for p in self.projects]
            self._notify()
        return result

    async def delete_project(self, project_id: RecordId) -> OperationResult[None]:
        result = await self._mutate(
            "delete_project",
            lambda: self.api.projects.delete(project_id),
            "Failed to delete project",
        )
        if result.success:
            self.projects = [p for p in self.projects if p.id != project_id]
            self._notify()
        return result

    # Nested reads. Failures yield an empty list or None so one bad fetch
    # does not blank the rest of a view.

    async def get_project_tasks(self, project_id: RecordId) -> list[Task]:
        return await self._fetch_list("tasks", lambda: self.api.tasks.get_by_project(project_id), Task)

    async def get_project_milestones(self, project_id: RecordId) -> list[Milestone]:
        return await self._fetch_list(
            "milestones",
            lambda: self.api.milestones.get_by_project(project_id),
            Milestone,
        )

    async def get_milestone_tasks(self, milestone_id: RecordId) -> list[Task]:
        return await self._fetch_list("milestone tasks", lambda: self.api.milestones.get_tasks(milestone_id), Task)

    async def get_project_stats(self, project_id: RecordId) -> dict[str, Any] | None:
        try:
            response = await self.api.projects.get_stats(project_id)
        except PMSyncError as e:
            logger.warning("project_stats_fetch_failed", project_id=project_id, error=str(e))
            return None
        return response.data if isinstance(response.data, dict) else None

    async def get_milestone_by_id(self, milestone_id: RecordId) -> Milestone | None:
        try:
            response = await self.api.milestones.get_by_id(milestone_id)
        except PMSyncError as e:
            logger.warning("milestone_fetch_failed", milestone_id=milestone_id, error=str(e))
            return None
        return parse_record(Milestone, response.data)

    # Milestone and task mutations

    async def create_milestone(self, data: dict[str, Any]) -> OperationResult[Milestone]:
        field_errors = validate_milestone_form(data)
        if field_errors:
            return OperationResult.invalid(field_errors)
        return await self._mutate(
            "create_milestone",
            lambda: self.api.milestones.create(data),
            "Failed to create milestone",
            Milestone,
        )

    async def update_milestone(self, milestone_id: RecordId, data: dict[str, Any]) -> OperationResult[Milestone]:
        return await self._mutate(
            "update_milestone",
            lambda: self.api.milestones.update(milestone_id, data),
            "Failed to update milestone",
            Milestone,
        )

    async def delete_milestone(self, milestone_id: RecordId) -> OperationResult[None]:
        return await self._mutate(
            "delete_milestone",
            lambda: self.api.milestones.delete(milestone_id),
            "Failed to delete milestone",
        )

    async def create_task(self, data: dict[str, Any]) -> OperationResult[Task]:
        field_errors = validate_task_form(data)
        if field_errors:
            return OperationResult.invalid(field_errors)
        return await self._mutate("create_task", lambda: self.api.tasks.create(data), "Failed to create task", Task)

    async def update_task(self, task_id: RecordId, data: dict[str, Any]) -> OperationResult[Task]:
        return await self._mutate(
            "update_task",
            lambda: self.api.tasks.update(task_id, data),
            "Failed to update task",
            Task,
        )

    async def delete_task(self, task_id: RecordId) -> OperationResult[None]:
        return await self._mutate("delete_task", lambda: self.api.tasks.delete(task_id), "Failed to delete task")

    async def assign_task(self, task_id: RecordId, user_id: RecordId) -> OperationResult[Task]:
        return await self._mutate(
            "assign_task",
            lambda: self.api.tasks.assign(task_id, user_id),
            "Failed to assign task",
            Task,
        )

    async def update_task_progress(self, task_id: RecordId, progress: int) -> OperationResult[Task]:
        return await self._mutate(
            "update_task_progress",
            lambda: self.api.tasks.update_progress(task_id, progress),
            "Failed to update task progress",
            Task,
        )

    async def update_task_status(self, task_id: RecordId, status: str) -> OperationResult[Task]:
        return await self._mutate(
            "update_task_status",
            lambda: self.api.tasks.update_status(task_id, status),
            "Failed to update task status",
            Task,
        )

    # Derived values

    get_project_progress = staticmethod(get_project_progress)
    get_task_progress = staticmethod(get_task_progress)
    status_color = staticmethod(status_color)
    priority_color = staticmethod(priority_color)

    # Helpers

    async def _mutate(
        self,
        operation: str,
        call: Callable[[], Awaitable[ApiResponse]],
        fallback: str,
        model: type[Record] | None = None,
    ) -> OperationResult[Any]:
        self.error = None
        self._set_loading(True)
        try:
            response = await call()
        except PMSyncError as e:
            message = self._fail(operation, e, fallback)
            self._set_loading(False)
            return OperationResult.fail(message)

        self._set_loading(False)
        if model is None:
            return OperationResult.ok()
        return OperationResult.ok(parse_record(model, response.data))

    async def _fetch_list(
        self,
        label: str,
        call: Callable[[], Awaitable[ApiResponse]],
        model: type[Record],
    ) -> list[Any]:
        try:
            response = await call()
        except PMSyncError as e:
            logger.warning("nested_fetch_failed", resource=label, error=str(e))
            return []
        return parse_records(model, response.items())
