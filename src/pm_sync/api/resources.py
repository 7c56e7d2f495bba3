"""Endpoint groups of the project-management REST API."""

from typing import Any

from pm_sync.api.client import ApiClient, ApiResponse


class _Resource:
    def __init__(self, client: ApiClient) -> None:
        self.client = client


class AuthAPI(_Resource):
    async def login(self, credentials: dict[str, Any]) -> ApiResponse:
        return await self.client.post("/auth/login", credentials)

    async def register(self, user_data: dict[str, Any]) -> ApiResponse:
        return await self.client.post("/auth/register", user_data)

    async def get_profile(self) -> ApiResponse:
        return await self.client.get("/auth/me")

    async def update_profile(self, data: dict[str, Any]) -> ApiResponse:
        return await self.client.put("/auth/profile", data)


class ProjectsAPI(_Resource):
    async def get_all(self, params: dict[str, Any] | None = None) -> ApiResponse:
        return await self.client.get("/projects", params=params)

    async def get_by_id(self, project_id: Any) -> ApiResponse:
        return await self.client.get(f"/projects/{project_id}")

    async def create(self, data: dict[str, Any]) -> ApiResponse:
        return await self.client.post("/projects", data)

    async def update(self, project_id: Any, data: dict[str, Any]) -> ApiResponse:
        return await self.client.put(f"/projects/{project_id}", data)

    async def delete(self, project_id: Any) -> ApiResponse:
        return await self.client.delete(f"/projects/{project_id}")

    async def get_stats(self, project_id: Any) -> ApiResponse:
        return await self.client.get(f"/projects/{project_id}/stats")


class MilestonesAPI(_Resource):
    async def get_by_project(self, project_id: Any) -> ApiResponse:
        return await self.client.get(f"/milestones/project/{project_id}")

    async def get_by_id(self, milestone_id: Any) -> ApiResponse:
        return await self.client.get(f"/milestones/{milestone_id}")

    async def create(self, data: dict[str, Any]) -> ApiResponse:
        return await self.client.post("/milestones", data)

    async def update(self, milestone_id: Any, data: dict[str, Any]) -> ApiResponse:
        return await self.client.put(f"/milestones/{milestone_id}", data)

    async def delete(self, milestone_id: Any) -> ApiResponse:
        return await self.client.delete(f"/milestones/{milestone_id}")

    async def get_tasks(self, milestone_id: Any) -> ApiResponse:
        return await self.client.get(f"/milestones/{milestone_id}/tasks")


class TasksAPI(_Resource):
    async def get_by_project(self, project_id: Any) -> ApiResponse:
        return await self.client.get(f"/tasks/project/{project_id}")

    async def create(self, data: dict[str, Any]) -> ApiResponse:
        return await self.client.post("/tasks", data)

    async def update(self, task_id: Any, data: dict[str, Any]) -> ApiResponse:
        return await self.client.put(f"/tasks/{task_id}", data)

    async def assign(self, task_id: Any, user_id: Any) -> ApiResponse:
        return await self.client.patch(f"/tasks/{task_id}/assign", {"assigned_to": user_id})

    async def update_status(self, task_id: Any, status: str) -> ApiResponse:
        return await self.client.patch(f"/tasks/{task_id}/status", {"status": status})

    async def update_progress(self, task_id: Any, progress: int) -> ApiResponse:
        return await self.client.patch(f"/tasks/{task_id}/progress", {"progress_percentage": progress})

    async def delete(self, task_id: Any) -> ApiResponse:
        return await self.client.delete(f"/tasks/{task_id}")


class TeamAPI(_Resource):
    """User and project-membership management."""

    async def get_users(self, params: dict[str, Any] | None = None) -> ApiResponse:
        return await self.client.get("/team/users", params=params)

    async def get_team_members(self, project_id: Any) -> ApiResponse:
        return await self.client.get(f"/team/project/{project_id}")

    async def add_team_member(self, project_id: Any, data: dict[str, Any]) -> ApiResponse:
        return await self.client.post(f"/team/project/{project_id}/members", data)

    async def update_member_role(self, project_id: Any, user_id: Any, data: dict[str, Any]) -> ApiResponse:
        return await self.client.put(f"/team/project/{project_id}/members/{user_id}/role", data)

    async def remove_team_member(self, project_id: Any, user_id: Any) -> ApiResponse:
        return await self.client.delete(f"/team/project/{project_id}/members/{user_id}")


class InvitationsAPI(_Resource):
    async def invite(self, data: dict[str, Any]) -> ApiResponse:
        return await self.client.post("/invitations", data)

    async def get_all(self, params: dict[str, Any] | None = None) -> ApiResponse:
        return await self.client.get("/invitations", params=params)

    async def get_by_token(self, token: str) -> ApiResponse:
        return await self.client.get(f"/invitations/token/{token}")

    async def accept(self, invitation_id: Any, user_data: dict[str, Any]) -> ApiResponse:
        return await self.client.post(f"/invitations/{invitation_id}/accept", user_data)

    async def decline(self, invitation_id: Any) -> ApiResponse:
        return await self.client.post(f"/invitations/{invitation_id}/decline")

    async def resend(self, invitation_id: Any) -> ApiResponse:
        return await self.client.post(f"/invitations/{invitation_id}/resend")

    async def cancel(self, invitation_id: Any) -> ApiResponse:
        return await self.client.delete(f"/invitations/{invitation_id}")


class CommentsAPI(_Resource):
    async def get_by_task(self, task_id: Any) -> ApiResponse:
        return await self.client.get(f"/comments/task/{task_id}")

    async def create(self, data: dict[str, Any]) -> ApiResponse:
        return await self.client.post("/comments", data)


class EventsAPI(_Resource):
    async def get_all(self, params: dict[str, Any] | None = None) -> ApiResponse:
        return await self.client.get("/events", params=params)

    async def get_by_id(self, event_id: Any) -> ApiResponse:
        return await self.client.get(f"/events/{event_id}")

    async def create(self, data: dict[str, Any]) -> ApiResponse:
        return await self.client.post("/events", data)

    async def update(self, event_id: Any, data: dict[str, Any]) -> ApiResponse:
        return await self.client.put(f"/events/{event_id}", data)

    async def delete(self, event_id: Any) -> ApiResponse:
        return await self.client.delete(f"/events/{event_id}")

    async def get_by_project(self, project_id: Any) -> ApiResponse:
        return await self.client.get(f"/events/project/{project_id}")

    async def get_by_date(self, date: str) -> ApiResponse:
        return await self.client.get(f"/events/date/{date}")

    async def get_upcoming(self) -> ApiResponse:
        return await self.client.get("/events/upcoming")

    async def get_today(self) -> ApiResponse:
        return await self.client.get("/events/today")


class TimeLogsAPI(_Resource):
    async def get_all(self, params: dict[str, Any] | None = None) -> ApiResponse:
        return await self.client.get("/time-logs", params=params)

    async def create(self, data: dict[str, Any]) -> ApiResponse:
        return await self.client.post("/time-logs", data)

    async def update(self, log_id: Any, data: dict[str, Any]) -> ApiResponse:
        return await self.client.put(f"/time-logs/{log_id}", data)

    async def delete(self, log_id: Any) -> ApiResponse:
        return await self.client.delete(f"/time-logs/{log_id}")

    async def get_by_task(self, task_id: Any, params: dict[str, Any] | None = None) -> ApiResponse:
        return await self.client.get(f"/time-logs/task/{task_id}", params=params)


class NotificationsAPI(_Resource):
    async def get_all(self, params: dict[str, Any] | None = None) -> ApiResponse:
        return await self.client.get("/notifications", params=params)

    async def delete(self, notification_id: Any) -> ApiResponse:
        return await self.client.delete(f"/notifications/{notification_id}")

    async def mark_as_read(self, notification_id: Any) -> ApiResponse:
        return await self.client.patch(f"/notifications/{notification_id}/read")

    async def mark_all_as_read(self) -> ApiResponse:
        return await self.client.patch("/notifications/read-all")

    async def get_unread_count(self) -> ApiResponse:
        return await self.client.get("/notifications/unread-count")


class BackendAPI:
    """All endpoint groups bound to one ApiClient."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client
        self.auth = AuthAPI(client)
        self.projects = ProjectsAPI(client)
        self.milestones = MilestonesAPI(client)
        self.tasks = TasksAPI(client)
        self.team = TeamAPI(client)
        self.invitations = InvitationsAPI(client)
        self.comments = CommentsAPI(client)
        self.events = EventsAPI(client)
        self.time_logs = TimeLogsAPI(client)
        self.notifications = NotificationsAPI(client)
