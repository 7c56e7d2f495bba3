"""Project team membership: listing members, adding them and changing roles."""

from typing import Any

from pm_sync.api.resources import BackendAPI
from pm_sync.core.state import OperationResult, StateController
from pm_sync.exceptions import PMSyncError
from pm_sync.models import ProjectMember, RecordId, User, UserRole, parse_records
from pm_sync.utils.logging import get_logger
from pm_sync.utils.validation import validate_member

logger = get_logger(__name__)

USERS_CHANNEL = "users"


class TeamController(StateController):
    """Keeps the member list of each project that has been viewed.

    Membership changes are confirmed by the server and followed by a refetch
    of that project's team, since the server fills in user details.
    """

    name = "team"

    def __init__(self, api: BackendAPI) -> None:
        super().__init__()
        self.api = api
        self.users: list[User] = []
        self.members: dict[RecordId, list[ProjectMember]] = {}

    async def list_users(self, **params: Any) -> list[User]:
        """Users that can be added to a project."""
        ticket = self._sequencer.next(USERS_CHANNEL)
        try:
            response = await self.api.team.get_users(params or None)
        except PMSyncError as e:
            if not self._is_stale(USERS_CHANNEL, ticket):
                self._fail("list_users", e, "Failed to load users")
                self._notify()
            return []

        if self._is_stale(USERS_CHANNEL, ticket):
            return []
        self.users = parse_records(User, response.items("users"))
        self._notify()
        return self.users

    async def fetch_members(self, project_id: RecordId) -> list[ProjectMember]:
        """Load a project's team; ``[]`` on failure."""
        channel = f"project:{project_id}"
        ticket = self._sequencer.next(channel)
        try:
            response = await self.api.team.get_team_members(project_id)
        except PMSyncError as e:
            if not self._is_stale(channel, ticket):
                self._fail("fetch_members", e, "Failed to load team members")
                self._notify()
            return []

        members = parse_records(ProjectMember, response.items("members", "team_members", "team"))
        if self._is_stale(channel, ticket):
            return members
        self.members[project_id] = members
        self._notify()
        return members

    async def add_member(
        self,
        project_id: RecordId,
        user_id: RecordId,
        role: str = UserRole.MEMBER.value,
    ) -> OperationResult[list[ProjectMember]]:
        data = {"user_id": user_id, "role": role}
        field_errors = validate_member(data)
        if field_errors:
            return OperationResult.invalid(field_errors)

        return await self._change(
            "add_member",
            project_id,
            lambda: self.api.team.add_team_member(project_id, data),
            "Failed to add team member",
        )

    async def update_member_role(
        self,
        project_id: RecordId,
        user_id: RecordId,
        role: str,
    ) -> OperationResult[list[ProjectMember]]:
        field_errors = validate_member({"user_id": user_id, "role": role})
        if field_errors:
            return OperationResult.invalid(field_errors)

        return await self._change(
            "update_member_role",
            project_id,
            lambda: self.api.team.update_member_role(project_id, user_id, {"role": role}),
            "Failed to update member role",
        )

    async def remove_member(self, project_id: RecordId, user_id: RecordId) -> OperationResult[list[ProjectMember]]:
        result = await self._change(
            "remove_member",
            project_id,
            lambda: self.api.team.remove_team_member(project_id, user_id),
            "Failed to remove team member",
        )
        if result.success and result.value is None:
            # Refetch failed; drop the member locally (ids may be str or int)
            remaining = [m for m in self.members.get(project_id, []) if str(m.member_id) != str(user_id)]
            self.members[project_id] = remaining
            result.value = remaining
            self._notify()
        return result

    async def _change(
        self,
        operation: str,
        project_id: RecordId,
        call: Any,
        fallback: str,
    ) -> OperationResult[list[ProjectMember]]:
        self.error = None
        self._set_loading(True)
        try:
            await call()
        except PMSyncError as e:
            message = self._fail(operation, e, fallback)
            self._set_loading(False)
            return OperationResult.fail(message)

        logger.info("team_changed", operation=operation, project_id=project_id)
        channel = f"project:{project_id}"
        try:
            response = await self.api.team.get_team_members(project_id)
        except PMSyncError as e:
            logger.warning("team_refresh_failed", project_id=project_id, error=str(e))
            self._set_loading(False)
            return OperationResult.ok()

        self._sequencer.invalidate(channel)
        self.members[project_id] = parse_records(ProjectMember, response.items("members", "team_members", "team"))
        self._set_loading(False)
        return OperationResult.ok(self.members[project_id])
