"""Team invitations: sending, listing and accepting."""

from datetime import datetime, timezone
from typing import Any

from pm_sync.api.resources import BackendAPI
from pm_sync.core.state import OperationResult, StateController
from pm_sync.exceptions import PMSyncError
from pm_sync.models import Invitation, InvitationStatus, RecordId, parse_record, parse_records
from pm_sync.utils.logging import get_logger
from pm_sync.utils.validation import validate_invitation_acceptance, validate_invite

logger = get_logger(__name__)

ACCEPT_FIELDS = ("username", "first_name", "last_name", "password")


class InvitationController(StateController):
    """Loads a single invitation by token and manages the team's invitations."""

    name = "invitations"

    def __init__(self, api: BackendAPI) -> None:
        super().__init__()
        self.api = api
        self.invitation: Invitation | None = None
        self.invitations: list[Invitation] = []

    async def load(self, token: str | None) -> OperationResult[Invitation]:
        """Fetch the invitation behind an invite link token.

        Expired invitations and ones that are no longer pending are rejected
        even when the server returns them.
        """
        self.invitation = None
        if not token:
            self.error = "No invitation token provided"
            self._notify()
            return OperationResult.fail(self.error)

        self.error = None
        self._set_loading(True)
        try:
            response = await self.api.invitations.get_by_token(token)
        except PMSyncError as e:
            message = self._fail("load", e, "Failed to load invitation")
            self._set_loading(False)
            return OperationResult.fail(message)

        invitation = parse_record(Invitation, response.data)
        self.loading = False
        problem = self._unusable_reason(invitation)
        if problem:
            self.error = problem
            self._notify()
            return OperationResult.fail(problem)

        self.invitation = invitation
        self._notify()
        return OperationResult.ok(invitation)

    @staticmethod
    def _unusable_reason(invitation: Invitation | None) -> str | None:
        if invitation is None:
            return "Invalid invitation data"
        if invitation.status != InvitationStatus.PENDING.value:
            return f"This invitation has already been {invitation.status}"
        expires_at = invitation.expires_at
        if expires_at is not None:
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at < datetime.now(timezone.utc):
                return "This invitation has expired"
        return None

    validate_acceptance = staticmethod(validate_invitation_acceptance)

    async def accept(self, form: dict[str, Any]) -> OperationResult[None]:
        """Create an account from the loaded invitation.

        Args:
            form: ``username``, ``first_name``, ``last_name``, ``password``
                and ``confirm_password``
        """
        field_errors = validate_invitation_acceptance(form)
        if field_errors:
            return OperationResult.invalid(field_errors)

        if self.invitation is None or self.invitation.id is None:
            self.error = "Invalid invitation data"
            self._notify()
            return OperationResult.fail(self.error)

        self.error = None
        self._set_loading(True)
        try:
            await self.api.invitations.accept(self.invitation.id, {k: form.get(k) for k in ACCEPT_FIELDS})
        except PMSyncError as e:
            message = self._fail("accept", e, "Failed to accept invitation")
            self._set_loading(False)
            return OperationResult.fail(message)

        logger.info("invitation_accepted", invitation_id=self.invitation.id)
        self._set_loading(False)
        return OperationResult.ok()

    async def invite(
        self,
        email: str,
        role: str,
        project_id: RecordId | None = None,
    ) -> OperationResult[Invitation]:
        data: dict[str, Any] = {"email": email, "role": role}
        if project_id is not None:
            data["project_id"] = project_id

        field_errors = validate_invite(data)
        if field_errors:
            return OperationResult.invalid(field_errors)

        self.error = None
        self._set_loading(True)
        try:
            response = await self.api.invitations.invite(data)
        except PMSyncError as e:
            message = self._fail("invite", e, "Failed to send invitation")
            self._set_loading(False)
            return OperationResult.fail(message)

        invitation = parse_record(Invitation, response.data)
        if invitation is not None:
            self.invitations = [invitation, *self.invitations]
        self._set_loading(False)
        return OperationResult.ok(invitation)

    async def list_invitations(self, **params: Any) -> list[Invitation]:
        try:
            response = await self.api.invitations.get_all(params or None)
        except PMSyncError as e:
            self._fail("list_invitations", e, "Failed to load invitations")
            self._notify()
            return []

        self.invitations = parse_records(Invitation, response.items("invitations"))
        self._notify()
        return self.invitations

    async def decline(self, invitation_id: RecordId) -> OperationResult[None]:
        return await self._act("decline", self.api.invitations.decline, invitation_id, "Failed to decline invitation")

    async def resend(self, invitation_id: RecordId) -> OperationResult[None]:
        return await self._act("resend", self.api.invitations.resend, invitation_id, "Failed to resend invitation")

    async def cancel(self, invitation_id: RecordId) -> OperationResult[None]:
        result = await self._act("cancel", self.api.invitations.cancel, invitation_id, "Failed to cancel invitation")
        if result.success:
            self.invitations = [i for i in self.invitations if i.id != invitation_id]
            self._notify()
        return result

    async def _act(self, operation: str, call: Any, invitation_id: RecordId, fallback: str) -> OperationResult[None]:
        try:
            await call(invitation_id)
        except PMSyncError as e:
            return OperationResult.fail(self._fail(operation, e, fallback))
        return OperationResult.ok()
