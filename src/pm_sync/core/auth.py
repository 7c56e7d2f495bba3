"""Authentication state controller."""

import asyncio
import inspect
from collections.abc import Callable
from enum import Enum
from typing import Any

from pm_sync.api.resources import BackendAPI
from pm_sync.core.events import EventEmitter, Unsubscribe
from pm_sync.core.state import OperationResult, StateController
from pm_sync.exceptions import EnvelopeError, PMSyncError
from pm_sync.models import User, parse_record
from pm_sync.storage.local_store import AUTH_TOKEN_KEY, KeyValueStore
from pm_sync.utils.logging import get_logger
from pm_sync.utils.validation import validate_login, validate_registration

logger = get_logger(__name__)

LOGIN_EVENT = "login"


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    CHECKING = "checking"
    AUTHENTICATED = "authenticated"


class AuthController(StateController):
    """Holds the current user and the login/logout lifecycle.

    Other controllers react to a completed login through ``on_login``: a
    callback registered while signed out is queued and fires exactly once on
    the next successful login, register or token check; a callback registered
    while signed in fires immediately. Coroutine callbacks are awaited by the
    login call that fires them.
    """

    name = "auth"

    def __init__(self, api: BackendAPI, store: KeyValueStore) -> None:
        """Initialize auth controller.

        Args:
            api: Backend endpoint groups
            store: Local store holding the bearer token
        """
        super().__init__()
        self.api = api
        self.store = store
        self.user: User | None = None
        self.state = AuthState.UNAUTHENTICATED
        self._events = EventEmitter()
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def is_authenticated(self) -> bool:
        return self.state == AuthState.AUTHENTICATED and self.user is not None

    @property
    def is_resolving(self) -> bool:
        """True while a stored token is being validated."""
        return self.state == AuthState.CHECKING

    @property
    def pending_callbacks(self) -> int:
        return self._events.listener_count(LOGIN_EVENT)

    async def initialize(self) -> AuthState:
        """Validate a stored token, if any.

        Returns:
            Resulting auth state
        """
        token = await self.store.get(AUTH_TOKEN_KEY)
        if not token:
            self.state = AuthState.UNAUTHENTICATED
            self._notify()
            return self.state

        await self.check_auth()
        return self.state

    async def check_auth(self) -> bool:
        """Fetch the current profile with the stored token.

        On failure the token is cleared and the controller returns to
        unauthenticated.

        Returns:
            True if the token is valid
        """
        self.state = AuthState.CHECKING
        self._set_loading(True)
        try:
            response = await self.api.auth.get_profile()
            user = parse_record(User, response.data)
            if user is None:
                raise EnvelopeError("user record", response.data)
        except PMSyncError as e:
            logger.warning("auth_check_failed", error=str(e))
            await self.store.remove(AUTH_TOKEN_KEY)
            self.user = None
            self.state = AuthState.UNAUTHENTICATED
            self.loading = False
            self._notify()
            return False

        self.loading = False
        self._authenticate(user)
        await self._fire_login_callbacks()
        return True

    async def login(self, credentials: dict[str, Any]) -> OperationResult[User]:
        """Exchange credentials for a token and user record.

        Args:
            credentials: ``email`` (or ``username``) and ``password``

        Returns:
            Result with the signed-in user on success
        """
        field_errors = validate_login(credentials)
        if field_errors:
            return OperationResult.invalid(field_errors)

        return await self._sign_in("login", credentials, "Login failed")

    async def register(self, user_data: dict[str, Any]) -> OperationResult[User]:
        """Create an account and sign in with the returned token."""
        field_errors = validate_registration(user_data)
        if field_errors:
            return OperationResult.invalid(field_errors)

        return await self._sign_in("register", user_data, "Registration failed")

    async def _sign_in(self, operation: str, payload: dict[str, Any], fallback: str) -> OperationResult[User]:
        self.error = None
        self._set_loading(True)
        try:
            if operation == "register":
                response = await self.api.auth.register(payload)
            else:
                response = await self.api.auth.login(payload)

            data = response.data if isinstance(response.data, dict) else {}
            token = data.get("token")
            user = parse_record(User, data.get("user"))
            if not token or user is None:
                raise EnvelopeError("token and user", response.data)
        except PMSyncError as e:
            message = self._fail(operation, e, fallback)
            self._set_loading(False)
            return OperationResult.fail(message)

        await self.store.set(AUTH_TOKEN_KEY, token)
        self.loading = False
        self._authenticate(user)
        logger.info("user_signed_in", operation=operation, user_id=user.id)

        await self._fire_login_callbacks()
        return OperationResult.ok(user)

    async def logout(self) -> None:
        """Sign out locally. No server call is made.

        User, error and queued login callbacks are cleared before the first
        suspension point, so observers never see a half-signed-out state.
        """
        self.user = None
        self.error = None
        self.state = AuthState.UNAUTHENTICATED
        self._events.clear(LOGIN_EVENT)
        self._notify()
        await self.store.remove(AUTH_TOKEN_KEY)
        logger.info("user_signed_out")

    async def update_profile(self, data: dict[str, Any]) -> OperationResult[User]:
        self.error = None
        self._set_loading(True)
        try:
            response = await self.api.auth.update_profile(data)
            user = parse_record(User, response.data)
            if user is None:
                raise EnvelopeError("user record", response.data)
        except PMSyncError as e:
            message = self._fail("update_profile", e, "Profile update failed")
            self._set_loading(False)
            return OperationResult.fail(message)

        self.user = user
        self._set_loading(False)
        return OperationResult.ok(user)

    def on_login(self, callback: Callable[[], Any]) -> Unsubscribe:
        """Run ``callback`` now if signed in, otherwise after the next login.

        Args:
            callback: Zero-argument callable; may return an awaitable

        Returns:
            Callable removing a queued callback (no-op if it already ran)
        """
        if self.is_authenticated:
            self._schedule(callback())
            return lambda: None
        return self._events.once(LOGIN_EVENT, callback)

    def _authenticate(self, user: User) -> None:
        self.user = user
        self.error = None
        self.state = AuthState.AUTHENTICATED
        self._notify()

    async def _fire_login_callbacks(self) -> None:
        results = self._events.emit(LOGIN_EVENT)
        pending = [r for r in results if inspect.isawaitable(r)]
        if not pending:
            return
        outcomes = await asyncio.gather(*pending, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                logger.error("login_callback_failed", error=str(outcome))

    def _schedule(self, result: Any) -> None:
        if not inspect.isawaitable(result):
            return
        task = asyncio.ensure_future(result)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_for_callbacks(self) -> None:
        """Wait for coroutine callbacks started by ``on_login`` while signed in."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
