"""Application wiring: one store, one API façade and every controller."""

from typing import Any

from pm_sync.api.client import ApiClient
from pm_sync.api.resources import BackendAPI
from pm_sync.config import Settings
from pm_sync.core.auth import AuthController, AuthState
from pm_sync.core.calendar import CalendarController
from pm_sync.core.channel import NotificationChannel
from pm_sync.core.comments import CommentController
from pm_sync.core.events import ToastBus
from pm_sync.core.invitations import InvitationController
from pm_sync.core.notifications import NotificationController
from pm_sync.core.projects import ProjectController
from pm_sync.core.team import TeamController
from pm_sync.core.time_tracking import TimeTrackingController
from pm_sync.storage.local_store import KeyValueStore, LocalStore
from pm_sync.utils.logging import get_logger

logger = get_logger(__name__)


class SyncApp:
    """Container owning the shared collaborators.

    Controllers share the store, the façade and the toast bus; the channel is
    created only when real-time updates are enabled.
    """

    def __init__(
        self,
        settings: Settings,
        store: KeyValueStore,
        client: ApiClient,
        channel_connect: Any = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.client = client
        self.api = BackendAPI(client)
        self.toasts = ToastBus()

        self.auth = AuthController(self.api, store)
        self.projects = ProjectController(self.api, self.auth)
        self.calendar = CalendarController(self.api, store)
        self.notifications = NotificationController(
            self.api,
            self.toasts,
            limit=settings.notification_list_limit,
        )
        self.invitations = InvitationController(self.api)
        self.time_tracking = TimeTrackingController(self.api)
        self.team = TeamController(self.api)
        self.comments = CommentController(self.api)

        self.channel: NotificationChannel | None = None
        if settings.enable_real_time_updates and settings.enable_notifications:
            self.channel = NotificationChannel(
                settings.ws_url,
                self.notifications,
                reconnect_delay=settings.ws_reconnect_delay_seconds,
                poll_interval=settings.notification_poll_interval_seconds,
                connect=channel_connect,
            )

        self._started = False

    @classmethod
    def from_settings(cls, settings: Settings, store: KeyValueStore | None = None, **kwargs: Any) -> "SyncApp":
        """Build the app from settings.

        Args:
            settings: Effective settings
            store: Store override; defaults to a LocalStore at the configured path
            **kwargs: ``transport`` for the HTTP client, ``channel_connect``
                for the WebSocket factory

        Returns:
            Unstarted app
        """
        store = store or LocalStore(settings.resolved_storage_path)
        client = ApiClient(
            settings.api_base_url,
            store,
            timeout=settings.api_timeout_seconds,
            transport=kwargs.get("transport"),
        )
        return cls(settings, store, client, channel_connect=kwargs.get("channel_connect"))

    async def start(self, connect_channel: bool = True) -> AuthState:
        """Restore the session and start background updates.

        Returns:
            Auth state after the stored token was checked
        """
        if isinstance(self.store, LocalStore):
            await self.store.initialize()

        self.projects.attach()
        await self.calendar.load_cached()
        state = await self.auth.initialize()

        if self.channel is not None and connect_channel:
            self.channel.start()

        self._started = True
        logger.info(
            "sync_app_started",
            auth_state=state.value,
            real_time=self.channel is not None and connect_channel,
        )
        return state

    async def close(self) -> None:
        if self.channel is not None:
            await self.channel.stop()
        await self.client.close()
        await self.store.close()
        self._started = False
        logger.info("sync_app_closed")

    def status(self) -> dict[str, Any]:
        """Snapshot used by the status endpoint and the CLI."""
        user = self.auth.user
        return {
            "auth": {
                "state": self.auth.state.value,
                "user": user.display_name if user else None,
            },
            "notifications": {
                "connected": self.notifications.is_connected,
                "unread": self.notifications.unread_count,
                "count": len(self.notifications.notifications),
            },
            "projects": {
                "count": len(self.projects.projects),
                "error": self.projects.error,
            },
            "calendar": {
                "mode": self.calendar.mode.value,
                "events": len(self.calendar.events),
            },
        }

    async def __aenter__(self) -> "SyncApp":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
