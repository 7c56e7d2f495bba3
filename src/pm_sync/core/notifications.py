"""Notification controller: push messages, polled snapshots and read state."""

import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pm_sync.api.resources import BackendAPI
from pm_sync.core.events import ToastBus
from pm_sync.core.state import OperationResult, StateController
from pm_sync.exceptions import PMSyncError
from pm_sync.models import Notification, NotificationType, RecordId, parse_record, parse_records
from pm_sync.utils.logging import get_logger
from pm_sync.utils.metrics import get_metrics

logger = get_logger(__name__)
metrics = get_metrics()

DEFAULT_LIST_LIMIT = 50
POLL_CHANNEL = "notifications"

MessageHandler = Callable[[dict[str, Any]], Notification | None]


class NotificationController(StateController):
    """Newest-first notification list capped at ``limit`` entries.

    Records arrive three ways: WebSocket pushes (``handle_message``), local
    sends (``send_notification``) and polled snapshots
    (``fetch_notifications``). A snapshot replaces the list, except that
    pushes received after the poll was issued stay on top.
    """

    name = "notifications"

    def __init__(self, api: BackendAPI, toasts: ToastBus, limit: int = DEFAULT_LIST_LIMIT) -> None:
        """Initialize notification controller.

        Args:
            api: Backend endpoint groups
            toasts: Bus receiving a toast for every new notification
            limit: Maximum number of notifications kept in memory
        """
        super().__init__()
        self.api = api
        self.toasts = toasts
        self.limit = limit
        self.notifications: list[Notification] = []
        self.unread_count = 0
        self.is_connected = False
        self._push_seq = 0
        self._recent_pushes: list[tuple[int, Notification]] = []
        self._last_id = 0
        self._handlers: dict[str, MessageHandler] = {
            NotificationType.NOTIFICATION.value: self._from_notification,
            NotificationType.COMMENT.value: self._from_comment,
            NotificationType.ASSIGNMENT.value: self._from_assignment,
            NotificationType.STATUS_CHANGE.value: self._from_status_change,
            NotificationType.MILESTONE.value: self._from_milestone,
        }

    def set_connected(self, connected: bool) -> None:
        """Record push-channel connectivity. Connecting clears the error."""
        self.is_connected = connected
        if connected:
            self.error = None
        metrics.websocket_connected.set(1 if connected else 0)
        self._notify()

    # Incoming pushes

    def handle_message(self, payload: Any) -> Notification | None:
        """Turn a pushed message into a notification.

        Args:
            payload: Decoded message with a ``type`` field

        Returns:
            The stored notification, or None for unknown or malformed messages
        """
        if not isinstance(payload, dict):
            logger.warning("ws_message_not_an_object", received=type(payload).__name__)
            return None

        message_type = payload.get("type")
        handler = self._handlers.get(message_type)
        if handler is None:
            logger.debug("ws_message_type_ignored", message_type=message_type)
            return None

        notification = handler(payload)
        if notification is None:
            return None
        self._add(notification, source="push")
        return notification

    def _from_notification(self, payload: dict[str, Any]) -> Notification | None:
        notification = parse_record(Notification, payload.get("notification"))
        if notification is None:
            logger.warning("ws_notification_without_record")
        return notification

    def _from_comment(self, payload: dict[str, Any]) -> Notification:
        return self._synthesize(
            NotificationType.COMMENT,
            "New Comment",
            f"{payload.get('user')} commented on {payload.get('task')}",
            payload,
        )

    def _from_assignment(self, payload: dict[str, Any]) -> Notification:
        return self._synthesize(
            NotificationType.ASSIGNMENT,
            "Task Assigned",
            f'You have been assigned to "{payload.get("task")}"',
            payload,
        )

    def _from_status_change(self, payload: dict[str, Any]) -> Notification:
        return self._synthesize(
            NotificationType.STATUS_CHANGE,
            "Status Updated",
            f'Task "{payload.get("task")}" status changed to {payload.get("status")}',
            payload,
        )

    def _from_milestone(self, payload: dict[str, Any]) -> Notification:
        return self._synthesize(
            NotificationType.MILESTONE,
            "Milestone Reached",
            f'Milestone "{payload.get("milestone")}" has been completed',
            payload,
        )

    def send_notification(self, title: str, message: str, data: dict[str, Any] | None = None) -> Notification:
        """Add a locally generated ``custom`` notification."""
        notification = self._synthesize(NotificationType.CUSTOM, title, message, data or {})
        self._add(notification, source="local")
        return notification

    def _next_id(self) -> int:
        # Millisecond timestamp, bumped when two records land in the same ms
        self._last_id = max(int(time.time() * 1000), self._last_id + 1)
        return self._last_id

    def _synthesize(
        self,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any],
    ) -> Notification:
        return Notification(
            id=self._next_id(),
            type=notification_type.value,
            title=title,
            message=message,
            data=data,
            created_at=datetime.now(timezone.utc),
            read=False,
        )

    def _add(self, notification: Notification, source: str) -> None:
        self.notifications = [notification, *self.notifications[: self.limit - 1]]
        self.unread_count += 1
        self._push_seq += 1
        self._recent_pushes.append((self._push_seq, notification))
        del self._recent_pushes[: -self.limit]

        metrics.record_notification(source, notification.type)
        metrics.unread_notifications.set(self.unread_count)
        self._toast(notification)
        self._notify()

    def _toast(self, notification: Notification) -> None:
        publish = {
            NotificationType.COMMENT.value: self.toasts.comment,
            NotificationType.ASSIGNMENT.value: self.toasts.assignment,
            NotificationType.STATUS_CHANGE.value: self.toasts.status_change,
            NotificationType.MILESTONE.value: self.toasts.milestone,
        }.get(notification.type, self.toasts.info)
        publish(notification.title, notification.message)

    # Server state

    async def fetch_notifications(self) -> None:
        """Replace the list with the server snapshot.

        Pushes that arrived while the request was in flight are kept on top
        of the snapshot instead of being overwritten by it.
        """
        ticket = self._sequencer.next(POLL_CHANNEL)
        marker = self._push_seq
        self._set_loading(True)
        try:
            response = await self.api.notifications.get_all()
        except PMSyncError as e:
            if self._is_stale(POLL_CHANNEL, ticket):
                return
            metrics.notification_polls_total.labels(status="error").inc()
            self._fail("fetch_notifications", e, "Failed to load notifications")
            self._set_loading(False)
            return

        if self._is_stale(POLL_CHANNEL, ticket):
            return

        metrics.notification_polls_total.labels(status="success").inc()
        snapshot = parse_records(Notification, response.items("notifications"))
        snapshot_ids = {n.id for n in snapshot}
        newer = [n for seq, n in reversed(self._recent_pushes) if seq > marker and n.id not in snapshot_ids]
        self._recent_pushes = [(seq, n) for seq, n in self._recent_pushes if seq > marker]

        self.notifications = (newer + snapshot)[: self.limit]
        self.unread_count = sum(1 for n in self.notifications if not n.read)
        metrics.unread_notifications.set(self.unread_count)
        logger.debug("notifications_fetched", count=len(snapshot), kept_pushes=len(newer))
        self._set_loading(False)

    async def refresh_unread_count(self) -> int:
        """Set ``unread_count`` from the server's unread counter."""
        try:
            response = await self.api.notifications.get_unread_count()
        except PMSyncError as e:
            logger.warning("unread_count_fetch_failed", error=str(e))
            return self.unread_count

        data = response.data
        count = data.get("count") if isinstance(data, dict) else data
        try:
            self.unread_count = max(0, int(count))
        except (TypeError, ValueError):
            logger.warning("unread_count_unexpected_shape", received=type(count).__name__)
            return self.unread_count

        metrics.unread_notifications.set(self.unread_count)
        self._notify()
        return self.unread_count

    async def mark_as_read(self, notification_id: RecordId) -> OperationResult[None]:
        try:
            await self.api.notifications.mark_as_read(notification_id)
        except PMSyncError as e:
            return OperationResult.fail(self._fail("mark_as_read", e, "Failed to mark notification as read"))

        existing = self._find(notification_id)
        if existing is None or not existing.read:
            self.unread_count = max(0, self.unread_count - 1)
        self.notifications = [
            n.model_copy(update={"read": True}) if n.id == notification_id else n for n in self.notifications
        ]
        metrics.unread_notifications.set(self.unread_count)
        self._notify()
        return OperationResult.ok()

    async def mark_all_as_read(self) -> OperationResult[None]:
        try:
            await self.api.notifications.mark_all_as_read()
        except PMSyncError as e:
            return OperationResult.fail(self._fail("mark_all_as_read", e, "Failed to mark notifications as read"))

        self.notifications = [n.model_copy(update={"read": True}) for n in self.notifications]
        self.unread_count = 0
        metrics.unread_notifications.set(0)
        self._notify()
        return OperationResult.ok()

    async def delete_notification(self, notification_id: RecordId) -> OperationResult[None]:
        try:
            await self.api.notifications.delete(notification_id)
        except PMSyncError as e:
            return OperationResult.fail(self._fail("delete_notification", e, "Failed to delete notification"))

        removed = self._find(notification_id)
        self.notifications = [n for n in self.notifications if n.id != notification_id]
        if removed is not None and not removed.read:
            self.unread_count = max(0, self.unread_count - 1)
        metrics.unread_notifications.set(self.unread_count)
        self._notify()
        return OperationResult.ok()

    def _find(self, notification_id: RecordId) -> Notification | None:
        return next((n for n in self.notifications if n.id == notification_id), None)
