"""WebSocket push channel with fixed-delay reconnect and a polling fallback."""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import websockets
from websockets.exceptions import WebSocketException

from pm_sync.core.notifications import NotificationController
from pm_sync.utils.logging import get_logger
from pm_sync.utils.metrics import get_metrics

logger = get_logger(__name__)
metrics = get_metrics()

DEFAULT_RECONNECT_DELAY = 5.0
DEFAULT_POLL_INTERVAL = 30.0


class NotificationChannel:
    """Keeps a notification controller fed while the process runs.

    - On open the controller is marked connected and its error cleared
    - Every text frame is JSON-decoded and passed to ``handle_message``
    - On close or error exactly one reconnect is scheduled after a fixed
      delay; further closes while it is pending do not add another
    - While disconnected, the controller's list is polled at a fixed interval
    """

    def __init__(
        self,
        url: str,
        controller: NotificationController,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        connect: Callable[[str], Any] | None = None,
    ) -> None:
        """Initialize notification channel.

        Args:
            url: WebSocket URL
            controller: Controller receiving messages and connectivity changes
            reconnect_delay: Seconds between a close and the next attempt
            poll_interval: Seconds between fallback polls while disconnected
            connect: Factory returning an async context manager that yields
                an async-iterable socket (``websockets.connect`` by default)
        """
        self.url = url
        self.controller = controller
        self.reconnect_delay = reconnect_delay
        self.poll_interval = poll_interval
        self._connect = connect or websockets.connect

        self._stopped = True
        self._connected = asyncio.Event()
        self._session_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._poll_task: asyncio.Task[None] | None = None

        logger.info(
            "notification_channel_initialized",
            url=url,
            reconnect_delay=reconnect_delay,
            poll_interval=poll_interval,
        )

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def start(self) -> None:
        """Open the socket and start polling until it connects."""
        if not self._stopped:
            return
        self._stopped = False
        self._start_poller()
        self._session_task = asyncio.create_task(self._session())
        logger.info("notification_channel_started")

    async def stop(self) -> None:
        """Cancel the socket, any pending reconnect and the poller."""
        self._stopped = True
        tasks = [t for t in (self._reconnect_task, self._poll_task, self._session_task) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._reconnect_task = None
        self._poll_task = None
        self._session_task = None
        self._connected.clear()
        self.controller.set_connected(False)
        logger.info("notification_channel_stopped")

    async def _session(self) -> None:
        try:
            async with self._connect(self.url) as socket:
                self._on_open()
                async for frame in socket:
                    self._on_frame(frame)
            logger.info("ws_closed", url=self.url)
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            logger.warning("ws_error", url=self.url, error=str(e) or type(e).__name__)

        self._on_close()

    def _on_open(self) -> None:
        logger.info("ws_connected", url=self.url)
        self._connected.set()
        self.controller.set_connected(True)

    def _on_frame(self, frame: Any) -> None:
        if isinstance(frame, bytes):
            frame = frame.decode("utf-8", errors="replace")
        try:
            payload = json.loads(frame)
        except json.JSONDecodeError as e:
            logger.warning("ws_message_parse_failed", error=str(e))
            return
        self.controller.handle_message(payload)

    def _on_close(self) -> None:
        self._connected.clear()
        self.controller.set_connected(False)
        if self._stopped:
            return
        self._start_poller()
        self.schedule_reconnect()

    def schedule_reconnect(self) -> bool:
        """Schedule a reconnect unless one is already pending.

        Returns:
            True if a new reconnect timer was started
        """
        if self._stopped or self.reconnect_pending:
            return False
        metrics.websocket_reconnects_total.inc()
        logger.info("ws_reconnect_scheduled", delay=self.reconnect_delay)
        self._reconnect_task = asyncio.create_task(self._reconnect_after_delay())
        return True

    async def _reconnect_after_delay(self) -> None:
        await asyncio.sleep(self.reconnect_delay)
        self._reconnect_task = None
        if not self._stopped:
            self._session_task = asyncio.create_task(self._session())

    def _start_poller(self) -> None:
        if self.polling:
            return
        self._poll_task = asyncio.create_task(self._poll_while_disconnected())

    async def _poll_while_disconnected(self) -> None:
        logger.info("notification_poller_started", interval=self.poll_interval)
        while not self._stopped:
            try:
                await asyncio.wait_for(self._connected.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                await self.controller.fetch_notifications()
                continue

            # The socket may have closed again before this task resumed
            if self._connected.is_set():
                break

        logger.info("notification_poller_stopped")
