"""Event emitter and toast publish/subscribe bus."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import count
from typing import Any

from pm_sync.utils.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[..., Any]
Unsubscribe = Callable[[], None]


class EventEmitter:
    """Named-event emitter with persistent and fire-once listeners.

    ``once`` listeners are removed before they are invoked, so a listener that
    triggers the same event again is not re-entered.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[Listener, bool]]] = {}

    def on(self, event: str, listener: Listener) -> Unsubscribe:
        """Register a listener for every emission of ``event``."""
        self._listeners.setdefault(event, []).append((listener, False))
        return lambda: self.off(event, listener)

    def once(self, event: str, listener: Listener) -> Unsubscribe:
        """Register a listener for the next emission of ``event`` only."""
        self._listeners.setdefault(event, []).append((listener, True))
        return lambda: self.off(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        """Remove a listener. Unknown listeners are ignored."""
        listeners = self._listeners.get(event)
        if not listeners:
            return
        self._listeners[event] = [(fn, once) for fn, once in listeners if fn is not listener]

    def clear(self, event: str | None = None) -> None:
        """Drop all listeners for one event, or for every event."""
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any, **kwargs: Any) -> list[Any]:
        """Invoke listeners registered for ``event``.

        Listener exceptions are logged and do not stop delivery to the
        remaining listeners.

        Returns:
            Return values of the listeners that completed, in call order
        """
        listeners = self._listeners.get(event, [])
        if not listeners:
            return []

        self._listeners[event] = [(fn, once) for fn, once in listeners if not once]

        results = []
        for listener, _ in listeners:
            try:
                results.append(listener(*args, **kwargs))
            except Exception as e:
                logger.error("event_listener_failed", event_name=event, error=str(e))
        return results


@dataclass(frozen=True)
class Toast:
    """Transient user-facing message."""

    id: int
    type: str
    title: str
    message: str
    duration: float = 5.0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ToastBus:
    """Publish/subscribe channel for toasts.

    Any component holding the bus can raise a toast; every subscriber (a
    terminal renderer, a test, the status server) receives it.
    """

    TOPIC = "toast"

    def __init__(self) -> None:
        self._emitter = EventEmitter()
        self._ids = count(1)

    def subscribe(self, listener: Callable[[Toast], Any]) -> Unsubscribe:
        return self._emitter.on(self.TOPIC, listener)

    def publish(self, toast_type: str, title: str, message: str, duration: float = 5.0) -> Toast:
        toast = Toast(
            id=next(self._ids),
            type=toast_type,
            title=title,
            message=message,
            duration=duration,
        )
        self._emitter.emit(self.TOPIC, toast)
        return toast

    def success(self, title: str, message: str, duration: float = 5.0) -> Toast:
        return self.publish("success", title, message, duration)

    def error(self, title: str, message: str, duration: float = 5.0) -> Toast:
        return self.publish("error", title, message, duration)

    def warning(self, title: str, message: str, duration: float = 5.0) -> Toast:
        return self.publish("warning", title, message, duration)

    def info(self, title: str, message: str, duration: float = 5.0) -> Toast:
        return self.publish("info", title, message, duration)

    def comment(self, title: str, message: str, duration: float = 5.0) -> Toast:
        return self.publish("comment", title, message, duration)

    def assignment(self, title: str, message: str, duration: float = 5.0) -> Toast:
        return self.publish("assignment", title, message, duration)

    def status_change(self, title: str, message: str, duration: float = 5.0) -> Toast:
        return self.publish("status_change", title, message, duration)

    def milestone(self, title: str, message: str, duration: float = 5.0) -> Toast:
        return self.publish("milestone", title, message, duration)
