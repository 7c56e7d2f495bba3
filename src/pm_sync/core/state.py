"""Shared state-controller plumbing."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pm_sync.exceptions import error_message
from pm_sync.utils.logging import get_logger
from pm_sync.utils.metrics import get_metrics

logger = get_logger(__name__)
metrics = get_metrics()

T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """Outcome of a controller command.

    Failures are reported here and on ``controller.error``; they are never
    raised to the caller.
    """

    success: bool
    error: str | None = None
    value: T | None = None
    field_errors: dict[str, str] | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "OperationResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> "OperationResult[T]":
        return cls(success=False, error=error)

    @classmethod
    def invalid(cls, field_errors: dict[str, str]) -> "OperationResult[T]":
        return cls(success=False, error="Please correct the highlighted fields", field_errors=field_errors)


class RequestSequencer:
    """Issues per-channel tickets so only the newest response is applied.

    Each fetch takes a ticket before awaiting the network. When the response
    arrives, ``is_current`` tells whether a newer fetch was started in the
    meantime; if so the stale response must be discarded.
    """

    def __init__(self) -> None:
        self._latest: dict[str, int] = {}

    def next(self, channel: str) -> int:
        ticket = self._latest.get(channel, 0) + 1
        self._latest[channel] = ticket
        return ticket

    def is_current(self, channel: str, ticket: int) -> bool:
        return self._latest.get(channel) == ticket

    def invalidate(self, channel: str) -> None:
        """Make every outstanding ticket on ``channel`` stale."""
        self.next(channel)


class StateController:
    """Base for controllers holding one entity family in memory.

    Provides loading/error state, change subscription and stale-response
    protection. Subclasses call ``_notify`` after every state change.
    """

    name = "controller"

    def __init__(self) -> None:
        self.loading = False
        self.error: str | None = None
        self._listeners: list[Callable[["StateController"], Any]] = []
        self._sequencer = RequestSequencer()

    def subscribe(self, listener: Callable[["StateController"], Any]) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error("state_listener_failed", controller=self.name, error=str(e))

    def _set_loading(self, loading: bool) -> None:
        self.loading = loading
        self._notify()

    def _fail(self, operation: str, exc: BaseException, fallback: str) -> str:
        """Record a failure as the controller's inline error message."""
        message = error_message(exc, fallback)
        self.error = message
        metrics.controller_errors_total.labels(controller=self.name, operation=operation).inc()
        logger.warning(
            "controller_operation_failed",
            controller=self.name,
            operation=operation,
            error=str(exc),
            message=message,
        )
        return message

    def _is_stale(self, channel: str, ticket: int) -> bool:
        if self._sequencer.is_current(channel, ticket):
            return False
        metrics.stale_responses_dropped_total.labels(controller=self.name).inc()
        logger.debug("stale_response_dropped", controller=self.name, channel=channel, ticket=ticket)
        return True
