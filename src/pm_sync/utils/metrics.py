"""Prometheus metrics for observability."""

from functools import lru_cache

from prometheus_client import Counter, Gauge, Histogram, Info

from pm_sync import __version__


class Metrics:
    """Prometheus metrics for the synchronization layer."""

    def __init__(self) -> None:
        """Initialize all metrics."""
        self.info = Info(
            "pm_sync",
            "Project-management sync client information",
        )
        self.info.info({"version": __version__})

        # API façade
        self.api_requests_total = Counter(
            "pm_sync_api_requests_total",
            "Total number of backend API requests",
            ["method", "resource", "status"],
        )

        self.api_request_duration_seconds = Histogram(
            "pm_sync_api_request_duration_seconds",
            "Duration of backend API requests in seconds",
            ["method", "resource"],
            buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
        )

        self.api_unauthorized_total = Counter(
            "pm_sync_api_unauthorized_total",
            "Total number of 401 responses that cleared the stored token",
        )

        self.unexpected_shapes_total = Counter(
            "pm_sync_unexpected_response_shapes_total",
            "Responses whose payload could not be normalized to the expected shape",
            ["resource"],
        )

        # Controllers
        self.stale_responses_dropped_total = Counter(
            "pm_sync_stale_responses_dropped_total",
            "Responses discarded because a newer request was issued on the same channel",
            ["controller"],
        )

        self.controller_errors_total = Counter(
            "pm_sync_controller_errors_total",
            "Failures surfaced as controller error state",
            ["controller", "operation"],
        )

        self.calendar_mode = Gauge(
            "pm_sync_calendar_degraded",
            "Calendar degraded mode (1=degraded, 0=online or cached)",
        )

        # Notification channel
        self.websocket_connected = Gauge(
            "pm_sync_websocket_connected",
            "Notification WebSocket status (1=connected, 0=disconnected)",
        )

        self.websocket_reconnects_total = Counter(
            "pm_sync_websocket_reconnects_total",
            "Total number of scheduled WebSocket reconnect attempts",
        )

        self.notifications_received_total = Counter(
            "pm_sync_notifications_received_total",
            "Total number of notifications received",
            ["source", "type"],
        )

        self.notification_polls_total = Counter(
            "pm_sync_notification_polls_total",
            "Total number of fallback notification polls",
            ["status"],
        )

        self.unread_notifications = Gauge(
            "pm_sync_unread_notifications",
            "Current unread notification count",
        )

    def record_api_request(
        self,
        method: str,
        resource: str,
        status: str,
        duration: float,
    ) -> None:
        """Record a backend API request.

        Args:
            method: HTTP method
            resource: Endpoint group (first path segment, e.g. "projects")
            status: Status code as a string, or "error" for transport failures
            duration: Request duration in seconds
        """
        self.api_requests_total.labels(
            method=method,
            resource=resource,
            status=status,
        ).inc()
        self.api_request_duration_seconds.labels(
            method=method,
            resource=resource,
        ).observe(duration)

    def record_notification(self, source: str, notification_type: str) -> None:
        """Record a notification arriving from a push or a local send.

        Args:
            source: "push" or "local"
            notification_type: Notification type value
        """
        self.notifications_received_total.labels(
            source=source,
            type=notification_type,
        ).inc()


@lru_cache
def get_metrics() -> Metrics:
    """Get cached metrics instance."""
    return Metrics()
