"""Unit tests for logging and metrics utilities."""

import logging
from unittest.mock import MagicMock

from prometheus_client import REGISTRY

from pm_sync.config import Settings
from pm_sync.utils.logging import get_logger, sanitize_for_logging, setup_logging
from pm_sync.utils.metrics import Metrics, get_metrics


class TestSanitizeForLogging:
    """Tests for sanitize_for_logging processor."""

    def test_redacts_password(self) -> None:
        """Test that passwords are fully redacted."""
        result = sanitize_for_logging(MagicMock(), "info", {"event": "login", "password": "abc"})

        assert result["password"] == "***REDACTED***"
        assert result["event"] == "login"

    def test_masks_long_token(self) -> None:
        """Test that long tokens keep only their ends."""
        result = sanitize_for_logging(MagicMock(), "info", {"authToken": "eyJhbGciOiJIUzI1NiJ9.payload"})

        assert result["authToken"] == "eyJh...load"

    def test_redacts_nested(self) -> None:
        """Test that nested dicts are sanitized."""
        result = sanitize_for_logging(
            MagicMock(),
            "info",
            {"headers": {"Authorization": "Bearer abcdefghijkl", "Accept": "json"}},
        )

        assert result["headers"]["Authorization"] == "Bear...ijkl"
        assert result["headers"]["Accept"] == "json"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_configures_root_level(self, tmp_path) -> None:
        """Test root level and file handler follow settings."""
        log_file = tmp_path / "pm-sync.log"
        settings = Settings(log_level="WARNING", log_format="console", log_file=str(log_file))

        setup_logging(settings, use_stderr=True)

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
        for handler in root.handlers:
            handler.close()
        root.handlers.clear()

    def test_get_logger_cached(self) -> None:
        """Test loggers are cached by name."""
        assert get_logger("pm_sync.test") is get_logger("pm_sync.test")


class TestMetrics:
    """Tests for the metrics registry."""

    def test_singleton(self) -> None:
        """Test get_metrics returns one shared instance."""
        assert isinstance(get_metrics(), Metrics)
        assert get_metrics() is get_metrics()

    def test_record_notification(self) -> None:
        """Test notification counters are labelled by source and type."""
        labels = {"source": "local", "type": "custom"}
        before = REGISTRY.get_sample_value("pm_sync_notifications_received_total", labels) or 0

        get_metrics().record_notification("local", "custom")

        assert REGISTRY.get_sample_value("pm_sync_notifications_received_total", labels) == before + 1
