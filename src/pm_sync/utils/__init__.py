"""Shared utilities."""

from pm_sync.utils.logging import get_logger, setup_logging
from pm_sync.utils.metrics import get_metrics

__all__ = [
    "get_logger",
    "setup_logging",
    "get_metrics",
]
