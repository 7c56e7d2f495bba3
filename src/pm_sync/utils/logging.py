"""Structured logging configuration using structlog."""

import logging
import sys
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from pm_sync.config import Settings

SENSITIVE_KEYS = {
    "password",
    "passwd",
    "confirm_password",
    "token",
    "authtoken",
    "secret",
    "authorization",
    "credential",
    "api_key",
}


def sanitize_for_logging(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Redact sensitive information from log events.

    Redacts:
    - Passwords
    - Bearer and invitation tokens
    - Authorization headers
    """

    def redact_value(key: str, value: Any) -> Any:
        key_lower = key.lower()
        for sensitive in SENSITIVE_KEYS:
            if sensitive in key_lower:
                if isinstance(value, str) and len(value) > 8:
                    return f"{value[:4]}...{value[-4:]}"
                return "***REDACTED***"
        if isinstance(value, dict):
            return {k: redact_value(str(k), v) for k, v in value.items()}
        return value

    return {k: redact_value(k, v) for k, v in event_dict.items()}


def setup_logging(settings: "Settings | None" = None, use_stderr: bool = False) -> None:
    """Configure structured logging based on settings.

    Args:
        settings: Settings to use (cached global settings if None)
        use_stderr: Log to stderr so stdout stays clean for command output
    """
    if settings is None:
        from pm_sync.config import get_settings

        settings = get_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        sanitize_for_logging,
    ]

    if settings.log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr if use_stderr else sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.log_level))

    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=shared_processors,
            )
        )
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


@lru_cache(maxsize=128)
def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a cached structured logger by name.

    Args:
        name: Logger name, typically __name__

    Returns:
        Bound structured logger
    """
    return structlog.get_logger(name)
