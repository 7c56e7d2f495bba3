"""Configuration management using pydantic-settings.

This module provides configuration loading with the following precedence:
1. CLI arguments (highest priority)
2. Environment variables (PM_SYNC_* prefix)
3. Global config file (~/.config/pm-sync/config.toml)
4. Built-in defaults (lowest priority)
"""

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from pm_sync.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_API_BASE_URL = "http://localhost:3000/api"
DEFAULT_WS_URL = "ws://localhost:3001"


def get_config_path() -> Path:
    """Get the global config file path (XDG compliant).

    Returns:
        Path to config file:
        - Linux/macOS: ~/.config/pm-sync/config.toml
        - Windows: %APPDATA%/pm-sync/config.toml
    """
    if os.name == "nt":  # Windows
        base = Path(os.environ.get("APPDATA", Path.home()))
    else:  # Linux/macOS
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / "pm-sync" / "config.toml"


class Settings(BaseSettings):
    """Client settings loaded from environment variables.

    Environment variables use PM_SYNC_ prefix:
    - PM_SYNC_API_BASE_URL
    - PM_SYNC_WS_URL
    - PM_SYNC_LOG_LEVEL
    etc.
    """

    model_config = SettingsConfigDict(
        env_prefix="PM_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # REST API
    api_base_url: str = Field(default=DEFAULT_API_BASE_URL, description="Backend API base URL (with /api prefix)")
    api_timeout_seconds: float = Field(default=10.0, gt=0, description="HTTP request timeout in seconds")

    # WebSocket notification channel
    ws_url: str = Field(default=DEFAULT_WS_URL, description="Notification WebSocket URL")
    ws_reconnect_delay_seconds: float = Field(default=5.0, gt=0, description="Delay before reconnecting a socket")

    # Notifications
    notification_poll_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Polling interval used while the WebSocket is disconnected",
    )
    notification_list_limit: int = Field(default=50, ge=1, description="Maximum notifications kept in memory")

    # Local storage
    storage_path: str = Field(
        default="~/.local/share/pm-sync/storage.db",
        description="SQLite file standing in for browser local storage",
    )

    # Credentials (optional, used by the CLI login command)
    username: str | None = Field(default=None, description="Default login email or username")
    password: SecretStr | None = Field(default=None, description="Default login password")

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format",
    )
    log_file: str | None = Field(default=None, description="Log file path (optional)")

    # Status server
    metrics_enabled: bool = Field(default=False, description="Enable the status/metrics HTTP server")
    status_host: str = Field(default="127.0.0.1", description="Status server bind address")
    status_port: int = Field(default=9090, description="Status server port")

    # Feature flags
    enable_real_time_updates: bool = Field(default=True, description="Open the notification WebSocket")
    enable_notifications: bool = Field(default=True, description="Fetch and track notifications")

    @property
    def resolved_storage_path(self) -> Path:
        """Storage path with ~ expanded."""
        return Path(self.storage_path).expanduser()


def load_toml_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from TOML file.

    Args:
        path: Path to config file (uses default if None)

    Returns:
        Configuration dictionary (empty if file doesn't exist)
    """
    config_path = path or get_config_path()
    if config_path.exists():
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    return {}


# (toml section, toml key) -> Settings field
_TOML_FIELDS: dict[tuple[str, str], str] = {
    ("api", "base_url"): "api_base_url",
    ("api", "timeout_seconds"): "api_timeout_seconds",
    ("api", "username"): "username",
    ("api", "password"): "password",
    ("websocket", "url"): "ws_url",
    ("websocket", "reconnect_delay_seconds"): "ws_reconnect_delay_seconds",
    ("notifications", "poll_interval_seconds"): "notification_poll_interval_seconds",
    ("notifications", "list_limit"): "notification_list_limit",
    ("storage", "path"): "storage_path",
    ("server", "log_level"): "log_level",
    ("server", "log_format"): "log_format",
    ("server", "log_file"): "log_file",
    ("server", "metrics_enabled"): "metrics_enabled",
    ("server", "host"): "status_host",
    ("server", "port"): "status_port",
    ("features", "real_time_updates"): "enable_real_time_updates",
    ("features", "notifications"): "enable_notifications",
}


def flatten_toml_config(toml_config: dict[str, Any]) -> dict[str, Any]:
    """Flatten nested TOML config to flat dictionary for Settings.

    Args:
        toml_config: Nested TOML configuration

    Returns:
        Flattened configuration dictionary
    """
    overrides: dict[str, Any] = {}
    for (section, key), field_name in _TOML_FIELDS.items():
        values = toml_config.get(section)
        if isinstance(values, dict) and key in values:
            overrides[field_name] = values[key]
    return overrides


def _env_overridden_fields() -> set[str]:
    prefix = Settings.model_config.get("env_prefix", "")
    return {
        name
        for name in Settings.model_fields
        if f"{prefix}{name}".upper() in {k.upper() for k in os.environ}
    }


def load_settings_with_toml(
    config_path: Path | None = None,
    **cli_overrides: Any,
) -> Settings:
    """Load settings with TOML config as base, env vars and CLI as overrides.

    Args:
        config_path: Optional path to TOML config file
        **cli_overrides: Values given on the command line (None values ignored)

    Returns:
        Settings instance with merged configuration
    """
    toml_values = flatten_toml_config(load_toml_config(config_path))

    # Init kwargs beat env vars in pydantic-settings, so drop TOML values
    # that the environment already provides.
    env_fields = _env_overridden_fields()
    merged = {k: v for k, v in toml_values.items() if k not in env_fields}
    merged.update({k: v for k, v in cli_overrides.items() if v is not None})
    return Settings(**merged)


def validate_environment(settings: Settings) -> dict[str, Any]:
    """Report recommended settings that are still at their built-in defaults.

    Args:
        settings: Settings to check

    Returns:
        Dictionary with is_valid flag and the list of defaulted settings
    """
    defaulted = []
    if settings.api_base_url == DEFAULT_API_BASE_URL:
        defaulted.append("api_base_url")

    for name in defaulted:
        logger.warning("setting_uses_default", setting=name, value=getattr(settings, name))

    return {
        "is_valid": not defaulted,
        "defaulted": defaulted,
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance (cached)
    """
    return Settings()
