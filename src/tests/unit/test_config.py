"""Unit tests for configuration module."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
import tomli_w
from pydantic import SecretStr, ValidationError

from pm_sync.config import (
    DEFAULT_API_BASE_URL,
    Settings,
    flatten_toml_config,
    get_config_path,
    load_settings_with_toml,
    load_toml_config,
    validate_environment,
)


def write_toml(path: Path, data: dict) -> Path:
    with open(path, "wb") as f:
        tomli_w.dump(data, f)
    return path


class TestSettings:
    """Tests for Settings class."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings()

            assert settings.api_base_url == "http://localhost:3000/api"
            assert settings.ws_url == "ws://localhost:3001"
            assert settings.api_timeout_seconds == 10.0
            assert settings.ws_reconnect_delay_seconds == 5.0
            assert settings.notification_poll_interval_seconds == 30.0
            assert settings.notification_list_limit == 50
            assert settings.log_level == "INFO"
            assert settings.log_format == "json"
            assert settings.metrics_enabled is False

    def test_environment_override(self) -> None:
        """Test environment variable override."""
        with patch.dict(
            os.environ,
            {
                "PM_SYNC_API_BASE_URL": "https://pm.example.com/api",
                "PM_SYNC_WS_URL": "wss://pm.example.com/ws",
                "PM_SYNC_LOG_LEVEL": "DEBUG",
                "PM_SYNC_ENABLE_REAL_TIME_UPDATES": "false",
            },
            clear=True,
        ):
            settings = Settings()

            assert settings.api_base_url == "https://pm.example.com/api"
            assert settings.ws_url == "wss://pm.example.com/ws"
            assert settings.log_level == "DEBUG"
            assert settings.enable_real_time_updates is False

    def test_password_is_secret(self) -> None:
        """Test password is stored as SecretStr and masked in dumps."""
        with patch.dict(os.environ, {"PM_SYNC_PASSWORD": "hunter22"}, clear=True):
            settings = Settings()

            assert isinstance(settings.password, SecretStr)
            assert settings.password.get_secret_value() == "hunter22"
            assert "hunter22" not in str(settings.model_dump(mode="json"))

    def test_invalid_values_rejected(self) -> None:
        """Test non-positive intervals are rejected."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError):
                Settings(api_timeout_seconds=0)

    def test_storage_path_expanded(self) -> None:
        """Test ~ is expanded in the storage path."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(storage_path="~/pm/storage.db")

            assert "~" not in str(settings.resolved_storage_path)


class TestTomlConfig:
    """Tests for TOML loading and precedence."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file yields an empty config."""
        assert load_toml_config(tmp_path / "missing.toml") == {}

    def test_flatten(self) -> None:
        """Test sections map onto settings fields and unknown keys are dropped."""
        flat = flatten_toml_config(
            {
                "api": {"base_url": "http://api/api", "unknown": 1},
                "server": {"port": 9999},
                "features": {"notifications": False},
            }
        )

        assert flat == {"api_base_url": "http://api/api", "status_port": 9999, "enable_notifications": False}

    def test_toml_used_when_no_env(self, tmp_path: Path) -> None:
        """Test TOML values apply over defaults."""
        path = write_toml(tmp_path / "config.toml", {"websocket": {"url": "ws://toml:1"}})

        with patch.dict(os.environ, {}, clear=True):
            settings = load_settings_with_toml(path)

        assert settings.ws_url == "ws://toml:1"

    def test_env_beats_toml(self, tmp_path: Path) -> None:
        """Test environment variables win over the TOML file."""
        path = write_toml(tmp_path / "config.toml", {"websocket": {"url": "ws://toml:1"}})

        with patch.dict(os.environ, {"PM_SYNC_WS_URL": "ws://env:2"}, clear=True):
            settings = load_settings_with_toml(path)

        assert settings.ws_url == "ws://env:2"

    def test_cli_beats_env(self, tmp_path: Path) -> None:
        """Test CLI overrides win and None overrides are ignored."""
        path = write_toml(tmp_path / "config.toml", {"server": {"log_level": "WARNING"}})

        with patch.dict(os.environ, {"PM_SYNC_LOG_LEVEL": "ERROR"}, clear=True):
            settings = load_settings_with_toml(path, log_level="DEBUG", api_base_url=None)

        assert settings.log_level == "DEBUG"
        assert settings.api_base_url == DEFAULT_API_BASE_URL

    def test_config_path_honours_xdg(self, tmp_path: Path) -> None:
        """Test XDG_CONFIG_HOME moves the config file."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}, clear=True):
            if os.name != "nt":
                assert get_config_path() == tmp_path / "pm-sync" / "config.toml"


class TestValidateEnvironment:
    """Tests for validate_environment."""

    def test_default_url_flagged(self) -> None:
        """Test the built-in API URL is reported."""
        with patch.dict(os.environ, {}, clear=True):
            result = validate_environment(Settings())

        assert result == {"is_valid": False, "defaulted": ["api_base_url"]}

    def test_configured(self) -> None:
        """Test a configured URL passes."""
        with patch.dict(os.environ, {}, clear=True):
            result = validate_environment(Settings(api_base_url="https://pm.example.com/api"))

        assert result["is_valid"] is True
