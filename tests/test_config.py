"""
Configuration Tests
===================

Tests for settings defaults, YAML loading and environment overrides.
"""

import logging

import pytest
from pydantic import ValidationError

from presence_stream.config import Settings, StreamConfig, load_config, setup_logging
from presence_stream.stream.backoff import BackoffPolicy


ENV_VARS = (
    "PRESENCE_API_URL",
    "PRESENCE_API_TOKEN",
    "PRESENCE_CLIENT_KEY",
    "PRESENCE_RECONNECT_MIN",
    "PRESENCE_RECONNECT_MAX",
    "PRESENCE_RECONNECT_INCREMENT",
    "PRESENCE_GROUP_KEY",
    "PRESENCE_BUILD_ID",
    "PRESENCE_LOG_LEVEL",
    "PRESENCE_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Isolate tests from PRESENCE_* variables in the outer environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "api:\n"
        "  url: https://presence.example/\n"
        "stream:\n"
        "  reconnect_delay_min_seconds: 2\n"
        "  reconnect_delay_max_seconds: 30\n"
        "identity:\n"
        "  group_key: friends\n"
    )
    return path


class TestDefaults:
    """Tests for default settings."""

    def test_defaults(self):
        settings = Settings()

        assert settings.api.url == "http://127.0.0.1:8001/"
        assert settings.stream.player_events_path == "api/stream"
        assert settings.stream.reconnect_delay_min_seconds == 5.0
        assert settings.stream.reconnect_delay_max_seconds == 60.0
        assert settings.stream.reconnect_delay_increment_seconds == 5.0
        assert settings.logging.level == "INFO"

    def test_backoff_policy(self):
        stream = StreamConfig(
            reconnect_delay_min_seconds=1,
            reconnect_delay_max_seconds=9,
            reconnect_delay_increment_seconds=2,
        )

        assert stream.backoff_policy() == BackoffPolicy(minimum=1.0, maximum=9.0, increment=2.0)

    def test_max_below_min_rejected(self):
        with pytest.raises(ValidationError):
            StreamConfig(reconnect_delay_min_seconds=10, reconnect_delay_max_seconds=5)

    def test_negative_delay_rejected(self):
        with pytest.raises(ValidationError):
            StreamConfig(reconnect_delay_increment_seconds=-1)

    def test_read_timeout_may_be_disabled(self):
        assert StreamConfig(read_timeout_seconds=None).read_timeout_seconds is None


class TestLoadConfig:
    """Tests for load_config()."""

    def test_yaml_values(self, config_file):
        settings = load_config(str(config_file))

        assert settings.api.url == "https://presence.example/"
        assert settings.stream.reconnect_delay_min_seconds == 2.0
        assert settings.stream.reconnect_delay_max_seconds == 30.0
        assert settings.identity.group_key == "friends"
        # Untouched sections keep their defaults
        assert settings.stream.reconnect_delay_increment_seconds == 5.0

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = load_config(str(tmp_path / "missing.yaml"))

        assert settings == Settings()

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(str(path)) == Settings()

    def test_env_overrides_yaml(self, config_file, monkeypatch):
        monkeypatch.setenv("PRESENCE_API_URL", "https://override.example/")
        monkeypatch.setenv("PRESENCE_RECONNECT_MIN", "3")
        monkeypatch.setenv("PRESENCE_GROUP_KEY", "env-group")
        monkeypatch.setenv("PRESENCE_API_TOKEN", "Bearer env")
        monkeypatch.setenv("PRESENCE_LOG_LEVEL", "DEBUG")

        settings = load_config(str(config_file))

        assert settings.api.url == "https://override.example/"
        assert settings.api.authentication == "Bearer env"
        assert settings.stream.reconnect_delay_min_seconds == 3.0
        assert settings.stream.reconnect_delay_max_seconds == 30.0
        assert settings.identity.group_key == "env-group"
        assert settings.logging.level == "DEBUG"

    def test_invalid_env_value_rejected(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PRESENCE_RECONNECT_MIN", "90")

        with pytest.raises(ValidationError):
            load_config(str(tmp_path / "missing.yaml"))


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_quiets_httpx(self):
        setup_logging(Settings())

        assert logging.getLogger("httpx").level == logging.WARNING
