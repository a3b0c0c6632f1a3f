"""
Presence Stream Configuration
=============================

This module handles configuration loading for the presence stream client.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    PRESENCE_API_URL             -> api.url
    PRESENCE_API_TOKEN           -> api.authentication
    PRESENCE_CLIENT_KEY          -> api.client_key
    PRESENCE_RECONNECT_MIN       -> stream.reconnect_delay_min_seconds
    PRESENCE_RECONNECT_MAX       -> stream.reconnect_delay_max_seconds
    PRESENCE_RECONNECT_INCREMENT -> stream.reconnect_delay_increment_seconds
    PRESENCE_GROUP_KEY           -> identity.group_key
    PRESENCE_BUILD_ID            -> identity.build_id
    PRESENCE_LOG_LEVEL           -> logging.level
    PRESENCE_LOG_FORMAT          -> logging.format

Example:
    from presence_stream.config import settings

    print(settings.api.url)
    print(settings.stream.backoff_policy())
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, model_validator

from presence_stream import __version__
from presence_stream.stream.backoff import BackoffPolicy


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ClientConfig(BaseModel):
    """Client identification sent with every request."""

    name: str = Field(default="presence-stream", description="Client name for User-Agent")
    version: str = Field(default=__version__, description="Client version for User-Agent")


class ApiConfig(BaseModel):
    """Presence service connection configuration."""

    url: str = Field(
        default="http://127.0.0.1:8001/",
        description="Base URL of the presence service",
    )
    request_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout for one-shot requests and connection setup",
    )
    authentication: str = Field(
        default="",
        description="Authorization header value (empty = none)",
    )
    client_key: str = Field(
        default="",
        description="X-Client-Key header value (empty = none)",
    )


class StreamConfig(BaseModel):
    """Event stream configuration."""

    player_events_path: str = Field(
        default="api/stream",
        description="Path of the binary player event stream",
    )
    announcements_path: str = Field(
        default="api/announcements/stream",
        description="Path of the server-sent announcement stream",
    )
    read_timeout_seconds: Optional[float] = Field(
        default=90.0,
        description="Fault the stream if nothing (not even a heartbeat) arrives for this long (None = wait forever)",
    )
    reconnect_delay_min_seconds: float = Field(
        default=5.0,
        ge=0,
        description="First wait after a stream failure",
    )
    reconnect_delay_max_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Longest wait between reconnection attempts",
    )
    reconnect_delay_increment_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Added to the wait after every failed attempt",
    )

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "StreamConfig":
        if self.reconnect_delay_max_seconds < self.reconnect_delay_min_seconds:
            raise ValueError(
                "reconnect_delay_max_seconds must be >= reconnect_delay_min_seconds"
            )
        return self

    def backoff_policy(self) -> BackoffPolicy:
        """Build the reconnect policy from these settings."""
        return BackoffPolicy(
            minimum=self.reconnect_delay_min_seconds,
            maximum=self.reconnect_delay_max_seconds,
            increment=self.reconnect_delay_increment_seconds,
        )


class IdentityConfig(BaseModel):
    """Identifier hashing configuration."""

    group_key: str = Field(
        default="",
        description="Shared secret scoping which peers can verify identifiers",
    )
    build_id: str = Field(
        default=f"presence-stream/{__version__}",
        description="Build-specific value mixed into every digest",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the presence stream client.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    client: ClientConfig = Field(default_factory=ClientConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    # Find config file
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # API settings
    if env_url := os.environ.get("PRESENCE_API_URL"):
        config_data.setdefault("api", {})["url"] = env_url
    if env_token := os.environ.get("PRESENCE_API_TOKEN"):
        config_data.setdefault("api", {})["authentication"] = env_token
    if env_key := os.environ.get("PRESENCE_CLIENT_KEY"):
        config_data.setdefault("api", {})["client_key"] = env_key

    # Stream settings
    if env_min := os.environ.get("PRESENCE_RECONNECT_MIN"):
        config_data.setdefault("stream", {})["reconnect_delay_min_seconds"] = float(env_min)
    if env_max := os.environ.get("PRESENCE_RECONNECT_MAX"):
        config_data.setdefault("stream", {})["reconnect_delay_max_seconds"] = float(env_max)
    if env_inc := os.environ.get("PRESENCE_RECONNECT_INCREMENT"):
        config_data.setdefault("stream", {})["reconnect_delay_increment_seconds"] = float(env_inc)

    # Identity settings
    if env_group := os.environ.get("PRESENCE_GROUP_KEY"):
        config_data.setdefault("identity", {})["group_key"] = env_group
    if env_build := os.environ.get("PRESENCE_BUILD_ID"):
        config_data.setdefault("identity", {})["build_id"] = env_build

    # Logging settings
    if env_log := os.environ.get("PRESENCE_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log
    if env_fmt := os.environ.get("PRESENCE_LOG_FORMAT"):
        config_data.setdefault("logging", {})["format"] = env_fmt


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    # httpx logs every request at INFO, too noisy next to a long-lived stream
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
