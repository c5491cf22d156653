"""
Pydantic-based configuration models for HealthSync.

Each concern has its own BaseSettings class with a dedicated environment
prefix; AppConfig aggregates them.
"""

import json
import os
from typing import Annotated, Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def _parse_env_list(candidate: Any) -> list[str]:
    """Parse a string from the environment as JSON list or CSV."""
    if candidate is None:
        return []
    s = str(candidate).strip()
    if not s:
        return []
    try:
        loaded = json.loads(s)
        if isinstance(loaded, list):
            return [str(item).strip() for item in loaded if str(item).strip()]
    except json.JSONDecodeError:
        pass
    return [item.strip() for item in s.split(",") if item.strip()]


def _default_cors_origins() -> list[str]:
    """Default origins for the local web client; CORS_ALLOW_ORIGINS overrides them."""
    parsed = _parse_env_list(os.getenv("CORS_ORIGINS"))
    if parsed:
        return parsed
    return ["http://localhost:3000", "http://127.0.0.1:3000"]


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=5000, description="Server port")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1024 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1024-65535")
            raise ValueError("Port must be between 1024 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore"}


class RealtimeConfig(BaseSettings):
    """Server-side real-time endpoint configuration."""

    websocket_path: str = Field(default="/api/ws", description="Path of the WebSocket endpoint")
    client_url: str = Field(
        default="ws://127.0.0.1:5000/api/ws", description="Well-known endpoint the client transport connects to"
    )

    @field_validator("websocket_path")
    @classmethod
    def validate_websocket_path(cls, v: str) -> str:
        """WebSocket path must be absolute."""
        if not v.startswith("/"):
            raise ValueError("WebSocket path must start with '/'")
        return v

    @field_validator("client_url")
    @classmethod
    def validate_client_url(cls, v: str) -> str:
        """Client URL must use a WebSocket scheme."""
        if not v.startswith(("ws://", "wss://")):
            raise ValueError("Client URL must start with 'ws://' or 'wss://'")
        return v

    model_config = {"env_prefix": "REALTIME_", "case_sensitive": False, "extra": "ignore"}


class ReconnectionConfig(BaseSettings):
    """Client transport reconnection policy."""

    max_attempts: int | None = Field(
        default=None, description="Maximum consecutive reconnection attempts (unset = retry indefinitely)"
    )
    initial_delay: float = Field(default=1.0, description="Delay before the first reconnection attempt (seconds)")
    max_delay: float = Field(default=5.0, description="Upper bound for the backoff delay (seconds)")
    multiplier: float = Field(default=2.0, description="Backoff growth factor per attempt")
    jitter: float = Field(default=0.5, description="Randomization factor applied to each delay (0-1)")

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int | None) -> int | None:
        """Validate the attempt cap is positive when set."""
        if v is not None and v < 1:
            raise ValueError("max_attempts must be at least 1 when set")
        return v

    @field_validator("initial_delay", "max_delay")
    @classmethod
    def validate_delays(cls, v: float) -> float:
        """Validate delays are non-negative."""
        if v < 0:
            raise ValueError("Reconnection delays must be non-negative")
        return v

    @field_validator("multiplier")
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        """Validate backoff never shrinks."""
        if v < 1:
            raise ValueError("multiplier must be at least 1")
        return v

    @field_validator("jitter")
    @classmethod
    def validate_jitter(cls, v: float) -> float:
        """Validate jitter factor range."""
        if not 0 <= v <= 1:
            raise ValueError("jitter must be between 0 and 1")
        return v

    @model_validator(mode="after")
    def validate_delay_bounds(self) -> "ReconnectionConfig":
        """The ceiling cannot be below the first delay."""
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be greater than or equal to initial_delay")
        return self

    model_config = {"env_prefix": "REALTIME_RECONNECT_", "case_sensitive": False, "extra": "ignore"}


class NotificationConfig(BaseSettings):
    """User-visible notification behavior on the client."""

    default_duration: float = Field(default=4.0, description="Seconds a routine notification stays visible")
    emergency_duration: float = Field(default=10.0, description="Minimum seconds an emergency alert stays visible")
    history_size: int = Field(default=50, description="Number of recent notifications kept by the notifier")

    @field_validator("default_duration", "emergency_duration")
    @classmethod
    def validate_duration(cls, v: float) -> float:
        """Durations must be positive."""
        if v <= 0:
            raise ValueError("Notification durations must be positive")
        return v

    @field_validator("emergency_duration")
    @classmethod
    def validate_emergency_duration(cls, v: float) -> float:
        """Emergency alerts must stay visible at least ten seconds."""
        if v < 10.0:
            raise ValueError("Emergency notifications must remain visible at least 10 seconds")
        return v

    @field_validator("history_size")
    @classmethod
    def validate_history_size(cls, v: int) -> int:
        """History size must be positive."""
        if v < 1:
            raise ValueError("history_size must be at least 1")
        return v

    model_config = {"env_prefix": "NOTIFICATION_", "case_sensitive": False, "extra": "ignore"}


class FeedConfig(BaseSettings):
    """Health update feed configuration."""

    history_limit: int = Field(default=10, description="Number of recent health updates kept on the client")

    @field_validator("history_limit")
    @classmethod
    def validate_history_limit(cls, v: int) -> int:
        """History limit must be positive."""
        if v < 1:
            raise ValueError("history_limit must be at least 1")
        return v

    model_config = {"env_prefix": "FEED_", "case_sensitive": False, "extra": "ignore"}


class OfflineQueueConfig(BaseSettings):
    """Offline write queue configuration."""

    max_entries: int = Field(default=50, description="Maximum number of queued offline writes")
    storage_path: str | None = Field(default=None, description="JSON file used to persist the queue (unset = memory)")
    api_base_url: str = Field(default="http://127.0.0.1:5000", description="Base URL writes are replayed against")

    @field_validator("max_entries")
    @classmethod
    def validate_max_entries(cls, v: int) -> int:
        """Queue cap must be positive."""
        if v < 1:
            raise ValueError("max_entries must be at least 1")
        return v

    model_config = {"env_prefix": "OFFLINE_QUEUE_", "case_sensitive": False, "extra": "ignore"}


class EmergencyConfig(BaseSettings):
    """Emergency fallback configuration."""

    phone_number: str = Field(default="+2348060270792", description="Regional emergency number dialed as fallback")

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: str) -> str:
        """Phone number must be dialable digits with an optional leading '+'."""
        digits = v[1:] if v.startswith("+") else v
        if not digits.isdigit():
            raise ValueError("Emergency phone number must contain only digits and an optional leading '+'")
        return v

    model_config = {"env_prefix": "EMERGENCY_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="key_value", description="Log format")
    disable_logging: bool = Field(default=False, description="Disable all logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "e2e_test", "production"]
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["json", "key_value"]
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}, got '{v}'")
        return v

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}


class CORSConfig(BaseSettings):
    """Cross-origin resource sharing configuration."""

    allow_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=_default_cors_origins,
        description="Origins permitted to access the HealthSync API",
    )
    allow_credentials: bool = Field(default=True, description="Whether credentialed requests are accepted")
    allow_methods: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        description="HTTP methods permitted by CORS responses",
    )
    allow_headers: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["Content-Type", "Authorization", "X-Requested-With", "Accept"],
        description="Request headers permitted by CORS responses",
    )
    max_age: int = Field(default=600, description="Seconds browsers may cache CORS preflight responses")

    @field_validator("allow_origins", "allow_methods", "allow_headers", mode="before")
    @classmethod
    def parse_list(cls, v: Any) -> Any:
        """Accept JSON arrays or comma-separated strings from the environment."""
        if isinstance(v, str):
            return _parse_env_list(v)
        return v

    model_config = {"env_prefix": "CORS_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    This is the main configuration class that aggregates all other configs.
    Access via get_config() singleton function.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)
    reconnection: ReconnectionConfig = Field(default_factory=ReconnectionConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    offline_queue: OfflineQueueConfig = Field(default_factory=OfflineQueueConfig)
    emergency: EmergencyConfig = Field(default_factory=EmergencyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    cors: CORSConfig = Field(default_factory=CORSConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}
