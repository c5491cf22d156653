"""
Exception hierarchy for HealthSync.

Every error carries an ErrorContext and logs itself when constructed, so
callers that catch and degrade gracefully still leave a structured trace.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """
    Contextual information for error handling.

    Provides structured context for error reporting and debugging.
    """

    user_id: str | None = None
    connection_id: str | None = None
    event_type: str | None = None
    endpoint: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "user_id": self.user_id,
            "connection_id": self.connection_id,
            "event_type": self.event_type,
            "endpoint": self.endpoint,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class HealthSyncError(Exception):
    """
    Base exception for all HealthSync errors.

    Provides structured error handling with context and metadata
    for proper error categorization and debugging.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        """
        Initialize HealthSync error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
            user_friendly: User-friendly error message
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.user_friendly = user_friendly or message
        self.timestamp = datetime.now(UTC)

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with structured context."""
        logger.error(
            "HealthSync error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "user_friendly": self.user_friendly,
            "context": self.context.to_dict(),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class RealtimeError(HealthSyncError):
    """Errors raised by the real-time notification layer."""


class UnknownConnectionError(RealtimeError):
    """A connection id was used that the room registry does not track."""

    def __init__(self, connection_id: str, context: ErrorContext | None = None, **kwargs: Any):
        context = context or ErrorContext(connection_id=connection_id)
        super().__init__(f"Unknown connection '{connection_id}'", context, **kwargs)
        self.connection_id = connection_id
        self.details["connection_id"] = connection_id


class InvalidHealthUpdateTypeError(RealtimeError):
    """An update type outside the closed set of health update types."""

    def __init__(self, value: Any, context: ErrorContext | None = None, **kwargs: Any):
        super().__init__(f"Unsupported health update type: {value!r}", context, **kwargs)
        self.value = value
        self.details["value"] = str(value)


class MessageValidationError(RealtimeError):
    """An inbound WebSocket message could not be parsed or validated."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        event_type: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, context, **kwargs)
        self.event_type = event_type
        if event_type:
            self.details["event_type"] = event_type


class OfflineSyncError(HealthSyncError):
    """The offline queue could not be persisted or a queued write could not be replayed."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        endpoint: str | None = None,
        method: str | None = None,
        **kwargs: Any,
    ):
        context = context or ErrorContext(endpoint=endpoint)
        super().__init__(message, context, **kwargs)
        self.endpoint = endpoint
        self.method = method
        if endpoint:
            self.details["endpoint"] = endpoint
        if method:
            self.details["method"] = method

