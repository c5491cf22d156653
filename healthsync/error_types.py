"""
Centralized error types and constants for HealthSync.

Every error frame sent over the WebSocket carries one of these types, so
clients can branch on error_type without parsing messages.
"""

from enum import Enum
from typing import Any


class ErrorType(Enum):
    """Error categories reported to WebSocket clients."""

    # Inbound frame problems
    INVALID_FORMAT = "invalid_format"
    UNKNOWN_EVENT = "unknown_event"
    NOT_JOINED = "not_joined"

    # Server side
    MESSAGE_PROCESSING_ERROR = "message_processing_error"
    INTERNAL_ERROR = "internal_error"


def create_websocket_error_response(
    error_type: ErrorType,
    message: str,
    user_friendly: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a standardized WebSocket error payload.

    Args:
        error_type: The type of error
        message: Technical error message
        user_friendly: User-friendly error message (optional)
        details: Additional error details (optional)

    Returns:
        The data field of an ``error`` envelope
    """
    return {
        "error_type": error_type.value,
        "message": message,
        "user_friendly": user_friendly or message,
        "details": details or {},
    }


class ErrorMessages:
    """User-facing text for each error type."""

    INVALID_FORMAT = "Invalid format provided"
    UNKNOWN_EVENT = "Unsupported event"
    NOT_JOINED = "Join your room before sending updates"
    MESSAGE_PROCESSING_ERROR = "Error processing message"
    SYSTEM_UNAVAILABLE = "Service temporarily unavailable"
