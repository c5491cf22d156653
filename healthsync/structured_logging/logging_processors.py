"""
Logging processors for structlog event processing.

This module provides processors for sanitizing sensitive data and adding
correlation information to log entries.
"""

import re
import uuid
from typing import Any

# These patterns match whole words or specific suffixes/prefixes
SENSITIVE_PATTERNS = [
    r"\bpassword\b",
    r"\btoken\b",
    r"\bsecret\b",
    r"_key\b",
    r"^key$",
    r"\bcredential\b",
    r"\bjwt\b",
    r"\bbearer\b",
    r"\bauthorization\b",
]

# Health payload fields are opaque to the notification layer and can carry
# clinical data, so they are never written to logs verbatim.
PAYLOAD_FIELDS = {"payload", "data", "request_payload"}


def sanitize_sensitive_data(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive data from log entries.

    Credentials are redacted by key name; health payloads are replaced by a
    short description of their shape.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to sanitize

    Returns:
        Sanitized event dictionary
    """

    def sanitize_dict(d: dict[str, Any]) -> dict[str, Any]:
        """Recursively sanitize dictionary values."""
        sanitized: dict[str, Any] = {}
        for key, value in d.items():
            key_lower = str(key).lower()
            if key_lower in PAYLOAD_FIELDS and value is not None:
                sanitized[key] = _describe_payload(value)
            elif isinstance(value, dict):
                sanitized[key] = sanitize_dict(value)
            elif any(re.search(pattern, key_lower) for pattern in SENSITIVE_PATTERNS):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = value
        return sanitized

    return sanitize_dict(event_dict)


def _describe_payload(value: Any) -> str:
    if isinstance(value, dict):
        return f"<{len(value)} field(s): {', '.join(sorted(str(k) for k in value))}>"
    if isinstance(value, list | tuple):
        return f"<{len(value)} item(s)>"
    return f"<{type(value).__name__}>"


def add_correlation_id(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add correlation ID to log entries if not already present.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to enhance

    Returns:
        Enhanced event dictionary with correlation ID
    """
    if "correlation_id" not in event_dict:
        event_dict["correlation_id"] = str(uuid.uuid4())

    return event_dict
