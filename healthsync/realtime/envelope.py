"""
Event envelope utilities for HealthSync real-time messages.

Provides a single, consistent schema for frames sent over the WebSocket in
both directions:
- event_type: str
- timestamp: ISO 8601 UTC with 'Z'
- sequence_number: int (monotonic per sequence source)
- user_id: optional
- data: dict payload
"""

from __future__ import annotations

import itertools
import json
import uuid
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any

from ..exceptions import MessageValidationError


class UUIDEncoder(json.JSONEncoder):
    """Custom JSON encoder that handles UUID and datetime objects."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, uuid.UUID):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


def utc_now_z() -> str:
    """Return current UTC time in ISO 8601 format with 'Z' suffix."""
    return format_timestamp(datetime.now(UTC))


def format_timestamp(moment: datetime) -> str:
    """Format an aware datetime as ISO 8601 UTC with 'Z' suffix."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SequenceCounter:
    """Monotonic sequence numbers for one envelope producer."""

    def __init__(self) -> None:
        self._counter: Iterator[int] = itertools.count(1)
        self.last = 0

    def next(self) -> int:
        self.last = next(self._counter)
        return self.last


def build_event(
    event_type: str,
    data: dict[str, Any] | None = None,
    *,
    user_id: str | None = None,
    timestamp: datetime | None = None,
    sequence: SequenceCounter | None = None,
    sequence_number: int | None = None,
) -> dict[str, Any]:
    """
    Create a normalized event envelope.

    Args:
        event_type: Type of event
        data: Event data payload
        user_id: Optional user the event is scoped to
        timestamp: Optional explicit timestamp (defaults to now)
        sequence: Optional counter to draw the sequence number from
        sequence_number: Optional explicit sequence number (wins over sequence)
    """
    if sequence_number is None:
        sequence_number = sequence.next() if sequence is not None else 0
    event: dict[str, Any] = {
        "event_type": event_type,
        "timestamp": format_timestamp(timestamp) if timestamp is not None else utc_now_z(),
        "sequence_number": sequence_number,
        "data": data or {},
    }
    if user_id is not None:
        event["user_id"] = user_id
    return event


def encode_event(event: dict[str, Any]) -> str:
    """Encode an envelope as a JSON text frame."""
    return json.dumps(event, cls=UUIDEncoder)


def decode_event(raw: str | bytes | dict[str, Any]) -> tuple[str, dict[str, Any]]:
    """
    Decode an inbound frame into (event_type, data).

    Raises:
        MessageValidationError: If the frame is not a JSON object with a string event_type
    """
    if isinstance(raw, dict):
        message = raw
    else:
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
            raise MessageValidationError(f"Malformed frame: {e}") from e

    if not isinstance(message, dict):
        raise MessageValidationError("Frame must be a JSON object")

    event_type = message.get("event_type")
    if not isinstance(event_type, str) or not event_type:
        raise MessageValidationError("Frame is missing 'event_type'")

    data = message.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MessageValidationError("Frame 'data' must be an object", event_type=event_type)
    return event_type, data
