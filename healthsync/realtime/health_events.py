"""
Health update event types shared by the server and the client.

The set of update types is closed: every producer, dispatcher and feed
handler map is keyed by HealthUpdateType, so adding a type means adding an
enum member and the handlers that the completeness checks then demand.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from ..exceptions import InvalidHealthUpdateTypeError


class HealthUpdateType(Enum):
    """Kinds of health update delivered to a user's connections."""

    VITALS = "vitals"
    MEDICATION = "medication"
    APPOINTMENT = "appointment"
    MOOD = "mood"
    EMERGENCY = "emergency"

    @property
    def event_name(self) -> str:
        """Wire event name used for this update type."""
        return EVENT_NAMES[self]

    @classmethod
    def coerce(cls, value: HealthUpdateType | str) -> HealthUpdateType:
        """
        Resolve an enum member from a member, its value, or its wire event name.

        Raises:
            InvalidHealthUpdateTypeError: If the value names no update type
        """
        if isinstance(value, HealthUpdateType):
            return value
        if isinstance(value, str):
            for member in cls:
                if value in (member.value, member.event_name):
                    return member
        raise InvalidHealthUpdateTypeError(value)

    @classmethod
    def from_event_name(cls, event_name: str) -> HealthUpdateType | None:
        """Return the update type for a wire event name, or None for other events."""
        return _TYPES_BY_EVENT_NAME.get(event_name)


EVENT_NAMES: dict[HealthUpdateType, str] = {
    HealthUpdateType.VITALS: "vitals_updated",
    HealthUpdateType.MEDICATION: "medication_reminder",
    HealthUpdateType.APPOINTMENT: "appointment_updated",
    HealthUpdateType.MOOD: "mood_updated",
    HealthUpdateType.EMERGENCY: "emergency_alert",
}

_TYPES_BY_EVENT_NAME = {name: update_type for update_type, name in EVENT_NAMES.items()}

if set(EVENT_NAMES) != set(HealthUpdateType):
    raise RuntimeError("Every HealthUpdateType needs a wire event name")

# Client -> server event names
JOIN_USER_ROOM = "join_user_room"
EMERGENCY_REQUEST = "emergency_request"
HEALTH_UPDATE = "health_update"

# Server -> client control event names
CONNECTION_STATUS = "connection_status"
ERROR = "error"


@dataclass(frozen=True)
class HealthUpdateEvent:
    """
    An immutable health update.

    target_user_id is the owning user on the server; on the client it is the
    user the feed was activated for.
    """

    type: HealthUpdateType
    payload: dict[str, Any]
    target_user_id: str | None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def event_name(self) -> str:
        return self.type.event_name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logs and REST responses."""
        return {
            "type": self.type.value,
            "payload": self.payload,
            "target_user_id": self.target_user_id,
            "timestamp": self.timestamp.isoformat(),
        }
