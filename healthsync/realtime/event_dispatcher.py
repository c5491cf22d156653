"""
Event dispatcher for HealthSync.

Route handlers call the dispatcher after a successful write to push a typed
health update to the owning user's room. Publishing never blocks on the
network and never fails because the user is offline.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger
from .envelope import SequenceCounter, build_event
from .health_events import HealthUpdateEvent, HealthUpdateType
from .room_registry import DeliveryReport, RoomRegistry

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class PublishResult:
    """What a publish produced and where it went."""

    event: HealthUpdateEvent
    envelope: dict[str, Any]
    report: DeliveryReport

    @property
    def delivered(self) -> int:
        return len(self.report.delivered)


class EventDispatcher:
    """
    Publishes typed health updates to a user's room.

    Each dispatcher stamps its envelopes with its own monotonic sequence
    number, so a client can tell the order events left the server.
    """

    def __init__(self, registry: RoomRegistry, clock: Clock | None = None) -> None:
        self.registry = registry
        self._clock = clock or _utc_now
        self._sequence = SequenceCounter()
        self._published: dict[HealthUpdateType, int] = dict.fromkeys(HealthUpdateType, 0)
        self._undelivered = 0

    def publish(
        self, update_type: HealthUpdateType | str, payload: dict[str, Any], target_user_id: str
    ) -> PublishResult:
        """
        Publish a health update to every connection of the target user.

        Args:
            update_type: A HealthUpdateType or its value string
            payload: Event-specific data, forwarded unchanged
            target_user_id: The owning user

        Returns:
            PublishResult: The event, its envelope, and the delivery report

        Raises:
            InvalidHealthUpdateTypeError: If update_type is outside the closed set
        """
        resolved = HealthUpdateType.coerce(update_type)
        event = HealthUpdateEvent(
            type=resolved,
            payload=dict(payload),
            target_user_id=target_user_id,
            timestamp=self._clock(),
        )
        envelope = build_event(
            event.event_name,
            event.payload,
            user_id=target_user_id,
            timestamp=event.timestamp,
            sequence=self._sequence,
        )
        report = self.registry.emit_to_user(target_user_id, envelope)
        self._published[resolved] += 1

        if not report.delivered:
            self._undelivered += 1
            logger.debug(
                "Health update had no live recipient",
                event_type=event.event_name,
                user_id=target_user_id,
                sequence_number=envelope["sequence_number"],
            )
        else:
            logger.info(
                "Health update published",
                event_type=event.event_name,
                user_id=target_user_id,
                delivered=len(report.delivered),
                sequence_number=envelope["sequence_number"],
            )
        return PublishResult(event=event, envelope=envelope, report=report)

    def vitals_recorded(self, user_id: str, vitals: dict[str, Any]) -> PublishResult:
        return self.publish(HealthUpdateType.VITALS, vitals, user_id)

    def medication_reminder(self, user_id: str, medication: dict[str, Any]) -> PublishResult:
        """Publish a reminder; the payload should carry the medication 'name'."""
        return self.publish(HealthUpdateType.MEDICATION, medication, user_id)

    def appointment_updated(self, user_id: str, appointment: dict[str, Any]) -> PublishResult:
        return self.publish(HealthUpdateType.APPOINTMENT, appointment, user_id)

    def mood_logged(self, user_id: str, mood: dict[str, Any]) -> PublishResult:
        return self.publish(HealthUpdateType.MOOD, mood, user_id)

    def emergency_alert(self, user_id: str, message: str, **details: Any) -> PublishResult:
        """Publish an emergency alert carrying a human-readable 'message'."""
        return self.publish(HealthUpdateType.EMERGENCY, {"message": message, **details}, user_id)

    def get_stats(self) -> dict[str, Any]:
        """Return dispatcher statistics."""
        return {
            "last_sequence_number": self._sequence.last,
            "published": {update_type.value: count for update_type, count in self._published.items()},
            "undelivered": self._undelivered,
        }
