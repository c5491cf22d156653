"""
Room registry for HealthSync.

Every authenticated user owns exactly one room, keyed by user id, and each
live connection belongs to at most one room. The registry is the only place
that maps users to connections; the dispatcher fans events out through it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..exceptions import ErrorContext, UnknownConnectionError
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import ConnectionHandle

logger = get_logger(__name__)


@dataclass
class DeliveryReport:
    """Outcome of a fan-out to one user's room."""

    user_id: str
    delivered: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.skipped)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "delivered": len(self.delivered),
            "skipped": len(self.skipped),
        }


class RoomRegistry:
    """
    Tracks which connections belong to which user's room.

    All methods are synchronous and never await, so on a single event loop
    each call observes and leaves the registry in a consistent state.
    """

    def __init__(self) -> None:
        # Room membership (user_id -> set of connection_ids)
        self.rooms: dict[str, set[str]] = {}
        # Reverse index (connection_id -> user_id)
        self.connection_rooms: dict[str, str] = {}
        # Live handles (connection_id -> handle)
        self.connections: dict[str, ConnectionHandle] = {}
        self._total_emits = 0
        self._total_deliveries = 0

    def register_connection(self, handle: ConnectionHandle) -> None:
        """Track a freshly accepted connection; it stays anonymous until it joins."""
        self.connections[handle.connection_id] = handle
        logger.debug("Connection registered", connection_id=handle.connection_id)

    def join(self, connection_id: str, user_id: str) -> None:
        """
        Place a connection in a user's room.

        Joining the same room again is a no-op. A connection already in a
        different room is moved, so it never sits in two rooms.

        Raises:
            UnknownConnectionError: If the connection was never registered or already left
        """
        handle = self.connections.get(connection_id)
        if handle is None:
            raise UnknownConnectionError(connection_id, ErrorContext(connection_id=connection_id, user_id=user_id))

        current = self.connection_rooms.get(connection_id)
        if current == user_id:
            return
        if current is not None:
            self._remove_from_room(connection_id, current)

        self.rooms.setdefault(user_id, set()).add(connection_id)
        self.connection_rooms[connection_id] = user_id
        handle.user_id = user_id
        logger.info(
            "Connection joined user room",
            connection_id=connection_id,
            user_id=user_id,
            previous_user_id=current,
            room_size=len(self.rooms[user_id]),
        )

    def leave(self, connection_id: str) -> None:
        """Remove a connection from its room and forget its handle; unknown ids are ignored."""
        user_id = self.connection_rooms.get(connection_id)
        if user_id is not None:
            self._remove_from_room(connection_id, user_id)
        handle = self.connections.pop(connection_id, None)
        if handle is not None or user_id is not None:
            logger.debug("Connection left", connection_id=connection_id, user_id=user_id)

    def _remove_from_room(self, connection_id: str, user_id: str) -> None:
        members = self.rooms.get(user_id)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self.rooms[user_id]
        self.connection_rooms.pop(connection_id, None)

    def emit_to_user(self, user_id: str, event: dict[str, Any]) -> DeliveryReport:
        """
        Deliver an event to every live connection in a user's room.

        Delivery is fire-and-forget: an empty room yields an empty report and
        connections that closed without leaving yet are skipped.
        """
        report = DeliveryReport(user_id=user_id)
        self._total_emits += 1
        for connection_id in sorted(self.rooms.get(user_id, ())):
            handle = self.connections.get(connection_id)
            if handle is not None and handle.deliver(event):
                report.delivered.append(connection_id)
            else:
                report.skipped.append(connection_id)
        self._total_deliveries += len(report.delivered)

        if report.skipped:
            logger.debug(
                "Skipped closed connections during emit",
                user_id=user_id,
                event_type=event.get("event_type"),
                skipped=report.skipped,
            )
        return report

    def get_room(self, user_id: str) -> set[str]:
        """Return a copy of the connection ids in a user's room."""
        return set(self.rooms.get(user_id, ()))

    def get_user_for_connection(self, connection_id: str) -> str | None:
        return self.connection_rooms.get(connection_id)

    def get_connection(self, connection_id: str) -> ConnectionHandle | None:
        return self.connections.get(connection_id)

    def get_stats(self) -> dict[str, Any]:
        """Return registry statistics."""
        return {
            "total_rooms": len(self.rooms),
            "total_connections": len(self.connections),
            "joined_connections": len(self.connection_rooms),
            "anonymous_connections": len(self.connections) - len(self.connection_rooms),
            "total_emits": self._total_emits,
            "total_deliveries": self._total_deliveries,
        }
