"""
Health update feed for the HealthSync client.

Consumes the five health update events from the transport, keeps a short
newest-first history, and raises a notification for each event. The feed is
also the client's entry point for sending health updates and emergency
requests.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ..config.models import FeedConfig, NotificationConfig
from ..realtime.health_events import EMERGENCY_REQUEST, HEALTH_UPDATE, HealthUpdateEvent, HealthUpdateType
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_state_machine import ConnectionState
from .emergency import DEFAULT_EMERGENCY_NUMBER, EmergencyDialer, EmergencyOutcome, EmergencyRoute
from .identity import UserIdentity
from .notifications import Notification, NotificationCenter, NotificationStyles, Notifier
from .subscriptions import SubscriptionGroup
from .transport import ClientTransport

logger = get_logger(__name__)

Clock = Callable[[], datetime]
NotificationBuilder = Callable[[dict[str, Any]], Notification]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class HealthUpdateFeed:
    """
    Per-user feed of real-time health updates.

    Inert for unauthenticated and demo identities. History lives only while
    the feed is active; deactivate() clears it.
    """

    def __init__(
        self,
        transport: ClientTransport,
        notifier: Notifier | None = None,
        *,
        dialer: EmergencyDialer,
        history_limit: int | None = None,
        emergency_number: str = DEFAULT_EMERGENCY_NUMBER,
        notification_config: NotificationConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.transport = transport
        self.notifier = notifier or NotificationCenter(notification_config)
        self.styles = NotificationStyles(notification_config)
        self.dialer = dialer
        self.history_limit = history_limit or FeedConfig().history_limit
        self.emergency_number = emergency_number
        self._clock = clock or _utc_now
        self._history: list[HealthUpdateEvent] = []
        self._identity: UserIdentity | None = None
        self._subscriptions = SubscriptionGroup()
        self._status = ConnectionState.DISCONNECTED
        self.notification_builders: dict[HealthUpdateType, NotificationBuilder] = {
            HealthUpdateType.VITALS: lambda payload: self.styles.success("Vital signs updated"),
            HealthUpdateType.MEDICATION: self._medication_notification,
            HealthUpdateType.APPOINTMENT: lambda payload: self.styles.success("Appointment updated"),
            HealthUpdateType.MOOD: lambda payload: self.styles.success("Mood logged successfully"),
            HealthUpdateType.EMERGENCY: self._emergency_notification,
        }
        missing = set(HealthUpdateType) - set(self.notification_builders)
        if missing:
            raise RuntimeError(f"No feed handler for {sorted(t.value for t in missing)}")

    def _medication_notification(self, payload: dict[str, Any]) -> Notification:
        name = payload.get("name") or payload.get("medication") or "medication"
        return self.styles.success(f"Medication reminder: {name}")

    def _emergency_notification(self, payload: dict[str, Any]) -> Notification:
        return self.styles.alert(f"Emergency Alert: {payload.get('message', '')}".rstrip())

    # Lifecycle

    @property
    def is_real_time_enabled(self) -> bool:
        return self._identity is not None

    @property
    def connection_status(self) -> ConnectionState:
        return self._status

    @property
    def history(self) -> list[HealthUpdateEvent]:
        """Recent updates, newest first."""
        return list(self._history)

    def activate(self, identity: UserIdentity) -> bool:
        """
        Start consuming events for a user.

        Returns:
            bool: False (and the feed stays inert) for unauthenticated or demo identities
        """
        self.deactivate()
        if not identity.is_real_time_eligible:
            logger.info("Health feed inert", is_demo=identity.is_demo, authenticated=identity.authenticated)
            return False

        self._identity = identity
        self.transport.set_identity(identity)
        for update_type in HealthUpdateType:
            self._subscriptions.add(self.transport.on(update_type.event_name, self._make_listener(update_type)))
        self._subscriptions.add(self.transport.on_state_change(self._on_state_change))
        self._status = self.transport.state
        logger.info("Health feed activated", user_id=identity.user_id, status=self._status.value)
        return True

    def deactivate(self) -> None:
        """Unsubscribe everything and clear history (logout or demo switch)."""
        was_active = self._identity is not None
        self._subscriptions.cancel_all()
        self._history.clear()
        self._identity = None
        self._status = ConnectionState.DISCONNECTED
        if was_active:
            logger.info("Health feed deactivated")

    def _on_state_change(self, state: ConnectionState) -> None:
        self._status = state

    def _make_listener(self, update_type: HealthUpdateType) -> Callable[[dict[str, Any]], None]:
        def _listener(payload: dict[str, Any]) -> None:
            self._on_event(update_type, payload)

        return _listener

    def _on_event(self, update_type: HealthUpdateType, payload: dict[str, Any]) -> None:
        if self._identity is None:
            return
        event = HealthUpdateEvent(
            type=update_type,
            payload=dict(payload),
            target_user_id=self._identity.user_id,
            timestamp=self._clock(),
        )
        self._history.insert(0, event)
        del self._history[self.history_limit :]
        self.notifier.notify(self.notification_builders[update_type](event.payload))

    # Outbound

    def emit_health_update(self, update_type: HealthUpdateType | str, data: dict[str, Any]) -> bool:
        """
        Send a health update to the server while connected.

        Returns:
            bool: False when the feed is inert or the transport is not connected
        """
        if self._identity is None or not self.transport.is_connected:
            logger.debug("Health update not sent", active=self._identity is not None, status=self._status.value)
            return False
        resolved = HealthUpdateType.coerce(update_type)
        return self.transport.emit(
            HEALTH_UPDATE, {"type": resolved.value, "data": data, "userId": self._identity.user_id}
        )

    def request_emergency_support(self, data: dict[str, Any] | None = None) -> EmergencyOutcome:
        """
        Ask for emergency help.

        Connected: sends emergency_request over the transport. Otherwise dials
        the emergency number right away; this path never waits on the network.
        """
        user_id = self._identity.user_id if self._identity is not None else None
        if user_id is not None and self.transport.is_connected:
            if self.transport.emit(EMERGENCY_REQUEST, {**(data or {}), "userId": user_id}):
                self.notifier.notify(self.styles.success("Emergency support requested"))
                logger.warning("Emergency request sent", user_id=user_id)
                return EmergencyOutcome(route=EmergencyRoute.REALTIME, user_id=user_id)

        logger.warning("Emergency request falling back to phone", user_id=user_id, status=self._status.value)
        self.dialer.dial(self.emergency_number)
        return EmergencyOutcome(route=EmergencyRoute.PHONE, user_id=user_id, phone_number=self.emergency_number)
