"""
User-visible notifications raised by the client.

The notifier is a collaborator: the feed, the offline queue and the
connectivity monitor only call notify(). NotificationCenter is the default
implementation and keeps a bounded history that a UI layer can render.
"""

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol

from ..config.models import NotificationConfig
from ..structured_logging.enhanced_logging_config import get_logger
from .subscriptions import Subscription

logger = get_logger(__name__)


class NotificationLevel(Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class NotificationPriority(Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


@dataclass(frozen=True)
class Notification:
    """
    A message shown to the user.

    duration is in seconds; None means the notification stays until dismissed.
    """

    message: str
    level: NotificationLevel = NotificationLevel.INFO
    priority: NotificationPriority = NotificationPriority.NORMAL
    duration: float | None = 4.0
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def persistent(self) -> bool:
        return self.duration is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "level": self.level.value,
            "priority": self.priority.value,
            "duration": self.duration,
            "created_at": self.created_at.isoformat(),
        }


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None: ...


_LOG_METHODS = {
    NotificationLevel.SUCCESS: "info",
    NotificationLevel.INFO: "info",
    NotificationLevel.WARNING: "warning",
    NotificationLevel.ERROR: "error",
}


class NotificationCenter:
    """Default notifier: remembers recent notifications and fans them out to listeners."""

    def __init__(self, config: NotificationConfig | None = None) -> None:
        self.config = config or NotificationConfig()
        self._recent: deque[Notification] = deque(maxlen=self.config.history_size)
        self._listeners: list[Callable[[Notification], None]] = []

    def notify(self, notification: Notification) -> None:
        self._recent.appendleft(notification)
        getattr(logger, _LOG_METHODS[notification.level])(
            "Notification raised",
            notification_message=notification.message,
            level=notification.level.value,
            priority=notification.priority.value,
            duration=notification.duration,
        )
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: A UI listener must not break the notifier
                logger.error("Notification listener failed", error=str(e), exc_info=True)

    def subscribe(self, listener: Callable[[Notification], None]) -> Subscription:
        """Register a listener for every future notification."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(_remove, "notifications")

    @property
    def recent(self) -> list[Notification]:
        """Recent notifications, newest first."""
        return list(self._recent)

    def clear(self) -> None:
        self._recent.clear()


class NotificationStyles:
    """Builds notifications with the configured durations."""

    def __init__(self, config: NotificationConfig | None = None) -> None:
        self.config = config or NotificationConfig()

    def success(self, message: str) -> Notification:
        return Notification(message, NotificationLevel.SUCCESS, duration=self.config.default_duration)

    def alert(self, message: str) -> Notification:
        """High priority and visible for at least the emergency duration."""
        return Notification(
            message, NotificationLevel.ERROR, NotificationPriority.HIGH, self.config.emergency_duration
        )

    def persistent(self, message: str, *, priority: NotificationPriority = NotificationPriority.LOW) -> Notification:
        """Stays until dismissed."""
        return Notification(message, NotificationLevel.INFO, priority, None)
