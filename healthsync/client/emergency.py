"""
Emergency fallback for the client.

When the transport is not connected, an emergency request never touches the
network: it goes straight to a device-level dial action.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_EMERGENCY_NUMBER = "+2348060270792"


class EmergencyDialer(Protocol):
    """Device capability that places a telephone call; must return without waiting on the call."""

    def dial(self, phone_number: str) -> None: ...


class LoggingDialer:
    """Dialer used where no telephony is available (servers, tests, CLIs)."""

    def __init__(self) -> None:
        self.dialed: list[str] = []

    def dial(self, phone_number: str) -> None:
        self.dialed.append(phone_number)
        logger.critical("Emergency call placed", phone_number=phone_number)


class EmergencyRoute(Enum):
    REALTIME = "realtime"
    PHONE = "phone"


@dataclass(frozen=True)
class EmergencyOutcome:
    """How an emergency request was routed."""

    route: EmergencyRoute
    user_id: str | None
    phone_number: str | None = None

    @property
    def dialed(self) -> bool:
        return self.route is EmergencyRoute.PHONE
