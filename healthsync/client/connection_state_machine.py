"""
Connection state machine for the client transport.

States:
- disconnected: no session (initial)
- connecting: handshake in progress
- connected: session established

Transitions:
- disconnected -> connecting: connect
- connecting -> connected: connection_established
- connecting/connected -> disconnected: connection_lost
"""

from collections.abc import Callable
from enum import Enum

from statemachine import State, StateMachine

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ConnectionState(Enum):
    """Transport connection state as seen by the UI."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


TransitionListener = Callable[[ConnectionState, ConnectionState], None]


class TransportStateMachine(StateMachine):
    """State machine for one client transport's connection lifecycle."""

    disconnected = State("Disconnected", initial=True)
    connecting = State("Connecting")
    connected = State("Connected")

    connect = disconnected.to(connecting)
    connection_established = connecting.to(connected)
    connection_lost = connecting.to(disconnected) | connected.to(disconnected)

    def __init__(self, listener: TransitionListener | None = None, name: str = "transport"):
        # Set attributes BEFORE super().__init__() because on_enter_state is called during init
        self.transition_listener = listener
        self.transport_name = name
        self.total_connections = 0
        self.total_disconnections = 0
        self._previous = ConnectionState.DISCONNECTED
        self._activated = False

        super().__init__()
        self._activated = True

    @property
    def connection_state(self) -> ConnectionState:
        return ConnectionState(self.current_state.id)

    def on_enter_state(self, state: State, event=None, **kwargs) -> None:
        """Publish every transition after the initial state entry."""
        if not self._activated:
            return
        previous, current = self._previous, ConnectionState(state.id)
        self._previous = current
        logger.debug(
            "Transport state transition",
            transport=self.transport_name,
            trigger_event=str(event) if event else "unknown",
            from_state=previous.value,
            to_state=current.value,
        )
        if self.transition_listener is not None:
            self.transition_listener(previous, current)

    def on_connection_established(self) -> None:
        self.total_connections += 1

    def on_connection_lost(self) -> None:
        self.total_disconnections += 1
