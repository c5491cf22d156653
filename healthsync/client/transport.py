"""
Client transport for HealthSync real-time notifications.

Maintains one WebSocket session to the server with automatic reconnection,
routes inbound events to subscribed handlers, and sends outbound frames
best-effort. The join request is always the first frame of a session.
"""

# pylint: disable=too-many-instance-attributes  # Reason: Transport tracks session, identity, handlers and policy

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from websockets.asyncio.client import connect as websocket_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..config import get_config
from ..exceptions import MessageValidationError
from ..realtime.envelope import SequenceCounter, build_event, decode_event, encode_event
from ..realtime.health_events import JOIN_USER_ROOM
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_state_machine import ConnectionState, TransportStateMachine
from .identity import UserIdentity
from .reconnection_policy import ReconnectionPolicy
from .subscriptions import Subscription

logger = get_logger(__name__)

EventHandler = Callable[[dict[str, Any]], None]
StateHandler = Callable[[ConnectionState], None]
Sleep = Callable[[float], Awaitable[Any]]


class ClientSocket(Protocol):
    """The part of websockets' ClientConnection the transport uses."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> Any: ...


Connector = Callable[[str], Awaitable[ClientSocket]]

# Failures that end a connection attempt and lead to a retry
CONNECT_ERRORS: tuple[type[BaseException], ...] = (OSError, TimeoutError, WebSocketException)


def default_connector(url: str) -> Awaitable[ClientSocket]:
    return websocket_connect(url)


class ClientTransport:
    """
    Long-lived connection to the server's real-time endpoint.

    Demo and unauthenticated identities never connect. Handlers for one
    event name run in registration order; one failing handler does not stop
    the next.
    """

    def __init__(
        self,
        url: str,
        *,
        identity: UserIdentity | None = None,
        policy: ReconnectionPolicy | None = None,
        connector: Connector | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.url = url
        self._identity = identity or UserIdentity.anonymous()
        self.policy = policy or ReconnectionPolicy.from_config(get_config().reconnection)
        self._connector = connector or default_connector
        self._sleep = sleep
        self._handlers: dict[str, list[EventHandler]] = {}
        self._state_handlers: list[StateHandler] = []
        self._sequence = SequenceCounter()
        self._socket: ClientSocket | None = None
        self._outbox: asyncio.Queue[str] | None = None
        self._joined_user_id: str | None = None
        self._closing = False
        self.attempts = 0
        self._machine = TransportStateMachine(listener=self._on_transition)

    # State

    @property
    def state(self) -> ConnectionState:
        return self._machine.connection_state

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def identity(self) -> UserIdentity:
        return self._identity

    def set_identity(self, identity: UserIdentity) -> None:
        """
        Change the acting user.

        A connected session re-joins under the new user. An identity that is
        not eligible for real-time stops the connect loop at its next check;
        call close() to end the current session immediately.
        """
        self._identity = identity
        if not identity.is_real_time_eligible:
            logger.info("Transport identity no longer eligible for real-time", is_demo=identity.is_demo)
            return
        if self.is_connected and identity.user_id != self._joined_user_id:
            self._enqueue_join()

    # Subscriptions

    def on(self, event_name: str, handler: EventHandler) -> Subscription:
        """Subscribe a handler to an inbound event name."""
        self._handlers.setdefault(event_name, []).append(handler)
        return Subscription(lambda: self.off(event_name, handler), event_name)

    def off(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name)
        if handlers and handler in handlers:
            handlers.remove(handler)
            if not handlers:
                del self._handlers[event_name]

    def on_state_change(self, handler: StateHandler) -> Subscription:
        """Subscribe to connection state transitions."""
        self._state_handlers.append(handler)

        def _remove() -> None:
            if handler in self._state_handlers:
                self._state_handlers.remove(handler)

        return Subscription(_remove, "state_change")

    def handler_count(self, event_name: str) -> int:
        return len(self._handlers.get(event_name, ()))

    def _on_transition(self, previous: ConnectionState, current: ConnectionState) -> None:
        logger.info("Transport state changed", from_state=previous.value, to_state=current.value, url=self.url)
        for handler in list(self._state_handlers):
            try:
                handler(current)
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: Listener failures must not derail the connection lifecycle
                logger.error("State change handler failed", error=str(e), exc_info=True)

    # Outbound

    def emit(self, event_name: str, payload: dict[str, Any]) -> bool:
        """
        Send an event if a session is up.

        Returns:
            bool: False when the frame was dropped because the transport is not connected
        """
        if not self.is_connected or self._outbox is None:
            logger.debug("Dropping outbound event while not connected", event_type=event_name, state=self.state.value)
            return False
        self._outbox.put_nowait(self._encode(event_name, payload))
        return True

    def _encode(self, event_name: str, payload: dict[str, Any]) -> str:
        return encode_event(
            build_event(event_name, payload, user_id=self._identity.user_id, sequence=self._sequence)
        )

    def _enqueue_join(self) -> None:
        user_id = self._identity.user_id
        if self._outbox is None or user_id is None:
            return
        self._outbox.put_nowait(self._encode(JOIN_USER_ROOM, {"userId": user_id}))
        self._joined_user_id = user_id
        logger.info("Join request queued", user_id=user_id)

    # Inbound

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            event_type, data = decode_event(raw)
        except MessageValidationError:
            return
        for handler in list(self._handlers.get(event_type, ())):
            try:
                handler(data)
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: One handler's failure must not starve the others
                logger.error("Event handler failed", event_type=event_type, error=str(e), exc_info=True)

    # Connection lifecycle

    async def run(self) -> None:
        """
        Connect and keep reconnecting until close() or the policy gives up.

        Returns immediately for identities that are not eligible for real-time.
        """
        if not self._identity.is_real_time_eligible:
            logger.info(
                "Real-time transport inert for identity",
                is_demo=self._identity.is_demo,
                authenticated=self._identity.authenticated,
            )
            return

        self._closing = False
        self.attempts = 0
        while not self._closing and self._identity.is_real_time_eligible:
            self._machine.connect()
            try:
                socket = await self._connector(self.url)
            except CONNECT_ERRORS as e:
                self._machine.connection_lost()
                logger.warning("Transport connection attempt failed", url=self.url, error=str(e))
            except asyncio.CancelledError:
                self._machine.connection_lost()
                raise
            else:
                if self._closing:
                    # close() ran while the handshake was in flight
                    with contextlib.suppress(*CONNECT_ERRORS):
                        await socket.close()
                    self._machine.connection_lost()
                    break
                self.attempts = 0
                await self._serve(socket)

            if self._closing:
                break
            self.attempts += 1
            if self.policy.exhausted(self.attempts):
                logger.error(
                    "Transport reconnection attempts exhausted",
                    url=self.url,
                    max_attempts=self.policy.max_attempts,
                )
                break
            delay = self.policy.next_delay(self.attempts)
            logger.info("Transport reconnecting", attempt=self.attempts, delay=round(delay, 3))
            await self._sleep(delay)

    async def _serve(self, socket: ClientSocket) -> None:
        """Run one session: join first, then pump frames until the socket closes."""
        self._socket = socket
        self._outbox = asyncio.Queue()
        self._joined_user_id = None
        self._enqueue_join()
        sender = asyncio.create_task(self._send_loop(socket, self._outbox))
        self._machine.connection_established()
        try:
            async for raw in socket:
                self._dispatch(raw)
        except ConnectionClosed as e:
            logger.info("Transport connection closed", url=self.url, reason=str(e))
        finally:
            # Frames still queued belong to the dead session
            self._outbox = None
            self._socket = None
            self._joined_user_id = None
            sender.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sender
            with contextlib.suppress(*CONNECT_ERRORS):
                await socket.close()
            self._machine.connection_lost()

    async def _send_loop(self, socket: ClientSocket, outbox: asyncio.Queue[str]) -> None:
        while True:
            frame = await outbox.get()
            try:
                await socket.send(frame)
            except CONNECT_ERRORS as e:
                logger.warning("Send failed, dropping transport connection", url=self.url, error=str(e))
                # Ends the receive loop so the connect loop can retry
                with contextlib.suppress(*CONNECT_ERRORS):
                    await socket.close()
                return

    async def close(self) -> None:
        """Stop reconnecting and close the current session."""
        self._closing = True
        socket = self._socket
        if socket is not None:
            with contextlib.suppress(*CONNECT_ERRORS):
                await socket.close()
