"""
In-memory fakes for the client transport and notifier.

No test in the suite opens a real network connection; the transport gets a
FakeConnector, and the reconnect loop gets a RecordingSleep.
"""

import asyncio
from typing import Any

from healthsync.client.connection_state_machine import ConnectionState
from healthsync.client.notifications import Notification
from healthsync.client.transport import ClientTransport
from healthsync.realtime.envelope import build_event, encode_event


class RecordingNotifier:
    """Notifier that keeps every notification in order."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def messages(self) -> list[str]:
        return [notification.message for notification in self.notifications]


class FakeSocket:
    """
    Stand-in for a websockets ClientConnection.

    Frames pushed with push() are yielded by async iteration; hang_up()
    ends the iteration as a server-side close would.
    """

    _CLOSED = object()

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._inbound: asyncio.Queue[Any] = asyncio.Queue()

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._inbound.put_nowait(self._CLOSED)

    def push(self, event_type: str, data: dict[str, Any]) -> None:
        self._inbound.put_nowait(encode_event(build_event(event_type, data)))

    def push_raw(self, raw: str) -> None:
        self._inbound.put_nowait(raw)

    def hang_up(self) -> None:
        self.closed = True
        self._inbound.put_nowait(self._CLOSED)

    def __aiter__(self) -> "FakeSocket":
        return self

    async def __anext__(self) -> str:
        item = await self._inbound.get()
        if item is self._CLOSED:
            raise StopAsyncIteration
        return item


class FakeConnector:
    """Connector that hands out queued sockets or raises queued errors."""

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes)
        self.urls: list[str] = []

    async def __call__(self, url: str) -> FakeSocket:
        self.urls.append(url)
        if not self.outcomes:
            raise ConnectionRefusedError("no more sockets")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class GatedConnector:
    """Connector whose handshake stays pending until release() is called."""

    def __init__(self, socket: FakeSocket) -> None:
        self.socket = socket
        self.urls: list[str] = []
        self._gate = asyncio.Event()

    def release(self) -> None:
        self._gate.set()

    async def __call__(self, url: str) -> FakeSocket:
        self.urls.append(url)
        await self._gate.wait()
        return self.socket


class RecordingSleep:
    """Injected sleep that records delays and yields to the loop."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


async def drain(turns: int = 20) -> None:
    """Let pending tasks run."""
    for _ in range(turns):
        await asyncio.sleep(0)


async def wait_for_state(transport: ClientTransport, state: ConnectionState, turns: int = 200) -> None:
    """Yield to the loop until the transport reaches a state."""
    for _ in range(turns):
        if transport.state is state:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"transport never reached {state.value}; still {transport.state.value}")
