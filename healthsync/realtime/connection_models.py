"""
Data models for connection management.

This module defines the per-connection handle the room registry tracks:
identity, timestamps, and the outbound queue drained by the connection's
sender task.
"""

# pylint: disable=too-many-instance-attributes  # Reason: A handle carries identity, timing and delivery state

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger
from .envelope import encode_event

logger = get_logger(__name__)

SendText = Callable[[str], Awaitable[Any]]

_CLOSE_SENTINEL: dict[str, Any] = {}


@dataclass
class ConnectionHandle:
    """
    A live server-side connection.

    Frames are never written to the socket by the caller that produced them:
    deliver() enqueues and the sender task writes in enqueue order, so
    publishing stays synchronous and per-connection ordering is preserved.
    """

    connection_id: str
    send_text: SendText
    user_id: str | None = None
    established_at: float = field(default_factory=time.time)
    last_seen: float = field(default_factory=time.time)
    closed: bool = False
    frames_sent: int = 0
    outbox: asyncio.Queue[dict[str, Any]] = field(default_factory=asyncio.Queue, repr=False)

    def deliver(self, frame: dict[str, Any]) -> bool:
        """
        Enqueue a frame for the sender task.

        Returns:
            bool: False if the handle is already closed
        """
        if self.closed:
            return False
        self.outbox.put_nowait(frame)
        return True

    def touch(self) -> None:
        """Record inbound activity."""
        self.last_seen = time.time()

    def close(self) -> None:
        """Mark the handle closed and wake the sender so it exits."""
        if self.closed:
            return
        self.closed = True
        self.outbox.put_nowait(_CLOSE_SENTINEL)

    async def run_sender(self) -> None:
        """
        Drain the outbox onto the socket until the close marker or a failed send.

        Frames enqueued before close() are still written.
        """
        while True:
            frame = await self.outbox.get()
            if frame is _CLOSE_SENTINEL:
                return
            try:
                await self.send_text(encode_event(frame))
                self.frames_sent += 1
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: Any socket failure ends delivery on this handle
                logger.debug(
                    "Send failed, closing connection handle",
                    connection_id=self.connection_id,
                    user_id=self.user_id,
                    error=str(e),
                )
                self.closed = True
                return

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the stats endpoints."""
        return {
            "connection_id": self.connection_id,
            "user_id": self.user_id,
            "established_at": self.established_at,
            "last_seen": self.last_seen,
            "closed": self.closed,
            "frames_sent": self.frames_sent,
            "pending_frames": self.outbox.qsize(),
        }
