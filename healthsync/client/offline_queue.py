"""
Offline write queue for the HealthSync client.

Writes attempted while the backend is unreachable are captured here and
replayed through the normal HTTP path once connectivity returns. The queue is
bounded: when full, the oldest entry is evicted to admit a new one.
"""

import asyncio
import json
import os
import time
import uuid
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from ..config.models import NotificationConfig, OfflineQueueConfig
from ..exceptions import OfflineSyncError
from ..structured_logging.enhanced_logging_config import get_logger
from .notifications import NotificationCenter, NotificationStyles, Notifier

logger = get_logger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class OfflineQueueEntry:
    """One captured write. captured_at is epoch milliseconds."""

    captured_at: int
    endpoint: str
    method: str
    data: Any
    entry_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "timestamp": self.captured_at,
            "endpoint": self.endpoint,
            "method": self.method,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "OfflineQueueEntry":
        return cls(
            captured_at=int(raw["timestamp"]),
            endpoint=str(raw["endpoint"]),
            method=str(raw["method"]).upper(),
            data=raw.get("data"),
            entry_id=str(raw.get("entry_id") or uuid.uuid4().hex),
        )


class ApiClient(Protocol):
    """Anything that can replay a write; must raise on failure."""

    async def request(self, *, url: str, method: str, data: Any = None) -> Any: ...


class OfflineStorage(Protocol):
    def load(self) -> list[OfflineQueueEntry]: ...

    def save(self, entries: list[OfflineQueueEntry]) -> None: ...


class MemoryOfflineStorage:
    """Keeps the queue for the life of the process only."""

    def __init__(self) -> None:
        self._entries: list[OfflineQueueEntry] = []

    def load(self) -> list[OfflineQueueEntry]:
        return list(self._entries)

    def save(self, entries: list[OfflineQueueEntry]) -> None:
        self._entries = list(entries)


class JsonFileOfflineStorage:
    """
    Persists the queue as a JSON array, newest first.

    An unreadable file loads as an empty queue rather than failing startup.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def load(self) -> list[OfflineQueueEntry]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return [OfflineQueueEntry.from_dict(item) for item in raw]
        except (OSError, ValueError, TypeError, KeyError) as e:
            logger.error("Error reading offline data", path=str(self.path), error=str(e))
            return []

    def save(self, entries: list[OfflineQueueEntry]) -> None:
        """
        Write the queue atomically.

        Raises:
            OfflineSyncError: If the file cannot be written
        """
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps([entry.to_dict() for entry in entries]), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise OfflineSyncError(
                f"Could not save offline queue: {e}", details={"path": str(self.path), "entries": len(entries)}
            ) from e


@dataclass
class SyncResult:
    """Outcome of one replay pass."""

    succeeded: list[OfflineQueueEntry] = field(default_factory=list)
    failed: list[OfflineQueueEntry] = field(default_factory=list)
    remaining: int = 0

    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.failed)

    @property
    def synced_count(self) -> int:
        return len(self.succeeded)


def storage_from_config(config: OfflineQueueConfig) -> OfflineStorage:
    if config.storage_path:
        return JsonFileOfflineStorage(config.storage_path)
    return MemoryOfflineStorage()


class OfflineQueue:
    """
    Bounded queue of writes captured while offline.

    Stored newest first; replayed oldest first. After a sync, entries that
    replayed successfully are removed one by one and failed entries stay for
    the next pass.
    """

    def __init__(
        self,
        max_entries: int | None = None,
        storage: OfflineStorage | None = None,
        notifier: Notifier | None = None,
        *,
        notification_config: NotificationConfig | None = None,
        clock: Clock = time.time,
    ) -> None:
        self.max_entries = max_entries or OfflineQueueConfig().max_entries
        self.storage = storage or MemoryOfflineStorage()
        self.notifier = notifier or NotificationCenter(notification_config)
        self.styles = NotificationStyles(notification_config)
        self._clock = clock
        # Stored newest first, so truncating keeps the most recent writes
        self._entries: deque[OfflineQueueEntry] = deque(
            self.storage.load()[: self.max_entries], maxlen=self.max_entries
        )
        self._sync_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def _persist(self) -> None:
        try:
            self.storage.save(list(self._entries))
        except OfflineSyncError as e:
            logger.warning("Offline queue kept in memory only", error=e.message)

    def store_offline_data(self, endpoint: str, method: str, data: Any) -> OfflineQueueEntry:
        """Capture a write; evicts the oldest entry when the queue is full."""
        entry = OfflineQueueEntry(
            captured_at=int(self._clock() * 1000),
            endpoint=endpoint,
            method=method.upper(),
            data=data,
        )
        evicted = self._entries[-1] if len(self._entries) == self.max_entries else None
        self._entries.appendleft(entry)
        self._persist()
        logger.info(
            "Stored offline write",
            endpoint=endpoint,
            method=entry.method,
            queued=len(self._entries),
            evicted_entry_id=evicted.entry_id if evicted else None,
        )
        return entry

    def get_offline_data(self) -> list[OfflineQueueEntry]:
        """Queued entries, newest first."""
        return list(self._entries)

    def replay_order(self) -> list[OfflineQueueEntry]:
        """Queued entries, oldest first."""
        return list(reversed(self._entries))

    def clear_offline_data(self) -> None:
        self._entries.clear()
        self._persist()

    async def _replay(self, api_client: ApiClient, entry: OfflineQueueEntry) -> bool:
        try:
            await api_client.request(url=entry.endpoint, method=entry.method, data=entry.data)
            return True
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: Any rejection keeps the entry for a later pass
            logger.warning(
                "Failed to sync offline item",
                entry_id=entry.entry_id,
                endpoint=entry.endpoint,
                method=entry.method,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    async def sync_offline_data(self, api_client: ApiClient) -> SyncResult:
        """
        Replay every queued entry concurrently.

        Requests are submitted oldest first; completion order is whatever the
        backend produces. Entries stored while the pass runs are untouched.
        """
        async with self._sync_lock:
            pending = self.replay_order()
            if not pending:
                return SyncResult(remaining=len(self._entries))

            logger.info("Syncing offline items", count=len(pending))
            outcomes = await asyncio.gather(*(self._replay(api_client, entry) for entry in pending))

            result = SyncResult()
            for entry, ok in zip(pending, outcomes, strict=True):
                (result.succeeded if ok else result.failed).append(entry)

            synced_ids = {entry.entry_id for entry in result.succeeded}
            if synced_ids:
                self._entries = deque(
                    (entry for entry in self._entries if entry.entry_id not in synced_ids), maxlen=self.max_entries
                )
                self._persist()
            result.remaining = len(self._entries)

            if result.synced_count > 0:
                self.notifier.notify(self.styles.success(f"Synced {result.synced_count} offline items"))
            logger.info(
                "Offline sync finished",
                synced=result.synced_count,
                failed=len(result.failed),
                remaining=result.remaining,
            )
            return result
