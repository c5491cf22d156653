"""
Connectivity tracking and offline sync orchestration.

The platform's online/offline signal is fed into ConnectivityMonitor via
set_online(). Coming back online raises the sync trigger, which the
OfflineSyncCoordinator answers by replaying the offline queue.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from ..config.models import NotificationConfig
from ..structured_logging.enhanced_logging_config import get_logger
from .notifications import NotificationCenter, NotificationStyles, Notifier
from .offline_queue import ApiClient, OfflineQueue, OfflineQueueEntry, SyncResult
from .subscriptions import Subscription

logger = get_logger(__name__)

OFFLINE_MESSAGE = "You are offline. Data will be saved locally."
ONLINE_MESSAGE = "You are back online!"


class ConnectivityMonitor:
    """Tracks online state and raises the sync trigger on reconnect."""

    def __init__(
        self,
        notifier: Notifier | None = None,
        *,
        online: bool = True,
        notification_config: NotificationConfig | None = None,
    ) -> None:
        self.notifier = notifier or NotificationCenter(notification_config)
        self.styles = NotificationStyles(notification_config)
        self._online = online
        self._sync_handlers: list[Callable[[], Any]] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        """Feed the platform connectivity signal; repeated values are ignored."""
        if online == self._online:
            return
        self._online = online
        if not online:
            logger.info("Connectivity lost")
            self.notifier.notify(self.styles.persistent(OFFLINE_MESSAGE))
            return

        logger.info("Connectivity restored", sync_handlers=len(self._sync_handlers))
        self.notifier.notify(self.styles.success(ONLINE_MESSAGE))
        for handler in list(self._sync_handlers):
            try:
                handler()
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: One failing consumer must not block the others
                logger.error("Sync trigger handler failed", error=str(e), exc_info=True)

    def on_sync_requested(self, handler: Callable[[], Any]) -> Subscription:
        """Subscribe to the trigger raised when connectivity returns."""
        self._sync_handlers.append(handler)

        def _remove() -> None:
            if handler in self._sync_handlers:
                self._sync_handlers.remove(handler)

        return Subscription(_remove, "sync_requested")


@dataclass(frozen=True)
class WriteOutcome:
    """Result of submit_write: either the server response or the queued entry."""

    response: Any = None
    queued_entry: OfflineQueueEntry | None = None

    @property
    def queued(self) -> bool:
        return self.queued_entry is not None


class OfflineSyncCoordinator:
    """
    Routes writes through the API client or the offline queue, and replays
    the queue whenever the monitor reports that connectivity returned.
    """

    def __init__(self, queue: OfflineQueue, monitor: ConnectivityMonitor, api_client: ApiClient) -> None:
        self.queue = queue
        self.monitor = monitor
        self.api_client = api_client
        self._tasks: set[asyncio.Task[SyncResult]] = set()
        self._subscription = monitor.on_sync_requested(self._on_sync_requested)

    async def sync(self) -> SyncResult:
        return await self.queue.sync_offline_data(self.api_client)

    def _on_sync_requested(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Sync requested without a running event loop; call sync() explicitly")
            return
        task = loop.create_task(self.sync())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_for_pending_sync(self) -> list[SyncResult]:
        """Wait for syncs started by the trigger."""
        if not self._tasks:
            return []
        return list(await asyncio.gather(*list(self._tasks)))

    async def submit_write(self, endpoint: str, method: str, data: Any) -> WriteOutcome:
        """
        Send a write now, or queue it if the backend is unreachable.

        HTTP error statuses are not connectivity problems and propagate.
        """
        if not self.monitor.is_online:
            return WriteOutcome(queued_entry=self.queue.store_offline_data(endpoint, method, data))
        try:
            response = await self.api_client.request(url=endpoint, method=method, data=data)
        except httpx.TransportError as e:
            logger.warning("Backend unreachable, queueing write", endpoint=endpoint, method=method, error=str(e))
            return WriteOutcome(queued_entry=self.queue.store_offline_data(endpoint, method, data))
        return WriteOutcome(response=response)

    def close(self) -> None:
        self._subscription.cancel()
        for task in list(self._tasks):
            task.cancel()
