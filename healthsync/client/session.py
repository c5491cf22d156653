"""
Client session assembly.

HealthSyncClient wires the transport, feed, offline queue and connectivity
monitor from AppConfig and ties their lifetimes to login and logout.
"""

# pylint: disable=too-many-instance-attributes  # Reason: The session owns every client-side component

import asyncio
import contextlib

from ..config import get_config
from ..config.models import AppConfig
from ..structured_logging.enhanced_logging_config import get_logger
from .connectivity import ConnectivityMonitor, OfflineSyncCoordinator
from .emergency import EmergencyDialer
from .health_feed import HealthUpdateFeed
from .http_client import HttpApiClient
from .identity import UserIdentity
from .notifications import NotificationCenter
from .offline_queue import ApiClient, OfflineQueue, storage_from_config
from .reconnection_policy import ReconnectionPolicy
from .transport import ClientTransport, Connector

logger = get_logger(__name__)


class HealthSyncClient:
    """
    One user's client-side real-time stack.

    login() starts the transport for eligible identities and activates the
    feed; logout() deactivates the feed and closes the transport.
    """

    def __init__(
        self,
        *,
        dialer: EmergencyDialer,
        config: AppConfig | None = None,
        api_client: ApiClient | None = None,
        connector: Connector | None = None,
        notifier: NotificationCenter | None = None,
    ) -> None:
        self.config = config or get_config()
        self.notifier = notifier or NotificationCenter(self.config.notifications)
        self.transport = ClientTransport(
            self.config.realtime.client_url,
            policy=ReconnectionPolicy.from_config(self.config.reconnection),
            connector=connector,
        )
        self.feed = HealthUpdateFeed(
            self.transport,
            self.notifier,
            dialer=dialer,
            history_limit=self.config.feed.history_limit,
            emergency_number=self.config.emergency.phone_number,
            notification_config=self.config.notifications,
        )
        self.offline_queue = OfflineQueue(
            self.config.offline_queue.max_entries,
            storage_from_config(self.config.offline_queue),
            self.notifier,
            notification_config=self.config.notifications,
        )
        self.monitor = ConnectivityMonitor(self.notifier, notification_config=self.config.notifications)
        self.api_client = api_client or HttpApiClient(self.config.offline_queue.api_base_url)
        self.sync = OfflineSyncCoordinator(self.offline_queue, self.monitor, self.api_client)
        self._transport_task: asyncio.Task[None] | None = None

    def login(self, identity: UserIdentity) -> bool:
        """
        Activate real-time features for a user.

        Returns:
            bool: False for demo or unauthenticated identities, which stay inert
        """
        if not self.feed.activate(identity):
            return False
        if self._transport_task is None or self._transport_task.done():
            self._transport_task = asyncio.get_running_loop().create_task(self.transport.run())
        logger.info("Client logged in", user_id=identity.user_id)
        return True

    async def logout(self) -> None:
        """Deactivate the feed and close the transport."""
        self.feed.deactivate()
        self.transport.set_identity(UserIdentity.anonymous())
        await self.transport.close()
        task, self._transport_task = self._transport_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("Client logged out")

    async def aclose(self) -> None:
        await self.logout()
        self.sync.close()
        if isinstance(self.api_client, HttpApiClient):
            await self.api_client.aclose()
