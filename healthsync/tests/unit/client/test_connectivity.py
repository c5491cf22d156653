"""
Tests for ConnectivityMonitor and OfflineSyncCoordinator.
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from healthsync.client.connectivity import (
    OFFLINE_MESSAGE,
    ONLINE_MESSAGE,
    ConnectivityMonitor,
    OfflineSyncCoordinator,
)
from healthsync.client.notifications import NotificationLevel, NotificationPriority
from healthsync.client.offline_queue import OfflineQueue


@pytest.fixture
def monitor(notifier) -> ConnectivityMonitor:
    return ConnectivityMonitor(notifier)


@pytest.fixture
def queue(notifier) -> OfflineQueue:
    return OfflineQueue(notifier=notifier)


class TestConnectivityMonitor:
    def test_going_offline_raises_persistent_low_priority_notice(self, monitor, notifier):
        monitor.set_online(False)

        [notice] = notifier.notifications
        assert notice.message == OFFLINE_MESSAGE
        assert notice.persistent is True
        assert notice.priority is NotificationPriority.LOW
        assert monitor.is_online is False

    def test_coming_back_online_notifies_and_triggers_sync(self, monitor, notifier):
        triggered = []
        monitor.on_sync_requested(lambda: triggered.append(True))
        monitor.set_online(False)

        monitor.set_online(True)

        assert notifier.messages == [OFFLINE_MESSAGE, ONLINE_MESSAGE]
        assert notifier.notifications[-1].level is NotificationLevel.SUCCESS
        assert triggered == [True]

    def test_repeated_signals_are_ignored(self, monitor, notifier):
        triggered = []
        monitor.on_sync_requested(lambda: triggered.append(True))

        monitor.set_online(True)
        monitor.set_online(False)
        monitor.set_online(False)

        assert notifier.messages == [OFFLINE_MESSAGE]
        assert triggered == []

    def test_failing_sync_handler_does_not_block_others(self, monitor):
        triggered = []

        def broken():
            raise RuntimeError("boom")

        monitor.on_sync_requested(broken)
        monitor.on_sync_requested(lambda: triggered.append(True))
        monitor.set_online(False)

        monitor.set_online(True)

        assert triggered == [True]

    def test_cancelled_sync_subscription(self, monitor):
        triggered = []
        subscription = monitor.on_sync_requested(lambda: triggered.append(True))
        subscription.cancel()
        monitor.set_online(False)

        monitor.set_online(True)

        assert triggered == []


class TestOfflineSyncCoordinator:
    @pytest.mark.asyncio
    async def test_offline_writes_are_queued(self, queue, monitor):
        api = AsyncMock()
        coordinator = OfflineSyncCoordinator(queue, monitor, api)
        monitor.set_online(False)

        outcome = await coordinator.submit_write("/api/vitals", "POST", {"pulse": 60})

        assert outcome.queued is True
        assert queue.get_offline_data() == [outcome.queued_entry]
        api.request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_online_writes_go_straight_through(self, queue, monitor):
        api = AsyncMock()
        api.request.return_value = {"id": 7}
        coordinator = OfflineSyncCoordinator(queue, monitor, api)

        outcome = await coordinator.submit_write("/api/mood", "POST", {"mood": "ok"})

        assert outcome.queued is False
        assert outcome.response == {"id": 7}
        api.request.assert_awaited_once_with(url="/api/mood", method="POST", data={"mood": "ok"})

    @pytest.mark.asyncio
    async def test_unreachable_backend_queues_write(self, queue, monitor):
        api = AsyncMock()
        api.request.side_effect = httpx.ConnectError("connection refused")
        coordinator = OfflineSyncCoordinator(queue, monitor, api)

        outcome = await coordinator.submit_write("/api/vitals", "POST", {})

        assert outcome.queued is True
        assert len(queue) == 1

    @pytest.mark.asyncio
    async def test_http_error_status_propagates(self, queue, monitor):
        request = httpx.Request("POST", "http://api/api/vitals")
        response = httpx.Response(422, request=request)
        api = AsyncMock()
        api.request.side_effect = httpx.HTTPStatusError("bad", request=request, response=response)
        coordinator = OfflineSyncCoordinator(queue, monitor, api)

        with pytest.raises(httpx.HTTPStatusError):
            await coordinator.submit_write("/api/vitals", "POST", {})

        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_reconnect_replays_queue(self, queue, monitor, notifier):
        api = AsyncMock()
        coordinator = OfflineSyncCoordinator(queue, monitor, api)
        monitor.set_online(False)
        await coordinator.submit_write("/api/a", "POST", {})
        await coordinator.submit_write("/api/b", "POST", {})

        monitor.set_online(True)
        [result] = await coordinator.wait_for_pending_sync()

        assert result.synced_count == 2
        assert len(queue) == 0
        assert notifier.messages[-1] == "Synced 2 offline items"

    @pytest.mark.asyncio
    async def test_three_offline_writes_replayed_after_reconnect(self, queue, monitor):
        api = AsyncMock()
        coordinator = OfflineSyncCoordinator(queue, monitor, api)
        monitor.set_online(False)
        for endpoint in ("/api/vitals", "/api/mood", "/api/appointments"):
            await coordinator.submit_write(endpoint, "POST", {"source": endpoint})

        assert [entry.endpoint for entry in queue.replay_order()] == ["/api/vitals", "/api/mood", "/api/appointments"]

        monitor.set_online(True)
        [result] = await coordinator.wait_for_pending_sync()

        assert {call.kwargs["url"] for call in api.request.await_args_list} == {
            "/api/vitals",
            "/api/mood",
            "/api/appointments",
        }
        assert result.synced_count == 3
        assert queue.get_offline_data() == []

    def test_trigger_without_event_loop_does_not_sync(self, queue, monitor):
        api = AsyncMock()
        OfflineSyncCoordinator(queue, monitor, api)
        queue.store_offline_data("/api/a", "POST", {})
        monitor.set_online(False)

        monitor.set_online(True)

        assert len(queue) == 1
        api.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_close_detaches_from_monitor(self, queue, monitor):
        api = AsyncMock()
        coordinator = OfflineSyncCoordinator(queue, monitor, api)
        coordinator.close()
        queue.store_offline_data("/api/a", "POST", {})
        monitor.set_online(False)

        monitor.set_online(True)

        assert await coordinator.wait_for_pending_sync() == []
        assert len(queue) == 1
