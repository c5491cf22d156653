"""
Test configuration and fixtures for the HealthSync test suite.
"""

import os
import random
from collections.abc import Generator
from datetime import UTC, datetime

import pytest

# Set environment defaults before any healthsync import reads configuration
os.environ.setdefault("SERVER_PORT", "54731")
os.environ.setdefault("SERVER_HOST", "127.0.0.1")
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")

# Imports must come after environment variables to prevent config loading failures
from healthsync.client.emergency import LoggingDialer  # noqa: E402
from healthsync.client.identity import UserIdentity  # noqa: E402
from healthsync.client.reconnection_policy import ReconnectionPolicy  # noqa: E402
from healthsync.config import reset_config  # noqa: E402
from healthsync.realtime.connection_models import ConnectionHandle  # noqa: E402
from healthsync.realtime.event_dispatcher import EventDispatcher  # noqa: E402
from healthsync.realtime.room_registry import RoomRegistry  # noqa: E402
from healthsync.tests.fixtures.fakes import RecordingNotifier  # noqa: E402

FIXED_TIME = datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset config singleton before and after each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def deterministic_random_seed() -> Generator[None, None, None]:
    random.seed(1234)
    yield


@pytest.fixture
def registry() -> RoomRegistry:
    return RoomRegistry()


@pytest.fixture
def dispatcher(registry: RoomRegistry) -> EventDispatcher:
    return EventDispatcher(registry, clock=lambda: FIXED_TIME)


@pytest.fixture
def make_handle():
    """Factory for connection handles that record what their sender writes."""

    def _make(connection_id: str) -> ConnectionHandle:
        sent: list[str] = []

        async def send_text(text: str) -> None:
            sent.append(text)

        handle = ConnectionHandle(connection_id=connection_id, send_text=send_text)
        handle.sent = sent  # type: ignore[attr-defined]
        return handle

    return _make


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def dialer() -> LoggingDialer:
    return LoggingDialer()


@pytest.fixture
def user() -> UserIdentity:
    return UserIdentity(user_id="user-123")


@pytest.fixture
def no_retry_policy() -> ReconnectionPolicy:
    """Policy that gives up after the first failed reconnect."""
    return ReconnectionPolicy(max_attempts=1, initial_delay=0.0, max_delay=0.0, jitter=0.0)
