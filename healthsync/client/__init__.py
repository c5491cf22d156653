"""
Client side of the HealthSync real-time layer.

ClientTransport keeps the WebSocket session, HealthUpdateFeed turns events
into history and notifications, and OfflineQueue with its coordinator holds
writes made while offline.
"""

from .connection_state_machine import ConnectionState
from .connectivity import ConnectivityMonitor, OfflineSyncCoordinator
from .emergency import EmergencyOutcome
from .health_feed import HealthUpdateFeed
from .identity import UserIdentity
from .offline_queue import OfflineQueue
from .reconnection_policy import ReconnectionPolicy
from .transport import ClientTransport

__all__ = [
    "ClientTransport",
    "ConnectionState",
    "ConnectivityMonitor",
    "EmergencyOutcome",
    "HealthUpdateFeed",
    "OfflineQueue",
    "OfflineSyncCoordinator",
    "ReconnectionPolicy",
    "UserIdentity",
]
