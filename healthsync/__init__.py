"""
HealthSync real-time health update notifications.

Server side: healthsync.realtime (room registry, event dispatcher, WebSocket
handler) served by the FastAPI app in healthsync.app.
Client side: healthsync.client (transport, health update feed, offline queue).
"""

__version__ = "0.1.0"
