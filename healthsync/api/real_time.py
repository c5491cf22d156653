"""
Real-time communication API endpoints for HealthSync.

This module exposes the WebSocket endpoint clients connect to and two
read-only introspection endpoints over the room registry.
"""

import time
from typing import Any

from fastapi import APIRouter, Depends, WebSocket

from ..dependencies import get_event_dispatcher, get_room_registry
from ..error_types import ErrorMessages, ErrorType, create_websocket_error_response
from ..realtime.envelope import build_event
from ..realtime.event_dispatcher import EventDispatcher
from ..realtime.health_events import ERROR
from ..realtime.room_registry import RoomRegistry
from ..realtime.websocket_handler import handle_websocket_connection
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

realtime_router = APIRouter(prefix="/api", tags=["realtime"])


@realtime_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    WebSocket endpoint for health update notifications.

    Connections start anonymous and join a user room with join_user_room.
    """
    container = getattr(websocket.app.state, "container", None)
    if container is None or not container.is_initialized:
        # Must accept before sending or closing with a reason
        await websocket.accept()
        error = create_websocket_error_response(ErrorType.INTERNAL_ERROR, ErrorMessages.SYSTEM_UNAVAILABLE)
        await websocket.send_json(build_event(ERROR, error))
        await websocket.close(code=1013)
        return

    try:
        await handle_websocket_connection(
            websocket,
            container.room_registry,
            container.event_dispatcher,
            emergency_handler=container.emergency_handler,
        )
    except Exception as e:
        logger.error("Error in WebSocket endpoint", error=str(e), exc_info=True)
        raise


@realtime_router.get("/connections/{user_id}")
async def get_user_connections(user_id: str, registry: RoomRegistry = Depends(get_room_registry)) -> dict[str, Any]:
    """
    Get the live connections in a user's room.
    """
    connection_ids = sorted(registry.get_room(user_id))
    connections = []
    for connection_id in connection_ids:
        handle = registry.get_connection(connection_id)
        if handle is not None:
            connections.append(handle.to_dict())

    logger.info("Connection info requested", user_id=user_id, connection_count=len(connection_ids))
    return {
        "user_id": user_id,
        "connection_ids": connection_ids,
        "connections": connections,
        "online": bool(connection_ids),
        "registry": registry.get_stats(),
        "timestamp": time.time(),
    }


@realtime_router.get("/realtime/stats")
async def get_realtime_statistics(
    registry: RoomRegistry = Depends(get_room_registry),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
) -> dict[str, Any]:
    """Get registry and dispatcher statistics."""
    statistics = {
        "registry": registry.get_stats(),
        "dispatcher": dispatcher.get_stats(),
        "timestamp": time.time(),
    }
    logger.info("Realtime statistics requested")
    return statistics
