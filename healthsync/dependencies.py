"""
Dependency injection providers for HealthSync.

Route handlers that write health records get the dispatcher here and call
one of its producers after the write succeeds:

    @router.post("/vitals")
    async def record_vitals(body: VitalsIn, dispatcher: EventDispatcher = Depends(get_event_dispatcher)):
        ...
        dispatcher.vitals_recorded(user_id, body.model_dump())
"""

from fastapi import HTTPException, Request
from starlette.requests import HTTPConnection

from .container import ApplicationContainer
from .error_types import ErrorMessages
from .realtime.event_dispatcher import EventDispatcher
from .realtime.room_registry import RoomRegistry
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def get_container(connection: HTTPConnection) -> ApplicationContainer:
    """
    Get the application container from app state.

    Accepts both HTTP requests and WebSockets.

    Raises:
        HTTPException: 503 if the container was never initialized
    """
    container = getattr(connection.app.state, "container", None)
    if container is None or not container.is_initialized:
        logger.error("ApplicationContainer not available", path=connection.url.path)
        raise HTTPException(status_code=503, detail=ErrorMessages.SYSTEM_UNAVAILABLE)
    return container


def get_room_registry(request: Request) -> RoomRegistry:
    registry = get_container(request).room_registry
    assert registry is not None
    return registry


def get_event_dispatcher(request: Request) -> EventDispatcher:
    """Get the application's EventDispatcher."""
    dispatcher = get_container(request).event_dispatcher
    assert dispatcher is not None
    return dispatcher
