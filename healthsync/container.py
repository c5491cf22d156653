"""
Application container for the HealthSync server.

Owns the server-side services so nothing lives in a module global:

    # In application startup (app/lifespan.py):
    container = ApplicationContainer()
    await container.initialize()
    app.state.container = container

    # In dependency injection (dependencies.py):
    def get_room_registry(request: Request) -> RoomRegistry:
        return request.app.state.container.room_registry

    # In tests:
    container = ApplicationContainer(emergency_handler=recorded.append)
    await container.initialize()
"""

from typing import TYPE_CHECKING

from .config import get_config
from .realtime.event_dispatcher import EventDispatcher
from .realtime.room_registry import RoomRegistry
from .realtime.websocket_handler import EmergencyRequestHandler, log_emergency_request
from .structured_logging.enhanced_logging_config import get_logger

if TYPE_CHECKING:
    from .config.models import AppConfig

logger = get_logger(__name__)


class ApplicationContainer:
    """
    Holds the services for one application instance.

    Services are created in initialize(), not in __init__, so constructing
    a container has no side effects.
    """

    def __init__(
        self,
        config: "AppConfig | None" = None,
        emergency_handler: EmergencyRequestHandler | None = None,
    ) -> None:
        self.config: AppConfig | None = config
        self.room_registry: RoomRegistry | None = None
        self.event_dispatcher: EventDispatcher | None = None
        self.emergency_handler: EmergencyRequestHandler = emergency_handler or log_emergency_request
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Create the registry and dispatcher."""
        if self._initialized:
            logger.warning("ApplicationContainer already initialized")
            return
        if self.config is None:
            self.config = get_config()
        self.room_registry = RoomRegistry()
        self.event_dispatcher = EventDispatcher(self.room_registry)
        self._initialized = True
        logger.info("ApplicationContainer initialized", websocket_path=self.config.realtime.websocket_path)

    async def shutdown(self) -> None:
        """Close every live connection handle and drop the services."""
        if self.room_registry is not None:
            open_connections = list(self.room_registry.connections.values())
            for handle in open_connections:
                handle.close()
                self.room_registry.leave(handle.connection_id)
            logger.info("ApplicationContainer shut down", closed_connections=len(open_connections))
        self.room_registry = None
        self.event_dispatcher = None
        self._initialized = False
