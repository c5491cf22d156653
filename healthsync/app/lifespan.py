"""Application lifecycle management for the HealthSync server."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..config import get_config
from ..container import ApplicationContainer
from ..structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging

logger = get_logger("healthsync.lifespan")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds the ApplicationContainer on startup and closes every live
    connection on shutdown. A container placed on app.state before startup
    (tests do this) is used as-is.
    """
    config = get_config()
    setup_enhanced_logging(config.logging)
    logger.info("Starting HealthSync server")

    container = getattr(app.state, "container", None)
    if container is None:
        container = ApplicationContainer(config=config)
        app.state.container = container
    if not container.is_initialized:
        await container.initialize()

    try:
        yield
    finally:
        logger.info("Shutting down HealthSync server")
        await container.shutdown()
