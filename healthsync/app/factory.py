"""
FastAPI application factory for the HealthSync server.

This module handles FastAPI app creation, middleware configuration,
and router registration.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..api.real_time import realtime_router
from ..config import get_config
from ..container import ApplicationContainer
from ..structured_logging.enhanced_logging_config import get_logger
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app(container: ApplicationContainer | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Optional pre-built container; the lifespan builds one otherwise

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    config = get_config()
    app = FastAPI(
        title="HealthSync API",
        description="Real-time health update notifications",
        version="0.1.0",
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    cors_cfg = config.cors
    allow_methods = [str(m).upper() for m in cors_cfg.allow_methods]
    logger.info(
        "CORS configuration",
        allow_origins=cors_cfg.allow_origins,
        allow_methods=allow_methods,
        allow_headers=cors_cfg.allow_headers,
        allow_credentials=cors_cfg.allow_credentials,
        max_age=cors_cfg.max_age,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_cfg.allow_origins,
        allow_credentials=cors_cfg.allow_credentials,
        allow_methods=allow_methods,
        allow_headers=cors_cfg.allow_headers,
        max_age=cors_cfg.max_age,
    )

    app.include_router(realtime_router)

    @app.get("/api/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return app
