"""
Structlog-based logging configuration for the HealthSync server and client.

This module is the single entry point for logging: it configures structlog
on top of the standard library logging module, and provides the
get_logger() accessor every other module uses.
"""

import logging
import re
import sys
import uuid
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars
from structlog.stdlib import BoundLogger, LoggerFactory

from healthsync.structured_logging.logging_processors import add_correlation_id, sanitize_sensitive_data

# NOTE: Infrastructure code uses structlog.get_logger() directly to avoid
# circular imports during logging initialization. All other modules must use
# get_logger() from this module.
logger = structlog.get_logger(__name__)

_ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


class _LoggingState:
    """State container for logging initialization to avoid global statements."""

    initialized: bool = False
    signature: str | None = None


_logging_state = _LoggingState()


def _strip_ansi_renderer(bound_logger: Any, name: str, event_dict: dict[str, Any]) -> str:
    """Render key/value pairs with ANSI escape sequences removed."""
    try:
        formatted = structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "event"])(
            bound_logger, name, event_dict
        )
        return _ANSI_ESCAPE.sub("", formatted)
    except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: a renderer failure must never crash the caller
        return f"Logging renderer error: {type(e).__name__}: {str(e)}"


def configure_enhanced_structlog(log_level: str = "INFO", log_format: str = "key_value") -> None:
    """
    Configure structlog processors and the stdlib root handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: "key_value" or "json"
    """
    base_processors: list[Any] = [
        # Security first - sanitize sensitive data
        sanitize_sensitive_data,
        merge_contextvars,
        add_correlation_id,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: Any = structlog.processors.JSONRenderer() if log_format == "json" else _strip_ansi_renderer

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    if not any(getattr(handler, "_healthsync_handler", False) for handler in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler._healthsync_handler = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)

    structlog.configure(
        processors=base_processors + [renderer],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=False,
    )


def setup_enhanced_logging(logging_config: Any, *, force_reconfigure: bool = False) -> None:
    """
    Set up logging from a LoggingConfig instance.

    Repeated calls are skipped unless the configuration changed or
    force_reconfigure is set.

    Args:
        logging_config: healthsync.config.models.LoggingConfig
        force_reconfigure: When True, reconfigure even if already initialized
    """
    signature = f"{logging_config.level}:{logging_config.format}:{logging_config.disable_logging}"

    if _logging_state.initialized and _logging_state.signature == signature and not force_reconfigure:
        get_logger("healthsync.structured_logging.setup").debug(
            "setup_enhanced_logging skipped; logging system already initialized", config_signature=signature
        )
        return

    if logging_config.disable_logging:
        logging.getLogger().setLevel(logging.CRITICAL + 1)
        configure_enhanced_structlog("CRITICAL", logging_config.format)
    else:
        configure_enhanced_structlog(logging_config.level, logging_config.format)
        _configure_uvicorn_logging()

    _logging_state.initialized = True
    _logging_state.signature = signature

    get_logger("healthsync.structured_logging.enhanced").info(
        "Logging system initialized",
        environment=logging_config.environment,
        log_level=logging_config.level,
        log_format=logging_config.format,
    )


def _configure_uvicorn_logging() -> None:
    """Route uvicorn's loggers through the root handler."""
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True


def bind_request_context(
    correlation_id: str | None = None,
    user_id: str | None = None,
    connection_id: str | None = None,
    **kwargs: Any,
) -> None:
    """
    Bind context to every subsequent log entry in the current task.

    Args:
        correlation_id: Unique correlation ID (generated when omitted)
        user_id: User ID if available
        connection_id: WebSocket connection ID if available
        **kwargs: Additional context variables
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    context_vars = {
        "correlation_id": correlation_id,
        "user_id": user_id,
        "connection_id": connection_id,
        **kwargs,
    }
    bind_contextvars(**{k: v for k, v in context_vars.items() if v is not None})


def clear_request_context() -> None:
    """Clear the current request context from logging."""
    clear_contextvars()


def get_logger(name: str) -> BoundLogger:
    """
    Get a structlog logger with the specified name.

    This is the public API for obtaining loggers. All application code
    should use this function rather than calling structlog.get_logger()
    directly.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)
