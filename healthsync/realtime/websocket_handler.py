"""
WebSocket handler for HealthSync real-time communication.

This module owns the lifetime of one server-side connection: registration
with the room registry, the sender task, the inbound message loop, and the
cleanup that runs on every disconnect.
"""

import asyncio
import contextlib
import uuid
from collections.abc import Callable
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from ..error_types import ErrorMessages, ErrorType, create_websocket_error_response
from ..exceptions import ErrorContext, MessageValidationError
from ..structured_logging.enhanced_logging_config import bind_request_context, clear_request_context, get_logger
from .connection_models import ConnectionHandle
from .envelope import build_event, decode_event
from .event_dispatcher import EventDispatcher
from .health_events import CONNECTION_STATUS, EMERGENCY_REQUEST, ERROR, HEALTH_UPDATE, JOIN_USER_ROOM
from .messages import EmergencyRequestMessage, HealthUpdateMessage, JoinUserRoomMessage
from .room_registry import RoomRegistry

logger = get_logger(__name__)

MAX_MESSAGE_SIZE = 16 * 1024  # 16KB maximum inbound frame

EmergencyRequestHandler = Callable[[str, dict[str, Any]], None]


def log_emergency_request(user_id: str, details: dict[str, Any]) -> None:
    """Default emergency request handler: record it for the on-call integration."""
    logger.critical("Emergency support requested", user_id=user_id, details=details)


def _validate(model: type[BaseModel], data: dict[str, Any], event_type: str, handle: ConnectionHandle) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MessageValidationError(
            f"Invalid '{event_type}' payload: {e.errors(include_url=False)}",
            ErrorContext(connection_id=handle.connection_id, user_id=handle.user_id, event_type=event_type),
            event_type=event_type,
        ) from e


def _send_error(handle: ConnectionHandle, error_type: ErrorType, message: str, user_friendly: str, **details: Any) -> None:
    payload = create_websocket_error_response(error_type, message, user_friendly, details)
    handle.deliver(build_event(ERROR, payload, user_id=handle.user_id))


def _handle_join(handle: ConnectionHandle, data: dict[str, Any], registry: RoomRegistry) -> None:
    message: JoinUserRoomMessage = _validate(JoinUserRoomMessage, data, JOIN_USER_ROOM, handle)
    registry.join(handle.connection_id, message.user_id)
    bind_request_context(user_id=message.user_id)
    handle.deliver(
        build_event(CONNECTION_STATUS, {"connected": True, "userId": message.user_id}, user_id=message.user_id)
    )


def _handle_health_update(handle: ConnectionHandle, data: dict[str, Any], dispatcher: EventDispatcher) -> None:
    message: HealthUpdateMessage = _validate(HealthUpdateMessage, data, HEALTH_UPDATE, handle)
    if handle.user_id is None:
        _send_error(handle, ErrorType.NOT_JOINED, "health_update before join_user_room", ErrorMessages.NOT_JOINED)
        return
    if message.user_id is not None and message.user_id != handle.user_id:
        raise MessageValidationError(
            "health_update userId does not match the joined room",
            ErrorContext(connection_id=handle.connection_id, user_id=handle.user_id, event_type=HEALTH_UPDATE),
            event_type=HEALTH_UPDATE,
        )
    dispatcher.publish(message.type, message.data, handle.user_id)


def _handle_emergency_request(
    handle: ConnectionHandle, data: dict[str, Any], emergency_handler: EmergencyRequestHandler
) -> None:
    message: EmergencyRequestMessage = _validate(EmergencyRequestMessage, data, EMERGENCY_REQUEST, handle)
    if handle.user_id is not None and message.user_id is not None and message.user_id != handle.user_id:
        raise MessageValidationError(
            "emergency_request userId does not match the joined room",
            ErrorContext(connection_id=handle.connection_id, user_id=handle.user_id, event_type=EMERGENCY_REQUEST),
            event_type=EMERGENCY_REQUEST,
        )
    # Unjoined connections fall back to the userId in the body
    user_id = handle.user_id or message.user_id
    if user_id is None:
        _send_error(handle, ErrorType.NOT_JOINED, "emergency_request without a user", ErrorMessages.NOT_JOINED)
        return
    emergency_handler(user_id, message.details)


def process_message(
    raw: str,
    handle: ConnectionHandle,
    registry: RoomRegistry,
    dispatcher: EventDispatcher,
    emergency_handler: EmergencyRequestHandler = log_emergency_request,
) -> None:
    """
    Handle one inbound text frame.

    Raises:
        MessageValidationError: If the frame or its payload is malformed
    """
    if len(raw.encode("utf-8")) > MAX_MESSAGE_SIZE:
        raise MessageValidationError(
            f"Message exceeds maximum size of {MAX_MESSAGE_SIZE} bytes",
            ErrorContext(connection_id=handle.connection_id, user_id=handle.user_id),
        )

    event_type, data = decode_event(raw)
    logger.debug("WebSocket message received", connection_id=handle.connection_id, event_type=event_type)

    if event_type == JOIN_USER_ROOM:
        _handle_join(handle, data, registry)
    elif event_type == HEALTH_UPDATE:
        _handle_health_update(handle, data, dispatcher)
    elif event_type == EMERGENCY_REQUEST:
        _handle_emergency_request(handle, data, emergency_handler)
    else:
        logger.warning("Unsupported WebSocket event", connection_id=handle.connection_id, event_type=event_type)
        _send_error(
            handle,
            ErrorType.UNKNOWN_EVENT,
            f"Unsupported event '{event_type}'",
            ErrorMessages.UNKNOWN_EVENT,
            event_type=event_type,
        )


async def _handle_websocket_message_loop(
    websocket: WebSocket,
    handle: ConnectionHandle,
    registry: RoomRegistry,
    dispatcher: EventDispatcher,
    emergency_handler: EmergencyRequestHandler,
) -> None:
    """Receive frames until the client goes away."""
    while True:
        try:
            raw = await websocket.receive_text()
        except WebSocketDisconnect:
            logger.info("WebSocket disconnected", connection_id=handle.connection_id, user_id=handle.user_id)
            return
        except RuntimeError as e:
            if "not connected" in str(e) or 'Need to call "accept" first' in str(e):
                logger.warning("WebSocket connection lost", connection_id=handle.connection_id, error=str(e))
                return
            raise

        handle.touch()
        try:
            process_message(raw, handle, registry, dispatcher, emergency_handler)
        except MessageValidationError as e:
            _send_error(
                handle,
                ErrorType.INVALID_FORMAT,
                e.message,
                ErrorMessages.INVALID_FORMAT,
                **e.details,
            )
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: One bad frame must not drop the connection
            logger.error(
                "Error handling WebSocket message",
                connection_id=handle.connection_id,
                user_id=handle.user_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            _send_error(
                handle,
                ErrorType.MESSAGE_PROCESSING_ERROR,
                f"Internal server error: {type(e).__name__}",
                ErrorMessages.MESSAGE_PROCESSING_ERROR,
            )


async def handle_websocket_connection(
    websocket: WebSocket,
    registry: RoomRegistry,
    dispatcher: EventDispatcher,
    emergency_handler: EmergencyRequestHandler = log_emergency_request,
) -> None:
    """
    Serve one WebSocket connection until it closes.

    Args:
        websocket: The accepted-or-pending WebSocket
        registry: Room registry owned by the application
        dispatcher: Event dispatcher used to re-publish client health updates
        emergency_handler: Receives (user_id, details) for emergency requests
    """
    await websocket.accept()
    connection_id = str(uuid.uuid4())
    handle = ConnectionHandle(connection_id=connection_id, send_text=websocket.send_text)
    registry.register_connection(handle)
    sender = asyncio.create_task(handle.run_sender(), name=f"healthsync-sender-{connection_id}")
    bind_request_context(connection_id=connection_id)
    logger.info("WebSocket connection established", connection_id=connection_id)

    try:
        await _handle_websocket_message_loop(websocket, handle, registry, dispatcher, emergency_handler)
    finally:
        registry.leave(connection_id)
        handle.close()
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
        logger.info("WebSocket connection cleaned up", connection_id=connection_id, user_id=handle.user_id)
        clear_request_context()
