"""
Inbound WebSocket message schemas.

Clients send camelCase keys (userId); the models accept either spelling.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .health_events import HealthUpdateType


class InboundMessage(BaseModel):
    """Base model for client -> server payloads."""

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class JoinUserRoomMessage(InboundMessage):
    """join_user_room {userId}"""

    user_id: str = Field(alias="userId", min_length=1, max_length=128)


class HealthUpdateMessage(InboundMessage):
    """health_update {type, data, userId}"""

    type: HealthUpdateType
    data: dict[str, Any] = Field(default_factory=dict)
    user_id: str | None = Field(default=None, alias="userId", max_length=128)


class EmergencyRequestMessage(InboundMessage):
    """emergency_request {...data, userId}; every other key is request detail."""

    model_config = ConfigDict(extra="allow")

    user_id: str | None = Field(default=None, alias="userId", max_length=128)

    @property
    def details(self) -> dict[str, Any]:
        return dict(self.model_extra or {})
