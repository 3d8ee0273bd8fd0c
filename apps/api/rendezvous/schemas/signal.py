"""Wire contracts for the signaling WebSocket."""
from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MessageType(str, enum.Enum):
    JOIN = "join"
    JOINED = "joined"
    WAITING = "waiting"
    PEER_JOINED = "peer-joined"
    PEER_LEFT = "peer-left"
    OFFER = "offer"
    ANSWER = "answer"
    ICE = "ice"
    ERROR = "error"


RELAYED_TYPES = frozenset({MessageType.OFFER.value, MessageType.ANSWER.value, MessageType.ICE.value})


class SignalMessage(BaseModel):
    """A single signaling frame.

    ``type`` is kept as a plain string, empty when absent, so unknown or missing
    kinds decode cleanly and are handled by the dispatcher instead of tearing
    down the connection.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    type: str = ""
    room: str | None = None
    session_id: str | None = None
    client_id: str | None = None
    from_id: str | None = None
    target_id: str | None = None
    sdp: str | None = None
    candidate: Any = Field(default=None, description="Opaque ICE candidate blob")
    offerer: bool | None = None
    status: str | None = None
    error: str | None = None

    def to_wire(self) -> str:
        """Serialise with camelCase keys, omitting unset fields."""

        return self.model_dump_json(by_alias=True, exclude_none=True)


class HealthResponse(BaseModel):
    status: str = Field(default="ok")


class StatsResponse(BaseModel):
    rooms: int = Field(..., ge=0, description="Rooms currently registered")
    occupants: int = Field(..., ge=0, description="Occupant records across all rooms")


class IceServer(BaseModel):
    urls: str


class IceServersResponse(BaseModel):
    ice_servers: list[IceServer]
