import json
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

JOIN = "join"


def to_text(value: Any) -> str:
    """Render a decoded JSON value as text the way JavaScript's String() does."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, list):
        return ",".join("" if item is None else to_text(item) for item in value)
    return "[object Object]"


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


class JoinMessage(BaseModel):
    """Client -> server: ``{"type": "join", "roomId"?, "clientId"?}``."""

    model_config = ConfigDict(extra="allow")

    type: Literal["join"] = JOIN
    roomId: Optional[str] = None
    clientId: Optional[str] = None

    @field_validator("roomId", "clientId", mode="before")
    @classmethod
    def coerce_identifier(cls, value: Any) -> Optional[str]:
        # Falsy values mean "use the default"; anything else becomes text.
        if not value:
            return None
        return to_text(value)


class RelayMessage(BaseModel):
    """Any client frame that is not a join, kept as the opaque object it arrived as."""

    payload: dict

    @property
    def type(self):
        return self.payload.get("type")


class JoinedMessage(BaseModel):
    """Server -> joiner acknowledgement."""

    type: Literal["joined"] = "joined"
    roomId: str
    clientId: str
    isHost: bool
    peerCount: int


class RoomStateMessage(BaseModel):
    """Server -> whole room whenever membership changes."""

    type: Literal["room"] = "room"
    peerCount: int
    hostId: Optional[str] = None


ClientMessage = Union[JoinMessage, RelayMessage]


def parse_client_message(raw: Union[str, bytes]) -> Optional[ClientMessage]:
    """Decode one inbound frame. Returns None when it is not a JSON object."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    try:
        data = json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, RecursionError, TypeError):
        # Bad syntax, NaN/Infinity, oversized integers and runaway nesting.
        return None
    if not isinstance(data, dict):
        return None

    if data.get("type") == JOIN:
        return JoinMessage.model_validate(data)
    return RelayMessage(payload=data)
