"""Message variants exchanged over a channel and their JSON text codec."""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Optional, Union

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class _MessageBase(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class HelloMessage(_MessageBase):
    """Greeting sent by the service right after the upgrade."""

    type: Literal["hello"] = "hello"
    protocol_version: int = Field(alias="protocolVersion")
    app_name: str = Field(alias="appName")
    app_version: str = Field(alias="appVersion")
    sha: Optional[str] = None


class CommandMessage(_MessageBase):
    """Client request."""

    type: Literal["command"] = "command"
    command: str
    params: Optional[Any] = None
    id: Optional[str] = None


class ResponseMessage(_MessageBase):
    """Service reply to a command, correlated by ``id``."""

    type: Literal["response"] = "response"
    command: str
    id: Optional[str] = None
    result: Optional[Any] = None
    error: bool = False


class EventMessage(_MessageBase):
    """Unsolicited service notification."""

    type: Literal["event"] = "event"
    event: str
    payload: Optional[Any] = None
    nanos: Optional[int] = None
    paused: Optional[bool] = None


class ErrorMessage(_MessageBase):
    type: Literal["error"] = "error"
    message: str


Message = Annotated[
    Union[HelloMessage, CommandMessage, ResponseMessage, EventMessage, ErrorMessage],
    Field(discriminator="type"),
]

_MESSAGE_ADAPTER: TypeAdapter[Message] = TypeAdapter(Message)


class MessageDecodeError(ValueError):
    """Raised when an inbound text frame is not a valid message."""

    def __init__(self, raw: str, detail: str) -> None:
        super().__init__(f"Malformed message: {detail}")
        self.raw = raw
        self.detail = detail


class MessageEncodeError(ValueError):
    """Raised when an outbound message cannot be serialised to JSON."""


def decode_message(raw: str) -> Message:
    try:
        return _MESSAGE_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        raise MessageDecodeError(raw, str(exc)) from exc


def encode_message(message: Message | dict[str, Any]) -> str:
    """Serialise one message (model or plain mapping) to a JSON text frame."""

    try:
        return json.dumps(jsonable_encoder(message, by_alias=True, exclude_none=True))
    except (TypeError, ValueError) as exc:
        raise MessageEncodeError(f"Cannot encode message: {exc}") from exc


__all__ = [
    "HelloMessage",
    "CommandMessage",
    "ResponseMessage",
    "EventMessage",
    "ErrorMessage",
    "Message",
    "MessageDecodeError",
    "MessageEncodeError",
    "decode_message",
    "encode_message",
]
