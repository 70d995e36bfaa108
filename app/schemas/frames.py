"""Frames exchanged over the realtime notification channel.

Every frame is a single JSON object whose ``type`` member selects the frame
kind. Field names are camelCase on the wire and snake_case in Python.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel


class ProtocolError(ValueError):
    """Raised when a frame cannot be decoded."""


class _Frame(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
        extra="ignore",
    )


# Client -> server


class AuthFrame(_Frame):
    type: Literal["auth"] = "auth"
    recipient_id: str = Field(min_length=1)
    role: str = Field(min_length=1)


class PingFrame(_Frame):
    type: Literal["ping"] = "ping"


# Server -> client


class AuthSuccessFrame(_Frame):
    type: Literal["auth_success"] = "auth_success"
    message: str | None = None


class AuthErrorFrame(_Frame):
    type: Literal["auth_error"] = "auth_error"
    message: str


class NewNotificationFrame(_Frame):
    """A notification was created; ``count`` is the recipient's unread total."""

    type: Literal["new_notification"] = "new_notification"
    notification: dict[str, Any] | None = None
    count: int | None = Field(default=None, ge=0)


class NotificationReadFrame(_Frame):
    type: Literal["notification_read"] = "notification_read"
    notification_id: int | None = None


class CountUpdateFrame(_Frame):
    type: Literal["count_update"] = "count_update"
    count: int = Field(ge=0)


class PongFrame(_Frame):
    type: Literal["pong"] = "pong"


ClientFrame = Annotated[Union[AuthFrame, PingFrame], Field(discriminator="type")]
ServerFrame = Annotated[
    Union[
        AuthSuccessFrame,
        AuthErrorFrame,
        NewNotificationFrame,
        NotificationReadFrame,
        CountUpdateFrame,
        PongFrame,
    ],
    Field(discriminator="type"),
]

_client_frames: TypeAdapter[ClientFrame] = TypeAdapter(ClientFrame)
_server_frames: TypeAdapter[ServerFrame] = TypeAdapter(ServerFrame)


def encode_frame(frame: _Frame | Mapping[str, Any]) -> str:
    """Serialize ``frame`` into the JSON text sent over the wire."""

    if isinstance(frame, _Frame):
        return frame.model_dump_json(by_alias=True, exclude_none=True)
    if "type" not in frame:
        raise ProtocolError("Frames must declare a 'type'")
    return json.dumps(dict(frame), default=str)


def decode_client_frame(text: str | bytes) -> AuthFrame | PingFrame:
    """Parse a frame sent by a client."""

    return _decode(_client_frames, text)


def decode_server_frame(
    text: str | bytes,
) -> (
    AuthSuccessFrame
    | AuthErrorFrame
    | NewNotificationFrame
    | NotificationReadFrame
    | CountUpdateFrame
    | PongFrame
):
    """Parse a frame sent by the server."""

    return _decode(_server_frames, text)


def _decode(adapter: TypeAdapter, text: str | bytes):
    try:
        return adapter.validate_json(text)
    except ValidationError as exc:
        raise ProtocolError(f"Invalid frame: {exc.errors(include_url=False)}") from exc


__all__ = [
    "ProtocolError",
    "AuthFrame",
    "PingFrame",
    "AuthSuccessFrame",
    "AuthErrorFrame",
    "NewNotificationFrame",
    "NotificationReadFrame",
    "CountUpdateFrame",
    "PongFrame",
    "ClientFrame",
    "ServerFrame",
    "encode_frame",
    "decode_client_frame",
    "decode_server_frame",
]
