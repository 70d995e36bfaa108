"""Wire schemas shared by the service and the realtime client."""

from .frames import (
    AuthErrorFrame,
    AuthFrame,
    AuthSuccessFrame,
    CountUpdateFrame,
    NewNotificationFrame,
    NotificationReadFrame,
    PingFrame,
    PongFrame,
    ProtocolError,
    decode_client_frame,
    decode_server_frame,
    encode_frame,
)

__all__ = [
    "AuthErrorFrame",
    "AuthFrame",
    "AuthSuccessFrame",
    "CountUpdateFrame",
    "NewNotificationFrame",
    "NotificationReadFrame",
    "PingFrame",
    "PongFrame",
    "ProtocolError",
    "decode_client_frame",
    "decode_server_frame",
    "encode_frame",
]
