from __future__ import annotations

from enum import StrEnum


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class ConnectionReason(StrEnum):
    CONNECT_REQUESTED = "connect_requested"
    HANDSHAKE_OK = "handshake_ok"
    HANDSHAKE_FAILED = "handshake_failed"
    AUTH_REJECTED = "auth_rejected"
    TRANSPORT_ERROR = "transport_error"
    REMOTE_CLOSED = "remote_closed"
    LOCAL_CLOSE = "local_close"


class MessageKind(StrEnum):
    TEXT = "TEXT"
    IMAGE = "IMAGE"


class FrameType(StrEnum):
    NEW_MESSAGE = "NEW_MESSAGE"
    TYPING = "TYPING"
    STOP_TYPING = "STOP_TYPING"


class SessionEvent(StrEnum):
    AUTHENTICATION_REQUIRED = "authentication_required"
    SESSION_EXPIRED = "session_expired"
