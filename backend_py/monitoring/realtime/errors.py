"""Error taxonomy for the real-time layer.

Only ``AuthFailure`` is fatal, and only to the connection attempt that
raised it. Everything else is local to one message: the offending
request is dropped and the connection stays up.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class RealtimeError(Exception):
    """Base class for errors raised by the real-time layer."""

    code = "RealtimeError"


class AuthFailureReason(str, Enum):
    missing_token = "MissingToken"
    invalid_token = "InvalidToken"
    expired_token = "ExpiredToken"
    inactive_account = "InactiveAccount"


_AUTH_MESSAGES = {
    AuthFailureReason.missing_token: "Authentication error: No token provided",
    AuthFailureReason.invalid_token: "Authentication error: Invalid token",
    AuthFailureReason.expired_token: "Authentication error: Token expired",
    AuthFailureReason.inactive_account: "Authentication error: Invalid user",
}


class AuthFailure(RealtimeError):
    """The handshake could not be resolved to an active identity."""

    def __init__(self, reason: AuthFailureReason, message: str | None = None):
        self.reason = reason
        self.code = f"AuthFailure:{reason.value}"
        super().__init__(message or _AUTH_MESSAGES[reason])

    @property
    def message(self) -> str:
        return str(self)


class RelayErrorReason(str, Enum):
    not_a_member = "NotAMember"


class RelayError(RealtimeError):
    """A signaling message could not be relayed."""

    def __init__(self, reason: RelayErrorReason, room_id: str, detail: str = ""):
        self.reason = reason
        self.room_id = room_id
        self.code = f"RelayError:{reason.value}"
        super().__init__(detail or f"{self.code} (room {room_id})")

    def as_payload(self) -> dict[str, Any]:
        return {"code": self.code, "roomId": self.room_id, "message": str(self)}


class MalformedMessage(RealtimeError):
    """A client-originated message is missing required fields."""

    code = "MalformedMessage"

    def __init__(self, message_name: str, detail: Any = None):
        self.message_name = message_name
        self.detail = detail
        super().__init__(f"Malformed '{message_name}' message")

    def as_ack(self) -> dict[str, Any]:
        return {"success": False, "error": self.code, "detail": self.detail}


class ConnectionClosed(RealtimeError):
    """The transport went away before the handshake finished."""

    code = "ConnectionClosed"

    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id} closed during handshake")
