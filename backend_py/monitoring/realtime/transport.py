"""Outbound delivery seam.

The core never talks to python-socketio directly. It hands messages to
a ``Transport`` addressed by connection id, which keeps the room and
signaling logic testable without a live server.
"""

from __future__ import annotations

from typing import Any, Protocol

import socketio


class Transport(Protocol):
    async def send(self, connection_id: str, message: str, payload: Any) -> None:
        ...


class SocketIOTransport:
    """Deliver messages through a ``socketio.AsyncServer``."""

    def __init__(self, sio: socketio.AsyncServer):
        self.sio = sio

    async def send(self, connection_id: str, message: str, payload: Any) -> None:
        await self.sio.emit(message, payload, to=connection_id)
