"""Socket.IO server definition.

This module instantiates the Socket.IO server and binds it to the
real-time core. Every inbound client message goes through one
catch-all handler into ``ConnectionLifecycleManager.dispatch``; the
handler's return value becomes the Socket.IO acknowledgement.
"""

from __future__ import annotations

import socketio
from socketio.exceptions import ConnectionRefusedError

from .config import ALLOWED_ORIGINS, SOCKET_PING_INTERVAL, SOCKET_PING_TIMEOUT
from .db import get_user
from .realtime import build_realtime
from .realtime.errors import AuthFailure, ConnectionClosed
from .realtime.transport import SocketIOTransport

# async_mode="asgi" because the server is mounted next to FastAPI and
# run by Uvicorn.
sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=ALLOWED_ORIGINS,
    ping_timeout=SOCKET_PING_TIMEOUT,
    ping_interval=SOCKET_PING_INTERVAL,
)

realtime = build_realtime(SocketIOTransport(sio), get_user)


@sio.event
async def connect(sid, environ, auth=None):
    """Authenticate the handshake and join the standing rooms."""
    try:
        await realtime.lifecycle.connect(sid, environ, auth)
    except AuthFailure as exc:
        raise ConnectionRefusedError(exc.message, {"code": exc.code})
    except ConnectionClosed:
        return False


@sio.event
async def disconnect(sid, *args):
    reason = args[0] if args else None
    await realtime.lifecycle.disconnect(sid, reason)


@sio.on("*")
async def dispatch(event, sid, *args):
    data = args[0] if args else None
    return await realtime.lifecycle.dispatch(sid, event, data)
