from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter

from ..config import APP_VERSION, ENV
from ..sockets import realtime

router = APIRouter(tags=["system"])

_STARTED = time.monotonic()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
def health():
    return {
        "success": True,
        "message": "Server is running",
        "timestamp": _now(),
        "uptime": round(time.monotonic() - _STARTED, 3),
        "environment": ENV,
    }


@router.get("/api/status")
def api_status():
    return {
        "success": True,
        "message": "API is operational",
        "version": APP_VERSION,
        "timestamp": _now(),
        "onlineUsers": realtime.presence.count(),
    }
