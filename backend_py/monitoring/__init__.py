"""Backend package for the patient-monitoring service.

This package exposes the ASGI application via ``monitoring.asgi_app``
which combines a FastAPI instance and a Socket.IO server into a single
ASGI app, e.g. ``uvicorn monitoring:asgi_app``. The real-time event
distribution layer lives in ``monitoring.realtime``.
"""

from __future__ import annotations

from .main import asgi_app  # noqa: F401
