"""Expose API routers for FastAPI.

Each module defines a ``router`` object which is registered in
``monitoring.main``.
"""

from . import realtime  # noqa: F401
from . import system  # noqa: F401
