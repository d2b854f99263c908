"""Runtime configuration.

All settings come from environment variables so the same image can be
promoted between environments. Values are read once at import time.
"""

from __future__ import annotations

import os

ENV = os.getenv("ENV", "development")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

JWT_SECRET = os.getenv("JWT_SECRET", "change-this-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRY_SECONDS = int(os.getenv("JWT_EXPIRY_SECONDS", str(24 * 60 * 60)))

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./monitoring.db")

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
ALLOWED_ORIGINS = sorted({FRONTEND_URL, "http://localhost:3000", "http://127.0.0.1:3000"})

SOCKET_PING_TIMEOUT = int(os.getenv("SOCKET_PING_TIMEOUT", "25"))
SOCKET_PING_INTERVAL = int(os.getenv("SOCKET_PING_INTERVAL", "20"))

# Roles that receive every new alert and every emergency, hospital-wide.
EMERGENCY_ROLES = tuple(
    r.strip() for r in os.getenv("EMERGENCY_ROLES", "Doctor,Nurse").split(",") if r.strip()
)
