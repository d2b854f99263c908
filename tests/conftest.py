from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

# Must be set before the monitoring package reads its configuration.
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("EMERGENCY_ROLES", "Doctor,Nurse")

from monitoring.auth_utils import create_access_token  # noqa: E402
from monitoring.realtime import Realtime, build_realtime  # noqa: E402
from monitoring.realtime.lifecycle import Connection  # noqa: E402


class RecordingTransport:
    """Collects outbound messages instead of writing to sockets."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, Any]] = []
        self.broken: Set[str] = set()

    async def send(self, connection_id: str, message: str, payload: Any) -> None:
        if connection_id in self.broken:
            raise ConnectionResetError(f"{connection_id} is gone")
        self.sent.append((connection_id, message, payload))

    def to(self, connection_id: str, message: Optional[str] = None) -> List[Any]:
        return [
            payload
            for cid, msg, payload in self.sent
            if cid == connection_id and (message is None or msg == message)
        ]

    def messages_for(self, connection_id: str) -> List[str]:
        return [msg for cid, msg, _ in self.sent if cid == connection_id]

    def recipients(self, message: str) -> List[str]:
        return sorted(cid for cid, msg, _ in self.sent if msg == message)

    def clear(self) -> None:
        self.sent.clear()


@dataclass
class StoredUser:
    id: str
    role: str
    department: str
    is_active: bool = True


@pytest.fixture
def users() -> Dict[str, StoredUser]:
    return {
        "doc-1": StoredUser("doc-1", "Doctor", "Cardiology"),
        "doc-2": StoredUser("doc-2", "Doctor", "ICU"),
        "nurse-1": StoredUser("nurse-1", "Nurse", "ICU"),
        "tech-1": StoredUser("tech-1", "Technician", "Radiology"),
        "admin-1": StoredUser("admin-1", "Admin", "Administration"),
        "retired-1": StoredUser("retired-1", "Nurse", "ICU", is_active=False),
    }


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def rt(transport: RecordingTransport, users: Dict[str, StoredUser]) -> Realtime:
    return build_realtime(transport, users.get)


def _token_for(user_id: str, expires_in: Optional[int] = None) -> str:
    return create_access_token({"sub": user_id}, expires_in)


@pytest.fixture
def token_for():
    return _token_for


@pytest.fixture
def connect(rt: Realtime):
    """Authenticate ``user_id`` on connection ``sid``."""

    async def _connect(sid: str, user_id: str) -> Connection:
        return await rt.lifecycle.connect(sid, {}, {"token": _token_for(user_id)})

    return _connect
