"""Room Registry.

Rooms are named broadcast groups. The kind of a room is encoded in the
prefix of its name, so names never collide across kinds:

    role:<role>
    department:<department>
    user:<userId>
    entity:<type>:<id>      (entity type is ``patient`` or ``alert``)
    signaling:<roomId>

A room only exists while it has members. The registry keeps both
directions of the membership relation (room -> connections and
connection -> rooms) and mutates them together under one lock, so a
reader never sees one side updated without the other.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Set


class RoomKind(str, Enum):
    role = "role"
    department = "department"
    user = "user"
    entity = "entity"
    signaling = "signaling"


def role_room(role: str) -> str:
    return f"{RoomKind.role.value}:{role}"


def department_room(department: str) -> str:
    return f"{RoomKind.department.value}:{department}"


def user_room(user_id: str) -> str:
    return f"{RoomKind.user.value}:{user_id}"


def entity_room(entity_type: str, entity_id: str) -> str:
    return f"{RoomKind.entity.value}:{entity_type}:{entity_id}"


def patient_room(patient_id: str) -> str:
    return entity_room("patient", patient_id)


def alert_room(alert_id: str) -> str:
    return entity_room("alert", alert_id)


def signaling_room(room_id: str) -> str:
    return f"{RoomKind.signaling.value}:{room_id}"


def room_kind(room: str) -> Optional[RoomKind]:
    """Return the kind encoded in ``room``'s prefix, or None if unknown."""
    prefix, sep, _ = room.partition(":")
    if not sep:
        return None
    try:
        return RoomKind(prefix)
    except ValueError:
        return None


def room_key(room: str) -> str:
    """Strip the kind prefix: ``signaling:ABC`` -> ``ABC``."""
    return room.partition(":")[2]


class RoomRegistry:
    """Owns every membership set in the process.

    All methods are safe to call from the event loop and from worker
    threads. Reads return copies.
    """

    def __init__(self) -> None:
        self._members: Dict[str, Set[str]] = {}
        self._rooms: Dict[str, Set[str]] = {}
        self._lock = threading.RLock()

    def join(self, connection_id: str, room: str) -> bool:
        """Add ``connection_id`` to ``room``.

        Returns True if the membership is new, False if it already existed.
        """
        with self._lock:
            members = self._members.setdefault(room, set())
            if connection_id in members:
                return False
            members.add(connection_id)
            self._rooms.setdefault(connection_id, set()).add(room)
            return True

    def leave(self, connection_id: str, room: str) -> bool:
        """Remove ``connection_id`` from ``room``; no-op if not a member."""
        with self._lock:
            members = self._members.get(room)
            if not members or connection_id not in members:
                return False
            self._discard(connection_id, room)
            return True

    def leave_all(self, connection_id: str) -> FrozenSet[str]:
        """Remove ``connection_id`` from every room. Returns the rooms it left."""
        with self._lock:
            rooms = frozenset(self._rooms.get(connection_id, ()))
            for room in rooms:
                self._discard(connection_id, room)
            return rooms

    def _discard(self, connection_id: str, room: str) -> None:
        members = self._members[room]
        members.discard(connection_id)
        if not members:
            del self._members[room]
        rooms = self._rooms.get(connection_id)
        if rooms is not None:
            rooms.discard(room)
            if not rooms:
                del self._rooms[connection_id]

    def members_of(self, room: str) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._members.get(room, ()))

    def rooms_of(self, connection_id: str) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._rooms.get(connection_id, ()))

    def member_count(self, room: str) -> int:
        with self._lock:
            return len(self._members.get(room, ()))

    def exists(self, room: str) -> bool:
        return self.member_count(room) > 0

    def is_member(self, connection_id: str, room: str) -> bool:
        with self._lock:
            return connection_id in self._members.get(room, ())

    def members_of_any(self, rooms: Iterable[str]) -> FrozenSet[str]:
        """Union of the members of ``rooms``, taken under one lock."""
        with self._lock:
            found: Set[str] = set()
            for room in rooms:
                found.update(self._members.get(room, ()))
            return frozenset(found)

    def rooms(self, kind: Optional[RoomKind] = None) -> FrozenSet[str]:
        """Names of all existing rooms, optionally restricted to one kind."""
        with self._lock:
            if kind is None:
                return frozenset(self._members)
            prefix = f"{kind.value}:"
            return frozenset(r for r in self._members if r.startswith(prefix))

    def connections(self) -> FrozenSet[str]:
        """Every connection that belongs to at least one room."""
        with self._lock:
            return frozenset(self._rooms)
