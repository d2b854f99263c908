"""Presence Tracker.

Counts are computed from the standing ``role:`` and ``department:``
rooms on every call. There are no counters of its own to drift out of
sync with the registry.
"""

from __future__ import annotations

from typing import Dict

from .rooms import RoomKind, RoomRegistry, department_room, role_room, room_key


class PresenceTracker:
    def __init__(self, registry: RoomRegistry):
        self.registry = registry

    def count(self) -> int:
        """Total live connections (every authenticated connection holds a role room)."""
        return len(self.registry.members_of_any(self.registry.rooms(RoomKind.role)))

    def count_by_role(self, role: str) -> int:
        return self.registry.member_count(role_room(role))

    def count_by_department(self, department: str) -> int:
        return self.registry.member_count(department_room(department))

    def online_users(self) -> int:
        """Distinct users online; two tabs for one user count once."""
        return len(self.registry.rooms(RoomKind.user))

    def _breakdown(self, kind: RoomKind) -> Dict[str, int]:
        return {
            room_key(room): self.registry.member_count(room)
            for room in sorted(self.registry.rooms(kind))
        }

    def snapshot(self) -> Dict[str, object]:
        return {
            "connections": self.count(),
            "users": self.online_users(),
            "byRole": self._breakdown(RoomKind.role),
            "byDepartment": self._breakdown(RoomKind.department),
        }
