"""Domain events and the fixed targeting policy.

A ``DomainEvent`` is an immutable fact about a state change somewhere in
the hospital system. ``routes_for`` turns one event into the list of
``Route`` objects the broadcaster fans out: which wire message to send
and to which rooms. The policy is a fixed table; callers cannot change
it per publish.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..config import EMERGENCY_ROLES
from .rooms import alert_room, department_room, patient_room, role_room, user_room


class EventKind(str, Enum):
    """Domain event kinds. Values are the outbound wire message names."""

    new_alert = "newAlert"
    alert_updated = "alertUpdated"
    alert_acknowledged = "alertAcknowledged"
    alert_resolved = "alertResolved"
    alert_escalated = "alertEscalated"
    alert_assigned = "alertAssigned"
    vital_signs_updated = "vitalSignsUpdated"
    patient_updated = "patientUpdated"
    patient_status_changed = "patientStatusChanged"
    staff_assignment_changed = "staffAssignmentChanged"
    emergency_alert = "emergencyAlert"
    system_notification = "systemNotification"
    department_notification = "departmentNotification"
    role_notification = "roleNotification"


ASSIGNED_PATIENT_UPDATED = "assignedPatientUpdated"

# Every message name the server may send for a domain event.
OUTBOUND_MESSAGES = (
    "newAlert",
    "alertUpdated",
    "alertAcknowledged",
    "alertResolved",
    "alertEscalated",
    "alertAssigned",
    "vitalSignsUpdated",
    "patientUpdated",
    ASSIGNED_PATIENT_UPDATED,
    "patientStatusChanged",
    "staffAssignmentChanged",
    "emergencyAlert",
    "systemNotification",
    "departmentNotification",
    "roleNotification",
)

ALERT_LIFECYCLE_KINDS = frozenset(
    {
        EventKind.alert_updated,
        EventKind.alert_acknowledged,
        EventKind.alert_resolved,
        EventKind.alert_escalated,
        EventKind.alert_assigned,
    }
)

_PATIENT_ROOM_KINDS = frozenset(
    {
        EventKind.vital_signs_updated,
        EventKind.patient_status_changed,
        EventKind.staff_assignment_changed,
    }
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DomainEvent:
    kind: EventKind
    payload: Any
    patient_id: Optional[str] = None
    alert_id: Optional[str] = None
    staff_ids: Tuple[str, ...] = ()
    department: Optional[str] = None
    role: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def message(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class Route:
    """One fan-out leg of an event.

    ``rooms`` is None for a broadcast to every live connection.
    """

    message: str
    rooms: Optional[Tuple[str, ...]]

    @property
    def is_broadcast(self) -> bool:
        return self.rooms is None


def stamped(payload: Mapping[str, Any], when: datetime) -> Dict[str, Any]:
    """Copy ``payload`` with an ISO-8601 ``timestamp`` added."""
    out = dict(payload)
    out["timestamp"] = when.isoformat()
    return out


def routes_for(event: DomainEvent) -> List[Route]:
    kind = event.kind

    if kind is EventKind.new_alert:
        rooms = [role_room(r) for r in EMERGENCY_ROLES]
        if event.patient_id:
            rooms.append(patient_room(event.patient_id))
        return [Route(kind.value, tuple(rooms))]

    if kind in ALERT_LIFECYCLE_KINDS:
        rooms = []
        if event.alert_id:
            rooms.append(alert_room(event.alert_id))
        if event.patient_id:
            rooms.append(patient_room(event.patient_id))
        return [Route(kind.value, tuple(rooms))]

    if kind in _PATIENT_ROOM_KINDS:
        rooms = (patient_room(event.patient_id),) if event.patient_id else ()
        return [Route(kind.value, rooms)]

    if kind is EventKind.patient_updated:
        routes = []
        if event.patient_id:
            routes.append(Route(kind.value, (patient_room(event.patient_id),)))
        if event.staff_ids:
            staff_rooms = tuple(user_room(s) for s in event.staff_ids)
            routes.append(Route(ASSIGNED_PATIENT_UPDATED, staff_rooms))
        return routes

    if kind is EventKind.emergency_alert:
        # Hospital-wide; department is not consulted.
        return [Route(kind.value, tuple(role_room(r) for r in EMERGENCY_ROLES))]

    if kind is EventKind.system_notification:
        return [Route(kind.value, None)]

    if kind is EventKind.department_notification:
        rooms = (department_room(event.department),) if event.department else ()
        return [Route(kind.value, rooms)]

    if kind is EventKind.role_notification:
        rooms = (role_room(event.role),) if event.role else ()
        return [Route(kind.value, rooms)]

    raise ValueError(f"No targeting rule for event kind {kind!r}")
