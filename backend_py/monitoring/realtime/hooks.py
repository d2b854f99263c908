"""Inbound interface for the HTTP/CRUD layer.

Request handlers call these after a successful mutation, passing the
resulting document. Each call maps onto one ``EventBroadcaster.publish``
under the fixed targeting policy. Documents may be plain mappings
(``{"_id": ..., "patient": ...}``) or objects with the same attributes;
references may be bare ids or populated sub-documents.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Iterable, Optional, Tuple

from .broadcaster import EventBroadcaster
from .events import DomainEvent, EventKind, stamped, utcnow


def _field(doc: Any, *names: str) -> Any:
    for name in names:
        if isinstance(doc, Mapping):
            value = doc.get(name)
        else:
            value = getattr(doc, name, None)
        if value is not None:
            return value
    return None


def ref_id(value: Any) -> Optional[str]:
    """Id of a reference that may be a bare id or a populated document."""
    if value is None:
        return None
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return str(value) or None
    nested = _field(value, "_id", "id")
    return ref_id(nested) if nested is not None else None


def _ref_ids(values: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    ids = (ref_id(v) for v in values or ())
    return tuple(dict.fromkeys(i for i in ids if i))


class DomainEventHooks:
    def __init__(self, broadcaster: EventBroadcaster):
        self.broadcaster = broadcaster

    async def _alert_event(self, kind: EventKind, alert: Any) -> int:
        event = DomainEvent(
            kind=kind,
            payload=alert,
            alert_id=ref_id(_field(alert, "_id", "id")),
            patient_id=ref_id(_field(alert, "patient", "patientId")),
        )
        return await self.broadcaster.publish(event)

    async def on_alert_created(self, alert: Any) -> int:
        return await self._alert_event(EventKind.new_alert, alert)

    async def on_alert_updated(self, alert: Any) -> int:
        return await self._alert_event(EventKind.alert_updated, alert)

    async def on_alert_acknowledged(self, alert: Any) -> int:
        return await self._alert_event(EventKind.alert_acknowledged, alert)

    async def on_alert_resolved(self, alert: Any) -> int:
        return await self._alert_event(EventKind.alert_resolved, alert)

    async def on_alert_escalated(self, alert: Any) -> int:
        return await self._alert_event(EventKind.alert_escalated, alert)

    async def on_alert_assigned(self, alert: Any) -> int:
        return await self._alert_event(EventKind.alert_assigned, alert)

    async def on_patient_updated(self, patient: Any) -> int:
        event = DomainEvent(
            kind=EventKind.patient_updated,
            payload=patient,
            patient_id=ref_id(_field(patient, "_id", "id")),
            staff_ids=_ref_ids(_field(patient, "assignedStaff")),
        )
        return await self.broadcaster.publish(event)

    async def on_vital_signs_recorded(
        self, patient_id: str, vital_signs: Dict[str, Any], updated_by: Optional[str] = None
    ) -> int:
        now = utcnow()
        payload = {"patientId": patient_id, "vitalSigns": vital_signs, "updatedBy": updated_by}
        event = DomainEvent(
            kind=EventKind.vital_signs_updated,
            payload=stamped(payload, now),
            patient_id=patient_id,
            timestamp=now,
        )
        return await self.broadcaster.publish(event)

    async def on_emergency(self, patient_id: str, alert_data: Dict[str, Any]) -> int:
        now = utcnow()
        event = DomainEvent(
            kind=EventKind.emergency_alert,
            payload=stamped({"patientId": patient_id, **alert_data}, now),
            patient_id=patient_id,
            timestamp=now,
        )
        return await self.broadcaster.publish(event)

    async def notify_system(self, notification: Dict[str, Any]) -> int:
        return await self._notify(EventKind.system_notification, notification)

    async def notify_department(self, department: str, notification: Dict[str, Any]) -> int:
        return await self._notify(EventKind.department_notification, notification, department=department)

    async def notify_role(self, role: str, notification: Dict[str, Any]) -> int:
        return await self._notify(EventKind.role_notification, notification, role=role)

    async def _notify(self, kind: EventKind, notification: Dict[str, Any], **targets: Any) -> int:
        now = utcnow()
        event = DomainEvent(kind=kind, payload=stamped(notification, now), timestamp=now, **targets)
        return await self.broadcaster.publish(event)
