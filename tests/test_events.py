import pytest

from monitoring.realtime.events import (
    ASSIGNED_PATIENT_UPDATED,
    OUTBOUND_MESSAGES,
    DomainEvent,
    EventKind,
    Route,
    routes_for,
)


def rooms(event):
    return [(r.message, r.rooms) for r in routes_for(event)]


def test_wire_names_are_stable():
    assert set(OUTBOUND_MESSAGES) == {k.value for k in EventKind} | {ASSIGNED_PATIENT_UPDATED}
    assert len(OUTBOUND_MESSAGES) == 15


def test_new_alert_targets_clinical_roles_and_patient():
    event = DomainEvent(EventKind.new_alert, {"_id": "A1"}, alert_id="A1", patient_id="P1")
    assert rooms(event) == [("newAlert", ("role:Doctor", "role:Nurse", "entity:patient:P1"))]


def test_new_alert_without_patient():
    event = DomainEvent(EventKind.new_alert, {"_id": "A1"}, alert_id="A1")
    assert rooms(event) == [("newAlert", ("role:Doctor", "role:Nurse"))]


@pytest.mark.parametrize(
    "kind",
    [
        EventKind.alert_updated,
        EventKind.alert_acknowledged,
        EventKind.alert_resolved,
        EventKind.alert_escalated,
        EventKind.alert_assigned,
    ],
)
def test_alert_lifecycle_targets_alert_and_patient_rooms(kind):
    event = DomainEvent(kind, {}, alert_id="A1", patient_id="P1")
    assert rooms(event) == [(kind.value, ("entity:alert:A1", "entity:patient:P1"))]


def test_patient_update_fans_out_to_assigned_staff():
    event = DomainEvent(
        EventKind.patient_updated, {"_id": "P1"}, patient_id="P1", staff_ids=("u1", "u2")
    )
    assert routes_for(event) == [
        Route("patientUpdated", ("entity:patient:P1",)),
        Route(ASSIGNED_PATIENT_UPDATED, ("user:u1", "user:u2")),
    ]


def test_emergency_ignores_department():
    event = DomainEvent(EventKind.emergency_alert, {}, patient_id="P1", department="ICU")
    assert rooms(event) == [("emergencyAlert", ("role:Doctor", "role:Nurse"))]


def test_notifications():
    assert routes_for(DomainEvent(EventKind.system_notification, {}))[0].is_broadcast
    assert rooms(DomainEvent(EventKind.department_notification, {}, department="ICU")) == [
        ("departmentNotification", ("department:ICU",))
    ]
    assert rooms(DomainEvent(EventKind.role_notification, {}, role="Nurse")) == [
        ("roleNotification", ("role:Nurse",))
    ]


def test_events_are_immutable():
    event = DomainEvent(EventKind.vital_signs_updated, {}, patient_id="P1")
    with pytest.raises(AttributeError):
        event.patient_id = "P2"
