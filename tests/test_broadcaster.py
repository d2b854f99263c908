from datetime import datetime, timezone

import pytest

from monitoring.realtime.events import DomainEvent, EventKind


@pytest.mark.asyncio
async def test_publish_to_empty_room_is_a_noop(rt, transport):
    event = DomainEvent(EventKind.vital_signs_updated, {"patientId": "P1"}, patient_id="P1")

    delivered = await rt.broadcaster.publish(event)

    assert delivered == 0
    assert transport.sent == []


@pytest.mark.asyncio
async def test_critical_alert_reaches_clinicians_with_no_patient_watchers(rt, transport, connect):
    await connect("s-doc", "doc-1")
    await connect("s-nurse", "nurse-1")
    await connect("s-tech", "tech-1")
    alert = {"_id": "A1", "patient": "P1", "priority": "Critical"}

    delivered = await rt.hooks.on_alert_created(alert)

    assert delivered == 2
    assert transport.recipients("newAlert") == ["s-doc", "s-nurse"]
    assert rt.registry.members_of("entity:patient:P1") == frozenset()
    assert transport.to("s-doc", "newAlert") == [alert]


@pytest.mark.asyncio
async def test_connection_in_several_target_rooms_receives_once(rt, transport, connect):
    await connect("s-doc", "doc-1")
    await rt.lifecycle.dispatch("s-doc", "joinPatientRoom", "P1")

    delivered = await rt.hooks.on_alert_created({"_id": "A1", "patient": "P1"})

    assert delivered == 1
    assert transport.messages_for("s-doc") == ["newAlert"]


@pytest.mark.asyncio
async def test_two_tabs_for_one_user_both_receive(rt, transport, connect):
    await connect("tab-1", "nurse-1")
    await connect("tab-2", "nurse-1")

    patient = {"_id": "P1", "assignedStaff": [{"_id": "nurse-1"}, "doc-2"]}
    delivered = await rt.hooks.on_patient_updated(patient)

    assert delivered == 2
    assert transport.recipients("assignedPatientUpdated") == ["tab-1", "tab-2"]
    assert transport.recipients("patientUpdated") == []


@pytest.mark.asyncio
async def test_system_notification_reaches_everyone(rt, transport, connect):
    for sid, uid in [("s1", "doc-1"), ("s2", "tech-1"), ("s3", "admin-1")]:
        await connect(sid, uid)

    delivered = await rt.hooks.notify_system({"title": "Maintenance", "message": "Tonight"})

    assert delivered == 3
    payload = transport.to("s2", "systemNotification")[0]
    assert payload["title"] == "Maintenance"
    assert "timestamp" in payload


@pytest.mark.asyncio
async def test_department_and_role_notifications(rt, transport, connect):
    await connect("s-icu-doc", "doc-2")
    await connect("s-icu-nurse", "nurse-1")
    await connect("s-cardio", "doc-1")

    assert await rt.hooks.notify_department("ICU", {"message": "Bed 4 free"}) == 2
    assert transport.recipients("departmentNotification") == ["s-icu-doc", "s-icu-nurse"]

    assert await rt.hooks.notify_role("Doctor", {"message": "Rounds"}) == 2
    assert transport.recipients("roleNotification") == ["s-cardio", "s-icu-doc"]


@pytest.mark.asyncio
async def test_failed_sends_are_not_counted(rt, transport, connect):
    await connect("s-doc", "doc-1")
    await connect("s-nurse", "nurse-1")
    transport.broken.add("s-nurse")

    delivered = await rt.hooks.on_emergency("P1", {"alertType": "cardiac", "message": "Code blue"})

    assert delivered == 1
    assert transport.recipients("emergencyAlert") == ["s-doc"]


@pytest.mark.asyncio
async def test_explicit_target_rooms_and_exclude(rt, transport, connect):
    await connect("s1", "doc-1")
    await connect("s2", "doc-2")
    event = DomainEvent(EventKind.role_notification, {"message": "hi"}, role="Nurse")

    delivered = await rt.broadcaster.publish(event, target_rooms=["role:Doctor"], exclude="s1")

    assert delivered == 1
    assert transport.recipients("roleNotification") == ["s2"]


@pytest.mark.asyncio
async def test_payload_is_made_json_safe(rt, transport, connect):
    await connect("s1", "doc-1")
    await rt.lifecycle.dispatch("s1", "joinAlertRoom", "A9")
    when = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    await rt.hooks.on_alert_escalated({"_id": "A9", "escalatedAt": when, "escalationLevel": 2})

    payload = transport.to("s1", "alertEscalated")[0]
    assert payload["escalatedAt"] == when.isoformat()


@pytest.mark.asyncio
async def test_outbox_sees_every_event_before_fan_out(transport, users):
    from monitoring.realtime import build_realtime

    seen = []

    async def outbox(event, routes):
        seen.append((event.kind, [r.message for r in routes]))

    rt = build_realtime(transport, users.get, outbox=outbox)
    await rt.hooks.on_patient_updated({"_id": "P1", "assignedStaff": ["doc-1"]})

    assert seen == [(EventKind.patient_updated, ["patientUpdated", "assignedPatientUpdated"])]
