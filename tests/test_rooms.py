import threading

from monitoring.realtime.rooms import (
    RoomKind,
    RoomRegistry,
    alert_room,
    patient_room,
    role_room,
    room_key,
    room_kind,
    signaling_room,
    user_room,
)


def test_room_names_encode_kind():
    assert role_room("Doctor") == "role:Doctor"
    assert user_room("u1") == "user:u1"
    assert patient_room("P1") == "entity:patient:P1"
    assert alert_room("A1") == "entity:alert:A1"
    assert signaling_room("ABC") == "signaling:ABC"

    assert room_kind("entity:patient:P1") is RoomKind.entity
    assert room_kind("signaling:ABC") is RoomKind.signaling
    assert room_kind("nonsense") is None
    assert room_kind("lobby:1") is None
    assert room_key("signaling:ABC") == "ABC"


def test_join_is_idempotent():
    reg = RoomRegistry()
    assert reg.join("c1", "role:Doctor") is True
    assert reg.join("c1", "role:Doctor") is False

    assert reg.members_of("role:Doctor") == {"c1"}
    assert reg.rooms_of("c1") == {"role:Doctor"}


def test_leave_non_member_is_noop():
    reg = RoomRegistry()
    reg.join("c1", "user:u1")
    assert reg.leave("c2", "user:u1") is False
    assert reg.leave("c1", "user:missing") is False
    assert reg.members_of("user:u1") == {"c1"}


def test_empty_room_does_not_exist():
    reg = RoomRegistry()
    reg.join("c1", "entity:patient:P1")
    assert reg.exists("entity:patient:P1")

    reg.leave("c1", "entity:patient:P1")
    assert not reg.exists("entity:patient:P1")
    assert "entity:patient:P1" not in reg.rooms()
    assert reg.rooms_of("c1") == frozenset()


def test_leave_all_removes_every_membership():
    reg = RoomRegistry()
    rooms = ["role:Nurse", "department:ICU", "user:n1", "entity:patient:P1", "signaling:R"]
    for room in rooms:
        reg.join("c1", room)
    reg.join("c2", "role:Nurse")

    left = reg.leave_all("c1")

    assert left == set(rooms)
    for room in rooms:
        assert "c1" not in reg.members_of(room)
    assert reg.members_of("role:Nurse") == {"c2"}
    assert reg.leave_all("c1") == frozenset()


def test_membership_is_symmetric():
    reg = RoomRegistry()
    reg.join("c1", "role:Doctor")
    reg.join("c1", "entity:alert:A1")
    reg.join("c2", "entity:alert:A1")
    reg.leave("c1", "entity:alert:A1")

    for cid in reg.connections():
        for room in reg.rooms_of(cid):
            assert cid in reg.members_of(room)
    for room in reg.rooms():
        for cid in reg.members_of(room):
            assert room in reg.rooms_of(cid)


def test_rooms_filtered_by_kind():
    reg = RoomRegistry()
    reg.join("c1", "role:Doctor")
    reg.join("c1", "department:ICU")
    reg.join("c2", "signaling:R1")

    assert reg.rooms(RoomKind.role) == {"role:Doctor"}
    assert reg.rooms(RoomKind.signaling) == {"signaling:R1"}
    assert reg.members_of_any(["role:Doctor", "signaling:R1", "role:Nurse"]) == {"c1", "c2"}


def test_concurrent_join_and_leave_keep_registry_consistent():
    reg = RoomRegistry()

    def churn(n):
        cid = f"c{n}"
        for i in range(200):
            reg.join(cid, f"entity:patient:{i % 5}")
            reg.join(cid, "role:Doctor")
            if i % 3 == 0:
                reg.leave(cid, f"entity:patient:{i % 5}")
        reg.leave_all(cid)

    threads = [threading.Thread(target=churn, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert reg.rooms() == frozenset()
    assert reg.connections() == frozenset()
