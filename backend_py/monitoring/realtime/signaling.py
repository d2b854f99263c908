"""Signaling Relay for live camera sharing.

Two browser peers find each other through a ``signaling:<roomId>``
room and exchange offer, answer and ICE candidate messages through the
server. The server never looks inside those payloads. What it does
enforce is membership: a message is only forwarded when both the
sender and the addressed target are currently in the named room.

Room lifecycle per room id::

    Empty --first join--> Active --last leave--> Empty

Existence is derived from the registry; creation and teardown are
logged as explicit transitions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet

from .broadcaster import EventBroadcaster
from .errors import RelayError, RelayErrorReason
from .rooms import RoomKind, RoomRegistry, room_key, room_kind, signaling_room
from .session import Identity

logger = logging.getLogger(__name__)

PEER_JOINED = "webrtc-user-joined"
PEER_LEFT = "webrtc-user-left"
RELAY_ERROR = "webrtc-error"


class SignalKind(str, Enum):
    offer = "offer"
    answer = "answer"
    ice_candidate = "ice-candidate"

    @property
    def message(self) -> str:
        return f"webrtc-{self.value}"

    @property
    def field(self) -> str:
        return "candidate" if self is SignalKind.ice_candidate else self.value


@dataclass(frozen=True)
class JoinResult:
    room_id: str
    participant_count: int
    created: bool

    def as_ack(self) -> dict[str, Any]:
        return {"success": True, "roomId": self.room_id, "participantCount": self.participant_count}


class SignalingRelay:
    def __init__(self, registry: RoomRegistry, broadcaster: EventBroadcaster):
        self.registry = registry
        self.broadcaster = broadcaster

    def participants(self, room_id: str) -> FrozenSet[str]:
        return self.registry.members_of(signaling_room(room_id))

    def active_rooms(self) -> FrozenSet[str]:
        return frozenset(room_key(r) for r in self.registry.rooms(RoomKind.signaling))

    def rooms_of(self, connection_id: str) -> FrozenSet[str]:
        return frozenset(
            room_key(r)
            for r in self.registry.rooms_of(connection_id)
            if room_kind(r) is RoomKind.signaling
        )

    async def join(self, connection_id: str, room_id: str, identity: Identity) -> JoinResult:
        room = signaling_room(room_id)
        added = self.registry.join(connection_id, room)
        members = self.registry.members_of(room)
        created = added and members == {connection_id}
        if created:
            logger.info("Signaling room %s created by %s", room_id, connection_id)

        result = JoinResult(room_id=room_id, participant_count=len(members), created=created)
        if not added:
            return result

        others = sorted(members - {connection_id})
        if others:
            await self.broadcaster.send_many(
                others,
                PEER_JOINED,
                {"socketId": connection_id, "userId": identity.id, "userRole": identity.role},
            )
        return result

    async def leave(self, connection_id: str, room_id: str) -> bool:
        room = signaling_room(room_id)
        if not self.registry.leave(connection_id, room):
            return False

        remaining = sorted(self.registry.members_of(room))
        if not remaining:
            logger.info("Signaling room %s torn down", room_id)
            return True

        await self.broadcaster.send_many(remaining, PEER_LEFT, {"socketId": connection_id})
        return True

    async def relay(
        self,
        kind: SignalKind,
        room_id: str,
        from_connection_id: str,
        target_connection_id: str,
        payload: Any,
        sender: Identity,
    ) -> bool:
        """Forward ``payload`` verbatim to the target, tagged with its sender.

        Raises RelayError if either end is not in the room.
        """
        room = signaling_room(room_id)
        members = self.registry.members_of(room)
        if from_connection_id not in members or target_connection_id not in members:
            raise RelayError(
                RelayErrorReason.not_a_member,
                room_id,
                f"{kind.message} from {from_connection_id} to {target_connection_id} "
                f"rejected: both ends must be in room {room_id}",
            )

        return await self.broadcaster.send_to(
            target_connection_id,
            kind.message,
            {
                "roomId": room_id,
                kind.field: payload,
                "from": from_connection_id,
                "fromUserId": sender.id,
            },
        )
