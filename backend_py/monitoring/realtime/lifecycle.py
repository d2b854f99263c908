"""Connection Lifecycle Manager.

Per-connection state machine::

    Connecting -> Authenticated -> Active -> Disconnected
         \\____________________________________/
          (authentication failed, or dropped mid-handshake)

``connect`` authenticates and joins the standing rooms. ``dispatch``
is the one entry point for every inbound client message: it looks the
message name up in a table and calls the matching handler with the
connection it came from. ``disconnect`` tears everything down exactly
once, however many times it is called.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set

from .broadcaster import EventBroadcaster
from .errors import AuthFailure, ConnectionClosed, MalformedMessage, RelayError
from .events import DomainEvent, EventKind, stamped, utcnow
from .rooms import RoomRegistry, alert_room, department_room, patient_room, role_room, user_room
from .schemas import (
    AcknowledgeAlert,
    EmergencyAlertRequest,
    PatientStatusUpdate,
    ResolveAlert,
    StaffAssignmentUpdate,
    VitalSignsUpdate,
    WebRTCAnswer,
    WebRTCIceCandidate,
    WebRTCOffer,
    parse_id,
    parse_message,
)
from .session import Identity, SessionAuthenticator
from .signaling import RELAY_ERROR, SignalingRelay, SignalKind

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    authenticated = "authenticated"
    active = "active"
    disconnected = "disconnected"


@dataclass
class Connection:
    id: str
    identity: Identity
    created_at: datetime = field(default_factory=utcnow)
    state: ConnectionState = ConnectionState.authenticated


def standing_rooms(identity: Identity) -> List[str]:
    rooms = [role_room(identity.role)]
    if identity.department:
        rooms.append(department_room(identity.department))
    rooms.append(user_room(identity.id))
    return rooms


Handler = Callable[[Connection, Any], Awaitable[Any]]


class ConnectionLifecycleManager:
    def __init__(
        self,
        registry: RoomRegistry,
        authenticator: SessionAuthenticator,
        broadcaster: EventBroadcaster,
        relay: SignalingRelay,
    ):
        self.registry = registry
        self.authenticator = authenticator
        self.broadcaster = broadcaster
        self.relay = relay
        self._connections: Dict[str, Connection] = {}
        self._pending: Set[str] = set()
        self._lock = threading.Lock()
        self._handlers: Dict[str, Handler] = {
            "joinPatientRoom": self._join_patient_room,
            "leavePatientRoom": self._leave_patient_room,
            "joinAlertRoom": self._join_alert_room,
            "leaveAlertRoom": self._leave_alert_room,
            "vitalSignsUpdate": self._vital_signs_update,
            "acknowledgeAlert": self._acknowledge_alert,
            "resolveAlert": self._resolve_alert,
            "patientStatusUpdate": self._patient_status_update,
            "staffAssignmentUpdate": self._staff_assignment_update,
            "emergencyAlert": self._emergency_alert,
            "join-webrtc-room": self._join_signaling_room,
            "leave-webrtc-room": self._leave_signaling_room,
            "webrtc-offer": self._relay_offer,
            "webrtc-answer": self._relay_answer,
            "webrtc-ice-candidate": self._relay_ice_candidate,
        }

    @property
    def inbound_messages(self) -> List[str]:
        return list(self._handlers)

    def get(self, connection_id: str) -> Optional[Connection]:
        with self._lock:
            return self._connections.get(connection_id)

    def connections(self) -> List[Connection]:
        with self._lock:
            return list(self._connections.values())

    # ------------------------------------------------------------------
    # Connect / disconnect
    # ------------------------------------------------------------------

    async def connect(
        self,
        connection_id: str,
        environ: Optional[Mapping[str, Any]],
        auth: Any = None,
    ) -> Connection:
        """Authenticate and join the standing rooms.

        Raises AuthFailure before any state is created if the handshake
        does not resolve to an active user, and ConnectionClosed if the
        connection was dropped while the user lookup was in flight.
        """
        with self._lock:
            self._pending.add(connection_id)
        try:
            identity = await self.authenticator.authenticate(environ, auth)
        except AuthFailure as exc:
            logger.warning("Refused connection %s: %s", connection_id, exc.code)
            raise
        finally:
            with self._lock:
                still_open = connection_id in self._pending
                self._pending.discard(connection_id)

        if not still_open:
            logger.info("Connection %s closed before authentication finished", connection_id)
            raise ConnectionClosed(connection_id)

        connection = Connection(id=connection_id, identity=identity)
        with self._lock:
            self._connections[connection_id] = connection

        for room in standing_rooms(identity):
            self.registry.join(connection_id, room)
        connection.state = ConnectionState.active

        logger.info(
            "User %s connected with role %s (%s)", identity.id, identity.role, connection_id
        )
        return connection

    async def disconnect(self, connection_id: str, reason: Any = None) -> bool:
        """Leave every room and notify signaling peers.

        A connection still authenticating is marked closed so ``connect``
        never registers it. Returns False if the connection was already
        torn down.
        """
        with self._lock:
            if connection_id in self._pending:
                self._pending.discard(connection_id)
                return True
            connection = self._connections.pop(connection_id, None)
        if connection is None:
            return False
        connection.state = ConnectionState.disconnected

        try:
            for room_id in sorted(self.relay.rooms_of(connection_id)):
                await self.relay.leave(connection_id, room_id)
        finally:
            self.registry.leave_all(connection_id)

        logger.info(
            "User %s disconnected (%s): %s", connection.identity.id, connection_id, reason
        )
        return True

    async def disconnect_all(self, reason: str = "server shutdown") -> int:
        closed = 0
        for connection in self.connections():
            if await self.disconnect(connection.id, reason):
                closed += 1
        return closed

    # ------------------------------------------------------------------
    # Inbound dispatch
    # ------------------------------------------------------------------

    async def dispatch(self, connection_id: str, message: str, data: Any = None) -> Any:
        """Route one client message; the return value is the ack payload."""
        connection = self.get(connection_id)
        if connection is None or connection.state is not ConnectionState.active:
            logger.warning("Dropped %s from unknown connection %s", message, connection_id)
            return None

        handler = self._handlers.get(message)
        if handler is None:
            logger.debug("Ignoring unsupported message %s from %s", message, connection_id)
            return None

        try:
            return await handler(connection, data)
        except MalformedMessage as exc:
            logger.warning(
                "Malformed %s from user %s: %s", message, connection.identity.id, exc.detail
            )
            return exc.as_ack()
        except RelayError as exc:
            logger.warning("Relay rejected for %s: %s", connection_id, exc)
            await self.broadcaster.send_to(connection_id, RELAY_ERROR, exc.as_payload())
            return {"success": False, "error": exc.code}

    # Entity rooms

    def _join(self, connection: Connection, room: str) -> dict:
        self.registry.join(connection.id, room)
        logger.debug("User %s joined %s", connection.identity.id, room)
        return {"success": True, "room": room}

    def _leave(self, connection: Connection, room: str) -> dict:
        self.registry.leave(connection.id, room)
        logger.debug("User %s left %s", connection.identity.id, room)
        return {"success": True, "room": room}

    async def _join_patient_room(self, connection: Connection, data: Any) -> dict:
        return self._join(connection, patient_room(parse_id("joinPatientRoom", data, "patientId")))

    async def _leave_patient_room(self, connection: Connection, data: Any) -> dict:
        return self._leave(connection, patient_room(parse_id("leavePatientRoom", data, "patientId")))

    async def _join_alert_room(self, connection: Connection, data: Any) -> dict:
        return self._join(connection, alert_room(parse_id("joinAlertRoom", data, "alertId")))

    async def _leave_alert_room(self, connection: Connection, data: Any) -> dict:
        return self._leave(connection, alert_room(parse_id("leaveAlertRoom", data, "alertId")))

    # Client-originated domain events

    async def _publish_from(
        self, connection: Connection, kind: EventKind, fields: Dict[str, Any], **targets: Any
    ) -> dict:
        now = utcnow()
        event = DomainEvent(kind=kind, payload=stamped(fields, now), timestamp=now, **targets)
        delivered = await self.broadcaster.publish(event, exclude=connection.id)
        return {"success": True, "delivered": delivered}

    async def _vital_signs_update(self, connection: Connection, data: Any) -> dict:
        msg = parse_message(VitalSignsUpdate, "vitalSignsUpdate", data)
        return await self._publish_from(
            connection,
            EventKind.vital_signs_updated,
            {
                "patientId": msg.patientId,
                "vitalSigns": msg.vitalSigns,
                "updatedBy": connection.identity.id,
            },
            patient_id=msg.patientId,
        )

    async def _acknowledge_alert(self, connection: Connection, data: Any) -> dict:
        msg = parse_message(AcknowledgeAlert, "acknowledgeAlert", data)
        return await self._publish_from(
            connection,
            EventKind.alert_acknowledged,
            {"alertId": msg.alertId, "acknowledgedBy": connection.identity.id, "notes": msg.notes},
            alert_id=msg.alertId,
            patient_id=msg.patientId,
        )

    async def _resolve_alert(self, connection: Connection, data: Any) -> dict:
        msg = parse_message(ResolveAlert, "resolveAlert", data)
        return await self._publish_from(
            connection,
            EventKind.alert_resolved,
            {
                "alertId": msg.alertId,
                "resolvedBy": connection.identity.id,
                "resolutionNotes": msg.resolutionNotes,
            },
            alert_id=msg.alertId,
            patient_id=msg.patientId,
        )

    async def _patient_status_update(self, connection: Connection, data: Any) -> dict:
        msg = parse_message(PatientStatusUpdate, "patientStatusUpdate", data)
        return await self._publish_from(
            connection,
            EventKind.patient_status_changed,
            {"patientId": msg.patientId, "status": msg.status, "updatedBy": connection.identity.id},
            patient_id=msg.patientId,
        )

    async def _staff_assignment_update(self, connection: Connection, data: Any) -> dict:
        msg = parse_message(StaffAssignmentUpdate, "staffAssignmentUpdate", data)
        return await self._publish_from(
            connection,
            EventKind.staff_assignment_changed,
            {
                "patientId": msg.patientId,
                "staffId": msg.staffId,
                "action": msg.action,
                "updatedBy": connection.identity.id,
            },
            patient_id=msg.patientId,
        )

    async def _emergency_alert(self, connection: Connection, data: Any) -> dict:
        msg = parse_message(EmergencyAlertRequest, "emergencyAlert", data)
        logger.warning(
            "Emergency %s for patient %s raised by user %s",
            msg.alertType,
            msg.patientId,
            connection.identity.id,
        )
        return await self._publish_from(
            connection,
            EventKind.emergency_alert,
            {
                "patientId": msg.patientId,
                "alertType": msg.alertType,
                "message": msg.message,
                "priority": msg.priority,
                "triggeredBy": connection.identity.id,
            },
            patient_id=msg.patientId,
        )

    # Signaling

    async def _join_signaling_room(self, connection: Connection, data: Any) -> dict:
        room_id = parse_id("join-webrtc-room", data, "roomId")
        result = await self.relay.join(connection.id, room_id, connection.identity)
        return result.as_ack()

    async def _leave_signaling_room(self, connection: Connection, data: Any) -> dict:
        room_id = parse_id("leave-webrtc-room", data, "roomId")
        left = await self.relay.leave(connection.id, room_id)
        return {"success": left, "roomId": room_id}

    async def _relay(self, connection: Connection, kind: SignalKind, msg: Any) -> dict:
        await self.relay.relay(
            kind,
            msg.roomId,
            connection.id,
            msg.target,
            getattr(msg, kind.field),
            connection.identity,
        )
        return {"success": True}

    async def _relay_offer(self, connection: Connection, data: Any) -> dict:
        msg = parse_message(WebRTCOffer, SignalKind.offer.message, data)
        return await self._relay(connection, SignalKind.offer, msg)

    async def _relay_answer(self, connection: Connection, data: Any) -> dict:
        msg = parse_message(WebRTCAnswer, SignalKind.answer.message, data)
        return await self._relay(connection, SignalKind.answer, msg)

    async def _relay_ice_candidate(self, connection: Connection, data: Any) -> dict:
        msg = parse_message(WebRTCIceCandidate, SignalKind.ice_candidate.message, data)
        return await self._relay(connection, SignalKind.ice_candidate, msg)
