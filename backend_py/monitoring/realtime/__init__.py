"""Real-time event distribution layer.

``build_realtime`` wires the components together around one shared
``RoomRegistry``. The socket server and the tests both go through it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .broadcaster import EventBroadcaster, Outbox
from .hooks import DomainEventHooks
from .lifecycle import ConnectionLifecycleManager
from .presence import PresenceTracker
from .rooms import RoomRegistry
from .session import SessionAuthenticator, UserLookup
from .signaling import SignalingRelay
from .transport import Transport


@dataclass
class Realtime:
    registry: RoomRegistry
    authenticator: SessionAuthenticator
    broadcaster: EventBroadcaster
    relay: SignalingRelay
    presence: PresenceTracker
    lifecycle: ConnectionLifecycleManager
    hooks: DomainEventHooks


def build_realtime(
    transport: Transport,
    user_lookup: UserLookup,
    outbox: Optional[Outbox] = None,
) -> Realtime:
    registry = RoomRegistry()
    authenticator = SessionAuthenticator(user_lookup)
    broadcaster = EventBroadcaster(registry, transport, outbox=outbox)
    relay = SignalingRelay(registry, broadcaster)
    return Realtime(
        registry=registry,
        authenticator=authenticator,
        broadcaster=broadcaster,
        relay=relay,
        presence=PresenceTracker(registry),
        lifecycle=ConnectionLifecycleManager(registry, authenticator, broadcaster, relay),
        hooks=DomainEventHooks(broadcaster),
    )
