"""Event Broadcaster.

Fans a domain event out to the connections currently in its target
rooms. Delivery is fire-and-forget and at-most-once: nothing is queued
for connections that are not in a room at publish time, and an event
with no listeners is simply a no-op.

The ``outbox`` hook is called with every event and its resolved routes
before fan-out. It is where a durable store could be attached later;
the targeting table does not change when one is.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence

from fastapi.encoders import jsonable_encoder

from .events import DomainEvent, Route, routes_for
from .rooms import RoomRegistry
from .transport import Transport

logger = logging.getLogger(__name__)

Outbox = Callable[[DomainEvent, Sequence[Route]], Optional[Awaitable[None]]]


class EventBroadcaster:
    def __init__(
        self,
        registry: RoomRegistry,
        transport: Transport,
        outbox: Optional[Outbox] = None,
    ):
        self.registry = registry
        self.transport = transport
        self.outbox = outbox

    async def publish(
        self,
        event: DomainEvent,
        target_rooms: Optional[Iterable[str]] = None,
        exclude: Optional[str] = None,
    ) -> int:
        """Deliver ``event`` and return how many sends succeeded.

        ``target_rooms`` overrides the fixed policy for this event; it is
        meant for replaying a single route, not for normal publishing.
        ``exclude`` skips one connection, normally the one the event came
        from.
        """
        if target_rooms is not None:
            routes = [Route(event.message, tuple(target_rooms))]
        else:
            routes = routes_for(event)

        if self.outbox is not None:
            result = self.outbox(event, routes)
            if asyncio.iscoroutine(result):
                await result

        payload = jsonable_encoder(event.payload)
        delivered = 0
        for route in routes:
            delivered += await self._deliver(route, payload, exclude)

        logger.debug(
            "Published %s to %s: %d delivered",
            event.message,
            ["*" if r.is_broadcast else list(r.rooms or ()) for r in routes],
            delivered,
        )
        return delivered

    async def _deliver(self, route: Route, payload: Any, exclude: Optional[str]) -> int:
        if route.is_broadcast:
            recipients = self.registry.connections()
        else:
            recipients = self.registry.members_of_any(route.rooms or ())
        if exclude is not None:
            recipients = recipients - {exclude}
        if not recipients:
            return 0
        return await self.send_many(sorted(recipients), route.message, payload)

    async def send_many(self, connection_ids: Sequence[str], message: str, payload: Any) -> int:
        results = await asyncio.gather(
            *(self.transport.send(cid, message, payload) for cid in connection_ids),
            return_exceptions=True,
        )
        delivered = 0
        for cid, result in zip(connection_ids, results):
            if isinstance(result, Exception):
                logger.warning("Failed to send %s to %s: %s", message, cid, result)
            else:
                delivered += 1
        return delivered

    async def send_to(self, connection_id: str, message: str, payload: Any) -> bool:
        """Send one message to one connection. Returns False if the send failed."""
        return await self.send_many([connection_id], message, jsonable_encoder(payload)) == 1
