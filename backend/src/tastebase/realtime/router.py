"""Room membership and fan-out.

A room is the broadcast scope of one recipe page (``recipe-{id}``). Rooms are
created by the first join and disappear when their last member leaves.

The router keeps both directions of membership in step: a connection is in a
room's member set exactly when the room is in the connection's
``joined_rooms``. join, leave and broadcast are synchronous; delivery is
handed to a ``Delivery`` that must not block.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Optional, Protocol, Set

from tastebase.realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class Delivery(Protocol):
    """Hands one event to one connection's transport without waiting on it."""

    def deliver(self, connection_id: str, event: str, payload: Any) -> None:
        ...


class RoomRouter:
    """Maps room ids to member connections and fans events out to them."""

    def __init__(self, registry: ConnectionRegistry, delivery: Delivery) -> None:
        self._registry = registry
        self._delivery = delivery
        self._rooms: Dict[str, Set[str]] = {}

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    def join(self, connection_id: str, room_id: str) -> bool:
        """Add a connection to a room. Returns False when nothing changed."""
        connection = self._registry.get(connection_id)
        if connection is None:
            logger.warning("[ROOMS] Join for unknown connection | id=%s room=%s", connection_id, room_id)
            return False

        members = self._rooms.setdefault(room_id, set())
        if connection_id in members:
            return False

        members.add(connection_id)
        connection.joined_rooms.add(room_id)
        logger.info(
            "[ROOMS] Joined | id=%s user=%s room=%s members=%d",
            connection_id,
            connection.user_id,
            room_id,
            len(members),
        )
        return True

    def leave(self, connection_id: str, room_id: str) -> bool:
        """Remove a connection from a room. Returns False when it was not a member."""
        members = self._rooms.get(room_id)
        was_member = members is not None and connection_id in members
        if was_member:
            members.discard(connection_id)
            if not members:
                del self._rooms[room_id]

        connection = self._registry.get(connection_id)
        if connection is not None:
            connection.joined_rooms.discard(room_id)

        if was_member:
            logger.info(
                "[ROOMS] Left | id=%s room=%s members=%d",
                connection_id,
                room_id,
                len(self._rooms.get(room_id, ())),
            )
        return was_member

    def leave_all(self, connection_id: str) -> List[str]:
        """Remove a connection from every room it joined; returns those rooms."""
        connection = self._registry.get(connection_id)
        rooms = set(connection.joined_rooms) if connection is not None else set()
        # Also sweep rooms the connection record no longer lists
        rooms.update(room for room, members in self._rooms.items() if connection_id in members)

        for room_id in rooms:
            self.leave(connection_id, room_id)
        return sorted(rooms)

    def members(self, room_id: str) -> FrozenSet[str]:
        return frozenset(self._rooms.get(room_id, ()))

    def rooms_of(self, connection_id: str) -> FrozenSet[str]:
        connection = self._registry.get(connection_id)
        return frozenset(connection.joined_rooms) if connection is not None else frozenset()

    def room_count(self) -> int:
        return len(self._rooms)

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    def broadcast(
        self,
        room_id: str,
        event: str,
        payload: Any,
        exclude_connection_id: Optional[str] = None,
    ) -> int:
        """Deliver an event to every member of a room.

        Failures for one member are logged and skipped. Returns the number of
        members the event was handed to.
        """
        delivered = 0
        for connection_id in list(self._rooms.get(room_id, ())):
            if connection_id == exclude_connection_id:
                continue
            if self._deliver(connection_id, event, payload):
                delivered += 1

        logger.debug("[ROOMS] Broadcast | room=%s event=%s delivered=%d", room_id, event, delivered)
        return delivered

    def send(self, connection_id: str, event: str, payload: Any) -> bool:
        """Deliver an event to a single live connection."""
        if connection_id not in self._registry:
            logger.debug("[ROOMS] Dropping %s for departed connection %s", event, connection_id)
            return False
        return self._deliver(connection_id, event, payload)

    def _deliver(self, connection_id: str, event: str, payload: Any) -> bool:
        try:
            self._delivery.deliver(connection_id, event, payload)
        except Exception as exc:
            logger.warning(
                "[ROOMS] Delivery failed | id=%s event=%s error=%s",
                connection_id,
                event,
                exc,
            )
            return False
        return True
