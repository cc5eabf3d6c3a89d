"""Connection lifecycle: authenticate on connect, clean up on disconnect.

Every inbound event also passes through ``handle_event``, which re-checks the
connection before the dispatcher sees the event. A connection that never
authenticated is not in the registry, so its events are dropped without
running any handler.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from auth.src.token_verifier import Identity, JWTVerifier
from tastebase.realtime.dispatcher import EventDispatcher, Outbound
from tastebase.realtime.events import OutboundEvent
from tastebase.realtime.exceptions import AuthenticationError
from tastebase.realtime.registry import Connection, ConnectionRegistry
from tastebase.realtime.router import RoomRouter
from tastebase.realtime.schemas import ErrorPayload

logger = logging.getLogger(__name__)


class IdentityVerifier(Protocol):
    def verify_token(self, token: Optional[str]) -> Optional[Identity]:
        ...


def extract_credential(auth: Optional[Dict[str, Any]], authorization_header: Optional[str] = None) -> Optional[str]:
    """Pull the bearer token out of handshake auth data, falling back to a header."""
    token = None
    if isinstance(auth, dict):
        token = auth.get("token")
    elif isinstance(auth, str):
        token = auth
    if not token:
        token = authorization_header
    return JWTVerifier.extract_token(token)


class ConnectionLifecycleManager:
    """Owns connect/disconnect and gates every event behind authentication."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        router: RoomRouter,
        verifier: IdentityVerifier,
        dispatcher: EventDispatcher,
        revalidate_each_event: bool = True,
    ) -> None:
        self._registry = registry
        self._router = router
        self._verifier = verifier
        self._dispatcher = dispatcher
        self._revalidate_each_event = revalidate_each_event

    def connect(
        self,
        connection_id: str,
        auth: Optional[Dict[str, Any]] = None,
        authorization_header: Optional[str] = None,
    ) -> Connection:
        """Authenticate a new transport connection and register it.

        Raises:
            AuthenticationError: credential missing or rejected; nothing is registered.
        """
        token = extract_credential(auth, authorization_header)
        if not token:
            logger.warning("[LIFECYCLE] Connection without credential refused | id=%s", connection_id)
            raise AuthenticationError("Authentication required")

        identity = self._verifier.verify_token(token)
        if identity is None:
            logger.warning("[LIFECYCLE] Invalid credential refused | id=%s", connection_id)
            raise AuthenticationError("Invalid authentication")

        if connection_id in self._registry:
            # Rooms of the record being replaced would otherwise outlive it
            self._router.leave_all(connection_id)

        connection = Connection(connection_id=connection_id, identity=identity, token=token)
        self._registry.add(connection)
        logger.info(
            "[LIFECYCLE] Connected | id=%s user=%s username=%s",
            connection_id,
            identity.user_id,
            identity.username,
        )
        return connection

    def disconnect(self, connection_id: str) -> List[str]:
        """Remove a connection from every room and from the registry.

        Safe to call more than once and while one of its events is in flight.
        Returns the rooms the connection was removed from.
        """
        rooms = self._router.leave_all(connection_id)
        connection = self._registry.remove(connection_id)
        if connection is not None:
            logger.info(
                "[LIFECYCLE] Disconnected | id=%s user=%s rooms=%s",
                connection_id,
                connection.user_id,
                rooms,
            )
        return rooms

    async def handle_event(self, connection_id: str, event: str, data: Any = None) -> List[Outbound]:
        """Authenticate, serialize and dispatch one inbound event.

        Raises:
            AuthenticationError: the connection's credential stopped verifying.
                The connection has already been cleaned up; the caller should
                close the transport.
        """
        connection = self._registry.get(connection_id)
        if connection is None:
            logger.warning("[LIFECYCLE] Event from unauthenticated connection dropped | id=%s event=%s", connection_id, event)
            return []

        async with connection.event_lock:
            if self._registry.get(connection_id) is not connection:
                # Disconnected while this event waited behind an earlier one
                return []

            if self._revalidate_each_event and self._verifier.verify_token(connection.token) is None:
                logger.warning(
                    "[LIFECYCLE] Credential no longer valid | id=%s user=%s event=%s",
                    connection_id,
                    connection.user_id,
                    event,
                )
                self._router.send(
                    connection_id,
                    OutboundEvent.ERROR.value,
                    ErrorPayload(message="Authentication expired").model_dump(),
                )
                self.disconnect(connection_id)
                raise AuthenticationError("Authentication expired")

            return await self._dispatcher.dispatch(connection, event, data)

    @property
    def connection_count(self) -> int:
        return len(self._registry)
