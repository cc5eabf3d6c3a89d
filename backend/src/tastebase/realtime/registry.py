"""Connection registry for managing live socket connections.

Tracks, per connection:
- The authenticated identity and the credential it presented
- The set of rooms the connection has joined
- A per-connection lock that keeps its events strictly sequential

The registry is owned by the lifecycle manager and the room router. Nothing
else mutates it; the dispatcher only reads identities from it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Set

from auth.src.token_verifier import Identity

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    """One authenticated client's live channel."""

    connection_id: str
    identity: Identity
    token: Optional[str] = None
    joined_rooms: Set[str] = field(default_factory=set)
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def user_id(self) -> str:
        return self.identity.user_id


class ConnectionRegistry:
    """In-process index of live connections keyed by connection id."""

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}

    def add(self, connection: Connection) -> None:
        previous = self._connections.get(connection.connection_id)
        if previous is not None:
            logger.warning(
                "[CONN_REGISTRY] Replacing existing connection | id=%s user=%s",
                connection.connection_id,
                previous.user_id,
            )
        self._connections[connection.connection_id] = connection
        logger.debug(
            "[CONN_REGISTRY] Registered | id=%s user=%s total=%d",
            connection.connection_id,
            connection.user_id,
            len(self._connections),
        )

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def remove(self, connection_id: str) -> Optional[Connection]:
        """Remove and return a connection; None if it was not registered."""
        connection = self._connections.pop(connection_id, None)
        if connection is not None:
            logger.debug(
                "[CONN_REGISTRY] Removed | id=%s user=%s total=%d",
                connection_id,
                connection.user_id,
                len(self._connections),
            )
        return connection

    def connections_for_user(self, user_id: str) -> List[Connection]:
        return [c for c in self._connections.values() if c.user_id == user_id]

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._connections.values()))
