"""Socket.IO server for real-time recipe collaboration.

Binds the realtime core to python-socketio:
- Handshake authentication (bearer token in the ``auth`` payload)
- Room-based fan-out of comments, likes and typing indicators
- Heartbeats via engine.io ping/pong; dead sockets surface as disconnects

Everything is built per ``RealtimeServer`` instance so tests and multiple
apps can run side by side.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import socketio
from socketio.exceptions import ConnectionRefusedError as SocketConnectionRefused

from tastebase.config import RealtimeConfig
from tastebase.persistence.gateway import PersistenceGateway
from tastebase.realtime.dispatcher import EventDispatcher
from tastebase.realtime.exceptions import AuthenticationError
from tastebase.realtime.lifecycle import ConnectionLifecycleManager, IdentityVerifier
from tastebase.realtime.registry import ConnectionRegistry
from tastebase.realtime.router import RoomRouter

logger = logging.getLogger(__name__)


# =============================================================================
# Delivery
# =============================================================================

class SocketIODelivery:
    """Schedules one ``emit`` per recipient so a slow socket never blocks others."""

    def __init__(self, sio: socketio.AsyncServer, namespace: str = "/") -> None:
        self._sio = sio
        self._namespace = namespace
        self._pending: Dict[asyncio.Future, str] = {}

    def deliver(self, connection_id: str, event: str, payload: Any) -> None:
        task = asyncio.ensure_future(
            self._sio.emit(event, payload, to=connection_id, namespace=self._namespace)
        )
        self._pending[task] = connection_id
        task.add_done_callback(lambda t: self._on_done(t, connection_id, event))

    def _on_done(self, task: asyncio.Future, connection_id: str, event: str) -> None:
        self._pending.pop(task, None)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "[SocketIO] Emit failed | sid=%s event=%s error=%s",
                connection_id,
                event,
                exc,
            )

    async def flush(self, connection_id: str) -> None:
        """Wait for the emits already scheduled for one connection."""
        tasks = [task for task, sid in self._pending.items() if sid == connection_id]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def drain(self) -> None:
        """Wait for every scheduled emit to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


# =============================================================================
# Server
# =============================================================================

class RealtimeServer:
    """Assembles registry, router, dispatcher and lifecycle on one AsyncServer."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        verifier: Optional[IdentityVerifier] = None,
        config: Optional[RealtimeConfig] = None,
        sio: Optional[socketio.AsyncServer] = None,
    ) -> None:
        self.config = config or RealtimeConfig()
        self.namespace = self.config.namespace
        self.sio = sio or socketio.AsyncServer(
            async_mode="asgi",
            cors_allowed_origins=self.config.cors_allowed_origins,
            ping_timeout=self.config.ping_timeout,
            ping_interval=self.config.ping_interval,
            logger=False,  # socket.io internal logging is too verbose
            engineio_logger=False,
        )

        if verifier is None:
            from auth.src.token_verifier import JWTVerifier
            verifier = JWTVerifier()

        self.registry = ConnectionRegistry()
        self.delivery = SocketIODelivery(self.sio, self.namespace)
        self.router = RoomRouter(self.registry, self.delivery)
        self.dispatcher = EventDispatcher(
            self.router,
            gateway,
            comment_max_length=self.config.comment_max_length,
        )
        self.lifecycle = ConnectionLifecycleManager(
            self.registry,
            self.router,
            verifier,
            self.dispatcher,
            revalidate_each_event=self.config.revalidate_each_event,
        )
        self._register_handlers()

    def _register_handlers(self) -> None:
        self.sio.on("connect", self.on_connect, namespace=self.namespace)
        self.sio.on("disconnect", self.on_disconnect, namespace=self.namespace)
        for event in self.dispatcher.event_names:
            self.sio.on(event, self._make_event_handler(event), namespace=self.namespace)

    # -------------------------------------------------------------------------
    # Transport callbacks
    # -------------------------------------------------------------------------

    async def on_connect(self, sid: str, environ: Dict[str, Any], auth: Optional[Dict[str, Any]] = None) -> None:
        """Handle a new socket; refuses the handshake when authentication fails."""
        logger.info("[SocketIO] Connection attempt | sid=%s", sid)
        header = (environ or {}).get("HTTP_AUTHORIZATION")
        try:
            self.lifecycle.connect(sid, auth, authorization_header=header)
        except AuthenticationError as exc:
            raise SocketConnectionRefused(exc.message)

    async def on_disconnect(self, sid: str, *args: Any) -> None:
        # newer python-socketio releases pass a disconnect reason
        reason = args[0] if args else None
        rooms = self.lifecycle.disconnect(sid)
        logger.info("[SocketIO] Disconnected | sid=%s reason=%s rooms=%d", sid, reason, len(rooms))

    def _make_event_handler(self, event: str):
        async def handle(sid: str, *args: Any) -> None:
            data = args[0] if args else None
            try:
                await self.lifecycle.handle_event(sid, event, data)
            except AuthenticationError:
                # python-socketio drops emits to a sid once disconnect starts
                await self.delivery.flush(sid)
                await self.sio.disconnect(sid, namespace=self.namespace)

        handle.__name__ = f"on_{event.replace('-', '_')}"
        return handle

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def stats(self) -> Dict[str, int]:
        return {
            "connections": len(self.registry),
            "rooms": self.router.room_count(),
        }

    def create_asgi_app(self, other_app=None):
        """Wrap another ASGI app (e.g. FastAPI) with the Socket.IO endpoint."""
        return socketio.ASGIApp(
            self.sio,
            other_asgi_app=other_app,
            socketio_path=self.config.socketio_path,
        )
