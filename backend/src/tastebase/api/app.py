"""ASGI entry point: FastAPI for HTTP, Socket.IO for realtime events."""

from __future__ import annotations

import contextlib
import logging
from typing import Optional

from fastapi import FastAPI

from tastebase import __version__
from tastebase.config import RealtimeConfig
from tastebase.logging_config import setup_logging
from tastebase.persistence.gateway import PersistenceGateway
from tastebase.persistence.memory_gateway import InMemoryGateway
from tastebase.realtime.lifecycle import IdentityVerifier
from tastebase.realtime.socketio_server import RealtimeServer

logger = logging.getLogger(__name__)


def build_gateway(config: RealtimeConfig) -> PersistenceGateway:
    """Pick the persistence backend named by configuration."""
    if config.storage_backend == "sql":
        from tastebase.persistence.sql_gateway import SqlGateway
        return SqlGateway()
    if config.storage_backend != "memory":
        raise ValueError(f"Unknown STORAGE_BACKEND: {config.storage_backend}")
    return InMemoryGateway()


def create_app(
    gateway: Optional[PersistenceGateway] = None,
    verifier: Optional[IdentityVerifier] = None,
    config: Optional[RealtimeConfig] = None,
):
    """Build the combined ASGI app.

    Returns the Socket.IO ASGI wrapper; the FastAPI app and the realtime
    server are reachable as ``.fastapi`` and ``.realtime`` on it.
    """
    config = config or RealtimeConfig()
    setup_logging(log_level=config.log_level, log_file=config.log_file)

    gateway = gateway or build_gateway(config)
    realtime = RealtimeServer(gateway, verifier=verifier, config=config)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        create_tables = getattr(gateway, "create_tables", None)
        if create_tables is not None:
            await create_tables()
        logger.info("Tastebase realtime service started (storage=%s)", config.storage_backend)
        yield
        await realtime.delivery.drain()
        logger.info("Tastebase realtime service stopped")

    api = FastAPI(title="Tastebase Realtime", version=__version__, lifespan=lifespan)

    @api.get("/health")
    async def health():
        return {"status": "ok", **realtime.stats()}

    asgi_app = realtime.create_asgi_app(api)
    asgi_app.fastapi = api
    asgi_app.realtime = realtime
    return asgi_app


app = create_app()
