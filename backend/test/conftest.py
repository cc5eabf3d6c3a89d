"""Pytest configuration and shared fixtures."""
import os

# Set before any import that instantiates the config singletons
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ["TESTING"] = "true"

from datetime import timedelta
from typing import Any, Callable, List, Optional, Set, Tuple

import pytest

from auth.src.token_verifier import JWTVerifier
from tastebase.persistence.memory_gateway import InMemoryGateway
from tastebase.realtime.dispatcher import EventDispatcher
from tastebase.realtime.lifecycle import ConnectionLifecycleManager
from tastebase.realtime.registry import Connection, ConnectionRegistry
from tastebase.realtime.router import RoomRouter

TEST_SECRET = "unit-test-secret"

PUBLIC_RECIPE = "42"
PRIVATE_RECIPE = "7"
RECIPE_AUTHOR = "chef-1"


class RecordingDelivery:
    """Delivery double that records every event handed to a connection."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, Any]] = []
        self.fail_for: Set[str] = set()

    def deliver(self, connection_id: str, event: str, payload: Any) -> None:
        if connection_id in self.fail_for:
            raise ConnectionResetError(f"socket {connection_id} is gone")
        self.sent.append((connection_id, event, payload))

    def received(self, connection_id: str, event: Optional[str] = None) -> List[Any]:
        """Payloads delivered to one connection, optionally filtered by event."""
        return [
            payload
            for cid, name, payload in self.sent
            if cid == connection_id and (event is None or name == event)
        ]

    def events(self, connection_id: str) -> List[str]:
        return [name for cid, name, _ in self.sent if cid == connection_id]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def verifier():
    return JWTVerifier(secret_key=TEST_SECRET, algorithm="HS256", token_ttl=timedelta(hours=1))


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def delivery():
    return RecordingDelivery()


@pytest.fixture
def router(registry, delivery):
    return RoomRouter(registry, delivery)


@pytest.fixture
def gateway():
    store = InMemoryGateway()
    store.add_recipe(PUBLIC_RECIPE, author_id=RECIPE_AUTHOR)
    store.add_recipe(PRIVATE_RECIPE, author_id=RECIPE_AUTHOR, is_public=False)
    return store


@pytest.fixture
def dispatcher(router, gateway):
    return EventDispatcher(router, gateway)


@pytest.fixture
def lifecycle(registry, router, verifier, dispatcher):
    return ConnectionLifecycleManager(registry, router, verifier, dispatcher)


@pytest.fixture
def connect(lifecycle, verifier) -> Callable[..., Connection]:
    """Factory that authenticates a connection for a user."""
    counter = {"n": 0}

    def _connect(user_id: str, username: Optional[str] = None, sid: Optional[str] = None) -> Connection:
        counter["n"] += 1
        token = verifier.issue_token(user_id, username or f"user-{user_id}")
        return lifecycle.connect(sid or f"sid-{counter['n']}", {"token": token})

    return _connect


# Configure pytest
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
