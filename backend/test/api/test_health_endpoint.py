"""Tests for ASGI app assembly and the HTTP health check."""

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from tastebase.api.app import build_gateway, create_app
from tastebase.persistence.memory_gateway import InMemoryGateway


@pytest.fixture
def asgi_app(verifier):
    gateway = InMemoryGateway()
    gateway.add_recipe("42", author_id="chef-1")
    return create_app(gateway=gateway, verifier=verifier)


def test_health_reports_realtime_stats(asgi_app):
    with TestClient(asgi_app.fastapi) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "connections": 0, "rooms": 0}


@pytest.mark.asyncio
async def test_health_counts_live_connections(asgi_app, verifier):
    realtime = asgi_app.realtime
    await realtime.on_connect("sid-a", {}, {"token": verifier.issue_token("u1", "Alice")})
    realtime.router.join("sid-a", "recipe-42")

    assert realtime.stats() == {"connections": 1, "rooms": 1}


def test_build_gateway_memory():
    assert isinstance(build_gateway(SimpleNamespace(storage_backend="memory")), InMemoryGateway)


def test_build_gateway_sql():
    from tastebase.persistence.sql_gateway import SqlGateway

    assert isinstance(build_gateway(SimpleNamespace(storage_backend="sql")), SqlGateway)


def test_build_gateway_rejects_unknown_backend():
    with pytest.raises(ValueError):
        build_gateway(SimpleNamespace(storage_backend="mongo"))
