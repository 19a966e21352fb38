"""
Tests for the API cache HTTP surface.
"""

import pytest
from fastapi.testclient import TestClient

from api_cache.api.app import app
from api_cache.entities import TransportResponse
from api_cache.handlers import GateHandler


@pytest.fixture
def client(gate):
    """Create a test client wired to an in-memory gate."""
    app.state.gate = gate
    app.state.gate_handler = GateHandler(gate=gate)
    yield TestClient(app)
    del app.state.gate_handler
    del app.state.gate


def execute(test_client, **overrides):
    payload = {"client": "demo", "endpoint": "predictions", "params": {"query": "test"}}
    payload.update(overrides)
    return test_client.post("/gate/execute", json=payload)


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "API Cache"
    assert "execute" in data["endpoints"]


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "storage_healthy": True}


def test_execute_then_cache_hit(client, transport):
    """Second identical call is served from cache."""
    first = execute(client)
    second = execute(client)

    assert first.status_code == 200
    assert first.json()["from_cache"] is False
    assert first.json()["json_body"] == {"ok": True}
    assert second.json()["from_cache"] is True
    assert second.json()["key"] == first.json()["key"]
    assert transport.calls == 1


def test_remote_error_status_passed_through(client, transport):
    """A remote 500 is reported in the body, not as this endpoint's status."""
    transport.respond_with(TransportResponse(status_code=500, headers={}, body=b"boom"))

    response = execute(client)
    assert response.status_code == 200
    assert response.json()["status_code"] == 500
    assert response.json()["body"] == "boom"
    assert response.json()["json_body"] is None


def test_rate_limited_returns_429(client):
    """Exhausted clients get 429 with Retry-After."""
    for i in range(3):
        assert execute(client, params={"query": f"q{i}"}).status_code == 200

    response = execute(client, params={"query": "q3"})
    assert response.status_code == 429
    assert response.headers["retry-after"] == "60"


def test_unknown_client_returns_400(client):
    response = execute(client, client="missing")
    assert response.status_code == 400
    assert "missing" in response.json()["detail"]


def test_transport_error_returns_502(client, transport, transport_error):
    transport.respond_with(transport_error)
    assert execute(client).status_code == 502


def test_invalid_payload_returns_422(client):
    """Pydantic validation rejects malformed requests."""
    assert execute(client, amount=0).status_code == 422
    assert execute(client, attributes=["a", "b", "c", "d"]).status_code == 422


def test_rate_limit_status_and_clear(client):
    execute(client)

    status = client.get("/rate-limit/demo").json()
    assert status["attempts"] == 1
    assert status["remaining_attempts"] == 2
    assert status["state"] == "within_limit"

    assert client.delete("/rate-limit/demo").status_code == 200
    assert client.get("/rate-limit/demo").json()["attempts"] == 0


def test_rate_limit_unknown_client_returns_404(client):
    """Admin routes naming an unregistered client report it as not found."""
    assert client.get("/rate-limit/missing").status_code == 404
    assert client.delete("/rate-limit/missing").status_code == 404
    assert client.delete("/cache", params={"client": "missing"}).status_code == 404


def test_clear_cache(client, transport):
    execute(client)

    response = client.delete("/cache", params={"client": "demo"})
    assert response.status_code == 200
    assert response.json()["deleted_count"] == 1

    assert execute(client).json()["from_cache"] is False
    assert transport.calls == 2


def test_toggle_caching(client, transport):
    response = client.put("/cache/enabled", json={"enabled": False})
    assert response.json() == {"caching_enabled": False}

    execute(client)
    execute(client)
    assert transport.calls == 2


def test_get_stats(client):
    execute(client)

    response = client.get("/stats")
    assert response.status_code == 200
    data = response.json()
    assert data["total_entries"] == 1
    assert data["clients"]["demo"]["cached_entries"] == 1


def test_delete_expired(client, clock):
    """Expired entries show up in stats until swept."""
    execute(client, ttl=30)
    clock.advance(31)

    assert client.get("/stats").json()["expired_entries"] == 1

    response = client.delete("/cache/expired", params={"client": "demo"})
    assert response.status_code == 200
    assert response.json()["deleted_count"] == 1
    assert client.get("/stats").json()["expired_entries"] == 0


def test_non_positive_ttl_rejected(client, transport):
    assert execute(client, ttl=0).status_code == 422
    assert transport.calls == 0
