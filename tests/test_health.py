"""
Tests for the status service endpoints
"""
import pytest
from fastapi.testclient import TestClient

from plagcheck.api_client import get_api_client
from plagcheck.main import app


@pytest.fixture
def api(client):
    """TestClient wired to the scripted client from conftest"""
    app.dependency_overrides[get_api_client] = lambda: client
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_endpoint_returns_ok_status(api):
    """Test that /health returns status: ok"""
    response = api.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_version_endpoint(api):
    response = api.get("/version")
    assert response.status_code == 200
    assert "version" in response.json()


def test_backend_health_up(api, transport):
    """Test that /backend/health reports a reachable backend"""
    transport.respond("GET", "/health", {"status": "ok"})
    data = api.get("/backend/health").json()
    assert data["status"] == "up"
    assert data["data"] == {"status": "ok"}


def test_cache_stats_and_clear(api, client):
    """Test cache stats and prefix clearing"""
    client.get("/theses")
    client.get("/users")
    assert api.get("/cache/stats").json()["entries"] == 2

    response = api.post("/cache/clear", params={"prefix": "/theses"})
    assert response.json() == {"prefix": "/theses", "cleared": 1}

    response = api.post("/cache/clear")
    assert response.json() == {"prefix": None, "cleared": 1}
