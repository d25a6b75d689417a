"""Tests for health endpoints."""

from fastapi.testclient import TestClient


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness_without_storage(client: TestClient) -> None:
    """Readiness fails while Cassandra and Redis are not connected."""
    response = client.get("/health/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["checks"] == {"cassandra": False, "redis": False}
    assert "environment" in data


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "readmaster-forum"
    assert "version" in data
    assert "environment" in data


def test_root(client: TestClient) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "Read Master" in data["message"]
    assert "version" in data


def test_request_id_header(client: TestClient) -> None:
    """Responses echo the caller's request id."""
    response = client.get("/health/live", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
