"""Tests for health endpoints."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from folio.core.database import AsyncCassandraConnection


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness_without_database(client: TestClient) -> None:
    """Readiness fails while Cassandra is not connected."""
    with patch.object(AsyncCassandraConnection, "is_connected", return_value=False):
        response = client.get("/health/ready")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "unavailable"
    assert data["cassandra"] is False
    assert data["environment"] == "testing"


def test_readiness_connected(client: TestClient) -> None:
    """Redis is optional for readiness."""
    with patch.object(AsyncCassandraConnection, "is_connected", return_value=True):
        response = client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["rate_limiting"] is False


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "folio"
    assert "version" in data


def test_root(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Folio API"
