"""
Tests for salonbook/main.py - app factory, middleware and routing.
"""
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from salonbook.database import get_db
from salonbook.main import create_app


def _make_client() -> TestClient:
    with patch("salonbook.main.configure_structured_logging"):
        return TestClient(create_app())


class TestApp:
    def test_routes_registered(self):
        client = _make_client()
        paths = client.app.openapi()["paths"]
        assert "/health" in paths
        assert "/health/ready" in paths
        assert "/api/v1/businesses/{business_id}/available-now" in paths
        assert "/api/v1/businesses/{business_id}/slots" in paths
        assert "/api/v1/businesses/{business_id}/appointments" in paths

    def test_generates_correlation_id(self):
        response = _make_client().get("/health")
        assert response.status_code == 200
        assert len(response.headers["X-Correlation-ID"]) == 32

    def test_echoes_correlation_id(self):
        response = _make_client().get("/health", headers={"X-Correlation-ID": "req-42"})
        assert response.headers["X-Correlation-ID"] == "req-42"

    def test_booking_validation_422(self):
        """Malformed bodies never reach the engine."""
        async def _no_db():
            yield AsyncMock()

        client = _make_client()
        client.app.dependency_overrides[get_db] = _no_db
        response = client.post(
            "/api/v1/businesses/11111111-1111-1111-1111-111111111111/appointments",
            json={"time": "9h"},
        )
        assert response.status_code == 422
