"""Tests for the liveness endpoint."""

from fastapi.testclient import TestClient


class TestHealthEndpoint:
    """Tests for GET /health"""

    def test_health_envelope(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {"data": {"status": "ok"}}

    def test_health_skips_basic_auth(self, auth_client: TestClient):
        """Reachable without credentials even when the gate is on."""
        response = auth_client.get("/health")

        assert response.status_code == 200
        assert "WWW-Authenticate" not in response.headers

    def test_unknown_route_is_enveloped_404(self, client: TestClient):
        response = client.get("/nope")

        assert response.status_code == 404
        assert "error" in response.json()
