"""Integration tests for health check endpoints."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from tests.fakes import ALICE_ID, auth_headers, create_test_token


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_healthy_status(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"
        assert data["timestamp"] is not None


class TestReadinessEndpoint:
    """Tests for /health/ready endpoint."""

    def test_readiness_when_database_healthy(self, client: TestClient) -> None:
        response = client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert [check["name"] for check in data["checks"]] == ["database", "signing_key"]

    def test_readiness_returns_503_when_database_down(self, client: TestClient) -> None:
        with patch(
            "src.api.routes.health.check_database_connection",
            return_value={"healthy": False, "error": "connection refused"},
        ):
            response = client.get("/health/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["checks"][0]["error"] == "connection refused"


class TestAuthenticatedHealth:
    """Tests for /health/auth endpoint."""

    def test_valid_token(self, client: TestClient) -> None:
        response = client.get("/health/auth", headers=auth_headers())

        assert response.status_code == 200
        data = response.json()
        assert data["authenticated"] is True
        assert data["user_id"] == ALICE_ID
        assert data["email"] == "alice@example.com"

    def test_missing_token(self, client: TestClient) -> None:
        assert client.get("/health/auth").status_code == 401

    def test_expired_token(self, client: TestClient) -> None:
        token = create_test_token(exp_offset=-60)

        response = client.get("/health/auth", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


class TestStatsEndpoint:
    def test_stats_include_latency_and_limiter(self, client: TestClient) -> None:
        client.get("/health")

        data = client.get("/health/stats").json()

        assert "latency" in data
        assert "latency_by_path" in data
        assert "tracked_keys" in data["signin_limiter"]
