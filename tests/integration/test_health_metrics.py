"""Integration tests for /healthz and /metrics endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from tripsync.app.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


class TestHealthEndpoint:
    """Test /health and /healthz endpoints."""

    def test_health_always_ok(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_healthz_probes_configured_store(self, client: TestClient) -> None:
        """Test /healthz performs a real probe against the in-memory store."""
        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["components"] == {"store": "ok", "store_backend": "memory"}

    @patch("tripsync.app.api.routes.health.check_store", new_callable=AsyncMock)
    def test_healthz_returns_503_when_store_fails(
        self, mock_check_store: AsyncMock, client: TestClient
    ) -> None:
        """Test /healthz returns 503 when the store check fails."""
        mock_check_store.return_value = (False, "error: OperationalError")

        response = client.get("/healthz")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["components"]["store"] == "error: OperationalError"


class TestMetricsEndpoint:
    """Test /metrics endpoint."""

    def test_metrics_returns_prometheus_format(self, client: TestClient) -> None:
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]

    def test_metrics_includes_transaction_metrics(self, client: TestClient) -> None:
        """Test /metrics includes transaction and recompute metrics."""
        from tripsync.app.utils.metrics import (
            itinerary_transaction_conflicts_total,
            itinerary_transaction_latency_ms,
            itinerary_transactions_total,
            journey_recompute_skipped_trips_total,
            journey_recompute_total,
        )

        itinerary_transactions_total.labels(operation="test_op", outcome="committed").inc()
        itinerary_transaction_conflicts_total.labels(operation="test_op").inc()
        itinerary_transaction_latency_ms.labels(operation="test_op", outcome="committed").observe(12)
        journey_recompute_total.labels(outcome="success").inc()
        journey_recompute_skipped_trips_total.inc()

        text = client.get("/metrics").text

        assert "itinerary_transactions_total" in text
        assert "itinerary_transaction_conflicts_total" in text
        assert "itinerary_transaction_latency_ms" in text
        assert "journey_recompute_total" in text
        assert "journey_recompute_skipped_trips_total" in text
