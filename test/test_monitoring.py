"""
Tests for monitoring endpoints and request middleware
"""

import json
import logging

from docarchive.middleware.logging import RequestIdFilter, StructuredFormatter, request_id_var
from docarchive.utils.metrics import normalize_path


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")

        data = response.json()
        assert response.status_code == 200
        assert data["status"] == "healthy"
        assert data["environment"] == "test"
        assert data["uptime_seconds"] >= 0

    async def test_health_is_outside_api_prefix(self, client):
        assert (await client.get("/api/v1/health")).status_code == 404


class TestMetrics:
    async def test_metrics_exposition(self, client, auth_headers):
        await client.get("/api/v1/users/profile", headers=auth_headers)

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "docarchive_http_requests_total" in response.text
        assert 'endpoint="/api/v1/users/profile"' in response.text

    def test_normalize_path(self):
        assert normalize_path("/api/v1/documents/12/versions/3") == "/api/v1/documents/{id}/versions/{id}"
        assert normalize_path("/api/v1/users/profile") == "/api/v1/users/profile"


class TestRequestLogging:
    async def test_request_id_generated(self, client):
        response = await client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 36

    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_structured_formatter(self):
        record = logging.LogRecord("docarchive.access", logging.INFO, __file__, 1, "GET /health", None, None)
        record.status_code = 200
        token = request_id_var.set("req-9")
        try:
            RequestIdFilter().filter(record)
        finally:
            request_id_var.reset(token)

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "GET /health"
        assert data["request_id"] == "req-9"
        assert data["status_code"] == 200
        assert data["level"] == "INFO"
