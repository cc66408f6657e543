"""Integration tests for the load test HTTP API."""

import json

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from pressr.api.routes.load_tests import get_client_factory
from pressr.main import app
from tests.factories import mock_client

pytestmark = pytest.mark.integration


@pytest.fixture
def target():
    """Points the API's outbound client at an in-process fake server."""
    received: list[httpx.Request] = []

    def handler(request):
        received.append(request)
        if request.url.path == "/missing":
            return httpx.Response(404)
        return httpx.Response(200, content=b"pong")

    app.dependency_overrides[get_client_factory] = lambda: (
        lambda timeout, concurrency: mock_client(handler)
    )
    yield received
    app.dependency_overrides.clear()


async def _post(payload: dict) -> httpx.Response:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post("/api/v1/load-tests", json=payload)


class TestLoadTestEndpoint:
    @pytest.mark.asyncio
    async def test_successful_run(self, target):
        response = await _post({"url": "http://target.test/ping", "requests": 12, "concurrency": 3})
        assert response.status_code == 200
        assert "X-Request-ID" in response.headers

        results = response.json()["results"]
        assert results["request_count"] == 12
        assert results["success_count"] == 12
        assert results["failure_count"] == 0
        assert results["status_counts"] == {"200": 12}
        assert results["min_time_ms"] <= results["average_time_ms"] <= results["max_time_ms"]
        assert "p99" in results["percentiles"]
        assert len(target) == 12

    @pytest.mark.asyncio
    async def test_failures_reported(self, target):
        response = await _post({"url": "http://target.test/missing", "requests": 4, "concurrency": 2})
        assert response.status_code == 200
        results = response.json()["results"]
        assert results["failure_count"] == 4
        assert results["error_counts"] == {"http_status": 4}
        assert results["percentiles"] == {}

    @pytest.mark.asyncio
    async def test_body_and_headers_forwarded(self, target):
        response = await _post(
            {
                "url": "http://target.test/items",
                "method": "post",
                "requests": 2,
                "concurrency": 1,
                "timeout_ms": 500,
                "headers": {"X-Token": "t"},
                "body": {"name": "widget"},
            }
        )
        assert response.status_code == 200
        assert [r.method for r in target] == ["POST", "POST"]
        assert all(r.headers["x-token"] == "t" for r in target)
        assert all(json.loads(r.content) == {"name": "widget"} for r in target)

    @pytest.mark.asyncio
    async def test_zero_concurrency_is_bad_request(self, target):
        response = await _post({"url": "http://target.test/", "requests": 5, "concurrency": 0})
        assert response.status_code == 400
        assert response.json()["error"] == "bad_request"
        assert "concurrency" in response.json()["message"]
        assert target == []

    @pytest.mark.asyncio
    async def test_invalid_method_is_bad_request(self, target):
        response = await _post(
            {"url": "http://target.test/", "method": "FETCH", "requests": 1, "concurrency": 1}
        )
        assert response.status_code == 400
        assert "Invalid HTTP method" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_missing_field_is_validation_error(self, target):
        response = await _post({"url": "http://target.test/", "requests": 1})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_request_id_propagated(self, target):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/api/v1/load-tests",
                json={"url": "http://target.test/", "requests": 0, "concurrency": 1},
                headers={"X-Request-ID": "run-42"},
            )
        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "run-42"
        assert response.json()["results"]["request_count"] == 0


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_endpoint(self):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data
        assert "uptime_seconds" in data
