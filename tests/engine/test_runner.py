"""Tests for run configuration, probing and end-to-end orchestration."""

import httpx
import pytest

from pressr.engine.errors import ConfigurationError
from pressr.engine.histogram import HistogramSettings
from pressr.engine.models import ErrorKind, HttpMethod
from pressr.engine.runner import LoadTestConfig, run_load_test, send_probe
from pressr.engine.template import RequestData, RequestTemplate
from tests.factories import mock_client


class TestLoadTestConfig:
    def test_defaults(self):
        config = LoadTestConfig(url="http://localhost:8000/items")
        assert config.method == HttpMethod.GET
        assert config.request_count == 100
        assert config.concurrency == 10
        assert config.timeout_seconds == 30.0

    def test_method_normalized(self):
        assert LoadTestConfig(url="http://x.test/", method="patch").method == HttpMethod.PATCH

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"url": "not a url"},
            {"url": "ftp://files.test/a"},
            {"url": "http://"},
            {"url": "http://x.test/", "method": "TRACEROUTE"},
            {"url": "http://x.test/", "request_count": -1},
            {"url": "http://x.test/", "concurrency": 0},
            {"url": "http://x.test/", "timeout_seconds": 0},
            {"url": "http://x.test/", "headers": {"Bad Header": "v"}},
        ],
    )
    def test_rejects_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            LoadTestConfig(**kwargs)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            LoadTestConfig(url="http://x.test/", concurrency=-5)

    def test_zero_requests_allowed(self):
        assert LoadTestConfig(url="http://x.test/", request_count=0).request_count == 0


class TestProbe:
    @pytest.mark.asyncio
    async def test_probe_success(self):
        template = RequestTemplate.from_data("http://x.test/health")
        async with mock_client(lambda request: httpx.Response(200, json={"ok": True})) as client:
            outcome = await send_probe(client, template)
        assert outcome.success
        assert outcome.status == 200

    @pytest.mark.asyncio
    async def test_probe_http_error_still_has_status(self):
        template = RequestTemplate.from_data("http://x.test/health")
        async with mock_client(lambda request: httpx.Response(503)) as client:
            outcome = await send_probe(client, template)
        assert not outcome.success
        assert outcome.status == 503

    @pytest.mark.asyncio
    async def test_probe_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("Name or service not known")

        template = RequestTemplate.from_data("http://x.test/health")
        async with mock_client(handler) as client:
            outcome = await send_probe(client, template)
        assert outcome.status is None
        assert outcome.error_kind == ErrorKind.CONNECT


class TestRunLoadTest:
    @pytest.mark.asyncio
    async def test_illegal_data_file_header_fails_before_dispatch(self):
        calls = 0

        def handler(request):
            nonlocal calls
            calls += 1
            return httpx.Response(200)

        config = LoadTestConfig(url="http://x.test/", request_count=4, concurrency=2)
        data = RequestData(headers={"Bad Header": "v"})
        async with mock_client(handler) as client:
            with pytest.raises(ConfigurationError, match="Bad Header"):
                await run_load_test(config, data, client)
        assert calls == 0

    @pytest.mark.asyncio
    async def test_full_run_with_supplied_client(self):
        paths: list[str] = []

        def handler(request):
            paths.append(request.url.path)
            return httpx.Response(200, content=b"hello")

        config = LoadTestConfig(
            url="http://x.test/users/{id}", request_count=25, concurrency=5
        )
        data = RequestData(variables=[{"id": 1}, {"id": 2}, {"id": 3}])
        client = mock_client(handler)
        try:
            result = await run_load_test(config, data, client)
            assert not client.is_closed
        finally:
            await client.aclose()

        assert result.total_requests == 25
        assert result.successful_requests == 25
        assert result.total_bytes == 125
        assert set(result.percentiles) == {"p50", "p75", "p90", "p95", "p99", "p999"}
        assert all(p.startswith("/users/") for p in paths)

    @pytest.mark.asyncio
    async def test_headers_reach_the_server(self):
        seen: list[str | None] = []

        def handler(request):
            seen.append(request.headers.get("authorization"))
            return httpx.Response(204)

        config = LoadTestConfig(
            url="http://x.test/", request_count=3, concurrency=2,
            headers={"Authorization": "Bearer abc"},
        )
        async with mock_client(handler) as client:
            await run_load_test(config, client=client)

        assert seen == ["Bearer abc"] * 3

    @pytest.mark.asyncio
    async def test_zero_requests(self):
        config = LoadTestConfig(url="http://x.test/", request_count=0)
        async with mock_client(lambda request: httpx.Response(200)) as client:
            result = await run_load_test(config, client=client)
        assert result.total_requests == 0
        assert result.percentiles == {}

    @pytest.mark.asyncio
    async def test_histogram_settings_applied(self):
        config = LoadTestConfig(url="http://x.test/", request_count=4, concurrency=1)
        async with mock_client(lambda request: httpx.Response(200)) as client:
            result = await run_load_test(
                config,
                client=client,
                histogram_settings=HistogramSettings(significant_figures=1),
            )
        assert result.successful_requests == 4
        assert result.clamped_latencies == 0

    @pytest.mark.asyncio
    async def test_progress_forwarded(self):
        calls: list[int] = []
        config = LoadTestConfig(url="http://x.test/", request_count=6, concurrency=2)
        async with mock_client(lambda request: httpx.Response(200)) as client:
            await run_load_test(
                config, client=client, progress=lambda done, total: calls.append(done)
            )
        assert calls == [1, 2, 3, 4, 5, 6]
