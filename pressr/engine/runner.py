"""Load test orchestration: validate, dispatch, aggregate."""

import random
from dataclasses import dataclass, field

import httpx
import structlog

from .aggregator import aggregate
from .dispatcher import Dispatcher, ProgressCallback, create_client
from .errors import ConfigurationError
from .histogram import HistogramSettings
from .models import AggregateResult, HttpMethod, RequestOutcome
from .template import RequestData, RequestTemplate, parse_method, validate_header_names

logger = structlog.get_logger()


@dataclass
class LoadTestConfig:
    """Everything needed to start a run, validated on construction."""

    url: str
    method: HttpMethod | str = HttpMethod.GET
    request_count: int = 100
    concurrency: int = 10
    timeout_seconds: float = 30.0
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.method = parse_method(self.method)
        validate_url(self.url)
        if self.request_count < 0:
            raise ConfigurationError(f"request_count must be >= 0, got {self.request_count}")
        if self.concurrency < 1:
            raise ConfigurationError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.timeout_seconds <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout_seconds}")
        validate_header_names(self.headers)


def validate_url(url: str) -> None:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise ConfigurationError(f"Malformed URL {url!r}: {exc}") from exc
    if parsed.scheme not in ("http", "https"):
        raise ConfigurationError(f"URL must use http or https, got {url!r}")
    if not parsed.host:
        raise ConfigurationError(f"URL has no host: {url!r}")


async def send_probe(client: httpx.AsyncClient, template: RequestTemplate) -> RequestOutcome:
    """Send one request ahead of the run to check the target is reachable."""
    outcome = await Dispatcher(client).attempt(template)
    if outcome.status is None:
        logger.warning("probe_failed", url=template.url, error=outcome.error)
    else:
        logger.info(
            "probe_completed",
            url=template.url,
            status=outcome.status,
            latency_ms=round(outcome.latency_ms, 2),
            response_size=outcome.response_size,
        )
    return outcome


async def run_load_test(
    config: LoadTestConfig,
    data: RequestData | None = None,
    client: httpx.AsyncClient | None = None,
    *,
    histogram_settings: HistogramSettings | None = None,
    progress: ProgressCallback | None = None,
    progress_interval: int = 10,
    rng: random.Random | None = None,
) -> AggregateResult:
    """Run a complete load test and return its aggregate result.

    When *client* is None a client is created from the config's timeout and
    closed afterwards. A supplied client is left open for the caller.
    """
    template = RequestTemplate.from_data(config.url, config.method, config.headers, data)
    # Data file headers bypass LoadTestConfig
    validate_header_names(template.headers)

    logger.info(
        "load_test_starting",
        url=template.url,
        method=template.method.value,
        requests=config.request_count,
        concurrency=config.concurrency,
        timeout_seconds=config.timeout_seconds,
        variable_sets=len(template.variables),
    )

    owns_client = client is None
    http = client or create_client(config.timeout_seconds, config.concurrency)
    try:
        dispatcher = Dispatcher(
            http, rng=rng, progress=progress, progress_interval=progress_interval
        )
        outcomes, duration = await dispatcher.dispatch(
            template, config.request_count, config.concurrency
        )
    finally:
        if owns_client:
            await http.aclose()

    result = aggregate(outcomes, duration, histogram_settings)
    logger.info(
        "load_test_completed",
        requests=result.total_requests,
        successful=result.successful_requests,
        failed=result.failed_requests,
        duration_seconds=round(result.duration_seconds, 3),
        throughput=round(result.throughput, 2),
    )
    return result
