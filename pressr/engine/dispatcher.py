"""Bounded-concurrency request dispatcher.

``concurrency`` worker tasks pull attempt indices from one shared iterator
and run their attempts one after another, so at most ``concurrency``
requests are in flight. Finished outcomes travel over an ``asyncio.Queue``
to a single collector task, which is the only code that touches the outcome
list.
"""

import asyncio
import random
import time
from collections.abc import Callable, Iterator

import httpx
import structlog

from .errors import ConfigurationError, InternalDispatchError
from .models import RequestOutcome
from .recorder import (
    describe_exception,
    record_body_failure,
    record_response,
    record_transport_failure,
)
from .template import RequestTemplate

logger = structlog.get_logger()

ProgressCallback = Callable[[int, int], None]

_DONE = object()


MAX_REDIRECTS = 10


def create_client(
    timeout_seconds: float,
    concurrency: int,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """HTTP client with per-request timeout and a pool sized for the run.

    Redirects are followed (up to ``MAX_REDIRECTS``), so an outcome reflects
    the final response. Latency covers the whole chain.
    """
    if transport is None:
        transport = httpx.AsyncHTTPTransport(
            retries=0,
            limits=httpx.Limits(
                max_connections=max(concurrency, 1),
                max_keepalive_connections=max(concurrency, 1),
            ),
        )
    return httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(timeout_seconds),
        follow_redirects=True,
        max_redirects=MAX_REDIRECTS,
    )


def _elapsed_ms(start: float) -> float:
    return max((time.perf_counter() - start) * 1000.0, 0.0)


class Dispatcher:
    """Runs a fixed number of independent attempts against one template."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        rng: random.Random | None = None,
        progress: ProgressCallback | None = None,
        progress_interval: int = 10,
    ) -> None:
        self._client = client
        self._rng = rng
        self._progress = progress
        self._progress_interval = max(progress_interval, 1)

    # ---- single attempt -----------------------------------------------------

    async def attempt(self, template: RequestTemplate) -> RequestOutcome:
        """Send one request built from *template* and record its outcome.

        Never raises for request-level problems: every failure becomes a
        failed outcome.
        """
        start = time.perf_counter()
        try:
            resolved = template.resolve(self._rng)
            request = self._client.build_request(
                resolved.method.value,
                resolved.url,
                headers=resolved.headers,
                params=resolved.params or None,
                json=resolved.json_body,
            )
            start = time.perf_counter()
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            return record_transport_failure(exc, _elapsed_ms(start))
        except Exception as exc:
            logger.warning(
                "request_send_crashed", error=describe_exception(exc), exc_info=True
            )
            return record_transport_failure(exc, _elapsed_ms(start))

        status = response.status_code
        try:
            body = await response.aread()
        except Exception as exc:
            return record_body_failure(status, exc, _elapsed_ms(start))
        finally:
            await response.aclose()
        return record_response(status, len(body), _elapsed_ms(start))

    # ---- pool -----------------------------------------------------------------

    async def _worker(
        self,
        work: Iterator[int],
        template: RequestTemplate,
        queue: asyncio.Queue,
    ) -> None:
        # next() on the shared iterator runs without a suspension point
        for index in work:
            outcome = await self.attempt(template)
            if not outcome.success:
                logger.debug("request_failed", index=index, error=outcome.error)
            await queue.put(outcome)

    async def _collect(self, queue: asyncio.Queue, total: int) -> list[RequestOutcome]:
        outcomes: list[RequestOutcome] = []
        while True:
            item = await queue.get()
            if item is _DONE:
                return outcomes
            outcomes.append(item)
            completed = len(outcomes)
            if completed == 1 or completed % self._progress_interval == 0:
                logger.info("load_test_progress", completed=completed, total=total)
            if self._progress is not None:
                self._progress(completed, total)

    async def dispatch(
        self,
        template: RequestTemplate,
        request_count: int,
        concurrency: int,
    ) -> tuple[list[RequestOutcome], float]:
        """Run *request_count* attempts with at most *concurrency* in flight.

        Returns the outcomes in completion order and the wall-clock duration
        in seconds.
        """
        if request_count < 0:
            raise ConfigurationError(f"request_count must be >= 0, got {request_count}")
        if concurrency < 1:
            raise ConfigurationError(f"concurrency must be >= 1, got {concurrency}")

        start = time.perf_counter()
        if request_count == 0:
            return [], time.perf_counter() - start

        queue: asyncio.Queue = asyncio.Queue()
        work = iter(range(request_count))
        collector = asyncio.create_task(self._collect(queue, request_count))
        workers = [
            asyncio.create_task(self._worker(work, template, queue))
            for _ in range(min(concurrency, request_count))
        ]

        try:
            worker_results = await asyncio.gather(*workers, return_exceptions=True)
            crashed = [r for r in worker_results if isinstance(r, BaseException)]
            if crashed:
                raise InternalDispatchError(
                    f"{len(crashed)} dispatcher worker(s) crashed: {crashed[0]!r}"
                ) from crashed[0]

            await queue.put(_DONE)
            try:
                outcomes = await collector
            except Exception as exc:
                raise InternalDispatchError(f"outcome collector failed: {exc!r}") from exc
        finally:
            for task in (*workers, collector):
                if not task.done():
                    task.cancel()

        duration = time.perf_counter() - start
        if len(outcomes) != request_count:
            raise InternalDispatchError(
                f"collected {len(outcomes)} outcomes for {request_count} attempts"
            )
        return outcomes, duration
