"""Folds per-request outcomes into one ``AggregateResult``."""

import math
from collections import Counter
from collections.abc import Sequence

from .histogram import HistogramSettings, LatencyHistogram
from .models import AggregateResult, ErrorKind, RequestOutcome


def _latency_distribution(outcomes: Sequence[RequestOutcome], max_latency: float) -> dict[str, int]:
    """Fixed-width latency buckets: 100 ms wide past one second, else 10 ms."""
    if not outcomes:
        return {}
    width = 100 if max_latency > 1000 else 10
    buckets: Counter[int] = Counter(int(o.latency_ms) // width * width for o in outcomes)
    return {f"{lo}-{lo + width}": buckets[lo] for lo in sorted(buckets)}


def build_histogram(
    outcomes: Sequence[RequestOutcome],
    histogram_settings: HistogramSettings | None = None,
) -> LatencyHistogram:
    """Histogram of successful latencies, truncated to whole milliseconds."""
    histogram = LatencyHistogram.from_settings(histogram_settings or HistogramSettings())
    for outcome in outcomes:
        if outcome.success:
            histogram.record(int(outcome.latency_ms))
    return histogram


def aggregate(
    outcomes: Sequence[RequestOutcome],
    duration_seconds: float,
    histogram_settings: HistogramSettings | None = None,
) -> AggregateResult:
    """Compute the run summary. Pure: equal inputs give an equal result."""
    total = len(outcomes)
    successful = 0
    min_latency = math.inf
    max_latency = 0.0
    latencies: list[float] = []
    status_codes: Counter[int] = Counter()
    error_kinds: Counter[ErrorKind] = Counter()
    error_messages: Counter[str] = Counter()
    total_bytes = 0
    all_sized = True

    for outcome in outcomes:
        if outcome.success:
            successful += 1
        min_latency = min(min_latency, outcome.latency_ms)
        max_latency = max(max_latency, outcome.latency_ms)
        latencies.append(outcome.latency_ms)
        if outcome.status is not None:
            status_codes[outcome.status] += 1
        if outcome.error_kind is not None:
            error_kinds[outcome.error_kind] += 1
        if outcome.error is not None:
            error_messages[outcome.error] += 1
        if outcome.response_size is None:
            all_sized = False
        else:
            total_bytes += outcome.response_size

    if total == 0:
        min_latency = 0.0
        mean_latency = 0.0
    else:
        # Rounding in the running sum must not push the mean outside [min, max]
        mean_latency = min(max(math.fsum(latencies) / total, min_latency), max_latency)

    if total > 1:
        squared = math.fsum((x - mean_latency) ** 2 for x in latencies)
        stddev = math.sqrt(squared / (total - 1))
    else:
        stddev = 0.0

    throughput = total / duration_seconds if duration_seconds > 0 else 0.0

    histogram = build_histogram(outcomes, histogram_settings)

    has_bytes = total > 0 and all_sized
    return AggregateResult(
        total_requests=total,
        successful_requests=successful,
        failed_requests=total - successful,
        min_latency_ms=min_latency,
        max_latency_ms=max_latency,
        mean_latency_ms=mean_latency,
        latency_stddev_ms=stddev,
        duration_seconds=duration_seconds,
        throughput=throughput,
        success_rate=successful / total if total else 0.0,
        failure_rate=(total - successful) / total if total else 0.0,
        status_code_counts=dict(status_codes),
        error_counts=dict(error_kinds),
        error_messages=dict(error_messages),
        percentiles=histogram.percentiles(),
        clamped_latencies=histogram.clamped_count,
        total_bytes=total_bytes if has_bytes else None,
        transfer_rate=(
            total_bytes / duration_seconds if has_bytes and duration_seconds > 0 else None
        ),
        latency_distribution=_latency_distribution(outcomes, max_latency),
        outcomes=list(outcomes),
    )
