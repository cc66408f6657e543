"""Text and JSON renderings of an ``AggregateResult``."""

import json
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any

import structlog

from pressr.engine.models import AggregateResult

logger = structlog.get_logger()


class ReportFormat(StrEnum):
    TEXT = "text"
    JSON = "json"

    @property
    def extension(self) -> str:
        return "txt" if self is ReportFormat.TEXT else "json"


@dataclass
class ReportOptions:
    format: ReportFormat = ReportFormat.TEXT
    output_file: str | None = None
    output_dir: str | None = None
    include_details: bool = False


def percentage(part: int, total: int) -> float:
    return part / total * 100.0 if total else 0.0


def render_text(result: AggregateResult, include_details: bool = False) -> str:
    total = result.total_requests
    lines = [
        "LOAD TEST REPORT",
        f"Requests: {total}",
        "",
        "SUMMARY",
        f"Total requests:     {total}",
        f"Successful:         {result.successful_requests} "
        f"({percentage(result.successful_requests, total):.1f}%)",
        f"Failed:             {result.failed_requests} "
        f"({percentage(result.failed_requests, total):.1f}%)",
        f"Throughput:         {result.throughput:.2f} req/s",
        "",
        "TIMING",
        f"Total duration:     {result.duration_seconds:.2f} s",
        f"Average:            {result.mean_latency_ms:.2f} ms",
        f"Minimum:            {result.min_latency_ms:.2f} ms",
        f"Maximum:            {result.max_latency_ms:.2f} ms",
        f"Std deviation:      {result.latency_stddev_ms:.2f} ms",
    ]
    for name, value in result.percentiles.items():
        label = f"{name} percentile:"
        lines.append(f"{label:<20}{value:.2f} ms")
    if result.total_bytes is not None:
        lines.append(f"Data transferred:   {result.total_bytes} bytes")
    if result.transfer_rate is not None:
        lines.append(f"Transfer rate:      {result.transfer_rate:.2f} bytes/s")
    lines.append("")

    if result.status_code_counts:
        lines.append("STATUS CODES")
        for code, count in sorted(result.status_code_counts.items()):
            lines.append(f"{code}: {count} ({percentage(count, total):.1f}%)")
        lines.append("")

    if result.error_counts:
        lines.append("ERRORS")
        for kind, count in sorted(result.error_counts.items()):
            lines.append(f"{kind.value}: {count} ({percentage(count, total):.1f}%)")
        for message, count in sorted(result.error_messages.items()):
            lines.append(f"  {message}: {count}")
        lines.append("")

    if include_details:
        lines.append("REQUEST DETAILS")
        for i, outcome in enumerate(result.outcomes, start=1):
            if outcome.success:
                entry = f"Request #{i}: Success, Status: {outcome.status}, "
            else:
                entry = f"Request #{i}: Failed, Error: {outcome.error}, "
            entry += f"Time: {outcome.latency_ms:.2f} ms"
            if outcome.response_size is not None:
                entry += f", Size: {outcome.response_size} bytes"
            lines.append(entry)
        lines.append("")

    return "\n".join(lines)


def build_json_report(result: AggregateResult, include_details: bool = False) -> dict[str, Any]:
    report: dict[str, Any] = {
        "completed_requests": result.total_requests,
        "successful_requests": result.successful_requests,
        "failed_requests": result.failed_requests,
        "total_duration_secs": result.duration_seconds,
        "avg_duration_ms": result.mean_latency_ms,
        "min_duration_ms": result.min_latency_ms,
        "max_duration_ms": result.max_latency_ms,
        "response_time_std_dev": result.latency_stddev_ms,
        "percentiles": result.percentiles or None,
        "success_rate": result.success_rate,
        "failure_rate": result.failure_rate,
        "throughput": result.throughput,
        "status_codes": {str(k): v for k, v in sorted(result.status_code_counts.items())},
        "error_counts": {k.value: v for k, v in sorted(result.error_counts.items())},
        "error_messages": dict(sorted(result.error_messages.items())),
        "total_data_transferred": result.total_bytes,
        "transfer_rate": result.transfer_rate,
    }
    if result.latency_distribution:
        report["response_time_distribution"] = result.latency_distribution
    if include_details:
        report["request_details"] = [o.model_dump(mode="json") for o in result.outcomes]
    return report


def render_report(result: AggregateResult, options: ReportOptions) -> str:
    if options.format is ReportFormat.JSON:
        return json.dumps(build_json_report(result, options.include_details), indent=2)
    return render_text(result, options.include_details)


def resolve_output_path(options: ReportOptions, default_dir: str = "reports") -> Path:
    """Where a report goes: ``output_dir`` plus either the given file name or
    the first unused ``report_N.<ext>``."""
    base_dir = Path(options.output_dir or default_dir)
    if options.output_file:
        # Only the file name is kept; the directory comes from output_dir
        return base_dir / Path(options.output_file).name

    counter = 1
    while True:
        candidate = base_dir / f"report_{counter}.{options.format.extension}"
        if not candidate.exists():
            return candidate
        counter += 1


def write_report(
    result: AggregateResult,
    options: ReportOptions,
    default_dir: str = "reports",
) -> Path:
    content = render_report(result, options)
    path = resolve_output_path(options, default_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("report_written", path=str(path), format=options.format.value)
    return path
