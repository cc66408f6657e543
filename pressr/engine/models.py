"""Pydantic models for load test outcomes and results."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class HttpMethod(StrEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"

    @property
    def sends_body(self) -> bool:
        return self in (HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH)


class ErrorKind(StrEnum):
    CONNECT = "connect"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    BODY_READ = "body_read"
    TRANSPORT = "transport"


class RequestOutcome(BaseModel):
    """Normalized result of one attempt."""

    model_config = ConfigDict(frozen=True)

    status: int | None = None
    latency_ms: float = Field(ge=0.0)
    success: bool
    error: str | None = None
    error_kind: ErrorKind | None = None
    response_size: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _error_present_iff_failed(self) -> "RequestOutcome":
        if (self.error is None) != self.success:
            raise ValueError("error must be set exactly when success is False")
        if (self.error_kind is None) != self.success:
            raise ValueError("error_kind must be set exactly when success is False")
        return self


class AggregateResult(BaseModel):
    """Summary of a completed run, handed to reporting."""

    model_config = ConfigDict(frozen=True)

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0

    # Timing statistics cover every outcome, failed ones included
    min_latency_ms: float = 0.0
    max_latency_ms: float = 0.0
    mean_latency_ms: float = 0.0
    latency_stddev_ms: float = 0.0

    duration_seconds: float = 0.0
    throughput: float = 0.0
    success_rate: float = 0.0
    failure_rate: float = 0.0

    status_code_counts: dict[int, int] = Field(default_factory=dict)
    error_counts: dict[ErrorKind, int] = Field(default_factory=dict)
    error_messages: dict[str, int] = Field(default_factory=dict)

    # Successful outcomes only; empty when nothing succeeded
    percentiles: dict[str, float] = Field(default_factory=dict)
    clamped_latencies: int = 0

    total_bytes: int | None = None
    transfer_rate: float | None = None
    latency_distribution: dict[str, int] = Field(default_factory=dict)

    outcomes: list[RequestOutcome] = Field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        """Everything except the per-request outcomes."""
        return self.model_dump(mode="json", exclude={"outcomes"})
