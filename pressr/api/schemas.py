"""Request/response models for the load test API."""

from typing import Any

from pydantic import BaseModel, Field


class LoadTestParams(BaseModel):
    url: str
    method: str = "GET"
    requests: int = Field(ge=0)
    concurrency: int
    timeout_ms: int | None = Field(default=None, gt=0)
    headers: dict[str, str] | None = None
    body: Any | None = None


class LoadTestSummary(BaseModel):
    request_count: int
    success_count: int
    failure_count: int
    total_time_ms: float
    average_time_ms: float
    min_time_ms: float
    max_time_ms: float
    throughput: float
    success_rate: float
    status_counts: dict[str, int] = Field(default_factory=dict)
    error_counts: dict[str, int] = Field(default_factory=dict)
    percentiles: dict[str, float] = Field(default_factory=dict)


class LoadTestResponse(BaseModel):
    results: LoadTestSummary
