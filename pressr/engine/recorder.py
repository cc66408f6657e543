"""Turns transport results into ``RequestOutcome`` records."""

import httpx

from .models import ErrorKind, RequestOutcome


def is_success_status(status: int) -> bool:
    return 200 <= status < 300


def status_error_message(status: int) -> str:
    reason = httpx.codes.get_reason_phrase(status) or "Unknown"
    return f"HTTP {status} {reason}"


def describe_exception(exc: BaseException) -> str:
    text = str(exc).strip()
    return text or type(exc).__name__


def classify_transport_error(exc: BaseException) -> ErrorKind:
    # ConnectTimeout is both; a timeout is the more useful bucket
    if isinstance(exc, httpx.TimeoutException):
        return ErrorKind.TIMEOUT
    if isinstance(exc, httpx.ConnectError):
        return ErrorKind.CONNECT
    return ErrorKind.TRANSPORT


def record_response(status: int, body_size: int, elapsed_ms: float) -> RequestOutcome:
    """A response whose body was read completely."""
    if is_success_status(status):
        return RequestOutcome(
            status=status,
            latency_ms=elapsed_ms,
            success=True,
            response_size=body_size,
        )
    return RequestOutcome(
        status=status,
        latency_ms=elapsed_ms,
        success=False,
        error=status_error_message(status),
        error_kind=ErrorKind.HTTP_STATUS,
        response_size=body_size,
    )


def record_body_failure(status: int, exc: BaseException, elapsed_ms: float) -> RequestOutcome:
    """A status line arrived but the body could not be read."""
    return RequestOutcome(
        status=status,
        latency_ms=elapsed_ms,
        success=False,
        error=f"Error reading response body: {describe_exception(exc)}",
        error_kind=ErrorKind.BODY_READ,
    )


def record_transport_failure(exc: BaseException, elapsed_ms: float) -> RequestOutcome:
    """The request failed before any status was obtained."""
    kind = classify_transport_error(exc)
    prefix = {
        ErrorKind.CONNECT: "Connection failed",
        ErrorKind.TIMEOUT: "Request timed out",
    }.get(kind, "Request failed")
    return RequestOutcome(
        status=None,
        latency_ms=elapsed_ms,
        success=False,
        error=f"{prefix}: {describe_exception(exc)}",
        error_kind=kind,
    )
