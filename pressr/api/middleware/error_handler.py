"""Maps run-level exceptions onto JSON error responses."""

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from pressr.engine.errors import InternalDispatchError, PressrError

logger = structlog.get_logger()


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")

    # ConfigurationError is a ValueError
    if isinstance(exc, ValueError):
        logger.warning("bad_request", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=400,
            content={"error": "bad_request", "message": str(exc), "request_id": request_id},
        )

    if isinstance(exc, InternalDispatchError):
        logger.error("internal_dispatch_error", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_dispatch_error",
                "message": str(exc),
                "request_id": request_id,
            },
        )

    if isinstance(exc, PressrError):
        logger.error("load_test_error", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=500,
            content={"error": "load_test_error", "message": str(exc), "request_id": request_id},
        )

    logger.exception("unhandled_exception", request_id=request_id, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
            "request_id": request_id,
        },
    )
