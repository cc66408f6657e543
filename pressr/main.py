"""FastAPI application exposing load test runs over HTTP."""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from pressr.api.middleware.error_handler import global_exception_handler
from pressr.api.middleware.logging import StructuredLoggingMiddleware
from pressr.api.routes.health import router as health_router
from pressr.api.routes.load_tests import router as load_tests_router
from pressr.config import settings
from pressr.engine.errors import PressrError
from pressr.shared.logging import setup_logging

logger = structlog.get_logger()

APP_START_TIME: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    global APP_START_TIME
    APP_START_TIME = time.time()
    setup_logging(settings.log_level, settings.log_json)
    logger.info("pressr_api_starting", app_name=settings.app_name, version=settings.app_version)
    yield
    logger.info("pressr_api_shutting_down")


app = FastAPI(
    title="pressr",
    description="HTTP load testing service",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(StructuredLoggingMiddleware)

# Specific classes are handled inside the app; the Exception fallback runs in
# the outermost server-error middleware.
app.add_exception_handler(PressrError, global_exception_handler)
app.add_exception_handler(ValueError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(health_router)
app.include_router(load_tests_router)


def get_uptime() -> int:
    if APP_START_TIME == 0.0:
        return 0
    return int(time.time() - APP_START_TIME)


def serve() -> None:
    uvicorn.run("pressr.main:app", host=settings.host, port=settings.port)
