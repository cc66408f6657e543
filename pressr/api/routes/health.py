"""Liveness endpoint."""

from fastapi import APIRouter

from pressr.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    from pressr.main import get_uptime

    return {
        "status": "healthy",
        "version": settings.app_version,
        "uptime_seconds": get_uptime(),
    }
