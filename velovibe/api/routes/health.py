"""
Health check endpoints.

We provide two endpoints:
- /health: Basic liveness check (is the process running?)
- /health/ready: Readiness check (can we serve traffic?)

Readiness reads persisted data through the store's storage, so a missing
or unreadable data directory shows up here instead of on the first request.
"""

import logging
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ... import __version__
from ..dependencies import SettingsDep, get_workout_store

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """
    Health check response.

    Standardized format makes it easy for monitoring tools to parse.
    """
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""
    name: str
    status: str  # "ok", "disabled" or "error"
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response with details."""
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the service is running. Does not check dependencies.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        details={
            "coaching_enabled": settings.coaching_enabled,
            "storage_mock_mode": settings.storage_mock_mode,
        },
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Checks that stored data can be loaded. Returns 503 if not.",
)
async def readiness_check(settings: SettingsDep):
    checks: list[ReadinessCheck] = []

    try:
        store = get_workout_store(settings)
        checks.append(ReadinessCheck(name="storage", status="ok"))
        logger.debug("Storage ready", extra={"exercises": len(store.exercises)})
    except Exception as e:
        logger.error("Storage readiness check failed", extra={"error": str(e)})
        checks.append(ReadinessCheck(name="storage", status="error", error=str(e)))

    checks.append(ReadinessCheck(
        name="coaching",
        status="ok" if settings.coaching_enabled else "disabled",
    ))

    ready = all(check.status != "error" for check in checks)
    body = ReadinessResponse(
        status="ready" if ready else "not_ready",
        version=__version__,
        checks=checks,
    )

    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body.model_dump(),
    )
