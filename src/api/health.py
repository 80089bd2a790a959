"""Health check endpoints for monitoring and orchestration."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

from src.config import settings

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str
    timestamp: datetime
    version: str
    environment: str


class LivenessResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    """Response model for readiness check."""

    status: str
    checks: dict[str, str]


@router.get("/", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=settings.app_version,
        environment=settings.app_env,
    )


@router.get("/live", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness check: app is running."""
    return LivenessResponse(status="alive")


@router.get("/ready", response_model=ReadinessResponse)
async def readiness(request: Request) -> ReadinessResponse:
    """Readiness check: app can serve traffic.

    The database must be healthy. The semantic index is optional: when it
    is disabled it reports "disabled", and when it is down search falls
    back to keyword matching, so it is reported as "degraded" without
    failing readiness.
    """
    checks: dict[str, str] = {"api": "ok"}

    db = getattr(request.app.state, "db", None)
    if db:
        try:
            checks["database"] = "ok" if await db.is_healthy() else "failed"
        except Exception:
            checks["database"] = "failed"
    else:
        checks["database"] = "not_configured"

    index = getattr(request.app.state, "semantic_index", None)
    if index is None:
        checks["semantic_index"] = "disabled"
    else:
        try:
            checks["semantic_index"] = "ok" if await index.is_healthy() else "degraded"
        except Exception:
            checks["semantic_index"] = "degraded"

    required = ("api", "database")
    status = "ready" if all(checks[k] == "ok" for k in required) else "not_ready"
    return ReadinessResponse(status=status, checks=checks)
