"""Auto-sync trigger for external schedulers (e.g. a CI cron job)."""

import hmac
from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from src.api.deps import get_orchestrator
from src.config import settings
from src.sync.orchestrator import SyncOrchestrator
from src.sync.schemas import SyncSummary

logger = structlog.get_logger()
router = APIRouter(prefix="/auto-sync", tags=["sync"])


class AutoSyncResponse(BaseModel):
    success: bool = True
    users_processed: int
    total_decisions_found: int
    summary: SyncSummary
    timestamp: datetime


class AutoSyncStatus(BaseModel):
    success: bool = True
    message: str
    scheduler_interval_minutes: int
    timestamp: datetime


def verify_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """Require `Authorization: Bearer <CRON_SECRET>` when a secret is configured."""
    secret = settings.cron_secret
    if not secret:
        return
    if not authorization or not hmac.compare_digest(
        authorization, f"Bearer {secret}"
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post(
    "",
    response_model=AutoSyncResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def trigger_auto_sync(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> AutoSyncResponse:
    """Sweep every user with at least one integration."""
    summary = await orchestrator.sync_all_users()
    logger.info(
        "Auto-sync triggered",
        users=summary.total_users,
        decisions=summary.total_decisions,
    )
    return AutoSyncResponse(
        users_processed=summary.total_users,
        total_decisions_found=summary.total_decisions,
        summary=summary,
        timestamp=datetime.now(UTC),
    )


@router.get("", response_model=AutoSyncStatus)
async def auto_sync_status() -> AutoSyncStatus:
    return AutoSyncStatus(
        message="Auto-sync endpoint is active",
        scheduler_interval_minutes=settings.auto_sync_interval_minutes,
        timestamp=datetime.now(UTC),
    )
