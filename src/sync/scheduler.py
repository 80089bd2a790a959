"""APScheduler integration for periodic auto-sync sweeps.

Provides scheduler setup, job management, and FastAPI lifespan
integration. The in-process schedule is optional: with an interval of 0
the sweep is left to an external cron calling POST /auto-sync.
"""

from contextlib import asynccontextmanager
from datetime import UTC
from typing import TYPE_CHECKING

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from src.sync.orchestrator import SyncOrchestrator

logger = structlog.get_logger()

AUTO_SYNC_JOB_ID = "auto_sync_sweep"

# Module-level scheduler instance
_scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the scheduler instance.

    Returns:
        AsyncIOScheduler instance
    """
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone=UTC)
    return _scheduler


def reset_scheduler() -> None:
    """Reset the scheduler instance (for testing)."""
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None


@asynccontextmanager
async def sync_scheduler_lifespan(
    orchestrator: "SyncOrchestrator",
    interval_minutes: int,
) -> "AsyncGenerator[None, None]":
    """Lifespan context manager for the auto-sync scheduler.

    Starts the scheduler with a sweep job every interval_minutes. Does
    nothing when interval_minutes is 0. Shuts down cleanly on exit.

    Usage:
        async with sync_scheduler_lifespan(orchestrator, 60):
            # Scheduler is running
            yield
        # Scheduler stopped
    """
    if interval_minutes <= 0:
        logger.info("Auto-sync scheduler disabled")
        yield
        return

    scheduler = get_scheduler()
    scheduler.add_job(
        run_auto_sync,
        "interval",
        minutes=interval_minutes,
        args=[orchestrator],
        id=AUTO_SYNC_JOB_ID,
        replace_existing=True,
        max_instances=1,  # Prevent overlap if a sweep runs long
    )

    logger.info("Starting auto-sync scheduler", interval_minutes=interval_minutes)
    scheduler.start()

    try:
        yield
    finally:
        logger.info("Shutting down auto-sync scheduler")
        scheduler.shutdown(wait=False)


async def run_auto_sync(orchestrator: "SyncOrchestrator") -> None:
    """Scheduled job: sweep every connected user."""
    try:
        summary = await orchestrator.sync_all_users()
        logger.info(
            "Scheduled sweep finished",
            users=summary.total_users,
            decisions=summary.total_decisions,
        )
    except Exception as e:
        logger.error("Scheduled sweep failed", error=str(e))
