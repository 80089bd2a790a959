"""Sync orchestrator: sweep every connected source for every user.

Per user, sources run in order (Slack, GitLab, Meet). Within a source,
candidates go through the decision pipeline under a bounded semaphore.
A source that cannot even list its candidates is reported with an error
and the remaining sources still run.
"""

import asyncio

import structlog

from src.adapters.base import SourceConnector
from src.config import settings
from src.repositories.integration_repo import IntegrationRepository
from src.search.decision_search import DecisionSearch
from src.sync.pipeline import DecisionPipeline
from src.sync.schemas import SourceSyncResult, SyncSummary, UserSyncResult

logger = structlog.get_logger()


class SyncOrchestrator:
    """Runs sync sweeps over a fixed, ordered list of connectors."""

    def __init__(
        self,
        pipeline: DecisionPipeline,
        connectors: list[SourceConnector],
        integrations: IntegrationRepository,
        search: DecisionSearch | None = None,
        threshold: float | None = None,
        cooldown_minutes: int | None = None,
        max_concurrency: int | None = None,
    ):
        """Initialize orchestrator.

        Args:
            pipeline: Decision pipeline run for each candidate
            connectors: Source connectors in sweep order
            integrations: Used to enumerate users with integrations
            search: Used to re-mirror unsynced decisions after each user
            threshold: Acceptance threshold (default sync threshold)
            cooldown_minutes: Cooldown window (default sync cooldown)
            max_concurrency: Candidates processed at once per source
        """
        self._pipeline = pipeline
        self._connectors = connectors
        self._integrations = integrations
        self._search = search
        self._threshold = (
            settings.sync_confidence_threshold if threshold is None else threshold
        )
        self._cooldown = (
            settings.sync_cooldown_minutes
            if cooldown_minutes is None
            else cooldown_minutes
        )
        self._max_concurrency = max_concurrency or settings.sync_max_concurrency

    async def sync_source(
        self, user_id: str, connector: SourceConnector
    ) -> SourceSyncResult:
        """Sweep one source for one user.

        Results keep the order candidates were listed in.
        """
        source = connector.source.value
        try:
            refs = await connector.list_candidates(user_id)
        except Exception as e:
            logger.warning(
                "Source sweep failed", user_id=user_id, source=source, error=str(e)
            )
            return SourceSyncResult(source=source, error=str(e) or type(e).__name__)

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _run(ref):
            async with semaphore:
                return await self._pipeline.process(
                    user_id, ref, connector, self._threshold, self._cooldown
                )

        candidates = await asyncio.gather(*(_run(ref) for ref in refs))
        result = SourceSyncResult(source=source, candidates=list(candidates))

        try:
            await connector.mark_synced(user_id)
        except Exception as e:
            logger.warning(
                "Could not record last sync", user_id=user_id, source=source, error=str(e)
            )

        logger.info(
            "Source swept",
            user_id=user_id,
            source=source,
            items=result.items_processed,
            decisions=result.decisions_found,
        )
        return result

    async def sync_user(self, user_id: str) -> UserSyncResult:
        """Sweep every source for one user, then retry index mirroring."""
        result = UserSyncResult(user_id=user_id)
        for connector in self._connectors:
            result.sources.append(await self.sync_source(user_id, connector))

        if self._search is not None:
            try:
                result.reindexed = await self._search.mirror_unsynced(user_id)
            except Exception as e:
                logger.warning("Re-mirroring failed", user_id=user_id, error=str(e))
        return result

    async def sync_all_users(self) -> SyncSummary:
        """Sweep every user that has at least one integration, sequentially."""
        user_ids = await self._integrations.list_connected_user_ids()
        logger.info("Starting sync sweep", users=len(user_ids))

        summary = SyncSummary()
        for user_id in user_ids:
            summary.users.append(await self.sync_user(user_id))

        logger.info(
            "Sync sweep complete",
            users=summary.total_users,
            items=summary.total_items,
            decisions=summary.total_decisions,
        )
        return summary
