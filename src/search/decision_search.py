"""Decision search and semantic index mirroring.

The semantic index is an accelerator: every search falls back to the
decision store's keyword search when the index is disabled, fails, or
returns nothing.
"""

from uuid import UUID

import structlog

from src.models.decision import Decision
from src.repositories.decision_repo import DecisionRepository
from src.search.semantic_index import SemanticIndex

logger = structlog.get_logger()

MODE_HYBRID = "hybrid"
MODE_KEYWORD = "keyword"


class DecisionSearch:
    """Searches a user's decisions and keeps the semantic index in sync."""

    def __init__(
        self,
        decisions: DecisionRepository,
        index: SemanticIndex | None = None,
    ):
        """Initialize search.

        Args:
            decisions: Decision store (source of truth)
            index: Semantic index, or None when disabled
        """
        self._decisions = decisions
        self._index = index

    @property
    def index_enabled(self) -> bool:
        return self._index is not None

    async def search(
        self,
        user_id: str,
        query: str,
        limit: int = 10,
        alpha: float | None = None,
    ) -> tuple[list[Decision], str]:
        """Search decisions.

        Returns:
            Tuple of (decisions best first, mode used: hybrid or keyword)
        """
        if self._index is not None:
            try:
                ids = await self._index.hybrid_search(user_id, query, limit, alpha)
                decisions = await self._decisions.get_many(user_id, ids)
                if decisions:
                    return decisions, MODE_HYBRID
            except Exception as e:
                logger.warning(
                    "Semantic search failed, using keyword search",
                    user_id=user_id,
                    error=str(e),
                )

        decisions = await self._decisions.keyword_search(user_id, query, limit)
        return decisions, MODE_KEYWORD

    async def mirror(self, decision: Decision) -> bool:
        """Upsert a decision into the index and flag it synced.

        Best effort: failures are logged and leave embedding_synced false
        so the next sweep retries.

        Returns:
            True if the decision is now in the index
        """
        if self._index is None:
            return False
        try:
            await self._index.upsert(decision)
        except Exception as e:
            logger.warning(
                "Semantic index upsert failed",
                decision_id=str(decision.id),
                error=str(e),
            )
            return False
        await self._decisions.mark_embedding_synced(decision.user_id, decision.id)
        return True

    async def mirror_unsynced(self, user_id: str, limit: int = 50) -> int:
        """Retry mirroring a user's unsynced decisions.

        Returns:
            Number of decisions mirrored
        """
        if self._index is None:
            return 0
        mirrored = 0
        for decision in await self._decisions.list_unsynced(user_id, limit):
            if await self.mirror(decision):
                mirrored += 1
        if mirrored:
            logger.info("Re-mirrored decisions", user_id=user_id, count=mirrored)
        return mirrored

    async def remove(self, decision_id: UUID) -> None:
        """Remove a decision from the index (best effort)."""
        if self._index is None:
            return
        try:
            await self._index.delete(decision_id)
        except Exception as e:
            logger.warning(
                "Semantic index delete failed",
                decision_id=str(decision_id),
                error=str(e),
            )
