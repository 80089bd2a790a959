"""Qdrant-backed semantic index of decisions.

Each decision is stored as one point with a dense vector (fastembed
TextEmbedding) and a sparse BM25 vector (fastembed SparseTextEmbedding).
Every query filters on user_id, so users only ever see their own decisions.

Hybrid search runs the dense and sparse queries separately and fuses
them with relative-score fusion: each list's scores are min-max
normalized to [0, 1], then combined as alpha * dense + (1 - alpha) * sparse.
"""

import asyncio
from typing import Any
from uuid import UUID

import structlog
from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PayloadSchemaType,
    PointIdsList,
    PointStruct,
    SparseIndexParams,
    SparseVector,
    SparseVectorParams,
    VectorParams,
)

from src.config import settings
from src.models.decision import Decision

logger = structlog.get_logger()

DENSE_VECTOR = "dense"
SPARSE_VECTOR = "bm25"


def _normalize(hits: list[tuple[str, float]]) -> dict[str, float]:
    if not hits:
        return {}
    scores = [score for _, score in hits]
    low, high = min(scores), max(scores)
    if high == low:
        return {point_id: 1.0 for point_id, _ in hits}
    return {point_id: (score - low) / (high - low) for point_id, score in hits}


def relative_score_fusion(
    dense_hits: list[tuple[str, float]],
    sparse_hits: list[tuple[str, float]],
    alpha: float,
) -> list[tuple[str, float]]:
    """Fuse two ranked lists by weighted, min-max normalized score.

    Args:
        dense_hits: (point id, score) from the vector query
        sparse_hits: (point id, score) from the BM25 query
        alpha: Weight of the dense list; 0 = keyword only, 1 = vector only

    Returns:
        (point id, fused score) sorted best first
    """
    dense = _normalize(dense_hits)
    sparse = _normalize(sparse_hits)
    fused = {
        point_id: alpha * dense.get(point_id, 0.0)
        + (1 - alpha) * sparse.get(point_id, 0.0)
        for point_id in dense.keys() | sparse.keys()
    }
    return sorted(fused.items(), key=lambda item: item[1], reverse=True)


class SemanticIndex:
    """Vector index over decision text.

    The Qdrant client is created once (see from_settings) and shared.
    Embedding models are loaded lazily on first use. Qdrant and fastembed
    calls are blocking and run in a worker thread.
    """

    def __init__(
        self,
        client: QdrantClient,
        collection: str | None = None,
        dense_model: Any = None,
        sparse_model: Any = None,
    ):
        """Initialize index.

        Args:
            client: Qdrant client (remote or local path)
            collection: Collection name (default from settings)
            dense_model: Optional fastembed TextEmbedding (tests)
            sparse_model: Optional fastembed SparseTextEmbedding (tests)
        """
        self._client = client
        self._collection = collection or settings.qdrant_collection
        self._dense_model = dense_model
        self._sparse_model = sparse_model

    @classmethod
    def from_settings(cls) -> "SemanticIndex | None":
        """Build the index from settings, or None when Qdrant is not configured."""
        if settings.qdrant_url:
            client = QdrantClient(
                url=settings.qdrant_url,
                api_key=settings.qdrant_api_key,
                timeout=int(settings.http_timeout_seconds),
            )
        elif settings.qdrant_path:
            client = QdrantClient(path=settings.qdrant_path)
        else:
            return None
        return cls(client)

    def _get_dense_model(self) -> Any:
        """Lazy-load the dense embedding model (heavy import)."""
        if self._dense_model is None:
            from fastembed import TextEmbedding

            self._dense_model = TextEmbedding(model_name=settings.dense_embedding_model)
        return self._dense_model

    def _get_sparse_model(self) -> Any:
        """Lazy-load the BM25 sparse embedding model."""
        if self._sparse_model is None:
            from fastembed import SparseTextEmbedding

            self._sparse_model = SparseTextEmbedding(
                model_name=settings.sparse_embedding_model
            )
        return self._sparse_model

    def _embed_dense(self, text: str) -> list[float]:
        vector = next(iter(self._get_dense_model().embed([text])))
        return [float(v) for v in vector]

    def _embed_sparse(self, text: str) -> SparseVector:
        result = next(iter(self._get_sparse_model().embed([text])))
        return SparseVector(
            indices=[int(i) for i in result.indices],
            values=[float(v) for v in result.values],
        )

    def _ensure_collection_sync(self) -> None:
        if self._client.collection_exists(self._collection):
            return

        dimensions = len(self._embed_dense("dimension check"))
        self._client.create_collection(
            collection_name=self._collection,
            vectors_config={
                DENSE_VECTOR: VectorParams(size=dimensions, distance=Distance.COSINE),
            },
            sparse_vectors_config={
                SPARSE_VECTOR: SparseVectorParams(index=SparseIndexParams()),
            },
        )
        self._client.create_payload_index(
            collection_name=self._collection,
            field_name="user_id",
            field_schema=PayloadSchemaType.KEYWORD,
        )
        logger.info("Created Qdrant collection", collection=self._collection)

    async def ensure_collection(self) -> None:
        """Create the collection and user_id index if missing."""
        await asyncio.to_thread(self._ensure_collection_sync)

    def _upsert_sync(self, decision: Decision) -> None:
        text = decision.combined_text()
        point = PointStruct(
            id=str(decision.id),
            vector={
                DENSE_VECTOR: self._embed_dense(text),
                SPARSE_VECTOR: self._embed_sparse(text),
            },
            payload={
                "user_id": decision.user_id,
                "title": decision.title,
                "source": decision.source.value,
                "created_at": decision.created_at.isoformat(),
            },
        )
        self._client.upsert(collection_name=self._collection, points=[point])

    async def upsert(self, decision: Decision) -> None:
        """Insert or replace a decision's vectors."""
        await asyncio.to_thread(self._upsert_sync, decision)

    def _query_sync(
        self, query: Any, using: str, user_id: str, limit: int
    ) -> list[tuple[str, float]]:
        response = self._client.query_points(
            collection_name=self._collection,
            query=query,
            using=using,
            query_filter=Filter(
                must=[FieldCondition(key="user_id", match=MatchValue(value=user_id))]
            ),
            limit=limit,
            with_payload=False,
        )
        return [(str(point.id), point.score) for point in response.points]

    def _hybrid_search_sync(
        self, user_id: str, query: str, limit: int, alpha: float
    ) -> list[UUID]:
        # Over-fetch each list so fusion can promote items ranked low in one
        candidates = limit * 2
        dense_hits = (
            self._query_sync(self._embed_dense(query), DENSE_VECTOR, user_id, candidates)
            if alpha > 0
            else []
        )
        sparse_hits = (
            self._query_sync(self._embed_sparse(query), SPARSE_VECTOR, user_id, candidates)
            if alpha < 1
            else []
        )
        fused = relative_score_fusion(dense_hits, sparse_hits, alpha)
        return [UUID(point_id) for point_id, _ in fused[:limit]]

    async def hybrid_search(
        self,
        user_id: str,
        query: str,
        limit: int = 10,
        alpha: float | None = None,
    ) -> list[UUID]:
        """Rank a user's decisions against a query.

        Args:
            user_id: Owning user (results never cross users)
            query: Free-text query
            limit: Maximum results
            alpha: Dense weight (default from settings)

        Returns:
            Decision IDs, best match first
        """
        weight = settings.hybrid_alpha if alpha is None else alpha
        return await asyncio.to_thread(
            self._hybrid_search_sync, user_id, query, limit, weight
        )

    async def delete(self, decision_id: UUID) -> None:
        """Remove a decision's point."""
        await asyncio.to_thread(
            self._client.delete,
            collection_name=self._collection,
            points_selector=PointIdsList(points=[str(decision_id)]),
        )

    async def is_healthy(self) -> bool:
        """Check that Qdrant answers."""
        try:
            await asyncio.to_thread(self._client.get_collections)
            return True
        except Exception:
            return False

    def close(self) -> None:
        """Close the underlying client."""
        self._client.close()
