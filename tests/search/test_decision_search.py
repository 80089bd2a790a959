"""Tests for DecisionSearch."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.search.decision_search import MODE_HYBRID, MODE_KEYWORD, DecisionSearch
from src.search.semantic_index import SemanticIndex


@pytest.fixture
def mock_index():
    index = MagicMock(spec=SemanticIndex)
    index.hybrid_search = AsyncMock(return_value=[])
    index.upsert = AsyncMock()
    index.delete = AsyncMock()
    return index


class TestSearch:
    """Hybrid search with keyword fallback."""

    async def test_keyword_when_index_disabled(self, decision_repo, decision_factory):
        await decision_repo.create(decision_factory())
        search = DecisionSearch(decision_repo)

        decisions, mode = await search.search("user-1", "postgres")

        assert mode == MODE_KEYWORD
        assert len(decisions) == 1
        assert search.index_enabled is False

    async def test_hybrid_hits(self, decision_repo, decision_factory, mock_index):
        decision = await decision_repo.create(decision_factory())
        mock_index.hybrid_search.return_value = [decision.id]
        search = DecisionSearch(decision_repo, mock_index)

        decisions, mode = await search.search("user-1", "relational store", alpha=0.5)

        assert mode == MODE_HYBRID
        assert [d.id for d in decisions] == [decision.id]
        mock_index.hybrid_search.assert_awaited_once_with(
            "user-1", "relational store", 10, 0.5
        )

    async def test_index_failure_falls_back(
        self, decision_repo, decision_factory, mock_index
    ):
        await decision_repo.create(decision_factory())
        mock_index.hybrid_search.side_effect = ConnectionError("qdrant down")
        search = DecisionSearch(decision_repo, mock_index)

        decisions, mode = await search.search("user-1", "postgres")

        assert mode == MODE_KEYWORD
        assert len(decisions) == 1

    async def test_empty_index_result_falls_back(
        self, decision_repo, decision_factory, mock_index
    ):
        await decision_repo.create(decision_factory())
        search = DecisionSearch(decision_repo, mock_index)

        _, mode = await search.search("user-1", "postgres")

        assert mode == MODE_KEYWORD


class TestMirror:
    async def test_success_marks_synced(self, decision_repo, decision_factory, mock_index):
        decision = await decision_repo.create(decision_factory())
        search = DecisionSearch(decision_repo, mock_index)

        assert await search.mirror(decision) is True
        assert (await decision_repo.get("user-1", decision.id)).embedding_synced is True

    async def test_failure_leaves_unsynced(
        self, decision_repo, decision_factory, mock_index
    ):
        decision = await decision_repo.create(decision_factory())
        mock_index.upsert.side_effect = RuntimeError("embedding failed")
        search = DecisionSearch(decision_repo, mock_index)

        assert await search.mirror(decision) is False
        assert (await decision_repo.get("user-1", decision.id)).embedding_synced is False

    async def test_mirror_unsynced_retries(
        self, decision_repo, decision_factory, mock_index
    ):
        await decision_repo.create(decision_factory())
        await decision_repo.create(decision_factory(title="Second"))
        search = DecisionSearch(decision_repo, mock_index)

        assert await search.mirror_unsynced("user-1") == 2
        assert await decision_repo.list_unsynced("user-1") == []

    async def test_disabled_index_is_a_no_op(self, decision_repo, decision_factory):
        decision = await decision_repo.create(decision_factory())
        search = DecisionSearch(decision_repo)

        assert await search.mirror(decision) is False
        assert await search.mirror_unsynced("user-1") == 0
        await search.remove(decision.id)

    async def test_remove_swallows_index_errors(self, decision_repo, mock_index, decision_factory):
        mock_index.delete.side_effect = RuntimeError("gone")
        search = DecisionSearch(decision_repo, mock_index)

        await search.remove(decision_factory().id)

        mock_index.delete.assert_awaited_once()
