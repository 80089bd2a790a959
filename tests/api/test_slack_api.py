"""Tests for Slack browsing and channel analysis endpoints."""

from httpx import AsyncClient

from src.adapters.base import NotConnectedError, UpstreamError
from src.services.llm_client import LLMClientError
from src.sync.schemas import CandidateResult, CandidateStatus

AUTH = {"X-User-Id": "user-1"}

HISTORY = [
    {"type": "message", "user": "U2", "text": "Agreed, Postgres", "ts": "1767225660.000200"},
    {"type": "message", "user": "U1", "text": "Postgres or Mongo?", "ts": "1767225600.000100"},
]


class TestChannels:
    async def test_lists_channels(self, client: AsyncClient, slack_adapter):
        slack_adapter.list_channels.return_value = [
            {
                "id": "C1",
                "name": "eng",
                "is_private": False,
                "num_members": 8,
                "created": 1700000000,
                "topic": {"value": "Engineering"},
                "purpose": {"value": ""},
            }
        ]

        response = await client.get("/slack/channels", headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        channel = body["channels"][0]
        assert (channel["id"], channel["member_count"], channel["topic"]) == (
            "C1",
            8,
            "Engineering",
        )

    async def test_not_connected(self, client: AsyncClient, slack_adapter):
        slack_adapter.list_channels.side_effect = NotConnectedError("slack")

        response = await client.get("/slack/channels", headers=AUTH)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Slack not connected"}

    async def test_requires_user(self, client: AsyncClient):
        response = await client.get("/slack/channels")

        assert response.status_code == 401


class TestMessages:
    async def test_lists_messages(self, client: AsyncClient, slack_adapter):
        slack_adapter.get_channel_history.return_value = HISTORY

        response = await client.get(
            "/slack/channels/C1/messages", params={"limit": 10}, headers=AUTH
        )

        assert response.status_code == 200
        messages = response.json()["messages"]
        assert [m["user"] for m in messages] == ["U2", "U1"]
        assert messages[1]["timestamp"].startswith("2026-01-01T00:00:00")
        slack_adapter.get_channel_history.assert_awaited_once_with(
            "user-1", "C1", limit=10
        )

    async def test_limit_is_bounded(self, client: AsyncClient):
        response = await client.get(
            "/slack/channels/C1/messages", params={"limit": 5000}, headers=AUTH
        )

        assert response.status_code == 422

    async def test_upstream_error(self, client: AsyncClient, slack_adapter):
        slack_adapter.get_channel_history.side_effect = UpstreamError(
            "Slack", "channel_not_found"
        )

        response = await client.get("/slack/channels/C404/messages", headers=AUTH)

        assert response.status_code == 502


class TestAnalyzeChannel:
    async def test_decision_created(
        self,
        client: AsyncClient,
        slack_adapter,
        pipeline,
        decision_repo,
        decision_factory,
    ):
        decision = await decision_repo.create(decision_factory(source_key="slack:C1"))
        slack_adapter.get_channel_history.return_value = HISTORY
        pipeline.analyze.return_value = CandidateResult(
            source_key="slack:C1",
            status=CandidateStatus.DECISION_CREATED,
            decision_id=decision.id,
            confidence=0.85,
        )

        response = await client.post(
            "/slack/channels/C1/analyze", json={"limit": 20}, headers=AUTH
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "decision_created"
        assert body["decision"]["id"] == str(decision.id)
        user_id, ref, text, threshold = pipeline.analyze.call_args.args
        assert (ref.source_key, ref.history_limit) == ("slack:C1", 20)
        assert text == "U1: Postgres or Mongo?\nU2: Agreed, Postgres"
        assert threshold == 0.6

    async def test_without_body_uses_default_limit(
        self, client: AsyncClient, slack_adapter, pipeline
    ):
        slack_adapter.get_channel_history.return_value = HISTORY
        pipeline.analyze.return_value = CandidateResult(
            source_key="slack:C1", status=CandidateStatus.NO_DECISION, confidence=0.2
        )

        response = await client.post("/slack/channels/C1/analyze", headers=AUTH)

        body = response.json()
        assert body["status"] == "no_decision"
        assert body["message"] == "No clear decision detected in this channel"
        slack_adapter.get_channel_history.assert_awaited_once_with(
            "user-1", "C1", limit=50
        )

    async def test_empty_channel(self, client: AsyncClient, slack_adapter, pipeline):
        slack_adapter.get_channel_history.return_value = []
        pipeline.analyze.return_value = CandidateResult(
            source_key="slack:C1", status=CandidateStatus.SKIPPED_EMPTY
        )

        response = await client.post("/slack/channels/C1/analyze", headers=AUTH)

        body = response.json()
        assert body["status"] == "skipped_empty"
        assert body["message"] == "No messages to analyze in this channel"
        assert pipeline.analyze.call_args.args[2] == ""

    async def test_llm_error_propagates(self, client: AsyncClient, slack_adapter, pipeline):
        slack_adapter.get_channel_history.return_value = HISTORY
        pipeline.analyze.side_effect = LLMClientError("Anthropic API error: 529")

        response = await client.post("/slack/channels/C1/analyze", headers=AUTH)

        assert response.status_code == 502
