"""Tests for SlackWebhookHandler."""

import hashlib
import hmac
import json
import time
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.adapters.slack_adapter import SlackAdapter
from src.models.integration import SlackIntegration
from src.models.webhook_log import WebhookStatus
from src.sync.pipeline import DecisionPipeline
from src.sync.schemas import CandidateResult, CandidateStatus
from src.webhooks.processor import WebhookProcessor
from src.webhooks.slack_handler import SlackWebhookHandler
from src.webhooks.verification import InvalidSignatureError

SECRET = "slack-signing-secret"


def signed(payload: dict, secret: str = SECRET) -> tuple[bytes, dict]:
    body = json.dumps(payload).encode()
    ts = str(int(time.time()))
    digest = hmac.new(secret.encode(), f"v0:{ts}:".encode() + body, hashlib.sha256)
    return body, {
        "X-Slack-Request-Timestamp": ts,
        "X-Slack-Signature": f"v0={digest.hexdigest()}",
    }


def message_event(**event) -> dict:
    return {
        "type": "event_callback",
        "team_id": "T1",
        "event": {"type": "message", "channel": "C123", "user": "U1", "text": "ok", **event},
    }


@pytest.fixture
def pipeline():
    mock = MagicMock(spec=DecisionPipeline)
    mock.process = AsyncMock(
        return_value=CandidateResult(
            source_key="slack:C123", status=CandidateStatus.NO_DECISION, confidence=0.2
        )
    )
    return mock


@pytest.fixture
async def handler(integration_repo, webhook_log_repo, pipeline):
    await integration_repo.upsert_slack(
        SlackIntegration(user_id="user-1", access_token="xoxp-1", team_id="T1")
    )
    processor = WebhookProcessor(pipeline, webhook_log_repo, threshold=0.6, cooldown_minutes=30)
    return SlackWebhookHandler(
        integration_repo,
        MagicMock(spec=SlackAdapter),
        processor,
        signing_secret=SECRET,
        history_limit=20,
    )


class TestAuthentication:
    async def test_bad_signature_creates_nothing(
        self, handler, pipeline, webhook_log_repo, decision_repo
    ):
        body, headers = signed(message_event(), secret="not-the-secret")

        with pytest.raises(InvalidSignatureError):
            await handler.handle(body, headers)

        pipeline.process.assert_not_called()
        assert (await webhook_log_repo.stats("user-1"))["total"] == 0
        assert await decision_repo.list_for_user("user-1") == []

    async def test_url_verification(self, handler):
        body, headers = signed({"type": "url_verification", "challenge": "abc123"})

        outcome = await handler.handle(body, headers)

        assert outcome.challenge == "abc123"
        assert "challenge" not in outcome.model_dump()

    async def test_non_object_body(self, handler):
        body = b"[1, 2]"
        ts = str(int(time.time()))
        digest = hmac.new(SECRET.encode(), f"v0:{ts}:".encode() + body, hashlib.sha256)
        headers = {
            "X-Slack-Request-Timestamp": ts,
            "X-Slack-Signature": f"v0={digest.hexdigest()}",
        }

        with pytest.raises(ValueError):
            await handler.handle(body, headers)


class TestEvents:
    """Authenticated events are acknowledged whether or not they are processed."""

    @pytest.mark.parametrize(
        "payload,message",
        [
            ({"type": "block_actions"}, "Unknown payload type"),
            (
                {"type": "event_callback", "team_id": "T1", "event": {"type": "reaction_added"}},
                "Event type not handled",
            ),
            (message_event(subtype="bot_message"), "Skipping bot/edited message"),
            (message_event(subtype="message_changed"), "Skipping bot/edited message"),
            ({**message_event(), "team_id": "T-unknown"}, "Integration not found"),
        ],
    )
    async def test_ignored(self, handler, pipeline, payload, message):
        body, headers = signed(payload)

        outcome = await handler.handle(body, headers)

        assert outcome.success is True
        assert outcome.message == message
        pipeline.process.assert_not_called()

    async def test_message_runs_pipeline_and_logs(
        self, handler, pipeline, webhook_log_repo
    ):
        decision_id = uuid4()
        pipeline.process.return_value = CandidateResult(
            source_key="slack:C123",
            status=CandidateStatus.DECISION_CREATED,
            decision_id=decision_id,
            decision_title="Use Postgres",
            confidence=0.9,
        )
        body, headers = signed(message_event())

        outcome = await handler.handle(body, headers)

        assert outcome.message == "Decision detected and saved"
        assert outcome.decision_ids == [decision_id]
        user_id, ref, _, threshold, cooldown = pipeline.process.call_args.args
        assert user_id == "user-1"
        assert (ref.source_key, ref.history_limit) == ("slack:C123", 20)
        assert ref.title == "Slack Channel: C123"
        assert (threshold, cooldown) == (0.6, 30)
        [log], total = await webhook_log_repo.list_for_user("user-1")
        assert total == 1
        assert log.status == WebhookStatus.PROCESSED
        assert log.decision_id == decision_id
        assert log.payload == {"channel": "C123", "team_id": "T1"}

    async def test_failed_pipeline_marks_log_failed(
        self, handler, pipeline, webhook_log_repo
    ):
        pipeline.process.return_value = CandidateResult(
            source_key="slack:C123", status=CandidateStatus.FAILED, error="LLM down"
        )
        body, headers = signed(message_event())

        outcome = await handler.handle(body, headers)

        assert outcome.message == "Error processing event"
        [log], _ = await webhook_log_repo.list_for_user("user-1")
        assert log.status == WebhookStatus.FAILED
        assert log.error_message == "LLM down"
