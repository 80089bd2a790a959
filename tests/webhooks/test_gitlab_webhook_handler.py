"""Tests for GitLabWebhookHandler."""

import json
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.adapters.gitlab_adapter import ISSUE, MERGE_REQUEST, GitLabAdapter
from src.models.integration import GitLabIntegration
from src.sync.pipeline import DecisionPipeline
from src.sync.schemas import CandidateResult, CandidateStatus
from src.webhooks.gitlab_handler import GitLabWebhookHandler, resolve_target
from src.webhooks.processor import WebhookProcessor
from src.webhooks.verification import InvalidSignatureError

SECRET = "gitlab-hook-secret"
PROJECT = {"id": 42, "web_url": "https://gitlab.example.com/group/api"}


def issue_event(action="open") -> dict:
    return {
        "object_kind": "issue",
        "project": PROJECT,
        "object_attributes": {
            "iid": 7,
            "title": "Pick a database",
            "action": action,
            "url": "https://gitlab.example.com/group/api/-/issues/7",
        },
    }


def note_event(noteable_type="MergeRequest") -> dict:
    return {
        "object_kind": "note",
        "project": PROJECT,
        "object_attributes": {"noteable_type": noteable_type, "note": "LGTM"},
        "merge_request": {
            "iid": 3,
            "title": "Adopt Kafka",
            "url": "https://gitlab.example.com/group/api/-/merge_requests/3",
        },
    }


@pytest.fixture
def pipeline():
    mock = MagicMock(spec=DecisionPipeline)
    mock.process = AsyncMock(
        return_value=CandidateResult(
            source_key="gitlab:42:issue:7", status=CandidateStatus.NO_DECISION
        )
    )
    return mock


async def connect(integration_repo, user_id, url="https://gitlab.example.com"):
    await integration_repo.upsert_gitlab(
        GitLabIntegration(user_id=user_id, access_token=f"glpat-{user_id}", gitlab_url=url)
    )


@pytest.fixture
async def handler(integration_repo, webhook_log_repo, pipeline):
    await connect(integration_repo, "user-1")
    processor = WebhookProcessor(pipeline, webhook_log_repo, threshold=0.6, cooldown_minutes=30)
    return GitLabWebhookHandler(
        integration_repo,
        GitLabAdapter(integration_repo),
        processor,
        secret=SECRET,
    )


class TestResolveTarget:
    def test_issue_open(self):
        kind, item = resolve_target(issue_event())
        assert (kind, item["iid"]) == (ISSUE, 7)

    def test_issue_close_ignored(self):
        assert resolve_target(issue_event("close")) == "Issue action not handled"

    def test_merge_request_merge(self):
        payload = {"object_kind": "merge_request", "object_attributes": {"iid": 1, "action": "merge"}}
        assert resolve_target(payload)[0] == MERGE_REQUEST

    def test_note_on_merge_request(self):
        kind, item = resolve_target(note_event())
        assert (kind, item["iid"]) == (MERGE_REQUEST, 3)

    def test_note_on_commit_ignored(self):
        assert resolve_target(note_event("Commit")) == "Not an issue or MR note"

    def test_note_without_target(self):
        payload = note_event("Issue")
        assert resolve_target(payload) == "Note event missing target"

    def test_push_ignored(self):
        assert resolve_target({"object_kind": "push"}) == "Event type not handled"


class TestHandle:
    async def test_bad_token_creates_nothing(
        self, handler, pipeline, webhook_log_repo, decision_repo
    ):
        body = json.dumps(issue_event()).encode()

        with pytest.raises(InvalidSignatureError):
            await handler.handle(body, "wrong-token")

        pipeline.process.assert_not_called()
        assert (await webhook_log_repo.stats("user-1"))["total"] == 0
        assert await decision_repo.list_for_user("user-1") == []

    async def test_issue_event_runs_pipeline(self, handler, pipeline, webhook_log_repo):
        outcome = await handler.handle(json.dumps(issue_event()).encode(), SECRET)

        assert outcome.message == "No decision detected"
        assert outcome.processed == 1
        _, ref, _, threshold, cooldown = pipeline.process.call_args.args
        assert ref.source_key == "gitlab:42:issue:7"
        assert ref.source_link == "https://gitlab.example.com/group/api/-/issues/7"
        assert ref.title == "GitLab Issue: Pick a database"
        assert ref.min_comments == 0
        assert (threshold, cooldown) == (0.6, 30)
        [log], _ = await webhook_log_repo.list_for_user("user-1", source="gitlab")
        assert log.event_type == "issue"
        assert log.payload == {"project_id": 42, "iid": 7, "kind": "issue"}

    async def test_every_matching_integration_runs(
        self, handler, pipeline, integration_repo
    ):
        await connect(integration_repo, "user-2")
        await connect(integration_repo, "user-3", url="https://gitlab.example.com.evil.io")
        decision_id = uuid4()
        pipeline.process.return_value = CandidateResult(
            source_key="gitlab:42:merge_request:3",
            status=CandidateStatus.DECISION_CREATED,
            decision_id=decision_id,
        )

        outcome = await handler.handle_event(note_event())

        users = sorted(call.args[0] for call in pipeline.process.call_args_list)
        assert users == ["user-1", "user-2"]
        assert outcome.processed == 2
        assert outcome.decision_ids == [decision_id, decision_id]
        assert outcome.message == "Decision detected and saved"

    async def test_unknown_instance(self, handler, pipeline):
        payload = issue_event()
        payload["project"] = {"id": 1, "web_url": "https://gitlab.other.org/x/y"}

        outcome = await handler.handle_event(payload)

        assert outcome.message == "Integration not found"
        pipeline.process.assert_not_called()

    async def test_missing_project(self, handler):
        payload = issue_event()
        del payload["project"]

        outcome = await handler.handle_event(payload)

        assert outcome.message == "Event missing project"

    async def test_ignored_action_is_acknowledged(self, handler, pipeline):
        outcome = await handler.handle(json.dumps(issue_event("update")).encode(), SECRET)

        assert outcome.success is True
        pipeline.process.assert_not_called()
