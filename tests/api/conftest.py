"""Fixtures for API tests: a bare app wired like the real lifespan."""

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.adapters.calendar_adapter import CalendarAdapter
from src.adapters.gitlab_adapter import GitLabAdapter
from src.adapters.slack_adapter import SlackAdapter
from src.api.router import api_router
from src.main import register_exception_handlers
from src.search.decision_search import DecisionSearch
from src.services.evaluation import EvaluationService
from src.services.llm_client import LLMClient
from src.services.question_answerer import QuestionAnswerer
from src.sync.orchestrator import SyncOrchestrator
from src.sync.pipeline import DecisionPipeline
from src.webhooks import GitLabWebhookHandler, SlackWebhookHandler, WebhookProcessor

SLACK_SECRET = "slack-signing-secret"
GITLAB_SECRET = "gitlab-hook-secret"


@pytest.fixture
def llm_client():
    client = MagicMock(spec=LLMClient)
    client.complete = AsyncMock(return_value="You chose Postgres.")
    return client


@pytest.fixture
def pipeline():
    mock = MagicMock(spec=DecisionPipeline)
    mock.process = AsyncMock()
    mock.analyze = AsyncMock()
    return mock


@pytest.fixture
def orchestrator():
    mock = MagicMock(spec=SyncOrchestrator)
    mock.sync_user = AsyncMock()
    mock.sync_all_users = AsyncMock()
    return mock


@pytest.fixture
def slack_adapter(integration_repo):
    adapter = MagicMock(spec=SlackAdapter)
    adapter.build_ref.side_effect = SlackAdapter(integration_repo).build_ref
    return adapter


@pytest.fixture
def gitlab_adapter(integration_repo):
    adapter = MagicMock(spec=GitLabAdapter)
    # build_ref is pure; keep the real one so webhook refs are realistic
    adapter.build_ref.side_effect = GitLabAdapter(integration_repo).build_ref
    return adapter


@pytest.fixture
def calendar_adapter():
    return MagicMock(spec=CalendarAdapter)


@pytest.fixture
def app(
    db,
    decision_repo,
    meeting_repo,
    integration_repo,
    webhook_log_repo,
    llm_client,
    pipeline,
    orchestrator,
    slack_adapter,
    gitlab_adapter,
    calendar_adapter,
) -> FastAPI:
    """Test app with real repositories and mocked external services."""
    test_app = FastAPI()
    register_exception_handlers(test_app)
    test_app.include_router(api_router)

    search = DecisionSearch(decision_repo)
    processor = WebhookProcessor(
        pipeline, webhook_log_repo, threshold=0.6, cooldown_minutes=30
    )
    state = test_app.state
    state.db = db
    state.semantic_index = None
    state.decision_repo = decision_repo
    state.meeting_repo = meeting_repo
    state.integration_repo = integration_repo
    state.webhook_log_repo = webhook_log_repo
    state.decision_search = search
    state.slack_adapter = slack_adapter
    state.gitlab_adapter = gitlab_adapter
    state.calendar_adapter = calendar_adapter
    state.pipeline = pipeline
    state.orchestrator = orchestrator
    state.question_answerer = QuestionAnswerer(decision_repo, llm_client, search)
    state.evaluation_service = EvaluationService(decision_repo)
    state.slack_webhook_handler = SlackWebhookHandler(
        integration_repo, slack_adapter, processor, signing_secret=SLACK_SECRET
    )
    state.gitlab_webhook_handler = GitLabWebhookHandler(
        integration_repo, gitlab_adapter, processor, secret=GITLAB_SECRET
    )
    return test_app


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Create an async test client."""
    transport = ASGITransport(app=app)  # type: ignore[arg-type]
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
