"""Pytest configuration and fixtures."""

from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from src.db.turso import TursoClient
from src.models.decision import Decision, DecisionSource
from src.models.meeting import Meeting
from src.repositories import (
    DecisionRepository,
    IntegrationRepository,
    MeetingRepository,
    WebhookLogRepository,
)

USER_ID = "user-1"


@pytest.fixture
async def db(tmp_path: Path) -> AsyncIterator[TursoClient]:
    """Connected client on a throwaway SQLite file."""
    client = TursoClient(url=f"file:{tmp_path / 'test.db'}")
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
async def decision_repo(db: TursoClient) -> DecisionRepository:
    repo = DecisionRepository(db)
    await repo.initialize()
    return repo


@pytest.fixture
async def meeting_repo(db: TursoClient, decision_repo) -> MeetingRepository:
    # list_awaiting_analysis joins against decisions
    repo = MeetingRepository(db)
    await repo.initialize()
    return repo


@pytest.fixture
async def integration_repo(db: TursoClient) -> IntegrationRepository:
    repo = IntegrationRepository(db)
    await repo.initialize()
    return repo


@pytest.fixture
async def webhook_log_repo(db: TursoClient) -> WebhookLogRepository:
    repo = WebhookLogRepository(db)
    await repo.initialize()
    return repo


def make_decision(**overrides) -> Decision:
    """Build a Decision with sensible defaults."""
    fields = {
        "user_id": USER_ID,
        "title": "Use Postgres for the orders service",
        "summary": "The team chose Postgres over MongoDB.",
        "problem_statement": "Orders need transactional guarantees.",
        "options_discussed": ["Postgres", "MongoDB", "DynamoDB"],
        "final_decision": "Use Postgres",
        "rationale": "Strong consistency and team familiarity.",
        "action_items": ["Provision the database"],
        "confidence": 0.9,
        "source": DecisionSource.SLACK,
        "source_link": "https://slack.com/app_redirect?channel=C123",
        "source_key": "slack:C123",
    }
    fields.update(overrides)
    return Decision(**fields)


def make_meeting(**overrides) -> Meeting:
    """Build a Meeting with sensible defaults."""
    start = datetime(2026, 3, 2, 15, 0, tzinfo=UTC)
    fields = {
        "user_id": USER_ID,
        "google_event_id": "evt-1",
        "title": "Architecture review",
        "start_time": start,
        "end_time": start + timedelta(hours=1),
        "meet_link": "https://meet.google.com/abc-defg-hij",
    }
    fields.update(overrides)
    return Meeting(**fields)


@pytest.fixture
def decision_factory():
    return make_decision


@pytest.fixture
def meeting_factory():
    return make_meeting
