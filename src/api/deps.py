"""Shared FastAPI dependencies.

Everything here is read from `app.state`, which the lifespan in
src/main.py populates. Tests build a bare FastAPI app and set the same
attributes directly.
"""

from fastapi import Header, HTTPException, Request

from src.adapters.calendar_adapter import CalendarAdapter
from src.adapters.gitlab_adapter import GitLabAdapter
from src.adapters.slack_adapter import SlackAdapter
from src.repositories.decision_repo import DecisionRepository
from src.repositories.integration_repo import IntegrationRepository
from src.repositories.meeting_repo import MeetingRepository
from src.repositories.webhook_log_repo import WebhookLogRepository
from src.search.decision_search import DecisionSearch
from src.services.evaluation import EvaluationService
from src.services.question_answerer import QuestionAnswerer
from src.sync.orchestrator import SyncOrchestrator
from src.sync.pipeline import DecisionPipeline
from src.webhooks.gitlab_handler import GitLabWebhookHandler
from src.webhooks.slack_handler import SlackWebhookHandler


async def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity from the X-User-Id header."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()


def get_decision_repo(request: Request) -> DecisionRepository:
    return request.app.state.decision_repo


def get_meeting_repo(request: Request) -> MeetingRepository:
    return request.app.state.meeting_repo


def get_integration_repo(request: Request) -> IntegrationRepository:
    return request.app.state.integration_repo


def get_webhook_log_repo(request: Request) -> WebhookLogRepository:
    return request.app.state.webhook_log_repo


def get_decision_search(request: Request) -> DecisionSearch:
    return request.app.state.decision_search


def get_slack_adapter(request: Request) -> SlackAdapter:
    return request.app.state.slack_adapter


def get_gitlab_adapter(request: Request) -> GitLabAdapter:
    return request.app.state.gitlab_adapter


def get_calendar_adapter(request: Request) -> CalendarAdapter:
    return request.app.state.calendar_adapter


def get_pipeline(request: Request) -> DecisionPipeline:
    return request.app.state.pipeline


def get_orchestrator(request: Request) -> SyncOrchestrator:
    return request.app.state.orchestrator


def get_question_answerer(request: Request) -> QuestionAnswerer:
    return request.app.state.question_answerer


def get_evaluation_service(request: Request) -> EvaluationService:
    return request.app.state.evaluation_service


def get_slack_webhook_handler(request: Request) -> SlackWebhookHandler:
    return request.app.state.slack_webhook_handler


def get_gitlab_webhook_handler(request: Request) -> GitLabWebhookHandler:
    return request.app.state.gitlab_webhook_handler
