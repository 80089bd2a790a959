"""Webhook receiver endpoints, setup instructions and the webhook audit log."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from src.api.deps import (
    get_gitlab_webhook_handler,
    get_slack_webhook_handler,
    get_user_id,
    get_webhook_log_repo,
)
from src.config import settings
from src.models.webhook_log import WebhookLog, WebhookStatus
from src.repositories.webhook_log_repo import MAX_PAGE_SIZE, WebhookLogRepository
from src.webhooks.gitlab_handler import GitLabWebhookHandler
from src.webhooks.schemas import WebhookOutcome
from src.webhooks.slack_handler import SlackWebhookHandler

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


class WebhookStatusResponse(BaseModel):
    status: str = "ok"
    message: str
    timestamp: datetime


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class WebhookLogsResponse(BaseModel):
    success: bool = True
    logs: list[WebhookLog]
    stats: dict[str, int]
    pagination: Pagination


class ChallengeResponse(BaseModel):
    challenge: str


class WebhookSetup(BaseModel):
    url: str
    events: list[str]
    setup_steps: list[str]
    secret_variable: str
    secret_configured: bool


class WebhookConfigResponse(BaseModel):
    success: bool = True
    slack: WebhookSetup
    gitlab: WebhookSetup
    features: list[str]


@router.post("/slack", response_model=WebhookOutcome | ChallengeResponse)
async def slack_webhook(
    request: Request,
    handler: SlackWebhookHandler = Depends(get_slack_webhook_handler),
):
    """Slack Events API receiver (signed with the signing secret)."""
    body = await request.body()
    try:
        outcome = await handler.handle(body, dict(request.headers))
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if outcome.challenge is not None:
        return ChallengeResponse(challenge=outcome.challenge)
    return outcome


@router.get("/slack", response_model=WebhookStatusResponse)
async def slack_webhook_status() -> WebhookStatusResponse:
    return WebhookStatusResponse(
        message="Slack webhook endpoint is active", timestamp=datetime.now(UTC)
    )


@router.post("/gitlab", response_model=WebhookOutcome)
async def gitlab_webhook(
    request: Request,
    handler: GitLabWebhookHandler = Depends(get_gitlab_webhook_handler),
) -> WebhookOutcome:
    """GitLab webhook receiver (authenticated by X-Gitlab-Token)."""
    body = await request.body()
    try:
        return await handler.handle(body, request.headers.get("x-gitlab-token"))
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")


@router.get("/gitlab", response_model=WebhookStatusResponse)
async def gitlab_webhook_status() -> WebhookStatusResponse:
    return WebhookStatusResponse(
        message="GitLab webhook endpoint is active", timestamp=datetime.now(UTC)
    )


@router.get("/logs", response_model=WebhookLogsResponse)
async def webhook_logs(
    source: str | None = Query(default=None, pattern="^(slack|gitlab)$"),
    status: WebhookStatus | None = Query(default=None),
    limit: int = Query(default=20, ge=1),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(get_user_id),
    repo: WebhookLogRepository = Depends(get_webhook_log_repo),
) -> WebhookLogsResponse:
    """Recent webhook events for the caller, newest first. Limit is capped at 50."""
    limit = min(limit, MAX_PAGE_SIZE)
    logs, total = await repo.list_for_user(
        user_id, source=source, status=status, limit=limit, offset=offset
    )
    stats = await repo.stats(user_id)
    return WebhookLogsResponse(
        logs=logs,
        stats=stats,
        pagination=Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(logs) < total,
        ),
    )


@router.get("/config", response_model=WebhookConfigResponse)
async def webhook_config(
    user_id: str = Depends(get_user_id),
) -> WebhookConfigResponse:
    """Receiver URLs and setup steps for configuring Slack and GitLab webhooks."""
    base_url = settings.app_url.rstrip("/")
    slack_url = f"{base_url}/webhooks/slack"
    gitlab_url = f"{base_url}/webhooks/gitlab"
    return WebhookConfigResponse(
        slack=WebhookSetup(
            url=slack_url,
            events=["message.channels", "message.groups"],
            setup_steps=[
                "Open your Slack app settings at https://api.slack.com/apps",
                "Enable Event Subscriptions",
                f"Set the Request URL to {slack_url}",
                "Subscribe to the message.channels and message.groups bot events",
                "Save changes and reinstall the app if prompted",
            ],
            secret_variable="SLACK_SIGNING_SECRET",
            secret_configured=bool(settings.slack_signing_secret),
        ),
        gitlab=WebhookSetup(
            url=gitlab_url,
            events=["Issue events", "Merge request events", "Comments"],
            setup_steps=[
                "Open the project's Settings > Webhooks",
                f"Set the URL to {gitlab_url}",
                "Set the Secret token to the value of GITLAB_WEBHOOK_SECRET",
                "Enable Issue events, Merge request events and Comments",
                "Add the webhook and send a test event",
            ],
            secret_variable="GITLAB_WEBHOOK_SECRET",
            secret_configured=bool(settings.gitlab_webhook_secret),
        ),
        features=[
            "Decisions are detected as conversations happen",
            f"Each conversation is re-analyzed at most once every "
            f"{settings.webhook_cooldown_minutes} minutes",
            "Every received event is recorded in the webhook log",
        ],
    )
