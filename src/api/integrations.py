"""Integration endpoints: connect/disconnect sources and trigger a sync.

Slack uses OAuth v2 with a signed, five-minute `state`; GitLab uses a
personal access token validated against /user; Google takes an access
token obtained by the frontend's sign-in flow.
"""

from datetime import datetime
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, ConfigDict, Field

from src.adapters.base import UpstreamError
from src.adapters.gitlab_adapter import GitLabAdapter
from src.adapters.slack_adapter import SlackAdapter
from src.api.deps import (
    get_gitlab_adapter,
    get_integration_repo,
    get_orchestrator,
    get_slack_adapter,
    get_user_id,
)
from src.config import settings
from src.integration.oauth_state import InvalidStateError, decode_state, encode_state
from src.models.integration import GitLabIntegration, GoogleIntegration, SlackIntegration
from src.repositories.integration_repo import IntegrationRepository
from src.sync.orchestrator import SyncOrchestrator
from src.sync.schemas import UserSyncResult

logger = structlog.get_logger()
router = APIRouter(prefix="/integrations", tags=["integrations"])

SLACK_AUTHORIZE_URL = "https://slack.com/oauth/v2/authorize"
SLACK_SCOPES = ["channels:history", "groups:history", "users:read"]


class SlackStatus(BaseModel):
    team_name: str | None
    slack_user_id: str | None
    connected_at: datetime
    last_sync_at: datetime | None


class GitLabStatus(BaseModel):
    username: str | None
    gitlab_url: str
    connected_at: datetime
    last_sync_at: datetime | None


class GoogleStatus(BaseModel):
    email: str | None
    connected_at: datetime
    last_sync_at: datetime | None


class IntegrationStatusResponse(BaseModel):
    success: bool = True
    status: dict[str, bool]
    slack: SlackStatus | None = None
    gitlab: GitLabStatus | None = None
    google: GoogleStatus | None = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class GitLabConnectRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    token: str = Field(min_length=1, description="Personal access token")
    gitlab_url: str = Field(default_factory=lambda: settings.gitlab_default_url)


class GitLabConnectResponse(BaseModel):
    success: bool = True
    message: str = "GitLab connected successfully"
    username: str
    gitlab_url: str


class GitLabWebhookRequest(BaseModel):
    project_id: int
    webhook_url: str | None = Field(
        default=None, description="Defaults to <APP_URL>/webhooks/gitlab"
    )


class GitLabWebhookResponse(BaseModel):
    success: bool = True
    message: str
    webhook_id: int | None
    created: bool


class SlackAuthUrlResponse(BaseModel):
    success: bool = True
    url: str


class GoogleConnectRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    access_token: str = Field(min_length=1)
    email: str | None = None


class SyncResponse(BaseModel):
    success: bool = True
    result: UserSyncResult


def _settings_redirect(**params: str) -> RedirectResponse:
    return RedirectResponse(
        f"{settings.app_url.rstrip('/')}/settings?{urlencode(params)}",
        status_code=302,
    )


@router.get("/status", response_model=IntegrationStatusResponse)
async def integration_status(
    user_id: str = Depends(get_user_id),
    repo: IntegrationRepository = Depends(get_integration_repo),
) -> IntegrationStatusResponse:
    """Connection state of each source for the caller."""
    slack = await repo.get_slack(user_id)
    gitlab = await repo.get_gitlab(user_id)
    google = await repo.get_google(user_id)
    return IntegrationStatusResponse(
        status={
            "google": google is not None,
            "slack": slack is not None,
            "gitlab": gitlab is not None,
        },
        slack=SlackStatus.model_validate(slack, from_attributes=True) if slack else None,
        gitlab=GitLabStatus.model_validate(gitlab, from_attributes=True)
        if gitlab
        else None,
        google=GoogleStatus.model_validate(google, from_attributes=True)
        if google
        else None,
    )


# GitLab


@router.post("/gitlab/connect", response_model=GitLabConnectResponse)
async def connect_gitlab(
    body: GitLabConnectRequest,
    user_id: str = Depends(get_user_id),
    repo: IntegrationRepository = Depends(get_integration_repo),
    gitlab: GitLabAdapter = Depends(get_gitlab_adapter),
) -> GitLabConnectResponse:
    """Validate a personal access token and store it."""
    gitlab_url = body.gitlab_url.rstrip("/")
    try:
        user = await gitlab.get_current_user(gitlab_url, body.token)
    except UpstreamError as e:
        logger.info("GitLab token rejected", user_id=user_id, error=str(e))
        raise HTTPException(status_code=400, detail="Invalid token or GitLab URL")

    await repo.upsert_gitlab(
        GitLabIntegration(
            user_id=user_id,
            access_token=body.token,
            gitlab_url=gitlab_url,
            username=user["username"],
            gitlab_user_id=user.get("id"),
        )
    )
    logger.info("GitLab connected", user_id=user_id, gitlab_url=gitlab_url)
    return GitLabConnectResponse(username=user["username"], gitlab_url=gitlab_url)


@router.delete("/gitlab", response_model=MessageResponse)
async def disconnect_gitlab(
    user_id: str = Depends(get_user_id),
    repo: IntegrationRepository = Depends(get_integration_repo),
) -> MessageResponse:
    await repo.delete("gitlab", user_id)
    return MessageResponse(message="GitLab disconnected")


@router.post("/gitlab/webhook", response_model=GitLabWebhookResponse)
async def configure_gitlab_webhook(
    body: GitLabWebhookRequest,
    user_id: str = Depends(get_user_id),
    gitlab: GitLabAdapter = Depends(get_gitlab_adapter),
) -> GitLabWebhookResponse:
    """Install the webhook on a project unless it is already there."""
    url = body.webhook_url or f"{settings.app_url.rstrip('/')}/webhooks/gitlab"
    hook, created = await gitlab.ensure_hook(
        user_id, body.project_id, url, token=settings.gitlab_webhook_secret
    )
    return GitLabWebhookResponse(
        message=(
            "Webhook configured successfully" if created else "Webhook already configured"
        ),
        webhook_id=hook.get("id"),
        created=created,
    )


# Slack


@router.get("/slack/auth-url", response_model=SlackAuthUrlResponse)
async def slack_auth_url(user_id: str = Depends(get_user_id)) -> SlackAuthUrlResponse:
    """Build the Slack OAuth v2 authorize URL for the caller."""
    if not (
        settings.slack_client_id
        and settings.slack_redirect_uri
        and settings.slack_oauth_state_secret
    ):
        raise HTTPException(
            status_code=500, detail="Slack integration not configured"
        )
    params = {
        "client_id": settings.slack_client_id,
        "scope": ",".join(SLACK_SCOPES),
        "redirect_uri": settings.slack_redirect_uri,
        "state": encode_state(user_id, settings.slack_oauth_state_secret),
    }
    return SlackAuthUrlResponse(url=f"{SLACK_AUTHORIZE_URL}?{urlencode(params)}")


@router.get("/slack/callback")
async def slack_callback(
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
    repo: IntegrationRepository = Depends(get_integration_repo),
    slack: SlackAdapter = Depends(get_slack_adapter),
) -> RedirectResponse:
    """Complete the OAuth flow and redirect back to the settings page."""
    if error:
        return _settings_redirect(error="slack_auth_failed")
    if not code or not state:
        return _settings_redirect(error="missing_params")
    if not settings.slack_redirect_uri or not settings.slack_oauth_state_secret:
        return _settings_redirect(error="not_configured")

    try:
        user_id = decode_state(state, settings.slack_oauth_state_secret)
    except InvalidStateError as e:
        logger.info("Slack OAuth state rejected", reason=e.reason)
        return _settings_redirect(
            error="expired_state" if e.reason == "expired" else "invalid_state"
        )

    try:
        data = await slack.exchange_oauth_code(code, settings.slack_redirect_uri)
    except UpstreamError as e:
        logger.warning("Slack token exchange failed", user_id=user_id, error=str(e))
        return _settings_redirect(error="token_exchange_failed")

    authed_user = data.get("authed_user") or {}
    await repo.upsert_slack(
        SlackIntegration(
            user_id=user_id,
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            team_id=data["team"]["id"],
            team_name=data["team"].get("name"),
            slack_user_id=authed_user.get("id"),
            scope=data.get("scope"),
        )
    )
    logger.info("Slack connected", user_id=user_id, team_id=data["team"]["id"])
    return _settings_redirect(success="slack_connected")


@router.delete("/slack", response_model=MessageResponse)
async def disconnect_slack(
    user_id: str = Depends(get_user_id),
    repo: IntegrationRepository = Depends(get_integration_repo),
) -> MessageResponse:
    await repo.delete("slack", user_id)
    return MessageResponse(message="Slack disconnected")


# Google


@router.post("/google/connect", response_model=MessageResponse)
async def connect_google(
    body: GoogleConnectRequest,
    user_id: str = Depends(get_user_id),
    repo: IntegrationRepository = Depends(get_integration_repo),
) -> MessageResponse:
    """Store the caller's Google access token for Calendar access."""
    await repo.upsert_google(
        GoogleIntegration(user_id=user_id, access_token=body.access_token, email=body.email)
    )
    return MessageResponse(message="Google connected")


@router.delete("/google", response_model=MessageResponse)
async def disconnect_google(
    user_id: str = Depends(get_user_id),
    repo: IntegrationRepository = Depends(get_integration_repo),
) -> MessageResponse:
    await repo.delete("google", user_id)
    return MessageResponse(message="Google disconnected")


@router.post("/sync", response_model=SyncResponse)
async def sync_integrations(
    user_id: str = Depends(get_user_id),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> SyncResponse:
    """Run one sync sweep over the caller's connected sources."""
    result = await orchestrator.sync_user(user_id)
    return SyncResponse(result=result)
