"""Per-user source integrations (stored credentials)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.base import utc_now


class Integration(BaseModel):
    """Fields shared by every source integration.

    One row per user and source. Created on a successful OAuth/token
    exchange, deleted on explicit disconnect.
    """

    model_config = ConfigDict(str_strip_whitespace=True, from_attributes=True)

    user_id: str = Field(min_length=1)
    access_token: str = Field(min_length=1, repr=False)
    connected_at: datetime = Field(default_factory=utc_now)
    last_sync_at: datetime | None = Field(default=None)


class SlackIntegration(Integration):
    """A user's Slack workspace connection."""

    team_id: str = Field(description="Slack workspace (team) ID")
    team_name: str | None = Field(default=None)
    slack_user_id: str | None = Field(
        default=None, description="Authed user's Slack ID (DM target)"
    )
    refresh_token: str | None = Field(default=None, repr=False)
    scope: str | None = Field(default=None)


class GitLabIntegration(Integration):
    """A user's GitLab instance connection (personal access token)."""

    gitlab_url: str = Field(description="Instance base URL, e.g. https://gitlab.com")
    username: str | None = Field(default=None)
    gitlab_user_id: int | None = Field(default=None)


class GoogleIntegration(Integration):
    """A user's Google account token used for Calendar access."""

    email: str | None = Field(default=None)
