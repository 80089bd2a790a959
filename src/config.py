"""Application configuration using pydantic-settings pattern."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "KnowWhy"
    app_version: str = "0.1.0"
    app_env: str = Field(default="development")
    log_level: str = Field(default="INFO")
    app_url: str = Field(
        default="http://localhost:8000",
        description="Public base URL used in links and webhook URLs",
    )

    # Database (Turso)
    turso_database_url: str | None = Field(default=None)
    turso_auth_token: str | None = Field(default=None)

    # Anthropic (LLM for decision detection and briefs)
    anthropic_api_key: str | None = Field(default=None)
    anthropic_model: str = Field(default="claude-sonnet-4-5")
    llm_max_tokens: int = Field(default=2000, ge=1)
    llm_timeout_seconds: float = Field(default=60.0, gt=0)
    llm_max_attempts: int = Field(default=3, ge=1)

    # Acceptance thresholds per analysis path
    sync_confidence_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Minimum detector confidence for auto-sync candidates",
    )
    webhook_confidence_threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Minimum detector confidence for webhook events",
    )
    meeting_confidence_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum detector confidence for interactive meeting analysis",
    )

    # Cooldown windows
    sync_cooldown_minutes: int = Field(default=24 * 60, ge=0)
    webhook_cooldown_minutes: int = Field(default=30, ge=0)

    # Source limits
    gitlab_recency_days: int = Field(default=7, ge=1)
    gitlab_max_projects: int = Field(default=5, ge=1)
    gitlab_max_items_per_project: int = Field(default=5, ge=1)
    slack_history_limit: int = Field(default=100, ge=1)
    slack_webhook_history_limit: int = Field(default=20, ge=1)
    calendar_lookback_days: int = Field(default=7, ge=1)
    http_timeout_seconds: float = Field(default=15.0, gt=0)

    # Slack
    slack_client_id: str | None = Field(default=None)
    slack_client_secret: str | None = Field(default=None)
    slack_redirect_uri: str | None = Field(default=None)
    slack_signing_secret: str | None = Field(default=None)
    slack_oauth_state_secret: str | None = Field(
        default=None, description="HMAC key for OAuth state; Slack OAuth is off when unset"
    )

    # GitLab
    gitlab_default_url: str = Field(default="https://gitlab.com")
    gitlab_webhook_secret: str | None = Field(default=None)

    # Auto-sync trigger
    cron_secret: str | None = Field(default=None)
    auto_sync_interval_minutes: int = Field(
        default=0,
        ge=0,
        description="In-process sweep interval; 0 leaves triggering to an external cron",
    )
    sync_max_concurrency: int = Field(default=1, ge=1)

    # Semantic index (Qdrant)
    qdrant_url: str | None = Field(default=None)
    qdrant_api_key: str | None = Field(default=None)
    qdrant_path: str | None = Field(default=None)
    qdrant_collection: str = Field(default="decisions")
    dense_embedding_model: str = Field(default="BAAI/bge-small-en-v1.5")
    sparse_embedding_model: str = Field(default="Qdrant/bm25")
    hybrid_alpha: float = Field(default=0.7, ge=0.0, le=1.0)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def semantic_index_enabled(self) -> bool:
        """Whether a Qdrant location is configured."""
        return bool(self.qdrant_url or self.qdrant_path)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
