"""Repository for per-user source integrations.

Stores one Slack, GitLab and Google credential row per user.
Uses SQLite (via TursoClient) for persistence.
"""

from datetime import datetime
from urllib.parse import urlsplit

from src.db.turso import TursoClient, format_timestamp, parse_timestamp
from src.models.base import utc_now
from src.models.integration import (
    GitLabIntegration,
    GoogleIntegration,
    SlackIntegration,
)

_TABLES = {
    "slack": "slack_integrations",
    "gitlab": "gitlab_integrations",
    "google": "google_integrations",
}


def instance_origin(url: str) -> str:
    """Normalize a URL to its scheme://host[:port] origin, lowercased."""
    parts = urlsplit(url.strip())
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


class IntegrationRepository:
    """Repository for Slack, GitLab and Google integration rows.

    Every lookup is keyed by user_id except the webhook resolution helpers
    (find_slack_by_team, find_gitlab_by_origin), which map an inbound event
    to the owning user(s).
    """

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create integration tables if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS slack_integrations (
                user_id TEXT PRIMARY KEY,
                access_token TEXT NOT NULL,
                refresh_token TEXT,
                team_id TEXT NOT NULL,
                team_name TEXT,
                slack_user_id TEXT,
                scope TEXT,
                connected_at TEXT NOT NULL,
                last_sync_at TEXT
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_slack_team
            ON slack_integrations(team_id)
            """,
                """
            CREATE TABLE IF NOT EXISTS gitlab_integrations (
                user_id TEXT PRIMARY KEY,
                access_token TEXT NOT NULL,
                gitlab_url TEXT NOT NULL,
                gitlab_origin TEXT NOT NULL,
                username TEXT,
                gitlab_user_id INTEGER,
                connected_at TEXT NOT NULL,
                last_sync_at TEXT
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_gitlab_origin
            ON gitlab_integrations(gitlab_origin)
            """,
                """
            CREATE TABLE IF NOT EXISTS google_integrations (
                user_id TEXT PRIMARY KEY,
                access_token TEXT NOT NULL,
                email TEXT,
                connected_at TEXT NOT NULL,
                last_sync_at TEXT
            )
            """,
            ]
        )

    # Slack

    async def upsert_slack(self, integration: SlackIntegration) -> None:
        """Save a Slack integration, replacing any existing row for the user."""
        await self._db.execute(
            """
            INSERT INTO slack_integrations
                (user_id, access_token, refresh_token, team_id, team_name,
                 slack_user_id, scope, connected_at, last_sync_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                access_token = excluded.access_token,
                refresh_token = excluded.refresh_token,
                team_id = excluded.team_id,
                team_name = excluded.team_name,
                slack_user_id = excluded.slack_user_id,
                scope = excluded.scope,
                connected_at = excluded.connected_at
            """,
            [
                integration.user_id,
                integration.access_token,
                integration.refresh_token,
                integration.team_id,
                integration.team_name,
                integration.slack_user_id,
                integration.scope,
                format_timestamp(integration.connected_at),
                _optional_ts(integration.last_sync_at),
            ],
        )

    async def get_slack(self, user_id: str) -> SlackIntegration | None:
        """Get a user's Slack integration."""
        row = await self._db.fetch_one(
            "SELECT * FROM slack_integrations WHERE user_id = ?", [user_id]
        )
        return _slack_from_row(row) if row else None

    async def find_slack_by_team(self, team_id: str) -> SlackIntegration | None:
        """Find the integration that connected a Slack workspace."""
        row = await self._db.fetch_one(
            """
            SELECT * FROM slack_integrations
            WHERE team_id = ?
            ORDER BY connected_at
            LIMIT 1
            """,
            [team_id],
        )
        return _slack_from_row(row) if row else None

    # GitLab

    async def upsert_gitlab(self, integration: GitLabIntegration) -> None:
        """Save a GitLab integration, replacing any existing row for the user."""
        await self._db.execute(
            """
            INSERT INTO gitlab_integrations
                (user_id, access_token, gitlab_url, gitlab_origin, username,
                 gitlab_user_id, connected_at, last_sync_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                access_token = excluded.access_token,
                gitlab_url = excluded.gitlab_url,
                gitlab_origin = excluded.gitlab_origin,
                username = excluded.username,
                gitlab_user_id = excluded.gitlab_user_id,
                connected_at = excluded.connected_at
            """,
            [
                integration.user_id,
                integration.access_token,
                integration.gitlab_url.rstrip("/"),
                instance_origin(integration.gitlab_url),
                integration.username,
                integration.gitlab_user_id,
                format_timestamp(integration.connected_at),
                _optional_ts(integration.last_sync_at),
            ],
        )

    async def get_gitlab(self, user_id: str) -> GitLabIntegration | None:
        """Get a user's GitLab integration."""
        row = await self._db.fetch_one(
            "SELECT * FROM gitlab_integrations WHERE user_id = ?", [user_id]
        )
        return _gitlab_from_row(row) if row else None

    async def find_gitlab_by_origin(self, project_url: str) -> list[GitLabIntegration]:
        """Find every integration connected to the instance hosting a project.

        Matches on exact scheme://host origin, not substring.
        """
        rows = await self._db.fetch_all(
            """
            SELECT * FROM gitlab_integrations
            WHERE gitlab_origin = ?
            ORDER BY connected_at
            """,
            [instance_origin(project_url)],
        )
        return [_gitlab_from_row(row) for row in rows]

    # Google

    async def upsert_google(self, integration: GoogleIntegration) -> None:
        """Save a Google token, replacing any existing row for the user."""
        await self._db.execute(
            """
            INSERT INTO google_integrations
                (user_id, access_token, email, connected_at, last_sync_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                access_token = excluded.access_token,
                email = excluded.email,
                connected_at = excluded.connected_at
            """,
            [
                integration.user_id,
                integration.access_token,
                integration.email,
                format_timestamp(integration.connected_at),
                _optional_ts(integration.last_sync_at),
            ],
        )

    async def get_google(self, user_id: str) -> GoogleIntegration | None:
        """Get a user's Google integration."""
        row = await self._db.fetch_one(
            "SELECT * FROM google_integrations WHERE user_id = ?", [user_id]
        )
        if not row:
            return None
        return GoogleIntegration(
            user_id=row["user_id"],
            access_token=row["access_token"],
            email=row["email"],
            connected_at=parse_timestamp(row["connected_at"]),
            last_sync_at=parse_timestamp(row["last_sync_at"]),
        )

    # Shared

    async def delete(self, source: str, user_id: str) -> bool:
        """Disconnect a source for a user.

        Returns:
            True if a row was deleted, False if none existed
        """
        result = await self._db.execute(
            f"DELETE FROM {_table(source)} WHERE user_id = ?", [user_id]
        )
        return result.rows_affected > 0

    async def touch_last_sync(
        self, source: str, user_id: str, when: datetime | None = None
    ) -> None:
        """Update last_sync_at after a completed sweep."""
        await self._db.execute(
            f"UPDATE {_table(source)} SET last_sync_at = ? WHERE user_id = ?",
            [format_timestamp(when or utc_now()), user_id],
        )

    async def list_connected_user_ids(self) -> list[str]:
        """Get every user with at least one integration."""
        rows = await self._db.fetch_all(
            """
            SELECT user_id FROM slack_integrations
            UNION
            SELECT user_id FROM gitlab_integrations
            UNION
            SELECT user_id FROM google_integrations
            ORDER BY user_id
            """
        )
        return [row["user_id"] for row in rows]


def _table(source: str) -> str:
    try:
        return _TABLES[source]
    except KeyError:
        raise ValueError(f"Unknown integration source: {source}") from None


def _optional_ts(value: datetime | None) -> str | None:
    return format_timestamp(value) if value else None


def _slack_from_row(row: dict) -> SlackIntegration:
    return SlackIntegration(
        user_id=row["user_id"],
        access_token=row["access_token"],
        refresh_token=row["refresh_token"],
        team_id=row["team_id"],
        team_name=row["team_name"],
        slack_user_id=row["slack_user_id"],
        scope=row["scope"],
        connected_at=parse_timestamp(row["connected_at"]),
        last_sync_at=parse_timestamp(row["last_sync_at"]),
    )


def _gitlab_from_row(row: dict) -> GitLabIntegration:
    return GitLabIntegration(
        user_id=row["user_id"],
        access_token=row["access_token"],
        gitlab_url=row["gitlab_url"],
        username=row["username"],
        gitlab_user_id=row["gitlab_user_id"],
        connected_at=parse_timestamp(row["connected_at"]),
        last_sync_at=parse_timestamp(row["last_sync_at"]),
    )
