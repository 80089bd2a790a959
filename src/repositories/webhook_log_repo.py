"""Repository for the webhook audit log."""

import json
import logging
from uuid import UUID

from src.db.turso import TursoClient, format_timestamp, parse_timestamp
from src.models.base import utc_now
from src.models.webhook_log import WebhookLog, WebhookStatus

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50


class WebhookLogRepository:
    """Repository for webhook_logs rows.

    A row is created pending once the owning user is known and moves to
    processed or failed exactly once.
    """

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create webhook_logs table if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS webhook_logs (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                source TEXT NOT NULL,
                event_type TEXT NOT NULL,
                payload TEXT NOT NULL DEFAULT '{}',
                status TEXT NOT NULL DEFAULT 'pending',
                decision_id TEXT,
                decision_title TEXT,
                confidence REAL,
                error_message TEXT,
                processed_at TEXT,
                created_at TEXT NOT NULL
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_webhook_logs_user_created
            ON webhook_logs(user_id, created_at)
            """,
            ]
        )

    async def create(self, log: WebhookLog) -> WebhookLog:
        """Insert a new log row."""
        await self._db.execute(
            """
            INSERT INTO webhook_logs
                (id, user_id, source, event_type, payload, status, decision_id,
                 decision_title, confidence, error_message, processed_at,
                 created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                str(log.id),
                log.user_id,
                log.source,
                log.event_type,
                json.dumps(log.payload),
                log.status.value,
                str(log.decision_id) if log.decision_id else None,
                log.decision_title,
                log.confidence,
                log.error_message,
                format_timestamp(log.processed_at) if log.processed_at else None,
                format_timestamp(log.created_at),
            ],
        )
        return log

    async def mark_processed(
        self,
        log_id: UUID,
        decision_id: UUID | None = None,
        decision_title: str | None = None,
        confidence: float | None = None,
    ) -> None:
        """Record a successful run, with the decision if one was created."""
        await self._db.execute(
            """
            UPDATE webhook_logs
            SET status = ?, decision_id = ?, decision_title = ?,
                confidence = ?, processed_at = ?
            WHERE id = ?
            """,
            [
                WebhookStatus.PROCESSED.value,
                str(decision_id) if decision_id else None,
                decision_title,
                confidence,
                format_timestamp(utc_now()),
                str(log_id),
            ],
        )

    async def mark_failed(self, log_id: UUID, error_message: str) -> None:
        """Record a failed run."""
        await self._db.execute(
            """
            UPDATE webhook_logs
            SET status = ?, error_message = ?, processed_at = ?
            WHERE id = ?
            """,
            [
                WebhookStatus.FAILED.value,
                error_message,
                format_timestamp(utc_now()),
                str(log_id),
            ],
        )

    async def get(self, user_id: str, log_id: UUID) -> WebhookLog | None:
        """Get one log row owned by the user."""
        row = await self._db.fetch_one(
            "SELECT * FROM webhook_logs WHERE id = ? AND user_id = ?",
            [str(log_id), user_id],
        )
        return _from_row(row) if row else None

    async def list_for_user(
        self,
        user_id: str,
        source: str | None = None,
        status: WebhookStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[WebhookLog], int]:
        """Get a page of a user's logs, newest first.

        The page size is capped at MAX_PAGE_SIZE.

        Returns:
            Tuple of (page of logs, total matching rows)
        """
        clauses = ["user_id = ?"]
        params: list = [user_id]
        if source:
            clauses.append("source = ?")
            params.append(source)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        where = " AND ".join(clauses)

        count_row = await self._db.fetch_one(
            f"SELECT COUNT(*) AS total FROM webhook_logs WHERE {where}", params
        )
        rows = await self._db.fetch_all(
            f"""
            SELECT * FROM webhook_logs
            WHERE {where}
            ORDER BY created_at DESC
            LIMIT ? OFFSET ?
            """,
            [*params, min(limit, MAX_PAGE_SIZE), offset],
        )
        total = count_row["total"] if count_row else 0
        return [_from_row(row) for row in rows], total

    async def stats(self, user_id: str) -> dict[str, int]:
        """Count a user's logs by status.

        Returns:
            Dict with total, processed, pending and failed counts
        """
        rows = await self._db.fetch_all(
            """
            SELECT status, COUNT(*) AS count FROM webhook_logs
            WHERE user_id = ?
            GROUP BY status
            """,
            [user_id],
        )
        counts = {status.value: 0 for status in WebhookStatus}
        for row in rows:
            counts[row["status"]] = row["count"]
        return {"total": sum(counts.values()), **counts}


def _from_row(row: dict) -> WebhookLog:
    return WebhookLog(
        id=UUID(row["id"]),
        user_id=row["user_id"],
        source=row["source"],
        event_type=row["event_type"],
        payload=json.loads(row["payload"] or "{}"),
        status=WebhookStatus(row["status"]),
        decision_id=UUID(row["decision_id"]) if row["decision_id"] else None,
        decision_title=row["decision_title"],
        confidence=row["confidence"],
        error_message=row["error_message"],
        processed_at=parse_timestamp(row["processed_at"]),
        created_at=parse_timestamp(row["created_at"]),
    )
