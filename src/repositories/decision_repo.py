"""Repository for decision persistence.

All reads and writes are scoped by user_id. List fields are stored as JSON
text; timestamps as fixed-width UTC strings so they compare as TEXT.
"""

import json
import logging
from datetime import timedelta
from uuid import UUID

from src.db.turso import TursoClient, format_timestamp, parse_timestamp
from src.models.base import utc_now
from src.models.decision import Decision, DecisionSource

logger = logging.getLogger(__name__)

_ORDERINGS = {
    "newest": "created_at DESC",
    "oldest": "created_at ASC",
    "confidence": "confidence DESC, created_at DESC",
}

_SEARCH_COLUMNS = (
    "title",
    "summary",
    "problem_statement",
    "final_decision",
    "rationale",
)


class DecisionRepository:
    """Repository for the decisions table.

    Besides CRUD, provides the cooldown lookup used by the decision
    pipeline, the embedding outbox (list_unsynced / mark_embedding_synced)
    and a keyword search used when the semantic index is unavailable.
    """

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create decisions table and indexes if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS decisions (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                meeting_id TEXT,
                title TEXT NOT NULL,
                summary TEXT NOT NULL DEFAULT '',
                problem_statement TEXT NOT NULL DEFAULT '',
                options_discussed TEXT NOT NULL DEFAULT '[]',
                final_decision TEXT NOT NULL DEFAULT '',
                rationale TEXT NOT NULL DEFAULT '',
                action_items TEXT NOT NULL DEFAULT '[]',
                confidence REAL NOT NULL,
                source TEXT NOT NULL,
                source_link TEXT,
                source_key TEXT,
                user_rating INTEGER,
                feedback_note TEXT,
                embedding_synced INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_decisions_user_created
            ON decisions(user_id, created_at)
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_decisions_source_key
            ON decisions(user_id, source, source_key, created_at)
            """,
            ]
        )

    async def create(self, decision: Decision) -> Decision:
        """Persist a new decision.

        Args:
            decision: Decision to store

        Returns:
            The stored decision
        """
        await self._db.execute(
            """
            INSERT INTO decisions
                (id, user_id, meeting_id, title, summary, problem_statement,
                 options_discussed, final_decision, rationale, action_items,
                 confidence, source, source_link, source_key, user_rating,
                 feedback_note, embedding_synced, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                str(decision.id),
                decision.user_id,
                str(decision.meeting_id) if decision.meeting_id else None,
                decision.title,
                decision.summary,
                decision.problem_statement,
                json.dumps(decision.options_discussed),
                decision.final_decision,
                decision.rationale,
                json.dumps(decision.action_items),
                decision.confidence,
                decision.source.value,
                decision.source_link,
                decision.source_key,
                decision.user_rating,
                decision.feedback_note,
                1 if decision.embedding_synced else 0,
                format_timestamp(decision.created_at),
            ],
        )
        logger.info(f"Created decision {decision.id} for user {decision.user_id}")
        return decision

    async def get(self, user_id: str, decision_id: UUID) -> Decision | None:
        """Get one decision owned by the user."""
        row = await self._db.fetch_one(
            "SELECT * FROM decisions WHERE id = ? AND user_id = ?",
            [str(decision_id), user_id],
        )
        return _from_row(row) if row else None

    async def get_many(self, user_id: str, decision_ids: list[UUID]) -> list[Decision]:
        """Get decisions by ID, preserving the order of decision_ids.

        Unknown IDs and IDs owned by other users are dropped.
        """
        if not decision_ids:
            return []
        placeholders = ", ".join("?" for _ in decision_ids)
        rows = await self._db.fetch_all(
            f"SELECT * FROM decisions WHERE user_id = ? AND id IN ({placeholders})",
            [user_id, *[str(i) for i in decision_ids]],
        )
        by_id = {row["id"]: _from_row(row) for row in rows}
        return [by_id[str(i)] for i in decision_ids if str(i) in by_id]

    async def list_for_user(
        self,
        user_id: str,
        source: DecisionSource | None = None,
        meeting_id: UUID | None = None,
        min_confidence: float | None = None,
        order: str = "newest",
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Decision]:
        """List a user's decisions.

        Args:
            user_id: Owning user
            source: Only decisions from this source
            meeting_id: Only decisions linked to this meeting
            min_confidence: Only decisions at or above this confidence
            order: newest (default), oldest or confidence
            limit: Maximum rows (None for all)
            offset: Rows to skip

        Raises:
            ValueError: If order is not a known ordering
        """
        if order not in _ORDERINGS:
            raise ValueError(f"Unknown ordering: {order}")

        clauses = ["user_id = ?"]
        params: list = [user_id]
        if source is not None:
            clauses.append("source = ?")
            params.append(source.value)
        if meeting_id is not None:
            clauses.append("meeting_id = ?")
            params.append(str(meeting_id))
        if min_confidence is not None:
            clauses.append("confidence >= ?")
            params.append(min_confidence)

        sql = (
            f"SELECT * FROM decisions WHERE {' AND '.join(clauses)} "
            f"ORDER BY {_ORDERINGS[order]}"
        )
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        elif offset:
            sql += " LIMIT -1 OFFSET ?"
            params.append(offset)

        rows = await self._db.fetch_all(sql, params)
        return [_from_row(row) for row in rows]

    async def find_recent_by_source_link(
        self,
        user_id: str,
        source: DecisionSource,
        link: str | None,
        window_minutes: int,
        source_key: str | None = None,
    ) -> bool:
        """Check whether a conversation already produced a decision recently.

        With a source_key the match is exact on (user, source, source_key).
        Without one, falls back to the stored source_link containing link.

        Args:
            user_id: Owning user
            source: Decision source
            link: Link fragment for the key-less fallback
            window_minutes: Cooldown window
            source_key: Canonical conversation key

        Returns:
            True if a matching decision exists inside the window
        """
        since = format_timestamp(utc_now() - timedelta(minutes=window_minutes))
        if source_key:
            row = await self._db.fetch_one(
                """
                SELECT id FROM decisions
                WHERE user_id = ? AND source = ? AND source_key = ?
                  AND created_at >= ?
                LIMIT 1
                """,
                [user_id, source.value, source_key, since],
            )
        elif link:
            row = await self._db.fetch_one(
                """
                SELECT id FROM decisions
                WHERE user_id = ? AND source = ?
                  AND source_link IS NOT NULL AND instr(source_link, ?) > 0
                  AND created_at >= ?
                LIMIT 1
                """,
                [user_id, source.value, link, since],
            )
        else:
            return False
        return row is not None

    async def update_feedback(
        self,
        user_id: str,
        decision_id: UUID,
        rating: int | None = None,
        note: str | None = None,
    ) -> Decision | None:
        """Set the user rating and/or feedback note.

        Fields passed as None are left unchanged.

        Returns:
            Updated decision, or None if not found for this user
        """
        existing = await self.get(user_id, decision_id)
        if existing is None:
            return None

        await self._db.execute(
            """
            UPDATE decisions
            SET user_rating = COALESCE(?, user_rating),
                feedback_note = COALESCE(?, feedback_note)
            WHERE id = ? AND user_id = ?
            """,
            [rating, note, str(decision_id), user_id],
        )
        return await self.get(user_id, decision_id)

    async def mark_embedding_synced(self, user_id: str, decision_id: UUID) -> bool:
        """Flag a decision as mirrored into the semantic index.

        Returns:
            True if the decision exists for this user
        """
        result = await self._db.execute(
            "UPDATE decisions SET embedding_synced = 1 WHERE id = ? AND user_id = ?",
            [str(decision_id), user_id],
        )
        return result.rows_affected > 0

    async def list_unsynced(self, user_id: str, limit: int = 50) -> list[Decision]:
        """Get decisions not yet mirrored into the semantic index, oldest first."""
        rows = await self._db.fetch_all(
            """
            SELECT * FROM decisions
            WHERE user_id = ? AND embedding_synced = 0
            ORDER BY created_at ASC
            LIMIT ?
            """,
            [user_id, limit],
        )
        return [_from_row(row) for row in rows]

    async def keyword_search(
        self, user_id: str, query: str, limit: int = 10
    ) -> list[Decision]:
        """Case-insensitive substring search over a user's decision text.

        Every whitespace-separated term must appear in at least one text
        column. Results are newest first.
        """
        terms = [t for t in query.lower().split() if t]
        if not terms:
            return []

        clauses = []
        params: list = [user_id]
        for term in terms:
            ors = " OR ".join(f"instr(lower({col}), ?) > 0" for col in _SEARCH_COLUMNS)
            clauses.append(f"({ors})")
            params.extend([term] * len(_SEARCH_COLUMNS))
        params.append(limit)

        rows = await self._db.fetch_all(
            f"""
            SELECT * FROM decisions
            WHERE user_id = ? AND {" AND ".join(clauses)}
            ORDER BY created_at DESC
            LIMIT ?
            """,
            params,
        )
        return [_from_row(row) for row in rows]

    async def delete(self, user_id: str, decision_id: UUID) -> bool:
        """Delete a decision owned by the user.

        Returns:
            True if a row was deleted
        """
        result = await self._db.execute(
            "DELETE FROM decisions WHERE id = ? AND user_id = ?",
            [str(decision_id), user_id],
        )
        return result.rows_affected > 0


def _from_row(row: dict) -> Decision:
    return Decision(
        id=UUID(row["id"]),
        user_id=row["user_id"],
        meeting_id=UUID(row["meeting_id"]) if row["meeting_id"] else None,
        title=row["title"],
        summary=row["summary"],
        problem_statement=row["problem_statement"],
        options_discussed=json.loads(row["options_discussed"] or "[]"),
        final_decision=row["final_decision"],
        rationale=row["rationale"],
        action_items=json.loads(row["action_items"] or "[]"),
        confidence=row["confidence"],
        source=DecisionSource(row["source"]),
        source_link=row["source_link"],
        source_key=row["source_key"],
        user_rating=row["user_rating"],
        feedback_note=row["feedback_note"],
        embedding_synced=bool(row["embedding_synced"]),
        created_at=parse_timestamp(row["created_at"]),
    )
