"""Repository for meeting persistence."""

import logging
from datetime import datetime
from uuid import UUID

from src.db.turso import TursoClient, format_timestamp, parse_timestamp
from src.models.meeting import Meeting, MeetingStatus

logger = logging.getLogger(__name__)


class MeetingRepository:
    """Repository for the meetings table.

    Meetings are unique per (user_id, google_event_id). Calendar imports
    go through upsert_from_calendar, which refreshes event fields but never
    overwrites a transcript or status set locally.
    """

    def __init__(self, db_client: TursoClient):
        """Initialize repository with database client.

        Args:
            db_client: TursoClient instance for database operations
        """
        self._db = db_client

    async def initialize(self) -> None:
        """Create meetings table if not exists."""
        await self._db.execute_batch(
            [
                """
            CREATE TABLE IF NOT EXISTS meetings (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                google_event_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                start_time TEXT NOT NULL,
                end_time TEXT NOT NULL,
                meet_link TEXT,
                transcript TEXT,
                status TEXT NOT NULL DEFAULT 'pending',
                created_at TEXT NOT NULL,
                UNIQUE (user_id, google_event_id)
            )
            """,
                """
            CREATE INDEX IF NOT EXISTS idx_meetings_user_start
            ON meetings(user_id, start_time)
            """,
            ]
        )

    async def create(self, meeting: Meeting) -> Meeting:
        """Persist a new meeting."""
        await self._db.execute(
            """
            INSERT INTO meetings
                (id, user_id, google_event_id, title, description, start_time,
                 end_time, meet_link, transcript, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                str(meeting.id),
                meeting.user_id,
                meeting.google_event_id,
                meeting.title,
                meeting.description,
                format_timestamp(meeting.start_time),
                format_timestamp(meeting.end_time),
                meeting.meet_link,
                meeting.transcript,
                meeting.status.value,
                format_timestamp(meeting.created_at),
            ],
        )
        return meeting

    async def upsert_from_calendar(self, meeting: Meeting) -> Meeting:
        """Insert a calendar event, or refresh its event fields if known.

        Returns:
            The stored meeting (existing ID, transcript and status preserved)
        """
        existing = await self.get_by_event_id(meeting.user_id, meeting.google_event_id)
        if existing is None:
            return await self.create(meeting)

        await self._db.execute(
            """
            UPDATE meetings
            SET title = ?, description = ?, start_time = ?, end_time = ?,
                meet_link = ?
            WHERE id = ?
            """,
            [
                meeting.title,
                meeting.description,
                format_timestamp(meeting.start_time),
                format_timestamp(meeting.end_time),
                meeting.meet_link,
                str(existing.id),
            ],
        )
        return existing.model_copy(
            update={
                "title": meeting.title,
                "description": meeting.description,
                "start_time": meeting.start_time,
                "end_time": meeting.end_time,
                "meet_link": meeting.meet_link,
            }
        )

    async def get(self, user_id: str, meeting_id: UUID) -> Meeting | None:
        """Get one meeting owned by the user."""
        row = await self._db.fetch_one(
            "SELECT * FROM meetings WHERE id = ? AND user_id = ?",
            [str(meeting_id), user_id],
        )
        return _from_row(row) if row else None

    async def get_by_event_id(
        self, user_id: str, google_event_id: str
    ) -> Meeting | None:
        """Get a meeting by its calendar event ID."""
        row = await self._db.fetch_one(
            "SELECT * FROM meetings WHERE user_id = ? AND google_event_id = ?",
            [user_id, google_event_id],
        )
        return _from_row(row) if row else None

    async def list_for_user(
        self,
        user_id: str,
        status: MeetingStatus | None = None,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[Meeting]:
        """List a user's meetings, most recent start first."""
        clauses = ["user_id = ?"]
        params: list = [user_id]
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        if since is not None:
            clauses.append("start_time >= ?")
            params.append(format_timestamp(since))
        params.append(limit)

        rows = await self._db.fetch_all(
            f"""
            SELECT * FROM meetings
            WHERE {" AND ".join(clauses)}
            ORDER BY start_time DESC
            LIMIT ?
            """,
            params,
        )
        return [_from_row(row) for row in rows]

    async def list_awaiting_analysis(self, user_id: str) -> list[Meeting]:
        """Pending meetings with a transcript and no linked decision yet.

        Analyzed and cancelled meetings are excluded. Oldest first.
        """
        rows = await self._db.fetch_all(
            """
            SELECT m.* FROM meetings m
            WHERE m.user_id = ?
              AND m.status = ?
              AND m.transcript IS NOT NULL AND trim(m.transcript) != ''
              AND NOT EXISTS (
                  SELECT 1 FROM decisions d
                  WHERE d.meeting_id = m.id AND d.user_id = m.user_id
              )
            ORDER BY m.start_time ASC
            """,
            [user_id, MeetingStatus.PENDING.value],
        )
        return [_from_row(row) for row in rows]

    async def update_transcript(
        self, user_id: str, meeting_id: UUID, transcript: str
    ) -> bool:
        """Attach transcript text to a meeting.

        An analyzed meeting goes back to pending so the new text is analyzed.

        Returns:
            True if the meeting exists for this user
        """
        result = await self._db.execute(
            """
            UPDATE meetings
            SET transcript = ?,
                status = CASE WHEN status = ? THEN ? ELSE status END
            WHERE id = ? AND user_id = ?
            """,
            [
                transcript,
                MeetingStatus.ANALYZED.value,
                MeetingStatus.PENDING.value,
                str(meeting_id),
                user_id,
            ],
        )
        return result.rows_affected > 0

    async def set_status(
        self, user_id: str, meeting_id: UUID, status: MeetingStatus
    ) -> bool:
        """Update a meeting's status.

        Returns:
            True if the meeting exists for this user
        """
        result = await self._db.execute(
            "UPDATE meetings SET status = ? WHERE id = ? AND user_id = ?",
            [status.value, str(meeting_id), user_id],
        )
        if result.rows_affected:
            logger.info(f"Meeting {meeting_id} marked {status.value}")
        return result.rows_affected > 0


def _from_row(row: dict) -> Meeting:
    return Meeting(
        id=UUID(row["id"]),
        user_id=row["user_id"],
        google_event_id=row["google_event_id"],
        title=row["title"],
        description=row["description"],
        start_time=parse_timestamp(row["start_time"]),
        end_time=parse_timestamp(row["end_time"]),
        meet_link=row["meet_link"],
        transcript=row["transcript"],
        status=MeetingStatus(row["status"]),
        created_at=parse_timestamp(row["created_at"]),
    )
