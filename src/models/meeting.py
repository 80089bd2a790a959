"""Meeting model representing a calendar event with an optional transcript."""

from datetime import datetime
from enum import Enum

from pydantic import Field

from src.models.base import BaseEntity


class MeetingStatus(str, Enum):
    """Lifecycle of a meeting in the decision memory."""

    PENDING = "pending"
    ANALYZED = "analyzed"
    CANCELLED = "cancelled"


class Meeting(BaseEntity):
    """A meeting imported from Google Calendar or created manually.

    The transcript is plain text with one `speaker: utterance` line per
    turn, in chronological order.
    """

    google_event_id: str = Field(
        min_length=1,
        description="Google Calendar event ID (or a manual-* placeholder)",
    )
    title: str = Field(
        min_length=1,
        max_length=500,
        description="Meeting title (from calendar or user input)",
    )
    description: str | None = Field(default=None)
    start_time: datetime = Field(description="When the meeting starts")
    end_time: datetime = Field(description="When the meeting ends")
    meet_link: str | None = Field(
        default=None,
        description="Google Meet (or other conferencing) link",
    )
    transcript: str | None = Field(default=None, description="Transcript text")
    status: MeetingStatus = Field(default=MeetingStatus.PENDING)

    @property
    def has_transcript(self) -> bool:
        """Check if meeting has transcript content."""
        return bool(self.transcript and self.transcript.strip())

    @property
    def duration_minutes(self) -> int:
        """Scheduled duration in minutes."""
        return int((self.end_time - self.start_time).total_seconds() // 60)
