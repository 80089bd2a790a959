"""Schemas for decision notifications."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationResult(BaseModel):
    """Result of one notification attempt."""

    success: bool = Field(description="True if the message was delivered")
    skipped: bool = Field(
        default=False, description="True if no notification was attempted"
    )
    recipient_slack_id: str | None = Field(default=None)
    message_ts: str | None = Field(default=None, description="Slack message timestamp")
    error: str | None = Field(default=None)


class NotificationRecord(BaseModel):
    """Audit record of a notification attempt."""

    user_id: str
    decision_id: UUID
    decision_title: str
    source: str
    sent_at: datetime
    success: bool
    error: str | None = None
