"""Audit record for inbound webhook events."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field

from src.models.base import BaseEntity


class WebhookStatus(str, Enum):
    """Processing state of a webhook event."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class WebhookLog(BaseEntity):
    """One inbound webhook event and its outcome."""

    source: str = Field(description="slack or gitlab")
    event_type: str = Field(description="Event kind, e.g. message, issue, note")
    payload: dict = Field(
        default_factory=dict,
        description="Small summary of the payload (ids only)",
    )
    status: WebhookStatus = Field(default=WebhookStatus.PENDING)
    decision_id: UUID | None = Field(default=None)
    decision_title: str | None = Field(default=None)
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    error_message: str | None = Field(default=None)
    processed_at: datetime | None = Field(default=None)
