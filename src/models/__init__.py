"""Canonical data models for KnowWhy.

This module exports all domain models used throughout the application:
- BaseEntity: Base class with id, owner, timestamp
- Decision: Decision briefs detected in conversations
- Meeting: Calendar meetings with optional transcript
- SlackIntegration / GitLabIntegration / GoogleIntegration: stored credentials
- WebhookLog: Audit trail of inbound webhook events
"""

from src.models.base import BaseEntity
from src.models.decision import Decision, DecisionSource
from src.models.integration import (
    GitLabIntegration,
    GoogleIntegration,
    Integration,
    SlackIntegration,
)
from src.models.meeting import Meeting, MeetingStatus
from src.models.webhook_log import WebhookLog, WebhookStatus

__all__ = [
    # Base
    "BaseEntity",
    # Decisions
    "Decision",
    "DecisionSource",
    # Meetings
    "Meeting",
    "MeetingStatus",
    # Integrations
    "Integration",
    "SlackIntegration",
    "GitLabIntegration",
    "GoogleIntegration",
    # Webhooks
    "WebhookLog",
    "WebhookStatus",
]
