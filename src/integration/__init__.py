"""Integration layer for outbound notifications.

This module sends decision notifications to users via Slack.
"""

from src.integration.notification_service import NotificationService
from src.integration.schemas import NotificationRecord, NotificationResult

__all__ = [
    "NotificationRecord",
    "NotificationResult",
    "NotificationService",
]
