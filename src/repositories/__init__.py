"""Repository layer for data persistence.

Provides repository classes for persisting domain data to the database.
Repositories encapsulate data access logic and provide a clean interface
for the service layer.
"""

from src.repositories.decision_repo import DecisionRepository
from src.repositories.integration_repo import IntegrationRepository
from src.repositories.meeting_repo import MeetingRepository
from src.repositories.webhook_log_repo import WebhookLogRepository

__all__ = [
    "DecisionRepository",
    "IntegrationRepository",
    "MeetingRepository",
    "WebhookLogRepository",
]
