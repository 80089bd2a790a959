"""Inbound webhook receivers for Slack and GitLab."""

from src.webhooks.gitlab_handler import GitLabWebhookHandler
from src.webhooks.processor import WebhookProcessor
from src.webhooks.schemas import WebhookOutcome
from src.webhooks.slack_handler import SlackWebhookHandler
from src.webhooks.verification import InvalidSignatureError

__all__ = [
    "GitLabWebhookHandler",
    "InvalidSignatureError",
    "SlackWebhookHandler",
    "WebhookOutcome",
    "WebhookProcessor",
]
