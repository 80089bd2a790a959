"""Slack Events API receiver."""

import json

import structlog

from src.adapters.base import ConversationRef
from src.adapters.slack_adapter import (
    SlackAdapter,
    channel_link,
    channel_source_key,
)
from src.config import settings
from src.models.decision import DecisionSource
from src.repositories.integration_repo import IntegrationRepository
from src.sync.schemas import CandidateStatus
from src.webhooks.processor import WebhookProcessor
from src.webhooks.schemas import WebhookOutcome
from src.webhooks.verification import verify_slack_request

logger = structlog.get_logger()

IGNORED_SUBTYPES = {"bot_message", "message_changed", "message_deleted"}


class SlackWebhookHandler:
    """Verifies and dispatches Slack event callbacks.

    Only plain `message` events are analyzed; the channel's last few
    messages are run through the pipeline for the user who connected the
    workspace.
    """

    def __init__(
        self,
        integrations: IntegrationRepository,
        slack_adapter: SlackAdapter,
        processor: WebhookProcessor,
        signing_secret: str | None = None,
        history_limit: int | None = None,
    ):
        self._integrations = integrations
        self._slack = slack_adapter
        self._processor = processor
        self._signing_secret = signing_secret or settings.slack_signing_secret
        self._history_limit = history_limit or settings.slack_webhook_history_limit

    async def handle(self, body: bytes, headers: dict[str, str]) -> WebhookOutcome:
        """Authenticate and process one request.

        Raises:
            InvalidSignatureError: If the signature check fails
            ValueError: If the body is not a JSON object
        """
        verify_slack_request(body, headers, self._signing_secret)
        payload = json.loads(body)
        if not isinstance(payload, dict):
            raise ValueError("Slack payload must be a JSON object")

        payload_type = payload.get("type")
        if payload_type == "url_verification":
            return WebhookOutcome(
                message="URL verified", challenge=payload.get("challenge", "")
            )
        if payload_type != "event_callback":
            return WebhookOutcome(message="Unknown payload type")

        return await self._handle_event(payload.get("team_id"), payload.get("event") or {})

    async def _handle_event(self, team_id: str | None, event: dict) -> WebhookOutcome:
        if event.get("type") != "message":
            return WebhookOutcome(message="Event type not handled")
        if event.get("subtype") in IGNORED_SUBTYPES:
            return WebhookOutcome(message="Skipping bot/edited message")

        channel = event.get("channel")
        if not channel or not team_id:
            return WebhookOutcome(message="Event missing channel or team")

        integration = await self._integrations.find_slack_by_team(team_id)
        if integration is None:
            logger.info("No Slack integration for team", team_id=team_id)
            return WebhookOutcome(message="Integration not found")

        ref = ConversationRef(
            source=DecisionSource.SLACK,
            source_key=channel_source_key(channel),
            source_link=channel_link(channel),
            title=f"Slack Channel: {channel}",
            external_id=channel,
            history_limit=self._history_limit,
        )
        result = await self._processor.run(
            integration.user_id,
            "message",
            {"channel": channel, "team_id": team_id},
            ref,
            self._slack,
        )
        return _outcome(result)


def _outcome(result) -> WebhookOutcome:
    messages = {
        CandidateStatus.DECISION_CREATED: "Decision detected and saved",
        CandidateStatus.NO_DECISION: "No decision detected",
        CandidateStatus.SKIPPED_RECENT: "Recently analyzed",
        CandidateStatus.SKIPPED_EMPTY: "No messages to analyze",
        CandidateStatus.FAILED: "Error processing event",
    }
    return WebhookOutcome(
        message=messages[result.status],
        processed=1,
        decision_ids=[result.decision_id] if result.decision_id else [],
    )
