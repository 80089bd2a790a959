"""Notification service for newly detected decisions.

Sends the owning user a Slack DM when a decision is persisted, with an
in-memory audit trail of every attempt.
"""

from datetime import UTC, datetime

import structlog

from src.adapters.base import NotConnectedError, UpstreamError
from src.adapters.slack_adapter import SlackAdapter
from src.config import settings
from src.integration.schemas import NotificationRecord, NotificationResult
from src.models.decision import Decision, DecisionSource
from src.repositories.integration_repo import IntegrationRepository

logger = structlog.get_logger()

_SOURCE_LABELS = {
    DecisionSource.MEET: "Google Meet",
    DecisionSource.SLACK: "Slack",
    DecisionSource.GITLAB: "GitLab",
    DecisionSource.MANUAL: "a manual entry",
}


class NotificationService:
    """Service for sending and auditing decision notifications.

    Decisions that came from Slack are not echoed back to Slack. Users
    without a Slack integration are skipped silently.
    """

    def __init__(
        self,
        slack_adapter: SlackAdapter,
        integrations: IntegrationRepository,
    ):
        """Initialize with Slack adapter.

        Args:
            slack_adapter: SlackAdapter used to post the DM
            integrations: Repository used to find the user's Slack ID
        """
        self._slack = slack_adapter
        self._integrations = integrations
        self._audit_log: list[NotificationRecord] = []

    async def notify_decision(self, decision: Decision) -> NotificationResult:
        """Notify the decision's owner.

        Never raises for Slack failures; the outcome is returned and audited.

        Args:
            decision: Newly persisted decision

        Returns:
            NotificationResult with success/skipped status and details
        """
        if decision.source == DecisionSource.SLACK:
            return NotificationResult(success=False, skipped=True)

        integration = await self._integrations.get_slack(decision.user_id)
        if integration is None or not integration.slack_user_id:
            logger.info(
                "No Slack DM target, skipping notification",
                user_id=decision.user_id,
            )
            return NotificationResult(success=False, skipped=True)

        message = self._format_message(decision)
        try:
            ts = await self._slack.post_message(
                decision.user_id, integration.slack_user_id, message
            )
            result = NotificationResult(
                success=True,
                recipient_slack_id=integration.slack_user_id,
                message_ts=ts,
            )
        except (NotConnectedError, UpstreamError) as e:
            result = NotificationResult(
                success=False,
                recipient_slack_id=integration.slack_user_id,
                error=str(e),
            )
        self._record_audit(decision, result)
        return result

    def _format_message(self, decision: Decision) -> str:
        """Plain text with mrkdwn: title, source, confidence and a link.

        Args:
            decision: Decision to format

        Returns:
            Formatted message string with mrkdwn
        """
        parts = [
            "*New decision detected:*",
            f"> {decision.title}",
            f"From {_SOURCE_LABELS[decision.source]} with "
            f"{round(decision.confidence * 100)}% confidence.",
        ]
        if decision.final_decision:
            parts.append(f"*Decision:* {decision.final_decision}")
        link = f"{settings.app_url.rstrip('/')}/decisions/{decision.id}"
        parts.append(f"<{link}|View decision>")
        return "\n".join(parts)

    def _record_audit(self, decision: Decision, result: NotificationResult) -> None:
        """Record notification in audit log.

        Args:
            decision: Decision that was notified
            result: Result of notification attempt
        """
        record = NotificationRecord(
            user_id=decision.user_id,
            decision_id=decision.id,
            decision_title=decision.title,
            source=decision.source.value,
            sent_at=datetime.now(UTC),
            success=result.success,
            error=result.error,
        )
        self._audit_log.append(record)
        logger.info(
            "notification recorded",
            user_id=decision.user_id,
            decision_id=str(decision.id),
            success=result.success,
        )

    def get_audit_log(self) -> list[NotificationRecord]:
        """Return copy of audit log.

        Returns:
            Copy of the audit log list
        """
        return list(self._audit_log)

    def clear_audit_log(self) -> None:
        """Clear audit log."""
        self._audit_log.clear()
