"""Runs the decision pipeline for one webhook event with an audit log row."""

import structlog

from src.adapters.base import ConversationRef, SourceConnector
from src.config import settings
from src.models.webhook_log import WebhookLog
from src.repositories.webhook_log_repo import WebhookLogRepository
from src.sync.pipeline import DecisionPipeline
from src.sync.schemas import CandidateResult, CandidateStatus

logger = structlog.get_logger()


class WebhookProcessor:
    """Pipeline runner for webhook events.

    Creates a pending WebhookLog once the owning user is known, runs the
    pipeline with the webhook threshold and cooldown, then marks the log
    processed (with the decision, if any) or failed.
    """

    def __init__(
        self,
        pipeline: DecisionPipeline,
        logs: WebhookLogRepository,
        threshold: float | None = None,
        cooldown_minutes: int | None = None,
    ):
        self._pipeline = pipeline
        self._logs = logs
        self._threshold = (
            settings.webhook_confidence_threshold if threshold is None else threshold
        )
        self._cooldown = (
            settings.webhook_cooldown_minutes
            if cooldown_minutes is None
            else cooldown_minutes
        )

    async def run(
        self,
        user_id: str,
        event_type: str,
        payload_summary: dict,
        ref: ConversationRef,
        connector: SourceConnector,
    ) -> CandidateResult:
        """Process one event for one user and record the outcome."""
        log = await self._logs.create(
            WebhookLog(
                user_id=user_id,
                source=ref.source.value,
                event_type=event_type,
                payload=payload_summary,
            )
        )

        result = await self._pipeline.process(
            user_id, ref, connector, self._threshold, self._cooldown
        )

        if result.status == CandidateStatus.FAILED:
            await self._logs.mark_failed(log.id, result.error or "unknown error")
        else:
            await self._logs.mark_processed(
                log.id,
                decision_id=result.decision_id,
                decision_title=result.decision_title,
                confidence=result.confidence,
            )

        logger.info(
            "Webhook event processed",
            source=ref.source.value,
            event_type=event_type,
            user_id=user_id,
            status=result.status.value,
        )
        return result
