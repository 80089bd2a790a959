"""Decision pipeline: Filter, Analyze, Persist for one conversation.

Shared by the sync orchestrator, the webhook receivers and interactive
meeting analysis. Callers differ only in how they discover conversations
and in the threshold and cooldown they pass.
"""

import structlog

from src.adapters.base import ConversationRef, SourceConnector
from src.integration.notification_service import NotificationService
from src.models.decision import Decision
from src.models.meeting import MeetingStatus
from src.repositories.decision_repo import DecisionRepository
from src.repositories.meeting_repo import MeetingRepository
from src.search.decision_search import DecisionSearch
from src.services.brief_generator import DecisionBriefGenerator
from src.services.decision_detector import DecisionDetector
from src.sync.schemas import CandidateResult, CandidateStatus

logger = structlog.get_logger()


class DuplicateWindowError(Exception):
    """Raised when a conversation already produced a decision in the cooldown."""

    def __init__(self, source_key: str, window_minutes: int):
        self.source_key = source_key
        self.window_minutes = window_minutes
        super().__init__(
            f"{source_key} already analyzed within {window_minutes} minutes"
        )


class DecisionPipeline:
    """Runs one conversation through detection and persistence.

    Each call is independent. Every exception is caught and reported on
    the returned CandidateResult, so one bad conversation never stops a
    sweep.
    """

    def __init__(
        self,
        decisions: DecisionRepository,
        meetings: MeetingRepository,
        detector: DecisionDetector,
        generator: DecisionBriefGenerator,
        search: DecisionSearch | None = None,
        notifier: NotificationService | None = None,
    ):
        """Initialize pipeline.

        Args:
            decisions: Decision store
            meetings: Meeting store (analyzed meetings leave the candidate list)
            detector: Stage one LLM classifier
            generator: Stage two LLM brief writer
            search: Semantic index mirror (optional)
            notifier: Decision notifications (optional)
        """
        self._decisions = decisions
        self._meetings = meetings
        self._detector = detector
        self._generator = generator
        self._search = search
        self._notifier = notifier

    async def check_cooldown(
        self, user_id: str, ref: ConversationRef, window_minutes: int
    ) -> None:
        """Raise if the conversation produced a decision inside the window.

        Raises:
            DuplicateWindowError: If a recent decision exists
        """
        if await self._decisions.find_recent_by_source_link(
            user_id,
            ref.source,
            ref.source_link,
            window_minutes,
            source_key=ref.source_key,
        ):
            raise DuplicateWindowError(ref.source_key, window_minutes)

    async def process(
        self,
        user_id: str,
        ref: ConversationRef,
        connector: SourceConnector,
        threshold: float,
        cooldown_minutes: int | None = None,
    ) -> CandidateResult:
        """Filter, fetch, analyze and persist one conversation.

        Args:
            user_id: Owning user
            ref: Conversation to process
            connector: Connector that resolves ref to transcript text
            threshold: Minimum detector confidence to persist
            cooldown_minutes: Skip if analyzed within this window (None = no check)

        Returns:
            CandidateResult; status failed carries the error string
        """
        log = logger.bind(user_id=user_id, source_key=ref.source_key)
        try:
            if cooldown_minutes is not None:
                await self.check_cooldown(user_id, ref, cooldown_minutes)
            text = await connector.fetch_conversation_text(user_id, ref)
            return await self.analyze(user_id, ref, text, threshold)
        except DuplicateWindowError:
            log.info("Skipping recently analyzed conversation")
            return CandidateResult(
                source_key=ref.source_key,
                title=ref.title,
                status=CandidateStatus.SKIPPED_RECENT,
            )
        except Exception as e:
            log.warning("Candidate failed", error=str(e), error_type=type(e).__name__)
            return CandidateResult(
                source_key=ref.source_key,
                title=ref.title,
                status=CandidateStatus.FAILED,
                error=str(e) or type(e).__name__,
            )

    async def analyze(
        self,
        user_id: str,
        ref: ConversationRef,
        text: str,
        threshold: float,
    ) -> CandidateResult:
        """Analyze already-fetched text and persist a decision if one is found.

        Raises:
            ModelOutputParseError: If the brief cannot be parsed
            LLMClientError: If an LLM call fails
        """
        if not text or not text.strip():
            return CandidateResult(
                source_key=ref.source_key,
                title=ref.title,
                status=CandidateStatus.SKIPPED_EMPTY,
            )

        detection = await self._detector.detect(text)
        if not detection.is_decision or detection.confidence < threshold:
            await self._mark_meeting_analyzed(user_id, ref)
            return CandidateResult(
                source_key=ref.source_key,
                title=ref.title,
                status=CandidateStatus.NO_DECISION,
                confidence=detection.confidence,
            )

        brief = await self._generator.generate(text, ref.title)
        decision = await self._decisions.create(
            Decision(
                user_id=user_id,
                meeting_id=ref.meeting_id,
                title=brief.title[:500],
                summary=brief.summary,
                problem_statement=brief.problem_statement,
                options_discussed=brief.options_discussed,
                final_decision=brief.final_decision,
                rationale=brief.rationale,
                action_items=brief.action_items,
                confidence=detection.confidence,
                source=ref.source,
                source_link=ref.source_link,
                source_key=ref.source_key,
            )
        )
        await self._mark_meeting_analyzed(user_id, ref)

        logger.info(
            "Decision created",
            user_id=user_id,
            source_key=ref.source_key,
            decision_id=str(decision.id),
            confidence=decision.confidence,
        )
        await self._after_persist(decision)
        return CandidateResult(
            source_key=ref.source_key,
            title=ref.title,
            status=CandidateStatus.DECISION_CREATED,
            decision_id=decision.id,
            decision_title=decision.title,
            confidence=decision.confidence,
        )

    async def _mark_meeting_analyzed(self, user_id: str, ref: ConversationRef) -> None:
        if ref.meeting_id is not None:
            await self._meetings.set_status(
                user_id, ref.meeting_id, MeetingStatus.ANALYZED
            )

    async def _after_persist(self, decision: Decision) -> None:
        """Mirror and notify; neither may undo a persisted decision."""
        if self._search is not None:
            try:
                await self._search.mirror(decision)
            except Exception as e:
                logger.warning(
                    "Decision mirroring failed",
                    decision_id=str(decision.id),
                    error=str(e),
                )
        if self._notifier is not None:
            try:
                await self._notifier.notify_decision(decision)
            except Exception as e:
                logger.warning(
                    "Decision notification failed",
                    decision_id=str(decision.id),
                    error=str(e),
                )
