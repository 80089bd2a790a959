"""Quality metrics over a user's decisions and their feedback."""

from collections import Counter
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.models.decision import Decision
from src.repositories.decision_repo import DecisionRepository

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5
RECENT_FEEDBACK_LIMIT = 10


class ConfidenceDistribution(BaseModel):
    high: int = 0
    medium: int = 0
    low: int = 0


class FeedbackEntry(BaseModel):
    """A decision that has a rating or note."""

    id: UUID
    title: str
    confidence: float
    source: str
    created_at: datetime
    user_rating: int | None = None
    feedback_note: str | None = None


class EvaluationMetrics(BaseModel):
    """Aggregate metrics for one user."""

    total_decisions: int = 0
    rated_decisions: int = 0
    avg_confidence: float = 0.0
    avg_user_rating: float = 0.0
    confidence_distribution: ConfidenceDistribution = Field(
        default_factory=ConfidenceDistribution
    )
    source_distribution: dict[str, int] = Field(default_factory=dict)
    rating_distribution: dict[str, int] = Field(
        default_factory=lambda: {str(r): 0 for r in range(5, 0, -1)}
    )


class EvaluationReport(BaseModel):
    metrics: EvaluationMetrics
    recent_with_feedback: list[FeedbackEntry] = Field(default_factory=list)


def compute_metrics(decisions: list[Decision]) -> EvaluationReport:
    """Compute metrics from decisions ordered newest first."""
    total = len(decisions)
    rated = [d for d in decisions if d.user_rating is not None]

    confidence = ConfidenceDistribution()
    for d in decisions:
        if d.confidence >= HIGH_CONFIDENCE:
            confidence.high += 1
        elif d.confidence >= MEDIUM_CONFIDENCE:
            confidence.medium += 1
        else:
            confidence.low += 1

    ratings = Counter(d.user_rating for d in rated)

    metrics = EvaluationMetrics(
        total_decisions=total,
        rated_decisions=len(rated),
        avg_confidence=round(sum(d.confidence for d in decisions) / (total or 1), 2),
        avg_user_rating=(
            round(sum(d.user_rating for d in rated) / len(rated), 2) if rated else 0.0
        ),
        confidence_distribution=confidence,
        source_distribution=dict(Counter(d.source.value for d in decisions)),
        rating_distribution={str(r): ratings.get(r, 0) for r in range(5, 0, -1)},
    )

    recent = [
        FeedbackEntry(
            id=d.id,
            title=d.title,
            confidence=d.confidence,
            source=d.source.value,
            created_at=d.created_at,
            user_rating=d.user_rating,
            feedback_note=d.feedback_note,
        )
        for d in decisions
        if d.user_rating is not None or d.feedback_note
    ][:RECENT_FEEDBACK_LIMIT]

    return EvaluationReport(metrics=metrics, recent_with_feedback=recent)


class EvaluationService:
    """Builds evaluation reports from the decision store."""

    def __init__(self, decisions: DecisionRepository):
        self._decisions = decisions

    async def report(self, user_id: str) -> EvaluationReport:
        decisions = await self._decisions.list_for_user(user_id, order="newest")
        return compute_metrics(decisions)
