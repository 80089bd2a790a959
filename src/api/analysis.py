"""Response shape shared by the interactive analyze endpoints."""

from pydantic import BaseModel

from src.models.decision import Decision
from src.repositories.decision_repo import DecisionRepository
from src.sync.schemas import CandidateResult, CandidateStatus

_EMPTY_MESSAGE = "Nothing to analyze"


class AnalyzeResponse(BaseModel):
    """Interactive analysis outcome."""

    success: bool = True
    status: str
    message: str
    confidence: float | None = None
    decision: Decision | None = None


async def build_analyze_response(
    user_id: str,
    result: CandidateResult,
    decisions: DecisionRepository,
    no_decision_message: str,
    empty_message: str = _EMPTY_MESSAGE,
) -> AnalyzeResponse:
    """Turn a pipeline result into the API response, loading a created decision."""
    if result.status == CandidateStatus.DECISION_CREATED:
        decision = await decisions.get(user_id, result.decision_id)
        return AnalyzeResponse(
            status=result.status.value,
            message="Decision detected and saved",
            confidence=result.confidence,
            decision=decision,
        )
    if result.status == CandidateStatus.SKIPPED_EMPTY:
        return AnalyzeResponse(status=result.status.value, message=empty_message)
    return AnalyzeResponse(
        status=result.status.value,
        message=no_decision_message,
        confidence=result.confidence,
    )
