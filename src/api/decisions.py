"""Decision endpoints: listing, detail, feedback, deletion and evaluation metrics."""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, model_validator

from src.api.deps import (
    get_decision_repo,
    get_decision_search,
    get_evaluation_service,
    get_user_id,
)
from src.models.decision import Decision, DecisionSource
from src.repositories.decision_repo import DecisionRepository
from src.search.decision_search import DecisionSearch
from src.services.evaluation import EvaluationMetrics, EvaluationService, FeedbackEntry

router = APIRouter(prefix="/decisions", tags=["decisions"])


class DecisionListResponse(BaseModel):
    success: bool = True
    decisions: list[Decision]
    count: int


class DecisionResponse(BaseModel):
    success: bool = True
    decision: Decision


class DeleteResponse(BaseModel):
    success: bool = True
    message: str = "Decision deleted"


class FeedbackRequest(BaseModel):
    """Rating and/or note for a decision brief."""

    rating: int | None = Field(default=None, ge=1, le=5)
    note: str | None = Field(default=None, max_length=5000)

    @model_validator(mode="after")
    def require_one(self) -> "FeedbackRequest":
        if self.rating is None and self.note is None:
            raise ValueError("Provide a rating or a note")
        return self


class FeedbackResponse(BaseModel):
    success: bool = True
    message: str = "Feedback saved successfully"
    decision: Decision


class EvaluationResponse(BaseModel):
    success: bool = True
    metrics: EvaluationMetrics
    recent_with_feedback: list[FeedbackEntry]


@router.get("", response_model=DecisionListResponse)
async def list_decisions(
    source: DecisionSource | None = Query(default=None),
    meeting_id: UUID | None = Query(default=None),
    min_confidence: float | None = Query(default=None, ge=0.0, le=1.0),
    order: Literal["newest", "oldest", "confidence"] = Query(default="newest"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(get_user_id),
    repo: DecisionRepository = Depends(get_decision_repo),
) -> DecisionListResponse:
    """List the caller's decisions, newest first by default."""
    decisions = await repo.list_for_user(
        user_id,
        source=source,
        meeting_id=meeting_id,
        min_confidence=min_confidence,
        order=order,
        limit=limit,
        offset=offset,
    )
    return DecisionListResponse(decisions=decisions, count=len(decisions))


@router.get("/evaluation", response_model=EvaluationResponse)
async def get_evaluation(
    user_id: str = Depends(get_user_id),
    service: EvaluationService = Depends(get_evaluation_service),
) -> EvaluationResponse:
    """Aggregate confidence, rating and source metrics."""
    report = await service.report(user_id)
    return EvaluationResponse(
        metrics=report.metrics, recent_with_feedback=report.recent_with_feedback
    )


@router.get("/{decision_id}", response_model=DecisionResponse)
async def get_decision(
    decision_id: UUID,
    user_id: str = Depends(get_user_id),
    repo: DecisionRepository = Depends(get_decision_repo),
) -> DecisionResponse:
    decision = await repo.get(user_id, decision_id)
    if decision is None:
        raise HTTPException(status_code=404, detail="Decision not found")
    return DecisionResponse(decision=decision)


@router.post("/{decision_id}/feedback", response_model=FeedbackResponse)
async def submit_feedback(
    decision_id: UUID,
    body: FeedbackRequest,
    user_id: str = Depends(get_user_id),
    repo: DecisionRepository = Depends(get_decision_repo),
) -> FeedbackResponse:
    """Record a rating (1-5) and/or a note on a decision."""
    decision = await repo.update_feedback(
        user_id, decision_id, rating=body.rating, note=body.note
    )
    if decision is None:
        raise HTTPException(status_code=404, detail="Decision not found")
    return FeedbackResponse(decision=decision)


@router.delete("/{decision_id}", response_model=DeleteResponse)
async def delete_decision(
    decision_id: UUID,
    user_id: str = Depends(get_user_id),
    repo: DecisionRepository = Depends(get_decision_repo),
    search: DecisionSearch = Depends(get_decision_search),
) -> DeleteResponse:
    """Delete a decision and drop it from the semantic index."""
    if not await repo.delete(user_id, decision_id):
        raise HTTPException(status_code=404, detail="Decision not found")
    await search.remove(decision_id)
    return DeleteResponse()
