"""Search and question-answering endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from src.api.deps import get_decision_search, get_question_answerer, get_user_id
from src.models.decision import Decision
from src.search.decision_search import MODE_KEYWORD, DecisionSearch
from src.services.question_answerer import AnswerSource, QuestionAnswerer

router = APIRouter(tags=["search"])


class SearchResponse(BaseModel):
    """Search results, best first."""

    success: bool = True
    query: str
    mode: str = Field(description="hybrid or keyword")
    decisions: list[Decision]
    count: int


class AskRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    question: str = Field(max_length=2000)


class AskResponse(BaseModel):
    success: bool = True
    question: str
    answer: str
    sources: list[AnswerSource]


@router.get("/search", response_model=SearchResponse)
async def search_decisions(
    q: str = Query(default="", max_length=500),
    limit: int = Query(default=20, ge=1, le=50),
    alpha: float | None = Query(default=None, ge=0.0, le=1.0),
    user_id: str = Depends(get_user_id),
    search: DecisionSearch = Depends(get_decision_search),
) -> SearchResponse:
    """Hybrid search with keyword fallback. A blank query returns nothing."""
    query = q.strip()
    if not query:
        return SearchResponse(query="", mode=MODE_KEYWORD, decisions=[], count=0)

    decisions, mode = await search.search(user_id, query, limit=limit, alpha=alpha)
    return SearchResponse(
        query=query, mode=mode, decisions=decisions, count=len(decisions)
    )


@router.post("/ask", response_model=AskResponse)
async def ask(
    body: AskRequest,
    user_id: str = Depends(get_user_id),
    answerer: QuestionAnswerer = Depends(get_question_answerer),
) -> AskResponse:
    """Answer a question from the caller's recorded decisions."""
    if not body.question:
        raise HTTPException(status_code=400, detail="Question is required")
    result = await answerer.answer(user_id, body.question)
    return AskResponse(
        question=result.question, answer=result.answer, sources=result.sources
    )
