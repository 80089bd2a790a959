"""Question answering over a user's recorded decisions."""

import logging
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field
from rapidfuzz import fuzz, process

from src.extraction.prompts import ASK_PROMPT, ASK_SYSTEM, DECISION_CONTEXT_TEMPLATE
from src.models.decision import Decision
from src.repositories.decision_repo import DecisionRepository
from src.search.decision_search import DecisionSearch
from src.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

NO_DECISIONS_ANSWER = (
    "I don't have any decisions recorded yet. "
    "Start by analyzing your meetings to capture decisions!"
)
EMPTY_ANSWER = "I couldn't generate an answer."
CONTEXT_LIMIT = 50
MAX_SOURCES = 3


class AnswerSource(BaseModel):
    """A decision cited alongside an answer."""

    id: UUID
    title: str
    source: str
    date: datetime


class Answer(BaseModel):
    """Answer to a question about past decisions."""

    question: str
    answer: str
    sources: list[AnswerSource] = Field(default_factory=list)


def format_decision_context(decision: Decision) -> str:
    """Render one decision for the prompt."""
    return DECISION_CONTEXT_TEMPLATE.format(
        title=decision.title,
        summary=decision.summary,
        problem_statement=decision.problem_statement,
        options=", ".join(decision.options_discussed),
        final_decision=decision.final_decision,
        rationale=decision.rationale,
        action_items=", ".join(decision.action_items),
        source=decision.source.value,
        date=decision.created_at.date().isoformat(),
    )


class QuestionAnswerer:
    """Answers questions using the user's decisions as LLM context.

    Context is the search hits for the question followed by the most recent
    decisions, capped at 50. Up to three decisions whose text fuzzily
    matches the question are returned as sources.
    """

    def __init__(
        self,
        decisions: DecisionRepository,
        llm_client: LLMClient,
        search: DecisionSearch | None = None,
        source_threshold: float = 0.6,
    ):
        self._decisions = decisions
        self._llm_client = llm_client
        self._search = search
        self._source_threshold = source_threshold

    async def _context_decisions(self, user_id: str, question: str) -> list[Decision]:
        hits: list[Decision] = []
        if self._search is not None:
            hits, _ = await self._search.search(user_id, question, limit=10)
        recent = await self._decisions.list_for_user(user_id, limit=CONTEXT_LIMIT)

        seen: set[UUID] = set()
        merged = []
        for decision in [*hits, *recent]:
            if decision.id not in seen:
                seen.add(decision.id)
                merged.append(decision)
        return merged[:CONTEXT_LIMIT]

    def relevant_sources(self, question: str, decisions: list[Decision]) -> list[Decision]:
        """Pick the decisions whose text best matches the question."""
        if not decisions:
            return []
        choices = [
            f"{d.title} {d.summary} {d.final_decision}".lower() for d in decisions
        ]
        matches = process.extract(
            question.lower(),
            choices,
            scorer=fuzz.token_set_ratio,
            limit=MAX_SOURCES,
            score_cutoff=self._source_threshold * 100,
        )
        return [decisions[idx] for _, _, idx in matches]

    async def answer(self, user_id: str, question: str) -> Answer:
        """Answer a question.

        Raises:
            ValueError: If the question is blank
            LLMClientError: If the LLM call fails
        """
        question = question.strip()
        if not question:
            raise ValueError("Question is required")

        decisions = await self._context_decisions(user_id, question)
        if not decisions:
            return Answer(question=question, answer=NO_DECISIONS_ANSWER)

        context = "\n".join(format_decision_context(d) for d in decisions)
        text = await self._llm_client.complete(
            ASK_PROMPT.format(decisions=context, question=question),
            system=ASK_SYSTEM,
            max_tokens=1500,
        )
        logger.info(f"Answered question for {user_id} with {len(decisions)} decisions")

        return Answer(
            question=question,
            answer=text.strip() or EMPTY_ANSWER,
            sources=[
                AnswerSource(
                    id=d.id, title=d.title, source=d.source.value, date=d.created_at
                )
                for d in self.relevant_sources(question, decisions)
            ],
        )
