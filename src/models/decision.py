"""Decision model for decisions detected in conversations."""

from enum import Enum
from uuid import UUID

from pydantic import Field

from src.models.base import BaseEntity


class DecisionSource(str, Enum):
    """Where a decision was detected."""

    MEET = "meet"
    SLACK = "slack"
    GITLAB = "gitlab"
    MANUAL = "manual"


class Decision(BaseEntity):
    """A decision brief captured from a meeting, channel or code review.

    Decisions are captured to:
    - Prevent "decision amnesia" (relitigating settled issues)
    - Provide an audit trail for why things were done
    - Track alternatives that were considered

    Only the user rating, feedback note and embedding_synced flag change
    after creation.
    """

    meeting_id: UUID | None = Field(
        default=None,
        description="Meeting this decision was detected in (Meet source only)",
    )
    title: str = Field(min_length=1, max_length=500, description="Decision title")
    summary: str = Field(default="", description="Executive summary")
    problem_statement: str = Field(
        default="", description="Problem that was being solved"
    )
    options_discussed: list[str] = Field(
        default_factory=list,
        description="Options that were considered, in discussion order",
    )
    final_decision: str = Field(default="", description="What was decided")
    rationale: str = Field(default="", description="Why this decision was made")
    action_items: list[str] = Field(
        default_factory=list,
        description="Follow-up actions",
    )
    confidence: float = Field(
        ge=0.0,
        le=1.0,
        description="Detector confidence score (0-1)",
    )
    source: DecisionSource = Field(default=DecisionSource.MANUAL)
    source_link: str | None = Field(
        default=None,
        description="URL back to the originating conversation",
    )
    source_key: str | None = Field(
        default=None,
        description="Canonical conversation identifier used for cooldown checks",
    )
    user_rating: int | None = Field(
        default=None,
        ge=1,
        le=5,
        description="User rating of the brief (1-5)",
    )
    feedback_note: str | None = Field(default=None, description="User feedback")
    embedding_synced: bool = Field(
        default=False,
        description="True once mirrored into the semantic index",
    )

    @property
    def has_rationale(self) -> bool:
        """Check if decision has documented rationale."""
        return len(self.rationale.strip()) > 0

    @property
    def options_count(self) -> int:
        """Get number of options considered."""
        return len(self.options_discussed)

    def combined_text(self) -> str:
        """Concatenate the brief's text fields for embedding."""
        return "\n".join(
            [
                self.title,
                self.summary,
                f"Problem: {self.problem_statement}",
                f"Options considered: {', '.join(self.options_discussed)}",
                f"Decision: {self.final_decision}",
                f"Rationale: {self.rationale}",
                f"Actions: {', '.join(self.action_items)}",
            ]
        )
