"""Pydantic models for LLM decision output.

These schemas define the JSON the LLM returns. They are intentionally
different from the Decision domain model:
- No UUIDs or timestamps (added when the decision is persisted)
- Detection fields are optional (absent when no decision was made)
- Confidence is clamped into [0, 1] instead of rejected (NaN and inf become 0)
"""

import math

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _LLMOutput(BaseModel):
    """Accepts both snake_case and camelCase keys from the model."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class DetectionResult(_LLMOutput):
    """Whether a transcript contains a final decision."""

    is_decision: bool = Field(description="True if a clear decision was reached")
    confidence: float = Field(
        default=0.0,
        description="Confidence a decision was made (0.0-1.0)",
    )
    summary: str | None = Field(default=None)
    problem_statement: str | None = Field(default=None)
    options_discussed: list[str] = Field(default_factory=list)
    final_decision: str | None = Field(default=None)
    rationale: str | None = Field(default=None)
    participants: list[str] = Field(default_factory=list)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, value):
        if value is None:
            return 0.0
        confidence = float(value)
        if not math.isfinite(confidence):
            return 0.0
        return min(max(confidence, 0.0), 1.0)

    @field_validator("options_discussed", "participants", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return value or []

    @classmethod
    def no_decision(cls) -> "DetectionResult":
        """Result used when the model output could not be parsed."""
        return cls(is_decision=False, confidence=0.0)


class DecisionBrief(_LLMOutput):
    """Structured decision record generated from a transcript."""

    title: str = Field(min_length=1, description="Short, specific title")
    summary: str = Field(description="Executive summary (2-3 sentences)")
    problem_statement: str = Field(description="Problem being solved")
    options_discussed: list[str] = Field(description="Alternatives considered")
    final_decision: str = Field(description="What was decided")
    rationale: str = Field(description="Why it was decided")
    action_items: list[str] = Field(description="Follow-up actions")
