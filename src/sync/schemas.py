"""Schemas for sync sweep results.

Every candidate conversation yields exactly one CandidateResult; every
source sweep one SourceSyncResult; every user one UserSyncResult.
"""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, computed_field


class CandidateStatus(str, Enum):
    """Outcome of running one conversation through the pipeline."""

    SKIPPED_RECENT = "skipped_recent"
    SKIPPED_EMPTY = "skipped_empty"
    NO_DECISION = "no_decision"
    DECISION_CREATED = "decision_created"
    FAILED = "failed"


class CandidateResult(BaseModel):
    """Result for one candidate conversation."""

    source_key: str = Field(description="Canonical conversation key")
    title: str = Field(default="", description="Conversation label")
    status: CandidateStatus
    decision_id: UUID | None = Field(default=None)
    decision_title: str | None = Field(default=None)
    confidence: float | None = Field(
        default=None, description="Detector confidence, when the detector ran"
    )
    error: str | None = Field(default=None)


class SourceSyncResult(BaseModel):
    """Result of sweeping one source for one user."""

    source: str = Field(description="slack, gitlab or meet")
    candidates: list[CandidateResult] = Field(default_factory=list)
    error: str | None = Field(
        default=None, description="Set when the whole source sweep failed"
    )

    @computed_field
    @property
    def items_processed(self) -> int:
        """Candidates examined (including skipped ones)."""
        return len(self.candidates)

    @computed_field
    @property
    def decisions_found(self) -> int:
        """Candidates that produced a decision."""
        return sum(
            1 for c in self.candidates if c.status == CandidateStatus.DECISION_CREATED
        )


class UserSyncResult(BaseModel):
    """Result of a full sweep for one user."""

    user_id: str
    sources: list[SourceSyncResult] = Field(default_factory=list)
    reindexed: int = Field(
        default=0, description="Unsynced decisions mirrored into the semantic index"
    )

    @computed_field
    @property
    def decisions_found(self) -> int:
        return sum(s.decisions_found for s in self.sources)

    @computed_field
    @property
    def items_processed(self) -> int:
        return sum(s.items_processed for s in self.sources)


class SyncSummary(BaseModel):
    """Result of sweeping every connected user."""

    users: list[UserSyncResult] = Field(default_factory=list)

    @computed_field
    @property
    def total_users(self) -> int:
        return len(self.users)

    @computed_field
    @property
    def total_decisions(self) -> int:
        return sum(u.decisions_found for u in self.users)

    @computed_field
    @property
    def total_items(self) -> int:
        return sum(u.items_processed for u in self.users)
