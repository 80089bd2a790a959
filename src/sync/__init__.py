"""Decision sync: the shared pipeline, the sweep orchestrator and its scheduler."""

from src.sync.orchestrator import SyncOrchestrator
from src.sync.pipeline import DecisionPipeline, DuplicateWindowError
from src.sync.schemas import (
    CandidateResult,
    CandidateStatus,
    SourceSyncResult,
    SyncSummary,
    UserSyncResult,
)

__all__ = [
    "CandidateResult",
    "CandidateStatus",
    "DecisionPipeline",
    "DuplicateWindowError",
    "SourceSyncResult",
    "SyncOrchestrator",
    "SyncSummary",
    "UserSyncResult",
]
