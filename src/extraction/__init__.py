"""Decision extraction module: LLM prompts and output schemas."""

from src.extraction.prompts import (
    ASK_PROMPT,
    ASK_SYSTEM,
    BRIEF_PROMPT,
    BRIEF_SYSTEM,
    DETECTION_PROMPT,
    DETECTION_SYSTEM,
)
from src.extraction.schemas import DecisionBrief, DetectionResult

__all__ = [
    "ASK_PROMPT",
    "ASK_SYSTEM",
    "BRIEF_PROMPT",
    "BRIEF_SYSTEM",
    "DETECTION_PROMPT",
    "DETECTION_SYSTEM",
    "DecisionBrief",
    "DetectionResult",
]
