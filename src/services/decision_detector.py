"""Decision detection: does a transcript contain a final decision?"""

import logging

from src.extraction.prompts import DETECTION_PROMPT, DETECTION_SYSTEM
from src.extraction.schemas import DetectionResult
from src.services.llm_client import LLMClient, ModelOutputParseError

logger = logging.getLogger(__name__)


class DecisionDetector:
    """Classifies transcripts with the LLM.

    Unparseable model output is treated as "no decision". Transport and
    API errors from the LLM client propagate to the caller.
    """

    def __init__(self, llm_client: LLMClient):
        """Initialize detector.

        Args:
            llm_client: LLM client for structured extraction
        """
        self._llm_client = llm_client

    async def detect(self, transcript: str) -> DetectionResult:
        """Detect whether a decision was made.

        Args:
            transcript: Conversation text, one `speaker: text` line per turn

        Returns:
            DetectionResult with confidence clamped to [0, 1]
        """
        prompt = DETECTION_PROMPT.format(transcript=transcript)
        try:
            result = await self._llm_client.extract(
                prompt, DetectionResult, system=DETECTION_SYSTEM
            )
        except ModelOutputParseError as e:
            logger.warning(f"Detector output unparseable, treating as no decision: {e}")
            return DetectionResult.no_decision()

        logger.info(
            f"Detection: is_decision={result.is_decision} "
            f"confidence={result.confidence:.2f}"
        )
        return result
