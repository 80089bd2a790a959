"""Decision brief generation from a transcript already known to hold a decision."""

import logging

from src.extraction.prompts import BRIEF_PROMPT, BRIEF_SYSTEM
from src.extraction.schemas import DecisionBrief
from src.services.llm_client import LLMClient

logger = logging.getLogger(__name__)


class DecisionBriefGenerator:
    """Asks the LLM for a complete, structured decision brief.

    Unlike the detector, parse failures propagate: a brief that cannot be
    parsed aborts persistence of that conversation.
    """

    def __init__(self, llm_client: LLMClient):
        """Initialize generator.

        Args:
            llm_client: LLM client for structured extraction
        """
        self._llm_client = llm_client

    async def generate(self, transcript: str, context: str) -> DecisionBrief:
        """Generate a brief.

        Args:
            transcript: Conversation text
            context: Label such as "GitLab Issue: <title>" or "Slack: #general"

        Returns:
            DecisionBrief with every field populated

        Raises:
            ModelOutputParseError: If the model output is not a valid brief
            LLMClientError: If the LLM call fails
        """
        prompt = BRIEF_PROMPT.format(context=context, transcript=transcript)
        brief = await self._llm_client.extract(prompt, DecisionBrief, system=BRIEF_SYSTEM)
        logger.info(f"Generated decision brief: {brief.title}")
        return brief
