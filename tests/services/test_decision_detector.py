"""Tests for DecisionDetector and DecisionBriefGenerator."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.extraction.schemas import DecisionBrief, DetectionResult
from src.services.brief_generator import DecisionBriefGenerator
from src.services.decision_detector import DecisionDetector
from src.services.llm_client import LLMClient, LLMClientError, ModelOutputParseError

TRANSCRIPT = (
    "Alice: Should we use Postgres or MongoDB?\n"
    "Bob: Postgres, we need transactions.\n"
    "Alice: Agreed, final decision is Postgres."
)


@pytest.fixture
def mock_llm_client():
    """Create a mock LLM client."""
    client = MagicMock(spec=LLMClient)
    client.extract = AsyncMock()
    return client


class TestDetect:
    async def test_returns_model_result(self, mock_llm_client):
        mock_llm_client.extract.return_value = DetectionResult(
            is_decision=True, confidence=0.95, final_decision="Postgres"
        )
        detector = DecisionDetector(mock_llm_client)

        result = await detector.detect(TRANSCRIPT)

        assert result.is_decision is True
        prompt = mock_llm_client.extract.call_args.args[0]
        assert TRANSCRIPT in prompt
        assert mock_llm_client.extract.call_args.args[1] is DetectionResult

    async def test_parse_error_means_no_decision(self, mock_llm_client):
        mock_llm_client.extract.side_effect = ModelOutputParseError("bad json")
        detector = DecisionDetector(mock_llm_client)

        result = await detector.detect(TRANSCRIPT)

        assert (result.is_decision, result.confidence) == (False, 0.0)

    async def test_client_error_propagates(self, mock_llm_client):
        mock_llm_client.extract.side_effect = LLMClientError("down")
        detector = DecisionDetector(mock_llm_client)

        with pytest.raises(LLMClientError):
            await detector.detect(TRANSCRIPT)


class TestGenerate:
    async def test_context_in_prompt(self, mock_llm_client):
        brief = DecisionBrief(
            title="Use Postgres",
            summary="Team picked Postgres.",
            problem_statement="Need a database",
            options_discussed=["Postgres", "MongoDB"],
            final_decision="Postgres",
            rationale="Transactions",
            action_items=[],
        )
        mock_llm_client.extract.return_value = brief
        generator = DecisionBriefGenerator(mock_llm_client)

        result = await generator.generate(TRANSCRIPT, "Slack: #eng")

        assert result is brief
        assert mock_llm_client.extract.call_args.args[0].startswith("Context: Slack: #eng")

    async def test_parse_error_propagates(self, mock_llm_client):
        mock_llm_client.extract.side_effect = ModelOutputParseError("bad json")
        generator = DecisionBriefGenerator(mock_llm_client)

        with pytest.raises(ModelOutputParseError):
            await generator.generate(TRANSCRIPT, "Slack: #eng")
