"""Tests for decision prompts.

These are structural tests ensuring prompts format cleanly.
Extraction quality is not tested here.
"""

from src.extraction.prompts import (
    ASK_PROMPT,
    BRIEF_PROMPT,
    DECISION_CONTEXT_TEMPLATE,
    DETECTION_PROMPT,
)


class TestPromptFormatting:
    def test_detection_prompt_puts_transcript_first(self):
        prompt = DETECTION_PROMPT.format(transcript="Alice: let's use Postgres")

        assert prompt.startswith("Conversation:\nAlice: let's use Postgres")
        assert '"is_decision"' in prompt
        assert "LATEST" in prompt

    def test_brief_prompt_includes_context(self):
        prompt = BRIEF_PROMPT.format(context="Slack: #eng", transcript="Bob: ok")

        assert prompt.startswith("Context: Slack: #eng")
        assert '"action_items"' in prompt

    def test_ask_prompt(self):
        prompt = ASK_PROMPT.format(decisions="Decision: X", question="Why X?")

        assert "Decision: X" in prompt
        assert "My question is: Why X?" in prompt

    def test_context_template_fields(self):
        block = DECISION_CONTEXT_TEMPLATE.format(
            title="Use Postgres",
            summary="s",
            problem_statement="p",
            options="Postgres, MongoDB",
            final_decision="Postgres",
            rationale="r",
            action_items="None",
            source="slack",
            date="2026-03-02",
        )

        assert block.splitlines()[0] == "Decision: Use Postgres"
        assert block.endswith("---")
