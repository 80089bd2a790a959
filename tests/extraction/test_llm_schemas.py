"""Tests for LLM output schemas."""

import pytest
from pydantic import ValidationError

from src.extraction.schemas import DecisionBrief, DetectionResult


class TestDetectionResult:
    """DetectionResult tolerates loose model output."""

    def test_camel_case_keys(self):
        result = DetectionResult.model_validate(
            {
                "isDecision": True,
                "confidence": 0.8,
                "finalDecision": "Use Postgres",
                "optionsDiscussed": ["Postgres", "MongoDB"],
            }
        )

        assert result.is_decision is True
        assert result.final_decision == "Use Postgres"
        assert result.options_discussed == ["Postgres", "MongoDB"]

    @pytest.mark.parametrize("raw,expected", [(1.7, 1.0), (-0.2, 0.0), (None, 0.0), ("0.65", 0.65)])
    def test_confidence_is_clamped(self, raw, expected):
        result = DetectionResult.model_validate({"is_decision": True, "confidence": raw})
        assert result.confidence == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["NaN", "Infinity", "-Infinity", float("nan"), float("inf")])
    def test_non_finite_confidence_is_zero(self, raw):
        result = DetectionResult.model_validate({"isDecision": True, "confidence": raw})
        assert result.confidence == 0.0

    def test_nan_confidence_from_json(self):
        result = DetectionResult.model_validate_json(
            '{"isDecision": true, "confidence": "NaN"}'
        )
        assert 0.0 <= result.confidence <= 1.0

    def test_null_lists_become_empty(self):
        result = DetectionResult.model_validate(
            {"is_decision": False, "options_discussed": None, "participants": None}
        )
        assert result.options_discussed == []
        assert result.participants == []

    def test_unknown_keys_ignored(self):
        result = DetectionResult.model_validate_json(
            '{"is_decision": false, "confidence": 0.1, "reasoning": "chit-chat"}'
        )
        assert result.is_decision is False

    def test_no_decision(self):
        result = DetectionResult.no_decision()
        assert (result.is_decision, result.confidence) == (False, 0.0)


class TestDecisionBrief:
    def test_requires_every_field(self):
        with pytest.raises(ValidationError):
            DecisionBrief.model_validate({"title": "Use Postgres", "summary": "x"})

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            DecisionBrief(
                title="",
                summary="s",
                problem_statement="p",
                options_discussed=[],
                final_decision="f",
                rationale="r",
                action_items=[],
            )
