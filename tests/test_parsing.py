"""Tests for research_oracle/llm/parsing.py - analyst output parsing."""

import pytest

from research_oracle.exceptions import (
    InvalidConfidence,
    MalformedAnalystOutput,
    MissingReasoning,
    OutOfRangeEstimate,
)
from research_oracle.llm.models import Confidence
from research_oracle.llm.parsing import extract_json_object, parse_analyst_response


class TestExtractJsonObject:
    def test_plain_object(self):
        assert extract_json_object('{"a": 1}') == '{"a": 1}'

    def test_object_inside_prose_and_fences(self):
        text = 'Here is my answer:\n```json\n{"estimate": 0.4, "nested": {"x": 1}}\n```\nThanks'
        assert extract_json_object(text) == '{"estimate": 0.4, "nested": {"x": 1}}'

    def test_braces_inside_strings_are_ignored(self):
        text = '{"reasoning": "a } b { c \\" }", "estimate": 0.1} trailing {"other": 2}'
        assert extract_json_object(text) == '{"reasoning": "a } b { c \\" }", "estimate": 0.1}'

    def test_no_object(self):
        assert extract_json_object("no json at all") is None

    def test_unclosed_object(self):
        assert extract_json_object('{"estimate": 0.4') is None


class TestParseAnalystResponse:
    def test_valid_response(self):
        parsed = parse_analyst_response(
            'Sure. {"estimate": 0.42, "reasoning": "Base rates suggest it.", "confidence": "high"}'
        )
        assert parsed.estimate == 0.42
        assert parsed.reasoning == "Base rates suggest it."
        assert parsed.confidence is Confidence.HIGH

    def test_integer_estimate_accepted(self):
        parsed = parse_analyst_response('{"estimate": 1, "reasoning": "certain", "confidence": "LOW"}')
        assert parsed.estimate == 1.0

    def test_confidence_is_trimmed(self):
        parsed = parse_analyst_response(
            '{"estimate": 0.5, "reasoning": "r", "confidence": " Medium "}'
        )
        assert parsed.confidence is Confidence.MEDIUM

    @pytest.mark.parametrize("text", ["", "I cannot answer that.", '{"estimate": 0.4,}'])
    def test_malformed(self, text):
        with pytest.raises(MalformedAnalystOutput):
            parse_analyst_response(text)

    @pytest.mark.parametrize("estimate", ["1.5", "-0.1", '"0.5"', "true", "null"])
    def test_estimate_out_of_range(self, estimate):
        with pytest.raises(OutOfRangeEstimate):
            parse_analyst_response(
                f'{{"estimate": {estimate}, "reasoning": "r", "confidence": "LOW"}}'
            )

    def test_missing_estimate(self):
        with pytest.raises(OutOfRangeEstimate):
            parse_analyst_response('{"reasoning": "r", "confidence": "LOW"}')

    @pytest.mark.parametrize("reasoning", ['""', '"   "', "42", "null"])
    def test_missing_reasoning(self, reasoning):
        with pytest.raises(MissingReasoning):
            parse_analyst_response(
                f'{{"estimate": 0.3, "reasoning": {reasoning}, "confidence": "LOW"}}'
            )

    @pytest.mark.parametrize("confidence", ['"VERY HIGH"', '""', "2", "null"])
    def test_invalid_confidence(self, confidence):
        with pytest.raises(InvalidConfidence):
            parse_analyst_response(
                f'{{"estimate": 0.3, "reasoning": "r", "confidence": {confidence}}}'
            )
