"""Parsing of raw reasoning-service output into validated analyst fields.

The reasoning service is untrusted: its text may wrap the JSON object in
prose or markdown fences, or may not contain one at all. Each failure mode
raises its own exception type so callers can tell them apart.
"""

import json
from typing import Optional

from research_oracle.exceptions import (
    InvalidConfidence,
    MalformedAnalystOutput,
    MissingReasoning,
    OutOfRangeEstimate,
)
from research_oracle.llm.models import AnalystResponse, Confidence


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` block in ``text``.

    Braces inside JSON string literals are ignored. Returns None when the
    text has no opening brace or the first object never closes.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]

        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]

    return None


def parse_analyst_response(text: str) -> AnalystResponse:
    """Parse a raw analyst response.

    Args:
        text: Raw text returned by the reasoning service

    Returns:
        Validated estimate, reasoning and confidence

    Raises:
        MalformedAnalystOutput: No JSON object found, or it does not parse
        OutOfRangeEstimate: Estimate is not a number in [0, 1]
        MissingReasoning: Reasoning is missing or empty
        InvalidConfidence: Confidence is not LOW, MEDIUM or HIGH
    """
    candidate = extract_json_object(text or "")
    if candidate is None:
        raise MalformedAnalystOutput("No JSON found in analyst response")

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise MalformedAnalystOutput(f"Failed to parse JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedAnalystOutput("Analyst response JSON is not an object")

    estimate = data.get("estimate")
    if (
        isinstance(estimate, bool)
        or not isinstance(estimate, (int, float))
        or not 0.0 <= estimate <= 1.0
    ):
        raise OutOfRangeEstimate(f"Invalid estimate: {estimate!r}")

    reasoning = data.get("reasoning")
    if not isinstance(reasoning, str) or not reasoning.strip():
        raise MissingReasoning("Missing or invalid reasoning")

    raw_confidence = data.get("confidence")
    confidence = raw_confidence.strip().upper() if isinstance(raw_confidence, str) else ""
    if confidence not in Confidence.__members__:
        raise InvalidConfidence(f"Invalid confidence: {raw_confidence!r}")

    return AnalystResponse(
        estimate=float(estimate),
        reasoning=reasoning,
        confidence=Confidence(confidence),
    )
