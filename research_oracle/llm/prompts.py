"""Prompt templates for each analyst role."""

from research_oracle.llm.models import AnalystRole, QuestionContext

RESPONSE_FORMAT = """Respond with ONLY a JSON object in this exact format:
{{
    "estimate": <number between 0 and 1 representing probability>,
    "reasoning": "<your detailed reasoning>",
    "confidence": "<HIGH, MEDIUM, or LOW based on {confidence_basis}>"
}}"""

ROLE_INSTRUCTIONS = {
    AnalystRole.BASE_RATE: (
        "You are a BASE RATE analyst. Estimate the probability using ONLY historical "
        "data, statistics, and reference classes.",
        """Your approach:
1. Identify the reference class this event belongs to
2. Find how often similar events have occurred historically
3. Anchor on the base rate before considering any adjustments

Ignore current news and sentiment unless it is part of a statistical trend.
Be explicit about which reference class you are using.""",
        "quality of historical data available",
    ),
    AnalystRole.EVIDENCE: (
        "You are a CURRENT EVIDENCE analyst. Estimate the probability from recent "
        "news, developments, and current conditions.",
        """Your approach:
1. Analyze recent developments related to this question
2. Consider what credible sources and officials are saying
3. Assess the current trajectory and leading indicators

Cite specific recent events or data points and note how recent your
information is.""",
        "quality and clarity of available evidence",
    ),
    AnalystRole.CONTRARIAN: (
        "You are a CONTRARIAN analyst. Find reasons the consensus view might be "
        "WRONG and identify what others are missing.",
        """Your approach:
1. Identify the conventional wisdom
2. Challenge its assumptions and look for blind spots
3. Consider tail risks and what would have to be true for the opposite outcome

Do not be contrarian for its own sake; have substantive reasoning.""",
        "strength of the contrarian case",
    ),
}


def build_analyst_prompt(role: AnalystRole, context: QuestionContext) -> str:
    """Build the prompt sent to the reasoning service for one analyst role.

    Args:
        role: Analyst role
        context: Question context

    Returns:
        Formatted prompt string
    """
    preamble, approach, confidence_basis = ROLE_INSTRUCTIONS[role]
    response_format = RESPONSE_FORMAT.format(confidence_basis=confidence_basis)

    return f"""{preamble}

{context.to_prompt_text()}

{approach}

{response_format}
"""
