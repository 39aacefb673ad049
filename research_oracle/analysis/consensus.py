"""Consensus calculation logic for combining analyst outputs."""

from itertools import combinations
from typing import Iterable, List, Tuple

from research_oracle.analysis.models import AnalystEstimate, CombinedEstimate, ConsensusResult
from research_oracle.exceptions import IncompleteAnalystSet
from research_oracle.llm.models import REQUIRED_ROLES, AnalystResult, Confidence

CONFIDENCE_WEIGHTS = {
    Confidence.HIGH: 3,
    Confidence.MEDIUM: 2,
    Confidence.LOW: 1,
}
DEFAULT_WEIGHT = 2

AGREEMENT_THRESHOLD = 0.10
DISAGREEMENT_THRESHOLD = 0.15


def classify_agreement(estimates: List[float]) -> Tuple[str, Confidence]:
    """Classify how closely the analyst estimates agree.

    Args:
        estimates: Estimates in role order

    Returns:
        Agreement description and the consensus confidence it implies
    """
    diffs = [abs(a - b) for a, b in combinations(estimates, 2)]
    close = [diff <= AGREEMENT_THRESHOLD for diff in diffs]

    if all(close):
        return f"{len(estimates)}/{len(estimates)} agree within 10%", Confidence.HIGH

    if any(close):
        return f"2/{len(estimates)} agree within 10%", Confidence.MEDIUM

    # Both branches map to LOW; only the description differs.
    if max(diffs) > DISAGREEMENT_THRESHOLD:
        return f"All {len(estimates)} disagree by >15%", Confidence.LOW

    return "Analysts disagree", Confidence.LOW


def synthesize_reasoning(ordered: List[AnalystResult]) -> str:
    """Concatenate each role's estimate, confidence and reasoning."""
    sections = [
        f"{result.role.label} ({result.estimate * 100:.0f}%, {result.confidence.value}): "
        f"{result.reasoning}"
        for result in ordered
    ]
    return "\n\n".join(sections)


def combine_estimates(results: Iterable[AnalystResult]) -> ConsensusResult:
    """Combine the required analyst results into one consensus.

    Args:
        results: One result per required role, in any order

    Returns:
        Consensus result with the confidence-weighted estimate

    Raises:
        IncompleteAnalystSet: If the results are not exactly the required roles
    """
    results = list(results)

    if len(results) != len(REQUIRED_ROLES):
        raise IncompleteAnalystSet(
            f"Expected exactly {len(REQUIRED_ROLES)} analyst results, got {len(results)}"
        )

    by_role = {result.role: result for result in results}
    missing = [role.value for role in REQUIRED_ROLES if role not in by_role]
    if missing:
        raise IncompleteAnalystSet(f"Missing required analyst roles: {', '.join(missing)}")

    ordered = [by_role[role] for role in REQUIRED_ROLES]

    weighted_sum = 0.0
    total_weight = 0
    for result in ordered:
        weight = CONFIDENCE_WEIGHTS.get(result.confidence, DEFAULT_WEIGHT)
        weighted_sum += result.estimate * weight
        total_weight += weight

    combined_estimate = round(weighted_sum / total_weight, 3)
    agreement, confidence = classify_agreement([result.estimate for result in ordered])

    return ConsensusResult(
        estimates={
            result.role: AnalystEstimate(
                estimate=result.estimate,
                reasoning=result.reasoning,
                confidence=result.confidence,
            )
            for result in ordered
        },
        combined=CombinedEstimate(
            estimate=combined_estimate,
            agreement=agreement,
            confidence=confidence,
        ),
        reasoning=synthesize_reasoning(ordered),
    )
