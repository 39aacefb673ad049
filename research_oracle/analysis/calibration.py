"""Calibration tracking: Brier score and probability-bucketed accuracy."""

import logging
from typing import List, Optional, Sequence

from research_oracle.analysis.models import CalibrationBucket, CalibrationStats
from research_oracle.database.db import RecordStore, get_store
from research_oracle.database.models import RequestRecord
from research_oracle.utils.helpers import utc_now

logger = logging.getLogger(__name__)

# Ten deciles; the last bucket also includes 1.0
BUCKET_RANGES = [(f"{i * 10}-{(i + 1) * 10}%", i / 10, (i + 1) / 10) for i in range(10)]


def calculate_brier_score(probability: float, outcome: bool) -> float:
    """Squared error between a probability and a binary outcome."""
    actual = 1 if outcome else 0
    return (probability - actual) ** 2


def _in_bucket(probability: float, low: float, high: float) -> bool:
    if high >= 1.0:
        return low <= probability <= high
    return low <= probability < high


def calculate_calibration(records: Sequence[RequestRecord]) -> CalibrationStats:
    """Compute calibration statistics over a set of records.

    Args:
        records: Every record; unresolved ones only count toward total_predictions

    Returns:
        Brier score over resolved records and the non-empty buckets
    """
    resolved = [r for r in records if r.resolved_at is not None and r.actual_outcome is not None]

    buckets: List[CalibrationBucket] = []
    for label, low, high in BUCKET_RANGES:
        in_bucket = [r for r in resolved if _in_bucket(r.estimate.combined.estimate, low, high)]
        if not in_bucket:
            continue

        avg_predicted = sum(r.estimate.combined.estimate for r in in_bucket) / len(in_bucket)
        avg_actual = sum(1 if r.actual_outcome else 0 for r in in_bucket) / len(in_bucket)
        buckets.append(
            CalibrationBucket(
                range=label,
                predicted=round(avg_predicted, 3),
                actual=round(avg_actual, 3),
                count=len(in_bucket),
            )
        )

    brier_score = 0.0
    if resolved:
        total_brier = sum(
            calculate_brier_score(r.estimate.combined.estimate, r.actual_outcome) for r in resolved
        )
        brier_score = round(total_brier / len(resolved), 4)

    return CalibrationStats(
        brier_score=brier_score,
        total_predictions=len(records),
        total_resolved=len(resolved),
        buckets=buckets,
        last_updated=utc_now(),
    )


def update_calibration_stats(store: Optional[RecordStore] = None) -> CalibrationStats:
    """Recompute calibration from the full log and overwrite the aggregate.

    This is the only path that writes the Brier fields of the aggregate
    state, so the summary always matches the log.
    """
    store = store or get_store()

    with store.transaction():
        stats = calculate_calibration(store.get_all())

        state = store.load_state()
        state.total_requests = stats.total_predictions
        state.cumulative_brier = stats.brier_score * stats.total_resolved
        state.average_brier = stats.brier_score
        state.total_resolved = stats.total_resolved
        store.save_state(state)

    logger.info(
        "Calibration updated: brier=%.4f resolved=%d/%d",
        stats.brier_score,
        stats.total_resolved,
        stats.total_predictions,
    )
    return stats
