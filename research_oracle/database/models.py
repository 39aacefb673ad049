"""Persisted record definitions for the research oracle."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from research_oracle.analysis.models import ConsensusResult
from research_oracle.ledger.models import Attestation
from research_oracle.utils.helpers import utc_now


class RequestRecord(BaseModel):
    """One estimate request; a single line of the record log."""

    request_id: str
    question: str
    context: Optional[str] = None
    category: Optional[str] = None
    deadline: Optional[datetime] = None
    estimate: ConsensusResult
    attestation: Optional[Attestation] = None
    created_at: datetime

    # Set together, exactly once, when the outcome is known
    resolved_at: Optional[datetime] = None
    actual_outcome: Optional[bool] = None
    brier_contribution: Optional[float] = None

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None and self.actual_outcome is not None


class OracleState(BaseModel):
    """Aggregate summary over every record; recomputable from the log."""

    total_requests: int = 0
    total_resolved: int = 0
    cumulative_brier: float = 0.0
    average_brier: float = 0.0
    last_updated: datetime

    @classmethod
    def from_records(cls, records: List[RequestRecord]) -> "OracleState":
        """Rebuild the aggregate from the record log."""
        resolved = [r for r in records if r.is_resolved]
        average_brier = 0.0
        if resolved:
            total = sum(
                (r.estimate.combined.estimate - (1 if r.actual_outcome else 0)) ** 2
                for r in resolved
            )
            average_brier = round(total / len(resolved), 4)

        return cls(
            total_requests=len(records),
            total_resolved=len(resolved),
            cumulative_brier=average_brier * len(resolved),
            average_brier=average_brier,
            last_updated=utc_now(),
        )
