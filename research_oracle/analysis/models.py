"""Models for consensus, calibration and pipeline results."""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from research_oracle.ledger.models import Attestation
from research_oracle.llm.models import AnalystRole, Confidence


class AnalystEstimate(BaseModel):
    """One role's estimate as stored inside a consensus result."""

    estimate: float
    reasoning: str
    confidence: Confidence


class CombinedEstimate(BaseModel):
    """The single consensus figure."""

    estimate: float = Field(..., ge=0.0, le=1.0)
    method: Literal["confidence_weighted"] = "confidence_weighted"
    agreement: str
    confidence: Confidence


class ConsensusResult(BaseModel):
    """Consensus result from the required analyst roles."""

    estimates: Dict[AnalystRole, AnalystEstimate]
    combined: CombinedEstimate
    reasoning: str


class CalibrationBucket(BaseModel):
    """Realized frequency for one decile of predicted probability."""

    range: str
    predicted: float
    actual: float
    count: int


class CalibrationStats(BaseModel):
    """Forecasting accuracy over every resolved record."""

    brier_score: float
    total_predictions: int
    total_resolved: int
    buckets: List[CalibrationBucket] = Field(default_factory=list)
    last_updated: datetime


class CalibrationSummary(BaseModel):
    """Calibration snapshot returned alongside a new estimate."""

    brier_score: float
    total_predictions: int
    total_resolved: int


class QuestionCategory(str, Enum):
    POLITICS = "politics"
    CRYPTO = "crypto"
    EVENTS = "events"
    SPORTS = "sports"
    OTHER = "other"


class EstimateRequest(BaseModel):
    """Request to produce a consensus estimate."""

    question: str
    context: Optional[str] = None
    category: Optional[QuestionCategory] = None
    deadline: Optional[datetime] = None
    attest_on_chain: bool = True

    @field_validator("deadline")
    @classmethod
    def deadline_as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("question")
    @classmethod
    def question_min_length(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 10:
            raise ValueError("question must be at least 10 characters")
        return value


class EstimateResponse(BaseModel):
    """Response for a newly created estimate."""

    request_id: str
    question: str
    estimate: ConsensusResult
    attestation: Optional[Attestation] = None
    calibration: CalibrationSummary
    created_at: datetime


class ResolveResponse(BaseModel):
    """Response for a recorded outcome."""

    request_id: str
    outcome: bool
    brier_contribution: float
    resolution_tx: Optional[str] = None
