"""Models for analyst requests and responses."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AnalystRole(str, Enum):
    """Independent estimation strategies that feed the consensus."""

    BASE_RATE = "base_rate"
    EVIDENCE = "evidence"
    CONTRARIAN = "contrarian"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").upper()


# Presentation order; the combiner requires exactly this set.
REQUIRED_ROLES = (AnalystRole.BASE_RATE, AnalystRole.EVIDENCE, AnalystRole.CONTRARIAN)


class Confidence(str, Enum):
    """Analyst or consensus confidence level."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def code(self) -> int:
        """Ledger encoding (LOW=0, MEDIUM=1, HIGH=2)."""
        return _CONFIDENCE_CODES[self]

    @classmethod
    def from_code(cls, code: int) -> "Confidence":
        for confidence, value in _CONFIDENCE_CODES.items():
            if value == code:
                return confidence
        raise ValueError(f"Unknown confidence code: {code}")


_CONFIDENCE_CODES = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


class AnalystResponse(BaseModel):
    """Validated fields parsed out of a raw analyst response."""

    estimate: float = Field(..., ge=0.0, le=1.0, description="Probability of YES (0-1)")
    reasoning: str = Field(..., min_length=1)
    confidence: Confidence


class AnalystResult(AnalystResponse):
    """One analyst's contribution to a consensus."""

    model_config = ConfigDict(frozen=True)

    role: AnalystRole


class QuestionContext(BaseModel):
    """Context information handed to every analyst."""

    question: str
    context: Optional[str] = None
    category: Optional[str] = None
    deadline: Optional[str] = None

    def to_prompt_text(self) -> str:
        """Convert context to text suitable for an analyst prompt."""
        parts = [f"QUESTION: {self.question}"]

        if self.category:
            parts.append(f"CATEGORY: {self.category}")

        if self.deadline:
            parts.append(f"RESOLVES BY: {self.deadline}")

        if self.context:
            parts.append(f"\nADDITIONAL CONTEXT:\n{self.context}")

        return "\n".join(parts)
