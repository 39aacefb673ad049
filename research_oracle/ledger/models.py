"""Pydantic models for ledger attestations and decoded on-chain accounts."""

from pydantic import BaseModel

from research_oracle.llm.models import Confidence


class Attestation(BaseModel):
    """Reference to an attestation submitted for an estimate."""

    tx_signature: str
    account: str

    @property
    def simulated(self) -> bool:
        """True when the signature is a locally generated placeholder."""
        return self.tx_signature.startswith("sim_")


class OracleStateAccount(BaseModel):
    """Decoded oracle-state account."""

    authority: str
    total_attestations: int
    total_resolved: int
    cumulative_brier: int
    bump: int

    @property
    def average_brier(self) -> float:
        """Average Brier score (the program stores Brier scaled by 10000)."""
        if self.total_resolved == 0:
            return 0.0
        return self.cumulative_brier / self.total_resolved / 10000


class AttestationAccount(BaseModel):
    """Decoded attestation account."""

    oracle: str
    question_hash: str
    estimate_bps: int
    confidence: Confidence
    deadline: int
    created_at: int
    resolved: bool
    outcome: bool
    bump: int

    @property
    def estimate(self) -> float:
        return self.estimate_bps / 10000
