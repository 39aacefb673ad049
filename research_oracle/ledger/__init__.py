"""Ledger attestation of consensus estimates."""

from research_oracle.ledger.attestation import AttestationProtocol, get_attestation_protocol
from research_oracle.ledger.client import LedgerBackend, RpcLedgerClient, SimulatedLedgerClient
from research_oracle.ledger.models import Attestation, AttestationAccount, OracleStateAccount

__all__ = [
    "Attestation",
    "AttestationAccount",
    "AttestationProtocol",
    "LedgerBackend",
    "OracleStateAccount",
    "RpcLedgerClient",
    "SimulatedLedgerClient",
    "get_attestation_protocol",
]
