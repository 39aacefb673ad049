"""Attestation protocol: commit estimates to the oracle program.

Attestation is a best-effort side channel. ``attest`` and ``resolve`` never
raise on ledger failures; they log the failure and return a locally
generated placeholder signature instead.
"""

import logging
import time
from datetime import datetime
from typing import Optional, Tuple, Union

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from research_oracle.config import get_settings
from research_oracle.exceptions import AccountAlreadyInUse
from research_oracle.ledger import instructions as codec
from research_oracle.ledger.addresses import derive_attestation_address, derive_oracle_state_address
from research_oracle.ledger.client import (
    LedgerBackend,
    RpcLedgerClient,
    SimulatedLedgerClient,
    load_keypair,
)
from research_oracle.ledger.models import Attestation, AttestationAccount, OracleStateAccount
from research_oracle.llm.models import Confidence

logger = logging.getLogger(__name__)


class AttestationProtocol:
    """Derives addresses, builds instructions and submits them via a backend."""

    def __init__(
        self,
        backend: LedgerBackend,
        program_id: Optional[Union[Pubkey, str]] = None,
        explorer_cluster: Optional[str] = None,
    ):
        """Initialize protocol.

        Args:
            backend: Ledger backend used for submission and account reads
            program_id: Oracle program id. If None, uses config value.
            explorer_cluster: Cluster name for explorer links. If None, uses config value.
        """
        settings = get_settings()
        program_id = program_id or settings.oracle_program_id
        if isinstance(program_id, str):
            program_id = Pubkey.from_string(program_id)

        self.backend = backend
        self.program_id = program_id
        self.explorer_cluster = explorer_cluster or settings.explorer_cluster
        self.initialized = False
        self._oracle_state: Optional[Tuple[Pubkey, int]] = None

    @property
    def authority(self) -> Pubkey:
        return self.backend.authority

    def oracle_state_address(self) -> Pubkey:
        if self._oracle_state is None:
            self._oracle_state = derive_oracle_state_address(self.authority, self.program_id)
        return self._oracle_state[0]

    def attestation_address(self, question: str) -> Pubkey:
        address, _ = derive_attestation_address(
            self.oracle_state_address(), codec.hash_question(question), self.program_id
        )
        return address

    def explorer_url(self, signature: str) -> str:
        return f"https://explorer.solana.com/tx/{signature}?cluster={self.explorer_cluster}"

    def build_initialize(self) -> Instruction:
        return Instruction(
            self.program_id,
            codec.encode_initialize(),
            [
                AccountMeta(self.oracle_state_address(), is_signer=False, is_writable=True),
                AccountMeta(self.authority, is_signer=True, is_writable=True),
                AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            ],
        )

    def build_attest(
        self,
        question: str,
        estimate: float,
        confidence: Confidence,
        deadline: Union[datetime, int],
    ) -> Instruction:
        return Instruction(
            self.program_id,
            codec.encode_attest(codec.hash_question(question), estimate, confidence, deadline),
            [
                AccountMeta(self.attestation_address(question), is_signer=False, is_writable=True),
                AccountMeta(self.oracle_state_address(), is_signer=False, is_writable=True),
                AccountMeta(self.authority, is_signer=True, is_writable=True),
                AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            ],
        )

    def build_resolve(self, question: str, outcome: bool) -> Instruction:
        return Instruction(
            self.program_id,
            codec.encode_resolve(outcome),
            [
                AccountMeta(self.attestation_address(question), is_signer=False, is_writable=True),
                AccountMeta(self.oracle_state_address(), is_signer=False, is_writable=True),
                AccountMeta(self.authority, is_signer=True, is_writable=False),
            ],
        )

    def ensure_initialized(self) -> None:
        """Create the oracle-state account unless it already exists.

        Raises:
            LedgerError: If initialization fails for any reason other than the
                account already existing
        """
        if self.initialized:
            return

        address = self.oracle_state_address()
        if self.backend.account_exists(address):
            logger.info("Oracle state already initialized at %s", address)
            self.initialized = True
            return

        logger.info("Initializing oracle state at %s", address)
        try:
            signature = self.backend.submit(self.build_initialize())
        except AccountAlreadyInUse:
            logger.info("Oracle state already exists")
        else:
            logger.info("Oracle initialized: %s", signature)
        self.initialized = True

    def attest(
        self,
        question: str,
        estimate: float,
        confidence: Confidence,
        deadline: Union[datetime, int],
    ) -> Attestation:
        """Attest a consensus estimate.

        Args:
            question: Question text (hashed on-chain)
            estimate: Consensus probability (0-1)
            confidence: Consensus confidence
            deadline: Resolution deadline

        Returns:
            Attestation with the transaction signature and account address;
            a placeholder signature when submission failed
        """
        question_hash = codec.hash_question(question)
        account = str(self.attestation_address(question))

        logger.info(
            "Creating attestation: hash=%s estimate=%s bps confidence=%s",
            question_hash.hex(),
            codec.estimate_to_bps(estimate),
            Confidence(confidence).value,
        )

        try:
            self.ensure_initialized()
            signature = self.backend.submit(
                self.build_attest(question, estimate, confidence, deadline)
            )
        except Exception as e:
            logger.warning("Attestation failed, returning simulated result: %s", e)
            return Attestation(
                tx_signature=f"sim_{int(time.time() * 1000)}_{question_hash.hex()[:8]}",
                account=account,
            )

        logger.info("Attestation created: %s (%s)", account, self.explorer_url(signature))
        return Attestation(tx_signature=signature, account=account)

    def resolve(self, question: str, outcome: bool) -> str:
        """Record the outcome of an attested question.

        Returns:
            Transaction signature; a placeholder when submission failed
        """
        logger.info(
            "Resolving attestation %s: outcome=%s", self.attestation_address(question), outcome
        )

        try:
            self.ensure_initialized()
            signature = self.backend.submit(self.build_resolve(question, outcome))
        except Exception as e:
            logger.warning("Resolve failed, returning simulated result: %s", e)
            return f"sim_resolve_{int(time.time() * 1000)}"

        logger.info("Resolved: %s", signature)
        return signature

    def fetch_attestation(self, question: str) -> Optional[AttestationAccount]:
        """Read the attestation for ``question`` without re-submitting."""
        data = self.backend.get_account_data(self.attestation_address(question))
        if data is None:
            return None
        return codec.decode_attestation_account(data)

    def fetch_oracle_state(self) -> Optional[OracleStateAccount]:
        data = self.backend.get_account_data(self.oracle_state_address())
        if data is None:
            return None
        return codec.decode_oracle_state_account(data)


# Singleton instance
_protocol: Optional[AttestationProtocol] = None
_protocol_loaded = False


def create_attestation_protocol() -> Optional[AttestationProtocol]:
    """Build the configured attestation protocol.

    Returns:
        Protocol backed by the RPC client when an RPC URL and private key are
        configured, by the simulated ledger when simulation is enabled, or
        None when attestation is disabled
    """
    settings = get_settings()

    if settings.ledger_configured and not settings.ledger_simulate:
        return AttestationProtocol(RpcLedgerClient())

    if settings.ledger_simulate:
        authority = None
        if settings.solana_private_key:
            authority = load_keypair(settings.solana_private_key).pubkey()
        program_id = Pubkey.from_string(settings.oracle_program_id)
        return AttestationProtocol(SimulatedLedgerClient(authority, program_id), program_id)

    logger.warning("Ledger credentials not configured, on-chain attestation disabled")
    return None


def get_attestation_protocol() -> Optional[AttestationProtocol]:
    """Get or create the attestation protocol singleton (None when disabled)."""
    global _protocol, _protocol_loaded
    if not _protocol_loaded:
        _protocol = create_attestation_protocol()
        _protocol_loaded = True
    return _protocol
