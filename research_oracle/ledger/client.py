"""Ledger backends: a Solana JSON-RPC client and an in-memory simulation."""

import base64
import hashlib
import itertools
import json
import logging
import math
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from research_oracle.config import get_settings
from research_oracle.exceptions import AccountAlreadyInUse, LedgerError, LedgerRpcError
from research_oracle.ledger import instructions as codec
from research_oracle.ledger.addresses import derive_attestation_address, derive_oracle_state_address
from research_oracle.ledger.models import AttestationAccount, OracleStateAccount
from research_oracle.llm.models import Confidence

logger = logging.getLogger(__name__)

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


def load_keypair(private_key: str) -> Keypair:
    """Load a keypair from a JSON array of 64 secret-key bytes.

    Raises:
        LedgerError: If the key cannot be parsed
    """
    try:
        secret = bytes(json.loads(private_key))
        return Keypair.from_bytes(secret)
    except (TypeError, ValueError) as e:
        raise LedgerError(f"Failed to load ledger private key: {e}") from e


class LedgerBackend(ABC):
    """Capability the attestation protocol needs from a ledger."""

    @property
    @abstractmethod
    def authority(self) -> Pubkey:
        """Public key of the submitting identity."""

    @abstractmethod
    def submit(self, instruction: Instruction) -> str:
        """Sign and submit one instruction; return the transaction signature."""

    @abstractmethod
    def get_account_data(self, address: Pubkey) -> Optional[bytes]:
        """Raw account data, or None when the account does not exist."""

    def account_exists(self, address: Pubkey) -> bool:
        return self.get_account_data(address) is not None


class RpcLedgerClient(LedgerBackend):
    """Client for a Solana JSON-RPC endpoint.

    One attempt per call, no retries; every HTTP request and the confirmation
    wait are bounded by ``timeout``.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        keypair: Optional[Keypair] = None,
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
        poll_interval: float = 0.5,
    ):
        """Initialize RPC client.

        Args:
            rpc_url: JSON-RPC endpoint. If None, uses config value.
            keypair: Signing keypair. If None, loaded from config.
            commitment: Commitment level to wait for. If None, uses config value.
            timeout: Seconds per request and per confirmation. If None, uses config value.
            poll_interval: Seconds between confirmation polls
        """
        settings = get_settings()
        self.rpc_url = rpc_url or settings.solana_rpc_url
        if not self.rpc_url:
            raise LedgerError("Ledger RPC URL is not configured")

        if keypair is None:
            if not settings.solana_private_key:
                raise LedgerError("Ledger private key is not configured")
            keypair = load_keypair(settings.solana_private_key)

        self.keypair = keypair
        self.commitment = commitment or settings.ledger_commitment
        self.timeout = timeout if timeout is not None else settings.ledger_timeout_seconds
        self.poll_interval = poll_interval

        self.session = requests.Session()
        self._ids = itertools.count(1)

    @property
    def authority(self) -> Pubkey:
        return self.keypair.pubkey()

    def _rpc(self, method: str, params: List[Any]) -> Any:
        """Make a JSON-RPC call.

        Raises:
            AccountAlreadyInUse: If the node reports the account already exists
            LedgerRpcError: If the request or the call fails
        """
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

        try:
            response = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            raise LedgerRpcError(f"RPC request {method} failed: {e}") from e
        except ValueError as e:
            raise LedgerRpcError(f"RPC response for {method} is not JSON: {e}") from e

        error = body.get("error")
        if error:
            message = error.get("message", "unknown error")
            data = error.get("data") if isinstance(error.get("data"), dict) else None
            logs = (data or {}).get("logs") or []
            detail = "\n".join([message, *logs])
            if "already in use" in detail:
                raise AccountAlreadyInUse(detail)
            raise LedgerRpcError(detail, code=error.get("code"), data=data)

        return body.get("result")

    def get_latest_blockhash(self) -> Hash:
        result = self._rpc("getLatestBlockhash", [{"commitment": self.commitment}])
        return Hash.from_string(result["value"]["blockhash"])

    def get_account_data(self, address: Pubkey) -> Optional[bytes]:
        result = self._rpc(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self.commitment}],
        )
        value = (result or {}).get("value")
        if value is None:
            return None
        return base64.b64decode(value["data"][0])

    def submit(self, instruction: Instruction) -> str:
        blockhash = self.get_latest_blockhash()
        transaction = Transaction.new_signed_with_payer(
            [instruction], self.authority, [self.keypair], blockhash
        )
        encoded = base64.b64encode(bytes(transaction)).decode("ascii")

        signature = self._rpc(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": self.commitment}],
        )
        logger.debug("Sent transaction %s, waiting for %s", signature, self.commitment)
        self._wait_for_confirmation(signature)
        return signature

    def _wait_for_confirmation(self, signature: str) -> None:
        target = COMMITMENT_LEVELS.index(self.commitment)
        deadline = time.monotonic() + self.timeout

        while True:
            result = self._rpc("getSignatureStatuses", [[signature]])
            status = ((result or {}).get("value") or [None])[0]

            if status:
                if status.get("err"):
                    raise LedgerRpcError(f"Transaction {signature} failed: {status['err']}")
                reached = status.get("confirmationStatus")
                if reached in COMMITMENT_LEVELS and COMMITMENT_LEVELS.index(reached) >= target:
                    return

            if time.monotonic() >= deadline:
                raise LedgerRpcError(
                    f"Transaction {signature} not confirmed within {self.timeout}s"
                )
            time.sleep(self.poll_interval)


class SimulatedLedgerClient(LedgerBackend):
    """In-memory stand-in that applies the oracle program's state changes.

    Used for offline operation and tests: accounts are created and updated
    the way the on-chain program would, and signatures are deterministic.
    """

    def __init__(self, authority: Optional[Pubkey] = None, program_id: Optional[Pubkey] = None):
        self._authority = authority or Pubkey.default()
        self.program_id = program_id or Pubkey.from_string(get_settings().oracle_program_id)
        self.accounts: Dict[str, bytes] = {}
        self.submitted: List[Instruction] = []
        self.clock = 0

    @property
    def authority(self) -> Pubkey:
        return self._authority

    def get_account_data(self, address: Pubkey) -> Optional[bytes]:
        return self.accounts.get(str(address))

    def submit(self, instruction: Instruction) -> str:
        data = bytes(instruction.data)
        discriminator = data[: codec.DISCRIMINATOR_SIZE]

        if discriminator == codec.get_discriminator("initialize"):
            self._initialize()
        elif discriminator == codec.get_discriminator("attest"):
            self._attest(data[codec.DISCRIMINATOR_SIZE :])
        elif discriminator == codec.get_discriminator("resolve"):
            self._resolve(instruction, data[codec.DISCRIMINATOR_SIZE :])
        else:
            raise LedgerError(f"Unknown instruction discriminator: {discriminator.hex()}")

        self.submitted.append(instruction)
        self.clock += 1
        digest = hashlib.sha256(data).hexdigest()[:16]
        return f"simtx_{len(self.submitted):06d}_{digest}"

    def _oracle_state(self):
        address, bump = derive_oracle_state_address(self._authority, self.program_id)
        return address, bump

    def _load_state(self) -> OracleStateAccount:
        address, _ = self._oracle_state()
        data = self.get_account_data(address)
        if data is None:
            raise LedgerError("Oracle state account does not exist")
        return codec.decode_oracle_state_account(data)

    def _store_state(self, state: OracleStateAccount) -> None:
        address, _ = self._oracle_state()
        self.accounts[str(address)] = codec.encode_oracle_state_account(state)

    def _initialize(self) -> None:
        address, bump = self._oracle_state()
        if str(address) in self.accounts:
            raise AccountAlreadyInUse(f"Allocate: account {address} already in use")

        self._store_state(
            OracleStateAccount(
                authority=str(self._authority),
                total_attestations=0,
                total_resolved=0,
                cumulative_brier=0,
                bump=bump,
            )
        )

    def _attest(self, args: bytes) -> None:
        question_hash, estimate_bps, confidence, deadline = codec.ATTEST_ARGS.unpack(args)
        if estimate_bps > codec.MAX_ESTIMATE_BPS:
            raise LedgerError("Estimate must be between 0 and 10000 basis points")
        if confidence > 2:
            raise LedgerError("Confidence must be 0, 1, or 2 (LOW, MEDIUM, HIGH)")

        state = self._load_state()
        oracle_state, _ = self._oracle_state()
        address, bump = derive_attestation_address(oracle_state, question_hash, self.program_id)
        if str(address) in self.accounts:
            raise AccountAlreadyInUse(f"Allocate: account {address} already in use")

        self.accounts[str(address)] = codec.encode_attestation_account(
            AttestationAccount(
                oracle=str(oracle_state),
                question_hash=question_hash.hex(),
                estimate_bps=estimate_bps,
                confidence=Confidence.from_code(confidence),
                deadline=deadline,
                created_at=self.clock,
                resolved=False,
                outcome=False,
                bump=bump,
            )
        )
        state.total_attestations += 1
        self._store_state(state)

    def _resolve(self, instruction: Instruction, args: bytes) -> None:
        (outcome,) = codec.RESOLVE_ARGS.unpack(args)
        address = instruction.accounts[0].pubkey
        data = self.get_account_data(address)
        if data is None:
            raise LedgerError(f"Attestation account {address} does not exist")

        attestation = codec.decode_attestation_account(data)
        if attestation.resolved:
            raise LedgerError("Attestation has already been resolved")

        attestation.resolved = True
        attestation.outcome = bool(outcome)
        self.accounts[str(address)] = codec.encode_attestation_account(attestation)

        # Brier contribution scaled by 10000 and truncated, as the program does
        brier = math.trunc((attestation.estimate - (1.0 if outcome else 0.0)) ** 2 * 10000)
        state = self._load_state()
        state.total_resolved += 1
        state.cumulative_brier += brier
        self._store_state(state)
