"""Binary instruction encoding and account decoding for the oracle program.

Instruction data is an 8-byte discriminator (first 8 bytes of
``sha256("global:<instruction>")``) followed by little-endian borsh fields:

    initialize  discriminator                                          8 bytes
    attest      discriminator | hash[32] | u16 bps | u8 conf | i64 ddl  51 bytes
    resolve     discriminator | u8 outcome                              9 bytes

Accounts carry an 8-byte discriminator of ``sha256("account:<Name>")``.
"""

import hashlib
import math
import struct
from datetime import datetime
from typing import Union

from solders.pubkey import Pubkey

from research_oracle.ledger.models import AttestationAccount, OracleStateAccount
from research_oracle.llm.models import Confidence

DISCRIMINATOR_SIZE = 8
QUESTION_HASH_SIZE = 32
MAX_ESTIMATE_BPS = 10000

ATTEST_ARGS = struct.Struct("<32sHBq")
RESOLVE_ARGS = struct.Struct("<B")

ORACLE_STATE_LAYOUT = struct.Struct("<32sQQQB")
ATTESTATION_LAYOUT = struct.Struct("<32s32sHBqq??B")


def get_discriminator(name: str) -> bytes:
    """Instruction discriminator for ``name``."""
    return hashlib.sha256(f"global:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_SIZE]


def get_account_discriminator(name: str) -> bytes:
    """Account discriminator for account type ``name``."""
    return hashlib.sha256(f"account:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_SIZE]


def hash_question(question: str) -> bytes:
    """SHA-256 of the UTF-8 question text."""
    return hashlib.sha256(question.encode("utf-8")).digest()


def estimate_to_bps(estimate: float) -> int:
    """Convert a probability to basis points, rounding half up.

    Raises:
        ValueError: If the result falls outside 0..10000
    """
    bps = math.floor(estimate * MAX_ESTIMATE_BPS + 0.5)
    if not 0 <= bps <= MAX_ESTIMATE_BPS:
        raise ValueError(f"Estimate must be between 0 and 1, got {estimate}")
    return bps


def to_unix_seconds(deadline: Union[datetime, int]) -> int:
    if isinstance(deadline, datetime):
        return math.floor(deadline.timestamp())
    return int(deadline)


def encode_initialize() -> bytes:
    return get_discriminator("initialize")


def encode_attest(
    question_hash: bytes,
    estimate: float,
    confidence: Confidence,
    deadline: Union[datetime, int],
) -> bytes:
    """Encode an attest instruction.

    Args:
        question_hash: 32-byte question hash
        estimate: Consensus probability (0-1)
        confidence: Consensus confidence
        deadline: Resolution deadline (datetime or unix seconds)

    Returns:
        51-byte instruction data
    """
    if len(question_hash) != QUESTION_HASH_SIZE:
        raise ValueError(f"Question hash must be {QUESTION_HASH_SIZE} bytes, got {len(question_hash)}")

    return get_discriminator("attest") + ATTEST_ARGS.pack(
        question_hash,
        estimate_to_bps(estimate),
        Confidence(confidence).code,
        to_unix_seconds(deadline),
    )


def encode_resolve(outcome: bool) -> bytes:
    return get_discriminator("resolve") + RESOLVE_ARGS.pack(1 if outcome else 0)


def encode_oracle_state_account(account: OracleStateAccount) -> bytes:
    return get_account_discriminator("OracleState") + ORACLE_STATE_LAYOUT.pack(
        bytes(Pubkey.from_string(account.authority)),
        account.total_attestations,
        account.total_resolved,
        account.cumulative_brier,
        account.bump,
    )


def encode_attestation_account(account: AttestationAccount) -> bytes:
    return get_account_discriminator("Attestation") + ATTESTATION_LAYOUT.pack(
        bytes(Pubkey.from_string(account.oracle)),
        bytes.fromhex(account.question_hash),
        account.estimate_bps,
        account.confidence.code,
        account.deadline,
        account.created_at,
        account.resolved,
        account.outcome,
        account.bump,
    )


def _strip_discriminator(data: bytes, account_name: str, layout: struct.Struct) -> bytes:
    expected = get_account_discriminator(account_name)
    if data[:DISCRIMINATOR_SIZE] != expected:
        raise ValueError(f"Account data is not a {account_name} account")

    body = data[DISCRIMINATOR_SIZE : DISCRIMINATOR_SIZE + layout.size]
    if len(body) != layout.size:
        raise ValueError(f"{account_name} account data is truncated")
    return body


def decode_oracle_state_account(data: bytes) -> OracleStateAccount:
    body = _strip_discriminator(data, "OracleState", ORACLE_STATE_LAYOUT)
    authority, total_attestations, total_resolved, cumulative_brier, bump = (
        ORACLE_STATE_LAYOUT.unpack(body)
    )
    return OracleStateAccount(
        authority=str(Pubkey(authority)),
        total_attestations=total_attestations,
        total_resolved=total_resolved,
        cumulative_brier=cumulative_brier,
        bump=bump,
    )


def decode_attestation_account(data: bytes) -> AttestationAccount:
    body = _strip_discriminator(data, "Attestation", ATTESTATION_LAYOUT)
    (
        oracle,
        question_hash,
        estimate_bps,
        confidence,
        deadline,
        created_at,
        resolved,
        outcome,
        bump,
    ) = ATTESTATION_LAYOUT.unpack(body)
    return AttestationAccount(
        oracle=str(Pubkey(oracle)),
        question_hash=question_hash.hex(),
        estimate_bps=estimate_bps,
        confidence=Confidence.from_code(confidence),
        deadline=deadline,
        created_at=created_at,
        resolved=resolved,
        outcome=outcome,
        bump=bump,
    )
