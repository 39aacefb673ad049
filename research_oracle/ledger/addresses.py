"""Deterministic program-derived addresses for the oracle program."""

from typing import Tuple

from solders.pubkey import Pubkey

ORACLE_STATE_SEED = b"oracle_state"
ATTESTATION_SEED = b"attestation"


def derive_oracle_state_address(authority: Pubkey, program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Oracle-state address for the submitting authority.

    Returns:
        Address and bump seed
    """
    return Pubkey.find_program_address([ORACLE_STATE_SEED, bytes(authority)], program_id)


def derive_attestation_address(
    oracle_state: Pubkey, question_hash: bytes, program_id: Pubkey
) -> Tuple[Pubkey, int]:
    """Attestation address for a question under one oracle state.

    Returns:
        Address and bump seed
    """
    return Pubkey.find_program_address(
        [ATTESTATION_SEED, bytes(oracle_state), question_hash], program_id
    )
