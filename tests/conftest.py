"""Shared fixtures for research oracle tests."""

import logging
from datetime import datetime, timezone

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from research_oracle import config
from research_oracle.analysis.consensus import combine_estimates
from research_oracle.config import Settings
from research_oracle.database import db as db_module
from research_oracle.database.db import RecordStore
from research_oracle.database.models import RequestRecord
from research_oracle.ledger import attestation as attestation_module
from research_oracle.ledger.attestation import AttestationProtocol
from research_oracle.ledger.client import SimulatedLedgerClient
from research_oracle.llm.models import AnalystResult, AnalystRole, Confidence

PROGRAM_ID = Pubkey.from_string("AriGWxj99R7PtrEn3dvszvVLDrSb8RLt6GEostKzLzFL")


@pytest.fixture(autouse=True)
def settings(monkeypatch, tmp_path):
    """Isolated settings and fresh singletons for every test."""
    test_settings = Settings(
        _env_file=None,
        reasoning_provider="offline",
        records_dir=str(tmp_path / "records"),
        solana_rpc_url=None,
        solana_private_key=None,
        ledger_simulate=False,
        log_level="WARNING",
    )
    monkeypatch.setattr(config, "_settings", test_settings)
    monkeypatch.setattr(db_module, "_store", None)
    monkeypatch.setattr(attestation_module, "_protocol", None)
    monkeypatch.setattr(attestation_module, "_protocol_loaded", False)
    yield test_settings
    logging.getLogger("research_oracle").handlers.clear()


@pytest.fixture
def store(tmp_path):
    return RecordStore(str(tmp_path / "store"))


@pytest.fixture
def authority():
    return Keypair.from_seed(bytes([7] * 32))


@pytest.fixture
def ledger(authority):
    return SimulatedLedgerClient(authority.pubkey(), PROGRAM_ID)


@pytest.fixture
def protocol(ledger):
    return AttestationProtocol(ledger, PROGRAM_ID, explorer_cluster="devnet")


def make_result(role, estimate, confidence="MEDIUM", reasoning=None):
    return AnalystResult(
        role=AnalystRole(role),
        estimate=estimate,
        reasoning=reasoning or f"{role} reasoning",
        confidence=Confidence(confidence),
    )


def make_record(request_id="req-1", estimate=0.5, question=None, **fields):
    """Build a stored record whose consensus equals ``estimate``."""
    consensus = combine_estimates(
        [
            make_result("base_rate", estimate),
            make_result("evidence", estimate),
            make_result("contrarian", estimate),
        ]
    )
    return RequestRecord(
        request_id=request_id,
        question=question or f"Will event {request_id} happen?",
        estimate=consensus,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        **fields,
    )
