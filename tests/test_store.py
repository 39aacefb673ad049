"""Tests for research_oracle/database/db.py - append-only record store."""

import json
from datetime import datetime, timezone

import pytest

from conftest import make_record
from research_oracle.database.db import REQUESTS_FILE, STATE_FILE, RecordStore
from research_oracle.exceptions import (
    AlreadyResolved,
    DuplicateId,
    NotFound,
    PartialResolution,
    StoreCorrupted,
)
from research_oracle.ledger.models import Attestation

RESOLUTION = {
    "resolved_at": datetime(2026, 3, 1, tzinfo=timezone.utc),
    "actual_outcome": True,
    "brier_contribution": 0.25,
}


class TestAppend:
    def test_round_trip(self, store):
        record = make_record(
            "req-1",
            0.42,
            context="Some context",
            category="crypto",
            deadline=datetime(2026, 12, 31, tzinfo=timezone.utc),
            attestation=Attestation(tx_signature="sim_1_abcdef12", account="acct"),
        )
        store.append(record)

        assert store.get("req-1") == record

    def test_append_order_preserved(self, store):
        for request_id in ("c", "a", "b"):
            store.append(make_record(request_id))

        assert [record.request_id for record in store.get_all()] == ["c", "a", "b"]

    def test_total_requests_increments(self, store):
        store.append(make_record("a"))
        store.append(make_record("b"))

        assert store.load_state().total_requests == 2

    def test_one_line_per_record(self, store):
        store.append(make_record("a"))
        store.append(make_record("b"))

        lines = (store.records_dir / REQUESTS_FILE).read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["request_id"] == "a"

    def test_duplicate_id(self, store):
        store.append(make_record("a"))

        with pytest.raises(DuplicateId):
            store.append(make_record("a", 0.9))

        assert len(store.get_all()) == 1
        assert store.load_state().total_requests == 1

    def test_survives_reopen(self, store):
        store.append(make_record("a"))

        reopened = RecordStore(str(store.records_dir))
        assert reopened.get("a") is not None
        assert reopened.load_state().total_requests == 1


class TestGet:
    def test_unknown_id(self, store):
        assert store.get("missing") is None

    def test_empty_store(self, store):
        assert store.get_all() == []

    def test_corrupted_line(self, store):
        store.append(make_record("a"))
        with open(store.records_dir / REQUESTS_FILE, "a", encoding="utf-8") as f:
            f.write("{not valid json\n")

        with pytest.raises(StoreCorrupted) as exc_info:
            store.get_all()
        assert exc_info.value.line_number == 2


class TestUpdate:
    def test_resolve(self, store):
        store.append(make_record("a"))

        updated = store.update("a", dict(RESOLUTION))

        assert updated.is_resolved
        assert store.get("a").actual_outcome is True
        assert store.get("a").brier_contribution == 0.25

    def test_other_records_untouched(self, store):
        store.append(make_record("a"))
        store.append(make_record("b"))

        store.update("a", dict(RESOLUTION))

        assert store.get("b").resolved_at is None
        assert [record.request_id for record in store.get_all()] == ["a", "b"]

    def test_does_not_touch_aggregate_brier(self, store):
        store.append(make_record("a"))
        store.update("a", dict(RESOLUTION))

        state = store.load_state()
        assert state.total_resolved == 0
        assert state.cumulative_brier == 0.0

    def test_not_found(self, store):
        with pytest.raises(NotFound):
            store.update("missing", dict(RESOLUTION))

    def test_already_resolved(self, store):
        store.append(make_record("a"))
        store.update("a", dict(RESOLUTION))

        with pytest.raises(AlreadyResolved):
            store.update("a", dict(RESOLUTION, actual_outcome=False))

        assert store.get("a").actual_outcome is True

    def test_partial_resolution(self, store):
        store.append(make_record("a"))

        with pytest.raises(PartialResolution):
            store.update("a", {"actual_outcome": True})

        assert store.get("a").resolved_at is None

    def test_null_resolution_field(self, store):
        store.append(make_record("a"))

        with pytest.raises(PartialResolution):
            store.update("a", dict(RESOLUTION, brier_contribution=None))

    def test_extra_field_rejected(self, store):
        store.append(make_record("a"))

        with pytest.raises(PartialResolution):
            store.update("a", dict(RESOLUTION, question="rewritten"))


class TestState:
    def test_initial_state_created(self, store):
        state = store.load_state()

        assert state.total_requests == 0
        assert state.total_resolved == 0
        assert state.average_brier == 0.0
        assert (store.records_dir / STATE_FILE).exists()

    def test_save_stamps_last_updated(self, store):
        state = store.load_state()
        before = state.last_updated

        store.save_state(state)

        assert store.load_state().last_updated >= before

    def test_missing_state_rebuilt_from_log(self, store):
        store.append(make_record("a"))
        store.append(make_record("b"))
        (store.records_dir / STATE_FILE).unlink()

        store.append(make_record("c"))

        assert store.load_state().total_requests == 3

    def test_rebuild_includes_resolutions(self, store):
        store.append(make_record("a", 0.2))
        store.append(make_record("b", 0.6))
        store.update("a", RESOLUTION)
        (store.records_dir / STATE_FILE).unlink()

        state = store.load_state()

        assert state.total_requests == 2
        assert state.total_resolved == 1
        assert state.average_brier == pytest.approx(0.64)
        assert state.cumulative_brier == pytest.approx(0.64)
        assert (store.records_dir / STATE_FILE).exists()
