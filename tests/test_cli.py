"""Tests for research_oracle/cli.py."""

import pytest
from click.testing import CliRunner

from research_oracle import cli as cli_module
from research_oracle.cli import cli
from research_oracle.database.db import RecordStore
from research_oracle.llm.offline import MOCK_RESPONSES, OfflineProvider
from research_oracle.llm.models import AnalystRole

QUESTION = "Will the river flood this spring?"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def records_dir(tmp_path):
    return str(tmp_path / "cli-records")


def invoke(runner, records_dir, *args):
    return runner.invoke(cli, ["--records-dir", records_dir, "--provider", "offline", *args])


def stored_ids(records_dir):
    return [record.request_id for record in RecordStore(records_dir).get_all()]


class TestEstimateCommand:
    def test_estimate(self, runner, records_dir):
        result = invoke(runner, records_dir, "estimate", QUESTION, "--no-attest")

        assert result.exit_code == 0, result.output
        assert "CONSENSUS" in result.output
        assert "43.0%" in result.output
        assert len(stored_ids(records_dir)) == 1

    def test_estimate_json(self, runner, records_dir):
        result = invoke(runner, records_dir, "estimate", QUESTION, "--no-attest", "--json")

        assert result.exit_code == 0, result.output
        assert '"request_id"' in result.output
        assert '"confidence_weighted"' in result.output

    def test_estimate_with_simulated_ledger(self, runner, records_dir, protocol, monkeypatch):
        monkeypatch.setattr(cli_module, "get_attestation_protocol", lambda: protocol)

        result = invoke(runner, records_dir, "estimate", QUESTION, "--category", "events")

        assert result.exit_code == 0, result.output
        assert "simtx_" in result.output
        assert protocol.fetch_attestation(QUESTION) is not None

    def test_invalid_question(self, runner, records_dir):
        result = invoke(runner, records_dir, "estimate", "Short?", "--no-attest")

        assert result.exit_code == 1
        assert "question" in result.output
        assert stored_ids(records_dir) == []

    def test_analyst_failure_message_is_generic(self, runner, records_dir, monkeypatch):
        responses = dict(MOCK_RESPONSES)
        responses[AnalystRole.CONTRARIAN] = dict(responses[AnalystRole.CONTRARIAN], confidence="??")
        monkeypatch.setattr(
            cli_module, "create_provider", lambda name=None: OfflineProvider(responses)
        )

        result = invoke(runner, records_dir, "estimate", QUESTION, "--no-attest")

        assert result.exit_code == 1
        assert "Failed to process estimate request" in result.output
        assert stored_ids(records_dir) == []


class TestResolveCommand:
    def test_show_and_resolve(self, runner, records_dir):
        invoke(runner, records_dir, "estimate", QUESTION, "--no-attest")
        (request_id,) = stored_ids(records_dir)

        shown = invoke(runner, records_dir, "show", request_id)
        assert shown.exit_code == 0, shown.output
        assert "unresolved" in shown.output

        resolved = invoke(runner, records_dir, "resolve", request_id, "--outcome", "yes")
        assert resolved.exit_code == 0, resolved.output
        assert "Brier contribution: 0.3249" in resolved.output

        again = invoke(runner, records_dir, "resolve", request_id, "--outcome", "no")
        assert again.exit_code == 1
        assert "already been resolved" in again.output

    def test_invalid_outcome(self, runner, records_dir):
        result = invoke(runner, records_dir, "resolve", "some-id", "--outcome", "maybe")

        assert result.exit_code == 1
        assert "Invalid outcome" in result.output

    def test_unknown_request(self, runner, records_dir):
        assert invoke(runner, records_dir, "show", "missing").exit_code == 1
        assert invoke(runner, records_dir, "resolve", "missing", "--outcome", "no").exit_code == 1


class TestCalibrationCommand:
    def test_empty(self, runner, records_dir):
        result = invoke(runner, records_dir, "calibration")

        assert result.exit_code == 0, result.output
        assert "No resolved estimates yet" in result.output

    def test_with_resolution(self, runner, records_dir):
        invoke(runner, records_dir, "estimate", QUESTION, "--no-attest")
        (request_id,) = stored_ids(records_dir)
        invoke(runner, records_dir, "resolve", request_id, "--outcome", "no")

        result = invoke(runner, records_dir, "calibration")

        assert result.exit_code == 0, result.output
        assert "0.1849" in result.output
        assert "40-50%" in result.output


class TestLedgerCommands:
    def test_addresses(self, runner, protocol, monkeypatch):
        monkeypatch.setattr(cli_module, "get_attestation_protocol", lambda: protocol)

        result = runner.invoke(cli, ["addresses", QUESTION])

        assert result.exit_code == 0, result.output
        assert str(protocol.oracle_state_address()) in result.output
        assert str(protocol.attestation_address(QUESTION)) in result.output

    def test_addresses_without_ledger(self, runner):
        result = runner.invoke(cli, ["addresses"])

        assert result.exit_code == 1
        assert "Ledger is not configured" in result.output

    def test_init_ledger(self, runner, protocol, ledger, monkeypatch):
        monkeypatch.setattr(cli_module, "get_attestation_protocol", lambda: protocol)

        first = runner.invoke(cli, ["init-ledger"])
        second = runner.invoke(cli, ["init-ledger"])

        assert first.exit_code == second.exit_code == 0
        assert len(ledger.submitted) == 1
