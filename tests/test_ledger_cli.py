"""
Tests for the waterledger CLI.

Command functions are exercised directly (run_*), and the click group is
driven end to end with CliRunner.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from waterledger.cli import cli
from waterledger.commands.ledger_cmd import run_confirm, run_init, run_record, run_role_change, run_track
from waterledger.commands.query_cmd import (
    run_events,
    run_history,
    run_latest,
    run_roles,
    run_status,
    run_verify,
)
from waterledger.journal import TransactionJournal

OWNER = "authority:board"
VERIFIER = "lab:north"
DISTRIBUTOR = "truck:07"


def test_run_record_and_history(ledger_dir: Path, capsys) -> None:
    assert run_record(ledger_dir, VERIFIER, ph=700, tds=500, turbidity=2, temperature=250, location="Well-A") == 0
    assert run_record(ledger_dir, VERIFIER, ph=300, tds=500, turbidity=2, temperature=250, location="Well-A") == 0
    capsys.readouterr()

    assert run_history(ledger_dir, "Well-A", output_json=True) == 0
    assert json.loads(capsys.readouterr().out) == {"location": "Well-A", "quality_ids": [1, 2]}

    assert run_latest(ledger_dir, "Well-A", output_json=True) == 0
    assert json.loads(capsys.readouterr().out) == {"location": "Well-A", "is_safe": False, "quality_id": 2}


def test_run_record_unauthorized(ledger_dir: Path, capsys) -> None:
    code = run_record(ledger_dir, DISTRIBUTOR, ph=700, tds=500, turbidity=2, temperature=250, location="Well-A")
    assert code == 1
    assert "Unauthorized" in capsys.readouterr().err


def test_run_track_confirm_status(ledger_dir: Path, capsys) -> None:
    run_record(ledger_dir, VERIFIER, ph=700, tds=500, turbidity=2, temperature=250, location="Well-A")
    assert run_track(ledger_dir, DISTRIBUTOR, source="Well-A", destination="Village-1", quantity=500, quality_id=1) == 0
    assert run_confirm(ledger_dir, DISTRIBUTOR, 1) == 0
    capsys.readouterr()

    assert run_confirm(ledger_dir, DISTRIBUTOR, 1) == 1
    assert "AlreadyConfirmed" in capsys.readouterr().err

    assert run_status(ledger_dir, 1, output_json=True) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["delivered"] is True
    assert data["quantity"] == 500
    assert data["source_location"] == "Well-A"
    assert data["destination_location"] == "Village-1"


def test_run_track_unsafe_source(ledger_dir: Path, capsys) -> None:
    run_record(ledger_dir, VERIFIER, ph=300, tds=500, turbidity=2, temperature=250, location="Well-B")
    capsys.readouterr()
    code = run_track(ledger_dir, DISTRIBUTOR, source="Well-B", destination="Village-2", quantity=50, quality_id=1)
    assert code == 1
    assert "UnsafeSource" in capsys.readouterr().err


def test_run_status_unknown(ledger_dir: Path, capsys) -> None:
    assert run_status(ledger_dir, 7) == 1
    assert "InvalidReference" in capsys.readouterr().err


def test_run_role_change_owner_only(ledger_dir: Path, capsys) -> None:
    assert run_role_change(ledger_dir, VERIFIER, "verifier", "lab:south", grant=True) == 1
    assert run_role_change(ledger_dir, OWNER, "verifier", "lab:south", grant=True) == 0
    assert run_role_change(ledger_dir, OWNER, "distributor", DISTRIBUTOR, grant=False) == 0


def test_run_events_filters(ledger_dir: Path, capsys) -> None:
    run_record(ledger_dir, VERIFIER, ph=700, tds=500, turbidity=2, temperature=250, location="Well-A")
    capsys.readouterr()

    assert run_events(ledger_dir, event_types=["quality.recorded"], output_json=True) == 0
    events = json.loads(capsys.readouterr().out)
    assert [e["event_type"] for e in events] == ["quality.recorded"]
    assert events[0]["payload"]["quality_id"] == 1

    assert run_events(ledger_dir, last_n=1, output_json=True) == 0
    assert len(json.loads(capsys.readouterr().out)) == 1


def test_run_verify(ledger_dir: Path, capsys) -> None:
    assert run_verify(ledger_dir) == 0
    capsys.readouterr()
    journal = TransactionJournal(ledger_dir)
    text = journal.path.read_text(encoding="utf-8")
    journal.path.write_text(text.replace('"op":"grant_verifier"', '"op":"grant_distributor"'), encoding="utf-8")

    assert run_verify(ledger_dir, output_json=True) == 1
    report = json.loads(capsys.readouterr().out)
    assert report["ok"] is False
    assert report["broken_at"] == 1


def test_commands_on_missing_ledger(tmp_path: Path, capsys) -> None:
    assert run_history(tmp_path / "nope", "Well-A") == 1
    assert "Ledger not found" in capsys.readouterr().err


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_cli_end_to_end(tmp_path: Path, runner: CliRunner) -> None:
    d = str(tmp_path / "ledger")

    result = runner.invoke(
        cli, ["-d", d, "init", "--owner", OWNER, "--verifier", VERIFIER, "--distributor", DISTRIBUTOR, "--at", "100"]
    )
    assert result.exit_code == 0, result.output

    result = runner.invoke(
        cli,
        ["-d", d, "--as", VERIFIER, "record", "--ph", "700", "--tds", "500", "--turbidity", "2",
         "--temperature", "250", "--location", "Well-A", "--at", "200", "--json"],
    )
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["is_safe"] is True

    result = runner.invoke(
        cli,
        ["-d", d, "--as", DISTRIBUTOR, "track", "--source", "Well-A", "--dest", "Village-1",
         "--quantity", "500", "--quality-id", "1", "--at", "300"],
    )
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, ["-d", d, "--as", DISTRIBUTOR, "confirm", "1", "--at", "400"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, ["-d", d, "--as", DISTRIBUTOR, "confirm", "1", "--at", "500"])
    assert result.exit_code == 1

    result = runner.invoke(cli, ["-d", d, "status", "1", "--json"])
    assert result.exit_code == 0
    assert json.loads(result.output)["confirmed_at"] == 400

    result = runner.invoke(cli, ["-d", d, "verify"])
    assert result.exit_code == 0
    assert "intact" in result.output


def test_cli_mutation_requires_identity(tmp_path: Path, runner: CliRunner, monkeypatch) -> None:
    monkeypatch.delenv("WATERLEDGER_IDENTITY", raising=False)
    d = str(tmp_path / "ledger")
    runner.invoke(cli, ["-d", d, "init", "--owner", OWNER])
    result = runner.invoke(cli, ["-d", d, "confirm", "1"])
    assert result.exit_code == 2
    assert "--as" in result.output


def test_cli_identity_from_env(tmp_path: Path, runner: CliRunner) -> None:
    d = str(tmp_path / "ledger")
    runner.invoke(cli, ["-d", d, "init", "--owner", OWNER])
    result = runner.invoke(cli, ["-d", d, "grant", "verifier", VERIFIER], env={"WATERLEDGER_IDENTITY": OWNER})
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, ["-d", d, "roles", "--json"])
    assert VERIFIER in json.loads(result.output)["verifiers"]


def test_bracketed_names_print_literally(ledger_dir: Path, capsys) -> None:
    location = "[/]Well [bold]A"
    assert run_record(ledger_dir, VERIFIER, ph=700, tds=500, turbidity=2, temperature=250, location=location) == 0
    assert location in capsys.readouterr().out

    assert run_track(ledger_dir, DISTRIBUTOR, source=location, destination="[red]", quantity=5, quality_id=1) == 0
    assert run_history(ledger_dir, location) == 0
    assert run_latest(ledger_dir, location) == 0
    assert run_status(ledger_dir, 1) == 0
    assert run_role_change(ledger_dir, OWNER, "verifier", "[/lab]", grant=True) == 0
    assert run_roles(ledger_dir) == 0
    assert run_events(ledger_dir) == 0
    out = capsys.readouterr().out
    assert f"{location}: safe (quality #1)" in out
    assert "[red]" in out
    assert "[/lab]" in out


def test_init_rejects_blank_identity_without_writing(tmp_path: Path, capsys) -> None:
    d = tmp_path / "ledger"
    assert run_init(d, OWNER, verifiers=("",)) == 1
    assert "verifiers" in capsys.readouterr().err
    assert not TransactionJournal(d).exists()

    assert run_init(d, OWNER, verifiers=(VERIFIER,)) == 0
    assert run_roles(d, output_json=True) == 0
    capsys.readouterr()


def test_init_strips_identities(tmp_path: Path, capsys) -> None:
    d = tmp_path / "ledger"
    assert run_init(d, f" {OWNER} ", verifiers=(f" {VERIFIER} ", VERIFIER)) == 0
    capsys.readouterr()

    assert run_roles(d, output_json=True) == 0
    roles = json.loads(capsys.readouterr().out)
    assert roles["owner"] == OWNER
    assert VERIFIER in roles["verifiers"]
    grants = [e for e in TransactionJournal(d).read_all() if e.op == "grant_verifier"]
    assert [e.args["target"] for e in grants] == [VERIFIER]
