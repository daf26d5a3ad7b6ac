"""Read-only ledger commands. None of these journal or emit events."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..errors import LedgerError
from ..events import EventLog, format_event
from ..journal import TransactionJournal
from .ledger_cmd import open_ledger


def run_history(ledger_dir: Path, location: str, *, output_json: bool = False) -> int:
    console = Console()
    err = Console(stderr=True)
    ledger = open_ledger(ledger_dir, err)
    if ledger is None:
        return 1

    ids = ledger.history_at(location)
    if output_json:
        print(json.dumps({"location": location, "quality_ids": ids}))
        return 0
    if not ids:
        console.print(f"No quality records at {escape(location)}", style="dim")
        return 0

    table = Table(title=f"Quality history: {escape(location)}")
    table.add_column("id", style="cyan", justify="right")
    table.add_column("pH", justify="right")
    table.add_column("tds", justify="right")
    table.add_column("turbidity", justify="right")
    table.add_column("temp °C", justify="right")
    table.add_column("verdict")
    table.add_column("verifier", style="magenta")
    table.add_column("recorded_at", style="dim")

    for quality_id in ids:
        r = ledger.get_quality(quality_id)
        table.add_row(
            str(r.quality_id),
            f"{r.ph / 100:.2f}",
            str(r.tds),
            str(r.turbidity),
            f"{r.temperature / 10:.1f}",
            "[green]safe[/green]" if r.is_safe else "[red]unsafe[/red]",
            escape(r.verifier),
            str(r.recorded_at),
        )
    console.print(table)
    return 0


def run_latest(ledger_dir: Path, location: str, *, output_json: bool = False) -> int:
    console = Console()
    err = Console(stderr=True)
    ledger = open_ledger(ledger_dir, err)
    if ledger is None:
        return 1

    status = ledger.latest_safety_at(location)
    if output_json:
        print(json.dumps({"location": location, "is_safe": status.is_safe, "quality_id": status.quality_id}))
        return 0
    if status.quality_id == 0:
        console.print(f"{escape(location)}: no measurements (treated as unsafe)", style="yellow")
    elif status.is_safe:
        console.print(f"{escape(location)}: safe (quality #{status.quality_id})", style="green")
    else:
        console.print(f"{escape(location)}: UNSAFE (quality #{status.quality_id})", style="bold red")
    return 0


def run_status(ledger_dir: Path, distribution_id: int, *, output_json: bool = False) -> int:
    console = Console()
    err = Console(stderr=True)
    ledger = open_ledger(ledger_dir, err)
    if ledger is None:
        return 1
    try:
        record = ledger.get_distribution(distribution_id)
    except LedgerError as e:
        err.print(f"{e.kind}: {escape(str(e))}", style="bold red")
        return 1

    if output_json:
        print(json.dumps(record.to_dict(), indent=2, sort_keys=True))
        return 0
    state = "delivered" if record.delivered else "in transit"
    console.print(
        f"#{record.distribution_id}: {escape(record.source_location)} -> {escape(record.destination_location)}, "
        f"{record.quantity} L ({state})"
    )
    console.print(f"  distributor: {escape(record.distributor)}", style="dim")
    console.print(f"  quality: #{record.quality_ref}", style="dim")
    if record.confirmed_at is not None:
        console.print(f"  confirmed_at: {record.confirmed_at}", style="dim")
    return 0


def run_quality_show(ledger_dir: Path, quality_id: int) -> int:
    err = Console(stderr=True)
    ledger = open_ledger(ledger_dir, err)
    if ledger is None:
        return 1
    try:
        record = ledger.get_quality(quality_id)
    except LedgerError as e:
        err.print(f"{e.kind}: {escape(str(e))}", style="bold red")
        return 1
    print(json.dumps(record.to_dict(), indent=2, sort_keys=True))
    return 0


def run_roles(ledger_dir: Path, *, output_json: bool = False) -> int:
    console = Console()
    err = Console(stderr=True)
    ledger = open_ledger(ledger_dir, err)
    if ledger is None:
        return 1

    data = {
        "owner": ledger.owner,
        "verifiers": ledger.access.members("verifier"),
        "distributors": ledger.access.members("distributor"),
    }
    if output_json:
        print(json.dumps(data, indent=2))
        return 0

    table = Table(title="Roles")
    table.add_column("identity", style="cyan")
    table.add_column("owner")
    table.add_column("verifier")
    table.add_column("distributor")
    identities = sorted({data["owner"], *data["verifiers"], *data["distributors"]})
    for identity in identities:
        table.add_row(
            escape(identity),
            "✓" if identity == data["owner"] else "",
            "✓" if identity in data["verifiers"] else "",
            "✓" if identity in data["distributors"] else "",
        )
    console.print(table)
    return 0


def run_events(
    ledger_dir: Path,
    *,
    last_n: int | None = None,
    event_types: list[str] | None = None,
    output_json: bool = False,
) -> int:
    console = Console()
    events = EventLog(ledger_dir).read_events(last_n=last_n, event_types=event_types or None)

    if output_json:
        print(json.dumps([e.to_dict() for e in events], indent=2))
        return 0
    if not events:
        console.print("No events recorded.", style="dim")
        return 0
    for event in events:
        console.print(format_event(event), markup=False, highlight=False)
    return 0


def run_verify(ledger_dir: Path, *, output_json: bool = False) -> int:
    console = Console()
    journal = TransactionJournal(ledger_dir)
    report = journal.verify()

    if output_json:
        print(json.dumps(report.to_dict(), indent=2))
        return 0 if report.ok else 1

    if report.ok and report.entries == 0:
        console.print("Journal is empty.", style="yellow")
    elif report.ok:
        console.print(f"Journal intact: {report.entries} entries, head {report.head}", style="green")
    else:
        console.print(f"Journal BROKEN at entry {report.broken_at}: {escape(report.reason or '')}", style="bold red")
    return 0 if report.ok else 1
