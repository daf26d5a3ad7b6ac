"""Mutating ledger commands: init, record, track, confirm, grant, revoke."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..access import Role
from ..config import LedgerConfig
from ..errors import LedgerError
from ..facade import WaterLedger


def open_ledger(ledger_dir: Path, err: Console) -> WaterLedger | None:
    """Open the ledger, printing a message and returning None on failure."""
    try:
        return WaterLedger.open(ledger_dir)
    except FileNotFoundError as e:
        err.print(f"Ledger not found: {escape(str(e))}", style="bold red")
    except (LedgerError, ValueError) as e:
        err.print(f"Cannot open ledger: {escape(str(e))}", style="bold red")
    return None


def _rejected(err: Console, e: LedgerError) -> int:
    err.print(f"{e.kind}: {escape(str(e))}", style="bold red")
    return 1


def run_init(
    ledger_dir: Path,
    owner: str,
    *,
    verifiers: tuple[str, ...] = (),
    distributors: tuple[str, ...] = (),
    timestamp: int | None = None,
) -> int:
    console = Console()
    err = Console(stderr=True)
    clock = (lambda: timestamp) if timestamp is not None else None
    try:
        config = LedgerConfig(owner=owner, verifiers=verifiers, distributors=distributors)
        ledger = WaterLedger.create(ledger_dir, config, clock=clock)
    except FileExistsError as e:
        err.print(escape(str(e)), style="bold red")
        return 1
    except (LedgerError, ValueError) as e:
        err.print(f"Cannot initialize ledger: {escape(str(e))}", style="bold red")
        return 1

    console.print(f"Initialized ledger at {escape(str(ledger_dir))} (owner: {escape(ledger.owner)})", style="green")
    return 0


def run_record(
    ledger_dir: Path,
    caller: str,
    *,
    ph: int,
    tds: int,
    turbidity: int,
    temperature: int,
    location: str,
    timestamp: int | None = None,
    output_json: bool = False,
) -> int:
    console = Console()
    err = Console(stderr=True)
    ledger = open_ledger(ledger_dir, err)
    if ledger is None:
        return 1
    try:
        quality_id = ledger.record_quality(caller, ph, tds, turbidity, temperature, location, timestamp=timestamp)
    except LedgerError as e:
        return _rejected(err, e)

    record = ledger.get_quality(quality_id)
    if output_json:
        print(json.dumps(record.to_dict(), indent=2, sort_keys=True))
        return 0
    verdict = "[green]safe[/green]" if record.is_safe else "[bold red]UNSAFE[/bold red]"
    console.print(f"Recorded quality #{quality_id} at {escape(location)}: {verdict}")
    return 0


def run_track(
    ledger_dir: Path,
    caller: str,
    *,
    source: str,
    destination: str,
    quantity: int,
    quality_id: int,
    timestamp: int | None = None,
    output_json: bool = False,
) -> int:
    console = Console()
    err = Console(stderr=True)
    ledger = open_ledger(ledger_dir, err)
    if ledger is None:
        return 1
    try:
        distribution_id = ledger.track_distribution(
            caller, source, destination, quantity, quality_id, timestamp=timestamp
        )
    except LedgerError as e:
        return _rejected(err, e)

    if output_json:
        print(json.dumps(ledger.get_distribution(distribution_id).to_dict(), indent=2, sort_keys=True))
        return 0
    console.print(
        f"Tracked distribution #{distribution_id}: {escape(source)} -> {escape(destination)} "
        f"({quantity} L, quality #{quality_id})"
    )
    return 0


def run_confirm(ledger_dir: Path, caller: str, distribution_id: int, *, timestamp: int | None = None) -> int:
    console = Console()
    err = Console(stderr=True)
    ledger = open_ledger(ledger_dir, err)
    if ledger is None:
        return 1
    try:
        ledger.confirm_delivery(caller, distribution_id, timestamp=timestamp)
    except LedgerError as e:
        return _rejected(err, e)

    console.print(f"Distribution #{distribution_id} confirmed as delivered", style="green")
    return 0


def run_role_change(
    ledger_dir: Path,
    caller: str,
    role: Role,
    target: str,
    *,
    grant: bool,
    timestamp: int | None = None,
) -> int:
    console = Console()
    err = Console(stderr=True)
    ledger = open_ledger(ledger_dir, err)
    if ledger is None:
        return 1

    operations = {
        ("verifier", True): ledger.grant_verifier,
        ("verifier", False): ledger.revoke_verifier,
        ("distributor", True): ledger.grant_distributor,
        ("distributor", False): ledger.revoke_distributor,
    }
    try:
        changed = operations[(role, grant)](caller, target, timestamp=timestamp)
    except LedgerError as e:
        return _rejected(err, e)

    action = "Granted" if grant else "Revoked"
    suffix = "" if changed else " (no change)"
    console.print(f"{action} {role} role for {escape(target)}{suffix}")
    return 0
