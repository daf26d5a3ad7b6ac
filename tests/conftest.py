"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from waterledger.config import LedgerConfig
from waterledger.events import MemorySink
from waterledger.facade import WaterLedger

OWNER = "authority:board"
VERIFIER = "lab:north"
DISTRIBUTOR = "truck:07"


class TickClock:
    """Logical clock advancing by one on every read."""

    def __init__(self, start: int = 1000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture
def clock() -> TickClock:
    return TickClock()


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def bare_ledger(clock: TickClock, sink: MemorySink) -> WaterLedger:
    """In-memory ledger at genesis (owner holds both roles)."""
    return WaterLedger(OWNER, clock=clock, sinks=[sink])


@pytest.fixture
def ledger(bare_ledger: WaterLedger, sink: MemorySink) -> WaterLedger:
    """In-memory ledger with one verifier and one distributor granted; sink cleared."""
    bare_ledger.grant_verifier(OWNER, VERIFIER)
    bare_ledger.grant_distributor(OWNER, DISTRIBUTOR)
    sink.events.clear()
    return bare_ledger


@pytest.fixture
def ledger_dir(tmp_path: Path, clock: TickClock) -> Path:
    """Initialized on-disk ledger directory."""
    path = tmp_path / ".waterledger"
    WaterLedger.create(
        path,
        LedgerConfig(owner=OWNER, verifiers=(VERIFIER,), distributors=(DISTRIBUTOR,)),
        clock=clock,
    )
    return path
