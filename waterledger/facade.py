"""
External operation set for the water ledger.

WaterLedger composes the access registry, the quality and distribution
ledgers and the optional transaction journal. Each public mutating
operation is one transaction:

1. resolve the logical timestamp
2. run every precondition (any failure raises, nothing has changed)
3. apply the state change
4. append the transaction to the journal (rolled back if the append fails)
5. hand exactly one event to the subscribed sinks

Reads never touch the journal or the sinks and are open to any identity.
Operations are expected to be applied one at a time; there is no locking.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator

from .access import AccessRegistry, Role
from .config import CONFIG_FILENAME, LedgerConfig, load_config, write_config
from .distribution import DistributionLedger
from .errors import InvalidParameter, JournalIntegrityError, LedgerError
from .events import (
    EventLog,
    EventSink,
    LedgerEvent,
    delivery_confirmed,
    distribution_tracked,
    quality_recorded,
    role_changed,
)
from .journal import GENESIS_OP, TransactionJournal
from .quality import QualityLedger
from .records import DistributionRecord, DistributionStatus, QualityRecord, SafetyStatus
from .safety import require_int
from .state import LedgerState

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def wall_clock() -> int:
    """Seconds since the epoch."""
    return int(time.time())


class WaterLedger:
    def __init__(
        self,
        owner: str,
        *,
        clock: Clock | None = None,
        sinks: Iterable[EventSink] = (),
        journal: TransactionJournal | None = None,
    ):
        self.state = LedgerState.genesis(owner)
        self.access = AccessRegistry(self.state)
        self.quality = QualityLedger(self.state, self.access)
        self.distribution = DistributionLedger(self.state, self.access, self.quality)
        self.clock: Clock = clock or wall_clock
        self.journal = journal
        self._sinks: list[EventSink] = list(sinks)
        self._replaying = False
        if journal is not None and not journal.exists():
            journal.append(GENESIS_OP, owner, self.clock(), {"owner": owner})

    # --- Construction from a ledger directory ---

    @classmethod
    def create(
        cls,
        ledger_dir: Path,
        config: LedgerConfig,
        *,
        clock: Clock | None = None,
        sinks: Iterable[EventSink] = (),
        log_events: bool = True,
    ) -> WaterLedger:
        """
        Initialize a new ledger directory.

        Writes the config, the journal genesis entry, and one grant per
        genesis verifier/distributor (journaled like any other grant).
        """
        ledger_dir = ledger_dir.resolve()
        journal = TransactionJournal(ledger_dir)
        if journal.exists():
            raise FileExistsError(f"Ledger already initialized: {ledger_dir}")

        write_config(ledger_dir / CONFIG_FILENAME, config)
        all_sinks = [*sinks, EventLog(ledger_dir)] if log_events else list(sinks)
        ledger = cls(config.owner, clock=clock, sinks=all_sinks, journal=journal)
        logger.info("ledger initialized at %s (owner=%s)", ledger_dir, config.owner)

        for target in config.verifiers:
            ledger.grant_verifier(config.owner, target)
        for target in config.distributors:
            ledger.grant_distributor(config.owner, target)
        return ledger

    @classmethod
    def open(
        cls,
        ledger_dir: Path,
        *,
        clock: Clock | None = None,
        sinks: Iterable[EventSink] = (),
        log_events: bool = True,
    ) -> WaterLedger:
        """
        Rebuild a ledger by replaying its journal.

        Raises:
            FileNotFoundError: the directory has no config or no journal
            JournalIntegrityError: the hash chain is broken or does not replay
        """
        ledger_dir = ledger_dir.resolve()
        config = load_config(ledger_dir / CONFIG_FILENAME)
        journal = TransactionJournal(ledger_dir)
        if not journal.exists():
            raise FileNotFoundError(f"No journal in {ledger_dir}; run `waterledger init` first")
        journal.require_valid()

        all_sinks = [*sinks, EventLog(ledger_dir)] if log_events else list(sinks)
        ledger = cls(config.owner, clock=clock, sinks=all_sinks, journal=journal)
        ledger.replay(journal.iter_entries())
        return ledger

    def replay(self, entries: Iterable[Any]) -> int:
        """
        Re-apply journaled transactions without journaling or emitting.

        Returns the number of transactions applied.
        """
        applied = 0
        self._replaying = True
        try:
            for entry in entries:
                if entry.op == GENESIS_OP:
                    if entry.caller != self.state.owner:
                        raise JournalIntegrityError(
                            f"journal genesis owner {entry.caller!r} does not match configured owner {self.state.owner!r}"
                        )
                    continue
                operation = self._replay_ops().get(entry.op)
                if operation is None:
                    raise JournalIntegrityError(f"unknown journal op {entry.op!r} at seq {entry.seq}")
                try:
                    result = operation(entry.caller, **entry.args, timestamp=entry.timestamp)
                except (LedgerError, TypeError) as e:
                    raise JournalIntegrityError(f"journal seq {entry.seq} ({entry.op}) does not replay: {e}") from e
                if result != entry.result:
                    raise JournalIntegrityError(
                        f"journal seq {entry.seq} ({entry.op}) replayed to {result!r}, journal says {entry.result!r}"
                    )
                applied += 1
        finally:
            self._replaying = False
        logger.debug("replayed %d transactions", applied)
        return applied

    def _replay_ops(self) -> dict[str, Callable[..., Any]]:
        return {
            "record_quality": self.record_quality,
            "track_distribution": self.track_distribution,
            "confirm_delivery": self.confirm_delivery,
            "grant_verifier": self.grant_verifier,
            "revoke_verifier": self.revoke_verifier,
            "grant_distributor": self.grant_distributor,
            "revoke_distributor": self.revoke_distributor,
        }

    # --- Event sinks ---

    def subscribe(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    def unsubscribe(self, sink: EventSink) -> None:
        self._sinks.remove(sink)

    # --- Transaction plumbing ---

    @contextmanager
    def _transaction(self, op: str, caller: str) -> Iterator[None]:
        try:
            yield
        except LedgerError as e:
            logger.warning("%s by %s rejected: %s: %s", op, caller, e.kind, e)
            raise

    def _resolve_timestamp(self, timestamp: int | None) -> int:
        ts = require_int("timestamp", self.clock() if timestamp is None else timestamp)
        last = self.state.last_timestamp
        if last is not None and ts < last:
            raise InvalidParameter("timestamp", ts, f"timestamp >= {last}")
        return ts

    def _commit(
        self,
        op: str,
        caller: str,
        timestamp: int,
        args: dict[str, Any],
        result: Any,
        event: LedgerEvent,
        undo: Callable[[], None],
    ) -> None:
        if self.journal is not None and not self._replaying:
            try:
                self.journal.append(op, caller, timestamp, args, result)
            except Exception:
                undo()
                logger.error("%s by %s rolled back: journal append failed", op, caller)
                raise
        self.state.last_timestamp = timestamp

        if self._replaying:
            return
        logger.info("%s by %s committed: %s", op, caller, event.payload)
        for sink in list(self._sinks):
            try:
                sink.emit(event)
            except Exception:
                # Already committed; sink failures never roll back.
                logger.exception("event sink %r failed on %s", sink, event.event_type)

    # --- Quality ---

    def record_quality(
        self,
        caller: str,
        ph: int,
        tds: int,
        turbidity: int,
        temperature: int,
        location: str,
        *,
        timestamp: int | None = None,
    ) -> int:
        """Record a measurement and return its quality ID."""
        with self._transaction("record_quality", caller):
            ts = self._resolve_timestamp(timestamp)
            record = self.quality.record_quality(caller, ph, tds, turbidity, temperature, location, ts)

            def undo() -> None:
                self.state.quality_records.pop()
                ids = self.state.location_index[location]
                ids.pop()
                if not ids:
                    del self.state.location_index[location]

            self._commit(
                "record_quality",
                caller,
                ts,
                {"ph": ph, "tds": tds, "turbidity": turbidity, "temperature": temperature, "location": location},
                record.quality_id,
                quality_recorded(record),
                undo,
            )
            return record.quality_id

    def history_at(self, location: str) -> list[int]:
        return self.quality.history_at(location)

    def latest_safety_at(self, location: str) -> SafetyStatus:
        return self.quality.latest_safety_at(location)

    def get_quality(self, quality_id: int) -> QualityRecord:
        return self.quality.get(quality_id)

    @property
    def next_quality_id(self) -> int:
        return self.quality.next_id

    # --- Distribution ---

    def track_distribution(
        self,
        caller: str,
        source: str,
        destination: str,
        quantity: int,
        quality_id: int,
        *,
        timestamp: int | None = None,
    ) -> int:
        """Track a distribution against a safe quality record; returns its ID."""
        with self._transaction("track_distribution", caller):
            ts = self._resolve_timestamp(timestamp)
            record = self.distribution.track_distribution(caller, source, destination, quantity, quality_id, ts)
            self._commit(
                "track_distribution",
                caller,
                ts,
                {"source": source, "destination": destination, "quantity": quantity, "quality_id": quality_id},
                record.distribution_id,
                distribution_tracked(record),
                self.state.distribution_records.pop,
            )
            return record.distribution_id

    def confirm_delivery(self, caller: str, distribution_id: int, *, timestamp: int | None = None) -> None:
        """Mark a distribution delivered. Only its original distributor may do this, once."""
        with self._transaction("confirm_delivery", caller):
            ts = self._resolve_timestamp(timestamp)
            previous = self.distribution.get(distribution_id)
            record = self.distribution.confirm_delivery(caller, distribution_id, ts)

            def undo() -> None:
                self.state.distribution_records[distribution_id - 1] = previous

            self._commit(
                "confirm_delivery",
                caller,
                ts,
                {"distribution_id": distribution_id},
                None,
                delivery_confirmed(record),
                undo,
            )

    def status_of(self, distribution_id: int) -> DistributionStatus:
        return self.distribution.status_of(distribution_id)

    def get_distribution(self, distribution_id: int) -> DistributionRecord:
        return self.distribution.get(distribution_id)

    @property
    def next_distribution_id(self) -> int:
        return self.distribution.next_id

    # --- Access management ---

    def _change_role(self, op: str, granted: bool, role: Role, caller: str, target: str, timestamp: int | None) -> bool:
        with self._transaction(op, caller):
            ts = self._resolve_timestamp(timestamp)
            if granted:
                changed = self.access.grant(caller, role, target)
            else:
                changed = self.access.revoke(caller, role, target)

            def undo() -> None:
                if not changed:
                    return
                if granted:
                    self.access.revoke(caller, role, target)
                else:
                    self.access.grant(caller, role, target)

            self._commit(
                op,
                caller,
                ts,
                {"target": target},
                changed,
                role_changed(granted, caller, role, target, changed, ts),
                undo,
            )
            return changed

    def grant_verifier(self, caller: str, target: str, *, timestamp: int | None = None) -> bool:
        return self._change_role("grant_verifier", True, "verifier", caller, target, timestamp)

    def revoke_verifier(self, caller: str, target: str, *, timestamp: int | None = None) -> bool:
        return self._change_role("revoke_verifier", False, "verifier", caller, target, timestamp)

    def grant_distributor(self, caller: str, target: str, *, timestamp: int | None = None) -> bool:
        return self._change_role("grant_distributor", True, "distributor", caller, target, timestamp)

    def revoke_distributor(self, caller: str, target: str, *, timestamp: int | None = None) -> bool:
        return self._change_role("revoke_distributor", False, "distributor", caller, target, timestamp)

    @property
    def owner(self) -> str:
        return self.state.owner

    def is_verifier(self, identity: str) -> bool:
        return self.access.is_verifier(identity)

    def is_distributor(self, identity: str) -> bool:
        return self.access.is_distributor(identity)
