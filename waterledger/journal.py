"""
Hash-chained transaction journal.

Every committed operation is appended to journal.jsonl as one entry:

    {"seq": 3, "op": "record_quality", "caller": "...", "timestamp": 1700000000,
     "args": {...}, "result": 2, "prev_hash": "...", "hash": "..."}

`hash` is the sha256 of the canonical JSON of the entry without its `hash`
field, and `prev_hash` is the hash of the previous entry (64 zeros for the
genesis entry). Rewriting or dropping any line breaks the chain from that
point on, which `verify()` reports.

INVARIANT: this class NEVER modifies existing journal lines.
A failed append is truncated back to the previous end of file.
The only write operation is append().
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from .errors import JournalIntegrityError

logger = logging.getLogger(__name__)

GENESIS_PREV_HASH = "0" * 64
GENESIS_OP = "genesis"


def compute_hash(data: dict[str, Any]) -> str:
    """sha256 of canonical JSON."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class JournalEntry:
    seq: int
    op: str
    caller: str
    timestamp: int
    args: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    prev_hash: str = GENESIS_PREV_HASH
    hash: str = ""

    def body(self) -> dict[str, Any]:
        """Hashed fields (everything except `hash`)."""
        return {
            "seq": self.seq,
            "op": self.op,
            "caller": self.caller,
            "timestamp": self.timestamp,
            "args": self.args,
            "result": self.result,
            "prev_hash": self.prev_hash,
        }

    def expected_hash(self) -> str:
        return compute_hash(self.body())

    def to_dict(self) -> dict[str, Any]:
        d = self.body()
        d["hash"] = self.hash
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JournalEntry:
        return cls(
            seq=int(data["seq"]),
            op=data["op"],
            caller=data["caller"],
            timestamp=int(data["timestamp"]),
            args=data.get("args", {}),
            result=data.get("result"),
            prev_hash=data.get("prev_hash", GENESIS_PREV_HASH),
            hash=data.get("hash", ""),
        )


@dataclass
class VerificationReport:
    ok: bool
    entries: int
    head: str | None = None
    broken_at: int | None = None  # line number (0-based) of first bad entry
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"ok": self.ok, "entries": self.entries, "head": self.head}
        if self.broken_at is not None:
            result["broken_at"] = self.broken_at
        if self.reason is not None:
            result["reason"] = self.reason
        return result


class TransactionJournal:
    """
    Append-only journal of committed transactions.

    Storage format: JSON Lines (.jsonl), one entry per line.
    Location: journal.jsonl in the ledger directory.
    """

    def __init__(self, ledger_dir: Path):
        self.ledger_dir = ledger_dir
        self.path = ledger_dir / "journal.jsonl"
        self._head: str | None = None
        self._next_seq: int | None = None

    def _ensure_dir(self) -> None:
        self.ledger_dir.mkdir(parents=True, exist_ok=True)

    def exists(self) -> bool:
        return self.path.exists() and self.count() > 0

    def _load_head(self) -> None:
        if self._next_seq is not None:
            return
        last: JournalEntry | None = None
        for last in self.iter_entries():
            pass
        self._head = last.hash if last else None
        self._next_seq = last.seq + 1 if last else 0

    def append(self, op: str, caller: str, timestamp: int, args: dict[str, Any], result: Any = None) -> JournalEntry:
        """Chain and append a committed transaction."""
        self._load_head()
        seq = self._next_seq or 0

        if seq == 0 and op != GENESIS_OP:
            raise JournalIntegrityError("journal must start with a genesis entry")

        unsigned = JournalEntry(
            seq=seq,
            op=op,
            caller=caller,
            timestamp=timestamp,
            args=args,
            result=result,
            prev_hash=self._head or GENESIS_PREV_HASH,
        )
        entry = JournalEntry(**{**unsigned.body(), "hash": unsigned.expected_hash()})

        self._ensure_dir()
        line = entry.to_json() + "\n"
        size = self.path.stat().st_size if self.path.exists() else 0
        try:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError:
            # Drop any partial line so the file still ends on an entry boundary
            if self.path.exists():
                os.truncate(self.path, size)
            raise

        self._head = entry.hash
        self._next_seq = entry.seq + 1
        logger.debug("journal seq=%d op=%s hash=%s", entry.seq, op, entry.hash[:12])
        return entry

    def iter_entries(self) -> Iterator[JournalEntry]:
        """Iterate over entries in append order."""
        if not self.path.exists():
            return
        with self.path.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield JournalEntry.from_dict(json.loads(line))
                except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                    raise JournalIntegrityError(f"malformed journal line {lineno + 1}: {e}") from e

    def read_all(self) -> list[JournalEntry]:
        return list(self.iter_entries())

    def count(self) -> int:
        if not self.path.exists():
            return 0
        with self.path.open("r", encoding="utf-8") as f:
            return sum(1 for line in f if line.strip())

    def verify(self) -> VerificationReport:
        """Walk the chain and report the first inconsistency, if any."""
        prev_hash = GENESIS_PREV_HASH
        seen = 0
        try:
            for entry in self.iter_entries():
                reason = _check_link(entry, seen, prev_hash)
                if reason is not None:
                    return VerificationReport(False, seen, prev_hash if seen else None, seen, reason)
                prev_hash = entry.hash
                seen += 1
        except JournalIntegrityError as e:
            return VerificationReport(False, seen, prev_hash if seen else None, seen, str(e))

        return VerificationReport(True, seen, prev_hash if seen else None)

    def require_valid(self) -> None:
        report = self.verify()
        if not report.ok:
            raise JournalIntegrityError(f"journal broken at entry {report.broken_at}: {report.reason}")


def _check_link(entry: JournalEntry, index: int, prev_hash: str) -> str | None:
    if entry.seq != index:
        return f"expected seq {index}, found {entry.seq}"
    if index == 0 and entry.op != GENESIS_OP:
        return "first entry is not genesis"
    if entry.prev_hash != prev_hash:
        return "prev_hash does not match previous entry"
    if entry.hash != entry.expected_hash():
        return "entry hash does not match its content"
    return None
