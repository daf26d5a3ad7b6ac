"""
Domain events emitted by committed ledger operations.

Each mutating operation emits exactly one event, and only after its state
change has been applied. Events are handed to sinks for external
observation; nothing inside the ledger consumes them.

EventLog is the file-backed sink: one event per line in events.jsonl.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .records import DistributionRecord, QualityRecord

# Event type constants
QUALITY_RECORDED = "quality.recorded"
DISTRIBUTION_TRACKED = "distribution.tracked"
DELIVERY_CONFIRMED = "delivery.confirmed"
ROLE_GRANTED = "role.granted"
ROLE_REVOKED = "role.revoked"

# All valid event types
EVENT_TYPES = frozenset({
    QUALITY_RECORDED,
    DISTRIBUTION_TRACKED,
    DELIVERY_CONFIRMED,
    ROLE_GRANTED,
    ROLE_REVOKED,
})


@dataclass(frozen=True)
class LedgerEvent:
    """
    Immutable notification of a committed operation.

    timestamp is the logical timestamp of the commit, supplied by the
    execution environment.
    """

    event_type: str  # One of EVENT_TYPES
    timestamp: int
    actor: str
    payload: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.event_type not in EVENT_TYPES:
            raise ValueError(f"Invalid event_type: {self.event_type}")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "event_type": self.event_type,
            "timestamp": self.timestamp,
            "actor": self.actor,
            "payload": self.payload,
        }

    def to_json(self) -> str:
        """Serialize to JSON string (single line)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LedgerEvent:
        return cls(
            event_type=data["event_type"],
            timestamp=int(data["timestamp"]),
            actor=data["actor"],
            payload=data.get("payload", {}),
        )

    @classmethod
    def from_json(cls, line: str) -> LedgerEvent:
        return cls.from_dict(json.loads(line))


# Payload fields for each event type
EVENT_PAYLOAD_FIELDS = {
    QUALITY_RECORDED: ("quality_id", "location", "is_safe", "verifier"),
    DISTRIBUTION_TRACKED: ("distribution_id", "source", "destination", "quantity", "distributor"),
    DELIVERY_CONFIRMED: ("distribution_id", "confirmed_at"),
    ROLE_GRANTED: ("role", "target", "changed"),
    ROLE_REVOKED: ("role", "target", "changed"),
}


def quality_recorded(record: QualityRecord) -> LedgerEvent:
    return LedgerEvent(
        QUALITY_RECORDED,
        timestamp=record.recorded_at,
        actor=record.verifier,
        payload={
            "quality_id": record.quality_id,
            "location": record.location,
            "is_safe": record.is_safe,
            "verifier": record.verifier,
        },
    )


def distribution_tracked(record: DistributionRecord) -> LedgerEvent:
    return LedgerEvent(
        DISTRIBUTION_TRACKED,
        timestamp=record.created_at,
        actor=record.distributor,
        payload={
            "distribution_id": record.distribution_id,
            "source": record.source_location,
            "destination": record.destination_location,
            "quantity": record.quantity,
            "distributor": record.distributor,
        },
    )


def delivery_confirmed(record: DistributionRecord) -> LedgerEvent:
    if record.confirmed_at is None:
        raise ValueError(f"distribution {record.distribution_id} is not confirmed")
    return LedgerEvent(
        DELIVERY_CONFIRMED,
        timestamp=record.confirmed_at,
        actor=record.distributor,
        payload={
            "distribution_id": record.distribution_id,
            "confirmed_at": record.confirmed_at,
        },
    )


def role_changed(granted: bool, owner: str, role: str, target: str, changed: bool, timestamp: int) -> LedgerEvent:
    return LedgerEvent(
        ROLE_GRANTED if granted else ROLE_REVOKED,
        timestamp=timestamp,
        actor=owner,
        payload={"role": role, "target": target, "changed": changed},
    )


@runtime_checkable
class EventSink(Protocol):
    """Receives events after their operation has committed."""

    def emit(self, event: LedgerEvent) -> None: ...


class MemorySink:
    """Keeps emitted events in a list."""

    def __init__(self) -> None:
        self.events: list[LedgerEvent] = []

    def emit(self, event: LedgerEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[LedgerEvent]:
        return [e for e in self.events if e.event_type == event_type]


class EventLog:
    """
    Append-only JSON Lines sink.

    Location: events.jsonl in the ledger directory.
    """

    def __init__(self, ledger_dir: Path):
        self.ledger_dir = ledger_dir
        self.path = ledger_dir / "events.jsonl"

    def emit(self, event: LedgerEvent) -> None:
        self.ledger_dir.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(event.to_json() + "\n")

    def read_events(
        self,
        last_n: int | None = None,
        event_types: list[str] | None = None,
    ) -> list[LedgerEvent]:
        """
        Read events with optional filtering.

        Args:
            last_n: If specified, return only the last N matching events
            event_types: Filter to specific event types

        Returns:
            Events in emission order
        """
        if not self.path.exists():
            return []

        events = []
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                event = LedgerEvent.from_json(line)
                if event_types and event.event_type not in event_types:
                    continue
                events.append(event)

        if last_n is not None:
            return events[-last_n:] if last_n > 0 else []
        return events


def format_event(event: LedgerEvent) -> str:
    """Format an event for human-readable display."""
    icon = {
        QUALITY_RECORDED: "+",
        DISTRIBUTION_TRACKED: ">",
        DELIVERY_CONFIRMED: "✓",
        ROLE_GRANTED: "↑",
        ROLE_REVOKED: "↓",
    }.get(event.event_type, "?")

    p = event.payload
    if event.event_type == QUALITY_RECORDED:
        verdict = "safe" if p.get("is_safe") else "UNSAFE"
        detail = f"quality #{p.get('quality_id')} at {p.get('location')} ({verdict})"
    elif event.event_type == DISTRIBUTION_TRACKED:
        detail = (
            f"distribution #{p.get('distribution_id')} {p.get('source')} -> "
            f"{p.get('destination')} ({p.get('quantity')} L)"
        )
    elif event.event_type == DELIVERY_CONFIRMED:
        detail = f"distribution #{p.get('distribution_id')} delivered"
    else:
        detail = f"{p.get('role')} {p.get('target')}" + ("" if p.get("changed") else " (no change)")

    return f"{icon} [{event.timestamp}] {event.event_type} by {event.actor}: {detail}"
