"""
Explicit ledger state.

All mutable state lives in one LedgerState object that is handed to each
component at construction. Nothing is kept in module globals.

Layout:
- quality_records / distribution_records: arenas where the record with
  ID n sits at index n - 1 (ID 0 is never assigned)
- location_index: location -> quality IDs in insertion order
- verifiers / distributors: authorization sets
- last_timestamp: latest committed logical timestamp
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .records import DistributionRecord, QualityRecord


@dataclass
class LedgerState:
    owner: str
    verifiers: set[str] = field(default_factory=set)
    distributors: set[str] = field(default_factory=set)
    quality_records: list[QualityRecord] = field(default_factory=list)
    distribution_records: list[DistributionRecord] = field(default_factory=list)
    location_index: dict[str, list[int]] = field(default_factory=dict)
    last_timestamp: int | None = None

    @classmethod
    def genesis(cls, owner: str) -> LedgerState:
        """Initial state: owner holds both roles, counters at 1."""
        if not isinstance(owner, str) or not owner.strip():
            raise ValueError("owner identity is required")
        return cls(owner=owner, verifiers={owner}, distributors={owner})

    @property
    def next_quality_id(self) -> int:
        return len(self.quality_records) + 1

    @property
    def next_distribution_id(self) -> int:
        return len(self.distribution_records) + 1

