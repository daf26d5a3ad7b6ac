"""
Append-only store of water-quality records.

Records are addressed by sequential integer ID (1, 2, 3, ...) and indexed
by location in insertion order. There is no update or delete operation:
once a record is written, its fields and verdict are frozen.
"""

from __future__ import annotations

from .access import AccessRegistry
from .errors import InvalidParameter, InvalidReference
from .records import QualityRecord, SafetyStatus
from .safety import evaluate, validate_measurement
from .state import LedgerState


class QualityLedger:
    """Quality records plus the location -> ID index.

    INVARIANT: records are only ever appended; IDs have no gaps.
    """

    def __init__(self, state: LedgerState, access: AccessRegistry):
        self.state = state
        self.access = access

    @property
    def next_id(self) -> int:
        return self.state.next_quality_id

    def record_quality(
        self,
        caller: str,
        ph: int,
        tds: int,
        turbidity: int,
        temperature: int,
        location: str,
        recorded_at: int,
    ) -> QualityRecord:
        """
        Append a new measurement and return the stored record.

        All checks run before the arena or index is touched, so a failure
        leaves the ledger unchanged.

        Raises:
            Unauthorized: caller is not a verifier
            InvalidParameter: a measurement is out of range or location is not a string
        """
        self.access.require_verifier(caller)
        validate_measurement(ph, tds, turbidity, temperature)
        if not isinstance(location, str):
            raise InvalidParameter("location", location, "a string")

        record = QualityRecord(
            quality_id=self.next_id,
            ph=ph,
            tds=tds,
            turbidity=turbidity,
            temperature=temperature,
            is_safe=evaluate(ph, tds, turbidity),
            verifier=caller,
            location=location,
            recorded_at=recorded_at,
        )
        self.state.quality_records.append(record)
        self.state.location_index.setdefault(location, []).append(record.quality_id)
        return record

    # --- Query methods ---

    def exists(self, quality_id: int) -> bool:
        return (
            isinstance(quality_id, int)
            and not isinstance(quality_id, bool)
            and 1 <= quality_id < self.next_id
        )

    def get(self, quality_id: int) -> QualityRecord:
        """Return the record for an issued ID."""
        if not self.exists(quality_id):
            raise InvalidReference("quality", quality_id)
        return self.state.quality_records[quality_id - 1]

    def history_at(self, location: str) -> list[int]:
        """IDs recorded at exactly `location`, oldest first. Empty if none."""
        return list(self.state.location_index.get(location, ()))

    def latest_safety_at(self, location: str) -> SafetyStatus:
        """Stored verdict of the most recent record at `location`.

        Returns (False, 0) when nothing has been recorded there. The verdict
        is the one frozen at recording time, never recomputed.
        """
        history = self.state.location_index.get(location)
        if not history:
            return SafetyStatus(False, 0)
        latest = self.get(history[-1])
        return SafetyStatus(latest.is_safe, latest.quality_id)
