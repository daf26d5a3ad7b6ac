"""
Append-only store of distribution records.

Every distribution references exactly one quality record, and that record
must carry a safe verdict when the distribution is created. The single
mutation the ledger ever applies to an existing record lives here:
Created -> Delivered, one-way and one-shot, by the original distributor.
"""

from __future__ import annotations

from .access import AccessRegistry
from .errors import AlreadyConfirmed, InvalidParameter, InvalidReference, Unauthorized, UnsafeSource
from .quality import QualityLedger
from .records import DistributionRecord, DistributionStatus
from .safety import require_int
from .state import LedgerState


class DistributionLedger:
    def __init__(self, state: LedgerState, access: AccessRegistry, quality: QualityLedger):
        self.state = state
        self.access = access
        self.quality = quality

    @property
    def next_id(self) -> int:
        return self.state.next_distribution_id

    def track_distribution(
        self,
        caller: str,
        source: str,
        destination: str,
        quantity: int,
        quality_id: int,
        created_at: int,
    ) -> DistributionRecord:
        """
        Append a distribution against a safe quality record.

        Checks run in this order: role, quantity, reference, verdict.

        Raises:
            Unauthorized: caller is not a distributor
            InvalidParameter: quantity is not a positive integer
            InvalidReference: quality_id was never issued
            UnsafeSource: the referenced record failed the safety evaluation
        """
        self.access.require_distributor(caller)
        quantity = require_int("quantity", quantity)
        if quantity <= 0:
            raise InvalidParameter("quantity", quantity, "quantity > 0")
        for name, value in (("source", source), ("destination", destination)):
            if not isinstance(value, str):
                raise InvalidParameter(name, value, "a string")

        quality_record = self.quality.get(quality_id)
        if not quality_record.is_safe:
            raise UnsafeSource(quality_id)

        record = DistributionRecord(
            distribution_id=self.next_id,
            source_location=source,
            destination_location=destination,
            quantity=quantity,
            quality_ref=quality_id,
            distributor=caller,
            created_at=created_at,
        )
        self.state.distribution_records.append(record)
        return record

    def confirm_delivery(self, caller: str, distribution_id: int, confirmed_at: int) -> DistributionRecord:
        """
        Mark a distribution as delivered.

        A second confirmation is an error, not a no-op. Only the identity
        that created the record may confirm it, whether or not it still
        holds the distributor role.

        Raises:
            InvalidReference: distribution_id was never issued
            AlreadyConfirmed: the record is already delivered
            Unauthorized: caller is not the original distributor
        """
        record = self.get(distribution_id)
        if record.delivered:
            raise AlreadyConfirmed(distribution_id)
        if caller != record.distributor:
            raise Unauthorized(caller, f"original distributor {record.distributor!r}")

        confirmed = record.confirmed(confirmed_at)
        self.state.distribution_records[distribution_id - 1] = confirmed
        return confirmed

    # --- Query methods ---

    def exists(self, distribution_id: int) -> bool:
        return (
            isinstance(distribution_id, int)
            and not isinstance(distribution_id, bool)
            and 1 <= distribution_id < self.next_id
        )

    def get(self, distribution_id: int) -> DistributionRecord:
        if not self.exists(distribution_id):
            raise InvalidReference("distribution", distribution_id)
        return self.state.distribution_records[distribution_id - 1]

    def status_of(self, distribution_id: int) -> DistributionStatus:
        record = self.get(distribution_id)
        return DistributionStatus(
            delivered=record.delivered,
            quantity=record.quantity,
            source=record.source_location,
            destination=record.destination_location,
        )

    def by_distributor(self, distributor: str) -> list[DistributionRecord]:
        return [r for r in self.state.distribution_records if r.distributor == distributor]

    def pending(self) -> list[DistributionRecord]:
        """Distributions not yet confirmed as delivered."""
        return [r for r in self.state.distribution_records if not r.delivered]
