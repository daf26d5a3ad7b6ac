"""
Error kinds raised by ledger operations.

Every error aborts the invoking operation before any state is mutated and
before any event is emitted. Errors propagate verbatim to the caller; the
ledger has no internal recovery path.
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base class for all ledger operation failures."""

    kind = "LedgerError"


class Unauthorized(LedgerError):
    """Caller lacks the role required by the operation."""

    kind = "Unauthorized"

    def __init__(self, caller: str, required: str):
        self.caller = caller
        self.required = required
        super().__init__(f"{caller!r} is not authorized: requires {required}")


class InvalidParameter(LedgerError, ValueError):
    """A numeric input is outside its legal range."""

    kind = "InvalidParameter"

    def __init__(self, field: str, value: Any, constraint: str):
        self.field = field
        self.value = value
        self.constraint = constraint
        super().__init__(f"invalid {field}={value!r}: must satisfy {constraint}")


class InvalidReference(LedgerError, LookupError):
    """A referenced record ID was never issued."""

    kind = "InvalidReference"

    def __init__(self, record_kind: str, ref_id: Any):
        self.record_kind = record_kind
        self.ref_id = ref_id
        super().__init__(f"no {record_kind} record with id {ref_id!r}")


class UnsafeSource(LedgerError):
    """Distribution referenced a quality record whose stored verdict is unsafe."""

    kind = "UnsafeSource"

    def __init__(self, quality_id: int):
        self.quality_id = quality_id
        super().__init__(f"quality record {quality_id} failed the safety evaluation")


class AlreadyConfirmed(LedgerError):
    """Delivery confirmation attempted on an already delivered record."""

    kind = "AlreadyConfirmed"

    def __init__(self, distribution_id: int):
        self.distribution_id = distribution_id
        super().__init__(f"distribution {distribution_id} is already confirmed as delivered")


class JournalIntegrityError(LedgerError):
    """The transaction journal does not replay to a consistent ledger."""

    kind = "JournalIntegrityError"
