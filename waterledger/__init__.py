"""
Tamper-evident ledger for water-quality measurements and water distribution.

Components:
- access: owner / verifier / distributor authorization
- safety: fixed-point safety verdict for measurements
- quality: append-only quality records with a per-location index
- distribution: distributions gated on a safe quality record
- facade: WaterLedger, the transactional operation set
- journal: hash-chained transaction journal for persistence and replay
"""

__version__ = "0.1.0"

from .errors import (
    AlreadyConfirmed,
    InvalidParameter,
    InvalidReference,
    JournalIntegrityError,
    LedgerError,
    Unauthorized,
    UnsafeSource,
)
from .events import EventLog, LedgerEvent, MemorySink
from .facade import WaterLedger
from .records import DistributionRecord, DistributionStatus, QualityRecord, SafetyStatus
from .safety import evaluate

__all__ = [
    "__version__",
    "AlreadyConfirmed",
    "DistributionRecord",
    "DistributionStatus",
    "EventLog",
    "InvalidParameter",
    "InvalidReference",
    "JournalIntegrityError",
    "LedgerError",
    "LedgerEvent",
    "MemorySink",
    "QualityRecord",
    "SafetyStatus",
    "Unauthorized",
    "UnsafeSource",
    "WaterLedger",
    "evaluate",
]
