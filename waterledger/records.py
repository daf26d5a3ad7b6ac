"""
Record types stored by the ledgers.

QualityRecord is frozen for its whole lifetime. DistributionRecord is frozen
too; the one permitted transition (delivery confirmation) replaces the
stored record with a confirmed copy via `confirmed()`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, NamedTuple


@dataclass(frozen=True)
class QualityRecord:
    """A single water-quality measurement with its frozen verdict."""

    quality_id: int
    ph: int  # x100
    tds: int  # ppm
    turbidity: int  # NTU
    temperature: int  # degrees C x10
    is_safe: bool
    verifier: str
    location: str
    recorded_at: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "quality_id": self.quality_id,
            "ph": self.ph,
            "tds": self.tds,
            "turbidity": self.turbidity,
            "temperature": self.temperature,
            "is_safe": self.is_safe,
            "verifier": self.verifier,
            "location": self.location,
            "recorded_at": self.recorded_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QualityRecord:
        """Reconstruct from JSON dict."""
        return cls(
            quality_id=int(data["quality_id"]),
            ph=int(data["ph"]),
            tds=int(data["tds"]),
            turbidity=int(data["turbidity"]),
            temperature=int(data["temperature"]),
            is_safe=bool(data["is_safe"]),
            verifier=data["verifier"],
            location=data["location"],
            recorded_at=int(data["recorded_at"]),
        )


@dataclass(frozen=True)
class DistributionRecord:
    """A quantity of water moved between two locations."""

    distribution_id: int
    source_location: str
    destination_location: str
    quantity: int  # liters
    quality_ref: int
    distributor: str
    created_at: int
    delivered: bool = False
    confirmed_at: int | None = None

    def confirmed(self, confirmed_at: int) -> DistributionRecord:
        """Return the delivered copy of this record."""
        return replace(self, delivered=True, confirmed_at=confirmed_at)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "distribution_id": self.distribution_id,
            "source_location": self.source_location,
            "destination_location": self.destination_location,
            "quantity": self.quantity,
            "quality_ref": self.quality_ref,
            "distributor": self.distributor,
            "created_at": self.created_at,
            "delivered": self.delivered,
            "confirmed_at": self.confirmed_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DistributionRecord:
        """Reconstruct from JSON dict."""
        confirmed_at = data.get("confirmed_at")
        return cls(
            distribution_id=int(data["distribution_id"]),
            source_location=data["source_location"],
            destination_location=data["destination_location"],
            quantity=int(data["quantity"]),
            quality_ref=int(data["quality_ref"]),
            distributor=data["distributor"],
            created_at=int(data["created_at"]),
            delivered=bool(data.get("delivered", False)),
            confirmed_at=int(confirmed_at) if confirmed_at is not None else None,
        )


class SafetyStatus(NamedTuple):
    """Result of latest_safety_at: (is_safe, quality_id)."""

    is_safe: bool
    quality_id: int


class DistributionStatus(NamedTuple):
    """Result of status_of: (delivered, quantity, source, destination)."""

    delivered: bool
    quantity: int
    source: str
    destination: str
