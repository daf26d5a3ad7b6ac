from __future__ import annotations

import pytest

from waterledger.errors import InvalidParameter, InvalidReference, Unauthorized
from waterledger.events import QUALITY_RECORDED
from waterledger.records import SafetyStatus

OWNER = "authority:board"
VERIFIER = "lab:north"
DISTRIBUTOR = "truck:07"


def test_ids_are_sequential_across_locations_and_verifiers(ledger) -> None:
    ids = [
        ledger.record_quality(VERIFIER, 700, 500, 2, 250, "Well-A"),
        ledger.record_quality(OWNER, 700, 500, 2, 250, "Well-B"),
        ledger.record_quality(VERIFIER, 300, 500, 2, 250, "Well-A"),
        ledger.record_quality(OWNER, 700, 500, 2, 250, "River"),
    ]
    assert ids == [1, 2, 3, 4]
    assert ledger.next_quality_id == 5


def test_record_fields_are_stored(ledger, clock) -> None:
    quality_id = ledger.record_quality(VERIFIER, 700, 500, 2, 250, "Well-A")
    record = ledger.get_quality(quality_id)
    assert record.quality_id == 1
    assert (record.ph, record.tds, record.turbidity, record.temperature) == (700, 500, 2, 250)
    assert record.is_safe is True
    assert record.verifier == VERIFIER
    assert record.location == "Well-A"
    assert record.recorded_at == clock.now


def test_records_are_immutable(ledger) -> None:
    record = ledger.get_quality(ledger.record_quality(VERIFIER, 700, 500, 2, 250, "Well-A"))
    with pytest.raises(AttributeError):
        record.is_safe = False  # type: ignore[misc]


def test_history_is_per_location_in_insertion_order(ledger) -> None:
    ledger.record_quality(VERIFIER, 700, 500, 2, 250, "Well-A")
    ledger.record_quality(VERIFIER, 700, 500, 2, 250, "Well-B")
    ledger.record_quality(VERIFIER, 300, 500, 2, 250, "Well-A")
    ledger.record_quality(VERIFIER, 700, 500, 2, 250, "well-a")

    assert ledger.history_at("Well-A") == [1, 3]
    assert ledger.history_at("Well-B") == [2]
    assert ledger.history_at("well-a") == [4]
    assert ledger.history_at("Nowhere") == []


def test_history_returns_a_copy(ledger) -> None:
    ledger.record_quality(VERIFIER, 700, 500, 2, 250, "Well-A")
    ledger.history_at("Well-A").append(99)
    assert ledger.history_at("Well-A") == [1]


def test_latest_safety_without_history(ledger) -> None:
    assert ledger.latest_safety_at("Nowhere") == SafetyStatus(False, 0)
    assert ledger.latest_safety_at("Nowhere") == (False, 0)


def test_latest_safety_follows_most_recent_record(ledger) -> None:
    ledger.record_quality(VERIFIER, 700, 500, 2, 250, "Well-A")
    assert ledger.latest_safety_at("Well-A") == (True, 1)

    ledger.record_quality(VERIFIER, 900, 500, 2, 250, "Well-A")
    assert ledger.latest_safety_at("Well-A") == (False, 2)

    ledger.record_quality(VERIFIER, 700, 500, 2, 250, "Well-B")
    assert ledger.latest_safety_at("Well-A") == (False, 2)


def test_latest_safety_returns_stored_verdict(ledger) -> None:
    ledger.record_quality(VERIFIER, 700, 500, 2, 250, "Well-A")
    # Stored verdict is authoritative, even if the arena holds a different value
    record = ledger.get_quality(1)
    ledger.state.quality_records[0] = type(record)(**{**record.to_dict(), "is_safe": False})
    assert ledger.latest_safety_at("Well-A") == (False, 1)


def test_non_verifier_rejected_without_state_change(ledger, sink) -> None:
    with pytest.raises(Unauthorized):
        ledger.record_quality(DISTRIBUTOR, 700, 500, 2, 250, "Well-A")
    assert ledger.next_quality_id == 1
    assert ledger.history_at("Well-A") == []
    assert sink.events == []


def test_invalid_parameter_rejected_without_state_change(ledger, sink) -> None:
    with pytest.raises(InvalidParameter) as excinfo:
        ledger.record_quality(VERIFIER, 700, 500, 2, 0, "Well-A")
    assert excinfo.value.field == "temperature"
    assert ledger.next_quality_id == 1
    assert ledger.history_at("Well-A") == []
    assert sink.events == []


def test_revoked_verifier_blocked_and_data_kept(ledger) -> None:
    ledger.record_quality(VERIFIER, 700, 500, 2, 250, "Well-A")
    before = ledger.get_quality(1)

    ledger.revoke_verifier(OWNER, VERIFIER)
    with pytest.raises(Unauthorized):
        ledger.record_quality(VERIFIER, 700, 500, 2, 250, "Well-A")

    assert ledger.get_quality(1) == before
    assert ledger.history_at("Well-A") == [1]


def test_get_unknown_record(ledger) -> None:
    for bad in (0, 1, -1):
        with pytest.raises(InvalidReference):
            ledger.get_quality(bad)


def test_event_payload(ledger, sink) -> None:
    ledger.record_quality(VERIFIER, 300, 500, 2, 250, "Well-B")
    assert len(sink.events) == 1
    event = sink.events[0]
    assert event.event_type == QUALITY_RECORDED
    assert event.actor == VERIFIER
    assert event.payload == {"quality_id": 1, "location": "Well-B", "is_safe": False, "verifier": VERIFIER}
