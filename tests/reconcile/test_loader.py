import pytest

from sigmerge.domain.exceptions import ConnectivityError, DecodeError
from sigmerge.domain.models import SignatureRecord
from sigmerge.domain.ports.progress import ProgressPhase
from sigmerge.domain.reconcile import load_record_set


def test_load_builds_distinct_record_set(fake_store, progress):
    handle = fake_store.collection("source_tx")
    handle.documents = [
        {"_id": 1, "signature": "a", "slot": 1},
        {"_id": 2, "signature": "a", "slot": 1},
        {"_id": 3, "signature": "a", "slot": 1, "confirmation_status": "finalized"},
        {"_id": 4, "signature": "b"},
    ]

    records = load_record_set(handle, progress, role="source")

    assert records.collection == "source_tx"
    assert records.scanned == 4
    assert len(records) == 3
    assert SignatureRecord(signature="a", slot=1) in records
    assert SignatureRecord(signature="a", slot=1, confirmation_status="finalized") in records
    assert progress.messages[0] == "Loading source collection 'source_tx' into memory..."
    assert progress.messages[-1] == "Source collection 'source_tx' loaded with 4 documents."


def test_load_reports_progress_every_ten_thousand(fake_store, progress):
    handle = fake_store.collection("big")
    handle.documents = [{"signature": f"sig-{idx}"} for idx in range(25_000)]

    records = load_record_set(handle, progress, role="target")

    assert len(records) == 25_000
    ticks = [event.count for event in progress.events if event.message.startswith("Loaded ")]
    assert ticks == [10_000, 20_000]
    assert all(event.phase == ProgressPhase.LOAD for event in progress.events)
    assert "Loaded 10000 documents from target collection into memory..." in progress.messages


def test_load_without_progress_callback(fake_store):
    handle = fake_store.collection("quiet")
    handle.documents = [{"signature": "a"}]
    assert len(load_record_set(handle)) == 1


def test_malformed_document_fails_whole_load(fake_store):
    handle = fake_store.collection("target_tx")
    handle.documents = [
        {"_id": 1, "signature": "a"},
        {"_id": 2, "signature": "b"},
        {"_id": 3, "signature": "c", "slot": "not-a-number"},
        {"_id": 4, "signature": "d"},
    ]

    with pytest.raises(DecodeError) as exc:
        load_record_set(handle, role="target")

    err = exc.value
    assert err.collection == "target_tx"
    assert err.processed == 2
    assert err.field == "slot"
    assert err.document_id == "3"
    assert err.details["collection"] == "target_tx"
    assert "target collection 'target_tx'" in err.message


def test_cursor_failure_carries_processed_count(fake_store):
    handle = fake_store.collection("flaky")
    handle.documents = [{"signature": str(idx)} for idx in range(10)]
    handle.read_error_after = 6

    with pytest.raises(ConnectivityError) as exc:
        load_record_set(handle, role="source")

    assert exc.value.processed == 6
    assert exc.value.collection == "flaky"
    assert "after 6 documents" in exc.value.message
