"""Tests for the keyed record store and its backends."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

import pytest

from budget_core import (
    Entry,
    JSONStorage,
    LedgerService,
    MemoryStorage,
    PendingEdit,
    RecordStore,
    StorageUnavailable,
    ValidationError,
)


def _entry(entry_id: str = "a1", amount: str = "10.00") -> Entry:
    return Entry(id=entry_id, amount=Decimal(amount), category="Food", date="2024-05-01", note="")


class BrokenStorage:
    """Backend that fails every operation, like a full or locked disk."""

    def load(self, key):
        raise StorageUnavailable("disk gone")

    def save(self, key, payload):
        raise StorageUnavailable("quota exceeded")

    def remove(self, key):
        raise StorageUnavailable("read-only")


def test_missing_collection_reads_as_empty(store: RecordStore) -> None:
    assert store.get("expense") == []
    assert store.get("income") == []


def test_put_replaces_whole_collection(store: RecordStore) -> None:
    store.put("expense", [_entry("a1"), _entry("a2")])
    store.put("expense", [_entry("a3")])

    assert [entry.id for entry in store.get("expense")] == ["a3"]
    assert store.get("income") == []


def test_corrupt_payloads_degrade_to_empty(backend: MemoryStorage, store: RecordStore) -> None:
    backend.blobs["expenses"] = "{not json"
    backend.blobs["incomes"] = json.dumps({"amount": 5})

    assert store.get("expense") == []
    assert store.get("income") == []


def test_non_dict_items_are_skipped_and_bad_amounts_become_zero(
    backend: MemoryStorage, store: RecordStore
) -> None:
    backend.blobs["expenses"] = json.dumps([
        "junk",
        {"amount": "abc", "category": "Food", "date": "2024-05-01"},
        {"amount": 3, "category": "Health", "date": "2024-05-02", "note": None},
    ])

    entries = store.get("expense")

    assert len(entries) == 2
    assert entries[0].amount == Decimal("0")
    assert entries[1].amount == Decimal("3")
    assert entries[1].note == ""


def test_out_of_range_stored_amounts_count_as_zero(backend: MemoryStorage, store: RecordStore) -> None:
    backend.blobs["expenses"] = json.dumps([
        {"amount": "1e999999999999", "category": "Food", "date": "2024-05-01"},
        {"amount": "1e-999999999999", "category": "Food", "date": "2024-05-02"},
        {"amount": "12.50", "category": "Food", "date": "2024-05-03"},
    ])

    entries = store.get("expense")
    totals = LedgerService(store).totals()

    assert [entry.amount for entry in entries] == [Decimal("0"), Decimal("0"), Decimal("12.50")]
    assert totals.expense == Decimal("12.50")
    assert totals.to_dict()["balance"] == "-12.50"


def test_legacy_records_get_stable_ids(backend: MemoryStorage, store: RecordStore) -> None:
    backend.blobs["expenses"] = json.dumps([{"amount": 20, "category": "Food", "date": "2024-05-01"}])

    first = store.get("expense")[0].id
    second = store.get("expense")[0].id

    assert first.startswith("legacy-")
    assert first == second


def test_unavailable_backend_never_raises() -> None:
    store = RecordStore(BrokenStorage())

    assert store.get("expense") == []
    assert store.put("expense", [_entry()]) is False
    assert store.last_write_ok is False
    assert store.clear("income") is False
    assert store.get_pending() is None


def test_unknown_collection_is_rejected(store: RecordStore) -> None:
    with pytest.raises(ValidationError):
        store.get("transfers")


def test_pending_edit_round_trip(store: RecordStore) -> None:
    assert store.get_pending() is None

    store.put_pending(PendingEdit(type="income", entry_id="abc"))
    assert store.get_pending() == PendingEdit(type="income", entry_id="abc")

    store.clear_pending()
    assert store.get_pending() is None


def test_malformed_pending_edit_is_ignored(backend: MemoryStorage, store: RecordStore) -> None:
    backend.blobs["pending_edit"] = json.dumps({"type": "expense"})

    assert store.get_pending() is None


def test_json_storage_persists_across_instances(tmp_path: Path) -> None:
    RecordStore(JSONStorage(tmp_path)).put("income", [_entry("i1", "99.90")])

    reloaded = RecordStore(JSONStorage(tmp_path)).get("income")

    assert reloaded == [_entry("i1", "99.90")]
    payload = json.loads((tmp_path / "incomes.json").read_text(encoding="utf-8"))
    assert payload[0]["amount"] == "99.90"
    assert not (tmp_path / "incomes.json.tmp").exists()


def test_json_storage_corrupt_file_raises_unavailable(tmp_path: Path) -> None:
    (tmp_path / "expenses.json").write_text("[1, 2", encoding="utf-8")
    storage = JSONStorage(tmp_path)

    with pytest.raises(StorageUnavailable):
        storage.load("expenses")
    assert RecordStore(storage).get("expense") == []


def test_json_storage_clear_removes_file(tmp_path: Path) -> None:
    store = RecordStore(JSONStorage(tmp_path))
    store.put("expense", [_entry()])

    assert store.clear("expense") is True
    assert not (tmp_path / "expenses.json").exists()
    assert store.clear("expense") is True
