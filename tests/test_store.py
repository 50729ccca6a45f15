"""Tests for the TransactionStore and the key-value backends."""

import json
from decimal import Decimal
from pathlib import Path

import pytest

from ledger.models.transaction import ImportedTransaction, Transaction
from ledger.services.storage import (
    DuplicateError,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    NotFoundError,
    StorageError,
    ValidationError,
)
from ledger.services.storage.transaction_store import TransactionStore, storage_key_for


def _candidate(**overrides) -> ImportedTransaction:
    fields = {
        "id": "c1",
        "date": "2024-02-01",
        "title": "Imported",
        "amount": Decimal("10"),
        "category": "Misc",
        "type": "expense",
    }
    fields.update(overrides)
    return ImportedTransaction(**fields)


class TestStoreMutations:
    """Tests for add/replace/remove/clear."""

    def test_add_appends_and_persists(self, store, kv_store, make_transaction):
        """Test add stores the record under the user-scoped key."""
        transaction = store.add(make_transaction(id="t1"))

        assert store.list_transactions() == [transaction]
        stored = json.loads(kv_store.get("transactions_alice"))
        assert len(stored) == 1
        assert stored[0]["id"] == "t1"
        assert stored[0]["type"] == "expense"
        assert Decimal(stored[0]["amount"]) == Decimal("50.00")

    def test_add_accepts_mapping(self, store):
        """Test add validates plain form input and assigns an id."""
        transaction = store.add({
            "date": "2024-01-02",
            "title": "Paycheck",
            "amount": "2500",
            "category": "Salary",
            "type": "income",
        })
        assert transaction.id
        assert transaction.amount == Decimal("2500")

    def test_each_mutation_writes_once(self, store, kv_store, make_transaction):
        """Test every mutation persists exactly once."""
        store.add(make_transaction(id="t1"))
        assert kv_store.write_count == 1
        store.replace("t1", make_transaction(title="Changed"))
        assert kv_store.write_count == 2
        store.remove("t1")
        assert kv_store.write_count == 3

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_add_rejects_non_positive_amount(self, store, kv_store, amount):
        """Test amount must be positive."""
        with pytest.raises(ValidationError) as exc_info:
            store.add({
                "date": "2024-01-02", "title": "Bad", "amount": amount,
                "category": "X", "type": "expense",
            })
        assert any(issue.field == "amount" for issue in exc_info.value.issues)
        assert len(store) == 0
        assert kv_store.write_count == 0

    def test_add_rejects_empty_title(self, store):
        """Test title must be non-empty after trimming."""
        with pytest.raises(ValidationError) as exc_info:
            store.add({
                "date": "2024-01-02", "title": "   ", "amount": "5",
                "category": "X", "type": "expense",
            })
        issue = exc_info.value.issues[0]
        assert issue.field == "title"
        assert issue.issue_type == "empty"

    def test_add_rejects_missing_field(self, store):
        """Test required fields must be present."""
        with pytest.raises(ValidationError) as exc_info:
            store.add({"title": "No date", "amount": "5", "category": "X", "type": "expense"})
        assert [i.issue_type for i in exc_info.value.issues] == ["missing"]

    def test_add_rejects_duplicate_id(self, store, make_transaction):
        """Test ids stay unique."""
        store.add(make_transaction(id="t1"))
        with pytest.raises(DuplicateError):
            store.add(make_transaction(id="t1", title="Other"))
        assert len(store) == 1

    def test_duplicate_error_is_validation_error(self):
        """Test callers catching ValidationError also see duplicates."""
        assert issubclass(DuplicateError, ValidationError)
        assert issubclass(ValidationError, StorageError)

    def test_add_accepts_future_date_with_warning(self, store, make_transaction):
        """Test semantic warnings do not block."""
        transaction = store.add(make_transaction(date="2999-01-01"))
        assert transaction in store.list_transactions()

    def test_replace_keeps_position_and_id(self, store, make_transaction):
        """Test replace swaps the full record in place."""
        for tid in ("a", "b", "c"):
            store.add(make_transaction(id=tid, title=f"Item {tid}"))

        updated = store.replace("b", {
            "date": "2024-05-05", "title": "Edited", "amount": "7",
            "category": "Other", "type": "income",
        })

        assert updated.id == "b"
        assert [t.id for t in store.list_transactions()] == ["a", "b", "c"]
        assert store.get_transaction("b").title == "Edited"

    def test_replace_forces_original_id(self, store, make_transaction):
        """Test the stored record carries the id being replaced."""
        store.add(make_transaction(id="a"))
        updated = store.replace("a", make_transaction(id="something-else", title="New"))
        assert updated.id == "a"
        assert "something-else" not in store

    def test_replace_unknown_id(self, store, make_transaction):
        """Test replacing a missing id fails."""
        with pytest.raises(NotFoundError):
            store.replace("missing", make_transaction())

    def test_replace_rejects_invalid_record(self, store, make_transaction):
        """Test an invalid replacement leaves the original untouched."""
        original = store.add(make_transaction(id="a"))
        with pytest.raises(ValidationError):
            store.replace("a", {"date": "2024-01-01", "title": "", "amount": "1",
                                "category": "X", "type": "income"})
        assert store.get_transaction("a") == original

    def test_remove(self, store, make_transaction):
        """Test remove deletes exactly one record."""
        store.add(make_transaction(id="a"))
        store.add(make_transaction(id="b"))

        removed = store.remove("a")

        assert removed.id == "a"
        assert [t.id for t in store.list_transactions()] == ["b"]
        with pytest.raises(NotFoundError):
            store.remove("a")

    def test_clear_deletes_key(self, store, kv_store, make_transaction):
        """Test clear removes every record and the stored key."""
        store.add(make_transaction())
        store.add(make_transaction())

        assert store.clear() == 2
        assert store.list_transactions() == []
        assert "transactions_alice" not in kv_store


class TestStoreSnapshots:
    """Tests for read access."""

    def test_snapshot_is_detached(self, store, make_transaction):
        """Test a snapshot does not change when the store does."""
        store.add(make_transaction(id="a"))
        snapshot = store.snapshot()
        store.add(make_transaction(id="b"))

        assert isinstance(snapshot, tuple)
        assert [t.id for t in snapshot] == ["a"]

    def test_list_is_a_copy(self, store, make_transaction):
        """Test mutating the returned list does not touch the store."""
        store.add(make_transaction())
        listed = store.list_transactions()
        listed.clear()
        assert len(store) == 1

    def test_get_transaction_missing(self, store):
        assert store.get_transaction("nope") is None


class TestStoreLoading:
    """Tests for reading the persisted collection."""

    def test_reload_round_trip(self, kv_store, make_transaction):
        """Test a new store sees what a previous one wrote."""
        first = TransactionStore(kv_store, "alice")
        first.add(make_transaction(id="a", amount=Decimal("12.34")))
        first.add(make_transaction(id="b", type="income"))

        second = TransactionStore(kv_store, "alice")
        assert second.list_transactions() == first.list_transactions()

    def test_users_are_isolated(self, kv_store, make_transaction):
        """Test each user has a separate key."""
        TransactionStore(kv_store, "alice").add(make_transaction())
        assert len(TransactionStore(kv_store, "bob")) == 0

    def test_loads_numeric_amounts(self):
        """Test collections written with JSON numbers load."""
        kv = InMemoryKeyValueStore({
            "transactions_alice": json.dumps([{
                "id": "_k2j3h4", "date": "2024-01-01", "title": "Rent",
                "amount": 1200.5, "category": "Housing", "type": "expense",
            }]),
        })
        store = TransactionStore(kv, "alice")
        assert store.get_transaction("_k2j3h4").amount == Decimal("1200.5")

    def test_invalid_stored_records_skipped(self):
        """Test bad records in storage are dropped, good ones kept."""
        kv = InMemoryKeyValueStore({
            "transactions_alice": json.dumps([
                {"id": "ok", "date": "2024-01-01", "title": "Fine", "amount": 1,
                 "category": "X", "type": "income"},
                {"id": "bad", "date": "2024-01-01", "title": "Broken", "amount": -1,
                 "category": "X", "type": "income"},
                {"id": "ok", "date": "2024-01-02", "title": "Dup", "amount": 1,
                 "category": "X", "type": "income"},
            ]),
        })
        store = TransactionStore(kv, "alice")
        assert [t.title for t in store.list_transactions()] == ["Fine"]

    def test_corrupt_json_raises(self):
        """Test unreadable storage fails visibly."""
        kv = InMemoryKeyValueStore({"transactions_alice": "{not json"})
        with pytest.raises(StorageError, match="corrupt"):
            TransactionStore(kv, "alice")

    def test_non_list_raises(self):
        kv = InMemoryKeyValueStore({"transactions_alice": json.dumps({"id": "x"})})
        with pytest.raises(StorageError, match="not a list"):
            TransactionStore(kv, "alice")

    def test_user_id_required(self, kv_store):
        with pytest.raises(ValueError):
            TransactionStore(kv_store, "")

    def test_storage_key(self):
        """Test the user-scoped key format."""
        assert storage_key_for("alice") == "transactions_alice"
        assert storage_key_for("alice", key_prefix="tx_") == "tx_alice"


class TestMergeImported:
    """Tests for merging CSV candidates."""

    def test_inserts_new_candidates_in_order(self, store):
        """Test candidates are appended in sequence order."""
        inserted = store.merge_imported([_candidate(id="x"), _candidate(id="y")])
        assert inserted == 2
        assert [t.id for t in store.list_transactions()] == ["x", "y"]

    def test_merge_is_idempotent(self, store):
        """Test merging the same candidates twice inserts nothing the second time."""
        candidates = [_candidate(id="x"), _candidate(id="y")]
        assert store.merge_imported(candidates) == 2
        assert store.merge_imported(candidates) == 0
        assert len(store) == 2

    def test_existing_ids_skipped(self, store, make_transaction):
        """Test ids already in the store are treated as duplicates."""
        original = store.add(make_transaction(id="x", title="Original"))
        result = store.merge_imported_detailed([_candidate(id="x", title="Imported")])

        assert result.inserted == 0
        assert result.duplicates == 1
        assert store.get_transaction("x") == original

    def test_repeated_id_in_batch(self, store):
        """Test only the first occurrence of an id inside a batch is kept."""
        result = store.merge_imported_detailed([
            _candidate(id="x", title="First"),
            _candidate(id="x", title="Second"),
        ])
        assert result.inserted == 1
        assert result.duplicates == 1
        assert store.get_transaction("x").title == "First"

    def test_invalid_candidates_skipped(self, store):
        """Test NaN amounts and unknown types are rejected without raising."""
        result = store.merge_imported_detailed([
            _candidate(id="nan", amount=Decimal("NaN")),
            _candidate(id="refund", type="refund"),
            _candidate(id="empty", title=""),
            _candidate(id="good"),
        ])
        assert result.inserted == 1
        assert result.invalid == 3
        assert [t.id for t in store.list_transactions()] == ["good"]

    def test_no_write_when_nothing_inserted(self, store, kv_store):
        """Test an all-duplicate merge does not rewrite storage."""
        store.merge_imported([_candidate(id="x")])
        writes = kv_store.write_count
        store.merge_imported([_candidate(id="x")])
        assert kv_store.write_count == writes

    def test_accepts_transactions(self, store, make_transaction):
        """Test already-valid Transactions can be merged too."""
        assert store.merge_imported([make_transaction(id="t")]) == 1


class TestJsonFileKeyValueStore:
    """Tests for the file-backed key-value store."""

    def test_set_get_delete(self, tmp_path: Path):
        kv = JsonFileKeyValueStore(tmp_path / "kv")
        assert kv.get("transactions_alice") is None

        kv.set("transactions_alice", "[]")
        assert kv.get("transactions_alice") == "[]"
        assert (tmp_path / "kv" / "transactions_alice.json").exists()

        kv.delete("transactions_alice")
        assert kv.get("transactions_alice") is None

    def test_delete_missing_key(self, tmp_path: Path):
        """Test deleting a key that was never written is fine."""
        JsonFileKeyValueStore(tmp_path).delete("transactions_nobody")

    def test_rejects_path_like_keys(self, tmp_path: Path):
        kv = JsonFileKeyValueStore(tmp_path)
        with pytest.raises(StorageError):
            kv.set("../escape", "[]")

    def test_store_over_files(self, tmp_path: Path, make_transaction):
        """Test the transaction store persists across instances on disk."""
        kv = JsonFileKeyValueStore(tmp_path)
        TransactionStore(kv, "alice").add(make_transaction(id="a"))

        reloaded = TransactionStore(JsonFileKeyValueStore(tmp_path), "alice")
        assert [t.id for t in reloaded.list_transactions()] == ["a"]
