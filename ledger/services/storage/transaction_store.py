"""
Transaction Store

The store owns one user's canonical, ordered collection of transactions.
It is the only mutable state in the ledger: the query engine and the
aggregator receive snapshots from it, never a live handle.

Persistence:
- The collection is read once, when the store is constructed.
- Every mutating call writes the FULL collection back as JSON under
  "<key_prefix><user_id>", exactly once, before returning.
- clear() removes the key entirely.

Storage order is insertion order. Display order is derived elsewhere.
"""

import json
from collections.abc import Iterable
from typing import Optional

import pydantic
import structlog

from ledger.config import get_settings
from ledger.models.transaction import ImportedTransaction, ImportResult, Transaction
from ledger.services.storage.interface import (
    DuplicateError,
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
    ValidationError,
)
from ledger.validation.validator import RecordInput, TransactionValidator


logger = structlog.get_logger(__name__)


def storage_key_for(user_id: str, key_prefix: Optional[str] = None) -> str:
    """User-scoped key the collection is persisted under."""
    if key_prefix is None:
        key_prefix = get_settings().storage.key_prefix
    return f"{key_prefix}{user_id}"


class TransactionStore:
    """
    Owns and persists one user's transactions.

    Errors from add/replace/remove propagate to the caller unchanged;
    nothing is retried here.
    """

    def __init__(
        self,
        kv_store: KeyValueStoreInterface,
        user_id: str,
        validator: Optional[TransactionValidator] = None,
        key_prefix: Optional[str] = None,
    ):
        if not user_id:
            raise ValueError("user_id is required")
        self._kv = kv_store
        self._user_id = user_id
        self._key = storage_key_for(user_id, key_prefix)
        self._validator = validator or TransactionValidator()
        self._transactions: list[Transaction] = self._load()

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def storage_key(self) -> str:
        return self._key

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _load(self) -> list[Transaction]:
        raw = self._kv.get(self._key)
        if raw is None:
            return []

        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Stored transactions for {self._user_id} are corrupt: {e}")
        if not isinstance(records, list):
            raise StorageError(
                f"Stored transactions for {self._user_id} are not a list"
            )

        transactions = []
        seen_ids = set()
        for record in records:
            try:
                transaction = Transaction.model_validate(record)
            except pydantic.ValidationError as e:
                logger.warning(
                    "stored_transaction_skipped",
                    user_id=self._user_id,
                    error_count=e.error_count(),
                )
                continue
            if transaction.id in seen_ids:
                logger.warning(
                    "stored_duplicate_skipped",
                    user_id=self._user_id,
                    transaction_id=transaction.id,
                )
                continue
            seen_ids.add(transaction.id)
            transactions.append(transaction)

        logger.debug("transactions_loaded", user_id=self._user_id, count=len(transactions))
        return transactions

    def _persist(self) -> None:
        payload = json.dumps(
            [t.model_dump(mode="json") for t in self._transactions]
        )
        self._kv.set(self._key, payload)

    def _index_of(self, transaction_id: str) -> int:
        for idx, transaction in enumerate(self._transactions):
            if transaction.id == transaction_id:
                return idx
        raise NotFoundError(f"Transaction not found: {transaction_id}")

    # =========================================================================
    # READS
    # =========================================================================

    def list_transactions(self) -> list[Transaction]:
        """Current collection as a new list, in storage order."""
        return list(self._transactions)

    def snapshot(self) -> tuple[Transaction, ...]:
        """Immutable view of the collection for the pure components."""
        return tuple(self._transactions)

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self._transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def __len__(self) -> int:
        return len(self._transactions)

    def __contains__(self, transaction_id: object) -> bool:
        return any(t.id == transaction_id for t in self._transactions)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add(self, record: RecordInput) -> Transaction:
        """
        Validate and append a transaction.

        Raises:
            ValidationError: Non-positive amount, empty title, missing field
            DuplicateError: The id is already in the collection
        """
        transaction = self._validator.ensure_valid(record)
        if transaction.id in self:
            raise DuplicateError(f"Transaction id already exists: {transaction.id}")

        self._transactions.append(transaction)
        self._persist()
        logger.debug("transaction_added", user_id=self._user_id, transaction_id=transaction.id)
        return transaction

    def replace(self, transaction_id: str, record: RecordInput) -> Transaction:
        """
        Replace the full record with the given id, keeping its position.

        The stored record always carries transaction_id.

        Raises:
            NotFoundError: No record has this id
            ValidationError: The replacement is invalid
        """
        idx = self._index_of(transaction_id)

        if isinstance(record, (Transaction, ImportedTransaction)):
            payload = record.model_dump()
        else:
            payload = dict(record)
        payload["id"] = transaction_id

        transaction = self._validator.ensure_valid(payload)
        self._transactions[idx] = transaction
        self._persist()
        logger.debug("transaction_replaced", user_id=self._user_id, transaction_id=transaction_id)
        return transaction

    def remove(self, transaction_id: str) -> Transaction:
        """
        Remove exactly the record with the given id.

        Raises:
            NotFoundError: No record has this id
        """
        idx = self._index_of(transaction_id)
        removed = self._transactions.pop(idx)
        self._persist()
        logger.debug("transaction_removed", user_id=self._user_id, transaction_id=transaction_id)
        return removed

    def clear(self) -> int:
        """Remove every record for this user. Returns how many were removed."""
        removed = len(self._transactions)
        self._transactions = []
        self._kv.delete(self._key)
        logger.debug("transactions_cleared", user_id=self._user_id, removed=removed)
        return removed

    def merge_imported(self, candidates: Iterable[RecordInput]) -> int:
        """
        Insert candidates whose id is not already present.

        Returns the number of newly inserted records.
        """
        return self.merge_imported_detailed(candidates).inserted

    def merge_imported_detailed(self, candidates: Iterable[RecordInput]) -> ImportResult:
        """
        Insert candidates whose id is not already present, in candidate order.

        Candidates that fail validation are skipped, not raised. An id that
        repeats inside the batch only inserts its first valid occurrence.
        The collection is persisted once, and only if something was inserted.
        """
        existing_ids = {t.id for t in self._transactions}
        inserted = duplicates = invalid = 0

        for candidate in candidates:
            try:
                transaction = self._validator.ensure_valid(candidate)
            except ValidationError as e:
                invalid += 1
                logger.debug("import_candidate_rejected", user_id=self._user_id, reason=str(e))
                continue

            if transaction.id in existing_ids:
                duplicates += 1
                continue

            existing_ids.add(transaction.id)
            self._transactions.append(transaction)
            inserted += 1

        if inserted:
            self._persist()

        logger.info(
            "transactions_merged",
            user_id=self._user_id,
            inserted=inserted,
            duplicates=duplicates,
            invalid=invalid,
        )
        return ImportResult(inserted=inserted, duplicates=duplicates, invalid=invalid)
