"""
Ledger Orchestrator

Ties the components together for one user:
1. Mutations (form submit / edit / delete / clear) → TransactionStore
2. Views (filter + sort) → query engine on a store snapshot
3. Totals and chart data → aggregator on the FULL snapshot
4. CSV export / import → codec + TransactionStore.merge_imported

The orchestrator enforces the boundaries:
- Query engine and aggregator only ever see snapshots
- An import that cannot be parsed merges nothing
- Every mutation is audited
"""

from typing import Optional, Union

from ledger.audit import AuditLogger
from ledger.audit.logger import EventSink
from ledger.codec.csv_codec import (
    ParseError,
    parse_transactions_detailed,
    serialize_transactions,
)
from ledger.config import AppSettings, get_settings
from ledger.models.query import CategoryBreakdown, FilterSpec, Totals
from ledger.models.transaction import ImportResult, Transaction
from ledger.queries import compute_category_buckets, compute_totals, filter_view
from ledger.services.storage import (
    JsonFileKeyValueStore,
    KeyValueStoreInterface,
    StorageError,
    ValidationError,
)
from ledger.services.storage.transaction_store import TransactionStore
from ledger.validation.validator import RecordInput


class LedgerService:
    """
    One user's ledger.

    Store errors (ValidationError, NotFoundError) propagate unchanged
    after being audited; the caller decides whether to re-prompt.
    """

    def __init__(
        self,
        store: TransactionStore,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger(store.user_id)
        self._settings = settings or get_settings().app

    @property
    def store(self) -> TransactionStore:
        return self._store

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add_transaction(self, record: RecordInput) -> Transaction:
        """Validate and record a new transaction."""
        try:
            transaction = self._store.add(record)
        except ValidationError as e:
            self._audit_logger.log_validation_failed(e.issues)
            raise
        except StorageError as e:
            self._audit_logger.log_storage_error(str(e))
            raise

        self._audit_logger.log_transaction_added(transaction)
        return transaction

    def update_transaction(self, transaction_id: str, record: RecordInput) -> Transaction:
        """Replace the full record with the given id."""
        try:
            transaction = self._store.replace(transaction_id, record)
        except ValidationError as e:
            self._audit_logger.log_validation_failed(e.issues, transaction_id=transaction_id)
            raise

        self._audit_logger.log_transaction_updated(transaction_id)
        return transaction

    def delete_transaction(self, transaction_id: str) -> Transaction:
        removed = self._store.remove(transaction_id)
        self._audit_logger.log_transaction_deleted(transaction_id)
        return removed

    def clear_all(self) -> int:
        """Delete ALL data for this user. Cannot be undone."""
        removed = self._store.clear()
        self._audit_logger.log_ledger_cleared(removed)
        return removed

    # =========================================================================
    # VIEWS
    # =========================================================================

    def view(self, spec: Optional[FilterSpec] = None) -> list[Transaction]:
        """Filtered transactions, newest first."""
        return filter_view(self._store.snapshot(), spec or FilterSpec())

    def totals(self) -> Totals:
        """Balance over ALL transactions, regardless of filters."""
        return compute_totals(self._store.snapshot())

    def chart(self) -> CategoryBreakdown:
        """Per-category sums over ALL transactions, regardless of filters."""
        return compute_category_buckets(self._store.snapshot())

    def chart_heights(self) -> dict[str, dict[str, float]]:
        """Bar heights on the configured chart scale."""
        return self.chart().bar_heights(self._settings.chart_height)

    # =========================================================================
    # CSV
    # =========================================================================

    @property
    def export_filename(self) -> str:
        return self._settings.export_filename

    def export_csv(self) -> str:
        """CSV document of every transaction, in storage order."""
        snapshot = self._store.snapshot()
        content = serialize_transactions(snapshot)
        self._audit_logger.log_csv_exported(len(snapshot))
        return content

    def import_csv(self, data: Union[str, bytes]) -> ImportResult:
        """
        Parse CSV text and merge the new transactions.

        Raises:
            ParseError: Nothing in the file could be read; nothing merged
        """
        try:
            parsed = parse_transactions_detailed(data)
        except ParseError as e:
            self._audit_logger.log_csv_import_failed(str(e))
            raise

        merged = self._store.merge_imported_detailed(parsed.candidates)
        result = merged.model_copy(update={"skipped_rows": parsed.skipped_rows})

        self._audit_logger.log_csv_imported(
            inserted=result.inserted,
            duplicates=result.duplicates,
            invalid=result.invalid,
            skipped_rows=result.skipped_rows,
        )
        return result


def create_ledger(
    user_id: str,
    kv_store: Optional[KeyValueStoreInterface] = None,
    sink: Optional[EventSink] = None,
) -> LedgerService:
    """
    Factory function to build a user's ledger from settings.

    Args:
        user_id: The logged-in user
        kv_store: Persistence backend. Defaults to JSON files under
                  the configured data directory.
        sink: Optional audit event sink

    Returns:
        A LedgerService with the user's stored transactions loaded
    """
    settings = get_settings()
    storage_settings = settings.storage

    store = TransactionStore(
        kv_store or JsonFileKeyValueStore(storage_settings.data_dir),
        user_id,
        key_prefix=storage_settings.key_prefix,
    )
    return LedgerService(
        store=store,
        audit_logger=AuditLogger(user_id, sink=sink),
        settings=settings.app,
    )
