"""
Audit Logger

Every change to a ledger is logged as a structured event.
This provides:
1. Traceability of every mutation
2. Debugging capability for imports
3. A history of what happened to each record

The audit logger is synchronous, like the rest of the ledger.
An event sink that fails never breaks the operation being audited.
"""

import logging
from collections.abc import Callable
from typing import Optional

import structlog

from ledger.config import get_settings
from ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from ledger.models.transaction import Transaction, ValidationIssue


def configure_logging(level: Optional[str] = None) -> None:
    """
    Route structlog output through a stdlib handler at the given level.

    Call once from the entrypoint. Library code only logs.

    Args:
        level: Level name. Defaults to the configured log level
               (LEDGER_LOG_LEVEL).
    """
    level_name = (level or get_settings().app.log_level).upper()
    logging.basicConfig(format="%(message)s")
    logging.getLogger().setLevel(getattr(logging, level_name))


EventSink = Callable[[AuditEvent], None]


class AuditLogger:
    """
    Central audit logging service.

    Logs events to:
    1. Structured local log (always)
    2. An optional sink, e.g. to collect events in memory
    """

    def __init__(
        self,
        user_id: str,
        sink: Optional[EventSink] = None,
    ):
        """
        Initialize audit logger.

        Args:
            user_id: Owner of the ledger being audited
            sink: Optional callable receiving every event.
                  If None, only logs locally.
        """
        self._user_id = user_id
        self._sink = sink
        self._logger = structlog.get_logger("ledger.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the sink accepted it (or no sink is configured).
        """
        # Always log locally
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink:
            try:
                self._sink(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_transaction_added(self, transaction: Transaction) -> None:
        self.log(AuditEventBuilder.transaction_added(
            user_id=self._user_id,
            transaction_id=transaction.id,
            title=transaction.title,
            amount=str(transaction.amount),
            transaction_type=transaction.type.value,
        ))

    def log_transaction_updated(self, transaction_id: str) -> None:
        self.log(AuditEventBuilder.transaction_updated(self._user_id, transaction_id))

    def log_transaction_deleted(self, transaction_id: str) -> None:
        self.log(AuditEventBuilder.transaction_deleted(self._user_id, transaction_id))

    def log_ledger_cleared(self, removed: int) -> None:
        self.log(AuditEventBuilder.ledger_cleared(self._user_id, removed))

    def log_validation_failed(
        self,
        issues: list[ValidationIssue],
        transaction_id: Optional[str] = None,
    ) -> None:
        """Log a rejected add/replace."""
        self.log(AuditEventBuilder.validation_failed(
            user_id=self._user_id,
            issues=[
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in issues
            ],
            transaction_id=transaction_id,
        ))

    def log_csv_exported(self, row_count: int) -> None:
        self.log(AuditEventBuilder.csv_exported(self._user_id, row_count))

    def log_csv_imported(
        self,
        inserted: int,
        duplicates: int,
        invalid: int,
        skipped_rows: int,
    ) -> None:
        self.log(AuditEventBuilder.csv_imported(
            user_id=self._user_id,
            inserted=inserted,
            duplicates=duplicates,
            invalid=invalid,
            skipped_rows=skipped_rows,
        ))

    def log_csv_import_failed(self, error_message: str) -> None:
        self.log(AuditEventBuilder.csv_import_failed(self._user_id, error_message))

    def log_storage_error(self, error_message: str) -> None:
        self.log(AuditEventBuilder.storage_error(self._user_id, error_message))
