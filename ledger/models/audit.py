"""
Audit Models for the Personal Ledger

Every change to a user's ledger is described by an AuditEvent.
This provides:
1. Traceability of every mutation and import
2. Debugging information when an import goes wrong
3. Ability to reconstruct what happened to a record
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Store mutations
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    LEDGER_CLEARED = "ledger_cleared"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # CSV interchange
    CSV_EXPORTED = "csv_exported"
    CSV_IMPORTED = "csv_imported"
    CSV_IMPORT_FAILED = "csv_import_failed"

    # System events
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant ledger action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - which user and which record is this about?
    user_id: Optional[str] = None
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'ledger', 'csv')"
    )
    entity_id: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(user_id, transaction_id, ...)
        event = AuditEventBuilder.csv_imported(user_id, inserted=3, ...)
    """

    @staticmethod
    def transaction_added(
        user_id: str,
        transaction_id: str,
        title: str,
        amount: str,
        transaction_type: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction added: {title[:100]} ({transaction_type} {amount})",
            details={
                "title": title,
                "amount": amount,
                "type": transaction_type,
            },
        )

    @staticmethod
    def transaction_updated(user_id: str, transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction replaced",
        )

    @staticmethod
    def transaction_deleted(user_id: str, transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
        )

    @staticmethod
    def ledger_cleared(user_id: str, removed: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_CLEARED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="ledger",
            description=f"All data cleared ({removed} transactions removed)",
            details={"removed": removed},
        )

    @staticmethod
    def validation_failed(
        user_id: str,
        issues: list[dict],
        transaction_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def csv_exported(user_id: str, row_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_EXPORTED,
            user_id=user_id,
            entity_type="csv",
            description=f"Exported {row_count} transactions to CSV",
            details={"row_count": row_count},
        )

    @staticmethod
    def csv_imported(
        user_id: str,
        inserted: int,
        duplicates: int,
        invalid: int,
        skipped_rows: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_IMPORTED,
            user_id=user_id,
            entity_type="csv",
            description=f"{inserted} new transactions imported",
            details={
                "inserted": inserted,
                "duplicates": duplicates,
                "invalid": invalid,
                "skipped_rows": skipped_rows,
            },
        )

    @staticmethod
    def csv_import_failed(user_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_IMPORT_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="csv",
            description="CSV import aborted",
            error_message=error_message,
        )

    @staticmethod
    def storage_error(user_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description="Storage error",
            error_message=error_message,
        )
