"""
Data Models Package

This package contains all Pydantic models used in the Personal Ledger.
All data flowing through the ledger must conform to these schemas.
"""

from ledger.models.transaction import (
    ImportedTransaction,
    ImportResult,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    new_transaction_id,
)
from ledger.models.query import (
    CategoryBreakdown,
    CategoryBucket,
    DateRange,
    FilterSpec,
    Totals,
)
from ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "ImportedTransaction",
    "ImportResult",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "new_transaction_id",
    # Query models
    "CategoryBreakdown",
    "CategoryBucket",
    "DateRange",
    "FilterSpec",
    "Totals",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
