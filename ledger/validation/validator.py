"""
Two-Stage Validation Pipeline

Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Positive, finite amount
- Non-empty title
- ISO date, known type
Failing stage 1 means the record cannot enter the store.

STAGE 2 - SEMANTIC VALIDATION:
- Date far in the future
- Absurdly large amount
These only produce warnings. A suspicious record is still stored.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them, and the store decides what to do.
"""

from collections.abc import Mapping
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional, Union

import pydantic
import structlog

from ledger.config import AppSettings, get_settings
from ledger.models.transaction import (
    ImportedTransaction,
    Transaction,
    ValidationIssue,
    ValidationResult,
)
from ledger.services.storage.interface import ValidationError


logger = structlog.get_logger(__name__)

RecordInput = Union[Transaction, ImportedTransaction, Mapping[str, Any]]

# pydantic error types that mean "nothing usable was given"
_MISSING_ERROR_TYPES = {"missing"}
_EMPTY_ERROR_TYPES = {"string_too_short"}


def _to_payload(record: RecordInput) -> dict:
    if isinstance(record, Transaction):
        return record.model_dump()
    if isinstance(record, ImportedTransaction):
        return record.to_payload()
    return dict(record)


class TransactionValidator:
    """
    Validates transaction input through a two-stage pipeline.

    Stage 1: Schema validation (builds the Transaction model)
    Stage 2: Semantic validation (warnings only)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        payload: dict,
    ) -> tuple[Optional[Transaction], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (transaction_or_none, list_of_issues)
        """
        try:
            return Transaction.model_validate(payload), []
        except pydantic.ValidationError as e:
            issues = []
            for error in e.errors():
                field = ".".join(str(part) for part in error["loc"]) or "record"
                if error["type"] in _MISSING_ERROR_TYPES:
                    issue_type = "missing"
                elif error["type"] in _EMPTY_ERROR_TYPES:
                    issue_type = "empty"
                else:
                    issue_type = "invalid_value"
                issues.append(ValidationIssue(
                    field=field,
                    issue_type=issue_type,
                    message=f"{field}: {error['msg']}",
                    severity="error",
                ))
            return None, issues

    def _validate_semantic(
        self,
        transaction: Transaction,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Returns: list_of_issues (warnings)
        """
        issues = []

        max_future_date = date.today() + timedelta(
            days=self._settings.future_date_tolerance_days
        )
        if date.fromisoformat(transaction.date) > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({transaction.date}) is in the future",
                severity="warning",
            ))

        max_amount = Decimal(str(self._settings.max_reasonable_amount))
        if transaction.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({transaction.amount}) seems unusually high",
                severity="warning",
            ))

        return issues

    def validate(self, record: RecordInput) -> ValidationResult:
        """
        Run the full two-stage validation pipeline.

        Args:
            record: A Transaction, an ImportedTransaction, or a plain mapping

        Returns:
            ValidationResult with all issues found and, when stage 1
            passed, the validated Transaction
        """
        payload = _to_payload(record)
        transaction, issues = self._validate_schema(payload)

        # Only run stage 2 if stage 1 passes
        if transaction is not None:
            issues.extend(self._validate_semantic(transaction))

        raw_id = payload.get("id")
        return ValidationResult(
            transaction_id=raw_id if isinstance(raw_id, str) else None,
            schema_valid=transaction is not None,
            semantic_valid=transaction is not None and not any(
                issue.severity == "error" for issue in issues
            ),
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
            transaction=transaction,
        )

    def ensure_valid(self, record: RecordInput) -> Transaction:
        """
        Validate and return the Transaction, or raise.

        Raises:
            ValidationError: If stage 1 found any error
        """
        result = self.validate(record)
        if result.transaction is None:
            raise ValidationError(
                "; ".join(i.message for i in result.issues if i.severity == "error"),
                issues=result.issues,
            )
        if result.warnings:
            logger.warning(
                "transaction_warnings",
                transaction_id=result.transaction.id,
                warnings=result.warnings,
            )
        return result.transaction

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Plain-language summary of a validation result."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []
        if not result.schema_valid:
            lines.append("Please fill in all fields with valid data:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   - {issue.message}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   - {warning}")

        return "\n".join(lines)
