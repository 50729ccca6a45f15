"""
Core Data Models for the Personal Ledger

These models define the schemas for every record flowing through the ledger.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and CSV interchange

DESIGN DECISION: Two record shapes exist.
- ImportedTransaction is what a CSV row PROPOSES. Nothing about it is trusted.
- Transaction is what the store OWNS. Every constraint is enforced on it.
A candidate only becomes a Transaction by passing the validator.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# Characters that would break an unquoted CSV field
CSV_UNSAFE_CHARACTERS = (",", '"', "\n", "\r")


def new_transaction_id() -> str:
    """Generate a fresh transaction id (128-bit random UUID as text)."""
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Direction of a transaction.

    The amount is always positive; whether it adds to or subtracts from
    the balance is carried only by this value.
    """
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    A transaction owned by the store.

    CRITICAL: Instances are immutable. Edits go through a full
    replace-by-id on the store, never through field assignment.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        default_factory=new_transaction_id,
        min_length=1,
        description="Opaque unique identifier, immutable once assigned"
    )
    date: str = Field(
        ...,
        description="Calendar date as YYYY-MM-DD"
    )
    title: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Free-text label"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount; direction is carried by type"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category label used for grouping"
    )
    type: TransactionType = Field(
        ...,
        description="income or expense"
    )

    @field_validator("date")
    @classmethod
    def validate_iso_date(cls, v: str) -> str:
        """Only canonical YYYY-MM-DD dates sort correctly as strings."""
        try:
            parsed = date.fromisoformat(v)
        except ValueError:
            raise ValueError(f"Date must be in YYYY-MM-DD format, got {v!r}")
        if parsed.isoformat() != v:
            raise ValueError(f"Date must be in YYYY-MM-DD format, got {v!r}")
        return v

    @field_validator("id", "date", "category")
    @classmethod
    def reject_csv_delimiters(cls, v: str) -> str:
        """These fields are exported unquoted, so they must stay delimiter-free."""
        if any(ch in v for ch in CSV_UNSAFE_CHARACTERS):
            raise ValueError("Must not contain commas, quotes or line breaks")
        return v

    @field_validator("title")
    @classmethod
    def reject_line_breaks(cls, v: str) -> str:
        """CSV rows are one line each; quotes and commas in titles are fine."""
        if "\n" in v or "\r" in v:
            raise ValueError("Title must be a single line")
        return v

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign implied by the transaction type."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


class ImportedTransaction(BaseModel):
    """
    A transaction candidate recovered from one CSV row.

    CRITICAL: This is PROPOSED data, NOT verified.
    Fields are taken verbatim from the file. The amount may be NaN when
    the column did not hold a number; rejection happens at merge time.
    """

    id: str = Field(
        default_factory=new_transaction_id,
        description="Id from the file, or a generated one when the column was empty"
    )
    date: str = ""
    title: str = ""
    amount: Decimal = Field(
        default=Decimal("NaN"),
        allow_inf_nan=True,
        description="Parsed amount, NaN when unparseable"
    )
    category: str = ""
    type: str = ""

    def to_payload(self) -> dict:
        """Field mapping ready for validation into a Transaction."""
        return {
            "id": self.id,
            "date": self.date,
            "title": self.title,
            "amount": self.amount,
            "category": self.category,
            "type": self.type,
        }


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (types, required fields, positive amount)
    Stage 2: Semantic validation (suspicious but permitted values)
    """

    transaction_id: Optional[str] = Field(
        default=None,
        description="Id of the record being validated, when known"
    )
    schema_valid: bool
    semantic_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )
    transaction: Optional[Transaction] = Field(
        default=None,
        description="The validated record when schema validation passed"
    )

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")


# =============================================================================
# IMPORT RESULT
# =============================================================================

class ImportResult(BaseModel):
    """Outcome of merging imported candidates into the store."""

    inserted: int = Field(default=0, ge=0)
    duplicates: int = Field(
        default=0,
        ge=0,
        description="Candidates skipped because their id was already present"
    )
    invalid: int = Field(
        default=0,
        ge=0,
        description="Candidates skipped because they failed validation"
    )
    skipped_rows: int = Field(
        default=0,
        ge=0,
        description="CSV rows that never became candidates (too few fields, bad quoting)"
    )

    @property
    def candidates(self) -> int:
        return self.inserted + self.duplicates + self.invalid
