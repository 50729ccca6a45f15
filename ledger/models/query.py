"""
Query and Aggregation Models

FilterSpec is the contract between the caller and the query engine.
Totals and CategoryBreakdown are what the aggregator hands back.
All of them are plain values: the engine never reaches into the store.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ledger.models.transaction import TransactionType


# Sentinel the filter controls use for "no filtering on this axis"
ALL_SENTINEL = "all"

# Separator used by the date-range picker text ("2024-01-01 - 2024-01-31")
DATE_RANGE_SEPARATOR = " - "


# =============================================================================
# FILTER MODELS
# =============================================================================

class DateRange(BaseModel):
    """
    Inclusive date range.

    Bounds are ISO dates compared as strings, which matches calendar
    order for canonical YYYY-MM-DD values.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_iso_date(cls, v: str) -> str:
        try:
            parsed = date.fromisoformat(v)
        except ValueError:
            raise ValueError(f"Date must be in YYYY-MM-DD format, got {v!r}")
        if parsed.isoformat() != v:
            raise ValueError(f"Date must be in YYYY-MM-DD format, got {v!r}")
        return v

    @classmethod
    def parse(cls, text: str) -> Optional["DateRange"]:
        """
        Parse the picker's "start - end" text form.

        Returns None for blank text or text without the separator.
        """
        if not text or DATE_RANGE_SEPARATOR not in text:
            return None
        start, end = text.split(DATE_RANGE_SEPARATOR, 1)
        return cls(start=start, end=end)

    def contains(self, value: str) -> bool:
        return self.start <= value <= self.end

    def __str__(self) -> str:
        return f"{self.start}{DATE_RANGE_SEPARATOR}{self.end}"


class FilterSpec(BaseModel):
    """
    Which transactions to show.

    Every axis is optional. None, an empty string, or "all" (for category
    and type) means no filtering on that axis. Active axes are ANDed.
    """
    model_config = ConfigDict(frozen=True)

    search_term: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring matched against the title"
    )
    category: Optional[str] = Field(
        default=None,
        description="Exact category match"
    )
    type: Optional[TransactionType] = Field(
        default=None,
        description="Exact type match"
    )
    date_range: Optional[DateRange] = None

    @field_validator("search_term", mode="before")
    @classmethod
    def blank_search_is_none(cls, v):
        if v == "":
            return None
        return v

    @field_validator("category", "type", mode="before")
    @classmethod
    def all_sentinel_is_none(cls, v):
        if v == "" or v == ALL_SENTINEL:
            return None
        return v

    @field_validator("date_range", mode="before")
    @classmethod
    def parse_date_range_text(cls, v):
        if isinstance(v, str):
            return DateRange.parse(v)
        return v

    @property
    def is_active(self) -> bool:
        """True when at least one axis filters anything."""
        return any(
            value is not None
            for value in (self.search_term, self.category, self.type, self.date_range)
        )


# =============================================================================
# AGGREGATION MODELS
# =============================================================================

class Totals(BaseModel):
    """
    Balance summary over a set of transactions.

    balance is the magnitude of income - expense; is_negative carries
    the sign for presentation.
    """

    balance: Decimal = Decimal("0")
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    is_negative: bool = False

    @property
    def net(self) -> Decimal:
        """Signed balance (income - expense)."""
        return self.income - self.expense


class CategoryBucket(BaseModel):
    """Income and expense sums for one category."""

    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    def value_for(self, transaction_type: TransactionType) -> Decimal:
        if TransactionType(transaction_type) == TransactionType.INCOME:
            return self.income
        return self.expense

    @property
    def peak(self) -> Decimal:
        return max(self.income, self.expense)


class CategoryBreakdown(BaseModel):
    """
    Per-category sums ready for charting.

    Only categories that have at least one transaction appear.
    max_amount is floored at 1 so ratios never divide by zero.
    """

    buckets: dict[str, CategoryBucket] = Field(default_factory=dict)
    max_amount: Decimal = Decimal("1")

    @model_validator(mode="after")
    def validate_max_amount(self) -> "CategoryBreakdown":
        if self.max_amount < 1:
            raise ValueError("max_amount cannot be below 1")
        return self

    @property
    def categories(self) -> list[str]:
        return list(self.buckets)

    def ratio(self, category: str, transaction_type: TransactionType) -> float:
        """Bar height for one category and type as a fraction of the tallest bar."""
        bucket = self.buckets.get(category)
        if bucket is None:
            return 0.0
        return float(bucket.value_for(transaction_type) / self.max_amount)

    def bar_heights(self, scale: float) -> dict[str, dict[str, float]]:
        """Map every ratio onto a display scale (e.g., pixels)."""
        return {
            category: {
                kind.value: self.ratio(category, kind) * scale
                for kind in TransactionType
            }
            for category in self.buckets
        }
