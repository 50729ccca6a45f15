"""
Aggregator

Pure functions over a snapshot of the collection:
- compute_totals: balance, income and expense
- compute_category_buckets: per-category income/expense sums for charting

Both are always run on the FULL collection, not on a filtered view.
"""

from collections.abc import Iterable
from decimal import Decimal

from ledger.models.query import CategoryBreakdown, CategoryBucket, Totals
from ledger.models.transaction import Transaction, TransactionType


# Floor for the chart scale so an empty chart never divides by zero
MIN_CHART_SCALE = Decimal("1")


def compute_totals(transactions: Iterable[Transaction]) -> Totals:
    """
    Sum income and expense and derive the balance.

    The balance is reported as a magnitude with a separate negative flag.
    """
    income = Decimal("0")
    expense = Decimal("0")

    for transaction in transactions:
        if transaction.type == TransactionType.INCOME:
            income += transaction.amount
        else:
            expense += transaction.amount

    net = income - expense
    return Totals(
        balance=abs(net),
        income=income,
        expense=expense,
        is_negative=net < 0,
    )


def compute_category_buckets(transactions: Iterable[Transaction]) -> CategoryBreakdown:
    """
    Group amounts by category and type.

    Categories appear in the order they are first seen. Categories with no
    transactions are absent, not zero-filled.
    """
    totals: dict[str, dict[str, Decimal]] = {}

    for transaction in transactions:
        bucket = totals.setdefault(
            transaction.category,
            {TransactionType.INCOME.value: Decimal("0"), TransactionType.EXPENSE.value: Decimal("0")},
        )
        bucket[transaction.type.value] += transaction.amount

    buckets = {category: CategoryBucket(**sums) for category, sums in totals.items()}
    max_amount = max(
        [MIN_CHART_SCALE, *(bucket.peak for bucket in buckets.values())]
    )
    return CategoryBreakdown(buckets=buckets, max_amount=max_amount)
