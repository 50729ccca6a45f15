"""Query execution package."""

from ledger.queries.aggregator import compute_category_buckets, compute_totals
from ledger.queries.filters import describe_filter, filter_view, sort_newest_first

__all__ = [
    "compute_category_buckets",
    "compute_totals",
    "describe_filter",
    "filter_view",
    "sort_newest_first",
]
