"""
Query Engine

Query execution is DETERMINISTIC and PURE.
filter_view() takes a snapshot of the collection plus a FilterSpec and
returns a new list. It never mutates its input and never touches the store.

Ordering: newest date first. Records sharing a date keep the relative
order they had in the input (Python's sort is stable, including with
reverse=True).
"""

from collections.abc import Callable, Iterable

from ledger.models.query import DateRange, FilterSpec
from ledger.models.transaction import Transaction


Predicate = Callable[[Transaction], bool]


def _search_predicate(term: str) -> Predicate:
    needle = term.lower()
    return lambda t: needle in t.title.lower()


def _category_predicate(category: str) -> Predicate:
    return lambda t: t.category == category


def _type_predicate(transaction_type) -> Predicate:
    return lambda t: t.type == transaction_type


def _date_range_predicate(date_range: DateRange) -> Predicate:
    return lambda t: date_range.contains(t.date)


def build_predicates(spec: FilterSpec) -> list[Predicate]:
    """One predicate per active axis of the filter."""
    predicates = []
    if spec.search_term is not None:
        predicates.append(_search_predicate(spec.search_term))
    if spec.category is not None:
        predicates.append(_category_predicate(spec.category))
    if spec.type is not None:
        predicates.append(_type_predicate(spec.type))
    if spec.date_range is not None:
        predicates.append(_date_range_predicate(spec.date_range))
    return predicates


def sort_newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Sort by date descending; equal dates keep input order."""
    return sorted(transactions, key=lambda t: t.date, reverse=True)


def filter_view(
    transactions: Iterable[Transaction],
    spec: FilterSpec,
) -> list[Transaction]:
    """
    Apply every active filter (ANDed) and sort newest first.

    Args:
        transactions: Snapshot of the full collection
        spec: Which axes to filter on

    Returns:
        A new list; the input is left untouched
    """
    predicates = build_predicates(spec)
    matched = [t for t in transactions if all(p(t) for p in predicates)]
    return sort_newest_first(matched)


def describe_filter(spec: FilterSpec) -> str:
    """Human-readable description of the active filters."""
    if not spec.is_active:
        return "All transactions"

    desc_parts = []
    if spec.search_term is not None:
        desc_parts.append(f'title contains "{spec.search_term}"')
    if spec.category is not None:
        desc_parts.append(f"category: {spec.category}")
    if spec.type is not None:
        desc_parts.append(f"type: {spec.type.value}")
    if spec.date_range is not None:
        desc_parts.append(_date_range_str(spec.date_range))
    return " | ".join(desc_parts)


def _date_range_str(date_range: DateRange) -> str:
    if date_range.start == date_range.end:
        return f"on {date_range.start}"
    return f"from {date_range.start} to {date_range.end}"
