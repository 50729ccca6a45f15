"""CSV interchange package."""

from ledger.codec.csv_codec import (
    CSV_HEADER,
    LineTokenizeError,
    ParseError,
    ParseResult,
    parse_transactions,
    parse_transactions_detailed,
    serialize_transactions,
    tokenize_line,
)

__all__ = [
    "CSV_HEADER",
    "LineTokenizeError",
    "ParseError",
    "ParseResult",
    "parse_transactions",
    "parse_transactions_detailed",
    "serialize_transactions",
    "tokenize_line",
]
