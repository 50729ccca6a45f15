"""
CSV Codec

Export and import of the ledger's six-column CSV format:

    ID,Date,Title,Amount,Category,Type

EXPORT:
- Fixed header, then one line per transaction in the order given
  (store order, not the filtered/sorted view), joined with "\\n".
- Title is always quoted, with internal quotes doubled.
- Other fields are written as-is; the Transaction model keeps them free
  of commas, quotes and line breaks.

IMPORT:
- First line (header) and blank lines are dropped.
- Each row is tokenized by a small state machine, one character at a time.
- Rows with fewer than six fields, or with broken quoting, are skipped and
  counted. Fields after the sixth are ignored.
- Candidates are built verbatim. Nothing is validated here: a bad amount
  becomes NaN and is rejected later, when the candidates are merged.
- If the file has data rows and NONE of them can be tokenized, the whole
  import is aborted with ParseError.
"""

import re
from collections.abc import Iterable
from decimal import Decimal
from enum import Enum
from typing import Union

import structlog
from pydantic import BaseModel, Field

from ledger.models.transaction import ImportedTransaction, Transaction, new_transaction_id


logger = structlog.get_logger(__name__)

CSV_HEADER = ("ID", "Date", "Title", "Amount", "Category", "Type")
FIELD_COUNT = len(CSV_HEADER)

QUOTE = '"'
DELIMITER = ","
LINE_SEPARATOR = "\n"

# Plain decimal or exponent notation; no underscores, infinities or NaN
_AMOUNT_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


class ParseError(Exception):
    """The CSV text could not be read at all. Nothing was imported."""
    pass


class LineTokenizeError(ValueError):
    """A single row has broken quoting. The row is skipped."""
    pass


# =============================================================================
# EXPORT
# =============================================================================

def quote_field(value: str) -> str:
    """Wrap a value in quotes, doubling any quote inside it."""
    return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE


def format_amount(amount: Decimal) -> str:
    """Plain decimal notation (never scientific)."""
    return format(amount, "f")


def serialize_transaction(transaction: Transaction) -> str:
    return DELIMITER.join([
        transaction.id,
        transaction.date,
        quote_field(transaction.title),
        format_amount(transaction.amount),
        transaction.category,
        transaction.type.value,
    ])


def serialize_transactions(transactions: Iterable[Transaction]) -> str:
    """Render the full CSV document for a collection."""
    lines = [DELIMITER.join(CSV_HEADER)]
    lines.extend(serialize_transaction(t) for t in transactions)
    return LINE_SEPARATOR.join(lines)


# =============================================================================
# TOKENIZER
# =============================================================================

class TokenizerState(Enum):
    FIELD_START = "field_start"
    IN_QUOTED = "in_quoted"
    IN_UNQUOTED = "in_unquoted"
    AFTER_QUOTE = "after_quote"


def tokenize_line(line: str) -> list[str]:
    """
    Split one CSV row into fields.

    Quoted fields may contain commas and doubled quotes ("" -> ").
    A trailing comma produces a trailing empty field. Spaces and tabs
    around a quoted field (before the opening quote or between the
    closing quote and the next comma) are ignored.

    Raises:
        LineTokenizeError: Unterminated quote, a quote inside an unquoted
            field, or text after a closing quote
    """
    fields: list[str] = []
    buffer: list[str] = []
    state = TokenizerState.FIELD_START

    for position, ch in enumerate(line):
        if state is TokenizerState.FIELD_START:
            if ch == QUOTE:
                state = TokenizerState.IN_QUOTED
            elif ch == DELIMITER:
                fields.append("")
            else:
                buffer.append(ch)
                state = TokenizerState.IN_UNQUOTED

        elif state is TokenizerState.IN_UNQUOTED:
            if ch == DELIMITER:
                fields.append("".join(buffer))
                buffer = []
                state = TokenizerState.FIELD_START
            elif ch == QUOTE and not "".join(buffer).strip(" \t"):
                # Only padding so far: the field is quoted after all
                buffer = []
                state = TokenizerState.IN_QUOTED
            elif ch == QUOTE:
                raise LineTokenizeError(f"Quote inside unquoted field at column {position}")
            else:
                buffer.append(ch)

        elif state is TokenizerState.IN_QUOTED:
            if ch == QUOTE:
                state = TokenizerState.AFTER_QUOTE
            else:
                buffer.append(ch)

        elif state is TokenizerState.AFTER_QUOTE:
            if ch == QUOTE:
                # Escaped quote
                buffer.append(QUOTE)
                state = TokenizerState.IN_QUOTED
            elif ch == DELIMITER:
                fields.append("".join(buffer))
                buffer = []
                state = TokenizerState.FIELD_START
            elif ch in " \t":
                continue
            else:
                raise LineTokenizeError(f"Unexpected character after closing quote at column {position}")

    if state is TokenizerState.IN_QUOTED:
        raise LineTokenizeError("Unterminated quoted field")

    fields.append("".join(buffer))
    return fields


# =============================================================================
# IMPORT
# =============================================================================

class ParseResult(BaseModel):
    """Candidates recovered from a CSV document plus what was dropped."""

    candidates: list[ImportedTransaction] = Field(default_factory=list)
    data_rows: int = Field(
        default=0,
        ge=0,
        description="Non-blank rows after the header"
    )
    skipped_rows: int = Field(
        default=0,
        ge=0,
        description="Rows that produced no candidate"
    )


def parse_amount(value: str) -> Decimal:
    """Parse an amount column; NaN when it is not a plain decimal number."""
    text = value.strip()
    if not _AMOUNT_PATTERN.match(text):
        return Decimal("NaN")
    return Decimal(text)


def build_candidate(fields: list[str]) -> ImportedTransaction:
    """Map the first six fields of a row onto a candidate."""
    return ImportedTransaction(
        id=fields[0] or new_transaction_id(),
        date=fields[1],
        title=fields[2],
        amount=parse_amount(fields[3]),
        category=fields[4],
        type=fields[5],
    )


def _decode(data: Union[str, bytes]) -> str:
    if isinstance(data, str):
        return data
    if isinstance(data, (bytes, bytearray)):
        try:
            return bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"CSV file is not valid UTF-8 text: {e}")
    raise ParseError(f"Expected CSV text, got {type(data).__name__}")


def parse_transactions_detailed(data: Union[str, bytes]) -> ParseResult:
    """
    Parse CSV text into candidates, reporting skipped rows.

    Raises:
        ParseError: The input is not text, or no data row could be tokenized
    """
    text = _decode(data)
    rows = text.split(LINE_SEPARATOR)[1:]

    result = ParseResult()
    tokenized = 0

    for row in rows:
        row = row.rstrip("\r")
        if row.strip() == "":
            continue
        result.data_rows += 1

        try:
            fields = tokenize_line(row)
        except LineTokenizeError as e:
            result.skipped_rows += 1
            logger.debug("csv_row_skipped", reason=str(e))
            continue
        tokenized += 1

        if len(fields) < FIELD_COUNT:
            result.skipped_rows += 1
            logger.debug("csv_row_skipped", reason="too_few_fields", field_count=len(fields))
            continue

        result.candidates.append(build_candidate(fields))

    if result.data_rows and not tokenized:
        raise ParseError(
            "Error parsing CSV file. Please ensure it is correctly formatted."
        )

    return result


def parse_transactions(data: Union[str, bytes]) -> list[ImportedTransaction]:
    """Parse CSV text into transaction candidates."""
    return parse_transactions_detailed(data).candidates
