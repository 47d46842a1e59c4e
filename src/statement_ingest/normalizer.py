"""Row normalizer: one raw statement row in, one canonical transaction out.

Column layout is unknown in advance, so columns are located by matching
header text against synonym lists:

- date: first header containing a date synonym;
- description: first header containing a description synonym;
- credit / debit: headers naming a money-in or money-out column;
- amount: a generic amount column, used when no credit/debit value exists.

Rows may be positional (a sequence aligned with *headers*) or keyed (a
mapping from header to value, whose keys are searched instead).

Precedence when a row has separate credit and debit columns: the column
holding a non-empty, non-zero value decides the amount and its direction,
and the credit column wins when both are populated.

A header naming both directions ("Cr/Dr", "Dr/Cr Amount") is not used as a
credit or debit column.  When it is the only money column it is read as a
signed amount.  When it sits beside a separate "Amount" column it is a
marker column that is ignored, so unsigned amounts there come out as
credits.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from statement_ingest.categorizer import DEFAULT_RULES, detect_category
from statement_ingest.credit_cards import extract_credit_card_info, is_credit_card_payment
from statement_ingest.merchants import detect_merchant
from statement_ingest.models import (
    CREDIT_CARD_BILLS,
    DEFAULT_CATEGORY,
    DEFAULT_MERCHANT,
    CategoryRule,
    NormalizedTransaction,
    TransactionType,
)
from statement_ingest.parsing import parse_amount, parse_date

DATE_COLUMN_NAMES = (
    "date",
    "transaction date",
    "txn date",
    "posting date",
    "value date",
    "trans date",
    "tran date",
)

DESCRIPTION_COLUMN_NAMES = (
    "description",
    "narration",
    "particulars",
    "details",
    "remarks",
    "transaction details",
    "txn details",
    "merchant",
    "payee",
)

CREDIT_COLUMN_NAMES = ("credit", "cr", "deposit", "credit amt", "credit amount", "deposits")
DEBIT_COLUMN_NAMES = ("debit", "dr", "withdrawal", "withdrawals", "debit amt", "debit amount")
AMOUNT_COLUMN_NAMES = ("amount", "transaction amount", "txn amount", "value")

# Synonyms this short only match a whole word ("Cr", "Amount (Dr)"), never
# the inside of a longer word ("Description", "Address").
_WORD_MATCH_MAX_LEN = 2


@dataclass(frozen=True)
class ColumnMap:
    """Indices of the columns a row is read from; ``None`` when not found."""

    date: int | None = None
    description: int | None = None
    credit: int | None = None
    debit: int | None = None
    amount: int | None = None


# ---------------------------------------------------------------------------
# Column discovery
# ---------------------------------------------------------------------------


def header_matches(header: object, synonyms: Sequence[str]) -> bool:
    """Check whether *header* names one of *synonyms* (case-insensitive)."""
    text = str(header).strip().lower()
    if not text:
        return False
    for synonym in synonyms:
        if len(synonym) <= _WORD_MATCH_MAX_LEN:
            if re.search(rf"(?<![a-z0-9]){re.escape(synonym)}(?![a-z0-9])", text):
                return True
        elif synonym in text:
            return True
    return False


def find_column(
    headers: Sequence[object],
    synonyms: Sequence[str],
    skip: frozenset[int] = frozenset(),
) -> int | None:
    """Return the index of the first header matching *synonyms*, or ``None``."""
    for index, header in enumerate(headers):
        if index in skip or header is None:
            continue
        if header_matches(header, synonyms):
            return index
    return None


def discover_columns(headers: Sequence[object]) -> ColumnMap:
    """Locate the date, description, and amount columns in *headers*.

    Never raises; columns that cannot be found are left as ``None``.  A
    column whose name matches both credit and debit synonyms (e.g.
    ``"Dr/Cr Amount"``) is treated as a generic signed amount column.
    """
    date_idx = find_column(headers, DATE_COLUMN_NAMES)
    taken = frozenset(i for i in (date_idx,) if i is not None)

    desc_idx = find_column(headers, DESCRIPTION_COLUMN_NAMES, skip=taken)
    credit_idx = find_column(headers, CREDIT_COLUMN_NAMES, skip=taken)
    debit_idx = find_column(headers, DEBIT_COLUMN_NAMES, skip=taken)
    if credit_idx is not None and credit_idx == debit_idx:
        credit_idx = debit_idx = None

    taken = frozenset(i for i in (date_idx, credit_idx, debit_idx) if i is not None)
    amount_idx = find_column(headers, AMOUNT_COLUMN_NAMES, skip=taken)

    return ColumnMap(
        date=date_idx,
        description=desc_idx,
        credit=credit_idx,
        debit=debit_idx,
        amount=amount_idx,
    )


def normalize_key(header: object) -> str:
    """Normalize a header into an ``original_data`` key: ``"Txn Date"`` -> ``"txn_date"``."""
    return re.sub(r"\s+", "_", str(header).strip().lower())


# ---------------------------------------------------------------------------
# Cell helpers
# ---------------------------------------------------------------------------


def _cell(values: Sequence[Any], index: int | None) -> Any:
    if index is None or index >= len(values):
        return None
    return values[index]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _nonzero_amount(value: Any) -> Decimal | None:
    if _is_blank(value):
        return None
    amount = parse_amount(value)
    if amount is None or amount == 0:
        return None
    return amount


def _read_amount(values: Sequence[Any], columns: ColumnMap) -> tuple[Decimal | None, TransactionType]:
    """Resolve the signed amount and its direction for one row."""
    credit = _nonzero_amount(_cell(values, columns.credit))
    if credit is not None:
        return abs(credit), "credit"

    debit = _nonzero_amount(_cell(values, columns.debit))
    if debit is not None:
        return -abs(debit), "debit"

    amount = _nonzero_amount(_cell(values, columns.amount))
    if amount is None:
        return None, "unknown"
    return amount, "credit" if amount > 0 else "debit"


def _read_description(value: Any) -> str | None:
    if _is_blank(value):
        return None
    text = str(value).strip()
    return text or None


def _split_row(raw_row: Any, headers: Sequence[object]) -> tuple[list[object], list[Any]]:
    """Return parallel (headers, values) lists for a positional or keyed row."""
    if isinstance(raw_row, Mapping):
        keys = list(raw_row.keys())
        return keys, [raw_row[k] for k in keys]
    if isinstance(raw_row, (list, tuple)):
        return list(headers), list(raw_row)
    return list(headers), []


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_row(
    raw_row: Sequence[Any] | Mapping[str, Any],
    headers: Sequence[object] = (),
    rules: Sequence[CategoryRule] = DEFAULT_RULES,
) -> NormalizedTransaction:
    """Build a :class:`NormalizedTransaction` from one raw row.

    Pure function of its inputs: the row is never mutated and the same row
    always yields an equal result.

    Args:
        raw_row: A sequence of cell values aligned with *headers*, or a
            mapping from header name to cell value.
        headers: Column names for positional rows.  Ignored for keyed rows,
            whose own keys are used.
        rules: Category rule table passed through to the category mapper.

    Returns:
        The normalized transaction.  Fields that cannot be located or parsed
        are left absent; ``category`` and ``merchant`` always carry a value.
    """
    row_headers, values = _split_row(raw_row, headers)
    columns = discover_columns(row_headers)

    txn_date = parse_date(_cell(values, columns.date))
    description = _read_description(_cell(values, columns.description))
    amount, txn_type = _read_amount(values, columns)

    original_data = {
        normalize_key(header): value
        for header, value in zip(row_headers, values)
        if value is not None
    }

    category = DEFAULT_CATEGORY
    merchant = DEFAULT_MERCHANT
    card_payment = False
    card_info = None
    if description:
        category = detect_category(description, amount, rules) or DEFAULT_CATEGORY
        merchant = detect_merchant(description)
        if is_credit_card_payment(description):
            card_payment = True
            card_info = extract_credit_card_info(description)
            category = CREDIT_CARD_BILLS

    return NormalizedTransaction(
        date=txn_date,
        description=description,
        amount=amount,
        type=txn_type,
        category=category,
        merchant=merchant,
        tags=[],
        is_credit_card_payment=card_payment,
        credit_card_info=card_info,
        original_data=original_data,
    )
