"""Batch orchestration for Statement Ingest.

Composes the ingest stages for one decoded statement:

1. **Locate header** -- for raw spreadsheet grids, pick the header row
   from the first few rows (:func:`extract_from_grid`).
2. **Normalize** -- turn every row into a
   :class:`~statement_ingest.models.NormalizedTransaction`, dropping rows
   with nothing usable (:func:`normalize_batch`).
3. **Validate** -- split the batch into valid and rejected transactions
   (:func:`validate_transaction`).
4. **Deduplicate** -- partition the valid transactions against what the
   caller already stored (:func:`import_statement`).

Each stage works on in-memory lists and never raises on malformed rows;
problems surface as per-record errors or as ``requires_manual_review``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from statement_ingest.categorizer import DEFAULT_RULES
from statement_ingest.duplicates import partition_duplicates
from statement_ingest.models import (
    DEFAULT_CATEGORY,
    AppConfig,
    BatchResult,
    CategoryRule,
    ImportResult,
    NormalizedTransaction,
    RejectedTransaction,
    ValidationResult,
)
from statement_ingest.normalizer import (
    AMOUNT_COLUMN_NAMES,
    CREDIT_COLUMN_NAMES,
    DATE_COLUMN_NAMES,
    DEBIT_COLUMN_NAMES,
    DESCRIPTION_COLUMN_NAMES,
    discover_columns,
    header_matches,
    normalize_row,
)

logger = logging.getLogger(__name__)

DEFAULT_MASKED_MARKERS: tuple[str, ...] = ("*****",)
DEFAULT_HEADER_SCAN_ROWS = 20

MISSING_DATE = "Missing or invalid date"
MISSING_DESCRIPTION = "Missing or invalid description"
MISSING_AMOUNT = "Missing, invalid, or zero amount"
CATEGORY_NOT_DETECTED = "Category not detected — will be set as Others"

NO_DATA_MESSAGE = "No data found in statement"
NO_HEADER_MESSAGE = (
    "Could not find transaction columns. Please check if this is a bank statement."
)
NO_VALID_MESSAGE = "Could not extract any valid transactions. Please review the file manually."

_AMOUNT_SYNONYMS = CREDIT_COLUMN_NAMES + DEBIT_COLUMN_NAMES + AMOUNT_COLUMN_NAMES


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------


def _is_empty_row(row: Any) -> bool:
    """True for rows with no non-blank cell (``None``, ``[]``, ``["", None]``)."""
    if row is None:
        return True
    values = row.values() if isinstance(row, Mapping) else row
    for value in values:
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return False
    return True


def _has_content(txn: NormalizedTransaction) -> bool:
    return txn.date is not None or txn.description is not None or txn.amount is not None


# ---------------------------------------------------------------------------
# Normalize and validate
# ---------------------------------------------------------------------------


def normalize_batch(
    rows: Sequence[Any],
    headers: Sequence[object] = (),
    rules: Sequence[CategoryRule] = DEFAULT_RULES,
) -> list[NormalizedTransaction]:
    """Normalize every row, discarding rows that yield nothing usable.

    A row is discarded when all of its cells are blank, or when none of
    date, description, or amount could be read from it.

    Returns:
        Normalized transactions in source order.
    """
    normalized: list[NormalizedTransaction] = []
    for row in rows:
        if _is_empty_row(row):
            continue
        txn = normalize_row(row, headers, rules)
        if _has_content(txn):
            normalized.append(txn)
    return normalized


def validate_transaction(
    transaction: NormalizedTransaction,
    masked_markers: Sequence[str] = DEFAULT_MASKED_MARKERS,
) -> ValidationResult:
    """Check whether *transaction* is fit for import.

    A transaction is valid when it has a date, a non-empty description
    free of masked-data markers, and a finite non-zero amount.  A default
    category is reported as a warning only.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if transaction.date is None:
        errors.append(MISSING_DATE)

    description = transaction.description
    if not description or not description.strip() or any(m in description for m in masked_markers):
        errors.append(MISSING_DESCRIPTION)

    amount = transaction.amount
    if amount is None or not amount.is_finite() or amount == 0:
        errors.append(MISSING_AMOUNT)

    if transaction.category == DEFAULT_CATEGORY:
        warnings.append(CATEGORY_NOT_DETECTED)

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def process_rows(
    rows: Sequence[Any],
    headers: Sequence[object] = (),
    rules: Sequence[CategoryRule] = DEFAULT_RULES,
    masked_markers: Sequence[str] = DEFAULT_MASKED_MARKERS,
) -> BatchResult:
    """Normalize and validate a decoded batch of rows.

    Args:
        rows: Positional rows aligned with *headers*, or keyed rows.
        headers: The header row for positional rows.
        rules: Category rule table.
        masked_markers: Substrings that make a description invalid.

    Returns:
        A :class:`BatchResult`.  ``requires_manual_review`` is True when no
        valid transaction was produced.
    """
    header_list = [str(h) if h is not None else "" for h in headers]
    if not rows:
        return BatchResult(
            requires_manual_review=True,
            message=NO_DATA_MESSAGE,
            headers=header_list,
        )

    if header_list:
        logger.debug("Column map for %s: %s", header_list, discover_columns(header_list))

    valid: list[NormalizedTransaction] = []
    rejected: list[RejectedTransaction] = []
    for txn in normalize_batch(rows, headers, rules):
        check = validate_transaction(txn, masked_markers)
        if check.is_valid:
            valid.append(txn)
        else:
            rejected.append(
                RejectedTransaction(transaction=txn, errors=check.errors, warnings=check.warnings)
            )

    logger.info(
        "Normalized %d row(s): %d valid, %d invalid", len(rows), len(valid), len(rejected)
    )

    if not valid:
        return BatchResult(
            invalid_transactions=rejected,
            requires_manual_review=True,
            message=NO_VALID_MESSAGE,
            headers=header_list,
        )
    return BatchResult(
        transactions=valid,
        invalid_transactions=rejected,
        headers=header_list,
    )


# ---------------------------------------------------------------------------
# Spreadsheet grids
# ---------------------------------------------------------------------------


def score_header_row(row: Sequence[Any]) -> int:
    """Count the cells in *row* that name a date, description, or amount column."""
    score = 0
    for cell in row:
        if cell is None:
            continue
        if header_matches(cell, DATE_COLUMN_NAMES):
            score += 1
        if header_matches(cell, DESCRIPTION_COLUMN_NAMES):
            score += 1
        if header_matches(cell, _AMOUNT_SYNONYMS):
            score += 1
    return score


def locate_header_row(
    grid: Sequence[Sequence[Any]],
    max_scan_rows: int = DEFAULT_HEADER_SCAN_ROWS,
) -> int | None:
    """Return the index of the best-scoring header row in *grid*, or ``None``.

    Only the first *max_scan_rows* rows are considered; the earliest row
    wins ties.  ``None`` means no row names any known column.
    """
    best_index: int | None = None
    best_score = 0
    for index, row in enumerate(grid[:max_scan_rows]):
        score = score_header_row(row)
        if score > best_score:
            best_index, best_score = index, score
    return best_index


def extract_from_grid(
    grid: Sequence[Sequence[Any]],
    rules: Sequence[CategoryRule] = DEFAULT_RULES,
    max_scan_rows: int = DEFAULT_HEADER_SCAN_ROWS,
    masked_markers: Sequence[str] = DEFAULT_MASKED_MARKERS,
) -> BatchResult:
    """Extract transactions from a raw spreadsheet grid.

    Bank exports often carry preamble rows (bank name, account details)
    above the real header, so the header row is detected rather than
    assumed to be first.

    Args:
        grid: Every decoded row of the sheet, header and preamble included.
        rules: Category rule table.
        max_scan_rows: How many non-empty leading rows to search for the
            header.
        masked_markers: Substrings that make a description invalid.

    Returns:
        A :class:`BatchResult`.  When no header row can be found the result
        has no transactions and ``requires_manual_review`` is True.
    """
    rows = [list(row) for row in grid if not _is_empty_row(row)]
    if not rows:
        return BatchResult(requires_manual_review=True, message=NO_DATA_MESSAGE)

    header_index = locate_header_row(rows, max_scan_rows)
    if header_index is None:
        logger.warning("No header row found in the first %d row(s)", max_scan_rows)
        return BatchResult(requires_manual_review=True, message=NO_HEADER_MESSAGE)

    headers = rows[header_index]
    logger.debug("Header row %d: %s", header_index, headers)
    return process_rows(rows[header_index + 1 :], headers, rules, masked_markers)


def process_statement(
    grid: Sequence[Sequence[Any]],
    config: AppConfig,
    rules: Sequence[CategoryRule] = DEFAULT_RULES,
) -> BatchResult:
    """Run :func:`extract_from_grid` with settings taken from *config*."""
    return extract_from_grid(
        grid,
        rules=rules,
        max_scan_rows=config.header_scan_rows,
        masked_markers=config.masked_markers,
    )


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def import_statement(
    batch: BatchResult,
    existing: Sequence[NormalizedTransaction],
    config: AppConfig | None = None,
) -> ImportResult:
    """Partition a normalized batch into new and already-stored transactions.

    Args:
        batch: Output of :func:`process_rows` or :func:`extract_from_grid`.
            Only its valid transactions are considered.
        existing: Transactions the caller already persisted.
        config: Supplies duplicate scoring settings; defaults apply if None.

    Returns:
        An :class:`ImportResult` for the caller to persist.
    """
    settings = config.duplicates if config is not None else None
    result = partition_duplicates(batch.transactions, existing, settings=settings)
    logger.info(
        "Import check: %d new, %d duplicate match(es)",
        len(result.new_transactions),
        len(result.duplicates),
    )
    return result
