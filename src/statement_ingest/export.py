"""CSV transaction store and processing summary printer.

- :func:`read_grid` decodes a delimited-text statement into a grid of cells.
- :func:`load_transactions` reads previously imported transactions back
  from the store CSV, for duplicate checks.
- :func:`append_transactions` appends newly imported transactions to it.
- :func:`print_summary` prints a human-readable import summary to stdout.
"""

from __future__ import annotations

import csv
import json
from collections import Counter
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

from statement_ingest.models import (
    DEFAULT_CATEGORY,
    DEFAULT_MERCHANT,
    BatchResult,
    CreditCardInfo,
    ImportResult,
    NormalizedTransaction,
)

# Fixed store column order.
CSV_COLUMNS = [
    "date",
    "description",
    "amount",
    "type",
    "category",
    "merchant",
    "tags",
    "is_credit_card_payment",
    "card_bank",
    "card_last4",
    "card_display_name",
]


# ---------------------------------------------------------------------------
# Statement decoding
# ---------------------------------------------------------------------------


def read_grid(path: str | Path) -> list[list[str]]:
    """Decode a CSV statement into rows of cell strings.

    The delimiter is sniffed from the first few kilobytes and falls back to
    a comma.  A UTF-8 byte-order mark is stripped.

    Raises:
        FileNotFoundError: If *path* does not exist.
    """
    with open(path, newline="", encoding="utf-8-sig") as f:
        sample = f.read(4096)
        f.seek(0)
        try:
            dialect = csv.Sniffer().sniff(sample, delimiters=",;\t|")
        except csv.Error:
            dialect = csv.excel
        return [row for row in csv.reader(f, dialect)]


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


def _to_row(txn: NormalizedTransaction) -> dict[str, str]:
    info = txn.credit_card_info
    return {
        "date": txn.date.isoformat() if txn.date else "",
        "description": txn.description or "",
        "amount": str(txn.amount) if txn.amount is not None else "",
        "type": txn.type,
        "category": txn.category,
        "merchant": txn.merchant,
        "tags": json.dumps(list(txn.tags)),
        "is_credit_card_payment": str(txn.is_credit_card_payment),
        "card_bank": info.bank if info else "",
        "card_last4": (info.last4 or "") if info else "",
        "card_display_name": info.display_name if info else "",
    }


def _from_row(row: dict[str, str]) -> NormalizedTransaction:
    date_text = (row.get("date") or "").strip()
    amount_text = (row.get("amount") or "").strip()
    try:
        amount = Decimal(amount_text) if amount_text else None
    except InvalidOperation:
        amount = None

    is_card = (row.get("is_credit_card_payment") or "").strip() == "True"
    info = None
    if is_card:
        info = CreditCardInfo(
            bank=row.get("card_bank") or "Unknown",
            card_type="Credit Card",
            last4=row.get("card_last4") or None,
            display_name=row.get("card_display_name") or "Unknown Credit Card",
        )

    tags_text = row.get("tags") or "[]"
    try:
        tags = [str(t) for t in json.loads(tags_text)]
    except json.JSONDecodeError:
        tags = []

    return NormalizedTransaction(
        date=date.fromisoformat(date_text) if date_text else None,
        description=(row.get("description") or "").strip() or None,
        amount=amount,
        type=row.get("type") or "unknown",
        category=row.get("category") or DEFAULT_CATEGORY,
        merchant=row.get("merchant") or DEFAULT_MERCHANT,
        tags=tags,
        is_credit_card_payment=is_card,
        credit_card_info=info,
    )


def load_transactions(path: str | Path) -> list[NormalizedTransaction]:
    """Read stored transactions from *path*.

    Returns:
        The stored transactions in file order, or an empty list if the
        store does not exist yet.

    Raises:
        ValueError: If a stored date is not ISO formatted.
    """
    path = Path(path)
    if not path.is_file():
        return []
    with open(path, newline="", encoding="utf-8") as f:
        return [_from_row(row) for row in csv.DictReader(f)]


def append_transactions(
    transactions: list[NormalizedTransaction],
    path: str | Path,
) -> Path:
    """Append *transactions* to the store CSV, writing a header if new.

    Returns:
        The :class:`~pathlib.Path` of the store file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    write_header = not path.exists() or path.stat().st_size == 0

    with open(path, "a", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
        if write_header:
            writer.writeheader()
        for txn in transactions:
            writer.writerow(_to_row(txn))
    return path


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def print_summary(
    batch: BatchResult,
    import_result: ImportResult | None,
    source: str,
    imported: int | None = None,
) -> None:
    """Print a processing summary for one statement to stdout.

    Args:
        batch: Result of normalizing the statement.
        import_result: Result of the duplicate check, or None if skipped.
        source: Statement file name, for display.
        imported: Number of transactions written to the store, or None for
            a dry run.
    """
    print()
    print(f"== Import Summary: {source} ==")

    if batch.requires_manual_review:
        print(f"  Manual review required: {batch.message}")

    print(f"  Valid transactions:     {len(batch.transactions)}")
    print(f"  Invalid transactions:   {len(batch.invalid_transactions)}")

    if import_result is not None:
        duplicate_rows = len({m.incoming_index for m in import_result.duplicates})
        print(f"  New transactions:       {len(import_result.new_transactions)}")
        print(f"  Duplicates found:       {duplicate_rows}")

    if imported is None:
        print("  Dry run: nothing written")
    else:
        print(f"  Written to store:       {imported}")

    if batch.invalid_transactions:
        reasons: Counter[str] = Counter()
        for rejected in batch.invalid_transactions:
            reasons.update(rejected.errors)
        print()
        print("-- Rejection reasons --")
        for reason, count in reasons.most_common():
            print(f"  {reason:<36s} {count:>4d}")

    if batch.transactions:
        totals: dict[str, Decimal] = {}
        for txn in batch.transactions:
            totals[txn.category] = totals.get(txn.category, Decimal("0")) + (txn.amount or 0)
        print()
        print("-- By category --")
        for category, total in sorted(totals.items(), key=lambda item: item[1]):
            print(f"  {category:<24s} {total:>12,.2f}")

    print()
