"""Duplicate detection between incoming and previously stored transactions.

Every incoming transaction is compared with every existing one in two
stages:

1. **Hash** -- a SHA-256 digest over the normalized ``(date, amount,
   description)`` triple.  Equal digests are a duplicate with confidence 100.
2. **Fuzzy** -- otherwise, a weighted score of date similarity, description
   similarity (both Levenshtein-based, 0-100), and an exact-amount match.
   A pair is a duplicate when the score reaches the threshold *and* the
   amounts match; differing amounts are never duplicates.

Comparison is O(N x M), which is fine for statement-sized batches.
"""

from __future__ import annotations

import dataclasses
import hashlib
import logging
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from rapidfuzz.distance import Levenshtein

from statement_ingest.models import (
    DuplicateMatch,
    DuplicateSettings,
    DuplicateVerdict,
    FuzzyScores,
    ImportResult,
    NormalizedTransaction,
)

logger = logging.getLogger(__name__)

HASH_REASON = "Exact match (hash)"
FUZZY_REASON = "High similarity match"
NOT_DUPLICATE_REASON = "Not a duplicate"

_CENTS = Decimal("0.01")


# ---------------------------------------------------------------------------
# Normalization and hashing
# ---------------------------------------------------------------------------


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _date_text(txn: NormalizedTransaction) -> str:
    return txn.date.isoformat() if txn.date is not None else ""


def _amount_text(txn: NormalizedTransaction) -> str:
    if txn.amount is None:
        return ""
    return str(txn.amount.quantize(_CENTS, rounding=ROUND_HALF_UP))


def _description_text(txn: NormalizedTransaction) -> str:
    return txn.description.strip().lower() if txn.description else ""


def create_transaction_hash(transaction: NormalizedTransaction) -> str:
    """Return a stable content hash of a transaction.

    The hash covers the ISO date, the amount at two decimal places, and
    the trimmed lower-cased description, pipe-delimited.  Absent fields
    contribute empty strings.

    Returns:
        A 64-character lowercase hex SHA-256 digest.
    """
    raw = f"{_date_text(transaction)}|{_amount_text(transaction)}|{_description_text(transaction)}"
    return hashlib.sha256(raw.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Fuzzy scoring
# ---------------------------------------------------------------------------


def similarity(first: str | None, second: str | None) -> int:
    """Edit-distance similarity of two strings as a 0-100 integer.

    Computed case-insensitively as ``(max_len - distance) / max_len * 100``,
    rounded half up.  Either string being empty scores 0.
    """
    if not first or not second:
        return 0
    s1 = first.lower()
    s2 = second.lower()
    max_length = max(len(s1), len(s2))
    distance = Levenshtein.distance(s1, s2)
    return _round_half_up((max_length - distance) / max_length * 100)


def amounts_match(
    first: Decimal | None,
    second: Decimal | None,
    tolerance: Decimal = _CENTS,
) -> bool:
    """True when both amounts are absent, or both present and less than *tolerance* apart."""
    if first is None or second is None:
        return first is None and second is None
    return abs(first - second) < tolerance


def check_duplicate(
    incoming: NormalizedTransaction,
    existing: NormalizedTransaction,
    settings: DuplicateSettings | None = None,
) -> DuplicateVerdict:
    """Decide whether *incoming* duplicates *existing*.

    Args:
        incoming: A freshly normalized transaction.
        existing: A previously stored transaction.
        settings: Scoring weights, threshold, and amount tolerance.

    Returns:
        A :class:`DuplicateVerdict` tagged with the deciding method.
    """
    settings = settings or DuplicateSettings()

    if create_transaction_hash(incoming) == create_transaction_hash(existing):
        return DuplicateVerdict(
            is_duplicate=True,
            confidence=100,
            reason=HASH_REASON,
            method="hash",
        )

    date_similarity = similarity(_date_text(incoming), _date_text(existing))
    desc_similarity = similarity(incoming.description, existing.description)
    amount_match = amounts_match(incoming.amount, existing.amount, settings.amount_tolerance)

    confidence = _round_half_up(
        date_similarity * settings.date_weight
        + desc_similarity * settings.description_weight
        + (100 if amount_match else 0) * settings.amount_weight
    )
    scores = FuzzyScores(
        date_similarity=date_similarity,
        description_similarity=desc_similarity,
        amount_match=amount_match,
    )

    if amount_match and confidence >= settings.threshold:
        return DuplicateVerdict(
            is_duplicate=True,
            confidence=confidence,
            reason=FUZZY_REASON,
            method="fuzzy",
            scores=scores,
        )
    return DuplicateVerdict(
        is_duplicate=False,
        confidence=confidence,
        reason=NOT_DUPLICATE_REASON,
        method="fuzzy",
        scores=scores,
    )


# ---------------------------------------------------------------------------
# Batch API
# ---------------------------------------------------------------------------


def _effective_settings(threshold: int | None, settings: DuplicateSettings | None) -> DuplicateSettings:
    settings = settings or DuplicateSettings()
    if threshold is not None:
        settings = dataclasses.replace(settings, threshold=threshold)
    return settings


def find_duplicates(
    incoming: Sequence[NormalizedTransaction],
    existing: Sequence[NormalizedTransaction],
    threshold: int | None = None,
    settings: DuplicateSettings | None = None,
) -> list[DuplicateMatch]:
    """Compare every incoming transaction against every existing one.

    Args:
        incoming: Transactions about to be imported.
        existing: Transactions already stored.
        threshold: Overrides ``settings.threshold`` when given (default 80).
        settings: Scoring settings; defaults apply if None.

    Returns:
        One :class:`DuplicateMatch` per duplicate pair, ordered by incoming
        index and then existing index.  An incoming transaction may match
        several existing ones.
    """
    settings = _effective_settings(threshold, settings)
    matches: list[DuplicateMatch] = []

    for incoming_index, new_txn in enumerate(incoming):
        for existing_index, old_txn in enumerate(existing):
            verdict = check_duplicate(new_txn, old_txn, settings)
            if not verdict.is_duplicate:
                continue
            logger.debug(
                "Incoming #%d duplicates existing #%d (%s, confidence %d)",
                incoming_index,
                existing_index,
                verdict.method,
                verdict.confidence,
            )
            matches.append(
                DuplicateMatch(
                    incoming_index=incoming_index,
                    existing_index=existing_index,
                    incoming=new_txn,
                    existing=old_txn,
                    verdict=verdict,
                )
            )
    return matches


def partition_duplicates(
    incoming: Sequence[NormalizedTransaction],
    existing: Sequence[NormalizedTransaction],
    threshold: int | None = None,
    settings: DuplicateSettings | None = None,
) -> ImportResult:
    """Split *incoming* into new transactions and duplicate matches.

    An incoming transaction is new when it matches no existing
    transaction; otherwise every match it produced is reported in
    ``duplicates``.
    """
    matches = find_duplicates(incoming, existing, threshold=threshold, settings=settings)
    duplicate_indices = {match.incoming_index for match in matches}
    new_transactions = [
        txn for index, txn in enumerate(incoming) if index not in duplicate_indices
    ]
    return ImportResult(new_transactions=new_transactions, duplicates=matches)
