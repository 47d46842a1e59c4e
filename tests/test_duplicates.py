"""Tests for duplicate detection.

Covers:
- create_transaction_hash: stability and the fields it normalizes.
- similarity / amounts_match: scoring primitives.
- check_duplicate: hash stage, fuzzy stage, amount gate, threshold.
- find_duplicates / partition_duplicates: batch behaviour and ordering.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from statement_ingest.duplicates import (
    FUZZY_REASON,
    HASH_REASON,
    NOT_DUPLICATE_REASON,
    amounts_match,
    check_duplicate,
    create_transaction_hash,
    find_duplicates,
    partition_duplicates,
    similarity,
)
from statement_ingest.models import DuplicateSettings, FuzzyScores, NormalizedTransaction


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_txn(
    description: str | None = "UPI-SWIGGY-ORDER-12345",
    *,
    amount: Decimal | None = Decimal("-432.50"),
    txn_date: date | None = date(2024, 3, 4),
    category: str = "Swiggy",
) -> NormalizedTransaction:
    """Build a minimal NormalizedTransaction for duplicate tests."""
    return NormalizedTransaction(
        date=txn_date,
        description=description,
        amount=amount,
        type="debit",
        category=category,
    )


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


class TestCreateTransactionHash:
    def test_hex_sha256(self) -> None:
        digest = create_transaction_hash(_make_txn())
        assert len(digest) == 64
        assert digest == digest.lower()

    def test_stable(self) -> None:
        assert create_transaction_hash(_make_txn()) == create_transaction_hash(_make_txn())

    def test_description_case_and_whitespace_ignored(self) -> None:
        a = _make_txn("UPI-SWIGGY-ORDER-12345")
        b = _make_txn("  upi-swiggy-order-12345 ")
        assert create_transaction_hash(a) == create_transaction_hash(b)

    def test_amount_scale_ignored(self) -> None:
        a = _make_txn(amount=Decimal("-432.5"))
        b = _make_txn(amount=Decimal("-432.50"))
        assert create_transaction_hash(a) == create_transaction_hash(b)

    def test_category_not_hashed(self) -> None:
        assert create_transaction_hash(_make_txn(category="Food")) == create_transaction_hash(
            _make_txn(category="Swiggy")
        )

    @pytest.mark.parametrize(
        "other",
        [
            _make_txn(txn_date=date(2024, 3, 5)),
            _make_txn(amount=Decimal("-432.51")),
            _make_txn("UPI-SWIGGY-ORDER-12346"),
        ],
    )
    def test_any_field_change_changes_hash(self, other: NormalizedTransaction) -> None:
        assert create_transaction_hash(_make_txn()) != create_transaction_hash(other)


# ---------------------------------------------------------------------------
# Scoring primitives
# ---------------------------------------------------------------------------


class TestSimilarity:
    def test_identical(self) -> None:
        assert similarity("abc", "abc") == 100

    def test_case_insensitive(self) -> None:
        assert similarity("SWIGGY", "swiggy") == 100

    def test_one_edit(self) -> None:
        # 22 vs 23 characters, one insertion: 22/23 = 95.65...
        assert similarity("UPI-SWIGGY-ORDER-12345", "UPI-SWIGGY-ORDER-123456") == 96

    def test_rounds_half_up(self) -> None:
        # 7 of 8 characters kept: 87.5 rounds to 88.
        assert similarity("abcdefgh", "abcdefgX") == 88

    @pytest.mark.parametrize(("a", "b"), [("", "abc"), ("abc", ""), (None, "abc"), ("", "")])
    def test_empty_scores_zero(self, a: str | None, b: str | None) -> None:
        assert similarity(a, b) == 0


class TestAmountsMatch:
    def test_within_tolerance(self) -> None:
        assert amounts_match(Decimal("100.00"), Decimal("100.005"))

    def test_beyond_tolerance(self) -> None:
        assert not amounts_match(Decimal("100.00"), Decimal("100.02"))

    def test_one_cent_apart_is_not_a_match(self) -> None:
        assert not amounts_match(Decimal("100.00"), Decimal("100.01"))

    def test_both_absent(self) -> None:
        assert amounts_match(None, None)

    def test_one_absent(self) -> None:
        assert not amounts_match(Decimal("1"), None)

    def test_custom_tolerance(self) -> None:
        assert amounts_match(Decimal("100"), Decimal("101"), tolerance=Decimal("1.5"))
        assert not amounts_match(Decimal("100"), Decimal("101"), tolerance=Decimal("1"))


# ---------------------------------------------------------------------------
# Pairwise verdict
# ---------------------------------------------------------------------------


class TestCheckDuplicate:
    """Hash stage, then fuzzy stage."""

    def test_hash_match(self) -> None:
        verdict = check_duplicate(_make_txn(), _make_txn("upi-swiggy-order-12345 "))
        assert verdict.is_duplicate
        assert verdict.confidence == 100
        assert verdict.method == "hash"
        assert verdict.reason == HASH_REASON
        assert verdict.scores is None

    def test_fuzzy_match_on_reference_suffix(self) -> None:
        verdict = check_duplicate(_make_txn("UPI-SWIGGY-ORDER-123456"), _make_txn())
        assert verdict.is_duplicate
        assert verdict.method == "fuzzy"
        assert verdict.reason == FUZZY_REASON
        # 100 * 0.3 + 96 * 0.5 + 100 * 0.2
        assert verdict.confidence == 98
        assert verdict.scores == FuzzyScores(
            date_similarity=100, description_similarity=96, amount_match=True
        )

    def test_amount_gate(self) -> None:
        verdict = check_duplicate(_make_txn(amount=Decimal("-433.00")), _make_txn())
        assert not verdict.is_duplicate
        assert verdict.method == "fuzzy"
        assert verdict.reason == NOT_DUPLICATE_REASON
        assert verdict.confidence == 80
        assert verdict.scores is not None
        assert verdict.scores.amount_match is False

    def test_below_threshold(self) -> None:
        verdict = check_duplicate(
            _make_txn("ZOMATO ORDER"), _make_txn(txn_date=date(2023, 11, 20))
        )
        assert not verdict.is_duplicate
        assert verdict.confidence < 80

    def test_threshold_from_settings(self) -> None:
        incoming = _make_txn("UPI-SWIGGY-ORDER-123456")
        strict = DuplicateSettings(threshold=99)
        assert not check_duplicate(incoming, _make_txn(), strict).is_duplicate

    def test_amount_tolerance_from_settings(self) -> None:
        incoming = _make_txn("UPI-SWIGGY-ORDER-123456", amount=Decimal("-433.00"))
        loose = DuplicateSettings(amount_tolerance=Decimal("1.00"))
        assert check_duplicate(incoming, _make_txn(), loose).is_duplicate


# ---------------------------------------------------------------------------
# Batch API
# ---------------------------------------------------------------------------


class TestFindDuplicates:
    def test_single_pair_hash(self) -> None:
        matches = find_duplicates([_make_txn()], [_make_txn()])
        assert len(matches) == 1
        assert matches[0].verdict.confidence == 100
        assert matches[0].incoming_index == 0
        assert matches[0].existing_index == 0

    def test_no_existing(self) -> None:
        assert find_duplicates([_make_txn()], []) == []

    def test_one_cent_difference_is_not_a_duplicate(self) -> None:
        incoming = [_make_txn(amount=Decimal("-100.01"))]
        assert find_duplicates(incoming, [_make_txn(amount=Decimal("-100.00"))]) == []

    def test_one_incoming_matches_several_existing(self) -> None:
        existing = [_make_txn(), _make_txn("UPI-SWIGGY-ORDER-123456"), _make_txn("NETFLIX")]
        matches = find_duplicates([_make_txn()], existing)
        assert [m.existing_index for m in matches] == [0, 1]
        assert [m.verdict.method for m in matches] == ["hash", "fuzzy"]

    def test_threshold_override(self) -> None:
        incoming = [_make_txn("UPI-SWIGGY-ORDER-123456")]
        assert find_duplicates(incoming, [_make_txn()], threshold=99) == []
        assert len(find_duplicates(incoming, [_make_txn()], threshold=90)) == 1


class TestPartitionDuplicates:
    def test_split(self, sample_transactions: list[NormalizedTransaction]) -> None:
        incoming = [
            sample_transactions[1],
            _make_txn("UPI-ZEPTO-ORDER-4411", amount=Decimal("-310.00")),
            sample_transactions[3],
        ]
        result = partition_duplicates(incoming, sample_transactions)
        assert result.new_transactions == [incoming[1]]
        assert [m.incoming_index for m in result.duplicates] == [0, 2]
        assert [m.existing_index for m in result.duplicates] == [1, 3]

    def test_empty_incoming(self, sample_transactions: list[NormalizedTransaction]) -> None:
        result = partition_duplicates([], sample_transactions)
        assert result.new_transactions == []
        assert result.duplicates == []
