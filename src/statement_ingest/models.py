"""Core data models for Statement Ingest.

This module defines the dataclasses shared by every stage of the ingest
pipeline. It has zero internal imports -- everything depends on it, but it
depends on nothing within the package.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Literal, Union

TransactionType = Literal["credit", "debit", "unknown"]
RuleType = Literal["credit", "debit"]
DuplicateMethod = Literal["hash", "fuzzy"]

# A pattern is either a case-insensitive literal substring or a compiled
# regular expression.
Pattern = Union[str, re.Pattern]

DEFAULT_CATEGORY = "Others"
DEFAULT_MERCHANT = "Others"
CREDIT_CARD_BILLS = "Credit Card Bills"


@dataclass(frozen=True)
class CreditCardInfo:
    """Issuer details extracted from a credit-card bill payment.

    Attributes:
        bank: Issuing bank, title-cased, or "Unknown".
        card_type: Always "Credit Card".
        last4: The first bare 4-digit run in the description, or None.
        display_name: Human-readable label, e.g. "Hdfc Credit Card (*4321)".
    """

    bank: str = "Unknown"
    card_type: str = "Credit Card"
    last4: str | None = None
    display_name: str = "Unknown Credit Card"


@dataclass(frozen=True)
class NormalizedTransaction:
    """The canonical record derived from one raw statement row.

    Built in a single step by :func:`statement_ingest.normalizer.normalize_row`
    and never mutated afterwards; use :func:`dataclasses.replace` to derive
    a changed copy.

    Attributes:
        date: Transaction date, or None if unparseable.
        description: Trimmed free text, or None.
        amount: Signed amount. Positive is money in (credit), negative is
            money out (debit). None if unparseable or zero.
        type: "credit", "debit", or "unknown".
        category: Resolved spending category. Never empty.
        merchant: Resolved merchant identity. Never empty.
        tags: Always empty at creation time.
        is_credit_card_payment: True if the description is a card bill payment.
        credit_card_info: Issuer details when ``is_credit_card_payment``.
        original_data: Every original cell value keyed by its normalized
            header (lower-cased, whitespace replaced by underscores).
    """

    date: date | None = None
    description: str | None = None
    amount: Decimal | None = None
    type: TransactionType = "unknown"
    category: str = DEFAULT_CATEGORY
    merchant: str = DEFAULT_MERCHANT
    tags: list[str] = field(default_factory=list)
    is_credit_card_payment: bool = False
    credit_card_info: CreditCardInfo | None = None
    original_data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CategoryRule:
    """One entry in the ordered category rule table.

    Rules are evaluated in table order and the first matching, non-excluded
    rule wins, so more specific rules must be placed ahead of broader ones.

    Attributes:
        name: Lookup key, e.g. "CREDIT_CARD_BILLS".
        category: Label assigned when the rule fires.
        patterns: Literal substrings (case-insensitive) or compiled regexes.
        type: "credit" restricts the rule to positive amounts, "debit" to
            zero, negative, or absent amounts. None applies to both.
        exclude_patterns: Checked first; any hit disqualifies the rule.
    """

    name: str
    category: str
    patterns: tuple[Pattern, ...]
    type: RuleType | None = None
    exclude_patterns: tuple[Pattern, ...] = ()


@dataclass
class ValidationResult:
    """Outcome of validating one normalized transaction."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class RejectedTransaction:
    """A normalized transaction that failed validation, with the reasons."""

    transaction: NormalizedTransaction
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class BatchResult:
    """Return type of the batch normalizer.

    Attributes:
        transactions: Valid transactions, in source order.
        invalid_transactions: Transactions that failed validation.
        requires_manual_review: True when no valid transaction was produced,
            so the caller should prompt the user instead of importing nothing.
        message: Human-readable explanation when manual review is required.
        headers: The header row the batch was normalized against.
    """

    transactions: list[NormalizedTransaction] = field(default_factory=list)
    invalid_transactions: list[RejectedTransaction] = field(default_factory=list)
    requires_manual_review: bool = False
    message: str | None = None
    headers: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FuzzyScores:
    """Component scores behind a fuzzy duplicate verdict."""

    date_similarity: int
    description_similarity: int
    amount_match: bool


@dataclass(frozen=True)
class DuplicateVerdict:
    """Pairwise verdict between one incoming and one existing transaction.

    ``method`` tags which stage decided: "hash" verdicts carry no scores,
    "fuzzy" verdicts carry the :class:`FuzzyScores` they were computed from.
    """

    is_duplicate: bool
    confidence: int
    reason: str
    method: DuplicateMethod
    scores: FuzzyScores | None = None


@dataclass(frozen=True)
class DuplicateMatch:
    """An incoming transaction judged to already exist in storage."""

    incoming_index: int
    existing_index: int
    incoming: NormalizedTransaction
    existing: NormalizedTransaction
    verdict: DuplicateVerdict


@dataclass
class ImportResult:
    """Incoming transactions partitioned by the duplicate detector."""

    new_transactions: list[NormalizedTransaction] = field(default_factory=list)
    duplicates: list[DuplicateMatch] = field(default_factory=list)


@dataclass(frozen=True)
class DuplicateSettings:
    """Tunable constants for fuzzy duplicate scoring.

    Attributes:
        threshold: Minimum combined score (0-100) for a fuzzy duplicate.
        date_weight: Weight of the date similarity.
        description_weight: Weight of the description similarity.
        amount_weight: Weight of the exact-amount match.
        amount_tolerance: Absolute difference under which amounts match.
    """

    threshold: int = 80
    date_weight: float = 0.3
    description_weight: float = 0.5
    amount_weight: float = 0.2
    amount_tolerance: Decimal = Decimal("0.01")


@dataclass
class AppConfig:
    """Top-level application configuration loaded from config.toml.

    Attributes:
        store_file: CSV file holding previously imported transactions,
            relative to the project root.
        header_scan_rows: How many leading grid rows to search for the
            header row.
        masked_markers: Substrings that mark a description as masked data.
        duplicates: Fuzzy duplicate scoring settings.
    """

    store_file: str = "output/transactions.csv"
    header_scan_rows: int = 20
    masked_markers: list[str] = field(default_factory=lambda: ["*****"])
    duplicates: DuplicateSettings = field(default_factory=DuplicateSettings)
