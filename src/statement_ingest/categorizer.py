"""Categorization engine: ordered pattern rules with type and exclude checks.

Rules live in an ordered tuple of :class:`~statement_ingest.models.CategoryRule`
and are evaluated in sequence; the first rule that

1. accepts the transaction direction (``credit`` rules only fire on positive
   amounts, ``debit`` rules on everything else),
2. has no exclude pattern present in the description, and
3. has at least one pattern present in the description

wins.  Order is part of the contract: specific rules such as
"Credit Card Bills" sit ahead of broad ones such as "Bill Payments".

The default table is an immutable module constant.  Extra rules are layered
on with :func:`add_custom_rule`, which returns a new tuple, and every
matching function takes the rule table as a parameter.

Depends on ``models.py`` only.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Iterable, Sequence
from decimal import Decimal

from statement_ingest.models import (
    CREDIT_CARD_BILLS,
    DEFAULT_CATEGORY,
    DEFAULT_MERCHANT,
    CategoryRule,
    NormalizedTransaction,
    Pattern,
    RuleType,
)

# Categories that carry no user intent and may be overwritten.
PLACEHOLDER_CATEGORIES = frozenset({DEFAULT_CATEGORY, "Uncategorized"})


# ---------------------------------------------------------------------------
# Default rule table
# ---------------------------------------------------------------------------

DEFAULT_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        name="INCOME",
        category="Income",
        patterns=(
            "RAZORPAY SOFTWARE PRIVATE LIMITED",
            "SALARY",
            "SAL CREDIT",
            "PAYROLL",
            "INCOME",
            "REFUND",
            "CASHBACK",
            "INTEREST CREDIT",
        ),
        type="credit",
    ),
    CategoryRule(
        name="INVESTMENTS",
        category="Investments",
        patterns=(
            "INDIAN CLEARING CORP",
            "GROWW",
            "ZERODHA",
            "UPSTOX",
            "MUTUAL FUND",
            "SIP",
            "SYSTEMATIC INVESTMENT",
            "STOCK",
            "EQUITY",
            "INVESTMENT",
        ),
        type="debit",
    ),
    CategoryRule(
        name="AMAZON",
        category="Amazon",
        patterns=("AMAZON", "AMZN", "AMZ"),
        type="debit",
        exclude_patterns=("AMAZON PAY CREDIT CA", "AMAZONPAYCCBILLPAYMENT"),
    ),
    CategoryRule(
        name="FLIPKART",
        category="Flipkart",
        patterns=("FLIPKART", "FKRT"),
        type="debit",
    ),
    CategoryRule(
        name="SWIGGY",
        category="Swiggy",
        patterns=("SWIGGY", "BUNDL TECHNOLOGIES"),
        type="debit",
    ),
    CategoryRule(
        name="ZOMATO",
        category="Zomato",
        patterns=("ZOMATO", "ZOMATO MEDIA"),
        type="debit",
    ),
    CategoryRule(
        name="RENT_&_HOUSING",
        category="Rent & Housing",
        patterns=(
            "RENT",
            "HOUSE RENT",
            "RENTAL",
            re.compile(r"UPI-\d{10}-FDRL\d+-\d+-.*RENT", re.IGNORECASE),
            re.compile(r"UPI-.*RENT$", re.IGNORECASE),
        ),
        type="debit",
    ),
    CategoryRule(
        name="CREDIT_CARD_BILLS",
        category=CREDIT_CARD_BILLS,
        patterns=(
            "IB BILLPAY DR-HDFC",
            "CRED CLUB",
            "CRED.CLUB",
            "PAYMENT ON CRED",
            "AMAZON PAY CREDIT CA",
            "AMAZONPAYCCBILLPAYMENT",
            "CC BILL",
            "CREDIT CARD BILL",
            "CARD PAYMENT",
            re.compile(r"IB BILLPAY DR-[A-Z]+-\d+", re.IGNORECASE),
        ),
        type="debit",
    ),
    CategoryRule(
        name="BILL_PAYMENTS",
        category="Bill Payments",
        patterns=(
            "BILLPAY",
            "BILL PAYMENT",
            "ELECTRICITY",
            "WATER BILL",
            "GAS BILL",
            "INTERNET BILL",
            "MOBILE RECHARGE",
            "DTH RECHARGE",
            "BROADBAND",
            "UTILITY",
        ),
        type="debit",
        exclude_patterns=("CREDIT CARD", "CC BILL", "CRED"),
    ),
    CategoryRule(
        name="GROCERIES",
        category="Groceries",
        patterns=(
            "DMART",
            "D MART",
            "BIGBASKET",
            "BIG BASKET",
            "BLINKIT",
            "ZEPTO",
            "DUNZO",
            "JIOMART",
            "GROCERY",
        ),
        type="debit",
    ),
    CategoryRule(
        name="TRANSPORT",
        category="Transport",
        patterns=("UBER", "OLA", "RAPIDO", "METRO", "PETROL", "FUEL", "PARKING"),
        type="debit",
    ),
    CategoryRule(
        name="ENTERTAINMENT",
        category="Entertainment",
        patterns=(
            "NETFLIX",
            "PRIME VIDEO",
            "HOTSTAR",
            "SPOTIFY",
            "BOOKMYSHOW",
            "PVR",
            "INOX",
        ),
        type="debit",
    ),
)


def tracked_categories(rules: Sequence[CategoryRule] = DEFAULT_RULES) -> list[str]:
    """Return every label *rules* can produce, in rule order, plus "Others"."""
    labels: list[str] = []
    for rule in rules:
        if rule.category not in labels:
            labels.append(rule.category)
    if DEFAULT_CATEGORY not in labels:
        labels.append(DEFAULT_CATEGORY)
    return labels


# ---------------------------------------------------------------------------
# Rule matching
# ---------------------------------------------------------------------------


def _pattern_hits(pattern: Pattern, description: str, desc_upper: str) -> bool:
    """Check one pattern: regexes search the raw text, literals the upper-cased text."""
    if isinstance(pattern, re.Pattern):
        return pattern.search(description) is not None
    return pattern.upper() in desc_upper


def _type_allows(rule_type: RuleType | None, amount: Decimal | None) -> bool:
    is_credit = amount is not None and amount > 0
    if rule_type == "credit":
        return is_credit
    if rule_type == "debit":
        return not is_credit
    return True


def match_rule(
    description: str | None,
    amount: Decimal | None,
    rules: Sequence[CategoryRule] = DEFAULT_RULES,
) -> CategoryRule | None:
    """Find the first rule in *rules* that fires for this description and amount.

    Args:
        description: Free-text transaction description.
        amount: Signed amount; positive is a credit.  ``None`` counts as a
            debit for rule typing.
        rules: Ordered rule table.

    Returns:
        The winning :class:`CategoryRule`, or ``None`` if no rule matches.
    """
    if not description:
        return None

    desc_upper = description.upper()
    for rule in rules:
        if not _type_allows(rule.type, amount):
            continue
        if any(_pattern_hits(p, description, desc_upper) for p in rule.exclude_patterns):
            continue
        if any(_pattern_hits(p, description, desc_upper) for p in rule.patterns):
            return rule
    return None


def detect_category(
    description: str | None,
    amount: Decimal | None = None,
    rules: Sequence[CategoryRule] = DEFAULT_RULES,
) -> str | None:
    """Return the category label of the first matching rule, or ``None``."""
    rule = match_rule(description, amount, rules)
    return rule.category if rule is not None else None


def resolve_category(
    transaction: NormalizedTransaction,
    rules: Sequence[CategoryRule] = DEFAULT_RULES,
) -> str:
    """Resolve a final, never-empty category for *transaction*.

    Fallback chain:

    1. A pattern rule match on the description and amount.
    2. The transaction's existing category, unless it is a placeholder
       ("Others" or "Uncategorized").
    3. The merchant name, unless it is the default merchant.
    4. ``"Others"``.
    """
    detected = detect_category(transaction.description, transaction.amount, rules)
    if detected:
        return detected
    if transaction.category and transaction.category not in PLACEHOLDER_CATEGORIES:
        return transaction.category
    if transaction.merchant and transaction.merchant != DEFAULT_MERCHANT:
        return transaction.merchant
    return DEFAULT_CATEGORY


def bulk_categorize(
    transactions: Iterable[NormalizedTransaction],
    rules: Sequence[CategoryRule] = DEFAULT_RULES,
) -> list[NormalizedTransaction]:
    """Re-categorize transactions whose category is missing or a placeholder.

    Transactions carrying any other category (for example one the user set
    by hand) are returned unchanged.  Transactions with no matching rule are
    also returned unchanged.  Inputs are never mutated.

    Returns:
        A new list in input order.
    """
    result: list[NormalizedTransaction] = []
    for txn in transactions:
        if txn.category and txn.category not in PLACEHOLDER_CATEGORIES:
            result.append(txn)
            continue
        detected = detect_category(txn.description, txn.amount, rules)
        if detected:
            result.append(dataclasses.replace(txn, category=detected))
        else:
            result.append(txn)
    return result


# ---------------------------------------------------------------------------
# Custom rules
# ---------------------------------------------------------------------------


def rule_name(category: str) -> str:
    """Derive a rule's lookup key from its category label."""
    return re.sub(r"\s+", "_", category.strip().upper())


def compile_pattern(pattern: str) -> Pattern:
    """Turn a configured pattern string into a matchable pattern.

    A string wrapped in slashes, e.g. ``"/IOCL\\s+\\d+/"``, becomes a
    case-insensitive regular expression; anything else is a literal.

    Raises:
        ValueError: If a slash-wrapped pattern is not a valid regex.
    """
    if len(pattern) > 2 and pattern.startswith("/") and pattern.endswith("/"):
        try:
            return re.compile(pattern[1:-1], re.IGNORECASE)
        except re.error as exc:
            raise ValueError(f"Invalid regex pattern {pattern!r}: {exc}") from exc
    return pattern


def pattern_text(pattern: Pattern) -> str:
    """Inverse of :func:`compile_pattern`, for writing rules back to disk."""
    if isinstance(pattern, re.Pattern):
        return f"/{pattern.pattern}/"
    return pattern


def add_custom_rule(
    rules: Sequence[CategoryRule],
    category: str,
    patterns: Iterable[Pattern],
    rule_type: RuleType | None = "debit",
    exclude_patterns: Iterable[Pattern] = (),
) -> tuple[CategoryRule, ...]:
    """Return a new rule table with a custom rule added.

    If a rule with the same name (see :func:`rule_name`) already exists it
    is replaced in place, keeping its position.  Otherwise the new rule is
    appended after all existing rules.  *rules* itself is left untouched.

    Args:
        rules: The current rule table.
        category: Label assigned by the new rule.
        patterns: Literal substrings, slash-wrapped regex strings, or
            compiled regexes.
        rule_type: "debit", "credit", or ``None`` for either direction.
        exclude_patterns: Patterns that disqualify the rule.

    Raises:
        ValueError: If *rule_type* is not recognised, *patterns* is empty,
            or a regex pattern does not compile.
    """
    if rule_type not in ("credit", "debit", None):
        raise ValueError(f"Invalid rule type {rule_type!r}: expected 'credit', 'debit' or None")

    compiled = tuple(compile_pattern(p) if isinstance(p, str) else p for p in patterns)
    if not compiled:
        raise ValueError(f"Custom rule for {category!r} needs at least one pattern")
    excluded = tuple(compile_pattern(p) if isinstance(p, str) else p for p in exclude_patterns)

    new_rule = CategoryRule(
        name=rule_name(category),
        category=category,
        patterns=compiled,
        type=rule_type,
        exclude_patterns=excluded,
    )

    updated = list(rules)
    for i, rule in enumerate(updated):
        if rule.name == new_rule.name:
            updated[i] = new_rule
            break
    else:
        updated.append(new_rule)
    return tuple(updated)
