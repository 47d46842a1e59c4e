"""Credit-card bill payment detection.

A description is a card bill payment when it contains any of a fixed list
of payment phrases.  Issuer details are then extracted heuristically: the
first known bank name found, title-cased, and the first run of four digits
not followed by another digit as the card's last four.

The last-four heuristic can pick up an unrelated number (a year, a
reference code) when the description carries one before the card digits.
"""

from __future__ import annotations

import re

from statement_ingest.models import CreditCardInfo

CREDIT_CARD_PAYMENT_PATTERNS: tuple[str, ...] = (
    "credit card",
    "cc payment",
    "card payment",
    "creditcard",
    "hdfc cc",
    "icici cc",
    "sbi cc",
    "axis cc",
    "hdfc credit card",
    "icici credit card",
    "sbi credit card",
    "axis credit card",
    "kotak credit card",
    "american express",
    "amex",
    "visa payment",
    "mastercard payment",
    "rupay payment",
    "cc bill payment",
    "credit card bill",
    "cc bill",
)

BANK_NAMES: tuple[str, ...] = (
    "hdfc",
    "icici",
    "sbi",
    "axis",
    "kotak",
    "yes bank",
    "indusind",
    "standard chartered",
    "hsbc",
    "citibank",
    "american express",
    "idfc",
    "rbl",
    "au small finance",
    "bandhan",
)

_LAST4_RE = re.compile(r"\d{4}(?!\d)")


def is_credit_card_payment(description: str | None) -> bool:
    """Return True if *description* looks like a credit-card bill payment."""
    if not description or not isinstance(description, str):
        return False
    desc_lower = description.lower().strip()
    return any(pattern in desc_lower for pattern in CREDIT_CARD_PAYMENT_PATTERNS)


def extract_credit_card_info(description: str | None) -> CreditCardInfo:
    """Extract the issuing bank and last four digits from *description*.

    Args:
        description: Free-text transaction description.

    Returns:
        A :class:`CreditCardInfo`.  ``bank`` is ``"Unknown"`` when no known
        issuer is named and ``last4`` is ``None`` when no 4-digit run exists.
    """
    if not description:
        return CreditCardInfo(display_name="Unknown Credit Card")

    desc_lower = description.lower()
    bank = "Unknown"
    for bank_name in BANK_NAMES:
        if bank_name in desc_lower:
            bank = " ".join(word.capitalize() for word in bank_name.split(" "))
            break

    match = _LAST4_RE.search(description)
    last4 = match.group(0) if match else None

    if last4:
        display_name = f"{bank} Credit Card (*{last4})"
    else:
        display_name = f"{bank} Credit Card"

    return CreditCardInfo(
        bank=bank,
        card_type="Credit Card",
        last4=last4,
        display_name=display_name,
    )
