"""Merchant identification from free-text transaction descriptions.

Matching is a case-insensitive substring search over an ordered table.  The
first merchant with any matching pattern wins, so entries whose patterns
overlap a broader merchant ("Swiggy Instamart" vs "Swiggy", "Amazon Prime"
vs "Amazon") are listed ahead of it.
"""

from __future__ import annotations

from statement_ingest.models import DEFAULT_MERCHANT

MERCHANT_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Amazon Prime", ("prime video", "amazon prime video")),
    ("Amazon", ("amazon", "amzn", "amazon.in", "amazon pay", "amazon prime")),
    ("Flipkart", ("flipkart", "fkrt", "flipkart.com")),
    ("Myntra", ("myntra", "myntra.com")),
    ("Swiggy Instamart", ("swiggy instamart", "instamart")),
    ("Swiggy", ("swiggy", "swgy")),
    ("Zomato", ("zomato", "zomato.com")),
    ("Uber", ("uber", "uber india", "uber trip")),
    ("Ola", ("ola", "ola cabs", "olacabs")),
    ("Netflix", ("netflix", "nflx")),
    ("Spotify", ("spotify",)),
    ("Paytm", ("paytm", "paytm payment", "paytm mall")),
    ("Google Pay", ("google pay", "gpay", "g pay")),
    ("PhonePe", ("phonepe", "phone pe")),
    ("Airtel", ("airtel", "bharti airtel")),
    ("Jio", ("jio", "reliance jio", "jio recharge")),
    ("Blinkit", ("blinkit", "grofers")),
    ("Zepto", ("zepto",)),
    ("BigBasket", ("bigbasket", "big basket")),
    ("Dunzo", ("dunzo",)),
    ("Nykaa", ("nykaa",)),
    ("Ajio", ("ajio",)),
    ("Meesho", ("meesho",)),
    ("BookMyShow", ("bookmyshow", "book my show", "bms")),
    ("IRCTC", ("irctc", "indian railway")),
    ("Dominos", ("dominos", "domino's", "domino pizza")),
    ("McDonald's", ("mcdonald", "mcdonalds", "mcd")),
    ("KFC", ("kfc", "kentucky")),
    ("Starbucks", ("starbucks", "sbux")),
    ("Apollo", ("apollo", "apollo pharmacy")),
    ("MedPlus", ("medplus", "med plus")),
    ("PharmEasy", ("pharmeasy", "pharm easy")),
    ("1mg", ("1mg", "onemg")),
    ("Pharmacy", ("pharmacy", "medical store", "chemist")),
    ("DMart", ("dmart", "d mart", "avenue supermarts")),
    ("Reliance", ("reliance retail", "reliance fresh", "reliance mart")),
)


def detect_merchant(description: str | None) -> str:
    """Return the merchant identity for *description*.

    Args:
        description: Free-text transaction description.

    Returns:
        One of the names in :data:`MERCHANT_PATTERNS`, or ``"Others"`` when
        nothing matches or the description is empty.
    """
    if not description or not isinstance(description, str):
        return DEFAULT_MERCHANT

    desc_lower = description.lower().strip()
    for merchant, patterns in MERCHANT_PATTERNS:
        if any(pattern in desc_lower for pattern in patterns):
            return merchant
    return DEFAULT_MERCHANT


def merchant_list() -> list[str]:
    """All known merchant names, sorted, excluding the default."""
    return sorted(merchant for merchant, _ in MERCHANT_PATTERNS)
