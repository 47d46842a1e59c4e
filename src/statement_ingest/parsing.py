"""Cell-level parsing of dates and amounts from bank statement exports.

Both parsers accept whatever a decoded spreadsheet or CSV cell may hold
(strings, numbers, native dates, ``None``) and return ``None`` for anything
they cannot interpret.  They never raise on bad input.

Date formats are tried in priority order:

1. ISO ``YYYY-MM-DD`` (optionally followed by a time part).
2. Day-first ``D/M/Y`` or ``D-M-Y``.  Two-digit years pivot at 50:
   ``51..99`` become ``19xx``, ``00..50`` become ``20xx``.
3. Year-first ``Y/M/D`` or ``Y-M-D``.
4. Textual ``D Mon Y`` (``15 Mar 2024``, ``15-Mar-24``, ``15 March 2024``).
5. A best-effort ``dateutil`` parse with ``dayfirst=True``.  Parts the cell
   leaves out come from 1900-01-01, never from the current date.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation

from dateutil import parser as date_parser

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?!\d)")
_DAY_FIRST_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})(?!\d)")
_YEAR_FIRST_RE = re.compile(r"^(\d{4})[/-](\d{1,2})[/-](\d{1,2})(?!\d)")
_TEXT_RE = re.compile(
    r"^(\d{1,2})[\s-]+(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?[\s,-]+(\d{2,4})(?!\d)",
    re.IGNORECASE,
)

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

# Spreadsheet serial dates count days from this epoch.
_SERIAL_EPOCH = date(1899, 12, 30)
_MAX_SERIAL = 2958465  # 9999-12-31

# Fills the parts a partial date leaves out ("March 2024" is 2024-03-01).
_FALLBACK_DEFAULT = datetime(1900, 1, 1)

_CURRENCY_RE = re.compile(r"(₹|\$|€|£|¥|\bINR\b|\bRs\.?)", re.IGNORECASE)
_DR_CR_SUFFIX_RE = re.compile(r"\s*(?<![a-z])(cr|dr)\.?$", re.IGNORECASE)
_NUMBER_RE = re.compile(r"[-+]?(\d+\.?\d*|\.\d+)")


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def expand_year(year: str) -> int:
    """Resolve a 2-digit year with the 50 pivot; longer years pass through."""
    value = int(year)
    if len(year) == 2:
        return 1900 + value if value > 50 else 2000 + value
    return value


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _from_serial(value: float) -> date | None:
    if not 0 < value <= _MAX_SERIAL:
        return None
    return _SERIAL_EPOCH + timedelta(days=int(value))


def parse_date(value: object) -> date | None:
    """Parse a date cell into a :class:`~datetime.date`.

    Args:
        value: Raw cell value.  ``datetime``/``date`` objects are returned as
            dates directly; numbers are treated as spreadsheet serial dates;
            everything else is parsed as text.

    Returns:
        The parsed date, or ``None`` if the value is empty or unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float, Decimal)):
        try:
            return _from_serial(float(value))
        except (ValueError, OverflowError):
            return None

    text = str(value).strip()
    if not text:
        return None

    match = _ISO_RE.match(text)
    if match:
        year, month, day = match.groups()
        return _safe_date(int(year), int(month), int(day))

    match = _DAY_FIRST_RE.match(text)
    if match:
        day, month, year = match.groups()
        return _safe_date(expand_year(year), int(month), int(day))

    match = _YEAR_FIRST_RE.match(text)
    if match:
        year, month, day = match.groups()
        return _safe_date(int(year), int(month), int(day))

    match = _TEXT_RE.match(text)
    if match:
        day, month_name, year = match.groups()
        return _safe_date(expand_year(year), _MONTHS[month_name[:3].lower()], int(day))

    return _fallback_date(text)


def _fallback_date(text: str) -> date | None:
    """Best-effort parse for formats the explicit patterns do not cover."""
    # Bare numbers are reference codes far more often than dates.
    if text.isdigit() and len(text) != 8:
        return None
    try:
        return date_parser.parse(text, dayfirst=True, default=_FALLBACK_DEFAULT).date()
    except (ValueError, OverflowError):
        return None


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


def parse_amount(value: object) -> Decimal | None:
    """Parse an amount cell into a signed :class:`~decimal.Decimal`.

    Strips currency symbols, thousands separators, and whitespace.  A value
    wrapped in parentheses, or carrying a trailing ``Dr`` marker, is
    negative: ``"(1,250.00)"`` and ``"1,250.00 Dr"`` both give ``-1250.00``.

    Args:
        value: Raw cell value (string, int, float, Decimal, or ``None``).

    Returns:
        The parsed amount, or ``None`` if the value is empty, non-numeric,
        or not finite.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return None
        return amount if amount.is_finite() else None

    text = str(value).strip()
    if not text:
        return None

    negative = False
    suffix = _DR_CR_SUFFIX_RE.search(text)
    if suffix:
        negative = suffix.group(1).lower() == "dr"
        text = text[: suffix.start()]

    text = _CURRENCY_RE.sub("", text)
    text = re.sub(r"[,\s]", "", text)

    if text.startswith("(") and text.endswith(")") and len(text) > 2:
        negative = True
        text = text[1:-1]
    elif text.startswith("-(") and text.endswith(")"):
        negative = True
        text = text[2:-1]

    if not _NUMBER_RE.fullmatch(text):
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if negative:
        amount = -abs(amount)
    return amount
