"""Tests for cell-level date and amount parsing.

Covers:
- parse_date: ISO, day-first, year-first, and textual formats; two-digit
  year pivot; native date objects; spreadsheet serials; rejection of
  impossible dates and bare reference numbers.
- parse_amount: thousands separators, currency symbols, parenthesized and
  Dr/Cr-suffixed negatives, numeric inputs, and garbage.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from statement_ingest.parsing import expand_year, parse_amount, parse_date


class TestExpandYear:
    """Two-digit years pivot at 50."""

    @pytest.mark.parametrize(
        ("year", "expected"),
        [("24", 2024), ("50", 2050), ("51", 1951), ("99", 1999), ("00", 2000), ("2024", 2024)],
    )
    def test_pivot(self, year: str, expected: int) -> None:
        assert expand_year(year) == expected


class TestParseDate:
    """Date cell parsing across the supported formats."""

    def test_day_first_two_digit_year(self) -> None:
        assert parse_date("15/03/24") == date(2024, 3, 15)

    def test_day_first_four_digit_year_with_dashes(self) -> None:
        assert parse_date("05-11-2023") == date(2023, 11, 5)

    def test_iso(self) -> None:
        assert parse_date("2024-03-15") == date(2024, 3, 15)

    def test_iso_with_time_part(self) -> None:
        assert parse_date("2024-03-15T10:22:00") == date(2024, 3, 15)

    def test_day_first_with_time_part(self) -> None:
        assert parse_date("15/03/2024 10:30") == date(2024, 3, 15)

    def test_year_first_slashes(self) -> None:
        assert parse_date("2024/03/15") == date(2024, 3, 15)

    @pytest.mark.parametrize("text", ["15 Mar 2024", "15-Mar-24", "15 March 2024", "15 mar, 2024"])
    def test_textual_month(self, text: str) -> None:
        assert parse_date(text) == date(2024, 3, 15)

    def test_old_two_digit_year(self) -> None:
        assert parse_date("01/01/75") == date(1975, 1, 1)

    def test_surrounding_whitespace(self) -> None:
        assert parse_date("  15/03/2024  ") == date(2024, 3, 15)

    def test_datetime_object(self) -> None:
        assert parse_date(datetime(2024, 3, 15, 9, 30)) == date(2024, 3, 15)

    def test_date_object_passes_through(self) -> None:
        assert parse_date(date(2024, 3, 15)) == date(2024, 3, 15)

    def test_spreadsheet_serial(self) -> None:
        assert parse_date(45366) == date(2024, 3, 15)

    def test_impossible_calendar_date(self) -> None:
        assert parse_date("31/02/2024") is None

    def test_month_out_of_range(self) -> None:
        assert parse_date("15/13/2024") is None

    @pytest.mark.parametrize("value", [None, "", "   ", "not a date", "0000127", True])
    def test_unparseable(self, value: object) -> None:
        assert parse_date(value) is None

    def test_negative_serial(self) -> None:
        assert parse_date(-5) is None

    def test_month_and_year_only_is_first_of_month(self) -> None:
        assert parse_date("March 2024") == date(2024, 3, 1)

    def test_partial_date_does_not_borrow_from_today(self) -> None:
        assert parse_date("March") == date(1900, 3, 1)


class TestParseAmount:
    """Amount cell parsing."""

    def test_parenthesized_negative(self) -> None:
        assert parse_amount("(1,250.00)") == Decimal("-1250.00")

    def test_indian_grouping(self) -> None:
        assert parse_amount("1,20,000.00") == Decimal("120000.00")

    def test_plain_negative(self) -> None:
        assert parse_amount("-432.50") == Decimal("-432.50")

    @pytest.mark.parametrize("text", ["₹1,250.00", "Rs. 1,250.00", "INR 1250", "$1,250.00"])
    def test_currency_symbols_stripped(self, text: str) -> None:
        assert parse_amount(text) == Decimal("1250")

    def test_dr_suffix_is_negative(self) -> None:
        assert parse_amount("1,250.00 Dr") == Decimal("-1250.00")

    def test_cr_suffix_is_positive(self) -> None:
        assert parse_amount("1,250.00 CR") == Decimal("1250.00")

    def test_int_and_float(self) -> None:
        assert parse_amount(100) == Decimal("100")
        assert parse_amount(12.5) == Decimal("12.5")

    def test_decimal_passes_through(self) -> None:
        assert parse_amount(Decimal("-9.99")) == Decimal("-9.99")

    def test_zero_is_parsed(self) -> None:
        assert parse_amount("0.00") == Decimal("0.00")

    @pytest.mark.parametrize(
        "value",
        [None, "", "  ", "abc", "12abc", "1.2.3", "()", float("nan"), float("inf"), False],
    )
    def test_unparseable(self, value: object) -> None:
        assert parse_amount(value) is None
