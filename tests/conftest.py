"""Shared pytest fixtures for Statement Ingest tests.

Provides reusable fixtures for:
- tmp_project_dir: A temporary directory initialized with default config
  files and an empty store directory.
- sample_transactions: Realistic normalized transactions spanning
  categories, directions, and a credit-card bill payment.
- Convenience fixtures for fixture file paths.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from statement_ingest.config import initialize
from statement_ingest.models import CreditCardInfo, NormalizedTransaction

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Fixture file path helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the tests/fixtures/ directory."""
    return FIXTURES_DIR


@pytest.fixture
def hdfc_statement_csv() -> Path:
    """Path to a savings-account export with preamble rows and Dr/Cr columns."""
    return FIXTURES_DIR / "hdfc_statement.csv"


@pytest.fixture
def card_statement_csv() -> Path:
    """Path to a card export with a single signed amount column."""
    return FIXTURES_DIR / "card_statement.csv"


# ---------------------------------------------------------------------------
# Project directory
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Temporary project root with config.toml, rules.toml, and output/."""
    project = tmp_path / "project"
    initialize(project)
    return project


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_transactions() -> list[NormalizedTransaction]:
    """A small set of stored transactions covering the main categories."""
    return [
        NormalizedTransaction(
            date=date(2024, 3, 1),
            description="SALARY MARCH ACME CORP",
            amount=Decimal("85000.00"),
            type="credit",
            category="Income",
        ),
        NormalizedTransaction(
            date=date(2024, 3, 4),
            description="UPI-SWIGGY-ORDER-88231",
            amount=Decimal("-432.50"),
            type="debit",
            category="Swiggy",
            merchant="Swiggy",
        ),
        NormalizedTransaction(
            date=date(2024, 3, 9),
            description="DMART AVENUE SUPERMARTS",
            amount=Decimal("-2140.00"),
            type="debit",
            category="Groceries",
            merchant="DMart",
        ),
        NormalizedTransaction(
            date=date(2024, 3, 15),
            description="HDFC CREDIT CARD BILL PAYMENT 4321",
            amount=Decimal("-12500.00"),
            type="debit",
            category="Credit Card Bills",
            is_credit_card_payment=True,
            credit_card_info=CreditCardInfo(
                bank="Hdfc",
                last4="4321",
                display_name="Hdfc Credit Card (*4321)",
            ),
        ),
    ]
