"""Configuration loading, writing, and project initialization.

Reads TOML config files using stdlib ``tomllib`` and writes them using
``tomli_w``.  Depends on ``models.py`` and the rule helpers in
``categorizer.py``.
"""

from __future__ import annotations

import tomllib
from decimal import Decimal, InvalidOperation
from pathlib import Path

import tomli_w

from statement_ingest.categorizer import (
    DEFAULT_RULES,
    add_custom_rule,
    pattern_text,
)
from statement_ingest.models import AppConfig, CategoryRule, DuplicateSettings

# ---------------------------------------------------------------------------
# Default file content
# ---------------------------------------------------------------------------

_DEFAULT_CONFIG_TOML = """\
# Statement Ingest configuration

[general]
store_file = "output/transactions.csv"   # previously imported transactions

[ingest]
header_scan_rows = 20            # leading rows searched for the header row
masked_markers = ["*****"]       # descriptions containing these are rejected

[duplicates]
threshold = 80                   # minimum fuzzy score (0-100)
date_weight = 0.3
description_weight = 0.5
amount_weight = 0.2
amount_tolerance = "0.01"
"""

_DEFAULT_RULES_TOML = """\
# Custom category rules, evaluated after the built-in rules.
# A rule whose category matches a built-in one replaces it in place.
# Patterns are case-insensitive substrings; wrap a pattern in slashes
# ("/IOCL\\\\s+\\\\d+/") to use a regular expression.
# type is "debit", "credit", or "any".

# Example:
# [[rules]]
# category = "Fuel"
# patterns = ["HPCL", "BPCL", "INDIAN OIL"]
# type = "debit"
# exclude = ["REFUND"]
"""

_RULE_TYPES = {"debit": "debit", "credit": "credit", "any": None}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(root: Path) -> AppConfig:
    """Load ``config.toml`` from *root* and return an :class:`AppConfig`.

    Args:
        root: Project root directory containing ``config.toml``.

    Returns:
        A fully-populated :class:`AppConfig`; missing keys take defaults.

    Raises:
        FileNotFoundError: If ``config.toml`` does not exist.
        ValueError: If ``amount_tolerance`` is not a decimal number.
    """
    data = _read_toml(root / "config.toml")

    general = data.get("general", {})
    ingest = data.get("ingest", {})
    dup = data.get("duplicates", {})
    defaults = DuplicateSettings()

    tolerance_raw = str(dup.get("amount_tolerance", defaults.amount_tolerance))
    try:
        tolerance = Decimal(tolerance_raw)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount_tolerance: {tolerance_raw!r}") from exc

    return AppConfig(
        store_file=general.get("store_file", "output/transactions.csv"),
        header_scan_rows=int(ingest.get("header_scan_rows", 20)),
        masked_markers=list(ingest.get("masked_markers", ["*****"])),
        duplicates=DuplicateSettings(
            threshold=int(dup.get("threshold", defaults.threshold)),
            date_weight=float(dup.get("date_weight", defaults.date_weight)),
            description_weight=float(dup.get("description_weight", defaults.description_weight)),
            amount_weight=float(dup.get("amount_weight", defaults.amount_weight)),
            amount_tolerance=tolerance,
        ),
    )


def load_rules(root: Path) -> tuple[CategoryRule, ...]:
    """Load ``rules.toml`` and layer its rules over the built-in table.

    Rules are applied in file order with :func:`add_custom_rule` semantics:
    a rule naming an existing category replaces it in place, any other rule
    is appended after the built-in rules.

    Args:
        root: Project root directory containing ``rules.toml``.

    Returns:
        The combined, ordered rule table.

    Raises:
        FileNotFoundError: If ``rules.toml`` does not exist.
        ValueError: If a rule has an unknown type, no patterns, or an
            invalid regex.
    """
    data = _read_toml(root / "rules.toml")
    rules = DEFAULT_RULES
    for entry in data.get("rules", []):
        category = entry.get("category", "").strip()
        if not category:
            raise ValueError("Custom rule is missing a category")
        rules = add_custom_rule(
            rules,
            category,
            entry.get("patterns", []),
            rule_type=_parse_rule_type(entry.get("type", "debit")),
            exclude_patterns=entry.get("exclude", []),
        )
    return rules


def custom_rules(rules: tuple[CategoryRule, ...]) -> list[CategoryRule]:
    """Return the rules in *rules* that differ from the built-in table."""
    return [rule for rule in rules if rule not in DEFAULT_RULES]


def save_custom_rules(root: Path, rules: tuple[CategoryRule, ...]) -> None:
    """Rewrite the ``[[rules]]`` entries of ``rules.toml``.

    Only rules that are not part of the built-in table are written.  The
    comment header at the top of the file is preserved.

    Args:
        root: Project root directory containing ``rules.toml``.
        rules: The complete rule table (built-in plus custom).
    """
    rules_path = root / "rules.toml"
    if rules_path.exists():
        original_text = rules_path.read_text(encoding="utf-8")
    else:
        original_text = _DEFAULT_RULES_TOML

    # Keep the leading comment block, drop everything from the first table.
    header: list[str] = []
    for line in original_text.splitlines():
        if line.strip() and not line.lstrip().startswith("#"):
            break
        header.append(line)
    prefix = "\n".join(header).rstrip()

    entries = [_rule_to_toml(rule) for rule in custom_rules(rules)]
    body = tomli_w.dumps({"rules": entries}) if entries else ""

    text = f"{prefix}\n\n{body}" if prefix else body
    rules_path.write_text(text, encoding="utf-8")


def initialize(target_dir: Path) -> None:
    """Create the default config files and the store directory.

    Idempotent: existing directories are left alone and existing files
    are **not** overwritten.

    Args:
        target_dir: The directory in which to create the project structure.
    """
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    _write_if_missing(target_dir / "config.toml", _DEFAULT_CONFIG_TOML)
    _write_if_missing(target_dir / "rules.toml", _DEFAULT_RULES_TOML)

    config = load_config(target_dir)
    (target_dir / config.store_file).parent.mkdir(parents=True, exist_ok=True)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_toml(path: Path) -> dict:
    """Read and parse a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _parse_rule_type(value: str) -> str | None:
    """Map a configured ``type`` to a rule type (``"any"`` means either)."""
    try:
        return _RULE_TYPES[str(value).strip().lower()]
    except KeyError:
        raise ValueError(
            f"Invalid rule type {value!r}: expected 'debit', 'credit' or 'any'"
        ) from None


def _rule_to_toml(rule: CategoryRule) -> dict:
    """Format a rule back to its ``[[rules]]`` table form."""
    entry: dict = {
        "category": rule.category,
        "patterns": [pattern_text(p) for p in rule.patterns],
        "type": rule.type or "any",
    }
    if rule.exclude_patterns:
        entry["exclude"] = [pattern_text(p) for p in rule.exclude_patterns]
    return entry


def _write_if_missing(path: Path, content: str) -> None:
    """Write *content* to *path* only if the file does not already exist."""
    if not path.exists():
        path.write_text(content, encoding="utf-8")
