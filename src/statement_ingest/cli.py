"""Click CLI entry point for the ingest command.

Handles argument parsing, config loading, and error display. All business
logic is delegated to ``pipeline``, ``duplicates``, ``config``, and
``export`` modules.
"""

from __future__ import annotations

import dataclasses
import logging
import sys
from pathlib import Path

import click

from statement_ingest import __version__


def _configure_logging(verbose: bool, debug: bool) -> None:
    """Set up logging based on verbosity flags."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="statement-ingest")
def cli() -> None:
    """Normalize bank statement exports and import them without duplicates."""


@cli.command()
@click.argument("statement", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--import-duplicates",
    is_flag=True,
    default=False,
    help="Store every valid transaction, even those matching stored ones.",
)
@click.option(
    "--threshold",
    type=click.IntRange(0, 100),
    default=None,
    help="Fuzzy duplicate threshold (0-100). Overrides config.toml.",
)
@click.option("--dry-run", is_flag=True, default=False, help="Do not write to the store.")
@click.option("--verbose", is_flag=True, default=False, help="Detailed progress output.")
@click.option("--debug", is_flag=True, default=False, help="Developer-level diagnostics.")
def process(
    statement: str,
    import_duplicates: bool,
    threshold: int | None,
    dry_run: bool,
    verbose: bool,
    debug: bool,
) -> None:
    """Normalize STATEMENT (a CSV export) and import its new transactions."""
    _configure_logging(verbose, debug)
    root = Path.cwd()

    # Load configuration
    try:
        from statement_ingest.config import load_config, load_rules

        config = load_config(root)
        rules = load_rules(root)
    except FileNotFoundError as exc:
        click.echo(
            f"Error: {exc}. Run 'ingest init' to create the project structure.",
            err=True,
        )
        sys.exit(1)
    except Exception as exc:
        click.echo(f"Error loading configuration: {exc}", err=True)
        sys.exit(1)

    if threshold is not None:
        config.duplicates = dataclasses.replace(config.duplicates, threshold=threshold)

    # Decode and normalize the statement
    from statement_ingest.export import (
        append_transactions,
        load_transactions,
        print_summary,
        read_grid,
    )
    from statement_ingest.pipeline import import_statement, process_statement

    try:
        grid = read_grid(statement)
    except Exception as exc:
        click.echo(f"Error reading statement: {exc}", err=True)
        sys.exit(1)

    batch = process_statement(grid, config, rules)
    source = Path(statement).name

    if batch.requires_manual_review:
        print_summary(batch, None, source, imported=None if dry_run else 0)
        click.echo(f"Warning: {batch.message}", err=True)
        sys.exit(1)

    # Check against stored transactions
    store_path = root / config.store_file
    try:
        existing = load_transactions(store_path)
    except Exception as exc:
        click.echo(f"Error loading stored transactions: {exc}", err=True)
        sys.exit(1)

    if verbose:
        click.echo(f"Loaded {len(existing)} stored transaction(s) from {store_path}")

    import_result = import_statement(batch, existing, config)
    to_store = batch.transactions if import_duplicates else import_result.new_transactions

    imported: int | None = None
    if not dry_run:
        try:
            append_transactions(to_store, store_path)
        except Exception as exc:
            click.echo(f"Error writing to store: {exc}", err=True)
            sys.exit(1)
        imported = len(to_store)

    print_summary(batch, import_result, source, imported=imported)

    if verbose and import_result.duplicates:
        click.echo("Duplicates:")
        for match in import_result.duplicates:
            txn = match.incoming
            click.echo(
                f"  row {match.incoming_index}: {txn.date} {txn.amount} "
                f"{txn.description!r} ({match.verdict.method}, "
                f"{match.verdict.confidence}%)"
            )


@cli.command(name="add-rule")
@click.option("--category", required=True, help="Category label the rule assigns.")
@click.option(
    "--pattern",
    "patterns",
    required=True,
    multiple=True,
    help="Substring to match (repeatable). Wrap in slashes for a regex.",
)
@click.option(
    "--type",
    "rule_type",
    type=click.Choice(["debit", "credit", "any"]),
    default="debit",
    show_default=True,
    help="Transaction direction the rule applies to.",
)
@click.option("--exclude", "excludes", multiple=True, help="Substring that disqualifies the rule.")
def add_rule(category: str, patterns: tuple[str, ...], rule_type: str, excludes: tuple[str, ...]) -> None:
    """Add a custom category rule to rules.toml."""
    root = Path.cwd()

    try:
        from statement_ingest.categorizer import add_custom_rule
        from statement_ingest.config import load_rules, save_custom_rules

        rules = load_rules(root)
    except FileNotFoundError as exc:
        click.echo(
            f"Error: {exc}. Run 'ingest init' to create the project structure.",
            err=True,
        )
        sys.exit(1)
    except Exception as exc:
        click.echo(f"Error loading rules: {exc}", err=True)
        sys.exit(1)

    try:
        rules = add_custom_rule(
            rules,
            category,
            patterns,
            rule_type=None if rule_type == "any" else rule_type,
            exclude_patterns=excludes,
        )
        save_custom_rules(root, rules)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except Exception as exc:
        click.echo(f"Error saving rules: {exc}", err=True)
        sys.exit(1)

    click.echo(f'Added rule "{category}" ({rule_type}): {", ".join(patterns)}')


@cli.command()
@click.option(
    "--dir", "target_dir", default=".", type=click.Path(), help="Directory to initialize."
)
def init(target_dir: str) -> None:
    """Initialize a new project directory with default config files."""
    from statement_ingest.config import initialize

    target = Path(target_dir).resolve()

    try:
        initialize(target)
    except Exception as exc:
        click.echo(f"Error initializing project: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Initialized statement ingest project in {target}")
