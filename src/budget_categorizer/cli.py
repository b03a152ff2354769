"""Command-line interface for the budget categorizer."""

import argparse
import csv
import json
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from budget_categorizer import __version__
from budget_categorizer.config import Config, ConfigError, load_config
from budget_categorizer.models.category import CategoryRegistry
from budget_categorizer.models.state import LedgerState
from budget_categorizer.models.transaction import Transaction
from budget_categorizer.persistence.exchange import export_rules
from budget_categorizer.persistence.snapshot import (
    SnapshotError,
    deserialize_state,
    snapshot_metadata,
)
from budget_categorizer.processing.store import CategorizationStore
from budget_categorizer.utils.logging_config import get_logger, setup_logging

# Load environment variables from .env file (if it exists)
load_dotenv()

console = Console()
logger = get_logger(__name__)

CONFIG_DIR_ENV = "BUDGET_CATEGORIZER_CONFIG_DIR"


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="budget-categorizer",
        description="Categorize household bank transactions with rules and locks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s validate-config
  %(prog)s classify --transactions export.csv --state state.json
  %(prog)s classify -t export.csv --state state.json --fix-invalid --write-state state.json
  %(prog)s rules --state state.json
  %(prog)s check-snapshot state.json
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to settings.yaml (default: <config-dir>/settings.yaml)",
    )

    parser.add_argument(
        "--categories",
        type=Path,
        default=None,
        help="Path to categories.yaml (default: <config-dir>/categories.yaml)",
    )

    parser.add_argument(
        "--config-dir",
        type=Path,
        default=Path(os.environ.get(CONFIG_DIR_ENV, "config")),
        help=f"Base config directory (default: ${CONFIG_DIR_ENV} or ./config)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for info, -vv for debug)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    subparsers.add_parser(
        "validate-config",
        help="Validate configuration files and exit",
    )

    check = subparsers.add_parser(
        "check-snapshot",
        help="Validate a state snapshot and print its header",
    )
    check.add_argument("file", type=Path, help="Snapshot JSON file")

    classify = subparsers.add_parser(
        "classify",
        help="Classify transactions from a CSV export",
    )
    classify.add_argument(
        "-t", "--transactions",
        type=Path,
        required=True,
        help="CSV with date, amount, text, from_account, to_account, type columns",
    )
    classify.add_argument(
        "--state",
        type=Path,
        default=None,
        help="Snapshot to load rules and locks from (default: storage.state_file)",
    )
    classify.add_argument(
        "--fix-invalid",
        action="store_true",
        help="Repair assignments to categories that are no longer leaves",
    )
    classify.add_argument(
        "--write-state",
        type=Path,
        default=None,
        metavar="FILE",
        help="Write the resulting rules and locks to FILE",
    )
    classify.add_argument(
        "--uncategorized-only",
        action="store_true",
        help="Only list transactions without a category",
    )

    rules = subparsers.add_parser(
        "rules",
        help="List rules stored in a snapshot",
    )
    rules.add_argument(
        "--state",
        type=Path,
        default=None,
        help="Snapshot file (default: storage.state_file)",
    )

    export = subparsers.add_parser(
        "export-rules",
        help="Write rules as a shareable template with category names",
    )
    export.add_argument(
        "--state",
        type=Path,
        default=None,
        help="Snapshot file (default: storage.state_file)",
    )
    export.add_argument(
        "-o", "--output",
        type=Path,
        required=True,
        help="Template output path",
    )

    return parser


def get_log_level(verbosity: int) -> str:
    """Convert verbosity count to log level.

    Args:
        verbosity: Number of -v flags.

    Returns:
        Log level string.
    """
    if verbosity >= 2:
        return "DEBUG"
    elif verbosity >= 1:
        return "INFO"
    else:
        return "WARNING"


def read_json(path: Path) -> Any:
    """Read a JSON document.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")


def read_transactions_csv(path: Path) -> list[Transaction]:
    """Read normalized transactions from a CSV file.

    Rows that cannot be parsed are skipped with a warning.

    Args:
        path: CSV file with a header row.

    Returns:
        Transactions in file order.
    """
    transactions: list[Transaction] = []
    with open(path, encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        for line_no, row in enumerate(reader, start=2):
            try:
                transactions.append(Transaction.from_dict(row))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping row {line_no} in {path.name}: {e}")
                console.print(f"[yellow]Skipping row {line_no}: {e}[/yellow]")
    logger.info(f"Read {len(transactions)} transactions from {path}")
    return transactions


def _load_config(args: argparse.Namespace) -> Config:
    return load_config(
        settings_path=args.config,
        categories_path=args.categories,
        config_dir=args.config_dir,
    )


def _load_store(state_path: Path, registry: CategoryRegistry) -> CategorizationStore:
    """Create a store and load rules and locks from ``state_path`` if present."""
    store = CategorizationStore(registry, LedgerState())
    if state_path.exists():
        store.load_snapshot(read_json(state_path))
    else:
        console.print(f"[dim]No state file at {state_path}, starting without rules[/dim]")
    return store


def _category_label(registry: CategoryRegistry, category_id: str | None) -> str:
    if category_id is None:
        return "[dim]uncategorized[/dim]"
    category = registry.get(category_id)
    if category is None:
        return f"[red]{category_id} (missing)[/red]"
    if category.parent_id:
        parent = registry.get(category.parent_id)
        if parent is not None:
            return f"{parent.name} / {category.name}"
    return category.name


def validate_config(args: argparse.Namespace) -> int:
    """Validate configuration files.

    Args:
        args: Parsed command-line arguments.

    Returns:
        0 if valid, 1 if errors found.
    """
    console.print("[bold]Validating configuration files...[/bold]\n")

    errors = []
    warnings = []

    config_dir = args.config_dir
    if not config_dir.exists():
        warnings.append(f"Config directory not found: {config_dir}")

    settings_path = args.config or (config_dir / "settings.yaml")
    if settings_path.exists():
        console.print(f"[green]✓[/green] Settings: {settings_path}")
    else:
        warnings.append(f"Settings file not found: {settings_path}")

    categories_path = args.categories or (config_dir / "categories.yaml")
    if categories_path.exists():
        console.print(f"[green]✓[/green] Categories: {categories_path}")
    else:
        warnings.append(f"Categories file not found: {categories_path}")

    try:
        config = _load_config(args)
        leaves = config.registry.leaf_ids()
        console.print("\n[green]✓[/green] Configuration loaded successfully")
        console.print(f"  - {len(config.registry)} categories")
        console.print(f"  - {len(leaves)} assignable categories")
        console.print(f"  - State file: {config.storage.state_file}")
        if not leaves:
            warnings.append("No category accepts transactions")
    except (ConfigError, OSError) as e:
        errors.append(f"Failed to load configuration: {e}")

    if warnings:
        console.print("\n[yellow]Warnings:[/yellow]")
        for w in warnings:
            console.print(f"  - {w}")

    if errors:
        console.print("\n[red]Errors:[/red]")
        for err in errors:
            console.print(f"  - {err}")
        return 1

    console.print("\n[green]Configuration is valid.[/green]")
    return 0


def check_snapshot(args: argparse.Namespace) -> int:
    """Validate a snapshot file and print its header.

    Returns:
        0 if the snapshot is valid, 1 otherwise.
    """
    try:
        data = read_json(args.file)
        meta = snapshot_metadata(data)
        # Header alone is not enough; rebuild the full state to catch bad entries
        deserialize_state(data)
    except FileNotFoundError:
        console.print(f"[red]Error: Snapshot not found: {args.file}[/red]")
        return 1
    except (json.JSONDecodeError, SnapshotError) as e:
        console.print(f"[red]Error: Invalid snapshot {args.file}: {e}[/red]")
        return 1

    console.print(f"[green]✓[/green] Snapshot: {args.file}")
    console.print(f"  - Version: {meta.version}")
    console.print(f"  - Saved at: {meta.saved_at.isoformat()}")
    console.print(f"  - {meta.rule_count} rules")
    console.print(f"  - {meta.lock_count} locks")
    if meta.transaction_count is not None:
        console.print(f"  - {meta.transaction_count} transactions when saved")
    return 0


def display_summary(store: CategorizationStore, repaired: int) -> None:
    summary = store.summary()
    console.print("\n[bold]Categorization Summary[/bold]")
    console.print(f"  Total transactions: {summary.total}")
    console.print(f"  Categorized: {summary.categorized} ({summary.categorized_ratio:.0%})")
    console.print(f"  Uncategorized: {summary.uncategorized}")
    console.print(f"  Locked: {summary.locked}")
    console.print(
        f"  Text patterns: {summary.unique_text_patterns} "
        f"({summary.patterns_with_rules} with rules)"
    )
    if repaired:
        console.print(f"  [yellow]Repaired invalid assignments: {repaired}[/yellow]")


def run_classify(args: argparse.Namespace, config: Config) -> int:
    """Classify a CSV export against the stored rules and locks.

    Returns:
        Exit code.
    """
    if not args.transactions.exists():
        console.print(f"[red]Error: Transactions file not found: {args.transactions}[/red]")
        return 1

    state_path = args.state or config.storage.state_file
    try:
        store = _load_store(state_path, config.registry)
    except (json.JSONDecodeError, SnapshotError) as e:
        console.print(f"[red]Error: Cannot load state {state_path}: {e}[/red]")
        return 1

    result = store.import_transactions(read_transactions_csv(args.transactions))
    if result.duplicate_count:
        console.print(f"[dim]Skipped {result.duplicate_count} duplicate transactions[/dim]")

    repaired = store.fix_invalid_categorizations() if args.fix_invalid else 0

    table = Table(title=f"Transactions ({args.transactions.name})")
    table.add_column("Date")
    table.add_column("Amount", justify="right")
    table.add_column("Text")
    table.add_column("Category")
    table.add_column("Locked", justify="center")
    table.add_column("Fingerprint", style="dim")

    for item in store.transactions:
        if args.uncategorized_only and item.is_categorized:
            continue
        table.add_row(
            item.date.isoformat(),
            f"{item.amount:.2f}",
            item.text,
            _category_label(config.registry, item.category_id),
            "🔒" if item.is_locked else "",
            item.fingerprint,
        )

    console.print(table)
    display_summary(store, repaired)

    if args.write_state:
        write_json(args.write_state, store.snapshot())
        console.print(f"\n[green]State written to {args.write_state}[/green]")

    return 0


def list_rules(args: argparse.Namespace, config: Config) -> int:
    state_path = args.state or config.storage.state_file
    if not state_path.exists():
        console.print(f"[red]Error: State file not found: {state_path}[/red]")
        return 1
    try:
        store = _load_store(state_path, config.registry)
    except (json.JSONDecodeError, SnapshotError) as e:
        console.print(f"[red]Error: Cannot load state {state_path}: {e}[/red]")
        return 1

    table = Table(title=f"Rules ({state_path.name})")
    table.add_column("Text")
    table.add_column("Category")
    table.add_column("Valid", justify="center")
    table.add_column("Updated")

    for rule in sorted(store.rules, key=lambda r: r.text):
        valid = config.registry.is_leaf(rule.category_id)
        table.add_row(
            rule.text,
            _category_label(config.registry, rule.category_id),
            "[green]✓[/green]" if valid else "[red]✗[/red]",
            rule.updated_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)
    console.print(f"{len(store.rules)} rules, {len(store.locks)} locks")
    return 0


def run_export_rules(args: argparse.Namespace, config: Config) -> int:
    state_path = args.state or config.storage.state_file
    if not state_path.exists():
        console.print(f"[red]Error: State file not found: {state_path}[/red]")
        return 1
    try:
        store = _load_store(state_path, config.registry)
    except (json.JSONDecodeError, SnapshotError) as e:
        console.print(f"[red]Error: Cannot load state {state_path}: {e}[/red]")
        return 1

    template = export_rules(store.state.engine, config.registry)
    write_json(args.output, template)
    console.print(f"[green]Exported {len(template['rules'])} rules to {args.output}[/green]")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Arguments to parse (defaults to sys.argv).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    log_level = get_log_level(args.verbose)
    setup_logging(level=log_level, console_output=args.verbose > 0)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "validate-config":
        return validate_config(args)

    if args.command == "check-snapshot":
        return check_snapshot(args)

    try:
        config = _load_config(args)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print("Run 'validate-config' to check configuration files.")
        return 1

    # Settings may request a log file; re-apply logging with it
    if config.logging.file:
        setup_logging(
            level=log_level if args.verbose else config.logging.level,
            log_file=config.logging.file,
            console_output=args.verbose > 0,
        )

    if args.command == "classify":
        return run_classify(args, config)
    if args.command == "rules":
        return list_rules(args, config)
    if args.command == "export-rules":
        return run_export_rules(args, config)

    parser.print_usage()
    return 1


if __name__ == "__main__":
    sys.exit(main())
