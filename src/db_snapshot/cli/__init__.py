"""CLI for taking, inspecting, and restoring database snapshots.

Usage:
    DB_PROFILE=local db-snapshot backup
    db-snapshot --profile local backup --output backups/today.json
    db-snapshot --profile local restore backups/today.json
    db-snapshot --profile local restore backups/today.json --yes --batch-size 50
    db-snapshot validate backups/today.json
    db-snapshot plan backups/today.json
    db-snapshot --profile local status --limit 10

Commands:
    backup    - Capture every table into a JSON backup file
    restore   - Replace table contents with a backup (destructive)
    validate  - Check a backup file without touching the database
    plan      - Show the order a restore would apply tables in
    status    - Show the latest run and the recent run log
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from db_snapshot.backup.errors import BackupFormatError
from db_snapshot.backup.files import load_backup, validate_backup
from db_snapshot.backup.models import BackupDocument, RunOutcome
from db_snapshot.backup.registry import DEFAULT_REGISTRY, TableRegistry
from db_snapshot.backup.restore import restore_database
from db_snapshot.backup.run_log import RunLogRecorder
from db_snapshot.backup.snapshot import backup_database
from db_snapshot.config.loader import load_db_config
from db_snapshot.config.models import DatabaseConfig
from db_snapshot.factory import ProfileNotFoundError, get_adapter

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _config_path(args: argparse.Namespace) -> Path | None:
    config = getattr(args, "config", None)
    return Path(config) if config else None


def _load_config(args: argparse.Namespace) -> DatabaseConfig | None:
    """Load db.toml, or None when it does not exist."""
    try:
        return load_db_config(_config_path(args))
    except FileNotFoundError:
        return None


def _registry_for(config: DatabaseConfig | None) -> TableRegistry:
    if config is None:
        return DEFAULT_REGISTRY
    return TableRegistry.from_settings(config.backup)


def _positive_int(value: str) -> int:
    """argparse type for batch sizes."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def _status_style(outcome: RunOutcome) -> str:
    if outcome == RunOutcome.SUCCESS:
        return "green"
    if outcome == RunOutcome.FAILED:
        return "red"
    return "yellow"


def _format_duration(seconds: int | None) -> str:
    if not seconds:
        return "N/A"
    if seconds < 60:
        return f"{seconds}s"
    return f"{seconds // 60}m {seconds % 60}s"


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_backup(args: argparse.Namespace) -> int:
    """Async implementation for backup command.

    Returns:
        0 when a backup file was written, 1 otherwise.
    """
    try:
        config = load_db_config(_config_path(args))
        adapter = get_adapter(args.profile, env_prefix=args.env_prefix, config=config)
    except (FileNotFoundError, ProfileNotFoundError, KeyError, ValueError, ImportError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    settings = config.backup
    try:
        result = await backup_database(
            adapter,
            _registry_for(config),
            output_path=args.output,
            tables=args.tables or None,
            recorder=RunLogRecorder(adapter, settings.log_table),
            backup_dir=settings.backup_dir,
            discovery_view=settings.discovery_view,
        )
    finally:
        await adapter.close()

    entry = result.log_entry
    if not result.success:
        console.print(f"[bold red]x[/bold red] Backup failed: {entry.error_message}")
        return 1

    document = result.document
    table = Table(title="Backup Summary", show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Records", justify="right")
    for name, snap in document.tables.items():
        if snap.capture_error is not None:
            table.add_row(name, f"[red]error: {snap.capture_error}[/red]")
        else:
            table.add_row(name, f"{snap.row_count:,}")
    console.print(table)

    console.print(
        f"[bold green]v[/bold green] Backup complete! "
        f"{entry.total_rows:,} records in {_format_duration(entry.duration_seconds)}"
    )
    console.print(f"  File: [cyan]{result.output_path}[/cyan]")
    if document.capture_errors:
        console.print(
            f"  [yellow]{len(document.capture_errors)} table(s) could not be read[/yellow]"
        )
    return 0


async def _async_restore(args: argparse.Namespace) -> int:
    """Async implementation for restore command.

    Returns:
        0 on a clean restore, 1 on format errors, degraded or failed runs.
    """
    if not args.yes:
        console.print(f"[yellow]This will restore data from: {args.backup_path}[/yellow]")
        console.print("[bold yellow]WARNING: Existing records will be replaced![/bold yellow]")
        response = input("Continue? [y/N] ")
        if response.lower() not in ["y", "yes"]:
            console.print("Cancelled.")
            return 0

    try:
        config = load_db_config(_config_path(args))
        adapter = get_adapter(args.profile, env_prefix=args.env_prefix, config=config)
    except (FileNotFoundError, ProfileNotFoundError, KeyError, ValueError, ImportError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    settings = config.backup
    batch_size = args.batch_size or settings.batch_size
    try:
        result = await restore_database(
            adapter,
            args.backup_path,
            registry=_registry_for(config),
            batch_size=batch_size,
            recorder=RunLogRecorder(adapter, settings.log_table),
        )
    except (FileNotFoundError, json.JSONDecodeError, BackupFormatError) as e:
        console.print(f"[bold red]x[/bold red] Restore failed: {e}")
        return 1
    finally:
        await adapter.close()

    for table_name, reason in result.skipped.items():
        console.print(f"  [dim]Skipped {table_name} ({reason})[/dim]")

    if result.errors:
        console.print(f"\n[bold yellow]{result.summary()}[/bold yellow]")
        for line in result.error_messages():
            console.print(f"   - {line}")
        return 1

    if result.outcome == RunOutcome.FAILED:
        console.print(f"[bold red]x[/bold red] {result.summary()}")
        return 1

    console.print(f"[bold green]v[/bold green] {result.summary()}")
    return 0


async def _async_status(args: argparse.Namespace) -> int:
    """Async implementation for status command."""
    try:
        config = load_db_config(_config_path(args))
        adapter = get_adapter(args.profile, env_prefix=args.env_prefix, config=config)
    except (FileNotFoundError, ProfileNotFoundError, KeyError, ValueError, ImportError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    recorder = RunLogRecorder(adapter, config.backup.log_table)
    try:
        entries = await recorder.list_recent(limit=args.limit)
    except Exception as e:
        console.print(f"[red]Error reading run log: {e}[/red]")
        return 1
    finally:
        await adapter.close()

    if not entries:
        console.print("[yellow]No backup logs found.[/yellow]")
        return 0

    latest = entries[0]
    style = _status_style(latest.outcome)
    console.print(
        f"Latest run: [bold {style}]{latest.outcome.value.upper()}[/bold {style}] "
        f"at {latest.run_date.isoformat()} "
        f"({latest.total_rows:,} records, {_format_duration(latest.duration_seconds)})"
    )
    if latest.error_message:
        console.print(f"  [dim]{latest.error_message}[/dim]")

    table = Table(title="Run Log", show_header=True, header_style="bold")
    table.add_column("Date")
    table.add_column("Status")
    table.add_column("Tables", justify="right")
    table.add_column("Records", justify="right")
    table.add_column("Duration", justify="right")
    for entry in entries:
        style = _status_style(entry.outcome)
        table.add_row(
            entry.run_date.isoformat(),
            f"[{style}]{entry.outcome.value}[/{style}]",
            str(len(entry.per_table_counts)),
            f"{entry.total_rows:,}",
            _format_duration(entry.duration_seconds),
        )
    console.print(table)
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_backup(args: argparse.Namespace) -> int:
    """Capture every table into a backup file.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_backup(args))


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore a backup file into the active profile.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_restore(args))


def cmd_status(args: argparse.Namespace) -> int:
    """Show the latest run and the recent run log.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_status(args))


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a backup file.

    Reads only the local file (and db.toml for the registry) -- no
    database calls.

    Returns:
        0 if the file is valid (warnings allowed), 1 otherwise.
    """
    registry = _registry_for(_load_config(args))
    result = validate_backup(args.backup_path, registry)

    console.print(f"Validating: [cyan]{args.backup_path}[/cyan]")

    if result["errors"]:
        console.print(f"\n[red]Found {len(result['errors'])} error(s):[/red]")
        for error in result["errors"]:
            console.print(f"   - {error}")

    if result["warnings"]:
        console.print(f"\n[yellow]Found {len(result['warnings'])} warning(s):[/yellow]")
        for warning in result["warnings"]:
            console.print(f"   - {warning}")

    if result["valid"]:
        suffix = " (with warnings)" if result["warnings"] else ""
        console.print(f"\n[bold green]v[/bold green] Backup is valid{suffix}")
        return 0

    console.print("\n[bold red]x[/bold red] Backup is invalid")
    return 1


def cmd_plan(args: argparse.Namespace) -> int:
    """Show the restore order for a backup file.

    Reads only local files -- no database calls.

    Returns:
        0 on success, 1 if the file cannot be read or has no tables.
    """
    registry = _registry_for(_load_config(args))
    try:
        document = BackupDocument.from_wire(load_backup(args.backup_path))
    except (FileNotFoundError, json.JSONDecodeError, BackupFormatError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    plan = registry.plan_restore(document.tables)

    table = Table(title="Restore Plan", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Table")
    table.add_column("Rows", justify="right")
    table.add_column("Note")
    for step, name in enumerate(plan, start=1):
        snap = document.tables[name]
        if snap.capture_error is not None:
            note = "[yellow]skipped: captured with error[/yellow]"
        elif not snap.rows:
            note = "[dim]skipped: no data[/dim]"
        elif not registry.is_known(name):
            note = "unknown table"
        else:
            note = ""
        table.add_row(str(step), name, f"{snap.row_count:,}", note)
    console.print(table)

    excluded = sorted(set(document.tables) & registry.skip_on_restore)
    if excluded:
        console.print(f"[dim]Never restored: {', '.join(excluded)}[/dim]")
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all commands."""
    parser = argparse.ArgumentParser(
        prog="db-snapshot",
        description="Full-database JSON snapshots with dependency-ordered restore",
    )

    parser.add_argument(
        "--profile",
        default=None,
        help="Profile name from db.toml (default: {env_prefix}DB_PROFILE)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to db.toml (default: ./db.toml)",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # backup command
    p_backup = subparsers.add_parser("backup", help="Create database backup")
    p_backup.add_argument(
        "--output",
        "-o",
        help="Output file path (default: <backup_dir>/backup-{timestamp}.json)",
    )
    p_backup.add_argument(
        "--table",
        "-t",
        action="append",
        dest="tables",
        help="Back up only this table (repeatable; default: all discovered tables)",
    )
    p_backup.set_defaults(func=cmd_backup)

    # restore command
    p_restore = subparsers.add_parser("restore", help="Restore from backup")
    p_restore.add_argument("backup_path", help="Path to backup JSON file")
    p_restore.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help="Rows per delete/upsert batch (default: [backup] batch_size)",
    )
    p_restore.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Skip confirmation prompt",
    )
    p_restore.set_defaults(func=cmd_restore)

    # validate command
    p_validate = subparsers.add_parser("validate", help="Validate backup file")
    p_validate.add_argument("backup_path", help="Path to backup JSON file")
    p_validate.set_defaults(func=cmd_validate)

    # plan command
    p_plan = subparsers.add_parser("plan", help="Show restore order for a backup file")
    p_plan.add_argument("backup_path", help="Path to backup JSON file")
    p_plan.set_defaults(func=cmd_plan)

    # status command
    p_status = subparsers.add_parser("status", help="Show recent backup/restore runs")
    p_status.add_argument(
        "--limit",
        type=int,
        default=30,
        help="Number of log entries to show (default: 30)",
    )
    p_status.set_defaults(func=cmd_status)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
