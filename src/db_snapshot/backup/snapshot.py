"""Snapshot builder: capture every table into one ``BackupDocument``.

Tables are read one at a time with an unbounded ``select *``.  A failed
read is recorded on that table's snapshot and the run moves on, so one
unreadable table never costs the rest of the backup.

Usage:
    from db_snapshot.backup.snapshot import backup_database, build_snapshot

    result = await build_snapshot(adapter, registry)
    result.document.tables["prayers"].row_count

    # Build, write ./backups/backup-<ts>.json, and record the run
    result = await backup_database(adapter, registry, recorder=recorder)
    result.output_path
"""

import logging
import time
from pathlib import Path

from db_snapshot.adapters.base import DatabaseClient
from db_snapshot.backup.errors import error_text
from db_snapshot.backup.files import write_backup
from db_snapshot.backup.models import (
    BackupDocument,
    RunLogEntry,
    RunOutcome,
    SnapshotResult,
    TableSnapshot,
)
from db_snapshot.backup.registry import DEFAULT_REGISTRY, TableRegistry
from db_snapshot.backup.run_log import RunLogRecorder

logger = logging.getLogger(__name__)

DISCOVERY_VIEW = "backup_tables"


def _elapsed_seconds(started: float) -> int:
    return round(time.monotonic() - started)


async def discover_tables(
    adapter: DatabaseClient,
    registry: TableRegistry = DEFAULT_REGISTRY,
    view: str = DISCOVERY_VIEW,
) -> list[str]:
    """List the store's tables via the discovery view.

    Falls back to ``registry.known_tables`` when the view cannot be read.
    """
    try:
        rows = await adapter.select(view, "table_name", order_by="table_name")
    except Exception as e:
        logger.warning(
            "Table discovery via %s failed (%s); using %d registry tables",
            view,
            error_text(e),
            len(registry.known_tables),
        )
        return list(registry.known_tables)
    return [row["table_name"] for row in rows]


async def build_snapshot(
    adapter: DatabaseClient,
    registry: TableRegistry = DEFAULT_REGISTRY,
    tables: list[str] | None = None,
    recorder: RunLogRecorder | None = None,
    discovery_view: str = DISCOVERY_VIEW,
) -> SnapshotResult:
    """Read every table and assemble a ``BackupDocument``.

    Args:
        adapter: Database adapter implementing ``DatabaseClient``.
        registry: Fallback table list when discovery fails.
        tables: Explicit table list.  When ``None``, tables are discovered.
        recorder: When given, the run's log entry is appended through it.
        discovery_view: View listing the store's tables.

    Returns:
        ``SnapshotResult`` with the document and its run log entry.  The
        outcome is ``success`` even when some tables failed to capture;
        it is ``failed`` (and ``document`` is None) only when the run could
        not complete.  Never raises.
    """
    started = time.monotonic()
    document: BackupDocument | None = None

    try:
        if tables is None:
            tables = await discover_tables(adapter, registry, view=discovery_view)

        logger.info("Backing up %d table(s)", len(tables))

        captured: dict[str, TableSnapshot] = {}
        for table in tables:
            try:
                rows = await adapter.select(table, "*")
            except Exception as e:
                logger.warning("Error backing up %s: %s", table, error_text(e))
                captured[table] = TableSnapshot.failed(error_text(e))
                continue
            captured[table] = TableSnapshot.captured(rows)
            logger.debug("Captured %d row(s) from %s", len(rows), table)

        document = BackupDocument(tables=captured)

        failed_tables = sorted(document.capture_errors)
        entry = RunLogEntry(
            outcome=RunOutcome.SUCCESS,
            per_table_counts=document.per_table_counts,
            total_rows=document.total_rows,
            error_message=(
                f"{len(failed_tables)} table(s) failed to capture: {', '.join(failed_tables)}"
                if failed_tables
                else None
            ),
            duration_seconds=_elapsed_seconds(started),
        )
        logger.info(
            "Backup complete: %d records from %d table(s) in %ss",
            entry.total_rows,
            len(captured),
            entry.duration_seconds,
        )
    except Exception as e:
        logger.exception("Backup failed")
        document = None
        entry = RunLogEntry(
            outcome=RunOutcome.FAILED,
            error_message=error_text(e),
            duration_seconds=_elapsed_seconds(started),
        )

    if recorder is not None:
        await recorder.record(entry)

    return SnapshotResult(document=document, log_entry=entry)


async def backup_database(
    adapter: DatabaseClient,
    registry: TableRegistry = DEFAULT_REGISTRY,
    output_path: str | Path | None = None,
    tables: list[str] | None = None,
    recorder: RunLogRecorder | None = None,
    backup_dir: str | Path = "backups",
    discovery_view: str = DISCOVERY_VIEW,
) -> SnapshotResult:
    """Build a snapshot, write it to a JSON file, then record the run.

    A file that cannot be written turns the run into a ``failed`` one.
    The log entry is recorded after the write, so it reflects both steps.

    Returns:
        ``SnapshotResult`` with ``output_path`` set when the file was written.
    """
    result = await build_snapshot(
        adapter, registry, tables=tables, discovery_view=discovery_view
    )
    entry = result.log_entry
    output: str | None = None

    if result.document is not None:
        try:
            output = write_backup(result.document, output_path, backup_dir=backup_dir)
        except OSError as e:
            logger.exception("Could not write backup file")
            entry = entry.model_copy(
                update={
                    "outcome": RunOutcome.FAILED,
                    "error_message": f"Could not write backup file: {error_text(e)}",
                }
            )
        else:
            logger.info("Backup written to %s", output)

    if recorder is not None:
        await recorder.record(entry)

    return SnapshotResult(document=result.document, log_entry=entry, output_path=output)
