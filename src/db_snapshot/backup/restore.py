"""Restore orchestrator: reload a backup document in dependency order.

The document is validated first -- a document without a ``tables``
mapping raises ``BackupFormatError`` before the store is touched.  After
that nothing is raised: each table in the restore plan is handed to the
restore worker in turn, and failures are collected into the returned
``RestoreResult``.  Tables run strictly one after another because later
tables may reference rows restored by earlier ones.

Restoring is destructive: each restored table's previous contents are
replaced.

Usage:
    from db_snapshot.backup.restore import restore_database, restore_document

    result = await restore_database(adapter, "backups/backup.json", registry)
    if result.errors:
        for line in result.error_messages():
            print(line)
    print(result.summary())
"""

import logging
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from db_snapshot.adapters.base import DatabaseClient
from db_snapshot.backup.errors import error_text
from db_snapshot.backup.files import load_backup
from db_snapshot.backup.models import (
    BackupDocument,
    BatchError,
    ErrorKind,
    RestoreResult,
    RunLogEntry,
    RunOutcome,
)
from db_snapshot.backup.registry import DEFAULT_REGISTRY, TableRegistry
from db_snapshot.backup.run_log import RunLogRecorder
from db_snapshot.backup.worker import DEFAULT_BATCH_SIZE, restore_table
from db_snapshot.cache import TableCache

logger = logging.getLogger(__name__)


async def restore_document(
    adapter: DatabaseClient,
    raw: Any,
    registry: TableRegistry = DEFAULT_REGISTRY,
    batch_size: int = DEFAULT_BATCH_SIZE,
    recorder: RunLogRecorder | None = None,
    caches: Iterable[TableCache] = (),
) -> RestoreResult:
    """Restore every table of a decoded backup document.

    Args:
        adapter: Database adapter implementing ``DatabaseClient``.
        raw: Decoded JSON document, or an already-parsed ``BackupDocument``.
        registry: Dependency order and restore skip-set.
        batch_size: Maximum ids per delete and rows per upsert.
        recorder: When given, the run's log entry is appended through it.
        caches: Caches over restored data; each is invalidated when the
            run ends.

    Returns:
        ``RestoreResult``.  ``outcome`` is ``success`` for clean and
        degraded runs alike (check ``errors``); ``failed`` only when the
        run broke outside the per-table loop.

    Raises:
        BackupFormatError: If the document has no ``tables`` mapping.
            Nothing has been written when this is raised.
        ValueError: If ``batch_size`` is less than 1.
    """
    if batch_size < 1:
        raise ValueError(f"batch size must be >= 1, got {batch_size}")

    document = raw if isinstance(raw, BackupDocument) else BackupDocument.from_wire(raw)

    started = time.monotonic()
    result = RestoreResult()

    try:
        result.plan = registry.plan_restore(document.tables)
        logger.info("Restoring %d table(s): %s", len(result.plan), ", ".join(result.plan))

        for table in result.plan:
            snapshot = document.tables[table]

            if snapshot.capture_error is not None:
                result.skipped[table] = f"captured with error: {snapshot.capture_error}"
                logger.info("Skipping %s (had error in backup)", table)
                continue
            if not snapshot.rows:
                result.skipped[table] = "no data"
                logger.info("Skipping %s (no data)", table)
                continue

            try:
                table_result = await restore_table(
                    adapter,
                    table,
                    snapshot.rows,
                    batch_size=batch_size,
                    key_column=registry.key_column,
                )
            except Exception as e:
                logger.exception("Exception restoring %s", table)
                result.errors.append(
                    BatchError(kind=ErrorKind.UNEXPECTED, table=table, message=error_text(e))
                )
                continue

            result.tables.append(table_result)
            result.errors.extend(table_result.errors)

        if result.errors:
            result.error_message = f"completed with {len(result.errors)} error(s)"
            logger.warning(
                "Restore completed with %d error(s); restored %d record(s)",
                len(result.errors),
                result.restored_count,
            )
        else:
            logger.info("Restore complete: %d record(s)", result.restored_count)
    except Exception as e:
        logger.exception("Restore failed")
        result.outcome = RunOutcome.FAILED
        result.error_message = error_text(e)
    finally:
        result.duration_seconds = round(time.monotonic() - started)
        for cache in caches:
            cache.invalidate()

    if recorder is not None:
        await recorder.record(
            RunLogEntry(
                outcome=result.outcome,
                per_table_counts=result.per_table_counts,
                total_rows=result.restored_count,
                error_message=result.error_message,
                duration_seconds=result.duration_seconds,
            )
        )

    return result


async def restore_database(
    adapter: DatabaseClient,
    backup_path: str | Path,
    registry: TableRegistry = DEFAULT_REGISTRY,
    batch_size: int = DEFAULT_BATCH_SIZE,
    recorder: RunLogRecorder | None = None,
    caches: Iterable[TableCache] = (),
) -> RestoreResult:
    """Load a backup file and restore it.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        BackupFormatError: If the document has no ``tables`` mapping.
    """
    raw = load_backup(backup_path)
    return await restore_document(
        adapter,
        raw,
        registry=registry,
        batch_size=batch_size,
        recorder=recorder,
        caches=caches,
    )
