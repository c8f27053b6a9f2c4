"""Snapshot and restore of every application table.

Usage:
    from db_snapshot.backup import TableRegistry, build_snapshot, restore_document
    from db_snapshot.backup import backup_database, restore_database, validate_backup
"""

from db_snapshot.backup.errors import BackupFormatError
from db_snapshot.backup.files import load_backup, validate_backup, write_backup
from db_snapshot.backup.models import (
    BackupDocument,
    BatchError,
    BatchResult,
    ErrorKind,
    RestoreResult,
    RunLogEntry,
    RunOutcome,
    SnapshotResult,
    TableRestoreResult,
    TableSnapshot,
)
from db_snapshot.backup.registry import DEFAULT_REGISTRY, TableRegistry
from db_snapshot.backup.restore import restore_database, restore_document
from db_snapshot.backup.run_log import RunLogRecorder
from db_snapshot.backup.snapshot import backup_database, build_snapshot, discover_tables
from db_snapshot.backup.worker import chunked, restore_table

__all__ = [
    "BackupFormatError",
    "BackupDocument",
    "TableSnapshot",
    "RunLogEntry",
    "RunOutcome",
    "ErrorKind",
    "BatchError",
    "BatchResult",
    "TableRestoreResult",
    "RestoreResult",
    "SnapshotResult",
    "TableRegistry",
    "DEFAULT_REGISTRY",
    "RunLogRecorder",
    "build_snapshot",
    "backup_database",
    "discover_tables",
    "restore_document",
    "restore_database",
    "restore_table",
    "chunked",
    "load_backup",
    "validate_backup",
    "write_backup",
]
