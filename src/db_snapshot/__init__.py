"""db-snapshot: Full-database JSON snapshots with dependency-ordered restore.

Captures every table of a relational store into one portable document
and reloads it table by table, parents before children, in capped
batches.  Failures stay local to the batch or table they happen in.

Usage:
    from db_snapshot import get_adapter, build_snapshot, restore_document
    from db_snapshot import TableRegistry, RunLogRecorder
"""

__version__ = "0.1.0"

# Adapters
from db_snapshot.adapters.base import DatabaseClient
from db_snapshot.adapters.postgres import AsyncPostgresAdapter

# Config
from db_snapshot.config.loader import load_db_config
from db_snapshot.config.models import BackupSettings, DatabaseConfig, DatabaseProfile

# Factory
from db_snapshot.factory import ProfileNotFoundError, get_adapter, resolve_url

# Backup / restore
from db_snapshot.backup import (
    DEFAULT_REGISTRY,
    BackupDocument,
    BackupFormatError,
    RestoreResult,
    RunLogEntry,
    RunLogRecorder,
    RunOutcome,
    SnapshotResult,
    TableRegistry,
    TableSnapshot,
    backup_database,
    build_snapshot,
    restore_database,
    restore_document,
    restore_table,
    validate_backup,
)
from db_snapshot.cache import TableCache

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncPostgresAdapter",
    # Config
    "load_db_config",
    "BackupSettings",
    "DatabaseProfile",
    "DatabaseConfig",
    # Factory
    "get_adapter",
    "ProfileNotFoundError",
    "resolve_url",
    # Backup / restore
    "BackupDocument",
    "TableSnapshot",
    "BackupFormatError",
    "RestoreResult",
    "RunLogEntry",
    "RunLogRecorder",
    "RunOutcome",
    "SnapshotResult",
    "TableRegistry",
    "DEFAULT_REGISTRY",
    "build_snapshot",
    "backup_database",
    "restore_document",
    "restore_database",
    "restore_table",
    "validate_backup",
    "TableCache",
]

# Optional: AsyncSupabaseAdapter (only available with supabase extra)
try:
    from db_snapshot.adapters.supabase import AsyncSupabaseAdapter

    __all__.append("AsyncSupabaseAdapter")
except ImportError:
    # supabase extra not installed -- AsyncSupabaseAdapter unavailable
    pass
