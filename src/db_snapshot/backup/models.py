"""Backup document, run log, and restore result models.

The backup document is portable JSON with this wire shape::

    {
      "timestamp": "2026-01-15T08:00:00+00:00",
      "version": "1.0",
      "tables": {
        "types": {"count": 2, "data": [{"id": "t1", ...}, ...]},
        "items": {"error": "permission denied", "data": []}
      }
    }

``BackupDocument.from_wire()`` / ``to_wire()`` convert between that shape
and the models below.  Table keys are opaque strings; nothing assumes they
match the current schema.

Usage:
    from db_snapshot.backup.models import BackupDocument, TableSnapshot

    doc = BackupDocument(tables={"types": TableSnapshot.captured(rows)})
    raw = doc.to_wire()
    again = BackupDocument.from_wire(raw)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from db_snapshot.backup.errors import BackupFormatError

FORMAT_VERSION = "1.0"


def utc_now() -> datetime:
    """Timezone-aware current time (UTC)."""
    return datetime.now(timezone.utc)


# ============================================================================
# Backup Document
# ============================================================================


class TableSnapshot(BaseModel):
    """Captured contents of one table.

    A table whose read failed carries ``capture_error`` and no rows; the
    failure stays local to that table.
    """

    model_config = ConfigDict(frozen=True)

    row_count: int = Field(default=0, ge=0)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    capture_error: str | None = None

    @model_validator(mode="after")
    def _error_means_no_rows(self) -> "TableSnapshot":
        if self.capture_error is not None and (self.rows or self.row_count):
            raise ValueError("a table with capture_error must have no rows")
        return self

    @classmethod
    def captured(cls, rows: list[dict[str, Any]]) -> "TableSnapshot":
        """Snapshot of a successful read."""
        return cls(row_count=len(rows), rows=rows)

    @classmethod
    def failed(cls, message: str) -> "TableSnapshot":
        """Snapshot of a failed read."""
        return cls(capture_error=message)

    def to_wire(self) -> dict[str, Any]:
        """Wire form: ``{"count", "data"}`` or ``{"error", "data": []}``."""
        if self.capture_error is not None:
            return {"error": self.capture_error, "data": []}
        return {"count": self.row_count, "data": self.rows}

    @classmethod
    def from_wire(cls, raw: Any) -> "TableSnapshot":
        """Parse one table entry, degrading malformed entries to errors."""
        if not isinstance(raw, dict):
            return cls.failed("malformed table entry")
        if raw.get("error"):
            return cls.failed(str(raw["error"]))

        data = raw.get("data", [])
        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            return cls.failed("malformed table entry: 'data' is not a list of rows")
        return cls.captured(data)


class BackupDocument(BaseModel):
    """Point-in-time export of every captured table.

    Built once, then read-only for every downstream consumer.
    """

    model_config = ConfigDict(frozen=True)

    format_version: str = FORMAT_VERSION
    created_at: datetime | None = Field(default_factory=utc_now)
    tables: dict[str, TableSnapshot] = Field(default_factory=dict)

    @property
    def per_table_counts(self) -> dict[str, int]:
        """Row count per table (0 for tables with capture errors)."""
        return {name: snap.row_count for name, snap in self.tables.items()}

    @property
    def total_rows(self) -> int:
        """Sum of all captured rows."""
        return sum(snap.row_count for snap in self.tables.values())

    @property
    def capture_errors(self) -> dict[str, str]:
        """Table name -> capture error, for tables whose read failed."""
        return {
            name: snap.capture_error
            for name, snap in self.tables.items()
            if snap.capture_error is not None
        }

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the portable JSON shape."""
        return {
            "timestamp": self.created_at.isoformat() if self.created_at else None,
            "version": self.format_version,
            "tables": {name: snap.to_wire() for name, snap in self.tables.items()},
        }

    @classmethod
    def from_wire(cls, raw: Any) -> "BackupDocument":
        """Parse a decoded JSON document.

        Raises:
            BackupFormatError: If ``raw`` is not an object or has no
                ``tables`` mapping.
        """
        if not isinstance(raw, dict):
            raise BackupFormatError("Invalid backup file format: expected a JSON object")
        tables = raw.get("tables")
        if not isinstance(tables, dict):
            raise BackupFormatError("Invalid backup file format: missing 'tables' mapping")

        created_at: datetime | None = None
        timestamp = raw.get("timestamp")
        if isinstance(timestamp, str):
            try:
                created_at = datetime.fromisoformat(timestamp)
            except ValueError:
                created_at = None

        return cls(
            format_version=str(raw.get("version", FORMAT_VERSION)),
            created_at=created_at,
            tables={
                str(name): TableSnapshot.from_wire(entry)
                for name, entry in tables.items()
            },
        )


# ============================================================================
# Run Log
# ============================================================================


class RunOutcome(str, Enum):
    """Outcome stored in the run log ``status`` column."""

    SUCCESS = "success"
    FAILED = "failed"
    IN_PROGRESS = "in_progress"


class RunLogEntry(BaseModel):
    """One immutable record per backup or restore attempt."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    run_date: datetime = Field(default_factory=utc_now)
    outcome: RunOutcome
    per_table_counts: dict[str, int] = Field(default_factory=dict)
    total_rows: int = 0
    error_message: str | None = None
    duration_seconds: int | None = None

    def to_row(self) -> dict[str, Any]:
        """Column mapping for the ``backup_logs`` table."""
        return {
            "id": self.id,
            "backup_date": self.run_date.isoformat(),
            "status": self.outcome.value,
            "tables_backed_up": dict(self.per_table_counts),
            "total_records": self.total_rows,
            "error_message": self.error_message,
            "duration_seconds": self.duration_seconds,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "RunLogEntry":
        """Build an entry from a ``backup_logs`` row."""
        return cls(
            id=str(row["id"]),
            run_date=row["backup_date"],
            outcome=RunOutcome(row["status"]),
            per_table_counts=row.get("tables_backed_up") or {},
            total_rows=row.get("total_records") or 0,
            error_message=row.get("error_message"),
            duration_seconds=row.get("duration_seconds"),
        )


# ============================================================================
# Restore Results
# ============================================================================


class ErrorKind(str, Enum):
    """Where in a run a failure happened."""

    FORMAT = "format"
    CAPTURE = "capture"
    READ_IDS = "read_ids"
    DELETE_BATCH = "delete_batch"
    UPSERT_BATCH = "upsert_batch"
    UNEXPECTED = "unexpected"


class BatchError(BaseModel):
    """A single recorded failure, scoped to a table and optionally a batch."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    table: str
    message: str
    batch_index: int | None = None

    def describe(self) -> str:
        """Human-readable one-liner for operator output."""
        batch = f" (batch {self.batch_index + 1})" if self.batch_index is not None else ""
        match self.kind:
            case ErrorKind.DELETE_BATCH:
                return f"Error deleting from {self.table}{batch}: {self.message}"
            case ErrorKind.UPSERT_BATCH:
                return f"Error upserting into {self.table}{batch}: {self.message}"
            case ErrorKind.READ_IDS:
                return f"Error reading existing ids from {self.table}: {self.message}"
            case ErrorKind.CAPTURE:
                return f"Error backing up {self.table}: {self.message}"
            case _:
                return f"Exception restoring {self.table}: {self.message}"


class BatchResult(BaseModel):
    """Outcome of one delete or upsert chunk."""

    model_config = ConfigDict(frozen=True)

    index: int
    size: int
    error: BatchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TableRestoreResult(BaseModel):
    """What the restore worker did to one table."""

    table: str
    delete_batches: list[BatchResult] = Field(default_factory=list)
    upsert_batches: list[BatchResult] = Field(default_factory=list)
    read_error: BatchError | None = None

    @property
    def restored_count(self) -> int:
        """Rows written by successful upsert batches."""
        return sum(b.size for b in self.upsert_batches if b.ok)

    @property
    def deleted_count(self) -> int:
        """Ids removed by successful delete batches."""
        return sum(b.size for b in self.delete_batches if b.ok)

    @property
    def errors(self) -> list[BatchError]:
        """Read, delete and upsert failures, in the order they happened."""
        errors: list[BatchError] = []
        if self.read_error is not None:
            errors.append(self.read_error)
        errors.extend(b.error for b in self.delete_batches if b.error is not None)
        errors.extend(b.error for b in self.upsert_batches if b.error is not None)
        return errors


class RestoreResult(BaseModel):
    """Aggregated outcome of a restore run.

    ``outcome`` is ``success`` for both clean and degraded runs; a degraded
    run has a non-empty ``errors`` list.  ``failed`` means the run itself
    broke before finishing.
    """

    plan: list[str] = Field(default_factory=list)
    tables: list[TableRestoreResult] = Field(default_factory=list)
    errors: list[BatchError] = Field(default_factory=list)
    skipped: dict[str, str] = Field(default_factory=dict)
    outcome: RunOutcome = RunOutcome.SUCCESS
    error_message: str | None = None
    duration_seconds: int | None = None

    @property
    def restored_count(self) -> int:
        return sum(t.restored_count for t in self.tables)

    @property
    def per_table_counts(self) -> dict[str, int]:
        return {t.table: t.restored_count for t in self.tables}

    @property
    def success(self) -> bool:
        """True only for a clean run (no errors at all)."""
        return self.outcome == RunOutcome.SUCCESS and not self.errors

    def error_messages(self) -> list[str]:
        return [e.describe() for e in self.errors]

    def summary(self) -> str:
        """One-line operator summary."""
        if self.outcome == RunOutcome.FAILED:
            return f"Restore failed: {self.error_message}"
        if self.errors:
            return (
                f"Restore completed with {len(self.errors)} error(s). "
                f"Restored {self.restored_count:,} records."
            )
        return f"Restore complete! Restored {self.restored_count:,} records."


class SnapshotResult(BaseModel):
    """Outcome of a snapshot run: the document (if built) and its log entry."""

    document: BackupDocument | None = None
    log_entry: RunLogEntry
    output_path: str | None = None

    @property
    def success(self) -> bool:
        return self.document is not None and self.log_entry.outcome == RunOutcome.SUCCESS
