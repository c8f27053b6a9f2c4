"""Append-only run log for backup and restore attempts.

Each attempt writes exactly one row to the ``backup_logs`` table.  Rows
are never updated.  Recording is best-effort: a failed write is logged
and swallowed so it can never fail the backup or restore it describes.

Usage:
    from db_snapshot.backup.run_log import RunLogRecorder

    recorder = RunLogRecorder(adapter)
    await recorder.record(entry)
    latest = await recorder.current_status()
"""

import logging

from db_snapshot.adapters.base import DatabaseClient
from db_snapshot.backup.models import RunLogEntry

logger = logging.getLogger(__name__)


class RunLogRecorder:
    """Writes and reads ``RunLogEntry`` rows through a ``DatabaseClient``.

    Args:
        adapter: Adapter for the store holding the log table.
        table: Log table name.
    """

    def __init__(self, adapter: DatabaseClient, table: str = "backup_logs") -> None:
        self._adapter = adapter
        self._table = table

    @property
    def table(self) -> str:
        return self._table

    async def record(self, entry: RunLogEntry) -> bool:
        """Append ``entry``.  Returns False (and logs) if the write failed."""
        try:
            await self._adapter.insert(self._table, entry.to_row())
        except Exception:
            logger.exception(
                "Failed to record %s run %s in %s", entry.outcome.value, entry.id, self._table
            )
            return False
        logger.debug("Recorded run %s (%s)", entry.id, entry.outcome.value)
        return True

    async def list_recent(self, limit: int = 30) -> list[RunLogEntry]:
        """Most recent entries, newest first."""
        rows = await self._adapter.select(
            self._table, "*", order_by="-backup_date", limit=limit
        )
        entries = [RunLogEntry.from_row(row) for row in rows]
        entries.sort(key=lambda e: e.run_date, reverse=True)
        return entries[:limit]

    async def current_status(self) -> RunLogEntry | None:
        """The latest entry, or None when nothing has been recorded."""
        recent = await self.list_recent(limit=1)
        return recent[0] if recent else None
