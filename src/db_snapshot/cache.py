"""Caller-owned read cache for small, rarely-changing tables.

Settings-style tables (branding, admin settings) are read often and
written rarely.  ``TableCache`` keeps the last read in the object that
owns it -- not in a module global -- and the owner calls ``invalidate()``
or ``refresh()`` after anything writes the table.  ``restore_document``
accepts caches and invalidates them once a restore finishes.

Usage:
    from db_snapshot.cache import TableCache

    settings = TableCache(adapter, "admin_settings")
    row = await settings.first()
    ...
    settings.invalidate()   # next get() reads the table again
"""

from typing import Any

from db_snapshot.adapters.base import DatabaseClient


class TableCache:
    """Lazily loaded copy of a table's rows.

    Args:
        adapter: Adapter to read through.
        table: Table to cache.
        columns: Columns to select.
        filters: Optional equality filters applied to the read.
    """

    def __init__(
        self,
        adapter: DatabaseClient,
        table: str,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
    ) -> None:
        self._adapter = adapter
        self._table = table
        self._columns = columns
        self._filters = filters
        self._rows: list[dict] | None = None

    @property
    def table(self) -> str:
        return self._table

    @property
    def is_loaded(self) -> bool:
        return self._rows is not None

    async def get(self) -> list[dict]:
        """Cached rows, reading the table on first use."""
        if self._rows is None:
            return await self.refresh()
        return self._rows

    async def first(self) -> dict | None:
        """First cached row (settings tables hold a single row)."""
        rows = await self.get()
        return rows[0] if rows else None

    async def refresh(self) -> list[dict]:
        """Re-read the table and replace the cached rows."""
        rows = await self._adapter.select(self._table, self._columns, filters=self._filters)
        self._rows = rows
        return rows

    def invalidate(self) -> None:
        """Drop cached rows; the next ``get()`` reads the table again."""
        self._rows = None
