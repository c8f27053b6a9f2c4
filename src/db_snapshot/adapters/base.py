"""The ``DatabaseClient`` protocol shared by every adapter.

The snapshot and restore code reaches storage only through these
coroutines.  Everything is table- or batch-scoped: whole-table reads,
keyed upserts, deletes by key values, and single-row inserts for the
run log.

Usage:
    from db_snapshot.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.select("items", "*")
        await client.upsert("items", rows, on_conflict="id")
        await client.delete_in("items", "id", ["a1", "a2"])
        await client.close()
"""

from typing import Any, Protocol


class DatabaseClient(Protocol):
    """Async table access used by snapshot, restore and the run log.

    Every method is a coroutine; callers ``await`` each one.
    """

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name.
            columns: Comma-separated column names (e.g., ``"id, name"``) or ``"*"``.
            filters: Optional dict of field=value filters (all must match via AND).
            order_by: Optional column name to sort by.  A leading ``-``
                sorts descending (e.g., ``"-backup_date"``).
            limit: Optional maximum number of rows to return.

        Returns:
            List of dicts, one per row.  Empty list if no matches.

        Example:
            rows = await client.select(
                "backup_logs",
                "*",
                order_by="-backup_date",
                limit=30,
            )
        """
        ...

    async def insert(self, table: str, data: dict) -> dict:
        """Append one row and return it as stored.

        Used for run log entries.  Raises whatever the backend raises on a
        constraint violation.
        """
        ...

    async def upsert(
        self,
        table: str,
        rows: list[dict],
        on_conflict: str = "id",
    ) -> list[dict]:
        """Insert rows, replacing existing rows that share the conflict key.

        Args:
            table: Table name.
            rows: Row dicts to write.  Every row should carry ``on_conflict``.
            on_conflict: Unique column used to detect existing rows.

        Returns:
            The written rows as returned by the backend.

        Raises:
            Exception: If the batch violates a constraint other than the
                conflict key.

        Example:
            await client.upsert("items", [{"id": "i1", "name": "Lamp"}])
        """
        ...

    async def delete_in(self, table: str, column: str, values: list[Any]) -> None:
        """Delete every row whose ``column`` value is in ``values``.

        Args:
            table: Table name.
            column: Column to match (normally the primary key).
            values: Values to delete.  An empty list deletes nothing.

        Example:
            await client.delete_in("items", "id", ["i1", "i2"])
        """
        ...

    async def close(self) -> None:
        """Release connections held by the adapter."""
        ...
