"""Supabase (PostgREST) adapter built on the supabase-py async client.

Installed with the ``supabase`` extra.  Use a service-role key: restore
writes to tables that row level security would otherwise hide.

Usage:
    from db_snapshot.adapters.supabase import AsyncSupabaseAdapter

    adapter = AsyncSupabaseAdapter(
        url="https://xyzproject.supabase.co",
        key="eyJ...",
    )

    rows = await adapter.select("prayers", "*")
    await adapter.close()
"""

import asyncio
from typing import Any

from supabase import AsyncClient, acreate_client


class AsyncSupabaseAdapter:
    """``DatabaseClient`` for a Supabase project.

    The async client is created on first use; an ``asyncio.Lock`` keeps
    concurrent first calls from creating two.

    PostgREST caps the rows returned by one request, so ``select`` pages
    through the table with ``range()`` until a short page comes back.

    Args:
        url: Supabase project URL.
        key: Supabase API key.
        page_size: Rows requested per page when reading a table.
        key_column: Unique column that orders pages when the caller gives
            no ``order_by``; without a fixed order PostgREST may repeat or
            skip rows between pages.
    """

    def __init__(
        self, url: str, key: str, page_size: int = 1000, key_column: str = "id"
    ) -> None:
        self._url: str = url
        self._key: str = key
        self._page_size: int = page_size
        self._key_column: str = key_column
        self._client: AsyncClient | None = None
        self._lock: asyncio.Lock = asyncio.Lock()

    async def _get_client(self) -> AsyncClient:
        """Get or create the async Supabase client."""
        if self._client is None:
            async with self._lock:
                # Double-check after acquiring lock
                if self._client is None:
                    self._client = await acreate_client(self._url, self._key)
        return self._client

    # ------------------------------------------------------------------
    # DatabaseClient
    # ------------------------------------------------------------------

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        """Select rows from table using the Supabase query builder."""
        if limit is not None and limit <= 0:
            return []

        client = await self._get_client()
        rows: list[dict] = []
        start = 0

        while True:
            query = client.table(table).select(columns)

            if filters:
                for key, value in filters.items():
                    query = query.eq(key, value)

            column = order_by or self._key_column
            query = query.order(column.lstrip("-"), desc=column.startswith("-"))

            page_size = self._page_size
            if limit is not None:
                page_size = min(page_size, limit - len(rows))

            result = await query.range(start, start + page_size - 1).execute()
            page = result.data or []
            rows.extend(page)

            if len(page) < page_size:
                break
            if limit is not None and len(rows) >= limit:
                break
            start += page_size

        return rows

    async def insert(self, table: str, data: dict) -> dict:
        """Insert one row (``_``-prefixed keys dropped) and return it."""
        row = {k: v for k, v in data.items() if not k.startswith("_")}
        client = await self._get_client()
        result = await client.table(table).insert(row).execute()
        return result.data[0]

    async def upsert(
        self,
        table: str,
        rows: list[dict],
        on_conflict: str = "id",
    ) -> list[dict]:
        """Insert or replace rows keyed on ``on_conflict``."""
        if not rows:
            return []
        client = await self._get_client()
        result = await (
            client.table(table).upsert(rows, on_conflict=on_conflict).execute()
        )
        return result.data or []

    async def delete_in(self, table: str, column: str, values: list[Any]) -> None:
        """Delete rows whose ``column`` value is in ``values``."""
        if not values:
            return
        client = await self._get_client()
        await client.table(table).delete().in_(column, list(values)).execute()

    async def close(self) -> None:
        """Close the client if one was created."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
