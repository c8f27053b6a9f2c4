"""Tests for the adapter protocol and adapter helpers (no live database)."""

import inspect
import json
from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest

from db_snapshot.adapters.base import DatabaseClient
from db_snapshot.adapters.postgres import AsyncPostgresAdapter, normalize_url


# ============================================================================
# Protocol
# ============================================================================


class TestDatabaseClientProtocol:
    """Every protocol method is a coroutine function."""

    @pytest.mark.parametrize("name", ["select", "insert", "upsert", "delete_in", "close"])
    def test_methods_are_async(self, name):
        assert inspect.iscoroutinefunction(getattr(DatabaseClient, name))

    @pytest.mark.parametrize("name", ["select", "insert", "upsert", "delete_in", "close"])
    def test_postgres_adapter_implements(self, name):
        assert inspect.iscoroutinefunction(getattr(AsyncPostgresAdapter, name))

    def test_upsert_defaults_to_id(self):
        sig = inspect.signature(AsyncPostgresAdapter.upsert)
        assert sig.parameters["on_conflict"].default == "id"


# ============================================================================
# PostgreSQL
# ============================================================================


@pytest.fixture
def pg() -> AsyncPostgresAdapter:
    """Adapter with an engine that never connects."""
    return AsyncPostgresAdapter("postgresql://u:p@localhost:5432/db")


def _mock_engine(pg: AsyncPostgresAdapter, keys: list[str], records: list[tuple]) -> MagicMock:
    """Swap in an engine whose ``begin()`` yields a connection returning ``records``."""
    result = MagicMock()
    result.keys.return_value = keys
    result.fetchall.return_value = records
    result.fetchone.return_value = records[0]
    conn = MagicMock()
    conn.execute = AsyncMock(return_value=result)
    pg._engine = MagicMock()
    pg._engine.begin.return_value.__aenter__ = AsyncMock(return_value=conn)
    pg._engine.begin.return_value.__aexit__ = AsyncMock(return_value=False)
    return conn


class TestNormalizeUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "postgres://u:p@h:5432/db",
            "postgresql://u:p@h:5432/db",
            "postgresql+asyncpg://u:p@h:5432/db",
        ],
    )
    def test_asyncpg_scheme(self, url):
        assert normalize_url(url) == "postgresql+asyncpg://u:p@h:5432/db"


class TestPostgresStatements:
    """Statement building and empty-batch short circuits."""

    def test_build_insert_binds_rows_as_json(self, pg):
        rows = [
            {"id": "a", "created_at": "2026-01-15T08:00:00+00:00", "meta": {"k": 1}},
            {"id": "b", "name": "x"},
        ]

        query, params = pg._build_insert("items", rows)

        assert query.startswith("INSERT INTO items (id, created_at, meta, name) SELECT")
        assert "json_populate_recordset(CAST(NULL AS items), CAST(:rows AS json))" in query
        assert json.loads(params["rows"]) == rows

    def test_build_insert_keeps_underscore_columns(self, pg):
        query, params = pg._build_insert("items", [{"id": "i1", "_legacy": "keep me"}])

        assert query.startswith("INSERT INTO items (id, _legacy) SELECT id, _legacy FROM")
        assert json.loads(params["rows"]) == [{"id": "i1", "_legacy": "keep me"}]

    async def test_upsert_writes_every_snapshot_column(self, pg):
        conn = _mock_engine(pg, keys=["id", "_legacy"], records=[("i1", "keep me")])

        rows = await pg.upsert("items", [{"id": "i1", "_legacy": "keep me"}])

        sql, params = conn.execute.await_args.args
        assert "ON CONFLICT (id) DO UPDATE SET _legacy = EXCLUDED._legacy" in str(sql)
        assert json.loads(params["rows"]) == [{"id": "i1", "_legacy": "keep me"}]
        assert rows == [{"id": "i1", "_legacy": "keep me"}]

    async def test_insert_drops_underscore_keys(self, pg):
        conn = _mock_engine(pg, keys=["id", "name"], records=[("a", "x")])

        row = await pg.insert("items", {"id": "a", "name": "x", "_source": "cli"})

        _, params = conn.execute.await_args.args
        assert json.loads(params["rows"]) == [{"id": "a", "name": "x"}]
        assert row == {"id": "a", "name": "x"}

    def test_build_insert_stringifies_non_json_values(self, pg):
        _, params = pg._build_insert("t", [{"id": 1, "d": date(2026, 1, 2)}])
        assert json.loads(params["rows"]) == [{"id": 1, "d": "2026-01-02"}]

    async def test_empty_upsert_is_noop(self, pg):
        pg._engine = MagicMock()
        assert await pg.upsert("items", []) == []
        pg._engine.begin.assert_not_called()

    async def test_empty_delete_is_noop(self, pg):
        pg._engine = MagicMock()
        await pg.delete_in("items", "id", [])
        pg._engine.begin.assert_not_called()

    def test_serialize_row(self, pg):
        row = pg._serialize_row(
            {
                "id": UUID("12345678-1234-5678-1234-567812345678"),
                "at": datetime(2026, 1, 15, tzinfo=timezone.utc),
                "amount": Decimal("1.5"),
                "name": "x",
            }
        )
        assert row == {
            "id": "12345678-1234-5678-1234-567812345678",
            "at": "2026-01-15T00:00:00+00:00",
            "amount": 1.5,
            "name": "x",
        }


# ============================================================================
# Supabase
# ============================================================================


def _supabase_client(pages: list[list[dict]]):
    """Mock client whose ``range(...).execute()`` returns ``pages`` in order."""
    query = MagicMock()
    query.eq.return_value = query
    query.order.return_value = query
    query.range.return_value.execute = AsyncMock(
        side_effect=[SimpleNamespace(data=page) for page in pages]
    )
    client = MagicMock()
    client.table.return_value.select.return_value = query
    return client, query


class TestSupabaseSelect:
    """select() pages through PostgREST's row cap."""

    @pytest.fixture(autouse=True)
    def _needs_supabase(self):
        pytest.importorskip("supabase")

    def _adapter(self, client):
        from db_snapshot.adapters.supabase import AsyncSupabaseAdapter

        adapter = AsyncSupabaseAdapter(url="https://x.supabase.co", key="k", page_size=2)
        adapter._client = client
        return adapter

    async def test_reads_until_short_page(self):
        client, query = _supabase_client([[{"id": 1}, {"id": 2}], [{"id": 3}]])

        rows = await self._adapter(client).select("items", "*")

        assert rows == [{"id": 1}, {"id": 2}, {"id": 3}]
        assert [c.args for c in query.range.call_args_list] == [(0, 1), (2, 3)]

    async def test_limit_and_descending_order(self):
        client, query = _supabase_client([[{"id": 9}]])

        rows = await self._adapter(client).select("logs", "*", order_by="-backup_date", limit=1)

        assert rows == [{"id": 9}]
        query.order.assert_called_once_with("backup_date", desc=True)
        query.range.assert_called_once_with(0, 0)

    async def test_zero_limit_reads_nothing(self):
        client, query = _supabase_client([])
        assert await self._adapter(client).select("logs", "*", limit=0) == []
        query.range.assert_not_called()

    async def test_unordered_paged_read_orders_by_key_column(self):
        client, query = _supabase_client([[{"id": 1}, {"id": 2}], [{"id": 3}]])

        await self._adapter(client).select("items", "*")

        assert query.order.call_count == 2
        query.order.assert_called_with("id", desc=False)
