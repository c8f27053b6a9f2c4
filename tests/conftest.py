"""Shared fixtures: an in-memory store implementing ``DatabaseClient``."""

from typing import Any
from uuid import uuid4

import pytest


class StoreError(Exception):
    """Error raised by ``FakeStore`` when a configured failure fires."""


class FakeStore:
    """In-memory ``DatabaseClient`` with injectable failures.

    Tables map key -> row and keep insertion order.  ``fail(op, table)``
    makes calls of ``op`` on ``table`` raise; ``calls=[1]`` limits the
    failure to the second such call.
    """

    def __init__(self, tables: dict[str, list[dict]] | None = None, key: str = "id") -> None:
        self.key = key
        self.tables: dict[str, dict[Any, dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self._failures: dict[tuple[str, str], list[int] | None] = {}
        self._counts: dict[tuple[str, str], int] = {}
        for name, rows in (tables or {}).items():
            self.tables[name] = {row[key]: dict(row) for row in rows}

    def fail(self, op: str, table: str, calls: list[int] | None = None) -> None:
        self._failures[(op, table)] = calls

    def _enter(self, op: str, table: str) -> None:
        self.calls.append((op, table))
        n = self._counts.get((op, table), 0)
        self._counts[(op, table)] = n + 1
        if (op, table) in self._failures:
            calls = self._failures[(op, table)]
            if calls is None or n in calls:
                raise StoreError(f"{op} on {table} failed (call {n})")

    def _table(self, table: str) -> dict[Any, dict]:
        if table not in self.tables:
            raise StoreError(f'relation "{table}" does not exist')
        return self.tables[table]

    def rows(self, table: str) -> list[dict]:
        return list(self.tables.get(table, {}).values())

    def ids(self, table: str) -> set:
        return set(self.tables.get(table, {}))

    def ops(self, op: str) -> list[str]:
        """Tables touched by ``op``, in call order."""
        return [t for o, t in self.calls if o == op]

    async def select(self, table, columns, filters=None, order_by=None, limit=None):
        self._enter("select", table)
        rows = list(self._table(table).values())
        if filters:
            rows = [r for r in rows if all(r.get(k) == v for k, v in filters.items())]
        if order_by:
            desc = order_by.startswith("-")
            col = order_by.lstrip("-")
            rows.sort(key=lambda r: r.get(col), reverse=desc)
        if limit is not None:
            rows = rows[:limit]
        if columns.strip() != "*":
            cols = [c.strip() for c in columns.split(",")]
            rows = [{c: r.get(c) for c in cols} for r in rows]
        return [dict(r) for r in rows]

    async def insert(self, table, data):
        self._enter("insert", table)
        row = dict(data)
        row.setdefault(self.key, str(uuid4()))
        self.tables.setdefault(table, {})[row[self.key]] = row
        return dict(row)

    async def upsert(self, table, rows, on_conflict="id"):
        self._enter("upsert", table)
        target = self._table(table)
        for row in rows:
            target[row[on_conflict]] = dict(row)
        return [dict(r) for r in rows]

    async def delete_in(self, table, column, values):
        self._enter("delete", table)
        target = self._table(table)
        doomed = set(values)
        for key in [k for k, r in target.items() if r.get(column) in doomed]:
            del target[key]

    async def close(self):
        pass


def make_rows(prefix: str, count: int, **extra: Any) -> list[dict]:
    """``count`` rows with ids ``{prefix}1..{prefix}{count}``."""
    return [{"id": f"{prefix}{i}", "name": f"{prefix}-{i}", **extra} for i in range(1, count + 1)]


@pytest.fixture
def store() -> FakeStore:
    """Store with ``types`` (2 rows) and ``items`` (3 rows, FK -> types)."""
    return FakeStore(
        {
            "types": [{"id": "t1", "name": "Healing"}, {"id": "t2", "name": "Family"}],
            "items": [
                {"id": "i1", "type_id": "t1", "title": "A"},
                {"id": "i2", "type_id": "t1", "title": "B"},
                {"id": "i3", "type_id": "t2", "title": "C"},
            ],
        }
    )
