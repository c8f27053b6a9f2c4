"""Restore worker: make one table match its snapshot rows.

The table is cleared and refilled ("clear-then-upsert"), both phases in
chunks of ``batch_size`` to stay under the store's per-request limits:

1. read the ids currently in the table;
2. delete them chunk by chunk -- the first failing chunk stops the delete
   phase;
3. upsert the snapshot rows chunk by chunk, keyed on the id column -- a
   failing chunk is recorded and the next one still runs.

Every chunk produces a ``BatchResult``; the table's errors and restored
count are derived from those results.

Known limitation: ids left over from a failed delete chunk stay in the
table.  Later delete chunks are not attempted even though they might
succeed.
"""

import logging
from collections.abc import Iterator, Sequence
from typing import Any, TypeVar

from db_snapshot.adapters.base import DatabaseClient
from db_snapshot.backup.errors import error_text
from db_snapshot.backup.models import BatchError, BatchResult, ErrorKind, TableRestoreResult

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of ``items`` with at most ``size`` elements."""
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def _delete_existing(
    adapter: DatabaseClient,
    table: str,
    ids: list[Any],
    batch_size: int,
    key_column: str,
) -> list[BatchResult]:
    results: list[BatchResult] = []
    for index, chunk in enumerate(chunked(ids, batch_size)):
        try:
            await adapter.delete_in(table, key_column, list(chunk))
        except Exception as e:
            error = BatchError(
                kind=ErrorKind.DELETE_BATCH,
                table=table,
                message=error_text(e),
                batch_index=index,
            )
            logger.warning(error.describe())
            results.append(BatchResult(index=index, size=len(chunk), error=error))
            break
        results.append(BatchResult(index=index, size=len(chunk)))
    return results


async def _upsert_rows(
    adapter: DatabaseClient,
    table: str,
    rows: list[dict[str, Any]],
    batch_size: int,
    key_column: str,
) -> list[BatchResult]:
    results: list[BatchResult] = []
    for index, chunk in enumerate(chunked(rows, batch_size)):
        try:
            await adapter.upsert(table, list(chunk), on_conflict=key_column)
        except Exception as e:
            error = BatchError(
                kind=ErrorKind.UPSERT_BATCH,
                table=table,
                message=error_text(e),
                batch_index=index,
            )
            logger.warning(error.describe())
            results.append(BatchResult(index=index, size=len(chunk), error=error))
            continue
        results.append(BatchResult(index=index, size=len(chunk)))
    return results


async def restore_table(
    adapter: DatabaseClient,
    table: str,
    rows: list[dict[str, Any]],
    batch_size: int = DEFAULT_BATCH_SIZE,
    key_column: str = "id",
) -> TableRestoreResult:
    """Replace the contents of ``table`` with ``rows``.

    Args:
        adapter: Database adapter implementing ``DatabaseClient``.
        table: Table to restore.
        rows: Snapshot rows; each carries a unique ``key_column`` value.
        batch_size: Maximum ids per delete and rows per upsert.
        key_column: Unique column used for deletes and upsert conflicts.

    Returns:
        ``TableRestoreResult`` with per-batch results.  Batch failures are
        recorded there, not raised.

    Raises:
        ValueError: If ``batch_size`` is less than 1.
    """
    if batch_size < 1:
        raise ValueError(f"batch size must be >= 1, got {batch_size}")

    result = TableRestoreResult(table=table)

    try:
        existing = await adapter.select(table, key_column, order_by=key_column)
    except Exception as e:
        result.read_error = BatchError(
            kind=ErrorKind.READ_IDS, table=table, message=error_text(e)
        )
        logger.warning(result.read_error.describe())
    else:
        ids = [row[key_column] for row in existing if key_column in row]
        result.delete_batches = await _delete_existing(
            adapter, table, ids, batch_size, key_column
        )

    result.upsert_batches = await _upsert_rows(
        adapter, table, rows, batch_size, key_column
    )

    logger.info(
        "Restored %d/%d row(s) into %s (%d error(s))",
        result.restored_count,
        len(rows),
        table,
        len(result.errors),
    )
    return result
