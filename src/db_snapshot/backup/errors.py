"""Exceptions raised by the backup/restore engine.

Only failures that make continuing meaningless are raised.  Everything
recoverable (capture errors, failed delete/upsert batches) is collected
into result models instead -- see ``db_snapshot.backup.models``.
"""


class BackupFormatError(ValueError):
    """Raised when a backup document has no ``tables`` mapping.

    Restore checks this before touching the store, so a caller that
    catches it knows no table was modified.
    """


def error_text(exc: BaseException) -> str:
    """Message for an exception, falling back to its class name."""
    return str(exc) or type(exc).__name__
