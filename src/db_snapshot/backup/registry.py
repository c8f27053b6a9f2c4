"""Table registry: restore dependency order and the restore skip-set.

The registry is static configuration.  ``known_tables`` lists tables
parent-first so a child is restored after every table it references.
``skip_on_restore`` names operational/audit tables that a restore must
never overwrite (the run log itself, discovery views).

Stale entries are harmless: a registry table missing from a document is
ignored, and a document table missing from the registry is restored after
all known tables, in lexical order.

Usage:
    from db_snapshot.backup.registry import TableRegistry

    registry = TableRegistry(
        known_tables=["types", "items"],
        skip_on_restore={"backup_logs"},
    )
    registry.plan_restore(["items", "zeta", "types", "backup_logs"])
    # ['types', 'items', 'zeta']
"""

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from db_snapshot.config.models import BackupSettings


class TableRegistry(BaseModel):
    """Known tables in dependency order plus the restore skip-set."""

    model_config = ConfigDict(frozen=True)

    known_tables: tuple[str, ...] = ()
    skip_on_restore: frozenset[str] = Field(default_factory=frozenset)
    key_column: str = "id"

    @field_validator("known_tables")
    @classmethod
    def _no_duplicates(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if len(set(value)) != len(value):
            raise ValueError("known_tables contains duplicate names")
        return value

    def index_of(self, table: str) -> int | None:
        """Position of ``table`` in dependency order, or None if unknown."""
        try:
            return self.known_tables.index(table)
        except ValueError:
            return None

    def is_known(self, table: str) -> bool:
        return table in self.known_tables

    def plan_restore(self, present_tables: Iterable[str]) -> list[str]:
        """Compute the restore order for the tables present in a document.

        Known tables come first in registry order, then unknown tables in
        lexical order.  Skip-set tables never appear.
        """
        present = set(present_tables) - self.skip_on_restore
        known_ordered = [t for t in self.known_tables if t in present]
        unknown_trailing = sorted(present - set(self.known_tables))
        return known_ordered + unknown_trailing

    @classmethod
    def from_settings(cls, settings: BackupSettings) -> "TableRegistry":
        """Build a registry from the ``[backup]`` config section.

        Falls back to ``DEFAULT_REGISTRY``'s tables and skip-set for
        whichever list the config leaves empty.
        """
        return cls(
            known_tables=tuple(settings.known_tables) or DEFAULT_REGISTRY.known_tables,
            skip_on_restore=(
                frozenset(settings.skip_on_restore) or DEFAULT_REGISTRY.skip_on_restore
            ),
            key_column=settings.key_column,
        )


# Tables of the request-management app, parents first:
# prayer_types <- prayers <- prayer_updates, and requests referencing prayers.
DEFAULT_REGISTRY = TableRegistry(
    known_tables=(
        "prayer_types",
        "prayers",
        "prayer_updates",
        "prayer_prompts",
        "email_subscribers",
        "user_preferences",
        "status_change_requests",
        "update_deletion_requests",
        "admin_settings",
        "analytics",
    ),
    skip_on_restore=frozenset({"backup_logs", "backup_tables"}),
)
