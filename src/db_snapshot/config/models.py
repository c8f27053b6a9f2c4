"""Pydantic models for database and backup configuration."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"  # "postgres" or "supabase"
    key: str | None = None  # Supabase API key (may also come from env)


class BackupSettings(BaseModel):
    """Backup/restore settings from the ``[backup]`` section of db.toml.

    ``known_tables`` is ordered parent before child.  An empty list means
    "use the built-in registry".
    """

    batch_size: int = Field(default=100, ge=1)
    known_tables: list[str] = Field(default_factory=list)
    skip_on_restore: list[str] = Field(default_factory=list)
    key_column: str = "id"
    log_table: str = "backup_logs"
    discovery_view: str = "backup_tables"
    backup_dir: str = "backups"


class DatabaseConfig(BaseModel):
    """Complete configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    backup: BackupSettings = Field(default_factory=BackupSettings)
