"""TOML configuration loader for database profiles and backup settings."""

import tomllib
from pathlib import Path

from db_snapshot.config.models import BackupSettings, DatabaseConfig, DatabaseProfile


def load_db_config(config_path: Path | None = None) -> DatabaseConfig:
    """Load database configuration from TOML file.

    Args:
        config_path: Path to db.toml (default: ``./db.toml`` in the
            current working directory).

    Returns:
        DatabaseConfig with all profiles and backup settings.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If a profile or the backup section is invalid.
    """
    if config_path is None:
        config_path = Path.cwd() / "db.toml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"Database config not found: {config_path}\n"
            f"Copy db.toml.example to db.toml and configure your profiles."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    # Parse profiles
    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = DatabaseProfile(**profile_data)

    backup = BackupSettings(**data.get("backup", {}))

    return DatabaseConfig(profiles=profiles, backup=backup)
