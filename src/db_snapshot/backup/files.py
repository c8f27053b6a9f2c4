"""Reading, writing, and validating backup document files.

Backups are stored as pretty-printed JSON in the wire format described in
``db_snapshot.backup.models``.

Usage:
    from db_snapshot.backup.files import load_backup, validate_backup, write_backup

    path = write_backup(document)                 # ./backups/backup-<ts>.json
    report = validate_backup(path, registry)      # sync, no database I/O
    raw = load_backup(path)                       # decoded JSON dict
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from db_snapshot.backup.models import FORMAT_VERSION, BackupDocument
from db_snapshot.backup.registry import TableRegistry


def default_backup_path(backup_dir: str | Path = "backups") -> Path:
    """Timestamped path under ``backup_dir`` (relative to the cwd)."""
    timestamp = datetime.now().strftime("%Y-%m-%d-%H%M%S")
    return Path(backup_dir) / f"backup-{timestamp}.json"


def write_backup(
    document: BackupDocument,
    output_path: str | Path | None = None,
    backup_dir: str | Path = "backups",
) -> str:
    """Write ``document`` as JSON and return the path written.

    Args:
        document: Document to serialize.
        output_path: Target file.  When ``None``, a timestamped path under
            ``backup_dir`` is generated.
        backup_dir: Directory for generated paths.

    Raises:
        OSError: If the file cannot be written.
    """
    path = Path(output_path) if output_path is not None else default_backup_path(backup_dir)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        json.dump(document.to_wire(), f, indent=2, default=str)

    return str(path)


def load_backup(backup_path: str | Path) -> Any:
    """Read and decode a backup file.

    The result is the raw decoded JSON; structural checks happen in
    ``BackupDocument.from_wire()``.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    with open(backup_path, "r") as f:
        return json.load(f)


def validate_backup(
    backup_path: str | Path,
    registry: TableRegistry | None = None,
) -> dict:
    """Validate backup file format and data integrity.

    This function is **sync** -- it only reads a local JSON file with
    no database I/O.  Problems that make the file unusable are errors;
    problems a restore tolerates are warnings.

    Args:
        backup_path: Path to backup JSON file.
        registry: When given, tables unknown to it and tables it skips on
            restore are reported as warnings.

    Returns:
        Dict with ``valid`` (bool), ``errors`` (list[str]),
        and ``warnings`` (list[str]).

    Example:
        report = validate_backup("backups/backup.json", registry)
        if not report["valid"]:
            raise ValueError("Backup is invalid")
    """
    errors: list[str] = []
    warnings: list[str] = []

    try:
        raw = load_backup(backup_path)
    except FileNotFoundError:
        errors.append(f"Backup file not found: {backup_path}")
        return {"valid": False, "errors": errors, "warnings": warnings}
    except json.JSONDecodeError as e:
        errors.append(f"Invalid JSON: {e}")
        return {"valid": False, "errors": errors, "warnings": warnings}

    if not isinstance(raw, dict) or not isinstance(raw.get("tables"), dict):
        errors.append("Missing required key: tables")
        return {"valid": False, "errors": errors, "warnings": warnings}

    if "timestamp" not in raw:
        warnings.append("Missing field: timestamp")

    version = raw.get("version")
    if version != FORMAT_VERSION:
        warnings.append(
            f"Unexpected backup version '{version}' (expected '{FORMAT_VERSION}')"
        )

    key_column = registry.key_column if registry is not None else "id"

    for name, entry in raw["tables"].items():
        if not isinstance(entry, dict):
            errors.append(f"{name}: table entry is not an object")
            continue

        if entry.get("error"):
            warnings.append(f"{name}: captured with error ({entry['error']}), will be skipped")
            continue

        data = entry.get("data")
        if not isinstance(data, list):
            errors.append(f"{name}: 'data' is not a list")
            continue

        count = entry.get("count")
        if count is not None and count != len(data):
            warnings.append(f"{name}: count {count} does not match {len(data)} rows")

        not_objects = sum(1 for row in data if not isinstance(row, dict))
        if not_objects:
            errors.append(f"{name}: {not_objects} row(s) are not objects")
            continue

        missing_key = sum(1 for row in data if key_column not in row)
        if missing_key:
            warnings.append(f"{name}: {missing_key} row(s) missing '{key_column}'")

        if registry is not None:
            if name in registry.skip_on_restore:
                warnings.append(f"{name}: excluded from restore")
            elif not registry.is_known(name):
                warnings.append(f"{name}: unknown table, restored after known tables")

    valid = len(errors) == 0
    return {"valid": valid, "errors": errors, "warnings": warnings}
