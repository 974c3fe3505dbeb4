"""
Portable backup file: {"version", "exportedAt", "masterHash", "data"}.
"data" is the encrypted vault blob exactly as stored on the server.
"""
import json
from datetime import datetime, timezone
from pathlib import Path

from lockbox_client.errors import InputError

BACKUP_VERSION = 1


def default_backup_name() -> str:
    return f"password-backup-{datetime.now(timezone.utc).strftime('%Y-%m-%d')}.json"


def build_backup(master_hash: str, data: str) -> dict:
    return {
        "version": BACKUP_VERSION,
        "exportedAt": datetime.now(timezone.utc).isoformat(),
        "masterHash": master_hash,
        "data": data,
    }


def write_backup(path, backup: dict) -> Path:
    path = Path(path)
    path.write_text(json.dumps(backup), encoding="utf-8")
    return path


def read_backup(path) -> dict:
    """Load and shape-check a backup file. Raises InputError if it is not one."""
    try:
        backup = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise InputError("Not a valid backup file") from e

    if not isinstance(backup, dict):
        raise InputError("Not a valid backup file")
    if not backup.get("data") or not backup.get("masterHash"):
        raise InputError("Not a valid backup file")
    if backup.get("version", BACKUP_VERSION) != BACKUP_VERSION:
        raise InputError(f"Unsupported backup version: {backup.get('version')}")

    return backup
