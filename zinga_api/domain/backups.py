"""Domain helpers for data/backup file naming and validation."""
from __future__ import annotations

import re

LIVE_FILE = "global-app-data.json"
PERMANENT_BACKUP = "backup-permanent.json"

BACKUP_PATTERN = re.compile(r"backup-(\d+)\.json")


def backup_name(epoch_ms: int) -> str:
    return f"backup-{epoch_ms}.json"


def pre_restore_name(epoch_ms: int) -> str:
    return f"pre-restore-backup-{epoch_ms}.json"


def payment_backup_name(epoch_ms: int) -> str:
    return f"backup-payconfirm-{epoch_ms}.json"


def parse_backup_timestamp(name: str | None) -> int | None:
    """Epoch milliseconds embedded in a timestamped backup name, else None."""
    match = BACKUP_PATTERN.fullmatch(name or "")
    return int(match.group(1)) if match else None


def sanitize_backup_filename(value: object) -> str | None:
    """
    Reduce a client-supplied name to a safe timestamped backup file name.

    Directory parts are stripped before matching, so the result can only ever
    be joined directly under the data directory.
    """
    if not isinstance(value, str):
        return None
    base = value.strip().replace("\\", "/").rsplit("/", 1)[-1]
    if parse_backup_timestamp(base) is None:
        return None
    return base
