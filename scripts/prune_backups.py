#!/usr/bin/env python3
"""
Remove old timestamped backups (backup-<epoch-ms>.json) from the data directory.

The permanent snapshot and pre-restore/payment backups are never touched.

Usage:
  python scripts/prune_backups.py --keep 50 [--data-dir ./data]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Make the zinga_api package importable when run directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from zinga_api.core.config import get_settings
from zinga_api.repositories.json_storage import JsonDataStore


def main() -> None:
    settings = get_settings()
    ap = argparse.ArgumentParser(description="Prune timestamped data backups")
    ap.add_argument("--keep", type=int, default=settings.backup_retention or 200, help="Number of newest backups to keep")
    ap.add_argument("--data-dir", default=settings.data_dir, help="Data directory (default: DATA_DIR)")
    args = ap.parse_args()

    if args.keep <= 0:
        raise SystemExit("--keep must be a positive number")

    store = JsonDataStore(args.data_dir)
    removed = store.prune_backups(keep=args.keep)
    print(f"OK: {len(removed)} backup(s) removed from {args.data_dir}")
    for name in removed:
        print(f"  - {name}")


if __name__ == "__main__":
    try:
        main()
    except OSError as exc:  # pragma: no cover
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
