"""Backup listing and restore."""
from __future__ import annotations

from typing import Any

from zinga_api.domain.app_data import count
from zinga_api.repositories.json_storage import JsonDataStore


class BackupService:
    def __init__(self, store: JsonDataStore) -> None:
        self.store = store

    def list(self) -> dict:
        return {
            "backups": [
                {"filename": info.filename, "timestamp": info.timestamp, "date": info.date}
                for info in self.store.list_backups()
            ]
        }

    def restore(self, filename: Any) -> dict:
        doc = self.store.restore_backup(filename)
        return {
            "success": True,
            "message": "Data restored successfully",
            "moduleCount": count(doc, "modules"),
            "userCount": count(doc, "users"),
        }
