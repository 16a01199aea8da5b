"""Use cases behind /api/data (load, merge-save, reset)."""
from __future__ import annotations

from typing import Any

from zinga_api.domain.app_data import utc_now_iso
from zinga_api.repositories.json_storage import JsonDataStore, StoreError


class InvalidPayloadError(StoreError):
    status_code = 400


class DataService:
    def __init__(self, store: JsonDataStore) -> None:
        self.store = store

    def load(self) -> dict:
        doc = self.store.load()
        return {**doc, "lastLoaded": utc_now_iso()}

    def save(self, payload: Any) -> dict:
        if not isinstance(payload, dict):
            raise InvalidPayloadError("Invalid data format")
        result = self.store.save(payload)
        return {"success": True, "moduleCount": result.module_count, "version": result.version}

    def reset(self) -> dict:
        doc = self.store.reset()
        return {"success": True, "message": "Data reset to defaults", "data": doc}
