"""
JSON document store backing /api/data.

All application state lives in one document (global-app-data.json) under the
data directory. Every save keeps a timestamped copy of the previous state and
a permanent snapshot (backup-permanent.json) is refreshed whenever the result
still holds modules, so a lost live file can be reseeded from it.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, TypeVar

from zinga_api.domain import app_data
from zinga_api.domain.backups import (
    LIVE_FILE,
    PERMANENT_BACKUP,
    backup_name,
    parse_backup_timestamp,
    pre_restore_name,
    sanitize_backup_filename,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_locks: dict[str, threading.RLock] = {}
_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = str(path.resolve())
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.RLock()
        return lock


def _epoch_ms() -> int:
    return time.time_ns() // 1_000_000


class StoreError(Exception):
    """Base class for document store failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StoreCorruptedError(StoreError):
    """Live or backup file exists but is not a usable document."""


class DestructiveSaveError(StoreError):
    status_code = 400

    def __init__(self, collections: list[str], existing_counts: Mapping[str, int]):
        detail = ", ".join(f"{existing_counts.get(name, 0)} {name}" for name in collections)
        super().__init__(f"Refusing to delete existing {' and '.join(collections)} ({detail} on disk)")
        self.collections = collections


class StoreConflictError(StoreError):
    status_code = 409

    def __init__(self, base_version: int, current_version: int):
        super().__init__(
            f"Document changed since it was loaded (base version {base_version}, current {current_version})"
        )
        self.base_version = base_version
        self.current_version = current_version


class InvalidBackupNameError(StoreError):
    status_code = 400


class BackupNotFoundError(StoreError):
    status_code = 404


@dataclass
class SaveResult:
    module_count: int
    version: int


@dataclass
class BackupInfo:
    filename: str
    timestamp: int

    @property
    def date(self) -> str:
        moment = datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)
        return app_data.utc_now_iso(moment)


class JsonDataStore:
    """File-backed AppData store with merge-on-save protection."""

    def __init__(
        self,
        data_dir: str | os.PathLike,
        *,
        guarded_collections: Iterable[str] = ("modules",),
        backup_retention: int = 0,
        seed_factory: Callable[[], dict] | None = None,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.live_path = self.data_dir / LIVE_FILE
        self.permanent_path = self.data_dir / PERMANENT_BACKUP
        self.guarded_collections = tuple(guarded_collections)
        self.backup_retention = max(0, int(backup_retention or 0))
        self.seed_factory = seed_factory or app_data.default_document
        self._lock = _lock_for(self.data_dir)

    # -------------------------- file primitives --------------------------
    def _ensure_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _write_text(self, path: Path, text: str) -> None:
        """Replace path atomically via a temp file in the same directory."""
        tmp_path = path.with_name(f".{path.name}.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_path, path)

    def _write_json(self, path: Path, doc: Mapping[str, Any]) -> None:
        self._write_text(path, json.dumps(doc, ensure_ascii=False, indent=2))

    def _parse(self, text: str, source: Path) -> dict:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StoreCorruptedError(f"{source.name} is not valid JSON: {exc}") from exc
        try:
            doc, quarantined = app_data.normalize_document(raw)
        except ValueError as exc:
            raise StoreCorruptedError(f"{source.name} has an invalid shape: {exc}") from exc
        if quarantined:
            logger.warning("Quarantined %d malformed record(s) while reading %s", quarantined, source.name)
        return doc

    def _read_current(self) -> tuple[str | None, dict | None]:
        if not self.live_path.exists():
            return None, None
        text = self.live_path.read_text(encoding="utf-8")
        return text, self._parse(text, self.live_path)

    def _next_version(self) -> int:
        """Version the next write must carry; a corrupt live file counts as 0."""
        try:
            _, current = self._read_current()
        except StoreCorruptedError as exc:
            logger.warning("Ignoring unreadable live document when stamping version: %s", exc.message)
            return 1
        return app_data.document_version(current) + 1

    def _unique_path(self, name_factory: Callable[[int], str]) -> Path:
        stamp = _epoch_ms()
        path = self.data_dir / name_factory(stamp)
        while path.exists():
            stamp += 1
            path = self.data_dir / name_factory(stamp)
        return path

    def _snapshot(self, text: str, name_factory: Callable[[int], str] = backup_name) -> Path:
        path = self._unique_path(name_factory)
        self._write_text(path, text)
        logger.info("Created backup %s", path.name)
        return path

    def _refresh_permanent(self, doc: Mapping[str, Any]) -> None:
        modules = app_data.count(doc, "modules")
        if modules <= 0:
            return
        try:
            self._write_json(self.permanent_path, doc)
            logger.info("Permanent backup updated with %d modules", modules)
        except OSError:
            logger.exception("Failed to write permanent backup %s", self.permanent_path)

    # -------------------------- reader --------------------------
    def load(self) -> dict:
        """Return the live document, seeding it on first run."""
        with self._lock:
            self._ensure_dir()
            if not self.live_path.exists():
                if self.permanent_path.exists():
                    self._write_text(self.live_path, self.permanent_path.read_text(encoding="utf-8"))
                    logger.info("Restored live data from permanent backup %s", self.permanent_path)
                else:
                    self._write_json(self.live_path, self.seed_factory())
                    logger.warning("Created default data file at %s", self.live_path)
            _, doc = self._read_current()
            return doc

    # -------------------------- writer --------------------------
    def save(self, incoming: Mapping[str, Any]) -> SaveResult:
        """
        Merge a (partial) document into the live one.

        The previous state is copied to backup-<epoch-ms>.json before the
        guard runs, so even a refused save leaves a recovery point.
        """
        with self._lock:
            self._ensure_dir()
            current_text, existing = self._read_current()
            if current_text is not None:
                self._snapshot(current_text)
                self.prune_backups()

            base_version = incoming.get("baseVersion")
            if base_version is not None and existing is not None:
                current_version = app_data.document_version(existing)
                try:
                    base_version = int(base_version)
                except (TypeError, ValueError):
                    raise StoreConflictError(-1, current_version) from None
                if base_version != current_version:
                    raise StoreConflictError(base_version, current_version)

            violations = app_data.guard_violations(existing, incoming, self.guarded_collections)
            if violations:
                counts = {name: app_data.count(existing, name) for name in violations}
                logger.error("Refusing to save: incoming payload would delete %s", counts)
                raise DestructiveSaveError(violations, counts)

            merged = app_data.merge_documents(existing, incoming)
            self._refresh_permanent(merged)
            self._write_json(self.live_path, merged)
            return SaveResult(
                module_count=app_data.count(merged, "modules"),
                version=merged["version"],
            )

    def reset(self) -> dict:
        """Overwrite the live document with seed data (previous state is backed up)."""
        with self._lock:
            self._ensure_dir()
            if self.live_path.exists():
                self._snapshot(self.live_path.read_text(encoding="utf-8"))
                self.prune_backups()
            doc = self.seed_factory()
            doc["version"] = self._next_version()
            self._write_json(self.live_path, doc)
            logger.warning("Live data reset to defaults")
            return doc

    def update(
        self,
        mutator: Callable[[dict], tuple[bool, T]],
        *,
        backup_name_factory: Callable[[int], str] = backup_name,
    ) -> T:
        """
        Locked read-modify-write for in-place mutations (payments, etc.).

        `mutator` edits the document and returns (changed, result); the file is
        only rewritten, after a backup of the raw previous content, when
        changed is true.
        """
        with self._lock:
            self.load()
            current_text, doc = self._read_current()
            current_version = app_data.document_version(doc)
            changed, result = mutator(doc)
            if changed:
                doc["version"] = current_version + 1
                self._refresh_permanent(doc)
                self._snapshot(current_text, backup_name_factory)
                self._write_json(self.live_path, doc)
            return result

    # -------------------------- backups --------------------------
    def list_backups(self) -> list[BackupInfo]:
        """Timestamped backups, newest first."""
        if not self.data_dir.is_dir():
            return []
        backups = []
        for entry in self.data_dir.iterdir():
            stamp = parse_backup_timestamp(entry.name)
            if stamp is not None and entry.is_file():
                backups.append(BackupInfo(filename=entry.name, timestamp=stamp))
        backups.sort(key=lambda item: item.timestamp, reverse=True)
        return backups

    def restore_backup(self, filename: Any) -> dict:
        """Replace the live document with a timestamped backup."""
        safe_name = sanitize_backup_filename(filename)
        if not safe_name:
            raise InvalidBackupNameError("Invalid backup filename format")
        with self._lock:
            backup_path = self.data_dir / safe_name
            if not backup_path.is_file():
                raise BackupNotFoundError("Backup file not found")
            doc = self._parse(backup_path.read_text(encoding="utf-8"), backup_path)
            doc["version"] = self._next_version()
            if self.live_path.exists():
                self._snapshot(self.live_path.read_text(encoding="utf-8"), pre_restore_name)
            self._write_json(self.live_path, doc)
            logger.info("Restored live data from %s", safe_name)
            return doc

    def prune_backups(self, keep: int | None = None) -> list[str]:
        """Delete the oldest timestamped backups beyond the retention limit."""
        limit = self.backup_retention if keep is None else max(0, int(keep))
        if limit <= 0:
            return []
        removed = []
        for info in self.list_backups()[limit:]:
            try:
                (self.data_dir / info.filename).unlink()
                removed.append(info.filename)
            except FileNotFoundError:
                continue
        if removed:
            logger.info("Pruned %d old backup(s)", len(removed))
        return removed
