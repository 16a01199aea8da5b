"""
Configuration helpers for the Zinga backend.

Settings are read once from the environment and cached; tests override values
with monkeypatch.setenv followed by get_settings.cache_clear().
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    data_dir: str
    database_url: str
    backup_retention: int
    guarded_collections: tuple[str, ...]
    log_level: str
    public_base_url: str
    seed_admin_email: str
    seed_admin_password: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _list(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
        if value is None:
            return default
        return tuple(item.strip() for item in value.split(",") if item.strip())

    data_dir = os.path.abspath(os.getenv("DATA_DIR") or os.path.join(os.getcwd(), "data"))
    default_db = "sqlite:///" + os.path.join(data_dir, "zinga.db")

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        data_dir=data_dir,
        database_url=(os.getenv("DATABASE_URL") or default_db).strip(),
        backup_retention=max(0, _int(os.getenv("BACKUP_RETENTION", "200"), 200)),
        guarded_collections=_list(os.getenv("GUARDED_COLLECTIONS"), ("modules",)),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:3000").rstrip("/"),
        seed_admin_email=os.getenv("SEED_ADMIN_EMAIL", "admin@zingalinga.com"),
        seed_admin_password=os.getenv("SEED_ADMIN_PASSWORD", "admin123"),
    )
