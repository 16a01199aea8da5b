"""
Domain helpers for the AppData document.

The document is a single JSON object holding every collection the storefront
and the admin dashboard work with. Helpers here are pure: they never touch the
filesystem, which keeps merge and guard rules easy to test.
"""
from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

# Merged with "non-empty incoming wins, otherwise keep existing".
PRIMARY_COLLECTIONS = ("users", "modules", "purchases", "packages")

# Carried through: incoming wins whenever it sends a list at all.
AUXILIARY_COLLECTIONS = (
    "contentFiles",
    "uploadQueue",
    "savedVideos",
    "categories",
    "comments",
    "subscriptions",
    "transactions",
    "notifications",
    "scheduledContent",
    "flaggedContent",
    "accessLogs",
    "bundles",
    "ageGroups",
)

COLLECTIONS = PRIMARY_COLLECTIONS + AUXILIARY_COLLECTIONS

# Collections whose entries must be JSON objects; anything else is quarantined.
RECORD_COLLECTIONS = PRIMARY_COLLECTIONS + ("contentFiles", "uploadQueue", "bundles")

DEFAULT_CATEGORIES = ["Audio Lessons", "PP1 Program", "PP2 Program"]

DEFAULT_SETTINGS: dict[str, Any] = {
    "siteName": "Zinga Linga",
    "defaultLanguage": "en",
    "timezone": "UTC",
    "features": {
        "userRegistration": True,
        "videoComments": True,
        "videoDownloads": True,
        "socialSharing": False,
    },
    "dataSource": "real",
    "apiEndpoint": "/api/data",
    "enableRealTimeSync": True,
}


def utc_now_iso(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    moment = now or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _default_for(name: str) -> list:
    return list(DEFAULT_CATEGORIES) if name == "categories" else []


def _seed_user(user_id: str, email: str, password: str, name: str, role: str, stamp: str) -> dict:
    return {
        "id": user_id,
        "email": email,
        "password": password,
        "name": name,
        "role": role,
        "purchasedModules": [],
        "totalSpent": 0,
        "createdAt": stamp,
        "lastLogin": stamp,
        "loginAttempts": 0,
        "lastLoginAttempt": None,
        "accountLocked": False,
    }


def default_document(
    admin_email: str = "admin@zingalinga.com",
    admin_password: str = "admin123",
    now: datetime | None = None,
) -> dict:
    """Seed document written on first run and by the reset operation."""
    stamp = utc_now_iso(now)
    doc: dict[str, Any] = {
        "users": [
            _seed_user("admin_001", admin_email, admin_password, "Admin User", "admin", stamp),
            _seed_user("user_001", "test@example.com", "test123", "Test User", "user", stamp),
        ],
        "modules": [
            {
                "id": "alphabet-basics",
                "title": "Alphabet Basics",
                "description": "Learn the fundamentals of the African alphabet with Kiki & Tano",
                "price": 9.99,
                "category": "alphabet",
                "difficulty": "beginner",
                "estimatedTime": "2-3 hours",
                "thumbnail": "/images/alphabet-basics.jpg",
                "isPopular": True,
                "isActive": True,
                "tags": ["alphabet", "basics", "beginner"],
            },
            {
                "id": "advanced-reading",
                "title": "Advanced Reading",
                "description": "Master advanced reading skills and comprehension",
                "price": 14.99,
                "category": "reading",
                "difficulty": "advanced",
                "estimatedTime": "4-5 hours",
                "thumbnail": "/images/advanced-reading.jpg",
                "isPopular": False,
                "isActive": True,
                "tags": ["reading", "advanced", "comprehension"],
            },
        ],
    }
    for name in COLLECTIONS:
        doc.setdefault(name, _default_for(name))
    doc["settings"] = copy.deepcopy(DEFAULT_SETTINGS)
    doc["lastUpdated"] = stamp
    doc["version"] = 0
    return doc


def count(doc: Mapping[str, Any] | None, name: str) -> int:
    """Length of a collection, 0 when absent or not a list."""
    if not doc:
        return 0
    value = doc.get(name)
    return len(value) if isinstance(value, list) else 0


def _non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def guard_violations(
    existing: Mapping[str, Any] | None,
    incoming: Mapping[str, Any],
    guarded: Iterable[str],
) -> list[str]:
    """Guarded collections that exist on disk but the incoming payload would wipe."""
    if not existing:
        return []
    return [
        name
        for name in guarded
        if count(existing, name) > 0 and not _non_empty_list(incoming.get(name))
    ]


def document_version(doc: Mapping[str, Any] | None) -> int:
    if not doc:
        return 0
    try:
        return int(doc.get("version") or 0)
    except (TypeError, ValueError):
        return 0


def merge_documents(
    existing: Mapping[str, Any] | None,
    incoming: Mapping[str, Any],
    now: datetime | None = None,
) -> dict:
    """
    Reconcile an incoming partial document with the current one.

    Each collection is decided independently: an empty incoming primary
    collection falls back to the existing one without affecting the others.
    """
    base = existing or {}
    stamp = utc_now_iso(now)
    merged: dict[str, Any] = {}

    for name in PRIMARY_COLLECTIONS:
        value = incoming.get(name)
        merged[name] = copy.deepcopy(value if _non_empty_list(value) else (base.get(name) or []))

    for name in AUXILIARY_COLLECTIONS:
        value = incoming.get(name)
        if isinstance(value, list):
            merged[name] = copy.deepcopy(value)
        elif isinstance(base.get(name), list):
            merged[name] = copy.deepcopy(base[name])
        else:
            merged[name] = _default_for(name)

    settings = dict(base.get("settings") or {})
    if isinstance(incoming.get("settings"), Mapping):
        settings.update(incoming["settings"])
    merged["settings"] = copy.deepcopy(settings)

    merged["lastSaved"] = stamp
    merged["lastUpdated"] = incoming.get("lastUpdated") or stamp
    merged["deploymentProtection"] = True
    merged["version"] = document_version(base) + 1
    return merged


def normalize_document(raw: Any) -> tuple[dict, int]:
    """
    Validate the shape of a parsed document.

    Returns the document and the number of quarantined entries (non-object
    records dropped from record collections). Raises ValueError when the
    document itself is unusable.
    """
    if not isinstance(raw, dict):
        raise ValueError("document root must be a JSON object")
    quarantined = 0
    for name in COLLECTIONS:
        if name not in raw or raw[name] is None:
            continue
        value = raw[name]
        if not isinstance(value, list):
            raise ValueError(f"collection '{name}' must be a list")
        if name in RECORD_COLLECTIONS:
            kept = [item for item in value if isinstance(item, dict)]
            quarantined += len(value) - len(kept)
            raw[name] = kept
    if "settings" in raw and not isinstance(raw["settings"], (dict, type(None))):
        raise ValueError("settings must be a JSON object")
    return raw, quarantined
