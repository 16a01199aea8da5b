from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from zinga_api.app import create_app  # noqa: E402
from zinga_api.core import config as core_config  # noqa: E402
from zinga_api.core.security import verify_password  # noqa: E402
from zinga_api.db import models  # noqa: E402
from zinga_api.db import session as db_session  # noqa: E402
from zinga_api.repositories.sql_repository import SQLRepository  # noqa: E402
from zinga_api.services.catalog_service import CatalogError, CatalogService  # noqa: E402


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Temporary SQLite database plus data dir; resets settings/engine caches."""
    db_file = tmp_path / "catalog.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]

    engine = db_session.get_engine()
    models.Base.metadata.create_all(bind=engine)

    yield

    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    core_config.get_settings.cache_clear()


def test_create_user_coerces_fields_and_hashes_password(db_env):
    svc = CatalogService()

    created = svc.create_user({"email": " Kiki@Example.com ", "name": "Kiki", "role": "admin", "password": "s3cret"})

    assert created["id"].startswith("user_")
    assert created["email"] == "kiki@example.com"
    assert created["totalSpent"] == 0
    assert created["purchasedModules"] == []
    stored = SQLRepository().get_user(created["id"])
    assert stored.role == "ADMIN"
    assert stored.status == "ACTIVE"
    assert verify_password("s3cret", stored.password_hash)
    assert "s3cret" not in stored.password_hash


def test_duplicate_email_is_conflict(db_env):
    svc = CatalogService()
    svc.create_user({"email": "tano@example.com"})

    with pytest.raises(CatalogError) as excinfo:
        svc.create_user({"email": "TANO@example.com"})
    assert excinfo.value.status_code == 409


def test_package_type_is_uppercased_and_validated(db_env):
    svc = CatalogService()

    pkg = svc.create_package({"id": "pk1", "name": "Explorer", "type": "one-time", "price": "12.5"})

    assert pkg["type"] == "one-time"
    assert pkg["price"] == 12.5
    assert SQLRepository().get_package("pk1").type == "ONE_TIME"
    with pytest.raises(CatalogError) as excinfo:
        svc.create_package({"name": "Odd", "type": "lifetime"})
    assert excinfo.value.status_code == 400


def test_module_defaults_missing_numbers_to_zero(db_env):
    svc = CatalogService()

    module = svc.create_module({"id": "m1", "title": "Counting", "tags": "numbers, early"})

    assert module["price"] == 0
    assert module["duration"] == 0
    assert module["tags"] == ["numbers", "early"]
    updated = svc.update_module("m1", {"price": 4.5})
    assert updated["price"] == 4.5
    assert updated["title"] == "Counting"


def test_update_missing_entities_is_not_found(db_env):
    svc = CatalogService()
    for call in (
        lambda: svc.update_user("nope", {"name": "x"}),
        lambda: svc.update_module("nope", {"title": "x"}),
        lambda: svc.delete_package("nope"),
    ):
        with pytest.raises(CatalogError) as excinfo:
            call()
        assert excinfo.value.status_code == 404


def test_catalog_routes_round_trip(db_env):
    client = TestClient(create_app())

    resp = client.post("/api/users", json={"email": "parent@example.com", "name": "Parent"})
    assert resp.status_code == 200
    user_id = resp.json()["id"]

    resp = client.post("/api/purchases", json={"userId": user_id, "moduleId": "m1", "amount": 9.99, "status": "pending"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "pending"

    resp = client.delete(f"/api/users/{user_id}", headers={"x-admin-id": "admin_001"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "purchasesDeleted": 1}

    audit = client.get("/api/audit").json()
    assert audit["count"] == 1
    assert audit["logs"][0]["action"] == "DELETE_USER"
    assert audit["logs"][0]["adminId"] == "admin_001"

    assert client.delete(f"/api/users/{user_id}").status_code == 404
    assert client.post("/api/users", json=["bad"]).status_code == 400
