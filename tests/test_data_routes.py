"""
HTTP behaviour of /api/data, /api/backup and /api/payments/confirm against a
temporary data directory.
"""
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
from zinga_api.domain.backups import LIVE_FILE  # noqa: E402


@pytest.fixture()
def data_dir(tmp_path, monkeypatch):
    path = tmp_path / "data"
    monkeypatch.setenv("DATA_DIR", str(path))
    monkeypatch.setenv("BACKUP_RETENTION", "0")
    core_config.get_settings.cache_clear()
    yield path
    core_config.get_settings.cache_clear()


@pytest.fixture()
def client(data_dir):
    return TestClient(create_app())


def test_get_data_seeds_and_stamps_last_loaded(client, data_dir):
    resp = client.get("/api/data")

    assert resp.status_code == 200
    body = resp.json()
    assert body["lastLoaded"]
    assert len(body["modules"]) == 2
    assert (data_dir / LIVE_FILE).exists()
    assert "lastLoaded" not in (data_dir / LIVE_FILE).read_text(encoding="utf-8")


def test_post_data_merges_and_reports_module_count(client):
    client.get("/api/data")

    resp = client.post("/api/data", json={"modules": [{"id": "m1"}, {"id": "m2"}, {"id": "m3"}], "users": []})

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "moduleCount": 3, "version": 1}
    users = client.get("/api/data").json()["users"]
    assert [u["id"] for u in users] == ["admin_001", "user_001"]


def test_post_data_refuses_to_wipe_modules(client, data_dir):
    client.get("/api/data")
    before = (data_dir / LIVE_FILE).read_text(encoding="utf-8")

    resp = client.post("/api/data", json={"modules": []})

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert "Refusing to delete existing modules" in body["error"]
    assert (data_dir / LIVE_FILE).read_text(encoding="utf-8") == before


def test_post_data_rejects_non_object_body(client):
    resp = client.post("/api/data", json=["not", "an", "object"])

    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_post_data_stale_version_conflicts(client):
    client.get("/api/data")
    assert client.post("/api/data", json={"modules": [{"id": "m1"}], "baseVersion": 0}).status_code == 200

    resp = client.post("/api/data", json={"modules": [{"id": "m2"}], "baseVersion": 0})

    assert resp.status_code == 409


def test_get_data_reports_corrupt_file(client, data_dir):
    data_dir.mkdir(parents=True)
    (data_dir / LIVE_FILE).write_text("{broken", encoding="utf-8")

    resp = client.get("/api/data")

    assert resp.status_code == 500
    assert resp.json()["success"] is False


def test_delete_data_resets_to_defaults(client):
    client.get("/api/data")
    client.post("/api/data", json={"modules": [{"id": "only"}]})

    resp = client.delete("/api/data")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert [m["id"] for m in body["data"]["modules"]] == ["alphabet-basics", "advanced-reading"]


def test_backup_list_and_restore(client, data_dir):
    client.get("/api/data")
    client.post("/api/data", json={"modules": [{"id": "m1"}]})
    client.post("/api/data", json={"modules": [{"id": "m2"}]})

    backups = client.get("/api/backup").json()["backups"]
    assert len(backups) == 2
    assert backups[0]["timestamp"] > backups[1]["timestamp"]
    assert backups[0]["date"].endswith("Z")

    oldest = backups[-1]["filename"]
    resp = client.post("/api/backup", json={"filename": oldest})

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "Data restored successfully",
        "moduleCount": 2,
        "userCount": 2,
    }
    assert len(list(data_dir.glob("pre-restore-backup-*.json"))) == 1
    assert [m["id"] for m in client.get("/api/data").json()["modules"]] == ["alphabet-basics", "advanced-reading"]


def test_backup_list_without_data_dir_is_empty(client):
    assert client.get("/api/backup").json() == {"backups": []}


@pytest.mark.parametrize("filename", ["../../etc/passwd", "backup-1; rm -rf", "", None, "backup-permanent.json"])
def test_restore_rejects_unsafe_names(client, data_dir, filename):
    client.get("/api/data")
    before = (data_dir / LIVE_FILE).read_text(encoding="utf-8")

    resp = client.post("/api/backup", json={"filename": filename})

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert (data_dir / LIVE_FILE).read_text(encoding="utf-8") == before
    assert not list(data_dir.glob("pre-restore-backup-*.json"))


def test_restore_missing_backup_is_404(client):
    client.get("/api/data")

    resp = client.post("/api/backup", json={"filename": "backup-123.json"})

    assert resp.status_code == 404


def test_confirm_payment_route(client):
    client.get("/api/data")
    client.post(
        "/api/data",
        json={
            "modules": [{"id": "m1", "price": 9.99}],
            "users": [{"id": "u1", "purchasedModules": [], "totalSpent": 0}],
            "purchases": [{"id": "p1", "userId": "u1", "moduleId": "m1", "status": "pending", "amount": 9.99}],
        },
    )

    resp = client.post("/api/payments/confirm", json={"purchaseIds": ["p1"]})

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "processed": 1}
    doc = client.get("/api/data").json()
    assert doc["purchases"][0]["status"] == "completed"
    assert doc["users"][0]["purchasedModules"] == ["m1"]
    assert doc["users"][0]["totalSpent"] == 9.99


@pytest.mark.parametrize("body", [{}, {"purchaseIds": []}, {"purchaseIds": "p1"}])
def test_confirm_payment_requires_ids(client, body):
    resp = client.post("/api/payments/confirm", json=body)

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "purchaseIds required"}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert resp.headers["x-content-type-options"] == "nosniff"


def test_confirm_payment_with_malformed_module_ids(client):
    client.get("/api/data")
    client.post(
        "/api/data",
        json={
            "modules": [{"id": "m1"}],
            "users": [{"id": "u1", "purchasedModules": [], "totalSpent": 0}],
            "purchases": [{"id": "p1", "userId": "u1", "moduleId": "m1", "moduleIds": 5, "status": "pending"}],
        },
    )

    resp = client.post("/api/payments/confirm", json={"purchaseIds": ["p1"]})

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "processed": 1}
    assert client.get("/api/data").json()["users"][0]["purchasedModules"] == ["m1"]


def test_unexpected_errors_return_json_envelope(client, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(client.app.state.data_service, "load", boom)
    monkeypatch.setattr(client.app.state.payment_service, "confirm", boom)

    resp = client.get("/api/data")
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Failed to load data"}

    resp = client.post("/api/payments/confirm", json={"purchaseIds": ["p1"]})
    assert resp.status_code == 500
    assert resp.json()["success"] is False
