from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from zinga_api.domain.backups import PERMANENT_BACKUP  # noqa: E402
from zinga_api.repositories.json_storage import JsonDataStore, StoreConflictError  # noqa: E402
from zinga_api.services.payment_service import InvalidPaymentRequestError, PaymentService  # noqa: E402


@pytest.fixture()
def store(tmp_path):
    store = JsonDataStore(tmp_path / "data")
    store.save(
        {
            "modules": [{"id": "m1"}, {"id": "m2"}, {"id": "m3"}],
            "users": [{"id": "u1", "purchasedModules": [], "totalSpent": 0}],
            "packages": [{"id": "pk1", "contentIds": ["m2", "m3"]}],
            "purchases": [
                {"id": "p1", "userId": "u1", "moduleId": "m1", "status": "pending", "amount": 9.99},
                {"id": "p2", "userId": "u1", "type": "package", "packageId": "pk1", "status": "pending", "amount": 20},
                {"id": "p3", "userId": "ghost", "moduleId": "m1", "status": "pending", "amount": 5},
            ],
        }
    )
    return store


def _by_id(items, item_id):
    return next(item for item in items if item["id"] == item_id)


def test_confirm_marks_purchase_completed_and_credits_user(store):
    result = PaymentService(store).confirm(["p1"])

    assert result == {"success": True, "processed": 1}
    doc = store.load()
    purchase = _by_id(doc["purchases"], "p1")
    assert purchase["status"] == "completed"
    assert purchase["confirmedAt"]
    user = _by_id(doc["users"], "u1")
    assert user["purchasedModules"] == ["m1"]
    assert user["totalSpent"] == 9.99


def test_confirm_is_idempotent(store):
    service = PaymentService(store)
    service.confirm(["p1"])

    result = service.confirm(["p1", "unknown"])

    assert result == {"success": True, "processed": 0}
    user = _by_id(store.load()["users"], "u1")
    assert user["purchasedModules"] == ["m1"]
    assert user["totalSpent"] == 9.99


def test_confirm_package_grants_package_contents(store):
    PaymentService(store).confirm(["p2"])

    user = _by_id(store.load()["users"], "u1")
    assert user["purchasedModules"] == ["pk1", "m2", "m3"]
    assert user["totalSpent"] == 20


def test_confirm_with_unknown_user_still_completes_purchase(store):
    result = PaymentService(store).confirm(["p3"])

    assert result["processed"] == 1
    assert _by_id(store.load()["purchases"], "p3")["status"] == "completed"


def test_confirm_writes_payment_backup_only_when_changed(store):
    service = PaymentService(store)
    service.confirm(["missing"])
    assert not list(store.data_dir.glob("backup-payconfirm-*.json"))

    service.confirm(["p1"])
    assert len(list(store.data_dir.glob("backup-payconfirm-*.json"))) == 1
    assert store.list_backups() == []


@pytest.mark.parametrize("purchase_ids", [None, [], "p1", [""], [1]])
def test_confirm_validates_purchase_ids(store, purchase_ids):
    with pytest.raises(InvalidPaymentRequestError) as excinfo:
        PaymentService(store).confirm(purchase_ids)
    assert excinfo.value.status_code == 400


def test_confirm_bumps_version_so_stale_saves_conflict(store):
    base = store.load()["version"]

    PaymentService(store).confirm(["p1"])

    assert store.load()["version"] == base + 1
    with pytest.raises(StoreConflictError) as excinfo:
        store.save({"purchases": [{"id": "p1", "status": "pending"}], "baseVersion": base})
    assert excinfo.value.status_code == 409
    assert _by_id(store.load()["purchases"], "p1")["status"] == "completed"


def test_confirm_refreshes_permanent_backup(store):
    PaymentService(store).confirm(["p1"])

    permanent = json.loads((store.data_dir / PERMANENT_BACKUP).read_text(encoding="utf-8"))
    assert _by_id(permanent["purchases"], "p1")["status"] == "completed"
    assert permanent["version"] == store.load()["version"]


@pytest.mark.parametrize("module_ids, expected", [(5, ["m1"]), ("m2", ["m1"]), (["m2", "m3"], ["m1", "m2", "m3"])])
def test_confirm_ignores_malformed_module_ids(tmp_path, module_ids, expected):
    store = JsonDataStore(tmp_path / "data")
    store.save(
        {
            "modules": [{"id": "m1"}, {"id": "m2"}, {"id": "m3"}],
            "users": [{"id": "u1", "purchasedModules": [], "totalSpent": 0}],
            "purchases": [
                {"id": "p9", "userId": "u1", "moduleId": "m1", "moduleIds": module_ids, "status": "pending", "amount": 1}
            ],
        }
    )

    result = PaymentService(store).confirm(["p9"])

    assert result == {"success": True, "processed": 1}
    assert _by_id(store.load()["users"], "u1")["purchasedModules"] == expected
