"""
Payment confirmation over the JSON document.

Confirming a purchase marks it completed and grants the buyer access to what
was bought: the module itself, the package/bundle id for package purchases and
every content id listed on the referenced package or bundle.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from zinga_api.domain.app_data import utc_now_iso
from zinga_api.domain.backups import payment_backup_name
from zinga_api.repositories.json_storage import JsonDataStore, StoreError

logger = logging.getLogger(__name__)


class InvalidPaymentRequestError(StoreError):
    status_code = 400


def _find(items: Iterable[dict], item_id: Any) -> dict | None:
    if not item_id:
        return None
    for item in items:
        if item.get("id") == item_id:
            return item
    return None


def _grant(owned: list, value: Any) -> None:
    if value and value not in owned:
        owned.append(value)


def _amount(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class PaymentService:
    def __init__(self, store: JsonDataStore) -> None:
        self.store = store

    def _granted_ids(self, doc: dict, purchase: dict) -> list:
        granted: list = []
        kind = (purchase.get("type") or "").lower()
        if kind in ("package", "bundle"):
            _grant(granted, purchase.get("packageId") or purchase.get("moduleId"))
        for key, collection in (("packageId", "packages"), ("bundleId", "bundles")):
            container = _find(doc.get(collection) or [], purchase.get(key))
            if container and isinstance(container.get("contentIds"), list):
                for content_id in container["contentIds"]:
                    _grant(granted, content_id)
        _grant(granted, purchase.get("moduleId"))
        module_ids = purchase.get("moduleIds")
        if isinstance(module_ids, list):
            for module_id in module_ids:
                _grant(granted, module_id)
        return granted

    def _apply(self, doc: dict, purchase_ids: list[str]) -> tuple[bool, int]:
        purchases = doc.setdefault("purchases", [])
        users = doc.setdefault("users", [])
        processed = 0
        for purchase_id in purchase_ids:
            purchase = _find(purchases, purchase_id)
            if purchase is None or purchase.get("status") == "completed":
                continue
            purchase["status"] = "completed"
            purchase["confirmedAt"] = utc_now_iso()

            user = _find(users, purchase.get("userId"))
            if user is not None:
                owned = user.get("purchasedModules")
                if not isinstance(owned, list):
                    owned = user["purchasedModules"] = []
                for granted in self._granted_ids(doc, purchase):
                    _grant(owned, granted)
                total = _amount(user.get("totalSpent")) + _amount(purchase.get("amount"))
                user["totalSpent"] = round(total, 2)
            else:
                logger.warning("Purchase %s references unknown user %s", purchase_id, purchase.get("userId"))
            processed += 1
        return processed > 0, processed

    def confirm(self, purchase_ids: Any) -> dict:
        if (
            not isinstance(purchase_ids, list)
            or not purchase_ids
            or not all(isinstance(pid, str) and pid for pid in purchase_ids)
        ):
            raise InvalidPaymentRequestError("purchaseIds required")
        processed = self.store.update(
            lambda doc: self._apply(doc, purchase_ids),
            backup_name_factory=payment_backup_name,
        )
        if processed:
            logger.info("Confirmed %d purchase(s)", processed)
        return {"success": True, "processed": processed}
