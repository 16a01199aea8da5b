"""
Relational catalog use cases (users, modules, packages, purchases, audit).

Payloads arrive in the camelCase shape the admin dashboard uses; this module
coerces them into column values (uppercased enum-like strings, numeric
defaults of 0) and serializes entities back.
"""

from __future__ import annotations

import secrets
import time
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

from zinga_api.core.security import hash_password, is_hashed
from zinga_api.db.models import AuditLog, Module, Package, Purchase, User
from zinga_api.repositories.sql_repository import SQLRepository


class CatalogError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# -------------------------- coercion helpers --------------------------
def _upper(value: Any, default: str) -> str:
    text = str(value).strip() if value not in (None, "") else ""
    return (text or default).upper().replace("-", "_")


def _number(value: Any, default: float = 0) -> float:
    try:
        return float(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        return default


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value)) if value not in (None, "") else default
    except (TypeError, ValueError):
        return default


def _text(value: Any, default: str = "") -> str:
    return str(value).strip() if value is not None else default


def _list(value: Any) -> list:
    if isinstance(value, list):
        return value
    if isinstance(value, str) and value.strip():
        return [item.strip() for item in value.split(",") if item.strip()]
    return []


def _flag(value: Any, default: bool) -> bool:
    return default if value is None else bool(value)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _new_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


# -------------------------- serializers --------------------------
def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": (user.role or "").lower(),
        "purchasedModules": list(user.purchased_modules or []),
        "totalSpent": float(user.total_spent or 0),
        "status": (user.status or "").lower(),
        "loginAttempts": int(user.login_attempts or 0),
        "accountLocked": bool(user.account_locked),
        "createdAt": _iso(user.created_at),
        "lastLogin": _iso(user.last_login),
    }


def module_to_dict(module: Module) -> dict:
    return {
        "id": module.id,
        "title": module.title,
        "description": module.description,
        "category": module.category,
        "videoUrl": module.video_url,
        "thumbnail": module.thumbnail_url,
        "duration": int(module.duration or 0),
        "tags": list(module.tags or []),
        "price": float(module.price or 0),
        "status": (module.status or "").lower(),
        "isActive": bool(module.is_active),
        "createdAt": _iso(module.created_at),
    }


def package_to_dict(package: Package) -> dict:
    return {
        "id": package.id,
        "name": package.name,
        "description": package.description,
        "price": float(package.price or 0),
        "type": (package.type or "").lower().replace("_", "-"),
        "features": list(package.features or []),
        "contentIds": list(package.content_ids or []),
        "coverImage": package.cover_image,
        "isActive": bool(package.is_active),
        "isPopular": bool(package.is_popular),
        "createdAt": _iso(package.created_at),
    }


def purchase_to_dict(purchase: Purchase) -> dict:
    return {
        "id": purchase.id,
        "userId": purchase.user_id,
        "moduleId": purchase.module_id,
        "packageId": purchase.package_id,
        "amount": float(purchase.amount or 0),
        "status": (purchase.status or "").lower(),
        "paymentMethod": (purchase.payment_method or "").lower(),
        "createdAt": _iso(purchase.created_at),
        "confirmedAt": _iso(purchase.confirmed_at),
    }


def audit_to_dict(entry: AuditLog) -> dict:
    return {
        "id": entry.id,
        "action": entry.action,
        "entityId": entry.entity_id,
        "entityType": entry.entity_type,
        "timestamp": _iso(entry.timestamp),
        "adminId": entry.admin_id,
        "details": entry.details or {},
    }


class CatalogService:
    """Field mapping between dashboard payloads and the SQL repository."""

    def __init__(self, repository: SQLRepository | None = None) -> None:
        self.repository = repository or SQLRepository()

    # -------------------------- users --------------------------
    def _user_values(self, payload: dict, *, partial: bool) -> dict:
        values: dict[str, Any] = {}
        if not partial or "email" in payload:
            email = _text(payload.get("email")).lower()
            if not email or "@" not in email:
                raise CatalogError("A valid email is required")
            values["email"] = email
        if not partial or "name" in payload:
            values["name"] = _text(payload.get("name"))
        if not partial or "role" in payload:
            values["role"] = _upper(payload.get("role"), "user")
        if not partial or "status" in payload:
            values["status"] = _upper(payload.get("status"), "active")
        if not partial or "totalSpent" in payload:
            values["total_spent"] = _number(payload.get("totalSpent"))
        if not partial or "purchasedModules" in payload:
            values["purchased_modules"] = _list(payload.get("purchasedModules"))
        password = payload.get("password")
        if password:
            values["password_hash"] = password if is_hashed(password) else hash_password(str(password))
        elif not partial:
            values["password_hash"] = ""
        return values

    def list_users(self) -> list[dict]:
        return [user_to_dict(user) for user in self.repository.list_users()]

    def create_user(self, payload: dict) -> dict:
        values = self._user_values(payload, partial=False)
        if self.repository.get_user_by_email(values["email"]):
            raise CatalogError("Email already registered", 409)
        user_id = _text(payload.get("id")) or _new_id("user")
        try:
            user = self.repository.create_user(id=user_id, **values)
        except IntegrityError as exc:
            raise CatalogError("User already exists", 409) from exc
        return user_to_dict(user)

    def update_user(self, user_id: str, payload: dict) -> dict:
        values = self._user_values(payload, partial=True)
        email = values.get("email")
        if email:
            other = self.repository.get_user_by_email(email)
            if other and other.id != user_id:
                raise CatalogError("Email already registered", 409)
        user = self.repository.update_user(user_id, **values)
        if not user:
            raise CatalogError("User not found", 404)
        return user_to_dict(user)

    def delete_user(self, user_id: str, admin_id: str | None = None) -> dict:
        removed = self.repository.delete_user(user_id, admin_id=admin_id)
        if removed is None:
            raise CatalogError("User not found", 404)
        return {"success": True, "purchasesDeleted": removed}

    # -------------------------- modules --------------------------
    def _module_values(self, payload: dict, *, partial: bool) -> dict:
        fields = {
            "title": lambda p: _text(p.get("title")),
            "description": lambda p: _text(p.get("description")),
            "category": lambda p: _text(p.get("category")),
            "videoUrl": lambda p: _text(p.get("videoUrl")),
            "thumbnail": lambda p: _text(p.get("thumbnail") or p.get("thumbnailUrl")),
            "duration": lambda p: _int(p.get("duration")),
            "tags": lambda p: _list(p.get("tags")),
            "price": lambda p: _number(p.get("price")),
            "status": lambda p: _upper(p.get("status"), "active"),
            "isActive": lambda p: _flag(p.get("isActive"), True),
        }
        columns = {
            "videoUrl": "video_url",
            "thumbnail": "thumbnail_url",
            "isActive": "is_active",
        }
        values = {}
        for key, coerce in fields.items():
            present = key in payload or (key == "thumbnail" and "thumbnailUrl" in payload)
            if not partial or present:
                values[columns.get(key, key)] = coerce(payload)
        if not partial and not values["title"]:
            raise CatalogError("Module title is required")
        return values

    def list_modules(self) -> list[dict]:
        return [module_to_dict(module) for module in self.repository.list_modules()]

    def create_module(self, payload: dict) -> dict:
        values = self._module_values(payload, partial=False)
        module_id = _text(payload.get("id")) or _new_id("module")
        if self.repository.get_module(module_id):
            raise CatalogError("Module already exists", 409)
        return module_to_dict(self.repository.create_module(id=module_id, **values))

    def update_module(self, module_id: str, payload: dict) -> dict:
        module = self.repository.update_module(module_id, **self._module_values(payload, partial=True))
        if not module:
            raise CatalogError("Module not found", 404)
        return module_to_dict(module)

    def delete_module(self, module_id: str) -> dict:
        if not self.repository.delete_module(module_id):
            raise CatalogError("Module not found", 404)
        return {"success": True}

    # -------------------------- packages --------------------------
    def _package_values(self, payload: dict, *, partial: bool) -> dict:
        fields = {
            "name": ("name", lambda p: _text(p.get("name"))),
            "description": ("description", lambda p: _text(p.get("description"))),
            "price": ("price", lambda p: _number(p.get("price"))),
            "type": ("type", lambda p: _upper(p.get("type"), "one-time")),
            "features": ("features", lambda p: _list(p.get("features"))),
            "contentIds": ("content_ids", lambda p: _list(p.get("contentIds"))),
            "coverImage": ("cover_image", lambda p: _text(p.get("coverImage"))),
            "isActive": ("is_active", lambda p: _flag(p.get("isActive"), True)),
            "isPopular": ("is_popular", lambda p: _flag(p.get("isPopular"), False)),
        }
        values = {}
        for key, (column, coerce) in fields.items():
            if not partial or key in payload:
                values[column] = coerce(payload)
        if values.get("type") and values["type"] not in ("SUBSCRIPTION", "ONE_TIME", "PHYSICAL"):
            raise CatalogError("Package type must be subscription, one-time or physical")
        if not partial and not values["name"]:
            raise CatalogError("Package name is required")
        return values

    def list_packages(self) -> list[dict]:
        return [package_to_dict(package) for package in self.repository.list_packages()]

    def create_package(self, payload: dict) -> dict:
        values = self._package_values(payload, partial=False)
        package_id = _text(payload.get("id")) or _new_id("package")
        if self.repository.get_package(package_id):
            raise CatalogError("Package already exists", 409)
        return package_to_dict(self.repository.create_package(id=package_id, **values))

    def update_package(self, package_id: str, payload: dict) -> dict:
        package = self.repository.update_package(package_id, **self._package_values(payload, partial=True))
        if not package:
            raise CatalogError("Package not found", 404)
        return package_to_dict(package)

    def delete_package(self, package_id: str) -> dict:
        if not self.repository.delete_package(package_id):
            raise CatalogError("Package not found", 404)
        return {"success": True, "message": "Package deleted successfully"}

    # -------------------------- purchases --------------------------
    def list_purchases(self, user_id: str | None = None) -> list[dict]:
        return [purchase_to_dict(p) for p in self.repository.list_purchases(user_id)]

    def create_purchase(self, payload: dict) -> dict:
        user_id = _text(payload.get("userId"))
        if not user_id or not self.repository.get_user(user_id):
            raise CatalogError("Purchase must reference an existing user")
        purchase_id = _text(payload.get("id")) or _new_id("purchase")
        if self.repository.get_purchase(purchase_id):
            raise CatalogError("Purchase already exists", 409)
        purchase = self.repository.create_purchase(
            id=purchase_id,
            user_id=user_id,
            module_id=_text(payload.get("moduleId")) or None,
            package_id=_text(payload.get("packageId")) or None,
            amount=_number(payload.get("amount")),
            status=_upper(payload.get("status"), "completed"),
            payment_method=_upper(payload.get("paymentMethod"), "card"),
        )
        return purchase_to_dict(purchase)

    # -------------------------- audit / maintenance --------------------------
    def audit_logs(self, limit: int = 50) -> dict:
        logs = [audit_to_dict(entry) for entry in self.repository.list_audit_logs(limit)]
        return {"count": len(logs), "logs": logs}

    def wipe(self, admin_id: str | None = None) -> dict:
        deleted = self.repository.wipe_catalog()
        self.repository.record_audit("WIPE_CATALOG", "DATABASE", "all", admin_id=admin_id, details=deleted)
        return {"success": True, "message": "Database wiped successfully", "deleted": deleted}
