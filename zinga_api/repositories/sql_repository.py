"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import select, delete

from zinga_api.db.models import AuditLog, Module, Package, Purchase, User
from zinga_api.db.session import get_session


class SQLRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    # -------------------------- generic --------------------------
    def _add(self, entity):
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def _update(self, model, entity_id: str, values: dict[str, Any]):
        with get_session() as session:
            entity = session.get(model, entity_id)
            if not entity:
                return None
            for key, value in values.items():
                setattr(entity, key, value)
            session.commit()
            session.refresh(entity)
            return entity

    def _delete(self, model, entity_id: str) -> bool:
        with get_session() as session:
            result = session.execute(delete(model).where(model.id == entity_id))
            session.commit()
            return bool(result.rowcount)

    def _list(self, model, *order_by) -> list:
        with get_session() as session:
            stmt = select(model)
            if order_by:
                stmt = stmt.order_by(*order_by)
            return session.execute(stmt).scalars().all()

    # -------------------------- users --------------------------
    def list_users(self) -> list[User]:
        return self._list(User, User.created_at, User.id)

    def get_user(self, user_id: str) -> Optional[User]:
        with get_session() as session:
            return session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        email_norm = (email or "").strip().lower()
        if not email_norm:
            return None
        with get_session() as session:
            stmt = select(User).where(User.email == email_norm)
            return session.execute(stmt).scalar_one_or_none()

    def create_user(self, **values: Any) -> User:
        return self._add(User(**values))

    def update_user(self, user_id: str, **values: Any) -> Optional[User]:
        return self._update(User, user_id, values)

    def delete_user(self, user_id: str, admin_id: str | None = None) -> Optional[int]:
        """
        Delete a user and their purchases, recording an audit entry.

        Returns the number of purchases removed, or None if the user is unknown.
        """
        with get_session() as session:
            user = session.get(User, user_id)
            if not user:
                return None
            removed = session.execute(delete(Purchase).where(Purchase.user_id == user_id)).rowcount or 0
            session.add(
                AuditLog(
                    action="DELETE_USER",
                    entity_type="USER",
                    entity_id=user_id,
                    admin_id=admin_id,
                    details={"email": user.email, "purchasesDeleted": removed},
                )
            )
            session.delete(user)
            session.commit()
            return removed

    # -------------------------- modules --------------------------
    def list_modules(self) -> list[Module]:
        return self._list(Module, Module.created_at, Module.id)

    def get_module(self, module_id: str) -> Optional[Module]:
        with get_session() as session:
            return session.get(Module, module_id)

    def create_module(self, **values: Any) -> Module:
        return self._add(Module(**values))

    def update_module(self, module_id: str, **values: Any) -> Optional[Module]:
        return self._update(Module, module_id, values)

    def delete_module(self, module_id: str) -> bool:
        return self._delete(Module, module_id)

    # -------------------------- packages --------------------------
    def list_packages(self) -> list[Package]:
        return self._list(Package, Package.created_at, Package.id)

    def get_package(self, package_id: str) -> Optional[Package]:
        with get_session() as session:
            return session.get(Package, package_id)

    def create_package(self, **values: Any) -> Package:
        return self._add(Package(**values))

    def update_package(self, package_id: str, **values: Any) -> Optional[Package]:
        return self._update(Package, package_id, values)

    def delete_package(self, package_id: str) -> bool:
        return self._delete(Package, package_id)

    # -------------------------- purchases --------------------------
    def list_purchases(self, user_id: str | None = None) -> list[Purchase]:
        with get_session() as session:
            stmt = select(Purchase).order_by(Purchase.created_at.desc(), Purchase.id)
            if user_id:
                stmt = stmt.where(Purchase.user_id == user_id)
            return session.execute(stmt).scalars().all()

    def get_purchase(self, purchase_id: str) -> Optional[Purchase]:
        with get_session() as session:
            return session.get(Purchase, purchase_id)

    def create_purchase(self, **values: Any) -> Purchase:
        return self._add(Purchase(**values))

    # -------------------------- audit --------------------------
    def record_audit(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        *,
        admin_id: str | None = None,
        details: dict | None = None,
    ) -> AuditLog:
        return self._add(
            AuditLog(
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                admin_id=admin_id,
                details=details or {},
            )
        )

    def list_audit_logs(self, limit: int = 50) -> list[AuditLog]:
        with get_session() as session:
            stmt = select(AuditLog).order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit)
            return session.execute(stmt).scalars().all()

    # -------------------------- maintenance --------------------------
    def wipe_catalog(self) -> dict[str, int]:
        """Delete every purchase, module, package and user (in FK order)."""
        with get_session() as session:
            counts = {
                "purchases": session.execute(delete(Purchase)).rowcount or 0,
                "modules": session.execute(delete(Module)).rowcount or 0,
                "packages": session.execute(delete(Package)).rowcount or 0,
                "users": session.execute(delete(User)).rowcount or 0,
            }
            session.commit()
            return counts
