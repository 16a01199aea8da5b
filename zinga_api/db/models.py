"""SQLAlchemy models mirroring the AppData collections."""
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    JSON,
    func,
)
from sqlalchemy.orm import relationship

from .session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=False, default="")
    role = Column(String(32), nullable=False, default="USER")
    password_hash = Column(Text, nullable=False, default="")
    purchased_modules = Column(JSON, nullable=False, default=list)
    total_spent = Column(Float, nullable=False, default=0)
    status = Column(String(32), nullable=False, default="ACTIVE")
    login_attempts = Column(Integer, nullable=False, default=0)
    account_locked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    purchases = relationship("Purchase", back_populates="user", cascade="all,delete-orphan")


class Module(Base):
    __tablename__ = "modules"

    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(64), nullable=False, default="")
    video_url = Column(Text, nullable=False, default="")
    thumbnail_url = Column(Text, nullable=False, default="")
    duration = Column(Integer, nullable=False, default=0)
    tags = Column(JSON, nullable=False, default=list)
    price = Column(Float, nullable=False, default=0)
    status = Column(String(32), nullable=False, default="ACTIVE")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Package(Base):
    __tablename__ = "packages"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Float, nullable=False, default=0)
    type = Column(String(32), nullable=False, default="ONE_TIME")
    features = Column(JSON, nullable=False, default=list)
    content_ids = Column(JSON, nullable=False, default=list)
    cover_image = Column(Text, nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    is_popular = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    module_id = Column(String(64), nullable=True)
    package_id = Column(String(64), nullable=True)
    amount = Column(Float, nullable=False, default=0)
    status = Column(String(32), nullable=False, default="PENDING")
    payment_method = Column(String(32), nullable=False, default="CARD")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="purchases")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(64), nullable=False)
    entity_type = Column(String(32), nullable=False)
    entity_id = Column(String(64), nullable=False)
    admin_id = Column(String(64), nullable=True)
    details = Column(JSON, nullable=False, default=dict)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
