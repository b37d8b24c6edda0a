from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, JSON, String
from sqlalchemy.orm import relationship

from churchcms.core.db import Base
from churchcms.permissions import USER_ROLES

UserRole = Enum(*USER_ROLES, name="user_role")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(UserRole, nullable=False, default="Staff")
    modules = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    audit_events = relationship("AuditLog", back_populates="actor")
    notification_receipts = relationship(
        "NotificationRecipient",
        back_populates="user",
        cascade="all, delete-orphan",
    )
