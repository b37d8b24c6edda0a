from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from churchcms.core.db import Base

AUDIT_ACTIONS = (
    "member_created",
    "member_updated",
    "member_deleted",
    "program_created",
    "program_updated",
    "program_deleted",
    "attendance_recorded",
    "sms_sent",
    "donation_recorded",
    "transaction_updated",
    "transaction_deleted",
    "user_created",
    "user_updated",
    "user_deleted",
    "settings_updated",
    "login",
    "logout",
)
AuditAction = Enum(*AUDIT_ACTIONS, name="audit_action")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    actor_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    actor_name = Column(String(150), nullable=True)
    actor_role = Column(String(32), nullable=True)
    action = Column(AuditAction, nullable=False, index=True)
    resource_type = Column(String(50), nullable=False, index=True)
    resource_id = Column(String(64), nullable=True)
    details = Column(Text, nullable=False, default="")
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    actor = relationship("User", back_populates="audit_events")
