from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from churchcms.core.db import Base

SMS_TYPES = ("manual", "birthday", "welcome")
SMS_STATUSES = ("sent", "failed", "pending")

SmsType = Enum(*SMS_TYPES, name="sms_type")
SmsStatus = Enum(*SMS_STATUSES, name="sms_status")


class SmsLog(Base):
    __tablename__ = "sms_logs"

    id = Column(Integer, primary_key=True)
    recipient_member_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True, index=True)
    recipient_name = Column(String(200), nullable=False)
    recipient_phone = Column(String(30), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(SmsType, nullable=False, default="manual")
    status = Column(SmsStatus, nullable=False, default="pending")
    failure_reason = Column(String(500), nullable=True)
    sender_id = Column(String(20), nullable=True)
    sent_at = Column(DateTime, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    recipient_member = relationship("Member")
    created_by = relationship("User")
