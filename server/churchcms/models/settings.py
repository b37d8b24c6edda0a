from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text

from churchcms.core.db import Base


class ChurchSettings(Base):
    """Single-row configuration edited from the dashboard Settings page."""

    __tablename__ = "church_settings"

    id = Column(Integer, primary_key=True)
    church_name = Column(String(200), nullable=False)
    address = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    departments = Column(JSON, nullable=False, default=list)

    sms_enabled = Column(Boolean, nullable=False, default=False)
    sms_provider = Column(String(50), nullable=True, default="arkesel")
    sms_api_key = Column(String(255), nullable=True)
    sms_sender_id = Column(String(20), nullable=True)

    enable_birthday_notifications = Column(Boolean, nullable=False, default=True)
    enable_program_reminders = Column(Boolean, nullable=False, default=True)
    enable_member_added_notifications = Column(Boolean, nullable=False, default=True)
    enable_donation_notifications = Column(Boolean, nullable=False, default=True)
    enable_user_added_notifications = Column(Boolean, nullable=False, default=True)

    birthday_message_template = Column(Text, nullable=True)
    birthday_send_days_before = Column(Integer, nullable=False, default=0)
    birthday_send_time = Column(String(5), nullable=False, default="08:00")
    program_notification_template = Column(Text, nullable=True)
    member_added_notification_template = Column(Text, nullable=True)
    donation_notification_template = Column(Text, nullable=True)
    user_added_notification_template = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
