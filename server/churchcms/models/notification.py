from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from churchcms.core.db import Base

NOTIFICATION_TYPES = (
    "birthday",
    "program_reminder",
    "member_added",
    "program_added",
    "finance_entry",
    "system",
)
NotificationType = Enum(*NOTIFICATION_TYPES, name="in_app_notification_type")


class InAppNotification(Base):
    __tablename__ = "in_app_notifications"

    id = Column(Integer, primary_key=True)
    type = Column(NotificationType, nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String(255), nullable=True)
    dedupe_key = Column(String(200), nullable=True, unique=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    recipients = relationship(
        "NotificationRecipient",
        back_populates="notification",
        cascade="all, delete-orphan",
    )


class NotificationRecipient(Base):
    __tablename__ = "in_app_notification_recipients"
    __table_args__ = (UniqueConstraint("notification_id", "user_id", name="uq_notification_recipient"),)

    id = Column(Integer, primary_key=True)
    notification_id = Column(
        Integer,
        ForeignKey("in_app_notifications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    read_at = Column(DateTime, nullable=True)

    notification = relationship("InAppNotification", back_populates="recipients")
    user = relationship("User", back_populates="notification_receipts")


class BirthdayEmailLog(Base):
    """One row per member per day the birthday greetings went out."""

    __tablename__ = "birthday_email_logs"
    __table_args__ = (UniqueConstraint("member_id", "date_key", name="uq_birthday_email_log_member_day"),)

    id = Column(Integer, primary_key=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    date_key = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
