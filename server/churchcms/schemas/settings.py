import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, validator

from churchcms.schemas.common import strip_required

SEND_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _validate_send_time(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    cleaned = value.strip()
    if not SEND_TIME_PATTERN.fullmatch(cleaned):
        raise ValueError("birthday_send_time must use HH:MM (24-hour)")
    return cleaned


class SettingsFields(BaseModel):
    address: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    departments: Optional[List[str]] = None
    sms_enabled: Optional[bool] = None
    sms_provider: Optional[str] = Field(None, max_length=50)
    sms_api_key: Optional[str] = Field(None, max_length=255)
    sms_sender_id: Optional[str] = Field(None, max_length=11)
    enable_birthday_notifications: Optional[bool] = None
    enable_program_reminders: Optional[bool] = None
    enable_member_added_notifications: Optional[bool] = None
    enable_donation_notifications: Optional[bool] = None
    enable_user_added_notifications: Optional[bool] = None
    birthday_message_template: Optional[str] = None
    birthday_send_days_before: Optional[int] = Field(None, ge=0, le=30)
    birthday_send_time: Optional[str] = None
    program_notification_template: Optional[str] = None
    member_added_notification_template: Optional[str] = None
    donation_notification_template: Optional[str] = None
    user_added_notification_template: Optional[str] = None

    @validator("email", pre=True)
    def blank_email(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @validator("birthday_send_time")
    def check_send_time(cls, value):
        return _validate_send_time(value)

    @validator("departments")
    def clean_departments(cls, value):
        if value is None:
            return value
        cleaned = [item.strip() for item in value if item and item.strip()]
        return list(dict.fromkeys(cleaned))


class SettingsCreate(SettingsFields):
    church_name: str = Field(..., max_length=200)

    @validator("church_name", pre=True)
    def clean_church_name(cls, value):
        return strip_required(value, "church_name")


class SettingsUpdate(SettingsFields):
    church_name: Optional[str] = Field(None, max_length=200)

    @validator("church_name", pre=True)
    def clean_church_name(cls, value):
        if value is None:
            return value
        return strip_required(value, "church_name")


class SettingsOut(BaseModel):
    id: int
    church_name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    departments: List[str]
    sms_enabled: bool
    sms_provider: Optional[str] = None
    sms_api_key: Optional[str] = None
    sms_sender_id: Optional[str] = None
    enable_birthday_notifications: bool
    enable_program_reminders: bool
    enable_member_added_notifications: bool
    enable_donation_notifications: bool
    enable_user_added_notifications: bool
    birthday_message_template: Optional[str] = None
    birthday_send_days_before: int
    birthday_send_time: str
    program_notification_template: Optional[str] = None
    member_added_notification_template: Optional[str] = None
    donation_notification_template: Optional[str] = None
    user_added_notification_template: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TestEmailRequest(BaseModel):
    to: EmailStr
