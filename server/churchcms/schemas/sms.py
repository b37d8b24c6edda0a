from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, validator

from churchcms.schemas.common import strip_optional, strip_required
from churchcms.services.arkesel import normalize_phone


class SmsRecipient(BaseModel):
    member_id: Optional[int] = None
    name: Optional[str] = Field(None, max_length=200)
    phone: str = Field("", max_length=30)

    @validator("name", pre=True)
    def clean_name(cls, value):
        return strip_optional(value)

    @validator("phone", pre=True)
    def normalize(cls, value):
        return normalize_phone(None if value is None else str(value))


class SmsSendRequest(BaseModel):
    message: str
    sender: Optional[str] = Field(None, max_length=11)
    recipients: List[SmsRecipient] = []

    @validator("message", pre=True)
    def clean_message(cls, value):
        return strip_required(value, "message")

    @validator("sender", pre=True)
    def clean_sender(cls, value):
        return strip_optional(value)


class SmsLogOut(BaseModel):
    id: int
    recipient_member_id: Optional[int] = None
    recipient_name: str
    recipient_phone: str
    message: str
    type: str
    status: str
    failure_reason: Optional[str] = None
    sender_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_by_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SmsSendResult(BaseModel):
    provider: str
    sender: str
    message: str
    recipients: int
    logs: List[SmsLogOut]
    upstream: Any = None
