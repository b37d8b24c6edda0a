from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, validator

from churchcms.schemas.common import strip_optional, strip_required

Gender = Literal["male", "female"]
MaritalStatus = Literal["single", "married", "widowed", "divorced"]
MembershipStatusValue = Literal["active", "inactive"]


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class MemberBase(BaseModel):
    gender: Optional[Gender] = None
    marital_status: Optional[MaritalStatus] = None
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=255)
    date_of_birth: Optional[date] = None
    join_date: Optional[date] = None

    @validator("gender", "marital_status", "date_of_birth", "join_date", pre=True)
    def blank_values(cls, value):
        return _blank_to_none(value)

    @validator("email", pre=True)
    def clean_email(cls, value):
        value = _blank_to_none(value)
        if value is None:
            return None
        return str(value).strip().lower()

    @validator("phone", "address", pre=True)
    def clean_text(cls, value):
        return strip_optional(value)


class MemberCreate(MemberBase):
    first_name: str = Field(..., max_length=100)
    last_name: str = Field(..., max_length=100)
    membership_status: MembershipStatusValue = "active"
    department: Optional[str] = Field(None, max_length=120)

    @validator("first_name", pre=True)
    def clean_first_name(cls, value):
        return strip_required(value, "first_name")

    @validator("last_name", pre=True)
    def clean_last_name(cls, value):
        return strip_required(value, "last_name")

    @validator("department", pre=True)
    def clean_department(cls, value):
        return strip_optional(value)


class MemberUpdate(MemberBase):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    membership_status: Optional[MembershipStatusValue] = None
    department: Optional[str] = Field(None, max_length=120)

    @validator("first_name", pre=True)
    def clean_first_name(cls, value):
        if value is None:
            return value
        return strip_required(value, "first_name")

    @validator("last_name", pre=True)
    def clean_last_name(cls, value):
        if value is None:
            return value
        return strip_required(value, "last_name")

    @validator("department", pre=True)
    def clean_department(cls, value):
        return strip_optional(value)


class MemberOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    full_name: str
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    membership_status: str
    department: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None
    join_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MemberSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    email: Optional[str] = None

    class Config:
        from_attributes = True


class BirthdayOut(BaseModel):
    member: MemberOut
    next_birthday: date
    days_until: int
    turning_age: int


class MemberAttendanceEntry(BaseModel):
    id: int
    program_id: int
    program_title: str
    program_date: datetime
    status: str


class SundayTally(BaseModel):
    year: int
    present: int
    absent: int


class MemberFinanceEntry(BaseModel):
    id: int
    type: str
    amount: float
    date: datetime
    receipt_number: Optional[str] = None
    note: Optional[str] = None


class MemberHistoryOut(BaseModel):
    member: MemberOut
    attendance: List[MemberAttendanceEntry]
    sunday_attendance: List[SundayTally]
    finance: List[MemberFinanceEntry]
    total_given: float
