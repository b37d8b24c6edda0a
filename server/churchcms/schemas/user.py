from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, validator

from churchcms.schemas.common import strip_required


class UserOut(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: str
    modules: List[str]
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    name: str = Field(..., max_length=150)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: Optional[str] = None
    modules: Optional[List[str]] = None
    is_active: bool = True

    @validator("name", pre=True)
    def clean_name(cls, value):
        return strip_required(value, "name")

    @validator("email", pre=True)
    def clean_email(cls, value):
        return strip_required(value, "email").lower()

    @validator("password", pre=True)
    def clean_password(cls, value):
        return strip_required(value, "password")


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=150)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)
    role: Optional[str] = None
    modules: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @validator("name", pre=True)
    def clean_name(cls, value):
        if value is None:
            return value
        return strip_required(value, "name")

    @validator("email", pre=True)
    def clean_email(cls, value):
        if value is None:
            return value
        return strip_required(value, "email").lower()
