from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, validator

from churchcms.schemas.common import strip_required
from churchcms.schemas.user import UserOut


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @validator("email", pre=True)
    def clean_email(cls, value):
        return strip_required(value, "email").lower()


class RegisterRequest(BaseModel):
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


class AuthPayload(BaseModel):
    user: UserOut
    token: str
