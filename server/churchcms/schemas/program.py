from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, validator

from churchcms.schemas.common import strip_optional, strip_required


class ProgramCreate(BaseModel):
    title: str = Field(..., max_length=200)
    description: Optional[str] = None
    date: datetime
    location: Optional[str] = Field(None, max_length=200)

    @validator("title", pre=True)
    def clean_title(cls, value):
        return strip_required(value, "title")

    @validator("description", "location", pre=True)
    def clean_text(cls, value):
        return strip_optional(value)


class ProgramUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=200)

    @validator("title", pre=True)
    def clean_title(cls, value):
        if value is None:
            return value
        return strip_required(value, "title")


class ProgramOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    date: datetime
    location: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
