from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, validator

from churchcms.schemas.common import strip_optional
from churchcms.schemas.member import MemberSummary

PaymentMethodValue = Literal["cash", "mobile_money", "bank_transfer", "check"]

# Numeric(12, 2)
MAX_AMOUNT = 9_999_999_999.99


class FinanceCreate(BaseModel):
    type: str
    amount: float = Field(..., ge=0, le=MAX_AMOUNT, allow_inf_nan=False)
    member_id: Optional[int] = None
    note: Optional[str] = Field(None, max_length=500)
    date: Optional[datetime] = None
    payment_method: PaymentMethodValue = "cash"

    @validator("note", pre=True)
    def clean_note(cls, value):
        return strip_optional(value)

    @validator("member_id", pre=True)
    def blank_member(cls, value):
        if value == "":
            return None
        return value


class FinanceUpdate(BaseModel):
    type: Optional[str] = None
    amount: Optional[float] = Field(None, ge=0, le=MAX_AMOUNT, allow_inf_nan=False)
    member_id: Optional[int] = None
    note: Optional[str] = Field(None, max_length=500)
    date: Optional[datetime] = None
    payment_method: Optional[PaymentMethodValue] = None


class FinanceOut(BaseModel):
    id: int
    type: str
    amount: float
    member_id: Optional[int] = None
    member: Optional[MemberSummary] = None
    note: Optional[str] = None
    date: datetime
    payment_method: str
    receipt_number: Optional[str] = None
    recorded_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FinanceSummary(BaseModel):
    total_income: float
    total_expense: float
    balance: float
    by_type: Dict[str, float]
    transaction_count: int
