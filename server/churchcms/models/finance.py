from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from churchcms.core.db import Base

FINANCE_TYPES = ("Tithe", "Offering", "Donation", "Expense")
PAYMENT_METHODS = ("cash", "mobile_money", "bank_transfer", "check")

FinanceType = Enum(*FINANCE_TYPES, name="finance_type")
PaymentMethod = Enum(*PAYMENT_METHODS, name="finance_payment_method")


class FinanceTransaction(Base):
    __tablename__ = "finance_transactions"

    id = Column(Integer, primary_key=True)
    type = Column(FinanceType, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True, index=True)
    note = Column(String(500), nullable=True)
    date = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    payment_method = Column(PaymentMethod, nullable=False, default="cash")
    receipt_number = Column(String(40), nullable=True, unique=True)
    recorded_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    member = relationship("Member", back_populates="transactions")
    recorded_by = relationship("User")

    @property
    def is_income(self) -> bool:
        return self.type != "Expense"
