from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Column, Date, DateTime, Enum, Integer, String
from sqlalchemy.orm import relationship

from churchcms.core.db import Base

MemberGender = Enum("male", "female", name="member_gender")
MemberMaritalStatus = Enum("single", "married", "widowed", "divorced", name="member_marital_status")
MembershipStatus = Enum("active", "inactive", name="membership_status")


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    gender = Column(MemberGender, nullable=True)
    marital_status = Column(MemberMaritalStatus, nullable=True)
    membership_status = Column(MembershipStatus, nullable=False, default="active")
    department = Column(String(120), nullable=False, default="General")
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    address = Column(String(255), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    join_date = Column(Date, nullable=True, default=date.today)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    attendance_records = relationship(
        "Attendance",
        back_populates="member",
        cascade="all, delete-orphan",
    )
    sunday_attendance = relationship(
        "SundayAttendance",
        back_populates="member",
        cascade="all, delete-orphan",
    )
    transactions = relationship("FinanceTransaction", back_populates="member")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
