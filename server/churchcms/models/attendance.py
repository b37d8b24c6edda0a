from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from churchcms.core.db import Base

ATTENDANCE_STATUSES = ("Present", "Absent")
AttendanceStatus = Enum(*ATTENDANCE_STATUSES, name="attendance_status")


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (UniqueConstraint("program_id", "member_id", name="uq_attendance_program_member"),)

    id = Column(Integer, primary_key=True)
    program_id = Column(Integer, ForeignKey("programs.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(AttendanceStatus, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    program = relationship("Program", back_populates="attendance_records")
    member = relationship("Member", back_populates="attendance_records")


class SundayAttendance(Base):
    __tablename__ = "sunday_attendance"
    __table_args__ = (
        UniqueConstraint("year", "sunday_key", "member_id", name="uq_sunday_attendance_year_key_member"),
        Index("ix_sunday_attendance_member_year", "member_id", "year"),
    )

    id = Column(Integer, primary_key=True)
    year = Column(Integer, nullable=False, index=True)
    sunday_key = Column(String(10), nullable=False)
    sunday_date = Column(Date, nullable=False)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    status = Column(AttendanceStatus, nullable=False, default="Present")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    member = relationship("Member", back_populates="sunday_attendance")
