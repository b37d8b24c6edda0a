from datetime import date, datetime
from typing import List, Literal

from pydantic import BaseModel

from churchcms.schemas.member import MemberSummary
from churchcms.schemas.program import ProgramOut

AttendanceStatusValue = Literal["Present", "Absent"]


class AttendanceCreate(BaseModel):
    program_id: int
    member_id: int
    status: AttendanceStatusValue


class AttendanceUpdate(BaseModel):
    status: AttendanceStatusValue


class AttendanceOut(BaseModel):
    id: int
    program_id: int
    member_id: int
    status: str
    member: MemberSummary
    program: ProgramOut
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SundayAttendanceUpdate(BaseModel):
    member_id: int
    sunday_key: str
    status: AttendanceStatusValue


class SundayAttendanceOut(BaseModel):
    id: int
    year: int
    sunday_key: str
    sunday_date: date
    member_id: int
    status: str
    member: MemberSummary

    class Config:
        from_attributes = True


class SundayEditWindow(BaseModel):
    previous_sunday_key: str
    submission_deadline_utc: datetime
    can_edit_previous_sunday: bool
    server_now_utc: datetime


class SundayAttendanceYear(BaseModel):
    year: int
    sunday_dates: List[str]
    records: List[SundayAttendanceOut]
    edit_window: SundayEditWindow
