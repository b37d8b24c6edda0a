from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session, selectinload

from churchcms.auth.deps import require_module
from churchcms.core.db import get_db
from churchcms.models.attendance import Attendance, SundayAttendance
from churchcms.models.member import Member
from churchcms.models.program import Program
from churchcms.models.user import User
from churchcms.schemas.attendance import (
    AttendanceCreate,
    AttendanceOut,
    AttendanceUpdate,
    SundayAttendanceOut,
    SundayAttendanceUpdate,
    SundayAttendanceYear,
    SundayEditWindow,
)
from churchcms.schemas.common import Envelope, MessageResponse
from churchcms.services import sunday_attendance
from churchcms.services.audit import record_audit
from churchcms.services.user_accounts import now_utc

router = APIRouter(prefix="/attendance", tags=["attendance"])

EDIT_WINDOW_MESSAGE = "Sunday attendance is editable only for the previous Sunday and only until Wednesday 6:00 PM."


def _get_attendance_or_404(db: Session, attendance_id: int) -> Attendance:
    record = (
        db.query(Attendance)
        .options(selectinload(Attendance.member), selectinload(Attendance.program))
        .filter(Attendance.id == attendance_id)
        .first()
    )
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attendance record not found")
    return record


def _ensure_year(year: int) -> None:
    if not sunday_attendance.is_valid_year(year):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid year")


@router.post("", response_model=Envelope[AttendanceOut], status_code=status.HTTP_201_CREATED)
def mark_attendance(
    request: Request,
    payload: AttendanceCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_module("attendance")),
) -> Envelope[AttendanceOut]:
    program = db.get(Program, payload.program_id)
    if not program:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Program not found")
    member = db.get(Member, payload.member_id)
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")

    record = (
        db.query(Attendance)
        .filter(Attendance.program_id == program.id, Attendance.member_id == member.id)
        .first()
    )
    if record:
        record.status = payload.status
    else:
        record = Attendance(program_id=program.id, member_id=member.id, status=payload.status)
        db.add(record)
    db.flush()
    record_audit(
        db,
        actor=actor,
        action="attendance_recorded",
        resource_type="attendance",
        resource_id=record.id,
        details=f"Marked {member.full_name} {payload.status} for {program.title}",
        request=request,
    )
    db.commit()
    return Envelope(data=AttendanceOut.from_orm(_get_attendance_or_404(db, record.id)))


@router.get("", response_model=Envelope[list[AttendanceOut]])
def list_attendance(
    db: Session = Depends(get_db),
    _: User = Depends(require_module("attendance")),
) -> Envelope[list[AttendanceOut]]:
    records = (
        db.query(Attendance)
        .options(selectinload(Attendance.member), selectinload(Attendance.program))
        .order_by(Attendance.created_at.desc(), Attendance.id.desc())
        .all()
    )
    return Envelope(data=[AttendanceOut.from_orm(record) for record in records])


@router.get("/program/{program_id}", response_model=Envelope[list[AttendanceOut]])
def list_program_attendance(
    program_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_module("attendance")),
) -> Envelope[list[AttendanceOut]]:
    records = (
        db.query(Attendance)
        .options(selectinload(Attendance.member), selectinload(Attendance.program))
        .filter(Attendance.program_id == program_id)
        .order_by(Attendance.created_at.desc(), Attendance.id.desc())
        .all()
    )
    return Envelope(data=[AttendanceOut.from_orm(record) for record in records])


@router.get("/sunday/years", response_model=Envelope[list[int]])
def sunday_attendance_years(
    db: Session = Depends(get_db),
    _: User = Depends(require_module("attendance")),
) -> Envelope[list[int]]:
    years = {year for (year,) in db.query(SundayAttendance.year).distinct().all()}
    years.add(now_utc().year)
    return Envelope(data=sorted(years, reverse=True))


@router.get("/sunday/{year}", response_model=Envelope[SundayAttendanceYear])
def sunday_attendance_for_year(
    year: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_module("attendance")),
) -> Envelope[SundayAttendanceYear]:
    _ensure_year(year)
    now = now_utc()
    if year == now.year:
        sunday_attendance.backfill_year(db, year)

    records = (
        db.query(SundayAttendance)
        .options(selectinload(SundayAttendance.member))
        .filter(SundayAttendance.year == year)
        .order_by(SundayAttendance.sunday_date.asc(), SundayAttendance.member_id.asc())
        .all()
    )
    window = sunday_attendance.edit_window(now)
    return Envelope(
        data=SundayAttendanceYear(
            year=year,
            sunday_dates=[sunday.isoformat() for sunday in sunday_attendance.sundays_for_year(year)],
            records=[SundayAttendanceOut.from_orm(record) for record in records],
            edit_window=SundayEditWindow(
                previous_sunday_key=window.previous_sunday_key,
                submission_deadline_utc=window.submission_deadline_utc,
                can_edit_previous_sunday=window.can_edit_previous_sunday,
                server_now_utc=window.server_now_utc,
            ),
        )
    )


@router.put("/sunday/{year}", response_model=Envelope[SundayAttendanceOut])
def mark_sunday_attendance(
    year: int,
    request: Request,
    payload: SundayAttendanceUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_module("attendance")),
) -> Envelope[SundayAttendanceOut]:
    _ensure_year(year)
    try:
        sunday = sunday_attendance.parse_sunday_key(payload.sunday_key.strip())
    except sunday_attendance.SundayKeyError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if sunday.year != year:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="sundayKey does not belong to the selected year",
        )
    sunday_key = sunday.isoformat()
    if not sunday_attendance.can_edit_sunday(sunday_key, now_utc()):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=EDIT_WINDOW_MESSAGE)

    member = db.get(Member, payload.member_id)
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")

    record = (
        db.query(SundayAttendance)
        .filter(
            SundayAttendance.year == year,
            SundayAttendance.sunday_key == sunday_key,
            SundayAttendance.member_id == member.id,
        )
        .first()
    )
    if record:
        record.status = payload.status
    else:
        record = SundayAttendance(
            year=year,
            sunday_key=sunday_key,
            sunday_date=sunday,
            member_id=member.id,
            status=payload.status,
        )
        db.add(record)
    db.flush()
    record_audit(
        db,
        actor=actor,
        action="attendance_recorded",
        resource_type="sunday_attendance",
        resource_id=record.id,
        details=f"Marked {member.full_name} {payload.status} for Sunday {sunday_key}",
        request=request,
    )
    db.commit()
    db.refresh(record)
    return Envelope(data=SundayAttendanceOut.from_orm(record))


@router.put("/{attendance_id}", response_model=Envelope[AttendanceOut])
def update_attendance(
    attendance_id: int,
    request: Request,
    payload: AttendanceUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_module("attendance")),
) -> Envelope[AttendanceOut]:
    record = _get_attendance_or_404(db, attendance_id)
    record.status = payload.status
    record_audit(
        db,
        actor=actor,
        action="attendance_recorded",
        resource_type="attendance",
        resource_id=record.id,
        details=f"Changed attendance {record.id} to {payload.status}",
        request=request,
    )
    db.commit()
    db.refresh(record)
    return Envelope(data=AttendanceOut.from_orm(record))


@router.delete("/{attendance_id}", response_model=MessageResponse)
def delete_attendance(
    attendance_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_module("attendance")),
) -> MessageResponse:
    record = _get_attendance_or_404(db, attendance_id)
    db.delete(record)
    db.commit()
    return MessageResponse(message="Attendance record deleted")
