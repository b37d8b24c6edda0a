from __future__ import annotations

import logging
from collections import Counter

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from churchcms.auth.deps import require_module
from churchcms.core.db import get_db
from churchcms.models.attendance import Attendance, SundayAttendance
from churchcms.models.finance import FinanceTransaction
from churchcms.models.member import Member, MembershipStatus
from churchcms.models.user import User
from churchcms.schemas.common import Envelope, MessageResponse
from churchcms.schemas.member import (
    BirthdayOut,
    MemberAttendanceEntry,
    MemberCreate,
    MemberFinanceEntry,
    MemberHistoryOut,
    MemberOut,
    MemberUpdate,
    SundayTally,
)
from churchcms.services import notifications
from churchcms.services.audit import record_audit
from churchcms.services.birthdays import next_birthday
from churchcms.services.user_accounts import utc_naive

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/members", tags=["members"])

DEFAULT_DEPARTMENT = "General"
REQUIRED_FIELDS = {"first_name", "last_name", "membership_status"}


def _get_member_or_404(db: Session, member_id: int) -> Member:
    member = db.get(Member, member_id)
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    return member


@router.get("", response_model=Envelope[list[MemberOut]])
def list_members(
    *,
    q: str | None = Query(default=None),
    department: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    _: User = Depends(require_module("members")),
) -> Envelope[list[MemberOut]]:
    query = db.query(Member)
    if q and q.strip():
        pattern = f"%{q.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(Member.first_name).like(pattern),
                func.lower(Member.last_name).like(pattern),
                func.lower(func.coalesce(Member.email, "")).like(pattern),
                func.coalesce(Member.phone, "").like(pattern),
            )
        )
    if department:
        query = query.filter(Member.department == department)
    if status_filter:
        if status_filter not in MembershipStatus.enums:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid membership status")
        query = query.filter(Member.membership_status == status_filter)
    members = query.order_by(Member.created_at.desc(), Member.id.desc()).all()
    return Envelope(data=[MemberOut.from_orm(member) for member in members])


@router.post("", response_model=Envelope[MemberOut], status_code=status.HTTP_201_CREATED)
def create_member(
    request: Request,
    payload: MemberCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    actor: User = Depends(require_module("members")),
) -> Envelope[MemberOut]:
    data = payload.model_dump()
    data["department"] = data.get("department") or DEFAULT_DEPARTMENT
    if data.get("join_date") is None:
        data.pop("join_date")
    member = Member(**data)
    db.add(member)
    db.flush()
    record_audit(
        db,
        actor=actor,
        action="member_created",
        resource_type="member",
        resource_id=member.id,
        details=f"Created member {member.full_name}",
        request=request,
    )
    db.commit()
    db.refresh(member)
    logger.info("member_created", extra={"member_id": member.id, "actor_id": actor.id})

    background_tasks.add_task(notifications.dispatch_member_welcome, member.id)
    return Envelope(data=MemberOut.from_orm(member))


@router.get("/birthdays", response_model=Envelope[list[BirthdayOut]])
def upcoming_birthdays(
    *,
    days: int = Query(default=7, ge=0, le=366),
    db: Session = Depends(get_db),
    _: User = Depends(require_module("members")),
) -> Envelope[list[BirthdayOut]]:
    today = utc_naive().date()
    items: list[BirthdayOut] = []
    for member in db.query(Member).filter(Member.date_of_birth.isnot(None)).all():
        upcoming = next_birthday(member.date_of_birth, today)
        days_until = (upcoming - today).days
        if days_until > days:
            continue
        items.append(
            BirthdayOut(
                member=MemberOut.from_orm(member),
                next_birthday=upcoming,
                days_until=days_until,
                turning_age=upcoming.year - member.date_of_birth.year,
            )
        )
    items.sort(key=lambda item: (item.days_until, item.member.last_name.lower()))
    return Envelope(data=items)


@router.get("/{member_id}", response_model=Envelope[MemberOut])
def get_member(
    member_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_module("members")),
) -> Envelope[MemberOut]:
    return Envelope(data=MemberOut.from_orm(_get_member_or_404(db, member_id)))


@router.get("/{member_id}/history", response_model=Envelope[MemberHistoryOut])
def member_history(
    member_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_module("members")),
) -> Envelope[MemberHistoryOut]:
    member = _get_member_or_404(db, member_id)

    attendance_rows = (
        db.query(Attendance)
        .options(selectinload(Attendance.program))
        .filter(Attendance.member_id == member.id)
        .all()
    )
    attendance = sorted(
        (
            MemberAttendanceEntry(
                id=row.id,
                program_id=row.program_id,
                program_title=row.program.title,
                program_date=row.program.date,
                status=row.status,
            )
            for row in attendance_rows
        ),
        key=lambda entry: entry.program_date,
        reverse=True,
    )

    tallies: dict[int, Counter] = {}
    sunday_rows = (
        db.query(SundayAttendance.year, SundayAttendance.status)
        .filter(SundayAttendance.member_id == member.id)
        .all()
    )
    for year, row_status in sunday_rows:
        tallies.setdefault(year, Counter())[row_status] += 1
    sunday = [
        SundayTally(year=year, present=counts["Present"], absent=counts["Absent"])
        for year, counts in sorted(tallies.items(), reverse=True)
    ]

    transactions = (
        db.query(FinanceTransaction)
        .filter(FinanceTransaction.member_id == member.id)
        .order_by(FinanceTransaction.date.desc())
        .all()
    )
    finance = [
        MemberFinanceEntry(
            id=entry.id,
            type=entry.type,
            amount=float(entry.amount),
            date=entry.date,
            receipt_number=entry.receipt_number,
            note=entry.note,
        )
        for entry in transactions
    ]
    total_given = sum(entry.amount for entry in finance if entry.type != "Expense")

    return Envelope(
        data=MemberHistoryOut(
            member=MemberOut.from_orm(member),
            attendance=attendance,
            sunday_attendance=sunday,
            finance=finance,
            total_given=round(total_given, 2),
        )
    )


@router.put("/{member_id}", response_model=Envelope[MemberOut])
def update_member(
    member_id: int,
    request: Request,
    payload: MemberUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_module("members")),
) -> Envelope[MemberOut]:
    member = _get_member_or_404(db, member_id)
    updates = payload.model_dump(exclude_unset=True)

    changed: list[str] = []
    for field, value in updates.items():
        if value is None and field in REQUIRED_FIELDS:
            continue
        if field == "department":
            value = value or DEFAULT_DEPARTMENT
        if getattr(member, field) != value:
            setattr(member, field, value)
            changed.append(field)

    record_audit(
        db,
        actor=actor,
        action="member_updated",
        resource_type="member",
        resource_id=member.id,
        details=f"Updated member {member.full_name}: {', '.join(changed) or 'no changes'}",
        request=request,
    )
    db.commit()
    db.refresh(member)
    return Envelope(data=MemberOut.from_orm(member))


@router.delete("/{member_id}", response_model=MessageResponse)
def delete_member(
    member_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_module("members")),
) -> MessageResponse:
    member = _get_member_or_404(db, member_id)
    name = member.full_name
    db.delete(member)
    record_audit(
        db,
        actor=actor,
        action="member_deleted",
        resource_type="member",
        resource_id=member_id,
        details=f"Deleted member {name}",
        request=request,
    )
    db.commit()
    logger.info("member_deleted", extra={"member_id": member_id, "actor_id": actor.id})
    return MessageResponse(message="Member deleted")
