from __future__ import annotations

from datetime import date, datetime, time
from typing import Dict

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from churchcms.models.attendance import Attendance
from churchcms.models.finance import FINANCE_TYPES, FinanceTransaction
from churchcms.models.member import Member
from churchcms.models.program import Program
from churchcms.models.sms_log import SmsLog
from churchcms.schemas.dashboard import DashboardStats
from churchcms.schemas.finance import FinanceSummary
from churchcms.services.birthdays import days_until_birthday
from churchcms.services.user_accounts import utc_naive


def range_bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    start_dt = datetime.combine(start, time.min) if start else None
    end_dt = datetime.combine(end, time.max) if end else None
    return start_dt, end_dt


def filter_transactions(
    query: Query,
    *,
    type: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> Query:
    start_dt, end_dt = range_bounds(start_date, end_date)
    if type:
        query = query.filter(FinanceTransaction.type == type)
    if start_dt:
        query = query.filter(FinanceTransaction.date >= start_dt)
    if end_dt:
        query = query.filter(FinanceTransaction.date <= end_dt)
    return query


def finance_summary(db: Session, *, start_date: date | None = None, end_date: date | None = None) -> FinanceSummary:
    query = db.query(FinanceTransaction.type, func.coalesce(func.sum(FinanceTransaction.amount), 0), func.count())
    query = filter_transactions(query, start_date=start_date, end_date=end_date)
    rows = query.group_by(FinanceTransaction.type).all()

    by_type: Dict[str, float] = {entry_type: 0.0 for entry_type in FINANCE_TYPES}
    count = 0
    for entry_type, total, entries in rows:
        by_type[entry_type] = float(total or 0)
        count += entries

    total_expense = by_type.get("Expense", 0.0)
    total_income = sum(value for key, value in by_type.items() if key != "Expense")
    return FinanceSummary(
        total_income=round(total_income, 2),
        total_expense=round(total_expense, 2),
        balance=round(total_income - total_expense, 2),
        by_type=by_type,
        transaction_count=count,
    )


def dashboard_stats(db: Session, now: datetime | None = None) -> DashboardStats:
    now = utc_naive(now)
    today = now.date()

    status_counts = dict(
        db.query(Member.membership_status, func.count(Member.id)).group_by(Member.membership_status).all()
    )
    active = status_counts.get("active", 0)
    inactive = status_counts.get("inactive", 0)

    upcoming = db.query(func.count(Program.id)).filter(Program.date >= now).scalar() or 0

    birthdays_today = 0
    birthdays_week = 0
    for (date_of_birth,) in db.query(Member.date_of_birth).filter(Member.date_of_birth.isnot(None)).all():
        days = days_until_birthday(date_of_birth, today)
        if days == 0:
            birthdays_today += 1
        if days <= 7:
            birthdays_week += 1

    summary = finance_summary(db)

    sms_counts = dict(db.query(SmsLog.status, func.count(SmsLog.id)).group_by(SmsLog.status).all())

    recorded = db.query(func.count(Attendance.id)).scalar() or 0
    present = db.query(func.count(Attendance.id)).filter(Attendance.status == "Present").scalar() or 0
    rate = round(present * 100.0 / recorded, 1) if recorded else 0.0

    return DashboardStats(
        total_members=active + inactive,
        active_members=active,
        inactive_members=inactive,
        upcoming_programs=upcoming,
        birthdays_today=birthdays_today,
        birthdays_this_week=birthdays_week,
        total_income=summary.total_income,
        total_expense=summary.total_expense,
        balance=summary.balance,
        sms_sent=sms_counts.get("sent", 0),
        sms_failed=sms_counts.get("failed", 0),
        attendance_rate=rate,
    )
