"""Weekly Sunday service attendance: calendar helpers, edit window and backfill."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from churchcms.models.attendance import SundayAttendance
from churchcms.models.member import Member

logger = logging.getLogger(__name__)

SUBMISSION_DEADLINE_DAYS = 3
SUBMISSION_DEADLINE_TIME = time(18, 0)
MIN_YEAR = 1900
MAX_YEAR = 3000
BACKFILL_ATTEMPTS = 3


class SundayKeyError(ValueError):
    pass


@dataclass(frozen=True)
class EditWindow:
    previous_sunday_key: str
    submission_deadline_utc: datetime
    can_edit_previous_sunday: bool
    server_now_utc: datetime


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_valid_year(year: int) -> bool:
    return MIN_YEAR <= year <= MAX_YEAR


def parse_sunday_key(value: str) -> date:
    if not isinstance(value, str) or len(value) != 10:
        raise SundayKeyError("Invalid sundayKey format. Use YYYY-MM-DD")
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise SundayKeyError("Invalid sundayKey format. Use YYYY-MM-DD") from exc
    if parsed.weekday() != 6:
        raise SundayKeyError("sundayKey must be a Sunday")
    return parsed


def sundays_for_year(year: int) -> list[date]:
    current = date(year, 1, 1)
    current += timedelta(days=(6 - current.weekday()) % 7)
    sundays: list[date] = []
    while current.year == year:
        sundays.append(current)
        current += timedelta(days=7)
    return sundays


def previous_sunday(now: datetime) -> date:
    # A Sunday looks back a full week.
    today = _as_utc(now).date()
    return today - timedelta(days=today.weekday() + 1)


def submission_deadline(sunday: date) -> datetime:
    return datetime.combine(
        sunday + timedelta(days=SUBMISSION_DEADLINE_DAYS),
        SUBMISSION_DEADLINE_TIME,
        tzinfo=timezone.utc,
    )


def edit_window(now: datetime) -> EditWindow:
    now = _as_utc(now)
    sunday = previous_sunday(now)
    deadline = submission_deadline(sunday)
    return EditWindow(
        previous_sunday_key=sunday.isoformat(),
        submission_deadline_utc=deadline,
        can_edit_previous_sunday=now < deadline,
        server_now_utc=now,
    )


def can_edit_sunday(sunday_key: str, now: datetime) -> bool:
    if sunday_key > _as_utc(now).date().isoformat():
        return False
    window = edit_window(now)
    return window.can_edit_previous_sunday and sunday_key == window.previous_sunday_key


def _missing_rows(db: Session, year: int, member_ids: list[int]) -> list[SundayAttendance]:
    existing = {
        (sunday_key, member_id)
        for sunday_key, member_id in db.query(SundayAttendance.sunday_key, SundayAttendance.member_id)
        .filter(SundayAttendance.year == year)
        .all()
    }

    missing: list[SundayAttendance] = []
    for sunday in sundays_for_year(year):
        key = sunday.isoformat()
        for member_id in member_ids:
            if (key, member_id) in existing:
                continue
            missing.append(
                SundayAttendance(
                    year=year,
                    sunday_key=key,
                    sunday_date=sunday,
                    member_id=member_id,
                    status="Present",
                )
            )
    return missing


def backfill_year(db: Session, year: int) -> int:
    """Create a Present row for every member and Sunday of ``year`` that lacks one.

    When a concurrent request inserts some of the same rows first, the batch is
    rolled back and the rows that are still missing are retried.
    """

    member_ids = [member_id for (member_id,) in db.query(Member.id).all()]
    if not member_ids:
        return 0

    for attempt in range(1, BACKFILL_ATTEMPTS + 1):
        missing = _missing_rows(db, year, member_ids)
        if not missing:
            return 0
        db.add_all(missing)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info("sunday_attendance_backfill_conflict", extra={"year": year, "attempt": attempt})
            continue
        logger.info("sunday_attendance_backfilled", extra={"year": year, "rows": len(missing)})
        return len(missing)

    logger.warning("sunday_attendance_backfill_incomplete", extra={"year": year})
    return 0
