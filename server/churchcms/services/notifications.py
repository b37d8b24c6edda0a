"""Best-effort email, SMS and in-app notifications.

Every outbound send goes through ``_safe_send`` so a failing provider is logged
and never breaks the request or job that triggered it.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import Callable, Iterable, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from churchcms.core.db import SessionLocal
from churchcms.models.finance import FinanceTransaction
from churchcms.models.member import Member
from churchcms.models.notification import BirthdayEmailLog, InAppNotification, NotificationRecipient
from churchcms.models.program import Program
from churchcms.models.sms_log import SmsLog
from churchcms.models.user import User
from churchcms.services import arkesel, email_sender
from churchcms.services.birthdays import birthday_matches
from churchcms.services.church_settings import NotificationConfig, load_notification_config, parse_send_time
from churchcms.services.templates import apply_template, format_amount, format_program_date
from churchcms.services.user_accounts import utc_naive

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _safe_send(label: str, task: Callable[[], T]) -> T | None:
    try:
        return task()
    except Exception:
        logger.exception("notification_send_failed", extra={"label": label})
        return None


def _send_email(*, to: str | list[str], subject: str, text: str) -> None:
    sender = email_sender.get_email_sender()
    sender.send(subject=subject, text_body=text, to=to)


def _active_user_emails(db: Session) -> list[str]:
    rows = db.query(User.email).filter(User.is_active.is_(True)).all()
    return [email.strip() for (email,) in rows if email and email.strip()]


def _member_emails(db: Session) -> list[str]:
    rows = db.query(Member.email).filter(Member.email.isnot(None), Member.email != "").all()
    return list(dict.fromkeys(email.strip() for (email,) in rows if email and email.strip()))


def create_in_app_notification_for_users(
    db: Session,
    *,
    type: str,
    title: str,
    message: str,
    action_url: str | None = None,
    dedupe_key: str | None = None,
) -> InAppNotification | None:
    """Fan a notification out to every user active right now.

    Returns ``None`` when there is nobody to notify or ``dedupe_key`` was already used.
    """

    user_ids = [user_id for (user_id,) in db.query(User.id).filter(User.is_active.is_(True)).all()]
    if not user_ids:
        return None
    if dedupe_key:
        existing = db.query(InAppNotification.id).filter(InAppNotification.dedupe_key == dedupe_key).first()
        if existing:
            return None

    notification = InAppNotification(
        type=type,
        title=title,
        message=message,
        action_url=action_url,
        dedupe_key=dedupe_key,
    )
    notification.recipients = [NotificationRecipient(user_id=user_id) for user_id in user_ids]
    db.add(notification)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return None
    return notification


def _send_sms_and_log(
    db: Session,
    config: NotificationConfig,
    *,
    member: Member,
    message: str,
    sms_type: str,
) -> None:
    phone = arkesel.normalize_phone(member.phone)
    if config.sms is None or not phone:
        return
    log = SmsLog(
        recipient_member_id=member.id,
        recipient_name=member.full_name,
        recipient_phone=phone,
        message=message,
        type=sms_type,
        sender_id=config.sms.sender,
        status="pending",
    )
    try:
        arkesel.send_sms(api_key=config.sms.api_key, sender=config.sms.sender, message=message, recipients=[phone])
        log.status = "sent"
        log.sent_at = utc_naive()
    except arkesel.ArkeselError as exc:
        log.status = "failed"
        log.failure_reason = exc.message[:500]
    db.add(log)
    db.commit()


def send_member_welcome(db: Session, member: Member) -> None:
    config = load_notification_config(db)
    if not config.member_added:
        logger.info("member_welcome_skipped_disabled", extra={"member_id": member.id})
        return

    name = member.full_name
    _safe_send(
        "member in-app",
        lambda: create_in_app_notification_for_users(
            db,
            type="member_added",
            title="New Member Added",
            message=f"{name} has been added to members.",
            action_url="/members",
        ),
    )

    message = apply_template(
        config.member_added_template,
        {"member_name": name, "church_name": config.church_name},
    )
    recipient = (member.email or "").strip()
    if recipient:
        _safe_send(
            "member welcome",
            lambda: _send_email(to=recipient, subject="Welcome to ChurchCMS", text=message),
        )
    _safe_send(
        "member welcome sms",
        lambda: _send_sms_and_log(db, config, member=member, message=message, sms_type="welcome"),
    )


def send_program_created_notification(db: Session, program: Program) -> None:
    config = load_notification_config(db)
    if not config.program:
        return

    _safe_send(
        "program in-app",
        lambda: create_in_app_notification_for_users(
            db,
            type="program_added",
            title="New Program Created",
            message=f"{program.title} has been added to programs.",
            action_url="/programs",
        ),
    )

    recipients = _member_emails(db)
    if not recipients:
        return
    message = apply_template(
        config.program_template,
        {
            "program_title": program.title,
            "program_date": format_program_date(program.date),
            "program_location": program.location or "-",
            "program_description": program.description or "-",
            "church_name": config.church_name,
        },
    )
    _safe_send(
        "program created",
        lambda: _send_email(to=recipients, subject=f"New Church Program: {program.title}", text=message),
    )


def send_finance_entry_notification(db: Session, transaction: FinanceTransaction) -> None:
    config = load_notification_config(db)
    if not config.donation:
        return

    recipients: list[str] = []
    member_name = ""
    if transaction.is_income and transaction.member_id:
        member = db.get(Member, transaction.member_id)
        if member and (member.email or "").strip():
            recipients = [member.email.strip()]
            member_name = member.full_name
    if not recipients:
        recipients = _active_user_emails(db)
    if not recipients:
        return

    entry_kind = "Income" if transaction.is_income else "Expenditure"
    message = apply_template(
        config.donation_template,
        {
            "entry_type": transaction.type,
            "amount": format_amount(float(transaction.amount)),
            "note": transaction.note or "-",
            "member_name": member_name or "Member",
            "church_name": config.church_name,
        },
    )
    _safe_send(
        "finance entry",
        lambda: _send_email(to=recipients, subject=f"New Finance Entry: {entry_kind}", text=message),
    )


def send_user_created_credentials_email(db: Session, user: User, plain_password: str) -> None:
    if not user.email:
        return
    config = load_notification_config(db)
    if not config.user_added:
        return
    message = apply_template(
        config.user_added_template,
        {
            "user_name": user.name,
            "user_email": user.email,
            "password": plain_password,
            "role": user.role,
            "church_name": config.church_name,
        },
    )
    _safe_send(
        "user created credentials",
        lambda: _send_email(to=user.email, subject="Your ChurchCMS Account Credentials", text=message),
    )


def _birthday_members(db: Session, target: datetime) -> Iterable[Member]:
    candidates = (
        db.query(Member)
        .filter(Member.date_of_birth.isnot(None), Member.email.isnot(None), Member.email != "")
        .all()
    )
    return [member for member in candidates if birthday_matches(member.date_of_birth, target.date())]


def run_daily_birthday_notifications(db: Session, now: datetime | None = None) -> int:
    """Greet members whose birthday falls on the configured day.

    Only acts during the configured ``HH:MM`` minute (UTC). Returns the number
    of members greeted in this run.
    """

    config = load_notification_config(db)
    if not config.birthday:
        return 0

    now = utc_naive(now)
    hour, minute = parse_send_time(config.birthday_send_time)
    if now.hour != hour or now.minute != minute:
        return 0

    today = now.date()
    target = now + timedelta(days=config.birthday_days_before)
    members = _birthday_members(db, target)
    if not members:
        return 0

    all_member_emails = _member_emails(db)
    greeted = 0
    for member in members:
        already_sent = (
            db.query(BirthdayEmailLog.id)
            .filter(BirthdayEmailLog.member_id == member.id, BirthdayEmailLog.date_key == today)
            .first()
        )
        if already_sent:
            continue

        full_name = member.full_name
        celebrant_email = member.email.strip()
        _safe_send(
            "birthday in-app",
            lambda: create_in_app_notification_for_users(
                db,
                type="birthday",
                title="Birthday Notification",
                message=f"Today is {full_name}'s birthday.",
                action_url=f"/members/{member.id}",
                dedupe_key=f"birthday:{member.id}:{today.isoformat()}",
            ),
        )

        others = [email for email in all_member_emails if email.lower() != celebrant_email.lower()]
        if others:
            _safe_send(
                "birthday broadcast",
                lambda: _send_email(
                    to=others,
                    subject=f"Wish {full_name} a Happy Birthday",
                    text=f"Today is {full_name}'s birthday. Please send them your best wishes and prayers.",
                ),
            )

        greeting = apply_template(config.birthday_template, {"name": full_name, "church_name": config.church_name})
        _safe_send(
            "birthday celebrant",
            lambda: _send_email(to=celebrant_email, subject=f"Happy Birthday, {full_name}!", text=greeting),
        )
        _safe_send(
            "birthday sms",
            lambda: _send_sms_and_log(db, config, member=member, message=greeting, sms_type="birthday"),
        )

        db.add(BirthdayEmailLog(member_id=member.id, date_key=today))
        db.commit()
        greeted += 1

    logger.info("birthday_notifications_sent", extra={"date": today.isoformat(), "members": greeted})
    return greeted


def run_due_program_reminders(db: Session, now: datetime | None = None) -> int:
    config = load_notification_config(db)
    if not config.program:
        return 0

    now = utc_naive(now)
    day_start = datetime.combine(now.date(), time.min)
    day_end = datetime.combine(now.date(), time.max)
    date_key = now.date().isoformat()

    due = (
        db.query(Program)
        .filter(Program.date >= day_start, Program.date <= day_end)
        .order_by(Program.date.asc())
        .all()
    )
    created = 0
    for program in due:
        notification = _safe_send(
            "program reminder in-app",
            lambda: create_in_app_notification_for_users(
                db,
                type="program_reminder",
                title="Program Reminder",
                message=f"{program.title} is due today.",
                action_url="/programs",
                dedupe_key=f"program-reminder:{program.id}:{date_key}",
            ),
        )
        if notification is not None:
            created += 1
    return created


def unread_count(db: Session, user_id: int) -> int:
    return (
        db.query(func.count(NotificationRecipient.id))
        .filter(NotificationRecipient.user_id == user_id, NotificationRecipient.read_at.is_(None))
        .scalar()
        or 0
    )


# Background task entry points. Each opens its own session because the
# request session is closed by the time they run.


def dispatch_member_welcome(member_id: int) -> None:
    with SessionLocal() as session:
        member = session.get(Member, member_id)
        if member is not None:
            send_member_welcome(session, member)


def dispatch_program_created(program_id: int) -> None:
    with SessionLocal() as session:
        program = session.get(Program, program_id)
        if program is not None:
            send_program_created_notification(session, program)


def dispatch_finance_entry(transaction_id: int) -> None:
    with SessionLocal() as session:
        transaction = session.get(FinanceTransaction, transaction_id)
        if transaction is not None:
            send_finance_entry_notification(session, transaction)


def dispatch_user_credentials(user_id: int, plain_password: str) -> None:
    with SessionLocal() as session:
        user = session.get(User, user_id)
        if user is not None:
            send_user_created_credentials_email(session, user, plain_password)


def run_birthday_job() -> None:
    with SessionLocal() as session:
        run_daily_birthday_notifications(session)


def run_program_reminder_job() -> None:
    with SessionLocal() as session:
        created = run_due_program_reminders(session)
        if created:
            logger.info("program_reminders_created", extra={"count": created})
