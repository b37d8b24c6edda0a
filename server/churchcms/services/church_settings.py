from __future__ import annotations

import re
from dataclasses import dataclass

from sqlalchemy.orm import Session

from churchcms.core.config import settings as app_settings
from churchcms.models.settings import ChurchSettings
from churchcms.services import templates

_SEND_TIME = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def get_church_settings(db: Session) -> ChurchSettings | None:
    return db.query(ChurchSettings).order_by(ChurchSettings.id.asc()).first()


def parse_send_time(value: str | None) -> tuple[int, int]:
    match = _SEND_TIME.match((value or "").strip())
    if not match:
        return 8, 0
    return int(match.group(1)), int(match.group(2))


@dataclass(frozen=True)
class SmsConfig:
    api_key: str
    sender: str


@dataclass(frozen=True)
class NotificationConfig:
    church_name: str
    birthday: bool
    birthday_template: str
    birthday_days_before: int
    birthday_send_time: str
    program: bool
    member_added: bool
    donation: bool
    user_added: bool
    program_template: str
    member_added_template: str
    donation_template: str
    user_added_template: str
    sms: SmsConfig | None


def sms_config(row: ChurchSettings | None, fallback_sender: str | None = None) -> SmsConfig | None:
    """Return Arkesel credentials when SMS is switched on and fully configured."""

    if row is None or not row.sms_enabled:
        return None
    if (row.sms_provider or "").strip().lower() != "arkesel":
        return None
    api_key = (row.sms_api_key or "").strip()
    if not api_key:
        return None
    sender = row.sms_sender_id or fallback_sender or app_settings.SMS_DEFAULT_SENDER
    return SmsConfig(api_key=api_key, sender=sender)


def _flag(value: bool | None) -> bool:
    return True if value is None else bool(value)


def load_notification_config(db: Session) -> NotificationConfig:
    row = get_church_settings(db)
    if row is None:
        return NotificationConfig(
            church_name=templates.DEFAULT_CHURCH_NAME,
            birthday=True,
            birthday_template=templates.DEFAULT_BIRTHDAY_TEMPLATE,
            birthday_days_before=0,
            birthday_send_time="08:00",
            program=True,
            member_added=True,
            donation=True,
            user_added=True,
            program_template=templates.DEFAULT_PROGRAM_TEMPLATE,
            member_added_template=templates.DEFAULT_MEMBER_ADDED_TEMPLATE,
            donation_template=templates.DEFAULT_DONATION_TEMPLATE,
            user_added_template=templates.DEFAULT_USER_ADDED_TEMPLATE,
            sms=None,
        )

    return NotificationConfig(
        church_name=row.church_name or templates.DEFAULT_CHURCH_NAME,
        birthday=_flag(row.enable_birthday_notifications),
        birthday_template=row.birthday_message_template or templates.DEFAULT_BIRTHDAY_TEMPLATE,
        birthday_days_before=max(0, int(row.birthday_send_days_before or 0)),
        birthday_send_time=row.birthday_send_time or "08:00",
        program=_flag(row.enable_program_reminders),
        member_added=_flag(row.enable_member_added_notifications),
        donation=_flag(row.enable_donation_notifications),
        user_added=_flag(row.enable_user_added_notifications),
        program_template=row.program_notification_template or templates.DEFAULT_PROGRAM_TEMPLATE,
        member_added_template=row.member_added_notification_template or templates.DEFAULT_MEMBER_ADDED_TEMPLATE,
        donation_template=row.donation_notification_template or templates.DEFAULT_DONATION_TEMPLATE,
        user_added_template=row.user_added_notification_template or templates.DEFAULT_USER_ADDED_TEMPLATE,
        sms=sms_config(row),
    )
