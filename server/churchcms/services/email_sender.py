from __future__ import annotations

import logging
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import formataddr, format_datetime, make_msgid
from typing import Iterable, Sequence

from churchcms.core.config import settings
from churchcms.services.templates import render_email_html

logger = logging.getLogger(__name__)


def _clean_recipients(recipients: Iterable[str]) -> list[str]:
    cleaned: list[str] = []
    for address in recipients:
        if not address:
            continue
        normalized = address.strip()
        if not normalized or "@" not in normalized:
            continue
        cleaned.append(normalized)
    return list(dict.fromkeys(cleaned))


class EmailSender:
    def __init__(self) -> None:
        self.from_address = settings.EMAIL_FROM_ADDRESS or settings.EMAIL_SMTP_USERNAME
        self.from_name = settings.EMAIL_FROM_NAME

    def is_enabled(self) -> bool:
        return settings.EMAIL_ENABLED

    def is_configured(self) -> bool:
        return bool(
            self.from_address
            and settings.EMAIL_SMTP_HOST
            and settings.EMAIL_SMTP_USERNAME
            and settings.EMAIL_SMTP_PASSWORD
        )

    def send(
        self,
        *,
        subject: str,
        text_body: str,
        to: str | Sequence[str],
        html_body: str | None = None,
    ) -> bool:
        recipients = _clean_recipients([to] if isinstance(to, str) else to)

        if not self.is_enabled():
            logger.info("email_send_skipped_disabled", extra={"subject": subject})
            return False
        if not recipients:
            logger.warning("email_send_skipped_no_recipients", extra={"subject": subject})
            return False
        if not self.is_configured():
            logger.warning("email_send_skipped_unconfigured", extra={"subject": subject, "to": recipients})
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.from_name, self.from_address))
        message["To"] = ", ".join(recipients)
        message["Date"] = format_datetime(datetime.now(timezone.utc))
        if "@" in self.from_address:
            message["Message-ID"] = make_msgid(domain=self.from_address.split("@", 1)[1])

        message.set_content(text_body or " ")
        message.add_alternative(html_body or render_email_html(headline=subject, text_body=text_body), subtype="html")

        try:
            if settings.EMAIL_SMTP_USE_SSL:
                with smtplib.SMTP_SSL(
                    settings.EMAIL_SMTP_HOST,
                    settings.EMAIL_SMTP_PORT,
                    timeout=settings.EMAIL_TIMEOUT_SECONDS,
                ) as smtp:
                    smtp.ehlo()
                    smtp.login(settings.EMAIL_SMTP_USERNAME, settings.EMAIL_SMTP_PASSWORD)
                    smtp.send_message(message, from_addr=self.from_address, to_addrs=recipients)
            else:
                with smtplib.SMTP(
                    settings.EMAIL_SMTP_HOST,
                    settings.EMAIL_SMTP_PORT,
                    timeout=settings.EMAIL_TIMEOUT_SECONDS,
                ) as smtp:
                    smtp.ehlo()
                    if settings.EMAIL_SMTP_USE_TLS:
                        smtp.starttls()
                        smtp.ehlo()
                    smtp.login(settings.EMAIL_SMTP_USERNAME, settings.EMAIL_SMTP_PASSWORD)
                    smtp.send_message(message, from_addr=self.from_address, to_addrs=recipients)
            logger.info("email_sent", extra={"subject": subject, "to": recipients})
            return True
        except smtplib.SMTPRecipientsRefused as exc:
            refused = exc.recipients or {}
            logger.warning("email_recipients_refused", extra={"subject": subject, "refused": list(refused)})
            return len(recipients) > len(refused)
        except (smtplib.SMTPException, OSError):
            logger.exception("email_send_failed", extra={"subject": subject, "to": recipients})
            return False


def get_email_sender() -> EmailSender:
    return EmailSender()
