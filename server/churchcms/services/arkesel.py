"""Client for the Arkesel v2 SMS API."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from churchcms.core.config import settings

logger = logging.getLogger(__name__)

PROVIDER_NAME = "arkesel"


class ArkeselError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def normalize_phone(phone: str | None) -> str:
    """Coerce local numbers to international form.

    ``0XXXXXXXXX`` becomes ``+233XXXXXXXXX`` and a bare ``233...`` gains a ``+``.
    Anything else is returned trimmed.
    """

    trimmed = (phone or "").strip()
    if not trimmed:
        return ""
    country_code = settings.SMS_DEFAULT_COUNTRY_CODE
    if trimmed.startswith("+"):
        return trimmed
    if trimmed.startswith("0"):
        return f"+{country_code}{trimmed[1:]}"
    if trimmed.startswith(country_code):
        return f"+{trimmed}"
    return trimmed


def send_sms(*, api_key: str, sender: str, message: str, recipients: Sequence[str]) -> Any:
    body = {"sender": sender, "message": message, "recipients": list(recipients)}
    try:
        with httpx.Client(timeout=settings.SMS_TIMEOUT_SECONDS) as client:
            resp = client.post(
                settings.ARKESEL_BASE_URL,
                json=body,
                headers={"api-key": api_key, "Content-Type": "application/json"},
            )
    except httpx.HTTPError as exc:
        logger.exception("arkesel_request_failed", extra={"recipients": len(body["recipients"])})
        raise ArkeselError("Unable to reach the SMS provider") from exc

    try:
        payload: Any = resp.json()
    except ValueError:
        payload = resp.text

    if resp.is_error:
        if isinstance(payload, dict) and payload.get("message"):
            detail = str(payload["message"])
        else:
            detail = f"Arkesel request failed with status {resp.status_code}"
        logger.error("arkesel_non_2xx_response", extra={"status_code": resp.status_code, "body": resp.text})
        raise ArkeselError(detail, status_code=resp.status_code)

    logger.info("sms_sent", extra={"sender": sender, "recipients": len(body["recipients"])})
    return payload
