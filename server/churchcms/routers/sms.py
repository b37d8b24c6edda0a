from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from churchcms.auth.deps import require_module
from churchcms.core.config import settings as app_settings
from churchcms.core.db import get_db
from churchcms.models.member import Member
from churchcms.models.sms_log import SmsLog
from churchcms.models.user import User
from churchcms.schemas.common import Envelope, Page
from churchcms.schemas.sms import SmsLogOut, SmsSendRequest, SmsSendResult
from churchcms.services import arkesel
from churchcms.services.audit import record_audit
from churchcms.services.church_settings import get_church_settings
from churchcms.services.user_accounts import utc_naive

router = APIRouter(prefix="/sms", tags=["sms"])


@router.post("/send", response_model=Envelope[SmsSendResult], status_code=status.HTTP_201_CREATED)
def send_sms(
    request: Request,
    payload: SmsSendRequest,
    db: Session = Depends(get_db),
    actor: User = Depends(require_module("messaging")),
) -> Envelope[SmsSendResult]:
    if not payload.recipients:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="recipients must be a non-empty array")

    row = get_church_settings(db)
    if row is None or not row.sms_enabled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="SMS is disabled in Settings")
    if (row.sms_provider or "").strip().lower() != arkesel.PROVIDER_NAME:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="SMS provider is not configured to Arkesel")
    api_key = (row.sms_api_key or "").strip()
    if not api_key:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Arkesel API key is missing in Settings")

    sender = row.sms_sender_id or payload.sender or app_settings.SMS_DEFAULT_SENDER
    recipients = []
    for recipient in payload.recipients:
        phone = arkesel.normalize_phone(recipient.phone)
        if phone:
            recipients.append((recipient, phone))
    if not recipients:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid recipient phone numbers found")

    requested_ids = {recipient.member_id for recipient, _ in recipients if recipient.member_id is not None}
    known_ids = (
        {member_id for (member_id,) in db.query(Member.id).filter(Member.id.in_(requested_ids)).all()}
        if requested_ids
        else set()
    )

    failure: arkesel.ArkeselError | None = None
    upstream = None
    try:
        upstream = arkesel.send_sms(
            api_key=api_key,
            sender=sender,
            message=payload.message,
            recipients=[phone for _, phone in recipients],
        )
    except arkesel.ArkeselError as exc:
        failure = exc

    sent_at = utc_naive() if failure is None else None
    logs = [
        SmsLog(
            recipient_member_id=recipient.member_id if recipient.member_id in known_ids else None,
            recipient_name=recipient.name or phone,
            recipient_phone=phone,
            message=payload.message,
            type="manual",
            status="sent" if failure is None else "failed",
            failure_reason=failure.message[:500] if failure else None,
            sender_id=sender,
            sent_at=sent_at,
            created_by_id=actor.id,
        )
        for recipient, phone in recipients
    ]
    db.add_all(logs)

    if failure is not None:
        db.commit()
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=failure.message)

    record_audit(
        db,
        actor=actor,
        action="sms_sent",
        resource_type="sms",
        details=f"Sent SMS to {len(recipients)} recipient(s)",
        request=request,
    )
    db.commit()
    for log in logs:
        db.refresh(log)

    return Envelope(
        data=SmsSendResult(
            provider=arkesel.PROVIDER_NAME,
            sender=sender,
            message=payload.message,
            recipients=len(recipients),
            logs=[SmsLogOut.from_orm(log) for log in logs],
            upstream=upstream,
        )
    )


@router.get("/logs", response_model=Envelope[Page[SmsLogOut]])
def list_sms_logs(
    *,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    _: User = Depends(require_module("messaging")),
) -> Envelope[Page[SmsLogOut]]:
    total = db.query(func.count(SmsLog.id)).scalar() or 0
    logs = (
        db.query(SmsLog)
        .order_by(SmsLog.created_at.desc(), SmsLog.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return Envelope(
        data=Page(
            items=[SmsLogOut.from_orm(log) for log in logs],
            total=total,
            page=page,
            page_size=page_size,
        )
    )
