from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from churchcms.auth.deps import get_current_user, require_roles
from churchcms.core.db import get_db
from churchcms.models.settings import ChurchSettings
from churchcms.models.user import User
from churchcms.schemas.common import Envelope, MessageResponse
from churchcms.schemas.settings import SettingsCreate, SettingsOut, SettingsUpdate, TestEmailRequest
from churchcms.services import email_sender
from churchcms.services.audit import record_audit
from churchcms.services.church_settings import get_church_settings

router = APIRouter(prefix="/settings", tags=["settings"])


def _settings_out(row: ChurchSettings, viewer: User) -> SettingsOut:
    out = SettingsOut.from_orm(row)
    if viewer.role != "Admin" and out.sms_api_key:
        out.sms_api_key = None
    return out


@router.get("", response_model=Envelope[SettingsOut])
def get_settings(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Envelope[SettingsOut]:
    row = get_church_settings(db)
    if row is None:
        return Envelope(data=None)
    return Envelope(data=_settings_out(row, user))


@router.post("", response_model=Envelope[SettingsOut], status_code=status.HTTP_201_CREATED)
def create_settings(
    request: Request,
    payload: SettingsCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_roles("Admin")),
) -> Envelope[SettingsOut]:
    if get_church_settings(db) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Settings already exist. Use update instead.")

    values = {key: value for key, value in payload.model_dump().items() if value is not None}
    row = ChurchSettings(**values)
    db.add(row)
    db.flush()
    record_audit(
        db,
        actor=actor,
        action="settings_updated",
        resource_type="settings",
        resource_id=row.id,
        details="Created church settings",
        request=request,
    )
    db.commit()
    db.refresh(row)
    return Envelope(data=_settings_out(row, actor))


@router.put("/{settings_id}", response_model=Envelope[SettingsOut])
def update_settings(
    settings_id: int,
    request: Request,
    payload: SettingsUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_roles("Admin")),
) -> Envelope[SettingsOut]:
    row = db.get(ChurchSettings, settings_id)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Settings not found")

    updates = payload.model_dump(exclude_unset=True)
    changed: list[str] = []
    for field, value in updates.items():
        column = ChurchSettings.__table__.columns[field]
        if value is None and not column.nullable:
            continue
        if getattr(row, field) != value:
            setattr(row, field, value)
            changed.append(field)

    record_audit(
        db,
        actor=actor,
        action="settings_updated",
        resource_type="settings",
        resource_id=row.id,
        details=f"Updated settings: {', '.join(sorted(changed)) or 'no changes'}",
        request=request,
    )
    db.commit()
    db.refresh(row)
    return Envelope(data=_settings_out(row, actor))


@router.post("/test-email", response_model=MessageResponse)
def send_test_email(
    payload: TestEmailRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles("Admin")),
) -> MessageResponse:
    sender = email_sender.get_email_sender()
    if not sender.is_enabled():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email delivery is disabled")

    row = get_church_settings(db)
    church_name = row.church_name if row else "ChurchCMS"
    delivered = sender.send(
        subject=f"{church_name} test email",
        text_body=f"This is a test message from {church_name}. Email delivery is working.",
        to=str(payload.to),
    )
    if not delivered:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to send test email")
    return MessageResponse(message=f"Test email sent to {payload.to}")
