from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, selectinload

from churchcms.auth.deps import get_current_user
from churchcms.core.db import get_db
from churchcms.models.notification import InAppNotification, NotificationRecipient
from churchcms.models.user import User
from churchcms.schemas.common import Envelope, MessageResponse
from churchcms.schemas.notification import NotificationFeed, NotificationOut
from churchcms.services.notifications import unread_count
from churchcms.services.user_accounts import utc_naive

FEED_LIMIT = 50

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _to_out(receipt: NotificationRecipient) -> NotificationOut:
    notification = receipt.notification
    return NotificationOut(
        id=notification.id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        action_url=notification.action_url,
        is_read=receipt.read_at is not None,
        read_at=receipt.read_at,
        created_at=notification.created_at,
    )


@router.get("/me", response_model=Envelope[NotificationFeed])
def my_notifications(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Envelope[NotificationFeed]:
    receipts = (
        db.query(NotificationRecipient)
        .join(InAppNotification, NotificationRecipient.notification_id == InAppNotification.id)
        .options(selectinload(NotificationRecipient.notification))
        .filter(NotificationRecipient.user_id == user.id)
        .order_by(InAppNotification.created_at.desc(), InAppNotification.id.desc())
        .limit(FEED_LIMIT)
        .all()
    )
    return Envelope(
        data=NotificationFeed(
            items=[_to_out(receipt) for receipt in receipts],
            unread_count=unread_count(db, user.id),
        )
    )


@router.patch("/read-all", response_model=MessageResponse)
def mark_all_read(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> MessageResponse:
    updated = (
        db.query(NotificationRecipient)
        .filter(NotificationRecipient.user_id == user.id, NotificationRecipient.read_at.is_(None))
        .update({NotificationRecipient.read_at: utc_naive()}, synchronize_session=False)
    )
    db.commit()
    return MessageResponse(message=f"{updated} notification(s) marked as read")


@router.patch("/{notification_id}/read", response_model=Envelope[NotificationOut])
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Envelope[NotificationOut]:
    receipt = (
        db.query(NotificationRecipient)
        .options(selectinload(NotificationRecipient.notification))
        .filter(
            NotificationRecipient.notification_id == notification_id,
            NotificationRecipient.user_id == user.id,
        )
        .first()
    )
    if not receipt:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    if receipt.read_at is None:
        receipt.read_at = utc_naive()
        db.commit()
    return Envelope(data=_to_out(receipt))
