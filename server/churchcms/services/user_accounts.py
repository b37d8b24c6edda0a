from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from churchcms.auth.security import hash_password
from churchcms.core.config import settings
from churchcms.models.user import User
from churchcms.permissions import default_modules_for_role

logger = logging.getLogger(__name__)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def utc_naive(value: datetime | None = None) -> datetime:
    """UTC wall-clock time without tzinfo, matching how timestamps are stored."""

    value = value or now_utc()
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def seed_admin(db: Session) -> User | None:
    """Create the bootstrap Admin account, or repair its module list."""

    email = settings.ADMIN_EMAIL.strip().lower()
    existing = find_user_by_email(db, email)
    if existing:
        if not existing.modules:
            existing.modules = default_modules_for_role(existing.role)
            db.commit()
            logger.info("admin_modules_repaired", extra={"user_id": existing.id})
        return existing

    user = User(
        name=settings.ADMIN_NAME,
        email=email,
        hashed_password=hash_password(settings.ADMIN_PASSWORD),
        role="Admin",
        modules=default_modules_for_role("Admin"),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("admin_seeded", extra={"user_id": user.id, "email": email})
    return user
