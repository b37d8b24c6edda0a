from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from churchcms.auth.deps import require_module
from churchcms.core.db import get_db
from churchcms.models.audit_log import AUDIT_ACTIONS, AuditLog
from churchcms.models.user import User
from churchcms.schemas.audit import AuditLogOut
from churchcms.schemas.common import Envelope, Page
from churchcms.services.reporting import range_bounds

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=Envelope[Page[AuditLogOut]])
def list_audit_logs(
    *,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=25, ge=1, le=200),
    action: str | None = Query(default=None),
    resource_type: str | None = Query(default=None),
    user_id: int | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    q: str | None = Query(default=None),
    db: Session = Depends(get_db),
    _: User = Depends(require_module("audit")),
) -> Envelope[Page[AuditLogOut]]:
    query = db.query(AuditLog)
    if action:
        if action not in AUDIT_ACTIONS:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid audit action")
        query = query.filter(AuditLog.action == action)
    if resource_type:
        query = query.filter(AuditLog.resource_type == resource_type)
    if user_id is not None:
        query = query.filter(AuditLog.actor_user_id == user_id)
    start_dt, end_dt = range_bounds(start_date, end_date)
    if start_dt:
        query = query.filter(AuditLog.created_at >= start_dt)
    if end_dt:
        query = query.filter(AuditLog.created_at <= end_dt)
    if q and q.strip():
        pattern = f"%{q.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(AuditLog.details).like(pattern),
                func.lower(func.coalesce(AuditLog.actor_name, "")).like(pattern),
            )
        )

    total = query.count()
    entries = (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return Envelope(
        data=Page(
            items=[AuditLogOut.from_orm(entry) for entry in entries],
            total=total,
            page=page,
            page_size=page_size,
        )
    )
