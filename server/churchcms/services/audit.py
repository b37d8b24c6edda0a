from __future__ import annotations

from fastapi import Request
from sqlalchemy.orm import Session

from churchcms.models.audit_log import AuditLog
from churchcms.models.user import User


def client_ip(request: Request | None) -> str | None:
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def record_audit(
    db: Session,
    *,
    actor: User | None,
    action: str,
    resource_type: str,
    resource_id: int | str | None = None,
    details: str = "",
    request: Request | None = None,
) -> AuditLog:
    """Stage an audit row on the session; the caller commits."""

    entry = AuditLog(
        actor_user_id=actor.id if actor else None,
        actor_name=actor.name if actor else None,
        actor_role=actor.role if actor else None,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=details,
        ip_address=client_ip(request),
    )
    db.add(entry)
    return entry
