from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from churchcms.auth.deps import require_roles
from churchcms.auth.security import hash_password
from churchcms.core.db import get_db
from churchcms.models.user import User
from churchcms.permissions import DEFAULT_ROLE, USER_ROLES, normalize_modules
from churchcms.schemas.common import Envelope, MessageResponse
from churchcms.schemas.user import UserCreate, UserOut, UserUpdate
from churchcms.services import notifications
from churchcms.services.audit import record_audit
from churchcms.services.user_accounts import find_user_by_email

LIST_ROLES = ("Admin", "Staff", "Finance")

router = APIRouter(prefix="/users", tags=["users"])


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _resolve_modules(modules: list[str] | None, role: str) -> list[str]:
    try:
        return normalize_modules(modules, role)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("", response_model=Envelope[UserOut], status_code=status.HTTP_201_CREATED)
def create_user(
    request: Request,
    payload: UserCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    actor: User = Depends(require_roles("Admin")),
) -> Envelope[UserOut]:
    role = payload.role or DEFAULT_ROLE
    if role not in USER_ROLES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")
    modules = _resolve_modules(payload.modules, role)
    if find_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User with this email already exists")

    user = User(
        name=payload.name,
        email=payload.email,
        hashed_password=hash_password(payload.password),
        role=role,
        modules=modules,
        is_active=payload.is_active,
    )
    db.add(user)
    db.flush()
    record_audit(
        db,
        actor=actor,
        action="user_created",
        resource_type="user",
        resource_id=user.id,
        details=f"Created user {user.email} with role {role}",
        request=request,
    )
    db.commit()
    db.refresh(user)

    background_tasks.add_task(notifications.dispatch_user_credentials, user.id, payload.password)
    return Envelope(data=UserOut.from_orm(user))


@router.get("", response_model=Envelope[list[UserOut]])
def list_users(
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*LIST_ROLES)),
) -> Envelope[list[UserOut]]:
    users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
    return Envelope(data=[UserOut.from_orm(user) for user in users])


@router.get("/{user_id}", response_model=Envelope[UserOut])
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles("Admin")),
) -> Envelope[UserOut]:
    return Envelope(data=UserOut.from_orm(_get_user_or_404(db, user_id)))


@router.put("/{user_id}", response_model=Envelope[UserOut])
def update_user(
    user_id: int,
    request: Request,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_roles("Admin")),
) -> Envelope[UserOut]:
    user = _get_user_or_404(db, user_id)
    changed: list[str] = []

    if payload.role is not None:
        if payload.role not in USER_ROLES:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")
        user.role = payload.role
        changed.append("role")
    if payload.modules is not None:
        user.modules = _resolve_modules(payload.modules, user.role)
        changed.append("modules")
    if payload.email is not None and payload.email != user.email:
        conflict = db.query(User.id).filter(User.email == payload.email, User.id != user.id).first()
        if conflict:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User with this email already exists")
        user.email = payload.email
        changed.append("email")
    if payload.name is not None:
        user.name = payload.name
        changed.append("name")
    if payload.is_active is not None:
        user.is_active = payload.is_active
        changed.append("is_active")
    if payload.password:
        user.hashed_password = hash_password(payload.password)
        changed.append("password")

    record_audit(
        db,
        actor=actor,
        action="user_updated",
        resource_type="user",
        resource_id=user.id,
        details=f"Updated user {user.email}: {', '.join(changed) or 'no changes'}",
        request=request,
    )
    db.commit()
    db.refresh(user)
    return Envelope(data=UserOut.from_orm(user))


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_roles("Admin")),
) -> MessageResponse:
    user = _get_user_or_404(db, user_id)
    if user.id == actor.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")

    email = user.email
    db.delete(user)
    record_audit(
        db,
        actor=actor,
        action="user_deleted",
        resource_type="user",
        resource_id=user_id,
        details=f"Deleted user {email}",
        request=request,
    )
    db.commit()
    return MessageResponse(message="User deleted")
