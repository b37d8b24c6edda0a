from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from churchcms.auth.deps import get_current_user
from churchcms.auth.security import create_access_token, hash_password, verify_password
from churchcms.core.config import settings
from churchcms.core.db import get_db
from churchcms.models.user import User
from churchcms.permissions import DEFAULT_ROLE, USER_ROLES, normalize_modules
from churchcms.schemas.auth import AuthPayload, LoginRequest, RegisterRequest
from churchcms.schemas.common import Envelope, MessageResponse
from churchcms.schemas.user import UserOut
from churchcms.services.audit import record_audit
from churchcms.services.user_accounts import find_user_by_email, utc_naive

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_payload(user: User) -> AuthPayload:
    token = create_access_token(subject=str(user.id), role=user.role)
    return AuthPayload(user=UserOut.from_orm(user), token=token)


@router.post("/login", response_model=Envelope[AuthPayload])
def login(request: Request, payload: LoginRequest, db: Session = Depends(get_db)) -> Envelope[AuthPayload]:
    user = find_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Your account is deactivated")

    user.last_login_at = utc_naive()
    record_audit(
        db,
        actor=user,
        action="login",
        resource_type="auth",
        resource_id=user.id,
        details=f"{user.email} signed in",
        request=request,
    )
    db.commit()
    db.refresh(user)
    return Envelope(data=_auth_payload(user))


@router.post("/register", response_model=Envelope[AuthPayload], status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> Envelope[AuthPayload]:
    has_users = db.query(User.id).first() is not None
    if has_users and not settings.ALLOW_SELF_REGISTRATION:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Self-registration is disabled")

    # Only the bootstrap account chooses its own role and modules.
    if has_users:
        role, requested_modules, is_active = DEFAULT_ROLE, None, True
    else:
        role, requested_modules, is_active = payload.role or DEFAULT_ROLE, payload.modules, payload.is_active
    if role not in USER_ROLES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")
    try:
        modules = normalize_modules(requested_modules, role)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if find_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User with this email already exists")

    user = User(
        name=payload.name,
        email=payload.email,
        hashed_password=hash_password(payload.password),
        role=role,
        modules=modules,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return Envelope(data=_auth_payload(user))


@router.get("/me", response_model=Envelope[UserOut])
def me(user: User = Depends(get_current_user)) -> Envelope[UserOut]:
    return Envelope(data=UserOut.from_orm(user))


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> MessageResponse:
    record_audit(
        db,
        actor=user,
        action="logout",
        resource_type="auth",
        resource_id=user.id,
        details=f"{user.email} signed out",
        request=request,
    )
    db.commit()
    return MessageResponse(message="Logged out")
