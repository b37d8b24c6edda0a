from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["SEED_ADMIN_ON_STARTUP"] = "false"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"

from collections.abc import Generator  # noqa: E402
from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from churchcms.auth.deps import get_current_user  # noqa: E402
from churchcms.core.db import Base, SessionLocal, engine  # noqa: E402
from churchcms.main import app  # noqa: E402
from churchcms.models.member import Member  # noqa: E402
from churchcms.models.settings import ChurchSettings  # noqa: E402
from churchcms.models.user import User  # noqa: E402
from churchcms.permissions import default_modules_for_role  # noqa: E402
from churchcms.services import arkesel, email_sender  # noqa: E402


class FakeEmailSender:
    def __init__(self, outbox: list[dict], enabled: bool = True, deliver: bool = True) -> None:
        self.outbox = outbox
        self.enabled = enabled
        self.deliver = deliver

    def is_enabled(self) -> bool:
        return self.enabled

    def send(self, *, subject, text_body, to, html_body=None) -> bool:
        recipients = [to] if isinstance(to, str) else list(to)
        self.outbox.append({"subject": subject, "text": text_body, "to": recipients})
        return self.deliver


@pytest.fixture(autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app.dependency_overrides.clear()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def authorize(client: TestClient):
    def _apply(user: User):
        app.dependency_overrides[get_current_user] = lambda: user

    yield _apply
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture(autouse=True)
def fake_email_sender(monkeypatch) -> FakeEmailSender:
    sender = FakeEmailSender([])
    monkeypatch.setattr(email_sender, "get_email_sender", lambda: sender)
    return sender


@pytest.fixture()
def email_outbox(fake_email_sender: FakeEmailSender) -> list[dict]:
    return fake_email_sender.outbox


@pytest.fixture(autouse=True)
def sms_outbox(monkeypatch) -> list[dict]:
    calls: list[dict] = []

    def _fake_send_sms(*, api_key, sender, message, recipients):
        calls.append({"api_key": api_key, "sender": sender, "message": message, "recipients": list(recipients)})
        return {"code": "ok", "message": "Successfully Sent"}

    monkeypatch.setattr(arkesel, "send_sms", _fake_send_sms)
    return calls


def _make_user(session: Session, *, name: str, email: str, role: str, is_active: bool = True) -> User:
    user = User(
        name=name,
        email=email,
        hashed_password="hash",
        role=role,
        modules=default_modules_for_role(role),
        is_active=is_active,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    return _make_user(db_session, name="Grace Admin", email="admin@gracechurch.org", role="Admin")


@pytest.fixture()
def pastor_user(db_session: Session) -> User:
    return _make_user(db_session, name="Pastor Kofi", email="pastor@gracechurch.org", role="Pastor")


@pytest.fixture()
def finance_user(db_session: Session) -> User:
    return _make_user(db_session, name="Ama Treasurer", email="finance@gracechurch.org", role="Finance")


@pytest.fixture()
def staff_user(db_session: Session) -> User:
    return _make_user(db_session, name="Yaw Staff", email="staff@gracechurch.org", role="Staff")


@pytest.fixture()
def make_member(db_session: Session):
    def _create(**overrides) -> Member:
        values = {
            "first_name": "Abena",
            "last_name": "Mensah",
            "membership_status": "active",
            "department": "Choir",
            "join_date": date(2022, 1, 9),
        }
        values.update(overrides)
        member = Member(**values)
        db_session.add(member)
        db_session.commit()
        db_session.refresh(member)
        return member

    return _create


@pytest.fixture()
def sms_settings(db_session: Session) -> ChurchSettings:
    row = ChurchSettings(
        church_name="Grace Chapel",
        sms_enabled=True,
        sms_provider="Arkesel",
        sms_api_key="test-key",
        sms_sender_id="GraceChpl",
        departments=["Choir", "Ushering"],
    )
    db_session.add(row)
    db_session.commit()
    db_session.refresh(row)
    return row
