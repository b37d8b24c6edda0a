from __future__ import annotations

import pytest

from churchcms.models.audit_log import AuditLog
from churchcms.models.sms_log import SmsLog
from churchcms.services import arkesel


def _send(client, recipients, message="Service starts at 9am. God bless!", **extra):
    return client.post("/api/sms/send", json={"message": message, "recipients": recipients, **extra})


def test_send_sms_normalizes_numbers_and_logs(client, authorize, staff_user, sms_settings, make_member, db_session, sms_outbox):
    member = make_member(phone="0241234567")
    authorize(staff_user)

    resp = _send(
        client,
        [
            {"member_id": member.id, "name": "Abena Mensah", "phone": "0241234567"},
            {"member_id": 999, "name": "Visitor", "phone": "233501112222"},
            {"name": "Overseas", "phone": "+14155550100"},
            {"name": "Blank", "phone": "   "},
        ],
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    assert data["provider"] == "arkesel"
    assert data["sender"] == "GraceChpl"
    assert data["recipients"] == 3
    assert data["upstream"] == {"code": "ok", "message": "Successfully Sent"}

    assert sms_outbox == [
        {
            "api_key": "test-key",
            "sender": "GraceChpl",
            "message": "Service starts at 9am. God bless!",
            "recipients": ["+233241234567", "+233501112222", "+14155550100"],
        }
    ]

    db_session.expire_all()
    logs = db_session.query(SmsLog).order_by(SmsLog.id).all()
    assert [log.recipient_member_id for log in logs] == [member.id, None, None]
    assert {log.status for log in logs} == {"sent"}
    assert {log.type for log in logs} == {"manual"}
    assert all(log.sent_at is not None for log in logs)
    assert logs[0].created_by_id == staff_user.id
    assert db_session.query(AuditLog).filter(AuditLog.action == "sms_sent").count() == 1


def test_sender_falls_back_to_request_then_default(client, authorize, staff_user, sms_settings, db_session, sms_outbox):
    sms_settings.sms_sender_id = None
    db_session.commit()
    authorize(staff_user)

    assert _send(client, [{"phone": "0241234567"}], sender="YouthMin").status_code == 201
    assert _send(client, [{"phone": "0241234567"}]).status_code == 201
    assert [call["sender"] for call in sms_outbox] == ["YouthMin", "ChurchCMS"]


@pytest.mark.parametrize(
    ("changes", "message"),
    [
        ({"sms_enabled": False}, "SMS is disabled in Settings"),
        ({"sms_provider": "twilio"}, "SMS provider is not configured to Arkesel"),
        ({"sms_api_key": "  "}, "Arkesel API key is missing in Settings"),
    ],
)
def test_send_sms_requires_configuration(client, authorize, staff_user, sms_settings, db_session, changes, message):
    for field, value in changes.items():
        setattr(sms_settings, field, value)
    db_session.commit()
    authorize(staff_user)

    resp = _send(client, [{"phone": "0241234567"}])
    assert resp.status_code == 400
    assert resp.json()["message"] == message


def test_send_sms_without_settings(client, authorize, staff_user):
    authorize(staff_user)

    resp = _send(client, [{"phone": "0241234567"}])
    assert resp.status_code == 400
    assert resp.json()["message"] == "SMS is disabled in Settings"


def test_send_sms_request_validation(client, authorize, staff_user, sms_settings):
    authorize(staff_user)

    empty = _send(client, [])
    assert empty.status_code == 400
    assert empty.json()["message"] == "recipients must be a non-empty array"

    no_numbers = _send(client, [{"name": "Nobody", "phone": ""}])
    assert no_numbers.status_code == 400
    assert no_numbers.json()["message"] == "No valid recipient phone numbers found"

    no_message = _send(client, [{"phone": "0241234567"}], message="  ")
    assert no_message.status_code == 400
    assert no_message.json()["message"] == "message is required"


def test_send_sms_bounds_recipient_fields(client, authorize, staff_user, sms_settings, db_session, sms_outbox):
    authorize(staff_user)

    long_name = _send(client, [{"name": "N" * 201, "phone": "0241234567"}])
    assert long_name.status_code == 400
    assert long_name.json()["message"].startswith("recipients.0.name")

    # 29 characters as typed, 32 once the country code is applied
    long_local = _send(client, [{"name": "Kofi", "phone": "0" + "2" * 28}])
    assert long_local.status_code == 400
    assert long_local.json()["message"].startswith("recipients.0.phone")

    assert sms_outbox == []
    assert db_session.query(SmsLog).count() == 0


def test_sms_log_types_match_what_the_app_sends():
    assert set(SmsLog.__table__.c.type.type.enums) == {"manual", "birthday", "welcome"}


def test_provider_failure_is_logged_and_surfaced(client, authorize, staff_user, sms_settings, db_session, monkeypatch):
    def _reject(**kwargs):
        raise arkesel.ArkeselError("Insufficient balance", status_code=402)

    monkeypatch.setattr(arkesel, "send_sms", _reject)
    authorize(staff_user)

    resp = _send(client, [{"name": "Abena", "phone": "0241234567"}])
    assert resp.status_code == 502
    assert resp.json() == {"success": False, "message": "Insufficient balance"}

    db_session.expire_all()
    log = db_session.query(SmsLog).one()
    assert log.status == "failed"
    assert log.failure_reason == "Insufficient balance"
    assert log.sent_at is None
    assert db_session.query(AuditLog).filter(AuditLog.action == "sms_sent").count() == 0


def test_finance_role_cannot_send_sms(client, authorize, finance_user, sms_settings):
    authorize(finance_user)

    resp = _send(client, [{"phone": "0241234567"}])
    assert resp.status_code == 403
    assert resp.json()["message"] == "You do not have access to the messaging module"


def test_sms_logs_are_paged(client, authorize, staff_user, db_session):
    db_session.add_all(
        [
            SmsLog(
                recipient_name=f"Member {index}",
                recipient_phone=f"+23324000000{index}",
                message="Reminder",
                type="announcement",
                status="sent",
            )
            for index in range(5)
        ]
    )
    db_session.commit()
    authorize(staff_user)

    resp = client.get("/api/sms/logs", params={"page": 2, "page_size": 2})
    assert resp.status_code == 200, resp.text
    page = resp.json()["data"]
    assert page["total"] == 5
    assert page["page"] == 2
    assert page["page_size"] == 2
    assert len(page["items"]) == 2


def test_normalize_phone():
    assert arkesel.normalize_phone(" 0241234567 ") == "+233241234567"
    assert arkesel.normalize_phone("233241234567") == "+233241234567"
    assert arkesel.normalize_phone("+447700900123") == "+447700900123"
    assert arkesel.normalize_phone("5551234") == "5551234"
    assert arkesel.normalize_phone(None) == ""
