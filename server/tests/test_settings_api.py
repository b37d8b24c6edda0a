from __future__ import annotations

from churchcms.models.audit_log import AuditLog
from churchcms.models.settings import ChurchSettings


def test_get_settings_before_setup_returns_null(client, authorize, staff_user):
    authorize(staff_user)

    resp = client.get("/api/settings")
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"] is None


def test_create_settings_once(client, authorize, admin_user, db_session):
    authorize(admin_user)

    resp = client.post(
        "/api/settings",
        json={
            "church_name": "  Grace Chapel ",
            "departments": ["Choir", " Choir ", "", "Youth"],
            "birthday_send_time": "07:30",
        },
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    assert data["church_name"] == "Grace Chapel"
    assert data["departments"] == ["Choir", "Youth"]
    assert data["birthday_send_time"] == "07:30"
    assert data["sms_enabled"] is False
    assert data["enable_birthday_notifications"] is True
    assert data["birthday_send_days_before"] == 0

    again = client.post("/api/settings", json={"church_name": "Other"})
    assert again.status_code == 409
    assert again.json()["message"] == "Settings already exist. Use update instead."

    db_session.expire_all()
    assert db_session.query(ChurchSettings).count() == 1
    assert db_session.query(AuditLog).filter(AuditLog.action == "settings_updated").count() == 1


def test_create_settings_validation(client, authorize, admin_user):
    authorize(admin_user)

    no_name = client.post("/api/settings", json={"church_name": "  "})
    assert no_name.status_code == 400
    assert no_name.json()["message"] == "church_name is required"

    bad_time = client.post("/api/settings", json={"church_name": "Grace", "birthday_send_time": "25:00"})
    assert bad_time.status_code == 400
    assert bad_time.json()["message"] == "birthday_send_time must use HH:MM (24-hour)"

    long_sender = client.post("/api/settings", json={"church_name": "Grace", "sms_sender_id": "GraceChapelAccra"})
    assert long_sender.status_code == 400


def test_update_settings_partial(client, authorize, admin_user, sms_settings):
    authorize(admin_user)

    resp = client.put(
        f"/api/settings/{sms_settings.id}",
        json={"church_name": None, "sms_enabled": False, "birthday_send_days_before": 2, "address": "Osu, Accra"},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["church_name"] == "Grace Chapel"
    assert data["sms_enabled"] is False
    assert data["birthday_send_days_before"] == 2
    assert data["address"] == "Osu, Accra"
    assert data["sms_api_key"] == "test-key"


def test_update_unknown_settings_returns_404(client, authorize, admin_user):
    authorize(admin_user)

    resp = client.put("/api/settings/42", json={"church_name": "Grace"})
    assert resp.status_code == 404
    assert resp.json()["message"] == "Settings not found"


def test_settings_writes_are_admin_only(client, authorize, pastor_user, sms_settings):
    authorize(pastor_user)

    assert client.post("/api/settings", json={"church_name": "Grace"}).status_code == 403
    assert client.put(f"/api/settings/{sms_settings.id}", json={"church_name": "Grace"}).status_code == 403


def test_non_admin_does_not_see_sms_api_key(client, authorize, staff_user, sms_settings):
    authorize(staff_user)

    data = client.get("/api/settings").json()["data"]
    assert data["church_name"] == "Grace Chapel"
    assert data["sms_api_key"] is None
    assert data["departments"] == ["Choir", "Ushering"]


def test_send_test_email(client, authorize, admin_user, sms_settings, email_outbox):
    authorize(admin_user)

    resp = client.post("/api/settings/test-email", json={"to": "pastor@grace.org"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["message"] == "Test email sent to pastor@grace.org"
    assert email_outbox[0]["subject"] == "Grace Chapel test email"
    assert email_outbox[0]["to"] == ["pastor@grace.org"]


def test_send_test_email_when_disabled(client, authorize, admin_user, fake_email_sender):
    fake_email_sender.enabled = False
    authorize(admin_user)

    resp = client.post("/api/settings/test-email", json={"to": "pastor@grace.org"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Email delivery is disabled"


def test_send_test_email_delivery_failure(client, authorize, admin_user, fake_email_sender):
    fake_email_sender.deliver = False
    authorize(admin_user)

    resp = client.post("/api/settings/test-email", json={"to": "pastor@grace.org"})
    assert resp.status_code == 502
    assert resp.json()["message"] == "Failed to send test email"
