from __future__ import annotations

from datetime import date, datetime

from churchcms.models.attendance import Attendance, SundayAttendance
from churchcms.models.audit_log import AuditLog
from churchcms.models.finance import FinanceTransaction
from churchcms.models.member import Member
from churchcms.models.notification import InAppNotification, NotificationRecipient
from churchcms.models.program import Program


def test_create_member_cleans_input_and_notifies(client, authorize, staff_user, admin_user, db_session, email_outbox):
    authorize(staff_user)

    resp = client.post(
        "/api/members",
        json={
            "first_name": "  Kwame ",
            "last_name": " Asante",
            "email": " Kwame@Grace.org ",
            "phone": " 0241234567 ",
            "gender": "male",
            "marital_status": "",
            "date_of_birth": "1990-05-17",
        },
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    assert data["first_name"] == "Kwame"
    assert data["last_name"] == "Asante"
    assert data["full_name"] == "Kwame Asante"
    assert data["email"] == "kwame@grace.org"
    assert data["phone"] == "0241234567"
    assert data["marital_status"] is None
    assert data["department"] == "General"
    assert data["membership_status"] == "active"

    db_session.expire_all()
    notification = db_session.query(InAppNotification).one()
    assert notification.type == "member_added"
    assert notification.message == "Kwame Asante has been added to members."
    recipients = {row.user_id for row in db_session.query(NotificationRecipient).all()}
    assert recipients == {staff_user.id, admin_user.id}
    assert db_session.query(AuditLog).filter(AuditLog.action == "member_created").count() == 1

    assert [mail["subject"] for mail in email_outbox] == ["Welcome to ChurchCMS"]
    assert email_outbox[0]["to"] == ["kwame@grace.org"]
    assert "Hello Kwame Asante" in email_outbox[0]["text"]


def test_create_member_sends_welcome_sms_when_configured(
    client, authorize, staff_user, sms_settings, db_session, sms_outbox
):
    authorize(staff_user)

    resp = client.post("/api/members", json={"first_name": "Efua", "last_name": "Boateng", "phone": "0201112223"})
    assert resp.status_code == 201, resp.text

    assert len(sms_outbox) == 1
    assert sms_outbox[0]["recipients"] == ["+233201112223"]
    assert sms_outbox[0]["sender"] == "GraceChpl"
    assert "Grace Chapel" in sms_outbox[0]["message"]


def test_create_member_skips_welcome_when_disabled(
    client, authorize, staff_user, sms_settings, db_session, email_outbox, sms_outbox
):
    sms_settings.enable_member_added_notifications = False
    db_session.commit()
    authorize(staff_user)

    resp = client.post(
        "/api/members",
        json={"first_name": "Efua", "last_name": "Boateng", "phone": "0201112223", "email": "efua@grace.org"},
    )
    assert resp.status_code == 201, resp.text
    assert email_outbox == []
    assert sms_outbox == []
    db_session.expire_all()
    assert db_session.query(InAppNotification).count() == 0


def test_create_member_requires_names(client, authorize, staff_user):
    authorize(staff_user)

    resp = client.post("/api/members", json={"first_name": "   ", "last_name": "Asante"})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "first_name is required"}


def test_create_member_rejects_unknown_gender(client, authorize, staff_user):
    authorize(staff_user)

    resp = client.post("/api/members", json={"first_name": "Kojo", "last_name": "Addo", "gender": "other"})
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("gender")


def test_create_member_enforces_column_lengths(client, authorize, staff_user, db_session):
    authorize(staff_user)

    long_name = client.post("/api/members", json={"first_name": "A" * 300, "last_name": "Asante"})
    assert long_name.status_code == 400
    assert long_name.json()["message"].startswith("first_name")

    long_phone = client.post("/api/members", json={"first_name": "Kojo", "last_name": "Asante", "phone": "0" * 80})
    assert long_phone.status_code == 400
    assert long_phone.json()["message"].startswith("phone")

    padded = client.post(
        "/api/members",
        json={"first_name": "  Kojo  ", "last_name": "Asante", "phone": " 0241234567 " + " " * 40},
    )
    assert padded.status_code == 201, padded.text
    assert padded.json()["data"]["phone"] == "0241234567"
    assert db_session.query(Member).count() == 1


def test_list_members_filters(client, authorize, staff_user, make_member):
    make_member(first_name="Akosua", last_name="Frimpong", email="akosua@grace.org", department="Choir")
    make_member(first_name="Yaw", last_name="Darko", department="Ushering", membership_status="inactive")
    make_member(first_name="Esi", last_name="Quaye", phone="0550001111", department="Ushering")
    authorize(staff_user)

    everyone = client.get("/api/members").json()["data"]
    assert len(everyone) == 3

    by_name = client.get("/api/members", params={"q": "frimp"}).json()["data"]
    assert [item["first_name"] for item in by_name] == ["Akosua"]

    by_phone = client.get("/api/members", params={"q": "0550"}).json()["data"]
    assert [item["first_name"] for item in by_phone] == ["Esi"]

    ushers = client.get("/api/members", params={"department": "Ushering", "status": "active"}).json()["data"]
    assert [item["first_name"] for item in ushers] == ["Esi"]

    unknown_status = client.get("/api/members", params={"status": "archived"})
    assert unknown_status.status_code == 400
    assert unknown_status.json()["message"] == "Invalid membership status"


def test_member_module_is_required(client, authorize, db_session, staff_user):
    staff_user.modules = ["dashboard"]
    db_session.commit()
    authorize(staff_user)

    resp = client.get("/api/members")
    assert resp.status_code == 403
    assert resp.json()["message"] == "You do not have access to the members module"


def test_update_member_ignores_null_required_fields(client, authorize, staff_user, make_member):
    member = make_member()
    authorize(staff_user)

    resp = client.put(
        f"/api/members/{member.id}",
        json={"first_name": None, "department": "", "membership_status": "inactive", "address": "12 Ring Road"},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["first_name"] == "Abena"
    assert data["department"] == "General"
    assert data["membership_status"] == "inactive"
    assert data["address"] == "12 Ring Road"


def test_get_unknown_member_returns_404(client, authorize, staff_user):
    authorize(staff_user)

    resp = client.get("/api/members/404")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Member not found"


def test_delete_member_keeps_finance_history(client, authorize, admin_user, make_member, db_session):
    member = make_member()
    program = Program(title="Harvest", date=datetime(2024, 9, 1, 9, 0))
    db_session.add(program)
    db_session.flush()
    db_session.add(Attendance(program_id=program.id, member_id=member.id, status="Present"))
    db_session.add(
        SundayAttendance(
            year=2024, sunday_key="2024-09-01", sunday_date=date(2024, 9, 1), member_id=member.id, status="Present"
        )
    )
    db_session.add(FinanceTransaction(type="Tithe", amount=50, member_id=member.id, date=datetime(2024, 9, 1)))
    db_session.commit()
    authorize(admin_user)

    resp = client.delete(f"/api/members/{member.id}")
    assert resp.status_code == 200, resp.text
    assert resp.json()["message"] == "Member deleted"

    db_session.expire_all()
    assert db_session.query(Member).count() == 0
    assert db_session.query(Attendance).count() == 0
    assert db_session.query(SundayAttendance).count() == 0
    transaction = db_session.query(FinanceTransaction).one()
    assert transaction.member_id is None


def test_upcoming_birthdays(client, authorize, staff_user, make_member, monkeypatch):
    monkeypatch.setattr("churchcms.routers.members.utc_naive", lambda value=None: datetime(2024, 3, 10, 12, 0))
    make_member(first_name="Today", last_name="One", date_of_birth=date(1990, 3, 10))
    make_member(first_name="Soon", last_name="Two", date_of_birth=date(2000, 3, 15))
    make_member(first_name="Later", last_name="Three", date_of_birth=date(1985, 4, 30))
    make_member(first_name="Passed", last_name="Four", date_of_birth=date(1970, 3, 9))
    authorize(staff_user)

    resp = client.get("/api/members/birthdays")
    assert resp.status_code == 200, resp.text
    items = resp.json()["data"]
    assert [item["member"]["first_name"] for item in items] == ["Today", "Soon"]
    assert items[0]["days_until"] == 0
    assert items[0]["turning_age"] == 34
    assert items[1]["next_birthday"] == "2024-03-15"

    wider = client.get("/api/members/birthdays", params={"days": 60}).json()["data"]
    assert [item["member"]["first_name"] for item in wider] == ["Today", "Soon", "Later"]


def test_member_history(client, authorize, pastor_user, make_member, db_session):
    member = make_member()
    program = Program(title="Youth Rally", date=datetime(2024, 6, 2, 10, 0))
    db_session.add(program)
    db_session.flush()
    db_session.add(Attendance(program_id=program.id, member_id=member.id, status="Present"))
    for key, status in (("2024-06-02", "Present"), ("2024-06-09", "Absent"), ("2024-06-16", "Present")):
        db_session.add(
            SundayAttendance(
                year=2024,
                sunday_key=key,
                sunday_date=date.fromisoformat(key),
                member_id=member.id,
                status=status,
            )
        )
    db_session.add(FinanceTransaction(type="Tithe", amount=100, member_id=member.id, date=datetime(2024, 6, 2)))
    db_session.add(FinanceTransaction(type="Offering", amount=20.5, member_id=member.id, date=datetime(2024, 6, 9)))
    db_session.commit()
    authorize(pastor_user)

    resp = client.get(f"/api/members/{member.id}/history")
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["member"]["id"] == member.id
    assert [entry["program_title"] for entry in data["attendance"]] == ["Youth Rally"]
    assert data["sunday_attendance"] == [{"year": 2024, "present": 2, "absent": 1}]
    assert [entry["type"] for entry in data["finance"]] == ["Offering", "Tithe"]
    assert data["total_given"] == 120.5
