from __future__ import annotations

from datetime import datetime

from churchcms.models.audit_log import AuditLog
from churchcms.models.notification import InAppNotification
from churchcms.models.program import Program
from churchcms.services import notifications


def test_create_program_emails_members(client, authorize, pastor_user, make_member, db_session, email_outbox):
    make_member(first_name="Ama", email="ama@grace.org")
    make_member(first_name="Kofi", email="kofi@grace.org")
    make_member(first_name="NoMail", email=None)
    authorize(pastor_user)

    resp = client.post(
        "/api/programs",
        json={
            "title": "  Harvest Thanksgiving ",
            "date": "2024-11-03T09:30:00Z",
            "location": "Main Auditorium",
            "description": "",
        },
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    assert data["title"] == "Harvest Thanksgiving"
    assert data["description"] is None
    assert data["date"].startswith("2024-11-03T09:30:00")

    assert len(email_outbox) == 1
    mail = email_outbox[0]
    assert mail["subject"] == "New Church Program: Harvest Thanksgiving"
    assert sorted(mail["to"]) == ["ama@grace.org", "kofi@grace.org"]
    assert "Date: November 3, 2024" in mail["text"]
    assert "Location: Main Auditorium" in mail["text"]
    assert "Details: -" in mail["text"]

    db_session.expire_all()
    notification = db_session.query(InAppNotification).one()
    assert notification.type == "program_added"
    assert db_session.query(AuditLog).filter(AuditLog.action == "program_created").count() == 1


def test_create_program_requires_title_and_date(client, authorize, pastor_user):
    authorize(pastor_user)

    missing_title = client.post("/api/programs", json={"title": " ", "date": "2024-11-03T09:30:00"})
    assert missing_title.status_code == 400
    assert missing_title.json()["message"] == "title is required"

    missing_date = client.post("/api/programs", json={"title": "Prayer Night"})
    assert missing_date.status_code == 400
    assert missing_date.json()["message"] == "date: Field required"

    long_title = client.post("/api/programs", json={"title": "T" * 201, "date": "2024-11-03T09:30:00"})
    assert long_title.status_code == 400
    assert long_title.json()["message"].startswith("title")

    long_location = client.post(
        "/api/programs",
        json={"title": "Prayer Night", "date": "2024-11-03T09:30:00", "location": "L" * 201},
    )
    assert long_location.status_code == 400
    assert long_location.json()["message"].startswith("location")


def test_finance_role_cannot_manage_programs(client, authorize, finance_user):
    authorize(finance_user)

    resp = client.get("/api/programs")
    assert resp.status_code == 403
    assert resp.json()["message"] == "You do not have access to the programs module"


def test_list_programs_newest_first(client, authorize, staff_user, db_session):
    db_session.add_all(
        [
            Program(title="Old Crusade", date=datetime(2023, 5, 1, 18, 0)),
            Program(title="Easter Service", date=datetime(2024, 3, 31, 8, 0)),
        ]
    )
    db_session.commit()
    authorize(staff_user)

    resp = client.get("/api/programs")
    assert resp.status_code == 200, resp.text
    assert [item["title"] for item in resp.json()["data"]] == ["Easter Service", "Old Crusade"]


def test_update_and_delete_program(client, authorize, staff_user, db_session):
    program = Program(title="Choir Rehearsal", date=datetime(2024, 2, 1, 17, 0), location="Hall B")
    db_session.add(program)
    db_session.commit()
    authorize(staff_user)

    updated = client.put(
        f"/api/programs/{program.id}",
        json={"title": "Mass Choir Rehearsal", "location": "  "},
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["data"]["title"] == "Mass Choir Rehearsal"
    assert updated.json()["data"]["location"] is None

    deleted = client.delete(f"/api/programs/{program.id}")
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "Program deleted"

    missing = client.get(f"/api/programs/{program.id}")
    assert missing.status_code == 404
    assert missing.json()["message"] == "Program not found"


def test_program_reminders_fire_once_per_day(db_session, admin_user, staff_user):
    db_session.add_all(
        [
            Program(title="Midweek Service", date=datetime(2024, 7, 10, 18, 0)),
            Program(title="Next Week", date=datetime(2024, 7, 17, 18, 0)),
        ]
    )
    db_session.commit()
    now = datetime(2024, 7, 10, 6, 0)

    assert notifications.run_due_program_reminders(db_session, now=now) == 1
    assert notifications.run_due_program_reminders(db_session, now=now) == 0

    reminder = db_session.query(InAppNotification).one()
    assert reminder.type == "program_reminder"
    assert reminder.message == "Midweek Service is due today."
    assert len(reminder.recipients) == 2


def test_program_reminders_respect_settings_toggle(db_session, admin_user, sms_settings):
    sms_settings.enable_program_reminders = False
    db_session.add(Program(title="Midweek Service", date=datetime(2024, 7, 10, 18, 0)))
    db_session.commit()

    assert notifications.run_due_program_reminders(db_session, now=datetime(2024, 7, 10, 6, 0)) == 0
    assert db_session.query(InAppNotification).count() == 0
