from __future__ import annotations

from datetime import date, datetime

from churchcms.models.attendance import Attendance
from churchcms.models.audit_log import AuditLog
from churchcms.models.finance import FinanceTransaction
from churchcms.models.program import Program
from churchcms.models.sms_log import SmsLog
from churchcms.services.reporting import dashboard_stats


def _seed_audit(db_session, admin_user, staff_user):
    db_session.add_all(
        [
            AuditLog(
                actor_user_id=admin_user.id,
                actor_name=admin_user.name,
                actor_role="Admin",
                action="member_created",
                resource_type="member",
                resource_id="1",
                details="Created member Abena Mensah",
                created_at=datetime(2024, 4, 1, 9, 0),
            ),
            AuditLog(
                actor_user_id=staff_user.id,
                actor_name=staff_user.name,
                actor_role="Staff",
                action="program_created",
                resource_type="program",
                resource_id="3",
                details="Created program Easter Service",
                created_at=datetime(2024, 4, 2, 9, 0),
            ),
            AuditLog(
                actor_user_id=admin_user.id,
                actor_name=admin_user.name,
                actor_role="Admin",
                action="settings_updated",
                resource_type="settings",
                resource_id="1",
                details="Updated settings: church_name",
                created_at=datetime(2024, 5, 1, 9, 0),
            ),
        ]
    )
    db_session.commit()


def test_audit_logs_filters_and_paging(client, authorize, admin_user, staff_user, db_session):
    _seed_audit(db_session, admin_user, staff_user)
    authorize(admin_user)

    page = client.get("/api/audit-logs").json()["data"]
    assert page["total"] == 3
    assert page["page_size"] == 25
    assert [item["action"] for item in page["items"]] == ["settings_updated", "program_created", "member_created"]

    by_action = client.get("/api/audit-logs", params={"action": "program_created"}).json()["data"]
    assert [item["actor_name"] for item in by_action["items"]] == ["Yaw Staff"]

    unknown_action = client.get("/api/audit-logs", params={"action": "member_exploded"})
    assert unknown_action.status_code == 400
    assert unknown_action.json()["message"] == "Invalid audit action"

    by_user = client.get("/api/audit-logs", params={"user_id": admin_user.id}).json()["data"]
    assert by_user["total"] == 2

    april = client.get("/api/audit-logs", params={"start_date": "2024-04-01", "end_date": "2024-04-30"}).json()["data"]
    assert april["total"] == 2

    search = client.get("/api/audit-logs", params={"q": "easter"}).json()["data"]
    assert [item["resource_type"] for item in search["items"]] == ["program"]

    second_page = client.get("/api/audit-logs", params={"page": 2, "page_size": 2}).json()["data"]
    assert [item["action"] for item in second_page["items"]] == ["member_created"]


def test_audit_module_access(client, authorize, pastor_user, staff_user):
    authorize(pastor_user)
    assert client.get("/api/audit-logs").status_code == 200

    authorize(staff_user)
    resp = client.get("/api/audit-logs")
    assert resp.status_code == 403
    assert resp.json()["message"] == "You do not have access to the audit module"


def test_dashboard_stats_endpoint(client, authorize, staff_user, make_member, db_session):
    active = make_member(first_name="Ama")
    make_member(first_name="Kojo", membership_status="inactive")
    program = Program(title="Future Convention", date=datetime(2099, 8, 1, 9, 0))
    past = Program(title="Past Crusade", date=datetime(2020, 8, 1, 9, 0))
    db_session.add_all([program, past])
    db_session.flush()
    db_session.add_all(
        [
            Attendance(program_id=past.id, member_id=active.id, status="Present"),
            Attendance(program_id=program.id, member_id=active.id, status="Absent"),
            FinanceTransaction(type="Tithe", amount=200, date=datetime(2024, 1, 7)),
            FinanceTransaction(type="Expense", amount=50, date=datetime(2024, 1, 8)),
            SmsLog(recipient_name="Ama", recipient_phone="+233241234567", message="Hi", status="sent"),
            SmsLog(recipient_name="Kojo", recipient_phone="+233241234568", message="Hi", status="failed"),
        ]
    )
    db_session.commit()
    authorize(staff_user)

    resp = client.get("/api/dashboard/stats")
    assert resp.status_code == 200, resp.text
    stats = resp.json()["data"]
    assert stats["total_members"] == 2
    assert stats["active_members"] == 1
    assert stats["inactive_members"] == 1
    assert stats["upcoming_programs"] == 1
    assert stats["total_income"] == 200.0
    assert stats["total_expense"] == 50.0
    assert stats["balance"] == 150.0
    assert stats["sms_sent"] == 1
    assert stats["sms_failed"] == 1
    assert stats["attendance_rate"] == 50.0


def test_dashboard_birthday_counts(db_session, make_member):
    make_member(first_name="Today", date_of_birth=date(1990, 6, 1))
    make_member(first_name="ThisWeek", date_of_birth=date(1995, 6, 6))
    make_member(first_name="NextMonth", date_of_birth=date(1988, 7, 1))

    stats = dashboard_stats(db_session, now=datetime(2024, 6, 1, 12, 0))
    assert stats.birthdays_today == 1
    assert stats.birthdays_this_week == 2
    assert stats.upcoming_programs == 0
    assert stats.attendance_rate == 0.0


def test_dashboard_requires_module(client, authorize, db_session, staff_user):
    staff_user.modules = ["members"]
    db_session.commit()
    authorize(staff_user)

    resp = client.get("/api/dashboard/stats")
    assert resp.status_code == 403
