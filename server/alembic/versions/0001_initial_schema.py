"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLES = ("Admin", "Pastor", "Finance", "Staff")
ATTENDANCE_STATUSES = ("Present", "Absent")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", sa.Enum(*USER_ROLES, name="user_role"), nullable=False, server_default="Staff"),
        sa.Column("modules", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("gender", sa.Enum("male", "female", name="member_gender"), nullable=True),
        sa.Column(
            "marital_status",
            sa.Enum("single", "married", "widowed", "divorced", name="member_marital_status"),
            nullable=True,
        ),
        sa.Column(
            "membership_status",
            sa.Enum("active", "inactive", name="membership_status"),
            nullable=False,
            server_default="active",
        ),
        sa.Column("department", sa.String(length=120), nullable=False, server_default="General"),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("join_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_members_email", "members", ["email"])
    op.create_index("ix_members_created_at", "members", ["created_at"])

    op.create_table(
        "programs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_programs_date", "programs", ["date"])

    attendance_status = sa.Enum(*ATTENDANCE_STATUSES, name="attendance_status")
    op.create_table(
        "attendance",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("program_id", sa.Integer(), sa.ForeignKey("programs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", attendance_status, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("program_id", "member_id", name="uq_attendance_program_member"),
    )
    op.create_index("ix_attendance_program_id", "attendance", ["program_id"])
    op.create_index("ix_attendance_member_id", "attendance", ["member_id"])

    op.create_table(
        "sunday_attendance",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("sunday_key", sa.String(length=10), nullable=False),
        sa.Column("sunday_date", sa.Date(), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "status",
            postgresql.ENUM(*ATTENDANCE_STATUSES, name="attendance_status", create_type=False),
            nullable=False,
            server_default="Present",
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("year", "sunday_key", "member_id", name="uq_sunday_attendance_year_key_member"),
    )
    op.create_index("ix_sunday_attendance_year", "sunday_attendance", ["year"])
    op.create_index("ix_sunday_attendance_member_year", "sunday_attendance", ["member_id", "year"])

    op.create_table(
        "finance_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "type",
            sa.Enum("Tithe", "Offering", "Donation", "Expense", name="finance_type"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="SET NULL"), nullable=True),
        sa.Column("note", sa.String(length=500), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column(
            "payment_method",
            sa.Enum("cash", "mobile_money", "bank_transfer", "check", name="finance_payment_method"),
            nullable=False,
            server_default="cash",
        ),
        sa.Column("receipt_number", sa.String(length=40), nullable=True, unique=True),
        sa.Column("recorded_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_finance_transactions_type", "finance_transactions", ["type"])
    op.create_index("ix_finance_transactions_member_id", "finance_transactions", ["member_id"])
    op.create_index("ix_finance_transactions_date", "finance_transactions", ["date"])

    op.create_table(
        "church_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("church_name", sa.String(length=200), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("departments", sa.JSON(), nullable=False),
        sa.Column("sms_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sms_provider", sa.String(length=50), nullable=True, server_default="arkesel"),
        sa.Column("sms_api_key", sa.String(length=255), nullable=True),
        sa.Column("sms_sender_id", sa.String(length=20), nullable=True),
        sa.Column("enable_birthday_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("enable_program_reminders", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("enable_member_added_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("enable_donation_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("enable_user_added_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("birthday_message_template", sa.Text(), nullable=True),
        sa.Column("birthday_send_days_before", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("birthday_send_time", sa.String(length=5), nullable=False, server_default="08:00"),
        sa.Column("program_notification_template", sa.Text(), nullable=True),
        sa.Column("member_added_notification_template", sa.Text(), nullable=True),
        sa.Column("donation_notification_template", sa.Text(), nullable=True),
        sa.Column("user_added_notification_template", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "in_app_notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "type",
            sa.Enum(
                "birthday",
                "program_reminder",
                "member_added",
                "program_added",
                "finance_entry",
                "system",
                name="in_app_notification_type",
            ),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("action_url", sa.String(length=255), nullable=True),
        sa.Column("dedupe_key", sa.String(length=200), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_in_app_notifications_created_at", "in_app_notifications", ["created_at"])

    op.create_table(
        "in_app_notification_recipients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "notification_id",
            sa.Integer(),
            sa.ForeignKey("in_app_notifications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("notification_id", "user_id", name="uq_notification_recipient"),
    )
    op.create_index(
        "ix_in_app_notification_recipients_notification_id",
        "in_app_notification_recipients",
        ["notification_id"],
    )
    op.create_index("ix_in_app_notification_recipients_user_id", "in_app_notification_recipients", ["user_id"])

    op.create_table(
        "birthday_email_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date_key", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("member_id", "date_key", name="uq_birthday_email_log_member_day"),
    )
    op.create_index("ix_birthday_email_logs_member_id", "birthday_email_logs", ["member_id"])
    op.create_index("ix_birthday_email_logs_date_key", "birthday_email_logs", ["date_key"])

    op.create_table(
        "sms_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "recipient_member_id",
            sa.Integer(),
            sa.ForeignKey("members.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("recipient_name", sa.String(length=200), nullable=False),
        sa.Column("recipient_phone", sa.String(length=30), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "type",
            sa.Enum("manual", "birthday", "welcome", name="sms_type"),
            nullable=False,
            server_default="manual",
        ),
        sa.Column(
            "status",
            sa.Enum("sent", "failed", "pending", name="sms_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("failure_reason", sa.String(length=500), nullable=True),
        sa.Column("sender_id", sa.String(length=20), nullable=True),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_sms_logs_recipient_member_id", "sms_logs", ["recipient_member_id"])
    op.create_index("ix_sms_logs_created_at", "sms_logs", ["created_at"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("actor_name", sa.String(length=150), nullable=True),
        sa.Column("actor_role", sa.String(length=32), nullable=True),
        sa.Column(
            "action",
            sa.Enum(
                "member_created",
                "member_updated",
                "member_deleted",
                "program_created",
                "program_updated",
                "program_deleted",
                "attendance_recorded",
                "sms_sent",
                "donation_recorded",
                "transaction_updated",
                "transaction_deleted",
                "user_created",
                "user_updated",
                "user_deleted",
                "settings_updated",
                "login",
                "logout",
                name="audit_action",
            ),
            nullable=False,
        ),
        sa.Column("resource_type", sa.String(length=50), nullable=False),
        sa.Column("resource_id", sa.String(length=64), nullable=True),
        sa.Column("details", sa.Text(), nullable=False, server_default=""),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_logs_actor_user_id", "audit_logs", ["actor_user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_resource_type", "audit_logs", ["resource_type"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    for table in (
        "audit_logs",
        "sms_logs",
        "birthday_email_logs",
        "in_app_notification_recipients",
        "in_app_notifications",
        "church_settings",
        "finance_transactions",
        "sunday_attendance",
        "attendance",
        "programs",
        "members",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_name in (
        "audit_action",
        "sms_status",
        "sms_type",
        "in_app_notification_type",
        "finance_payment_method",
        "finance_type",
        "attendance_status",
        "membership_status",
        "member_marital_status",
        "member_gender",
        "user_role",
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
