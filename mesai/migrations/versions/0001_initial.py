"""Initial work-time schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

overtime_rule_type = postgresql.ENUM(
    "daily_threshold",
    "weekly_threshold",
    "custom",
    name="overtime_rule_type",
    create_type=False,
)
special_day_calculation_mode = postgresql.ENUM(
    "rounding",
    "fixed_hours",
    name="special_day_calculation_mode",
    create_type=False,
)
work_session_status = postgresql.ENUM(
    "active",
    "completed",
    "edited",
    "cancelled",
    name="work_session_status",
    create_type=False,
)
work_day_type = postgresql.ENUM(
    "regular",
    "weekend",
    "holiday",
    name="work_day_type",
    create_type=False,
)
daily_summary_status = postgresql.ENUM(
    "complete",
    "incomplete",
    "absent",
    "leave",
    "holiday",
    name="daily_summary_status",
    create_type=False,
)
leave_status = postgresql.ENUM(
    "active",
    "cancelled",
    name="leave_status",
    create_type=False,
)

_ENUMS = (
    overtime_rule_type,
    special_day_calculation_mode,
    work_session_status,
    work_day_type,
    daily_summary_status,
    leave_status,
)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in _ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        _created_at(),
    )

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_employees_company_id", "employees", ["company_id"])

    op.create_table(
        "shift_templates",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("break_duration_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "work_days",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[1, 2, 3, 4, 5]'::jsonb"),
        ),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_shift_templates_company_id", "shift_templates", ["company_id"])

    op.create_table(
        "employee_schedules",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("shift_template_id", sa.Integer(), nullable=True),
        sa.Column("custom_start_time", sa.Time(), nullable=True),
        sa.Column("custom_end_time", sa.Time(), nullable=True),
        sa.Column("custom_break_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("custom_work_days", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("effective_to", sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["shift_template_id"], ["shift_templates.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_employee_schedules_employee_id", "employee_schedules", ["employee_id"])
    op.create_index(
        "ix_employee_schedules_employee_effective",
        "employee_schedules",
        ["employee_id", "effective_from"],
    )

    op.create_table(
        "overtime_rules",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("rule_type", overtime_rule_type, nullable=False),
        sa.Column("threshold_minutes", sa.Integer(), nullable=True),
        sa.Column("multiplier", sa.Float(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_overtime_rules_company_id", "overtime_rules", ["company_id"])

    op.create_table(
        "employee_overtime_rules",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("overtime_rule_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["overtime_rule_id"], ["overtime_rules.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("employee_id", "overtime_rule_id", name="uq_employee_overtime_rule"),
    )
    op.create_index("ix_employee_overtime_rules_employee_id", "employee_overtime_rules", ["employee_id"])

    op.create_table(
        "company_holidays",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("holiday_date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_company_holidays_company_id", "company_holidays", ["company_id"])

    op.create_table(
        "special_day_types",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("calculation_mode", special_day_calculation_mode, nullable=False),
        sa.Column("multiplier", sa.Float(), nullable=False, server_default=sa.text("1.5")),
        sa.Column("base_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("extra_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("extra_multiplier", sa.Float(), nullable=False, server_default=sa.text("1.5")),
        sa.Column("applies_to_all", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("company_id", "code", name="uq_special_day_type_company_code"),
    )
    op.create_index("ix_special_day_types_company_id", "special_day_types", ["company_id"])

    op.create_table(
        "employee_special_day_types",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("special_day_type_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["special_day_type_id"], ["special_day_types.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("employee_id", "special_day_type_id", name="uq_employee_special_day_type"),
    )
    op.create_index("ix_employee_special_day_types_employee_id", "employee_special_day_types", ["employee_id"])

    op.create_table(
        "company_work_settings",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("overtime_multiplier", sa.Float(), nullable=False, server_default=sa.text("1.5")),
        sa.Column("weekend_multiplier", sa.Float(), nullable=False, server_default=sa.text("1.5")),
        sa.Column("holiday_multiplier", sa.Float(), nullable=False, server_default=sa.text("2.0")),
        sa.Column("boss_call_multiplier", sa.Float(), nullable=False, server_default=sa.text("1.5")),
        sa.Column("monthly_work_days_constant", sa.Float(), nullable=False, server_default=sa.text("21.66")),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("company_id", name="uq_company_work_settings_company_id"),
    )

    op.create_table(
        "work_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("clock_in", sa.DateTime(timezone=True), nullable=False),
        sa.Column("clock_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("session_date", sa.Date(), nullable=False),
        sa.Column("total_minutes", sa.Integer(), nullable=True),
        sa.Column("regular_minutes", sa.Integer(), nullable=True),
        sa.Column("overtime_minutes", sa.Integer(), nullable=True),
        sa.Column("overtime_multiplier", sa.Float(), nullable=True),
        sa.Column("status", work_session_status, nullable=False, server_default=sa.text("'active'")),
        sa.Column("clock_out_submitted_by", sa.String(length=32), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("edited_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_work_sessions_employee_id", "work_sessions", ["employee_id"])
    op.create_index("ix_work_sessions_session_date", "work_sessions", ["session_date"])
    op.create_index(
        "ix_work_sessions_employee_date_status",
        "work_sessions",
        ["employee_id", "session_date", "status"],
    )

    op.create_table(
        "daily_summaries",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("summary_date", sa.Date(), nullable=False),
        sa.Column("total_sessions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_work_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_regular_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_overtime_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("expected_work_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_late", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("late_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_absent", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_leave", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_holiday", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("deficit_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("work_day_type", work_day_type, nullable=False, server_default=sa.text("'regular'")),
        sa.Column("status", daily_summary_status, nullable=False, server_default=sa.text("'absent'")),
        sa.Column("special_day_type_id", sa.Integer(), nullable=True),
        sa.Column("effective_work_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_boss_call", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["special_day_type_id"], ["special_day_types.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("employee_id", "summary_date", name="uq_daily_summary_employee_date"),
    )
    op.create_index("ix_daily_summaries_employee_id", "daily_summaries", ["employee_id"])
    op.create_index("ix_daily_summaries_company_date", "daily_summaries", ["company_id", "summary_date"])

    op.create_table(
        "leave_records",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("leave_type", sa.String(length=128), nullable=False),
        sa.Column("reason", sa.String(length=1000), nullable=True),
        sa.Column("status", leave_status, nullable=False, server_default=sa.text("'active'")),
        _created_at(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_leave_records_employee_id", "leave_records", ["employee_id"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        _created_at(),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("employee_id", sa.Integer(), nullable=True),
        sa.Column("performed_by", sa.String(length=255), nullable=False),
        sa.Column("action_type", sa.String(length=64), nullable=False),
        sa.Column("resource_type", sa.String(length=64), nullable=False),
        sa.Column("resource_id", sa.String(length=64), nullable=True),
        sa.Column(
            "details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
    )
    op.create_index("ix_activity_logs_created_at", "activity_logs", ["created_at"])
    op.create_index("ix_activity_logs_company_id", "activity_logs", ["company_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_company_id", table_name="activity_logs")
    op.drop_index("ix_activity_logs_created_at", table_name="activity_logs")
    op.drop_table("activity_logs")

    op.drop_index("ix_leave_records_employee_id", table_name="leave_records")
    op.drop_table("leave_records")

    op.drop_index("ix_daily_summaries_company_date", table_name="daily_summaries")
    op.drop_index("ix_daily_summaries_employee_id", table_name="daily_summaries")
    op.drop_table("daily_summaries")

    op.drop_index("ix_work_sessions_employee_date_status", table_name="work_sessions")
    op.drop_index("ix_work_sessions_session_date", table_name="work_sessions")
    op.drop_index("ix_work_sessions_employee_id", table_name="work_sessions")
    op.drop_table("work_sessions")

    op.drop_table("company_work_settings")

    op.drop_index("ix_employee_special_day_types_employee_id", table_name="employee_special_day_types")
    op.drop_table("employee_special_day_types")

    op.drop_index("ix_special_day_types_company_id", table_name="special_day_types")
    op.drop_table("special_day_types")

    op.drop_index("ix_company_holidays_company_id", table_name="company_holidays")
    op.drop_table("company_holidays")

    op.drop_index("ix_employee_overtime_rules_employee_id", table_name="employee_overtime_rules")
    op.drop_table("employee_overtime_rules")

    op.drop_index("ix_overtime_rules_company_id", table_name="overtime_rules")
    op.drop_table("overtime_rules")

    op.drop_index("ix_employee_schedules_employee_effective", table_name="employee_schedules")
    op.drop_index("ix_employee_schedules_employee_id", table_name="employee_schedules")
    op.drop_table("employee_schedules")

    op.drop_index("ix_shift_templates_company_id", table_name="shift_templates")
    op.drop_table("shift_templates")

    op.drop_index("ix_employees_company_id", table_name="employees")
    op.drop_table("employees")

    op.drop_table("companies")

    bind = op.get_bind()
    for enum_type in reversed(_ENUMS):
        enum_type.drop(bind, checkfirst=True)
