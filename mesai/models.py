from __future__ import annotations

import enum
from datetime import date, datetime, time, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mesai.db import Base

JsonType = JSON().with_variant(JSONB(), "postgresql")


class WorkSessionStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    EDITED = "edited"
    CANCELLED = "cancelled"


class DailySummaryStatus(str, enum.Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"
    ABSENT = "absent"
    LEAVE = "leave"
    HOLIDAY = "holiday"


class WorkDayType(str, enum.Enum):
    REGULAR = "regular"
    WEEKEND = "weekend"
    HOLIDAY = "holiday"


class OvertimeRuleType(str, enum.Enum):
    DAILY_THRESHOLD = "daily_threshold"
    WEEKLY_THRESHOLD = "weekly_threshold"
    CUSTOM = "custom"


class SpecialDayCalculationMode(str, enum.Enum):
    ROUNDING = "rounding"
    FIXED_HOURS = "fixed_hours"


class LeaveStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    employees: Mapped[list[Employee]] = relationship(back_populates="company")
    work_settings: Mapped[CompanyWorkSettings | None] = relationship(back_populates="company", uselist=False)


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))

    company: Mapped[Company] = relationship(back_populates="employees")
    schedules: Mapped[list[EmployeeSchedule]] = relationship(back_populates="employee")
    sessions: Mapped[list[WorkSession]] = relationship(back_populates="employee")
    leave_records: Mapped[list[LeaveRecord]] = relationship(back_populates="employee")


class ShiftTemplate(Base):
    __tablename__ = "shift_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    break_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    work_days: Mapped[list[int]] = mapped_column(JsonType, nullable=False, default=lambda: [1, 2, 3, 4, 5])


class EmployeeSchedule(Base):
    __tablename__ = "employee_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    shift_template_id: Mapped[int | None] = mapped_column(
        ForeignKey("shift_templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    custom_start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    custom_end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    custom_break_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    custom_work_days: Mapped[list[int] | None] = mapped_column(JsonType, nullable=True)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    employee: Mapped[Employee] = relationship(back_populates="schedules")
    shift_template: Mapped[ShiftTemplate | None] = relationship()


class OvertimeRule(Base):
    __tablename__ = "overtime_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    rule_type: Mapped[OvertimeRuleType] = mapped_column(
        _enum_column(OvertimeRuleType, "overtime_rule_type"),
        nullable=False,
    )
    threshold_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    multiplier: Mapped[float | None] = mapped_column(Float, nullable=True, default=1.5)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))


class EmployeeOvertimeRule(Base):
    __tablename__ = "employee_overtime_rules"
    __table_args__ = (UniqueConstraint("employee_id", "overtime_rule_id", name="uq_employee_overtime_rule"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    overtime_rule_id: Mapped[int] = mapped_column(
        ForeignKey("overtime_rules.id", ondelete="CASCADE"),
        nullable=False,
    )

    overtime_rule: Mapped[OvertimeRule] = relationship()


class CompanyHoliday(Base):
    __tablename__ = "company_holidays"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    holiday_date: Mapped[date] = mapped_column(Date, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))


class SpecialDayType(Base):
    __tablename__ = "special_day_types"
    __table_args__ = (UniqueConstraint("company_id", "code", name="uq_special_day_type_company_code"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    calculation_mode: Mapped[SpecialDayCalculationMode] = mapped_column(
        _enum_column(SpecialDayCalculationMode, "special_day_calculation_mode"),
        nullable=False,
        default=SpecialDayCalculationMode.ROUNDING,
    )
    multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.5, server_default=text("1.5"))
    base_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    extra_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    extra_multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.5, server_default=text("1.5"))
    applies_to_all: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))


class EmployeeSpecialDayType(Base):
    __tablename__ = "employee_special_day_types"
    __table_args__ = (
        UniqueConstraint("employee_id", "special_day_type_id", name="uq_employee_special_day_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    special_day_type_id: Mapped[int] = mapped_column(
        ForeignKey("special_day_types.id", ondelete="CASCADE"),
        nullable=False,
    )


class CompanyWorkSettings(Base):
    __tablename__ = "company_work_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    overtime_multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.5)
    weekend_multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.5)
    holiday_multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=2.0)
    boss_call_multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.5)
    monthly_work_days_constant: Mapped[float] = mapped_column(Float, nullable=False, default=21.66)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=_utcnow,
    )

    company: Mapped[Company] = relationship(back_populates="work_settings")


class WorkSession(Base):
    __tablename__ = "work_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    clock_in: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    clock_out: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    session_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    total_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    regular_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    overtime_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    overtime_multiplier: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[WorkSessionStatus] = mapped_column(
        _enum_column(WorkSessionStatus, "work_session_status"),
        nullable=False,
        default=WorkSessionStatus.ACTIVE,
    )
    clock_out_submitted_by: Mapped[str | None] = mapped_column(String(32), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    edited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    employee: Mapped[Employee] = relationship(back_populates="sessions")


class DailySummary(Base):
    __tablename__ = "daily_summaries"
    __table_args__ = (UniqueConstraint("employee_id", "summary_date", name="uq_daily_summary_employee_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    summary_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_work_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_regular_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_overtime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expected_work_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_late: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    late_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_absent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_leave: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deficit_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    work_day_type: Mapped[WorkDayType] = mapped_column(
        _enum_column(WorkDayType, "work_day_type"),
        nullable=False,
        default=WorkDayType.REGULAR,
    )
    status: Mapped[DailySummaryStatus] = mapped_column(
        _enum_column(DailySummaryStatus, "daily_summary_status"),
        nullable=False,
        default=DailySummaryStatus.ABSENT,
    )
    special_day_type_id: Mapped[int | None] = mapped_column(
        ForeignKey("special_day_types.id", ondelete="SET NULL"),
        nullable=True,
    )
    effective_work_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_boss_call: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    special_day_type: Mapped[SpecialDayType | None] = relationship()


class LeaveRecord(Base):
    __tablename__ = "leave_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    leave_type: Mapped[str] = mapped_column(String(128), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    status: Mapped[LeaveStatus] = mapped_column(
        _enum_column(LeaveStatus, "leave_status"),
        nullable=False,
        default=LeaveStatus.ACTIVE,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    employee: Mapped[Employee] = relationship(back_populates="leave_records")


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        index=True,
    )
    company_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    employee_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    performed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    action_type: Mapped[str] = mapped_column(String(64), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(64), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False, default=dict)
