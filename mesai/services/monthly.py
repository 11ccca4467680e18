from __future__ import annotations

import re
from calendar import monthrange
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Sequence

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from mesai.errors import NotFoundError, ValidationError
from mesai.models import (
    Company,
    DailySummary,
    Employee,
    EmployeeSchedule,
    LeaveRecord,
    LeaveStatus,
    SpecialDayType,
    WorkDayType,
)
from mesai.schemas import (
    MonthlyDayDetail,
    MonthlyEmployeeSummary,
    MonthlySettingsRead,
    MonthlySummaryResponse,
    SpecialDayStat,
)
from mesai.services.holidays import classify_work_day, holiday_dates_in_range
from mesai.services.schedules import expected_minutes_for_day, resolve_schedule_from_rows
from mesai.services.timeutils import iter_dates, round_half_up
from mesai.services.work_settings import BOSS_CALL_CODE, WorkSettingsValues, resolve_work_settings

_MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")


@dataclass(slots=True)
class MonthlyDay:
    day: date
    is_work_day: bool
    work_day_type: WorkDayType
    expected_minutes: int
    has_summary: bool = False
    total_work_minutes: int = 0
    effective_minutes: int = 0
    is_boss_call: bool = False
    is_late: bool = False
    is_absent: bool = False
    is_leave: bool = False
    deficit_minutes: int = 0
    status: str = ""
    special_day_type_id: int | None = None
    special_day_type_name: str | None = None
    special_day_type_code: str | None = None
    leave_type_name: str | None = None

    @property
    def has_special_day(self) -> bool:
        return self.special_day_type_id is not None and self.special_day_type_code is not None

    @property
    def contribution(self) -> int:
        if not self.has_summary:
            return 0
        if self.has_special_day or self.is_boss_call:
            return self.effective_minutes
        return self.total_work_minutes

    @property
    def counted(self) -> bool:
        if self.is_work_day:
            return True
        return self.has_summary and (self.total_work_minutes > 0 or self.has_special_day or self.is_boss_call)


@dataclass(slots=True)
class MonthlyTotals:
    work_days: int = 0
    total_work_minutes: int = 0
    expected_work_minutes: int = 0
    boss_call_days: int = 0
    boss_call_minutes: int = 0
    special_day_stats: dict[str, SpecialDayStat] = field(default_factory=dict)
    weekend_work_minutes: int = 0
    holiday_work_minutes: int = 0
    net_minutes: int = 0
    deficit_minutes: int = 0
    overtime_value: int = 0
    overtime_days: float = 0.0
    overtime_percentage: float = 0.0
    late_days: int = 0
    absent_days: int = 0
    leave_days: int = 0


def _round_2(value: float) -> float:
    return round_half_up(value * 100) / 100


def calculate_monthly_totals(days: Sequence[MonthlyDay], settings: WorkSettingsValues) -> MonthlyTotals:
    totals = MonthlyTotals()

    for item in days:
        contributed = item.contribution

        if item.has_summary:
            if item.has_special_day or item.is_boss_call:
                if item.special_day_type_id is not None:
                    key = str(item.special_day_type_id)
                    stat = totals.special_day_stats.get(key)
                    if stat is None:
                        stat = SpecialDayStat(
                            days=0,
                            minutes=0,
                            name=item.special_day_type_name or "Unknown",
                            code=item.special_day_type_code or "unknown",
                        )
                        totals.special_day_stats[key] = stat
                    stat.days += 1
                    stat.minutes += item.effective_minutes
                if item.is_boss_call or item.special_day_type_code == BOSS_CALL_CODE:
                    totals.boss_call_days += 1
                    totals.boss_call_minutes += item.effective_minutes
            if item.is_late:
                totals.late_days += 1
            if item.is_leave:
                totals.leave_days += 1

        if contributed > 0 and item.work_day_type == WorkDayType.WEEKEND:
            totals.weekend_work_minutes += contributed
        if contributed > 0 and item.work_day_type == WorkDayType.HOLIDAY:
            totals.holiday_work_minutes += contributed

        if item.counted:
            totals.work_days += 1
            totals.expected_work_minutes += item.expected_minutes
            totals.total_work_minutes += contributed
            totals.deficit_minutes += item.deficit_minutes
            if item.is_absent and not item.is_leave:
                totals.absent_days += 1

    totals.net_minutes = totals.total_work_minutes - totals.expected_work_minutes
    expected_per_day = totals.expected_work_minutes / max(totals.work_days, 1)

    overtime_value = 0.0
    if totals.net_minutes > 0:
        special_days = sum(stat.days for stat in totals.special_day_stats.values())
        special_minutes = sum(stat.minutes for stat in totals.special_day_stats.values())
        # Special-day minutes already carry their own multiplier.
        special_day_surplus = special_minutes - special_days * expected_per_day
        regular_surplus = (
            totals.net_minutes
            - totals.weekend_work_minutes
            - totals.holiday_work_minutes
            - max(0.0, special_day_surplus)
        )
        if regular_surplus > 0:
            overtime_value += regular_surplus * settings.overtime_multiplier
        overtime_value += totals.weekend_work_minutes * settings.weekend_multiplier
        overtime_value += totals.holiday_work_minutes * settings.holiday_multiplier
        if special_day_surplus > 0:
            overtime_value += special_day_surplus

    overtime_days = overtime_value / expected_per_day if expected_per_day > 0 else 0.0
    constant = settings.monthly_work_days_constant
    overtime_percentage = overtime_days / constant * 100 if constant > 0 else 0.0

    totals.overtime_value = round_half_up(overtime_value)
    totals.overtime_days = _round_2(overtime_days)
    totals.overtime_percentage = _round_2(overtime_percentage)
    return totals


def parse_month(month: str) -> tuple[date, date]:
    if not month or not _MONTH_PATTERN.match(month):
        raise ValidationError("month parameter is required in YYYY-MM format")
    year, month_num = (int(part) for part in month.split("-"))
    if not 1 <= month_num <= 12:
        raise ValidationError("month parameter is required in YYYY-MM format")
    return date(year, month_num, 1), date(year, month_num, monthrange(year, month_num)[1])


def list_month_employees(db: Session, company_id: int, employee_id: int | None) -> list[Employee]:
    stmt = select(Employee).where(Employee.company_id == company_id, Employee.is_active.is_(True))
    if employee_id is not None:
        stmt = stmt.where(Employee.id == employee_id)
    return list(db.scalars(stmt.order_by(Employee.full_name.asc(), Employee.id.asc())).all())


def list_month_schedules(
    db: Session,
    employee_ids: list[int],
    first_day: date,
    last_day: date,
) -> dict[int, list[EmployeeSchedule]]:
    rows = db.scalars(
        select(EmployeeSchedule)
        .options(selectinload(EmployeeSchedule.shift_template))
        .where(
            EmployeeSchedule.employee_id.in_(employee_ids),
            EmployeeSchedule.effective_from <= last_day,
            or_(EmployeeSchedule.effective_to.is_(None), EmployeeSchedule.effective_to >= first_day),
        )
    ).all()
    grouped: dict[int, list[EmployeeSchedule]] = defaultdict(list)
    for row in rows:
        grouped[row.employee_id].append(row)
    return grouped


def list_month_summaries(
    db: Session,
    employee_ids: list[int],
    first_day: date,
    last_day: date,
) -> dict[tuple[int, date], DailySummary]:
    rows = db.scalars(
        select(DailySummary).where(
            DailySummary.employee_id.in_(employee_ids),
            DailySummary.summary_date >= first_day,
            DailySummary.summary_date <= last_day,
        )
    ).all()
    return {(row.employee_id, row.summary_date): row for row in rows}


def list_special_day_types(db: Session, company_id: int) -> dict[int, SpecialDayType]:
    # Inactive types are kept so historical days still resolve their names.
    rows = db.scalars(select(SpecialDayType).where(SpecialDayType.company_id == company_id)).all()
    return {row.id: row for row in rows}


def list_month_leave_names(
    db: Session,
    employee_ids: list[int],
    first_day: date,
    last_day: date,
) -> dict[tuple[int, date], str]:
    rows = db.scalars(
        select(LeaveRecord).where(
            LeaveRecord.employee_id.in_(employee_ids),
            LeaveRecord.status == LeaveStatus.ACTIVE,
            LeaveRecord.start_date <= last_day,
            LeaveRecord.end_date >= first_day,
        )
    ).all()
    names: dict[tuple[int, date], str] = {}
    for row in rows:
        for day in iter_dates(max(row.start_date, first_day), min(row.end_date, last_day)):
            names[(row.employee_id, day)] = row.leave_type
    return names


def build_monthly_day(
    day: date,
    *,
    schedule_rows: Sequence[EmployeeSchedule],
    holiday: bool,
    summary: DailySummary | None,
    special_day_types: dict[int, SpecialDayType],
    leave_type_name: str | None,
) -> MonthlyDay:
    schedule = resolve_schedule_from_rows(schedule_rows, day)
    work_day_type = classify_work_day(day, schedule.work_days if schedule.expected_minutes > 0 else (), holiday)
    is_work_day = work_day_type == WorkDayType.REGULAR
    expected = expected_minutes_for_day(schedule, day) if is_work_day else 0

    record = MonthlyDay(day=day, is_work_day=is_work_day, work_day_type=work_day_type, expected_minutes=expected)
    if summary is None:
        if is_work_day:
            record.is_absent = True
            record.status = "absent"
            record.deficit_minutes = expected
        return record

    record.has_summary = True
    record.total_work_minutes = summary.total_work_minutes or 0
    record.effective_minutes = summary.effective_work_minutes or summary.total_work_minutes or 0
    record.is_boss_call = bool(summary.is_boss_call)
    record.is_late = bool(summary.is_late)
    record.is_absent = bool(summary.is_absent)
    record.is_leave = bool(summary.is_leave)
    record.deficit_minutes = summary.deficit_minutes or 0
    record.status = summary.status.value if summary.status is not None else ""
    if record.is_leave:
        record.expected_minutes = 0
        record.leave_type_name = leave_type_name

    record.special_day_type_id = summary.special_day_type_id
    day_type = special_day_types.get(summary.special_day_type_id) if summary.special_day_type_id else None
    if day_type is not None:
        record.special_day_type_name = day_type.name
        record.special_day_type_code = day_type.code
    return record


def _day_detail(record: MonthlyDay) -> MonthlyDayDetail:
    return MonthlyDayDetail(
        date=record.day,
        is_work_day=record.is_work_day,
        work_day_type=record.work_day_type,
        total_work_minutes=record.total_work_minutes,
        expected_work_minutes=record.expected_minutes,
        effective_work_minutes=record.effective_minutes,
        is_boss_call=record.is_boss_call,
        is_late=record.is_late,
        is_absent=record.is_absent,
        is_leave=record.is_leave,
        leave_type_name=record.leave_type_name,
        deficit_minutes=record.deficit_minutes,
        status=record.status,
        special_day_type_id=record.special_day_type_id,
        special_day_type_name=record.special_day_type_name,
        special_day_type_code=record.special_day_type_code,
    )


def get_monthly_summary(
    db: Session,
    company_id: int,
    month: str,
    employee_id: int | None = None,
) -> MonthlySummaryResponse:
    first_day, last_day = parse_month(month)
    if db.get(Company, company_id) is None:
        raise NotFoundError("Company not found")

    settings = resolve_work_settings(db, company_id)
    settings_read = MonthlySettingsRead(**settings.to_dict())

    employees = list_month_employees(db, company_id, employee_id)
    if not employees:
        return MonthlySummaryResponse(month=month, summaries=[], settings=settings_read)

    employee_ids = [employee.id for employee in employees]
    holidays = holiday_dates_in_range(db, company_id, first_day, last_day)
    schedules = list_month_schedules(db, employee_ids, first_day, last_day)
    summaries = list_month_summaries(db, employee_ids, first_day, last_day)
    special_day_types = list_special_day_types(db, company_id)
    leave_names = list_month_leave_names(db, employee_ids, first_day, last_day)

    results: list[MonthlyEmployeeSummary] = []
    for employee in employees:
        days = [
            build_monthly_day(
                day,
                schedule_rows=schedules.get(employee.id, []),
                holiday=day in holidays,
                summary=summaries.get((employee.id, day)),
                special_day_types=special_day_types,
                leave_type_name=leave_names.get((employee.id, day)),
            )
            for day in iter_dates(first_day, last_day)
        ]
        totals = calculate_monthly_totals(days, settings)
        results.append(
            MonthlyEmployeeSummary(
                employee_id=employee.id,
                employee_name=employee.full_name,
                work_days=totals.work_days,
                total_work_minutes=totals.total_work_minutes,
                expected_work_minutes=totals.expected_work_minutes,
                boss_call_days=totals.boss_call_days,
                boss_call_minutes=totals.boss_call_minutes,
                special_day_stats=totals.special_day_stats,
                weekend_work_minutes=totals.weekend_work_minutes,
                holiday_work_minutes=totals.holiday_work_minutes,
                net_minutes=totals.net_minutes,
                deficit_minutes=totals.deficit_minutes,
                overtime_value=totals.overtime_value,
                overtime_days=totals.overtime_days,
                overtime_percentage=totals.overtime_percentage,
                late_days=totals.late_days,
                absent_days=totals.absent_days,
                leave_days=totals.leave_days,
                daily_details=[_day_detail(item) for item in days],
            )
        )

    return MonthlySummaryResponse(month=month, summaries=results, settings=settings_read)
