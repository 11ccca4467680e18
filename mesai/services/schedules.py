from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Sequence

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from mesai.models import EmployeeSchedule
from mesai.settings import get_default_work_days, get_settings

MINUTES_PER_DAY = 24 * 60

SOURCE_TEMPLATE = "TEMPLATE"
SOURCE_CUSTOM = "CUSTOM"
SOURCE_DEFAULT = "DEFAULT"


@dataclass(frozen=True, slots=True)
class ResolvedSchedule:
    work_days: tuple[int, ...]
    start_time: time | None
    end_time: time | None
    break_minutes: int
    expected_minutes: int
    source: str
    schedule_id: int | None = None

    def is_work_day(self, day: date) -> bool:
        return day.isoweekday() in self.work_days and self.expected_minutes > 0


def _minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def shift_span_minutes(start_time: time, end_time: time, break_minutes: int = 0) -> int:
    span = _minutes_of(end_time) - _minutes_of(start_time)
    if span < 0:
        span += MINUTES_PER_DAY
    return max(0, span - max(0, break_minutes))


def default_schedule() -> ResolvedSchedule:
    return ResolvedSchedule(
        work_days=tuple(get_default_work_days()),
        start_time=None,
        end_time=None,
        break_minutes=0,
        expected_minutes=get_settings().default_expected_minutes,
        source=SOURCE_DEFAULT,
    )


def _covers(row: EmployeeSchedule, target_date: date) -> bool:
    if row.effective_from > target_date:
        return False
    return row.effective_to is None or row.effective_to >= target_date


def pick_applicable_schedule(rows: Sequence[EmployeeSchedule], target_date: date) -> EmployeeSchedule | None:
    candidates = [row for row in rows if _covers(row, target_date)]
    if not candidates:
        return None
    return max(candidates, key=lambda row: (row.effective_from, row.id or 0))


def resolve_schedule_from_rows(rows: Sequence[EmployeeSchedule], target_date: date) -> ResolvedSchedule:
    row = pick_applicable_schedule(rows, target_date)
    if row is None:
        return default_schedule()

    template = row.shift_template
    start_time = (template.start_time if template is not None else None) or row.custom_start_time
    end_time = (template.end_time if template is not None else None) or row.custom_end_time

    break_minutes = None
    if template is not None:
        break_minutes = template.break_duration_minutes
    if break_minutes is None:
        break_minutes = row.custom_break_duration_minutes
    break_minutes = max(0, int(break_minutes or 0))

    work_days = (template.work_days if template is not None else None) or row.custom_work_days
    if not work_days:
        work_days = get_default_work_days()

    expected_minutes = 0
    if start_time is not None and end_time is not None:
        expected_minutes = shift_span_minutes(start_time, end_time, break_minutes)

    return ResolvedSchedule(
        work_days=tuple(sorted({int(item) for item in work_days})),
        start_time=start_time,
        end_time=end_time,
        break_minutes=break_minutes,
        expected_minutes=expected_minutes,
        source=SOURCE_TEMPLATE if template is not None else SOURCE_CUSTOM,
        schedule_id=row.id,
    )


def expected_minutes_for_day(schedule: ResolvedSchedule, target_date: date) -> int:
    if target_date.isoweekday() not in schedule.work_days:
        return 0
    return schedule.expected_minutes


def list_employee_schedules(
    db: Session,
    employee_id: int,
    start_date: date,
    end_date: date,
) -> list[EmployeeSchedule]:
    return list(
        db.scalars(
            select(EmployeeSchedule)
            .options(selectinload(EmployeeSchedule.shift_template))
            .where(
                EmployeeSchedule.employee_id == employee_id,
                EmployeeSchedule.effective_from <= end_date,
                or_(EmployeeSchedule.effective_to.is_(None), EmployeeSchedule.effective_to >= start_date),
            )
            .order_by(EmployeeSchedule.effective_from.desc(), EmployeeSchedule.id.desc())
        ).all()
    )


def resolve_schedule(db: Session, employee_id: int, target_date: date) -> ResolvedSchedule:
    rows = list_employee_schedules(db, employee_id, target_date, target_date)
    return resolve_schedule_from_rows(rows, target_date)
