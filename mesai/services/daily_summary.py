from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from mesai.errors import NotFoundError
from mesai.models import (
    DailySummary,
    DailySummaryStatus,
    Employee,
    LeaveRecord,
    LeaveStatus,
    SpecialDayType,
    WorkDayType,
    WorkSession,
    WorkSessionStatus,
)
from mesai.services.holidays import classify_work_day, is_holiday as company_is_holiday
from mesai.services.schedules import ResolvedSchedule, expected_minutes_for_day, resolve_schedule
from mesai.services.special_days import (
    SpecialDayConfig,
    calculate_boss_call_effective,
    calculate_special_day_effective,
    special_day_expected_minutes,
)
from mesai.services.timeutils import local_time_on, round_half_up, to_utc
from mesai.services.work_settings import BOSS_CALL_CODE, resolve_work_settings

logger = logging.getLogger("mesai.daily_summary")

MAX_REPORTED_ERRORS = 20

_SUMMARY_FIELDS = (
    "total_sessions",
    "total_work_minutes",
    "total_regular_minutes",
    "total_overtime_minutes",
    "expected_work_minutes",
    "is_late",
    "late_minutes",
    "is_absent",
    "is_leave",
    "is_holiday",
    "deficit_minutes",
    "work_day_type",
    "status",
    "special_day_type_id",
    "effective_work_minutes",
    "is_boss_call",
)


@dataclass(slots=True)
class DayValues:
    total_sessions: int
    total_work_minutes: int
    total_regular_minutes: int
    total_overtime_minutes: int
    expected_work_minutes: int
    is_late: bool
    late_minutes: int
    is_absent: bool
    is_leave: bool
    is_holiday: bool
    deficit_minutes: int
    work_day_type: WorkDayType
    status: DailySummaryStatus
    special_day_type_id: int | None = None
    effective_work_minutes: int = 0
    is_boss_call: bool = False


@dataclass(slots=True)
class BatchRecalculateResult:
    sessions_recalculated: int = 0
    summaries_recalculated: int = 0
    errors: int = 0
    error_messages: list[str] = field(default_factory=list)

    def record_error(self, message: str) -> None:
        self.errors += 1
        if len(self.error_messages) < MAX_REPORTED_ERRORS:
            self.error_messages.append(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessions_recalculated": self.sessions_recalculated,
            "summaries_recalculated": self.summaries_recalculated,
            "errors": self.errors,
            "error_messages": list(self.error_messages),
        }


def _late_minutes(first_clock_in: datetime, target_date: date, schedule: ResolvedSchedule) -> int:
    if schedule.start_time is None:
        return 0
    scheduled_start = local_time_on(target_date, schedule.start_time)
    diff_seconds = (to_utc(first_clock_in) - scheduled_start).total_seconds()
    if diff_seconds <= 0:
        return 0
    return round_half_up(diff_seconds / 60)


def compute_day_values(
    *,
    target_date: date,
    sessions: Sequence[WorkSession],
    schedule: ResolvedSchedule,
    on_leave: bool,
    holiday: bool,
    work_day_type: WorkDayType | None = None,
) -> DayValues:
    """Aggregate one employee day from its non-cancelled sessions.

    Special-day fields are left at their plain defaults; callers that keep an
    existing assignment overwrite them afterwards.
    """
    ordered = sorted(sessions, key=lambda item: to_utc(item.clock_in))
    total_work = sum(item.total_minutes or 0 for item in ordered)
    total_regular = sum(item.regular_minutes or 0 for item in ordered)
    total_overtime = sum(item.overtime_minutes or 0 for item in ordered)

    if work_day_type is None:
        work_day_type = classify_work_day(
            target_date,
            schedule.work_days if schedule.expected_minutes > 0 else (),
            holiday,
        )
    holiday = holiday or work_day_type == WorkDayType.HOLIDAY

    scheduled_minutes = expected_minutes_for_day(schedule, target_date)
    expected = scheduled_minutes
    if work_day_type != WorkDayType.REGULAR:
        expected = 0

    late_minutes = 0
    if ordered and scheduled_minutes > 0:
        late_minutes = _late_minutes(ordered[0].clock_in, target_date, schedule)

    if not ordered:
        status = DailySummaryStatus.ABSENT
    elif any(item.status == WorkSessionStatus.ACTIVE for item in ordered):
        status = DailySummaryStatus.INCOMPLETE
    else:
        status = DailySummaryStatus.COMPLETE

    if on_leave:
        status = DailySummaryStatus.LEAVE
        expected = 0
    elif status == DailySummaryStatus.ABSENT and holiday:
        status = DailySummaryStatus.HOLIDAY

    return DayValues(
        total_sessions=len(ordered),
        total_work_minutes=total_work,
        total_regular_minutes=total_regular,
        total_overtime_minutes=total_overtime,
        expected_work_minutes=expected,
        is_late=late_minutes > 0,
        late_minutes=late_minutes,
        is_absent=status == DailySummaryStatus.ABSENT,
        is_leave=on_leave,
        is_holiday=holiday,
        deficit_minutes=max(0, expected - total_work),
        work_day_type=work_day_type,
        status=status,
        effective_work_minutes=total_work,
    )


def apply_special_day(
    values: DayValues,
    *,
    special_day_type_id: int | None,
    special_day_type: SpecialDayType | None,
    legacy_boss_call: bool,
    boss_call_multiplier: float,
) -> DayValues:
    expected = special_day_expected_minutes(values.expected_work_minutes)
    if special_day_type_id is not None:
        values.special_day_type_id = special_day_type_id
        if special_day_type is not None:
            values.is_boss_call = special_day_type.code == BOSS_CALL_CODE
            values.effective_work_minutes = calculate_special_day_effective(
                values.total_work_minutes,
                expected,
                SpecialDayConfig.from_row(special_day_type),
            )
    elif legacy_boss_call:
        values.is_boss_call = True
        values.effective_work_minutes = calculate_boss_call_effective(
            values.total_work_minutes,
            expected,
            boss_call_multiplier,
        )
    return values


def list_day_sessions(db: Session, employee_id: int, target_date: date) -> list[WorkSession]:
    return list(
        db.scalars(
            select(WorkSession)
            .where(
                WorkSession.employee_id == employee_id,
                WorkSession.session_date == target_date,
                WorkSession.status != WorkSessionStatus.CANCELLED,
            )
            .order_by(WorkSession.clock_in.asc(), WorkSession.id.asc())
        ).all()
    )


def has_active_leave(db: Session, employee_id: int, target_date: date) -> bool:
    leave_id = db.scalar(
        select(LeaveRecord.id)
        .where(
            LeaveRecord.employee_id == employee_id,
            LeaveRecord.status == LeaveStatus.ACTIVE,
            LeaveRecord.start_date <= target_date,
            LeaveRecord.end_date >= target_date,
        )
        .limit(1)
    )
    return leave_id is not None


def get_daily_summary(db: Session, employee_id: int, target_date: date) -> DailySummary | None:
    return db.scalar(
        select(DailySummary).where(
            DailySummary.employee_id == employee_id,
            DailySummary.summary_date == target_date,
        )
    )


def recalculate_daily_summary(
    db: Session,
    employee_id: int,
    target_date: date,
    work_day_type: WorkDayType | None = None,
    is_holiday: bool | None = None,
) -> DailySummary:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")

    sessions = list_day_sessions(db, employee_id, target_date)
    schedule = resolve_schedule(db, employee_id, target_date)
    on_leave = has_active_leave(db, employee_id, target_date)

    if work_day_type is not None:
        holiday = bool(is_holiday) or work_day_type == WorkDayType.HOLIDAY
    elif is_holiday is not None:
        holiday = is_holiday
    else:
        holiday = company_is_holiday(db, employee.company_id, target_date)

    values = compute_day_values(
        target_date=target_date,
        sessions=sessions,
        schedule=schedule,
        on_leave=on_leave,
        holiday=holiday,
        work_day_type=work_day_type,
    )

    summary = get_daily_summary(db, employee_id, target_date)
    if summary is not None and (summary.special_day_type_id is not None or summary.is_boss_call):
        special_day_type = None
        if summary.special_day_type_id is not None:
            special_day_type = db.get(SpecialDayType, summary.special_day_type_id)
        boss_call_multiplier = 0.0
        if summary.special_day_type_id is None:
            boss_call_multiplier = resolve_work_settings(db, employee.company_id).boss_call_multiplier
        apply_special_day(
            values,
            special_day_type_id=summary.special_day_type_id,
            special_day_type=special_day_type,
            legacy_boss_call=bool(summary.is_boss_call),
            boss_call_multiplier=boss_call_multiplier,
        )

    created = summary is None
    if summary is None:
        summary = DailySummary(
            employee_id=employee_id,
            company_id=employee.company_id,
            summary_date=target_date,
        )
        db.add(summary)

    changed = created
    for name in _SUMMARY_FIELDS:
        new_value = getattr(values, name)
        if created or getattr(summary, name) != new_value:
            setattr(summary, name, new_value)
            changed = True
    if changed:
        summary.updated_at = datetime.now(timezone.utc)

    db.commit()
    logger.info(
        "daily_summary_upserted",
        extra={
            "employee_id": employee_id,
            "summary_date": target_date,
            "status": values.status.value,
            "total_work_minutes": values.total_work_minutes,
            "expected_work_minutes": values.expected_work_minutes,
            "changed": changed,
        },
    )
    return summary


def batch_recalculate(db: Session, company_id: int | None = None) -> BatchRecalculateResult:
    from mesai.services.sessions import calculate_session

    result = BatchRecalculateResult()

    session_stmt = select(WorkSession.id, WorkSession.employee_id, WorkSession.session_date).where(
        WorkSession.status.in_([WorkSessionStatus.COMPLETED, WorkSessionStatus.EDITED]),
        WorkSession.clock_out.is_not(None),
    )
    if company_id is not None:
        session_stmt = session_stmt.where(WorkSession.company_id == company_id)
    session_rows = db.execute(
        session_stmt.order_by(WorkSession.session_date.asc(), WorkSession.id.asc())
    ).all()

    covered_days: set[tuple[int, date]] = set()
    for session_id, employee_id, session_date in session_rows:
        covered_days.add((employee_id, session_date))
        try:
            calculate_session(db, session_id)
        except Exception as exc:
            db.rollback()
            result.record_error(f"session {session_id}: {exc}")
            continue
        result.sessions_recalculated += 1

    summary_stmt = select(DailySummary.employee_id, DailySummary.summary_date)
    if company_id is not None:
        summary_stmt = summary_stmt.where(DailySummary.company_id == company_id)
    summary_rows = db.execute(summary_stmt.order_by(DailySummary.summary_date.asc())).all()

    for employee_id, summary_date in summary_rows:
        if (employee_id, summary_date) in covered_days:
            continue
        try:
            recalculate_daily_summary(db, employee_id, summary_date)
        except Exception as exc:
            db.rollback()
            result.record_error(f"summary {employee_id}/{summary_date.isoformat()}: {exc}")
            continue
        result.summaries_recalculated += 1

    logger.info(
        "batch_recalculate_finished",
        extra={"company_id": company_id, **result.to_dict()},
    )
    return result
